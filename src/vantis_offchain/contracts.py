"""
Contract Registry

Static description of the Vantis contracts and the order they must be deployed in.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from vantis_offchain.invoker import Outcome


@dataclass(frozen=True)
class ContractDescriptor:
    """One contract of the deployment graph"""

    logical_name: str
    crate: str
    wasm_file: str
    order: int
    title: str
    probe_function: str = "admin"
    # Contract error numbers that signal an expected precondition
    error_codes: Mapping[int, Outcome] = field(default_factory=dict, hash=False)

    def artifact_path(self, target_dir: Path) -> Path:
        return Path(target_dir) / self.wasm_file


# ============================================================================
# Deployment graph (dependency order)
# ============================================================================

ORACLE_ADAPTER = ContractDescriptor(
    logical_name="oracle_adapter",
    crate="oracle-adapter",
    wasm_file="oracle_adapter.wasm",
    order=0,
    title="Oracle Adapter",
    probe_function="get_assets",
    error_codes={
        2: Outcome.ASSET_NOT_SUPPORTED,
        3: Outcome.STALE_PRICE,
        6: Outcome.INSUFFICIENT_HISTORY,
    },
)
BLEND_ADAPTER = ContractDescriptor(
    logical_name="blend_adapter",
    crate="blend-adapter",
    wasm_file="blend_adapter.wasm",
    order=1,
    title="Blend Adapter",
    error_codes={2: Outcome.ASSET_NOT_SUPPORTED},
)
VANTIS_POOL = ContractDescriptor(
    logical_name="vantis_pool",
    crate="vantis-pool",
    wasm_file="vantis_pool.wasm",
    order=2,
    title="Vantis Pool",
    error_codes={2: Outcome.ASSET_NOT_SUPPORTED},
)
RISK_ENGINE = ContractDescriptor(
    logical_name="risk_engine",
    crate="risk-engine",
    wasm_file="risk_engine.wasm",
    order=3,
    title="Risk Engine",
)
BORROW_LIMIT_POLICY = ContractDescriptor(
    logical_name="borrow_limit_policy",
    crate="borrow-limit-policy",
    wasm_file="borrow_limit_policy.wasm",
    order=4,
    title="Borrow Limit Policy",
)

DEPLOYMENT_GRAPH: Tuple[ContractDescriptor, ...] = tuple(
    sorted(
        (ORACLE_ADAPTER, BLEND_ADAPTER, VANTIS_POOL, RISK_ENGINE, BORROW_LIMIT_POLICY),
        key=lambda descriptor: descriptor.order,
    )
)


# ============================================================================
# Fixed testnet addresses
# ============================================================================

# Native XLM Stellar Asset Contract on testnet
XLM_SAC_ADDRESS = "CDLZFC3SYJYDZT7K67VZ75HPJVIEUVNIXF47ZG2FB2RMQQVU2HHGCYSC"
# USDC stand-in until a real USDC SAC is wired in
USDC_PLACEHOLDER_ADDRESS = "CBIELTK6YBZJU5UP2WWQEUCYKLPU6AUNZ2BQ4WWFEIE3USCIHMXQDAMA"
# Stand-in for the external Blend pool (and the upstream price oracle)
MOCK_BLEND_POOL_ADDRESS = "CAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAFCT4"

TOKENS: Dict[str, str] = {
    "token_XLM": XLM_SAC_ADDRESS,
    "token_USDC": USDC_PLACEHOLDER_ADDRESS,
}


# ============================================================================
# Registry functions
# ============================================================================


def get_descriptor(name: str) -> Optional[ContractDescriptor]:
    """
    Look up a contract by logical name or crate name

    Args:
        name: e.g. "vantis_pool" or "vantis-pool"

    Returns:
        ContractDescriptor or None if unknown
    """
    for descriptor in DEPLOYMENT_GRAPH:
        if name in (descriptor.logical_name, descriptor.crate):
            return descriptor
    return None


def list_contract_names() -> List[str]:
    return [descriptor.logical_name for descriptor in DEPLOYMENT_GRAPH]
