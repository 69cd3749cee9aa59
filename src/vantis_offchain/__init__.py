"""
Vantis Off-chain Library

Deployment and verification tooling for the Vantis lending protocol on Stellar/Soroban.
Contains account provisioning, the deployment ledger, contract invocation and orchestration,
separated from the command line interface.
"""

from .accounts import Account, AccountProvisioner
from .builder import ContractBuilder
from .chain_context import StellarChainContext
from .config import Settings, load_settings
from .invoker import ContractInvoker, InvocationResult, Outcome
from .ledger import DeploymentLedger
from .orchestrator import DeploymentOrchestrator


__all__ = [
    "Account",
    "AccountProvisioner",
    "ContractBuilder",
    "ContractInvoker",
    "DeploymentLedger",
    "DeploymentOrchestrator",
    "InvocationResult",
    "Outcome",
    "Settings",
    "StellarChainContext",
    "load_settings",
]
