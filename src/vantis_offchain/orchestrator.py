"""
Deployment Orchestration

Runs the Vantis deployment as an ordered list of named stages:
prerequisites, reset, build, admin, tokens, deploy, initialize, configure, summary.
Stages guarded by a ledger key are skipped once that key holds a value.
"""

import json
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from vantis_offchain.accounts import Account, AccountProvisioner
from vantis_offchain.builder import ContractBuilder
from vantis_offchain.chain_context import StellarChainContext
from vantis_offchain.config import Settings
from vantis_offchain.console import get_logger
from vantis_offchain.contracts import (
    BLEND_ADAPTER,
    BORROW_LIMIT_POLICY,
    DEPLOYMENT_GRAPH,
    MOCK_BLEND_POOL_ADDRESS,
    ORACLE_ADAPTER,
    RISK_ENGINE,
    TOKENS,
    VANTIS_POOL,
    ContractDescriptor,
)
from vantis_offchain.exceptions import DeploymentError
from vantis_offchain.invoker import ContractInvoker, InvocationResult, Outcome, extract_contract_id
from vantis_offchain.ledger import DeploymentLedger
from vantis_offchain.menu.formatter import MenuFormatter
from vantis_offchain.stellar_cli import check_command


logger = get_logger(__name__)

ADMIN_ALIAS = "admin"
ALREADY_DONE_MARKER = "already-done"
DONE_MARKER = "done"


def compact_json(value: Dict) -> str:
    """Serialize a struct argument the way the stellar tool expects it"""
    return json.dumps(value, separators=(",", ":"))


@dataclass
class Stage:
    """One named deployment step; the action returns False for a logged failure"""

    name: str
    action: Callable[[], bool]
    skip_if: Optional[str] = None


@dataclass
class StageResult:
    name: str
    status: str  # "done", "skipped" or "failed"


@dataclass
class DeploymentReport:
    """Per-stage record of one orchestrator run"""

    results: List[StageResult] = field(default_factory=list)

    def record(self, name: str, status: str) -> None:
        self.results.append(StageResult(name, status))

    @property
    def failures(self) -> List[StageResult]:
        return [result for result in self.results if result.status == "failed"]

    @property
    def skipped(self) -> List[str]:
        return [result.name for result in self.results if result.status == "skipped"]

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1


class DeploymentOrchestrator:
    """Deploys, initializes and configures the Vantis contract set"""

    def __init__(
        self,
        settings: Settings,
        ledger: DeploymentLedger,
        provisioner: AccountProvisioner,
        invoker: ContractInvoker,
        builder: ContractBuilder,
        chain_context: StellarChainContext,
        formatter: Optional[MenuFormatter] = None,
    ):
        """
        Initialize deployment orchestrator

        Args:
            settings: Harness settings
            ledger: Deployment ledger for the target network
            provisioner: Account provisioner for the admin identity
            invoker: Contract invoker
            builder: Contract builder
            chain_context: Chain context used for finality polling
            formatter: Console formatter for banners and the summary table
        """
        self.settings = settings
        self.ledger = ledger
        self.provisioner = provisioner
        self.invoker = invoker
        self.builder = builder
        self.chain_context = chain_context
        self.formatter = formatter or MenuFormatter()
        self.admin: Optional[Account] = None

    # ============================================================================
    # Stage plan
    # ============================================================================

    def plan(self, build: bool = True, reset: bool = False, keep_admin: bool = False) -> List[Stage]:
        """
        Ordered stage list for one run

        Args:
            build: Include the build stage
            reset: Include the reset stage
            keep_admin: Keep the admin credential when resetting

        Returns:
            List of stages in execution order
        """
        stages = [Stage("prerequisites", lambda: self.check_prerequisites(build))]
        if reset:
            stages.append(Stage("reset", lambda: self.reset(keep_admin)))
        if build:
            stages.append(Stage("build", self.build_contracts))
        stages.append(Stage("admin", self.setup_admin))
        stages.append(Stage("tokens", self.record_tokens))

        for descriptor in DEPLOYMENT_GRAPH:
            stages.append(
                Stage(
                    f"deploy_{descriptor.logical_name}",
                    self._deploy_action(descriptor),
                    skip_if=descriptor.logical_name,
                )
            )

        for descriptor in DEPLOYMENT_GRAPH:
            marker = f"init_{descriptor.logical_name}"
            stages.append(
                Stage(
                    marker,
                    self._call_action(descriptor, "initialize", self._initialize_args(descriptor), marker),
                    skip_if=marker,
                )
            )

        for name, descriptor, function, args_factory in self._configuration_steps():
            marker = f"config_{name}"
            stages.append(
                Stage(marker, self._call_action(descriptor, function, args_factory, marker), skip_if=marker)
            )

        # Prices go stale, so the seed runs every time
        stages.append(
            Stage("seed_price", self._call_action(ORACLE_ADAPTER, "update_price", self._seed_price_args))
        )
        stages.append(Stage("summary", self.print_summary))
        return stages

    def run(self, build: bool = True, reset: bool = False, keep_admin: bool = False) -> DeploymentReport:
        """
        Run the full deployment

        Args:
            build: Build contracts before deploying
            reset: Clear the ledger (and the admin credential) first
            keep_admin: Keep the admin credential when resetting

        Returns:
            DeploymentReport; initialization and configuration failures are recorded there

        Raises:
            ToolNotFoundError, BuildError, DeploymentError, KeyRegenerationRequired,
            LedgerCorruptError: Fatal conditions that abort the run
        """
        self.formatter.print_header("Vantis Protocol - Testnet Deployment")
        report = DeploymentReport()

        for stage in self.plan(build=build, reset=reset, keep_admin=keep_admin):
            if stage.skip_if and self.ledger.has(stage.skip_if):
                logger.info(f"Skipping {stage.name}: already recorded ({self.ledger.get(stage.skip_if)})")
                report.record(stage.name, "skipped")
                continue

            if stage.action():
                report.record(stage.name, "done")
            else:
                report.record(stage.name, "failed")

        if report.succeeded:
            logger.success("Deployment complete!")
        else:
            names = ", ".join(result.name for result in report.failures)
            logger.error(f"Deployment finished with {len(report.failures)} failed step(s): {names}")
        return report

    # ============================================================================
    # Stage actions
    # ============================================================================

    def check_prerequisites(self, build: bool = True) -> bool:
        logger.step("Checking prerequisites...")
        check_command(self.settings.stellar_bin)
        if build:
            check_command(self.settings.cargo_bin)
        logger.success("All prerequisites met")
        return True

    def reset(self, keep_admin: bool = False) -> bool:
        """Clear the ledger and, unless kept, the admin credential"""
        self.ledger.reset()
        if not keep_admin:
            self.provisioner.remove(ADMIN_ALIAS)
        return True

    def build_contracts(self) -> bool:
        self.builder.build_all()
        return True

    def setup_admin(self) -> bool:
        logger.step("Setting up admin account...")
        self.ledger.ensure()
        self.admin = self.provisioner.provision(ADMIN_ALIAS)
        if self.ledger.get(ADMIN_ALIAS) != self.admin.public_key:
            self.ledger.set(ADMIN_ALIAS, self.admin.public_key)
        logger.success(f"Admin account: {self.admin.public_key}")
        return True

    def record_tokens(self) -> bool:
        logger.step("Configuring token addresses...")
        for name, address in TOKENS.items():
            if self.ledger.get(name) != address:
                self.ledger.set(name, address)
            logger.info(f"{name}: {address}")
        return True

    def print_summary(self) -> bool:
        self.formatter.print_header("Deployment Summary")
        self.formatter.print_field("Network", self.settings.network)
        self.formatter.print_field("RPC URL", self.settings.soroban_rpc_url)
        print("")

        rows = [("Admin", self.ledger.get(ADMIN_ALIAS))]
        rows += [(descriptor.title, self.ledger.get(descriptor.logical_name)) for descriptor in DEPLOYMENT_GRAPH]
        rows += [("XLM Token", self.ledger.get("token_XLM")), ("USDC Token", self.ledger.get("token_USDC"))]
        self.formatter.print_table("Deployed Contracts", rows)
        self.formatter.print_field("Deployment file", str(self.ledger.path))
        return True

    def _deploy_action(self, descriptor: ContractDescriptor) -> Callable[[], bool]:
        def action() -> bool:
            wasm = self.builder.deploy_artifact(descriptor)
            logger.info(f"Deploying {descriptor.logical_name}...")
            result = self.invoker.deploy(wasm, self.admin)

            contract_id = extract_contract_id(result.raw_output) if result.ok else None
            if not contract_id:
                raise DeploymentError(
                    f"Failed to deploy {descriptor.logical_name}: {result.message}"
                )

            self.ledger.set(descriptor.logical_name, contract_id)
            logger.success(f"{descriptor.logical_name} deployed: {contract_id}")
            return True

        return action

    def _call_action(
        self,
        descriptor: ContractDescriptor,
        function: str,
        args_factory: Callable[[], Sequence[str]],
        marker: Optional[str] = None,
    ) -> Callable[[], bool]:
        """Build an action that submits one admin call and records its marker"""

        def action() -> bool:
            address = self.ledger.get(descriptor.logical_name)
            if not address:
                logger.error(f"{descriptor.title} has no recorded address; cannot call {function}")
                return False

            logger.info(f"{descriptor.title}: {function}...")
            result = self.invoker.invoke(
                address, function, self.admin, args_factory(), error_codes=descriptor.error_codes
            )
            return self._settle(descriptor, result, marker)

        return action

    def _settle(self, descriptor: ContractDescriptor, result: InvocationResult, marker: Optional[str]) -> bool:
        if result.outcome == Outcome.ALREADY_DONE:
            logger.info(f"{descriptor.title}: {result.function} already done")
        elif result.outcome == Outcome.SUCCESS:
            if result.tx_hash and self.settings.wait_for_finality:
                logger.info(f"Waiting for {self.chain_context.get_explorer_url(result.tx_hash)}")
                if not self.chain_context.wait_for_transaction(result.tx_hash):
                    return False
        else:
            logger.error(
                f"{descriptor.title}: {result.function} failed ({result.outcome.value}): {result.message}"
            )
            return False

        if marker:
            if result.outcome == Outcome.ALREADY_DONE:
                self.ledger.set(marker, ALREADY_DONE_MARKER)
            else:
                self.ledger.set(marker, result.tx_hash or DONE_MARKER)
        logger.success(f"{descriptor.title}: {result.function} complete")
        return True

    # ============================================================================
    # Call arguments
    # ============================================================================

    def _address(self, name: str) -> str:
        return self.ledger.get(name)

    def _initialize_args(self, descriptor: ContractDescriptor) -> Callable[[], List[str]]:
        def admin() -> List[str]:
            return ["--admin", self._address(ADMIN_ALIAS)]

        factories: Dict[str, Callable[[], List[str]]] = {
            ORACLE_ADAPTER.logical_name: lambda: admin()
            + ["--oracle_contract", MOCK_BLEND_POOL_ADDRESS],
            BLEND_ADAPTER.logical_name: lambda: admin()
            + [
                "--blend_pool",
                MOCK_BLEND_POOL_ADDRESS,
                "--oracle",
                self._address(ORACLE_ADAPTER.logical_name),
                "--usdc_token",
                self._address("token_USDC"),
            ],
            VANTIS_POOL.logical_name: lambda: admin()
            + [
                "--oracle",
                self._address(ORACLE_ADAPTER.logical_name),
                "--usdc_token",
                self._address("token_USDC"),
                "--blend_pool_address",
                self._address(BLEND_ADAPTER.logical_name),
                "--interest_params",
                compact_json(self.settings.interest_params),
            ],
            RISK_ENGINE.logical_name: lambda: admin()
            + [
                "--oracle",
                self._address(ORACLE_ADAPTER.logical_name),
                "--pool",
                self._address(VANTIS_POOL.logical_name),
                "--usdc_token",
                self._address("token_USDC"),
                "--blend_adapter",
                self._address(BLEND_ADAPTER.logical_name),
                "--params",
                compact_json(self.settings.risk_params),
            ],
            BORROW_LIMIT_POLICY.logical_name: admin,
        }
        return factories[descriptor.logical_name]

    def _configuration_steps(self):
        """(step name, contract, function, args factory) for every one-time configuration call"""
        settings = self.settings

        def caller() -> List[str]:
            return ["--caller", self._address(ADMIN_ALIAS)]

        def oracle_asset() -> List[str]:
            config = {
                "symbol": "XLM",
                "contract": self._address("token_XLM"),
                "decimals": 7,
                "base_ltv": settings.xlm_collateral_factor,
                "liquidation_threshold": settings.xlm_liquidation_threshold,
            }
            return caller() + ["--config", compact_json(config)]

        def blend_asset() -> List[str]:
            return caller() + ["--asset", self._address("token_XLM"), "--reserve_index", "0"]

        def pool_collateral() -> List[str]:
            config = {
                "token": self._address("token_XLM"),
                "symbol": "XLM",
                "collateral_factor": settings.xlm_collateral_factor,
                "liquidation_threshold": settings.xlm_liquidation_threshold,
                "liquidation_penalty": settings.xlm_liquidation_penalty,
                "is_active": True,
            }
            return caller() + ["--config", compact_json(config)]

        def risk_link() -> List[str]:
            return caller() + ["--risk_engine", self._address(RISK_ENGINE.logical_name)]

        return [
            ("oracle_xlm", ORACLE_ADAPTER, "add_asset", oracle_asset),
            ("blend_xlm", BLEND_ADAPTER, "register_asset", blend_asset),
            ("pool_xlm_collateral", VANTIS_POOL, "add_collateral_asset", pool_collateral),
            ("pool_risk_engine", VANTIS_POOL, "set_risk_engine", risk_link),
        ]

    def _seed_price_args(self) -> List[str]:
        return [
            "--caller",
            self._address(ADMIN_ALIAS),
            "--asset",
            "XLM",
            "--price",
            str(self.settings.test_price_xlm),
        ]
