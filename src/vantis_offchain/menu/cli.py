"""
Vantis Harness CLI

Command line entry point: deploy, e2e-tests, invoke, build and status.
"""

import argparse
import sys
from dataclasses import dataclass
from typing import List, Optional, Union

from vantis_offchain.accounts import Account, AccountProvisioner
from vantis_offchain.builder import ContractBuilder
from vantis_offchain.chain_context import StellarChainContext
from vantis_offchain.config import Settings, load_settings
from vantis_offchain.console import get_logger, setup_logging
from vantis_offchain.contracts import get_descriptor, list_contract_names
from vantis_offchain.e2e.runner import SuiteRunner
from vantis_offchain.e2e.suites import SUITE_CHOICES
from vantis_offchain.exceptions import VantisError
from vantis_offchain.invoker import ContractInvoker
from vantis_offchain.ledger import DeploymentLedger
from vantis_offchain.menu.formatter import MenuFormatter
from vantis_offchain.orchestrator import DeploymentOrchestrator
from vantis_offchain.stellar_cli import StellarCLI, check_command
from vantis_offchain.status import show_status


logger = get_logger(__name__)


@dataclass
class Harness:
    """Components wired from one Settings object"""

    settings: Settings
    stellar: StellarCLI
    chain_context: StellarChainContext
    ledger: DeploymentLedger
    provisioner: AccountProvisioner
    invoker: ContractInvoker
    builder: ContractBuilder
    formatter: MenuFormatter

    @classmethod
    def from_settings(
        cls, settings: Settings, allow_regeneration: bool = False, verbose: bool = False
    ) -> "Harness":
        stellar = StellarCLI(settings.stellar_bin)
        chain_context = StellarChainContext(settings)
        provisioner = AccountProvisioner(
            settings.deployments_path,
            chain_context,
            stellar=stellar,
            allow_regeneration=allow_regeneration or settings.allow_key_regeneration,
        )
        return cls(
            settings=settings,
            stellar=stellar,
            chain_context=chain_context,
            ledger=DeploymentLedger(settings.deployment_file),
            provisioner=provisioner,
            invoker=ContractInvoker(settings, stellar, verbose=verbose or settings.verbose),
            builder=ContractBuilder(settings, stellar),
            formatter=MenuFormatter(use_color=sys.stdout.isatty()),
        )

    def admin_source(self) -> Union[Account, str]:
        """Admin credentials from the deployments directory, else the keystore alias"""
        return self.provisioner.load("admin") or "admin"

    def close(self) -> None:
        self.chain_context.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vantis", description="Deploy and verify the Vantis protocol contracts on Stellar"
    )
    parser.add_argument("--env-file", help="Load settings from this .env file")
    parser.add_argument("--network", help="Target network (overrides NETWORK)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy = subparsers.add_parser("deploy", help="Deploy, initialize and configure all contracts")
    deploy.add_argument("--reset", action="store_true", help="Reset deployment and redeploy all contracts")
    deploy.add_argument(
        "--keep-admin", action="store_true", help="With --reset, keep the existing admin identity"
    )
    deploy.add_argument("--build", dest="build", action="store_true", default=True, help="Build first (default)")
    deploy.add_argument("--no-build", dest="build", action="store_false", help="Skip building contracts")
    deploy.add_argument(
        "--regenerate-keys",
        action="store_true",
        help="Allow minting a new admin identity when its signing key is lost",
    )

    e2e = subparsers.add_parser("e2e-tests", help="Run end-to-end test suites")
    e2e.add_argument("--suite", default="all", choices=SUITE_CHOICES, help="Test suite to run")
    e2e.add_argument("--verbose", action="store_true", help="Log every command and raw response")
    e2e.add_argument(
        "--cleanup", action="store_true", help="Delete test user credential files after the run"
    )

    invoke = subparsers.add_parser("invoke", help="Invoke a function on a deployed contract")
    invoke.add_argument("contract", help=f"Contract name ({', '.join(list_contract_names())})")
    invoke.add_argument("function", help="Contract function")
    invoke.add_argument("args", nargs=argparse.REMAINDER, help="Function arguments, e.g. --user G...")
    invoke.add_argument("--read-only", action="store_true", help="Simulate without submitting")

    build = subparsers.add_parser("build", help="Build contract wasm files")
    mode = build.add_mutually_exclusive_group()
    mode.add_argument("--release", dest="mode", action="store_const", const="release", help="Optimized build")
    mode.add_argument("--debug", dest="mode", action="store_const", const="debug", help="Debug build")
    build.add_argument("--contract", help="Build only this contract")
    build.add_argument("--clean", action="store_true", help="Run cargo clean first")
    build.set_defaults(mode="release")

    subparsers.add_parser("status", help="Show ledger entries and probe contracts")
    return parser


# ============================================================================
# Commands
# ============================================================================


def cmd_deploy(harness: Harness, args: argparse.Namespace) -> int:
    orchestrator = DeploymentOrchestrator(
        harness.settings,
        harness.ledger,
        harness.provisioner,
        harness.invoker,
        harness.builder,
        harness.chain_context,
        formatter=harness.formatter,
    )
    report = orchestrator.run(build=args.build, reset=args.reset, keep_admin=args.keep_admin)
    return report.exit_code


def cmd_e2e_tests(harness: Harness, args: argparse.Namespace) -> int:
    check_command(harness.settings.stellar_bin)
    runner = SuiteRunner(
        harness.settings, harness.ledger, harness.provisioner, harness.invoker, formatter=harness.formatter
    )
    return runner.run(args.suite, cleanup=args.cleanup)


def cmd_invoke(harness: Harness, args: argparse.Namespace) -> int:
    function_args = list(args.args)
    read_only = args.read_only
    if "--read-only" in function_args:
        function_args.remove("--read-only")
        read_only = True

    descriptor = get_descriptor(args.contract)
    name = descriptor.logical_name if descriptor else args.contract
    address = harness.ledger.get(name)
    if not address:
        logger.error(f"Contract {args.contract} not found in {harness.ledger.path}")
        return 1

    admin = harness.admin_source()
    logger.info(f"Invoking {name}.{args.function} at {address}")
    if read_only:
        result = harness.invoker.read(address, args.function, function_args, source=admin)
    else:
        result = harness.invoker.invoke(address, args.function, admin, function_args)

    if result.raw_output:
        print(result.raw_output)
    if result.ok:
        logger.success(f"{args.function} complete ({result.outcome.value})")
        if result.tx_hash:
            logger.info(harness.chain_context.get_explorer_url(result.tx_hash))
        return 0
    logger.error(f"{args.function} failed ({result.outcome.value})")
    return 1


def cmd_build(harness: Harness, args: argparse.Namespace) -> int:
    check_command(harness.settings.stellar_bin)
    built = harness.builder.build(mode=args.mode, contract=args.contract, clean=args.clean)
    return 0 if built else 1


def cmd_status(harness: Harness, args: argparse.Namespace) -> int:
    harness.invoker.default_source = harness.admin_source()
    return show_status(harness.settings, harness.ledger, harness.invoker, formatter=harness.formatter)


COMMANDS = {
    "deploy": cmd_deploy,
    "e2e-tests": cmd_e2e_tests,
    "invoke": cmd_invoke,
    "build": cmd_build,
    "status": cmd_status,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the CLI"""
    args = build_parser().parse_args(argv)

    overrides = {"network": args.network} if args.network else {}
    settings = load_settings(args.env_file, **overrides)
    verbose = getattr(args, "verbose", False)
    setup_logging(verbose=verbose or settings.verbose)

    harness = Harness.from_settings(
        settings,
        allow_regeneration=getattr(args, "regenerate_keys", False),
        verbose=verbose,
    )
    try:
        return COMMANDS[args.command](harness, args)
    except VantisError as e:
        logger.error(str(e))
        return 1
    finally:
        harness.close()


if __name__ == "__main__":
    sys.exit(main())
