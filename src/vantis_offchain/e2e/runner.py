"""
End-to-End Suite Runner

Prepares a test user against the recorded deployment, runs the selected suites
fail-open and prints the pass/fail/skip summary.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from vantis_offchain.accounts import Account, AccountProvisioner
from vantis_offchain.config import Settings
from vantis_offchain.console import get_logger
from vantis_offchain.e2e.context import SkipCheck, TestContext
from vantis_offchain.e2e.suites import SUITE_ORDER, SUITES, Check
from vantis_offchain.exceptions import SetupError
from vantis_offchain.invoker import ContractInvoker
from vantis_offchain.ledger import DeploymentLedger
from vantis_offchain.menu.formatter import Colors, MenuFormatter


logger = get_logger(__name__)

REQUIRED_CONTRACTS = ("oracle_adapter", "vantis_pool")


@dataclass
class TestOutcome:
    """Result of one named check"""

    __test__ = False

    test_name: str
    passed: bool
    skipped: bool = False
    warnings: List[str] = field(default_factory=list)


@dataclass
class RunCounts:
    passed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def add(self, outcome: TestOutcome) -> None:
        if outcome.skipped:
            self.skipped += 1
        elif outcome.passed:
            self.passed += 1
        else:
            self.failed += 1


class SuiteRunner:
    """Runs named e2e suites against the contracts recorded in the ledger"""

    def __init__(
        self,
        settings: Settings,
        ledger: DeploymentLedger,
        provisioner: AccountProvisioner,
        invoker: ContractInvoker,
        formatter: Optional[MenuFormatter] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize suite runner

        Args:
            settings: Harness settings
            ledger: Deployment ledger holding contract addresses
            provisioner: Account provisioner used for the test user
            invoker: Contract invoker
            formatter: Console formatter for headers and the summary
            clock: Time source for the test user alias
        """
        self.settings = settings
        self.ledger = ledger
        self.provisioner = provisioner
        self.invoker = invoker
        self.formatter = formatter or MenuFormatter()
        self.clock = clock
        self.counts = RunCounts()
        self.outcomes: List[TestOutcome] = []
        self.context: Optional[TestContext] = None

    def setup(self) -> TestContext:
        """
        Load the deployment and create a funded test user

        Raises:
            SetupError: If the ledger is missing or lacks required contracts
        """
        logger.step("Setting up E2E tests...")
        if not self.ledger.exists():
            raise SetupError("Deployment file not found. Run `vantis deploy` first.")

        addresses = self.ledger.entries()
        missing = [name for name in REQUIRED_CONTRACTS if not addresses.get(name)]
        if missing:
            raise SetupError(
                f"Contract addresses not found ({', '.join(missing)}). Run `vantis deploy` first."
            )

        admin: Union[Account, str] = self.provisioner.load("admin") or "admin"
        self.invoker.default_source = admin

        logger.info("Creating test user account...")
        test_user = self.provisioner.provision(f"test_user_{int(self.clock())}")
        self.ledger.set("test_user", test_user.public_key)
        addresses["test_user"] = test_user.public_key

        logger.success("Test setup complete")
        logger.info(f"Test user: {test_user.public_key}")
        self.context = TestContext(
            settings=self.settings,
            invoker=self.invoker,
            addresses=addresses,
            admin=admin,
            test_user=test_user,
        )
        return self.context

    def run_test(self, name: str, check: Check) -> TestOutcome:
        """
        Run one check; exceptions fail the check, SkipCheck skips it

        Args:
            name: Display name
            check: Check function

        Returns:
            TestOutcome, also added to the run counters
        """
        ctx = self.context
        ctx.warnings = []
        self.formatter.print_test_header(name)

        skip_reason = ""
        try:
            outcome = TestOutcome(name, passed=bool(check(ctx)))
        except SkipCheck as e:
            skip_reason = str(e)
            outcome = TestOutcome(name, passed=False, skipped=True)
        except Exception as e:
            logger.error(f"{name} raised {type(e).__name__}: {e}")
            outcome = TestOutcome(name, passed=False)

        outcome.warnings = list(ctx.warnings)
        if outcome.skipped:
            logger.warning(f"SKIPPED: {name} ({skip_reason})")
        elif outcome.passed:
            caveat = f" ({len(outcome.warnings)} warning(s))" if outcome.warnings else ""
            logger.success(f"PASSED: {name}{caveat}")
        else:
            logger.error(f"FAILED: {name}")

        self.counts.add(outcome)
        self.outcomes.append(outcome)
        return outcome

    def run_suite(self, name: str) -> RunCounts:
        """
        Run a suite by name ("all" runs every suite in order)

        Args:
            name: Suite name

        Returns:
            Counts for this suite only

        Raises:
            ValueError: If the suite name is unknown
        """
        if name == "all":
            total = RunCounts()
            for suite in SUITE_ORDER:
                counts = self.run_suite(suite)
                total.passed += counts.passed
                total.failed += counts.failed
                total.skipped += counts.skipped
            return total

        if name not in SUITES:
            raise ValueError(f"Unknown test suite: {name}")

        if self.context is None:
            self.setup()

        logger.step(f"Running {name} test suite...")
        counts = RunCounts()
        for test_name, check in SUITES[name]:
            counts.add(self.run_test(test_name, check))
        return counts

    def print_summary(self) -> int:
        """Print the run counters and return the process exit code"""
        self.formatter.print_header("Test Summary")
        counts = self.counts
        self.formatter.print_field("Passed", f" {counts.passed}", color=Colors.OKGREEN)
        self.formatter.print_field("Failed", f" {counts.failed}", color=Colors.FAIL)
        self.formatter.print_field("Skipped", str(counts.skipped), color=Colors.WARNING)
        self.formatter.print_field("Total", f"  {counts.total}", color=Colors.CYAN)
        print("")

        if counts.failed == 0:
            logger.success("All tests passed!")
        else:
            logger.error(f"{counts.failed} test(s) failed")
        return counts.exit_code

    def run(self, suite: str = "all", cleanup: bool = False) -> int:
        """
        Banner, setup, suite and summary

        Args:
            suite: Suite name
            cleanup: Remove the test user credential files after the summary

        Returns:
            Process exit code
        """
        self.formatter.print_header("Vantis Protocol - E2E Test Suite")
        self.setup()
        self.run_suite(suite)
        exit_code = self.print_summary()
        if cleanup:
            logger.info("Cleaning up test accounts...")
            self.provisioner.cleanup_test_accounts()
        return exit_code
