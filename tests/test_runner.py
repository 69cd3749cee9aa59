"""
Tests for the end-to-end suite runner
"""

import json

import pytest

from vantis_offchain.e2e import runner as runner_module
from vantis_offchain.e2e.context import SkipCheck
from vantis_offchain.e2e.runner import RunCounts, SuiteRunner
from vantis_offchain.e2e.suites import SUITE_ORDER, SUITES
from vantis_offchain.exceptions import SetupError

from .mocks import contract_id_for


ADMIN = "G" + "A" * 55


@pytest.fixture
def deployed(ledger):
    """Ledger as left behind by a successful deployment"""
    ledger.set("admin", ADMIN)
    ledger.set("token_XLM", "CDLZFC3SYJYDZT7K67VZ75HPJVIEUVNIXF47ZG2FB2RMQQVU2HHGCYSC")
    for name in ("oracle_adapter", "blend_adapter", "vantis_pool", "risk_engine"):
        ledger.set(name, contract_id_for(f"{name}.wasm"))
    return ledger


@pytest.fixture
def runner(settings, ledger, provisioner, invoker, formatter):
    return SuiteRunner(settings, ledger, provisioner, invoker, formatter=formatter, clock=lambda: 1700000000)


class TestSetup:
    def test_missing_ledger(self, runner):
        with pytest.raises(SetupError, match="Deployment file not found"):
            runner.setup()

    def test_missing_pool_address(self, runner, ledger):
        ledger.set("oracle_adapter", contract_id_for("oracle_adapter.wasm"))
        with pytest.raises(SetupError, match="vantis_pool"):
            runner.setup()

    def test_creates_and_records_test_user(self, runner, deployed, network):
        ctx = runner.setup()
        assert ctx.test_user.alias == "test_user_1700000000"
        assert deployed.get("test_user") == ctx.test_user.public_key
        assert network.funded == [ctx.test_user.public_key]
        assert ctx.admin_address == ADMIN


class TestFailOpen:
    """Every check of a suite runs regardless of earlier failures"""

    def test_two_of_five_failing(self, runner, deployed, monkeypatch):
        ran = []

        def passing(ctx):
            ran.append("pass")
            return True

        def failing(ctx):
            ran.append("fail")
            return False

        def raising(ctx):
            ran.append("raise")
            raise RuntimeError("boom")

        suite = [
            ("one", passing),
            ("two", failing),
            ("three", passing),
            ("four", raising),
            ("five", passing),
        ]
        monkeypatch.setitem(runner_module.SUITES, "synthetic", suite)

        counts = runner.run_suite("synthetic")

        assert ran == ["pass", "fail", "pass", "raise", "pass"]
        assert counts == RunCounts(passed=3, failed=2, skipped=0)
        assert runner.print_summary() == 1

    def test_skip_check_counts_as_skipped(self, runner, deployed, monkeypatch):
        def skipped(ctx):
            raise SkipCheck("nothing to do")

        monkeypatch.setitem(runner_module.SUITES, "synthetic", [("skip", skipped)])
        counts = runner.run_suite("synthetic")
        assert counts == RunCounts(passed=0, failed=0, skipped=1)
        assert runner.print_summary() == 0

    def test_skipped_check_is_not_reported_as_failed(self, runner, deployed, monkeypatch, caplog):
        def skipped(ctx):
            raise SkipCheck("nothing to do")

        monkeypatch.setitem(runner_module.SUITES, "synthetic", [("skip", skipped)])
        with caplog.at_level("INFO", logger="vantis_offchain"):
            runner.run_suite("synthetic")

        assert "SKIPPED: skip (nothing to do)" in caplog.text
        assert "FAILED: skip" not in caplog.text

    def test_unknown_suite(self, runner):
        with pytest.raises(ValueError):
            runner.run_suite("nope")


class TestSuites:
    def test_oracle_suite_passes_against_healthy_contracts(self, runner, deployed, stellar):
        counts = runner.run_suite("oracle")
        assert counts == RunCounts(passed=5)
        assert stellar.functions(contract_id_for("oracle_adapter.wasm")) == [
            "get_assets",
            "update_price",
            "get_price",
            "get_price",
            "get_volatility",
            "calculate_safe_borrow",
        ]

    def test_precondition_errors_are_warnings(self, runner, deployed, stellar):
        """Fresh-deployment business errors pass with a caveat"""
        stellar.script("get_volatility", "error: HostError: Error(Contract, #6)", exit_status=1)
        stellar.script("calculate_safe_borrow", "error: HostError: Error(Contract, #3)", exit_status=1)

        counts = runner.run_suite("oracle")

        assert counts.failed == 0
        warned = {o.test_name: o.warnings for o in runner.outcomes}
        assert "insufficient_history" in warned["Oracle - Get Volatility"][0]
        assert "stale_price" in warned["Oracle - Calculate Safe Borrow"][0]

    def test_required_read_failure_fails(self, runner, deployed, stellar):
        stellar.script("get_assets", "error: transaction simulation failed", exit_status=1)
        counts = runner.run_suite("oracle")
        assert counts == RunCounts(passed=4, failed=1)
        assert runner.print_summary() == 1

    def test_all_runs_every_suite_in_order(self, runner, deployed, stellar):
        stellar.read_output = '"0"'
        counts = runner.run_suite("all")

        expected = sum(len(SUITES[name]) for name in SUITE_ORDER)
        assert counts.total == expected
        assert runner.counts.total == expected
        assert counts.failed == 0
        assert [o.test_name for o in runner.outcomes][0] == "Oracle - Get Assets"
        assert runner.outcomes[-1].test_name == "Payment - Withdraw Collateral"

    def test_admin_mismatch_is_a_warning(self, runner, deployed, stellar):
        stellar.script("admin", '"GSOMEONEELSE"')
        counts = runner.run_suite("pool")
        assert counts.failed == 0
        assert runner.outcomes[0].warnings


class TestPaymentFlow:
    """deposit -> liquidity -> borrow -> position -> repay -> withdraw"""

    def test_full_flow(self, runner, deployed, stellar, settings):
        stellar.script("get_reserves", f'"{settings.test_borrow_amount * 10}"')

        counts = runner.run_suite("payment")

        assert counts == RunCounts(passed=6)
        user = runner.context.test_user
        pool = contract_id_for("vantis_pool.wasm")
        assert stellar.functions(pool) == [
            "deposit",
            "get_reserves",
            "borrow",
            "get_borrow",
            "get_health_factor",
            "repay",
            "withdraw",
        ]
        # User-signed steps carry the test user's secret
        for args, env in stellar.calls:
            if args[:2] == ["contract", "invoke"] and args[args.index("--") + 1] in ("deposit", "borrow"):
                assert env == {"STELLAR_ACCOUNT": user.secret_key}

    def test_no_liquidity_skips_borrow_and_repay(self, runner, deployed, stellar):
        stellar.script("get_reserves", '"0"')

        counts = runner.run_suite("payment")

        assert counts == RunCounts(passed=4, skipped=2)
        assert "borrow" not in stellar.functions()
        skipped = [o.test_name for o in runner.outcomes if o.skipped]
        assert skipped == ["Payment - Borrow", "Payment - Repay"]

    def test_pool_collateral_error_fails_borrow(self, runner, deployed, stellar, settings):
        """Pool error #3 is insufficient collateral, not a stale oracle price"""
        stellar.script("get_reserves", f'"{settings.test_borrow_amount * 10}"')
        stellar.script("borrow", "error: HostError: Error(Contract, #3)", exit_status=1)

        counts = runner.run_suite("payment")

        borrow = next(o for o in runner.outcomes if o.test_name == "Payment - Borrow")
        assert not borrow.passed
        assert borrow.warnings == []
        assert counts == RunCounts(passed=4, failed=1, skipped=1)
        assert runner.print_summary() == 1

    def test_failed_deposit_skips_dependent_steps(self, runner, deployed, stellar):
        stellar.script("deposit", "error: HostError: Error(Contract, #10)", exit_status=1)

        counts = runner.run_suite("payment")

        assert counts == RunCounts(passed=0, failed=1, skipped=5)

    def test_blocked_withdrawal_is_a_warning(self, runner, deployed, stellar, settings):
        stellar.script("get_reserves", f'"{settings.test_borrow_amount}"')
        stellar.script("repay", "error: HostError: Error(Contract, #12)", exit_status=1)
        stellar.script("withdraw", "error: HostError: Error(Contract, #11)", exit_status=1)

        counts = runner.run_suite("payment")

        assert counts == RunCounts(passed=5, failed=1)
        withdraw = runner.outcomes[-1]
        assert withdraw.passed
        assert "Withdrawal not possible" in withdraw.warnings[0]


def test_run_prints_summary_and_returns_exit_code(runner, deployed, capsys):
    assert runner.run("risk") == 0
    out = capsys.readouterr().out
    assert "Vantis Protocol - E2E Test Suite" in out
    assert "TEST: Risk - Admin" in out
    assert "Test Summary" in out


def test_run_with_cleanup_removes_test_user(runner, deployed, provisioner):
    admin = provisioner.credentials_path("admin")
    admin.write_text(json.dumps({"name": "admin", "public_key": ADMIN, "secret_key": "SADMIN"}))

    assert runner.run("oracle", cleanup=True) == 0

    assert provisioner.load(runner.context.test_user.alias) is None
    assert provisioner.load("admin") is not None
