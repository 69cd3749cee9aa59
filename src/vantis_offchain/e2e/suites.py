"""
End-to-end test suites

Each check takes the shared TestContext and returns True for a pass.
A check raises SkipCheck when an earlier step did not leave what it needs.
"""

from typing import Callable, Dict, List, Tuple

from vantis_offchain.console import get_logger
from vantis_offchain.e2e.context import SkipCheck, TestContext


logger = get_logger(__name__)

Check = Callable[[TestContext], bool]

ORACLE = "oracle_adapter"
BLEND = "blend_adapter"
POOL = "vantis_pool"
RISK = "risk_engine"

# 14-decimal prices and values used by the checks
UPDATED_XLM_PRICE = 12_000_000_000_000
FEED_XLM_PRICE = 15_000_000_000_000
SAFE_BORROW_COLLATERAL_VALUE = 100_000_000_000_000_000
SAFE_BORROW_BASE_LTV = 7500


def _user(ctx: TestContext) -> List[str]:
    return ["--user", ctx.test_user.public_key]


def _check_admin(ctx: TestContext, contract: str) -> bool:
    result = ctx.read(contract, "admin")
    if result.ok and ctx.admin_address and ctx.admin_address not in result.raw_output:
        ctx.warn(f"admin returned {result.payload}, expected {ctx.admin_address}")
    return ctx.accept(result)


# ============================================================================
# Oracle
# ============================================================================


def oracle_get_assets(ctx: TestContext) -> bool:
    logger.info("Testing Oracle.get_assets()...")
    return ctx.accept(ctx.read(ORACLE, "get_assets"))


def oracle_update_price(ctx: TestContext) -> bool:
    logger.info("Testing Oracle.update_price()...")
    price = str(UPDATED_XLM_PRICE)
    update = ctx.invoke(
        ORACLE, "update_price", ctx.admin, ["--caller", ctx.admin_address, "--asset", "XLM", "--price", price]
    )
    if not ctx.accept(update, required=False):
        return False

    result = ctx.read(ORACLE, "get_price", ["--asset", "XLM"])
    if result.ok and price in result.raw_output:
        logger.success("Price updated successfully")
        return True
    ctx.warn(f"Could not verify price update: {result.message}")
    return True


def oracle_get_price(ctx: TestContext) -> bool:
    logger.info("Testing Oracle.get_price()...")
    return ctx.accept(ctx.read(ORACLE, "get_price", ["--asset", "XLM"]), required=False)


def oracle_get_volatility(ctx: TestContext) -> bool:
    logger.info("Testing Oracle.get_volatility()...")
    return ctx.accept(ctx.read(ORACLE, "get_volatility", ["--asset", "XLM"]), required=False)


def oracle_calculate_safe_borrow(ctx: TestContext) -> bool:
    logger.info("Testing Oracle.calculate_safe_borrow()...")
    args = [
        "--asset",
        "XLM",
        "--collateral_value",
        str(SAFE_BORROW_COLLATERAL_VALUE),
        "--base_ltv",
        str(SAFE_BORROW_BASE_LTV),
        "--k_factor",
        str(ctx.settings.default_k_factor),
        "--time_horizon_days",
        str(ctx.settings.default_time_horizon_days),
    ]
    return ctx.accept(ctx.read(ORACLE, "calculate_safe_borrow", args), required=False)


# ============================================================================
# Blend adapter
# ============================================================================


def blend_get_pool_config(ctx: TestContext) -> bool:
    logger.info("Testing BlendAdapter.get_pool_config()...")
    return ctx.accept(ctx.read(BLEND, "get_pool_config"))


def blend_admin(ctx: TestContext) -> bool:
    logger.info("Testing BlendAdapter.admin()...")
    return _check_admin(ctx, BLEND)


def blend_get_positions(ctx: TestContext) -> bool:
    logger.info("Testing BlendAdapter.get_positions()...")
    result = ctx.read(BLEND, "get_positions", ["--_user", ctx.test_user.public_key])
    return ctx.accept(result, required=False)


def blend_get_health_factor(ctx: TestContext) -> bool:
    logger.info("Testing BlendAdapter.get_health_factor()...")
    return ctx.accept(ctx.read(BLEND, "get_health_factor", _user(ctx)), required=False)


# ============================================================================
# Pool
# ============================================================================


def pool_admin(ctx: TestContext) -> bool:
    logger.info("Testing VantisPool.admin()...")
    return _check_admin(ctx, POOL)


def _pool_read(function: str, per_user: bool = False) -> Check:
    def check(ctx: TestContext) -> bool:
        logger.info(f"Testing VantisPool.{function}()...")
        args = _user(ctx) if per_user else []
        return ctx.accept(ctx.read(POOL, function, args), required=False)

    check.__name__ = f"pool_{function}"
    return check


# ============================================================================
# Risk engine
# ============================================================================


def risk_admin(ctx: TestContext) -> bool:
    logger.info("Testing RiskEngine.admin()...")
    return _check_admin(ctx, RISK)


def risk_get_params(ctx: TestContext) -> bool:
    logger.info("Testing RiskEngine.get_params()...")
    return ctx.accept(ctx.read(RISK, "get_params"))


def risk_get_blend_adapter(ctx: TestContext) -> bool:
    logger.info("Testing RiskEngine.get_blend_adapter()...")
    return ctx.accept(ctx.read(RISK, "get_blend_adapter"), required=False)


def risk_check_position_health(ctx: TestContext) -> bool:
    logger.info("Testing RiskEngine.check_position_health()...")
    return ctx.accept(ctx.read(RISK, "check_position_health", _user(ctx)), required=False)


def risk_get_stop_loss_config(ctx: TestContext) -> bool:
    logger.info("Testing RiskEngine.get_stop_loss_config()...")
    return ctx.accept(ctx.read(RISK, "get_stop_loss_config", _user(ctx)), required=False)


def risk_is_liquidator(ctx: TestContext) -> bool:
    logger.info("Testing RiskEngine.is_liquidator()...")
    result = ctx.read(RISK, "is_liquidator", ["--address", ctx.admin_address])
    return ctx.accept(result, required=False)


def risk_calculate_safe_borrow(ctx: TestContext) -> bool:
    logger.info("Testing RiskEngine.calculate_safe_borrow()...")
    args = [
        "--asset",
        "XLM",
        "--collateral_value",
        str(SAFE_BORROW_COLLATERAL_VALUE),
        "--base_ltv",
        str(SAFE_BORROW_BASE_LTV),
    ]
    return ctx.accept(ctx.read(RISK, "calculate_safe_borrow", args), required=False)


# ============================================================================
# Integration
# ============================================================================


def integration_full_user_flow(ctx: TestContext) -> bool:
    logger.info("Testing full user flow: deposit -> borrow -> repay -> withdraw...")
    logger.info("1. Checking initial user state...")
    result = ctx.read(POOL, "get_collateral", _user(ctx))
    logger.info(f"Initial collateral: {result.message}")
    logger.info("2. Token-moving steps run in the payment suite")
    return ctx.accept(result, required=False)


def integration_oracle_price_feeds(ctx: TestContext) -> bool:
    logger.info("Testing oracle price feed integration...")
    args = ["--caller", ctx.admin_address, "--asset", "XLM", "--price", str(FEED_XLM_PRICE)]
    return ctx.accept(ctx.invoke(ORACLE, "update_price", ctx.admin, args), required=False)


def integration_risk_engine_pool(ctx: TestContext) -> bool:
    logger.info("Testing Risk Engine <-> Pool integration...")
    result = ctx.read(RISK, "check_position_health", _user(ctx))
    logger.info(f"Health factor result: {result.message}")
    return ctx.accept(result, required=False)


# ============================================================================
# Payment flow (ordered; each step needs the previous step's result)
# ============================================================================


def _parse_amount(payload: str) -> int:
    try:
        return int(payload)
    except ValueError:
        return 0


def _require(ctx: TestContext, key: str, reason: str) -> None:
    if not ctx.state.get(key):
        raise SkipCheck(reason)


def payment_deposit(ctx: TestContext) -> bool:
    amount = ctx.settings.test_deposit_amount
    logger.info(f"Depositing {amount} stroops of XLM collateral...")
    args = _user(ctx) + ["--asset", ctx.address("token_XLM"), "--amount", str(amount)]
    result = ctx.invoke(POOL, "deposit", ctx.test_user, args)
    if result.ok:
        ctx.state["deposited"] = amount
    return ctx.accept(result)


def payment_confirm_liquidity(ctx: TestContext) -> bool:
    _require(ctx, "deposited", "no collateral was deposited")
    result = ctx.read(POOL, "get_reserves")
    if not ctx.accept(result):
        return False

    reserves = _parse_amount(result.payload)
    logger.info(f"Pool reserves: {reserves}")
    if reserves >= ctx.settings.test_borrow_amount:
        ctx.state["liquidity"] = reserves
    else:
        ctx.warn(f"Pool reserves ({reserves}) cannot cover a borrow of {ctx.settings.test_borrow_amount}")
    return True


def payment_borrow(ctx: TestContext) -> bool:
    _require(ctx, "liquidity", "pool liquidity was not confirmed")
    amount = ctx.settings.test_borrow_amount
    logger.info(f"Borrowing {amount} USDC units...")
    result = ctx.invoke(POOL, "borrow", ctx.test_user, _user(ctx) + ["--amount", str(amount)])
    if result.ok:
        ctx.state["borrowed"] = amount
    return ctx.accept(result)


def payment_verify_position(ctx: TestContext) -> bool:
    _require(ctx, "deposited", "no position was opened")
    borrow = ctx.read(POOL, "get_borrow", _user(ctx))
    health = ctx.read(POOL, "get_health_factor", _user(ctx))
    logger.info(f"Borrow position: {borrow.message}")
    logger.info(f"Health factor: {health.message}")
    return ctx.accept(borrow) and ctx.accept(health, required=False)


def payment_repay(ctx: TestContext) -> bool:
    _require(ctx, "borrowed", "nothing was borrowed")
    amount = ctx.state["borrowed"]
    logger.info(f"Repaying {amount} USDC units...")
    result = ctx.invoke(POOL, "repay", ctx.test_user, _user(ctx) + ["--amount", str(amount)])
    if result.ok:
        ctx.state["borrowed"] = 0
    return ctx.accept(result)


def payment_withdraw(ctx: TestContext) -> bool:
    _require(ctx, "deposited", "no collateral to withdraw")
    amount = ctx.state["deposited"]
    logger.info(f"Withdrawing {amount} stroops of XLM collateral...")
    args = _user(ctx) + ["--asset", ctx.address("token_XLM"), "--amount", str(amount)]
    result = ctx.invoke(POOL, "withdraw", ctx.test_user, args)
    if result.ok:
        ctx.state["deposited"] = 0
        return ctx.accept(result)
    # Outstanding debt blocks withdrawal
    ctx.warn(f"Withdrawal not possible: {result.message}")
    return True


# ============================================================================
# Registry
# ============================================================================

SUITES: Dict[str, List[Tuple[str, Check]]] = {
    "oracle": [
        ("Oracle - Get Assets", oracle_get_assets),
        ("Oracle - Update Price", oracle_update_price),
        ("Oracle - Get Price", oracle_get_price),
        ("Oracle - Get Volatility", oracle_get_volatility),
        ("Oracle - Calculate Safe Borrow", oracle_calculate_safe_borrow),
    ],
    "blend": [
        ("Blend - Get Pool Config", blend_get_pool_config),
        ("Blend - Admin", blend_admin),
        ("Blend - Get Positions", blend_get_positions),
        ("Blend - Get Health Factor", blend_get_health_factor),
    ],
    "pool": [
        ("Pool - Admin", pool_admin),
        ("Pool - Get Reserves", _pool_read("get_reserves")),
        ("Pool - Get Total Borrows", _pool_read("get_total_borrows")),
        ("Pool - Get Interest Rate", _pool_read("get_interest_rate")),
        ("Pool - Get Collateral", _pool_read("get_collateral", per_user=True)),
        ("Pool - Get Borrow", _pool_read("get_borrow", per_user=True)),
        ("Pool - Get Health Factor", _pool_read("get_health_factor", per_user=True)),
    ],
    "risk": [
        ("Risk - Admin", risk_admin),
        ("Risk - Get Params", risk_get_params),
        ("Risk - Get Blend Adapter", risk_get_blend_adapter),
        ("Risk - Check Position Health", risk_check_position_health),
        ("Risk - Get Stop Loss Config", risk_get_stop_loss_config),
        ("Risk - Is Liquidator", risk_is_liquidator),
        ("Risk - Calculate Safe Borrow", risk_calculate_safe_borrow),
    ],
    "integration": [
        ("Integration - Full User Flow", integration_full_user_flow),
        ("Integration - Oracle Price Feeds", integration_oracle_price_feeds),
        ("Integration - Risk Engine <-> Pool", integration_risk_engine_pool),
    ],
    "payment": [
        ("Payment - Deposit Collateral", payment_deposit),
        ("Payment - Confirm Pool Liquidity", payment_confirm_liquidity),
        ("Payment - Borrow", payment_borrow),
        ("Payment - Verify Position", payment_verify_position),
        ("Payment - Repay", payment_repay),
        ("Payment - Withdraw Collateral", payment_withdraw),
    ],
}

SUITE_ORDER = ("oracle", "blend", "pool", "risk", "integration", "payment")
SUITE_CHOICES = SUITE_ORDER + ("all",)
