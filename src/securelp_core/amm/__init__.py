"""Constant-product AMM math and the pools that execute against it."""

from securelp_core.amm.pool import AmmPool, ExecutionTarget, direction_for_intent
from securelp_core.amm.stake_pool import MIN_DEPOSIT_LAMPORTS, StakePool
from securelp_core.amm.swap_math import (
    DEFAULT_FEE_BPS,
    MINIMUM_LIQUIDITY,
    LiquidityQuote,
    PoolState,
    SwapQuote,
    apply_swap,
    deposit_liquidity,
    integer_sqrt,
    min_output_for_slippage,
    swap_output,
    withdraw_liquidity,
)

__all__ = [
    "AmmPool",
    "DEFAULT_FEE_BPS",
    "ExecutionTarget",
    "LiquidityQuote",
    "MINIMUM_LIQUIDITY",
    "MIN_DEPOSIT_LAMPORTS",
    "PoolState",
    "StakePool",
    "SwapQuote",
    "apply_swap",
    "deposit_liquidity",
    "direction_for_intent",
    "integer_sqrt",
    "min_output_for_slippage",
    "swap_output",
    "withdraw_liquidity",
]
