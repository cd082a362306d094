"""Constant-product (x · y = k) pricing.

Every function here is pure and integer-only: the production pool and the
sandwich simulator call the same functions on the same inputs and must get
the same answer down to the last lamport. Amounts are u64 and intermediate
products are checked against u128, matching the on-chain program's widened
arithmetic.

Swap:
    amount_after_fee = amount_in · (10000 − fee_bps) // 10000
    fee_amount       = amount_in − amount_after_fee
    amount_out       = reserve_out · amount_after_fee // (reserve_in + amount_after_fee)

The full ``amount_in`` (fee included) is added to ``reserve_in``, so fees
accrue to liquidity providers and k never decreases across a swap.

Liquidity:
    first deposit    lp = isqrt(a · b) − MINIMUM_LIQUIDITY   (1000 LP locked forever)
    later deposits   lp = min(a · supply // reserve_a, b · supply // reserve_b)
    withdrawal       x  = lp · reserve_x // supply

Stake pool (SOL ↔ slpSOL):
    deposit          slp = sol · supply // total_sol          (1:1 when supply is 0)
    withdrawal       sol = slp · total_sol // supply
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

from securelp_core.errors import InsufficientLiquidity, MathOverflow
from securelp_core.models.trade import SwapDirection


# ── Constants ────────────────────────────────────────────────────────

U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1
BPS_DENOMINATOR = 10_000
MINIMUM_LIQUIDITY = 1_000       # LP tokens locked on first deposit
DEFAULT_FEE_BPS = 30            # 0.3%
MAX_FEE_BPS = 1_000             # 10%, pool admin limit
PRICE_SCALE = 1_000_000_000     # Fixed-point scale for prices and exchange rates
RESERVE_RATIO_BPS = 1_000       # Stake pool keeps 10% of deposits liquid


def _u64(value: int, what: str) -> int:
    if value < 0 or value > U64_MAX:
        msg = f"{what} out of u64 range: {value}"
        raise MathOverflow(msg)
    return value


def _u128(value: int, what: str) -> int:
    if value > U128_MAX:
        msg = f"{what} overflows u128"
        raise MathOverflow(msg)
    return value


@dataclass(frozen=True)
class PoolState:
    """Snapshot of an AMM pool. Immutable; operations return a new state."""

    reserve_a: int
    reserve_b: int
    fee_bps: int = DEFAULT_FEE_BPS
    lp_supply: int = 0

    def __post_init__(self) -> None:
        _u64(self.reserve_a, "reserve_a")
        _u64(self.reserve_b, "reserve_b")
        _u64(self.lp_supply, "lp_supply")
        if not 0 <= self.fee_bps <= BPS_DENOMINATOR:
            msg = f"fee_bps must be in [0, {BPS_DENOMINATOR}], got {self.fee_bps}"
            raise ValueError(msg)

    def reserves(self, direction: SwapDirection) -> tuple[int, int]:
        """Return (reserve_in, reserve_out) for a swap in ``direction``."""
        if direction is SwapDirection.A_TO_B:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    def clone(self) -> PoolState:
        return replace(self)

    @property
    def k(self) -> int:
        return self.reserve_a * self.reserve_b

    @property
    def is_live(self) -> bool:
        return self.reserve_a > 0 and self.reserve_b > 0

    def price_a_in_b(self) -> float:
        """Units of B per unit of A (0.0 for an empty pool)."""
        if self.reserve_a == 0:
            return 0.0
        return self.reserve_b / self.reserve_a


@dataclass(frozen=True)
class SwapQuote:
    amount_out: int
    fee_amount: int
    price_impact_bps: int = 0


@dataclass(frozen=True)
class LiquidityQuote:
    """Amounts moved by a liquidity operation and the resulting pool."""

    amount_a: int
    amount_b: int
    lp_amount: int
    pool: PoolState


# ── Swaps ────────────────────────────────────────────────────────────

def apply_fee(amount_in: int, fee_bps: int) -> tuple[int, int]:
    """Split amount_in into (amount_after_fee, fee_amount)."""
    if not 0 <= fee_bps <= BPS_DENOMINATOR:
        msg = f"fee_bps must be in [0, {BPS_DENOMINATOR}], got {fee_bps}"
        raise ValueError(msg)
    after_fee = _u128(amount_in * (BPS_DENOMINATOR - fee_bps), "fee product") // BPS_DENOMINATOR
    return after_fee, amount_in - after_fee


def swap_output(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int,
) -> SwapQuote:
    """Output of swapping ``amount_in`` against the given reserves.

    Raises InsufficientLiquidity for an empty reserve and MathOverflow when
    an input or intermediate leaves the integer domain.
    """
    _u64(amount_in, "amount_in")
    _u64(reserve_in, "reserve_in")
    _u64(reserve_out, "reserve_out")
    if reserve_in == 0 or reserve_out == 0:
        msg = "Pool has an empty reserve"
        raise InsufficientLiquidity(msg)

    after_fee, fee_amount = apply_fee(amount_in, fee_bps)
    numerator = _u128(reserve_out * after_fee, "swap numerator")
    denominator = reserve_in + after_fee
    amount_out = numerator // denominator

    # Output at the spot price, ignoring curvature
    ideal = numerator // reserve_in
    impact = (ideal - amount_out) * BPS_DENOMINATOR // ideal if ideal > 0 else 0
    return SwapQuote(amount_out=amount_out, fee_amount=fee_amount, price_impact_bps=impact)


def apply_swap(
    pool: PoolState,
    amount_in: int,
    direction: SwapDirection,
) -> tuple[PoolState, SwapQuote]:
    """Execute a swap against ``pool`` and return (new_pool, quote).

    ``pool`` is never modified. Both the production pool and the sandwich
    calculator advance reserves through this function.
    """
    if amount_in <= 0:
        msg = "Swap amount must be positive"
        raise InsufficientLiquidity(msg)
    reserve_in, reserve_out = pool.reserves(direction)
    quote = swap_output(amount_in, reserve_in, reserve_out, pool.fee_bps)
    if quote.amount_out == 0:
        msg = f"Swap of {amount_in} yields zero output"
        raise InsufficientLiquidity(msg)

    new_in = _u64(reserve_in + amount_in, "reserve_in after swap")
    new_out = reserve_out - quote.amount_out
    if direction is SwapDirection.A_TO_B:
        new_pool = replace(pool, reserve_a=new_in, reserve_b=new_out)
    else:
        new_pool = replace(pool, reserve_a=new_out, reserve_b=new_in)
    return new_pool, quote


def min_output_for_slippage(expected_out: int, slippage_bps: int) -> int:
    """Minimum acceptable output for a given tolerance."""
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        msg = f"slippage_bps must be in [0, {BPS_DENOMINATOR}], got {slippage_bps}"
        raise ValueError(msg)
    return expected_out - expected_out * slippage_bps // BPS_DENOMINATOR


def price_a_in_b_scaled(pool: PoolState) -> int:
    """Price of A in B scaled by PRICE_SCALE."""
    if pool.reserve_a == 0:
        return 0
    return pool.reserve_b * PRICE_SCALE // pool.reserve_a


# ── Liquidity ────────────────────────────────────────────────────────

def integer_sqrt(n: int) -> int:
    if n < 0:
        msg = "integer_sqrt of a negative number"
        raise ValueError(msg)
    return math.isqrt(n)


def deposit_liquidity(pool: PoolState, amount_a: int, amount_b: int) -> LiquidityQuote:
    """LP tokens minted for depositing (amount_a, amount_b).

    The first deposit fixes the exchange rate and locks MINIMUM_LIQUIDITY;
    later deposits mint against the scarcer side, so any excess on the other
    side is donated to the pool.
    """
    _u64(amount_a, "amount_a")
    _u64(amount_b, "amount_b")
    if amount_a == 0 or amount_b == 0:
        msg = "Both sides of a deposit must be positive"
        raise InsufficientLiquidity(msg)

    if pool.lp_supply == 0:
        root = integer_sqrt(_u128(amount_a * amount_b, "deposit product"))
        if root <= MINIMUM_LIQUIDITY:
            msg = f"Initial deposit too small: sqrt(a*b)={root} <= {MINIMUM_LIQUIDITY}"
            raise InsufficientLiquidity(msg)
        lp_amount = root - MINIMUM_LIQUIDITY
        new_supply = root
    else:
        if pool.reserve_a == 0 or pool.reserve_b == 0:
            msg = "Pool has an empty reserve"
            raise InsufficientLiquidity(msg)
        lp_amount = min(
            _u128(amount_a * pool.lp_supply, "lp product a") // pool.reserve_a,
            _u128(amount_b * pool.lp_supply, "lp product b") // pool.reserve_b,
        )
        if lp_amount == 0:
            msg = "Deposit too small to mint LP tokens"
            raise InsufficientLiquidity(msg)
        new_supply = pool.lp_supply + lp_amount

    new_pool = PoolState(
        reserve_a=_u64(pool.reserve_a + amount_a, "reserve_a after deposit"),
        reserve_b=_u64(pool.reserve_b + amount_b, "reserve_b after deposit"),
        fee_bps=pool.fee_bps,
        lp_supply=_u64(new_supply, "lp_supply after deposit"),
    )
    return LiquidityQuote(amount_a=amount_a, amount_b=amount_b, lp_amount=lp_amount, pool=new_pool)


def withdraw_liquidity(pool: PoolState, lp_amount: int) -> LiquidityQuote:
    """Reserves returned for burning ``lp_amount``. Never empties a reserve."""
    if lp_amount <= 0:
        msg = "LP amount must be positive"
        raise InsufficientLiquidity(msg)
    if lp_amount > pool.lp_supply:
        msg = f"LP amount {lp_amount} exceeds supply {pool.lp_supply}"
        raise InsufficientLiquidity(msg)

    amount_a = _u128(lp_amount * pool.reserve_a, "withdraw product a") // pool.lp_supply
    amount_b = _u128(lp_amount * pool.reserve_b, "withdraw product b") // pool.lp_supply
    if amount_a >= pool.reserve_a or amount_b >= pool.reserve_b:
        msg = "Withdrawal would empty a reserve"
        raise InsufficientLiquidity(msg)

    new_pool = replace(
        pool,
        reserve_a=pool.reserve_a - amount_a,
        reserve_b=pool.reserve_b - amount_b,
        lp_supply=pool.lp_supply - lp_amount,
    )
    return LiquidityQuote(amount_a=amount_a, amount_b=amount_b, lp_amount=lp_amount, pool=new_pool)


# ── Stake pool pricing ───────────────────────────────────────────────

def exchange_rate(total_sol: int, slp_supply: int) -> int:
    """Lamports per slpSOL, scaled by PRICE_SCALE. 1:1 for an empty pool."""
    if slp_supply == 0:
        return PRICE_SCALE
    return _u128(total_sol * PRICE_SCALE, "exchange rate") // slp_supply


def slp_for_deposit(sol_lamports: int, total_sol: int, slp_supply: int) -> int:
    _u64(sol_lamports, "sol_lamports")
    if slp_supply == 0:
        return sol_lamports
    if total_sol == 0:
        msg = "Stake pool has supply but no backing SOL"
        raise InsufficientLiquidity(msg)
    return _u64(
        _u128(sol_lamports * slp_supply, "deposit product") // total_sol,
        "slp minted",
    )


def sol_for_withdrawal(slp_amount: int, total_sol: int, slp_supply: int) -> int:
    _u64(slp_amount, "slp_amount")
    if slp_supply == 0:
        return 0
    return _u64(
        _u128(slp_amount * total_sol, "withdraw product") // slp_supply,
        "sol returned",
    )


def reserve_portion(deposit: int, reserve_ratio_bps: int = RESERVE_RATIO_BPS) -> int:
    """Share of a stake deposit kept liquid for instant withdrawals."""
    return deposit * reserve_ratio_bps // BPS_DENOMINATOR
