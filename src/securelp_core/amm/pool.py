"""AMM pool: the execution target behind protected and direct swaps.

Holds the current ``PoolState`` and moves trader balances for swaps and
liquidity operations. Every method validates first (pause flag, math,
slippage, balances) and mutates only after all checks pass.

Token A is the SOL side (wSOL) and token B the staked side, so a STAKE
intent swaps A→B and an UNSTAKE intent swaps B→A.
"""

from __future__ import annotations

import logging
from typing import Protocol

from securelp_core.amm.swap_math import (
    MAX_FEE_BPS,
    LiquidityQuote,
    PoolState,
    SwapQuote,
    apply_swap,
    deposit_liquidity,
    swap_output,
    withdraw_liquidity,
)
from securelp_core.errors import PoolPaused, SlippageTooHigh
from securelp_core.models.balances import BalanceTracker, Token
from securelp_core.models.commitment import IntentKind
from securelp_core.models.trade import SwapDirection

logger = logging.getLogger(__name__)


class ExecutionTarget(Protocol):
    """Anything a revealed intent can be executed against."""

    def quote(self, amount_in: int, intent: IntentKind) -> SwapQuote: ...

    def execute(
        self, owner: str, amount_in: int, min_out: int, intent: IntentKind
    ) -> SwapQuote: ...


def direction_for_intent(intent: IntentKind) -> SwapDirection:
    return SwapDirection.A_TO_B if intent is IntentKind.STAKE else SwapDirection.B_TO_A


class AmmPool:
    """Constant-product pool between TOKEN_A and TOKEN_B."""

    def __init__(
        self,
        state: PoolState,
        balances: BalanceTracker,
        address: str = "amm-pool",
    ) -> None:
        self.address = address
        self._state = state
        self._balances = balances
        self._paused = False
        self._cumulative_fee_a = 0
        self._cumulative_fee_b = 0
        self._swap_count = 0

    @property
    def state(self) -> PoolState:
        return self._state

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def cumulative_fees(self) -> tuple[int, int]:
        return self._cumulative_fee_a, self._cumulative_fee_b

    @property
    def swap_count(self) -> int:
        return self._swap_count

    @staticmethod
    def tokens(direction: SwapDirection) -> tuple[Token, Token]:
        """(token_in, token_out) for a swap direction."""
        if direction is SwapDirection.A_TO_B:
            return Token.TOKEN_A, Token.TOKEN_B
        return Token.TOKEN_B, Token.TOKEN_A

    # ── Swaps ────────────────────────────────────────────────────────

    def quote_swap(self, amount_in: int, direction: SwapDirection) -> SwapQuote:
        reserve_in, reserve_out = self._state.reserves(direction)
        return swap_output(amount_in, reserve_in, reserve_out, self._state.fee_bps)

    def swap(
        self,
        trader: str,
        amount_in: int,
        min_out: int,
        direction: SwapDirection,
    ) -> SwapQuote:
        """Swap ``amount_in`` for at least ``min_out``. All-or-nothing."""
        self._check_not_paused()
        new_state, quote = apply_swap(self._state, amount_in, direction)
        if quote.amount_out < min_out:
            msg = f"Output {quote.amount_out} below minimum {min_out}"
            raise SlippageTooHigh(msg)

        token_in, token_out = self.tokens(direction)
        self._balances.debit(trader, token_in, amount_in)
        self._balances.credit(trader, token_out, quote.amount_out)
        self._state = new_state
        if direction is SwapDirection.A_TO_B:
            self._cumulative_fee_a += quote.fee_amount
        else:
            self._cumulative_fee_b += quote.fee_amount
        self._swap_count += 1

        logger.debug(
            "swap %s %s: in=%d out=%d fee=%d",
            trader[:8], direction.value, amount_in, quote.amount_out, quote.fee_amount,
        )
        return quote

    def quote(self, amount_in: int, intent: IntentKind) -> SwapQuote:
        return self.quote_swap(amount_in, direction_for_intent(intent))

    def execute(
        self, owner: str, amount_in: int, min_out: int, intent: IntentKind
    ) -> SwapQuote:
        return self.swap(owner, amount_in, min_out, direction_for_intent(intent))

    # ── Liquidity ────────────────────────────────────────────────────

    def add_liquidity(
        self,
        provider: str,
        amount_a: int,
        amount_b: int,
        min_lp_out: int = 0,
    ) -> LiquidityQuote:
        self._check_not_paused()
        result = deposit_liquidity(self._state, amount_a, amount_b)
        if result.lp_amount < min_lp_out:
            msg = f"LP minted {result.lp_amount} below minimum {min_lp_out}"
            raise SlippageTooHigh(msg)
        self._balances.require(provider, Token.TOKEN_A, amount_a)
        self._balances.require(provider, Token.TOKEN_B, amount_b)

        self._balances.debit(provider, Token.TOKEN_A, amount_a)
        self._balances.debit(provider, Token.TOKEN_B, amount_b)
        self._balances.credit(provider, Token.LP, result.lp_amount)
        self._state = result.pool
        logger.info(
            "liquidity added by %s: a=%d b=%d lp=%d",
            provider[:8], amount_a, amount_b, result.lp_amount,
        )
        return result

    def remove_liquidity(
        self,
        provider: str,
        lp_amount: int,
        min_a_out: int = 0,
        min_b_out: int = 0,
    ) -> LiquidityQuote:
        self._check_not_paused()
        result = withdraw_liquidity(self._state, lp_amount)
        if result.amount_a < min_a_out or result.amount_b < min_b_out:
            msg = (
                f"Withdrawal ({result.amount_a}, {result.amount_b}) below "
                f"minimum ({min_a_out}, {min_b_out})"
            )
            raise SlippageTooHigh(msg)

        self._balances.debit(provider, Token.LP, lp_amount)
        self._balances.credit(provider, Token.TOKEN_A, result.amount_a)
        self._balances.credit(provider, Token.TOKEN_B, result.amount_b)
        self._state = result.pool
        logger.info(
            "liquidity removed by %s: lp=%d a=%d b=%d",
            provider[:8], lp_amount, result.amount_a, result.amount_b,
        )
        return result

    # ── Admin ────────────────────────────────────────────────────────

    def set_paused(self, paused: bool) -> None:
        self._paused = paused

    def update_fee(self, fee_bps: int) -> None:
        if not 0 <= fee_bps <= MAX_FEE_BPS:
            msg = f"fee_bps must be in [0, {MAX_FEE_BPS}], got {fee_bps}"
            raise ValueError(msg)
        self._state = PoolState(
            reserve_a=self._state.reserve_a,
            reserve_b=self._state.reserve_b,
            fee_bps=fee_bps,
            lp_supply=self._state.lp_supply,
        )

    def reset(self, state: PoolState) -> None:
        """Replace the pool state wholesale (simulation snapshots)."""
        self._state = state

    def _check_not_paused(self) -> None:
        if self._paused:
            msg = f"Pool {self.address} is paused"
            raise PoolPaused(msg)
