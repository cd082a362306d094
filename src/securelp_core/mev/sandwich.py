"""Sandwich attack profitability search.

Given a visible victim swap and the current pool, the attacker:
  1. front-runs in the victim's direction, pushing the price against them
  2. lets the victim trade at the worse price
  3. back-runs by selling exactly what the front-run bought

Profit is back-run proceeds minus front-run cost, both in the victim's
input token. The search is a fixed grid over the front-run size,
{1%, 3%, …, 49%} of min(reserve_in / 2, attacker capital); each candidate
is simulated with ``apply_swap`` on the immutable pool value, so the
live pool is never touched and the numbers match production exactly.

Bots do not grief: if no candidate clears MIN_PROFIT_THRESHOLD the result
is None. A committed intent never reaches this module at all, since its
visible fields carry no amount or min_out to feed in.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from securelp_core.amm.swap_math import PoolState, apply_swap
from securelp_core.errors import ArithmeticFault
from securelp_core.protocol.mempool import MempoolVisibilityModel, PendingSwap, VisibleFields

logger = logging.getLogger(__name__)


# ── Constants ────────────────────────────────────────────────────────

MIN_PROFIT_THRESHOLD = 10_000                  # lamports
DEFAULT_GRID_PERCENTAGES = tuple(range(1, 50, 2))


@dataclass(frozen=True)
class SandwichParams:
    """One simulated sandwich. Transient; never persisted."""

    front_run_amount: int
    expected_profit: int
    victim_expected_loss: int
    is_profitable: bool
    front_run_output: int = 0
    back_run_output: int = 0
    victim_actual_output: int = 0
    victim_no_attack_output: int = 0


class SandwichCalculator:
    """Finds the most profitable front-run size for a visible swap."""

    def __init__(
        self,
        min_profit: int = MIN_PROFIT_THRESHOLD,
        grid_percentages: Sequence[int] = DEFAULT_GRID_PERCENTAGES,
    ) -> None:
        self.min_profit = min_profit
        self.grid_percentages = tuple(grid_percentages)

    def simulate(
        self,
        victim: PendingSwap,
        pool: PoolState,
        front_run_amount: int,
    ) -> SandwichParams | None:
        """Run front-run, victim, back-run on a copy of ``pool``.

        Returns None if any leg is infeasible or the victim's min_out would
        make their transaction revert.
        """
        direction = victim.direction
        try:
            _, baseline = apply_swap(pool, victim.amount_in, direction)
            after_front, front = apply_swap(pool, front_run_amount, direction)
            after_victim, victim_leg = apply_swap(after_front, victim.amount_in, direction)
            _, back = apply_swap(after_victim, front.amount_out, direction.opposite)
        except ArithmeticFault:
            return None

        if victim_leg.amount_out < victim.min_out:
            return None

        profit = max(back.amount_out - front_run_amount, 0)
        loss = max(baseline.amount_out - victim_leg.amount_out, 0)
        return SandwichParams(
            front_run_amount=front_run_amount,
            expected_profit=profit,
            victim_expected_loss=loss,
            is_profitable=profit > self.min_profit,
            front_run_output=front.amount_out,
            back_run_output=back.amount_out,
            victim_actual_output=victim_leg.amount_out,
            victim_no_attack_output=baseline.amount_out,
        )

    def find_optimal_attack(
        self,
        victim: PendingSwap,
        pool: PoolState,
        attacker_capital: int,
    ) -> SandwichParams | None:
        """Best profitable sandwich on the grid, or None."""
        reserve_in, _ = pool.reserves(victim.direction)
        base = min(reserve_in // 2, attacker_capital)

        best: SandwichParams | None = None
        for pct in self.grid_percentages:
            amount = base * pct // 100
            if amount <= 0 or amount > attacker_capital:
                continue
            candidate = self.simulate(victim, pool, amount)
            if candidate is None:
                continue
            if best is None or candidate.expected_profit > best.expected_profit:
                best = candidate

        if best is None or not best.is_profitable:
            logger.debug(
                "no profitable sandwich for %s (best=%s)",
                victim.trader[:8], best.expected_profit if best else None,
            )
            return None
        return best

    def find_attack_on_visible(
        self,
        visible: VisibleFields,
        pool: PoolState,
        attacker_capital: int,
    ) -> SandwichParams | None:
        """Entry point from the mempool: None for anything not sandwichable."""
        victim = MempoolVisibilityModel.to_pending_swap(visible)
        if victim is None:
            return None
        return self.find_optimal_attack(victim, pool, attacker_capital)
