"""Sandwich attacker bot.

Watches pending transactions, sizes an attack with SandwichCalculator and
executes it in two confirmed legs around the victim. The simulated profit
is the reported figure; the attacker's balance deltas are measured as
well and must agree with it exactly, since both sides run the same pool
math on the same reserves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from securelp_core.amm.pool import AmmPool
from securelp_core.amm.swap_math import PoolState
from securelp_core.crypto.identity import TraderIdentity
from securelp_core.mev.sandwich import SandwichCalculator, SandwichParams
from securelp_core.models.trade import SandwichResult, SwapDirection
from securelp_core.protocol.mempool import TransactionKind, VisibleFields
from securelp_core.simulation.ledger import LocalLedger
from securelp_core.simulation.transaction import SignedTransaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttackPlan:
    """A front-run that has been confirmed and awaits its back-run."""

    params: SandwichParams
    direction: SwapDirection
    balance_in_before: int
    front_run_signature: str


class SandwichAttacker:
    def __init__(
        self,
        identity: TraderIdentity,
        ledger: LocalLedger,
        capital: int,
        calculator: SandwichCalculator | None = None,
    ) -> None:
        self.identity = identity
        self.ledger = ledger
        self.capital = capital
        self.calculator = calculator or SandwichCalculator()
        self._commitments_seen = 0
        self._swaps_seen = 0

    @property
    def address(self) -> str:
        return self.identity.address

    @property
    def commitments_seen(self) -> int:
        return self._commitments_seen

    @property
    def swaps_seen(self) -> int:
        return self._swaps_seen

    def available_capital(self, direction: SwapDirection) -> int:
        token_in, _ = AmmPool.tokens(direction)
        return min(self.capital, self.ledger.get_balance(self.address, token_in))

    async def replenish(self) -> None:
        """Top both tokens back up to the configured capital."""
        for token in AmmPool.tokens(SwapDirection.A_TO_B):
            shortfall = self.capital - self.ledger.get_balance(self.address, token)
            if shortfall > 0:
                await self.ledger.airdrop(self.address, token, shortfall)

    def plan(self, visible: VisibleFields, pool: PoolState) -> SandwichParams | None:
        """Size an attack against a pending transaction, or None."""
        if visible.kind is TransactionKind.COMMIT:
            self._commitments_seen += 1
            logger.debug(
                "commit from %s: hash only, nothing to sandwich", visible.trader[:8]
            )
            return None
        if not visible.can_sandwich or visible.direction is None:
            return None
        self._swaps_seen += 1
        return self.calculator.find_attack_on_visible(
            visible, pool, self.available_capital(visible.direction)
        )

    def watch(self, visible: VisibleFields, pool: PoolState) -> None:
        """Mempool watcher hook; commits never produce a plan."""
        self.plan(visible, pool)

    def _swap_tx(self, amount_in: int, min_out: int, direction: SwapDirection) -> SignedTransaction:
        return SignedTransaction.create(
            self.identity,
            TransactionKind.SWAP,
            {
                "trader": self.address,
                "amount_in": amount_in,
                "min_out": min_out,
                "direction": direction.value,
            },
            self.ledger.next_sequence(self.address),
        )

    async def front_run(self, params: SandwichParams, direction: SwapDirection) -> AttackPlan:
        token_in, _ = AmmPool.tokens(direction)
        before = self.ledger.get_balance(self.address, token_in)
        confirmation = await self.ledger.submit(
            self._swap_tx(params.front_run_amount, params.front_run_output, direction)
        )
        return AttackPlan(
            params=params,
            direction=direction,
            balance_in_before=before,
            front_run_signature=confirmation.signature,
        )

    async def back_run(
        self, plan: AttackPlan, victim_signature: str | None = None
    ) -> SandwichResult:
        """Sell exactly what the front-run bought and reconcile profit."""
        params = plan.params
        confirmation = await self.ledger.submit(
            self._swap_tx(params.front_run_output, 0, plan.direction.opposite)
        )
        token_in, _ = AmmPool.tokens(plan.direction)
        realized = self.ledger.get_balance(self.address, token_in) - plan.balance_in_before
        reconciled = realized == params.expected_profit
        if not reconciled:
            logger.warning(
                "sandwich profit mismatch: simulated=%d realized=%d",
                params.expected_profit, realized,
            )
        return SandwichResult(
            success=True,
            front_run_signature=plan.front_run_signature,
            victim_signature=victim_signature,
            back_run_signature=confirmation.signature,
            front_run_amount=params.front_run_amount,
            back_run_amount=params.front_run_output,
            profit_lamports=params.expected_profit,
            realized_profit_lamports=realized,
            victim_loss_lamports=params.victim_expected_loss,
            reconciled=reconciled,
        )
