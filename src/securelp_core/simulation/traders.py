"""Trader bots.

``NormalTrader`` swaps directly on the AMM: its whole instruction, amount
and min_out included, sits in the mempool until confirmed.

``ProtectedTrader`` routes the same trade through commit-reveal: commit
the hash, wait on the ledger clock for the delay, reveal and execute in
one transaction. If the reveal fails the commitment is cancelled so the
trader is not locked out of future commits.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from securelp_core.amm.pool import AmmPool
from securelp_core.amm.swap_math import PoolState, min_output_for_slippage, swap_output
from securelp_core.crypto.identity import TraderIdentity
from securelp_core.errors import SecureLPError
from securelp_core.models.commitment import IntentKind, SwapDetails
from securelp_core.models.trade import SwapDirection, TradeResult
from securelp_core.protocol.mempool import TransactionKind, VisibleFields
from securelp_core.simulation.ledger import Confirmation, LocalLedger
from securelp_core.simulation.transaction import SignedTransaction

logger = logging.getLogger(__name__)

MempoolWatcher = Callable[[VisibleFields, PoolState], object]


def expected_output(pool: PoolState, amount_in: int, direction: SwapDirection) -> int:
    reserve_in, reserve_out = pool.reserves(direction)
    return swap_output(amount_in, reserve_in, reserve_out, pool.fee_bps).amount_out


def intent_for_direction(direction: SwapDirection) -> IntentKind:
    return IntentKind.STAKE if direction is SwapDirection.A_TO_B else IntentKind.UNSTAKE


class _Trader:
    def __init__(self, identity: TraderIdentity, ledger: LocalLedger) -> None:
        self.identity = identity
        self.ledger = ledger

    @property
    def address(self) -> str:
        return self.identity.address

    def sign(self, kind: TransactionKind, payload: dict) -> SignedTransaction:
        return SignedTransaction.create(
            self.identity, kind, payload, self.ledger.next_sequence(self.address)
        )

    async def ensure_balance(self, direction: SwapDirection, amount: int) -> None:
        """Top up the input token so the trade size, not the wallet, decides the scenario."""
        token_in, _ = AmmPool.tokens(direction)
        shortfall = amount - self.ledger.get_balance(self.address, token_in)
        if shortfall > 0:
            await self.ledger.airdrop(self.address, token_in, shortfall)


class NormalTrader(_Trader):
    """Direct AMM swaps, fully visible while pending."""

    def __init__(
        self,
        identity: TraderIdentity,
        ledger: LocalLedger,
        slippage_bps: int | None = None,
    ) -> None:
        super().__init__(identity, ledger)
        self.slippage_bps = slippage_bps

    def build_swap(
        self, amount_in: int, direction: SwapDirection, expected_out: int
    ) -> SignedTransaction:
        min_out = (
            0 if self.slippage_bps is None
            else min_output_for_slippage(expected_out, self.slippage_bps)
        )
        return self.sign(
            TransactionKind.SWAP,
            {
                "trader": self.address,
                "amount_in": amount_in,
                "min_out": min_out,
                "direction": direction.value,
            },
        )

    async def submit_swap(
        self,
        tx: SignedTransaction,
        expected_out: int,
        was_attacked: bool = False,
    ) -> TradeResult:
        confirmation = await self.ledger.submit(tx)
        actual_out = confirmation.amount_out or 0
        return TradeResult(
            signature=confirmation.signature,
            trader=self.address,
            amount_in=int(tx.payload["amount_in"]),
            expected_out=expected_out,
            actual_out=actual_out,
            slippage_loss=max(expected_out - actual_out, 0),
            direction=SwapDirection(tx.payload["direction"]),
            was_attacked=was_attacked,
            fee_paid=confirmation.fee or 0,
            protected=False,
            timestamp=confirmation.timestamp,
        )

    async def swap(self, amount_in: int, direction: SwapDirection) -> TradeResult:
        """Quote, sign and submit a swap with nobody in between."""
        pool = await self.ledger.get_pool_state()
        expected = expected_output(pool, amount_in, direction)
        tx = self.build_swap(amount_in, direction, expected)
        return await self.submit_swap(tx, expected)


class ProtectedTrader(_Trader):
    """Swaps through commit-reveal."""

    def __init__(
        self,
        identity: TraderIdentity,
        ledger: LocalLedger,
        slippage_bps: int = 100,
    ) -> None:
        super().__init__(identity, ledger)
        self.slippage_bps = slippage_bps

    def build_commitment(
        self, amount_in: int, direction: SwapDirection, expected_out: int
    ) -> tuple[SwapDetails, SignedTransaction]:
        details = SwapDetails.create(
            amount_in=amount_in,
            min_out=min_output_for_slippage(expected_out, self.slippage_bps),
            slippage_bps=self.slippage_bps,
        )
        tx = self.sign(
            TransactionKind.COMMIT,
            {
                "trader": self.address,
                "hash": details.commitment_hash().hex(),
                "amount": amount_in,
                "intent": intent_for_direction(direction).value,
            },
        )
        return details, tx

    def build_reveal(self, details: SwapDetails) -> SignedTransaction:
        return self.sign(
            TransactionKind.REVEAL,
            {"trader": self.address, "details": details.serialize().hex()},
        )

    async def cancel(self) -> Confirmation:
        return await self.ledger.submit(
            self.sign(TransactionKind.CANCEL, {"trader": self.address})
        )

    async def commit_and_reveal(
        self,
        amount_in: int,
        direction: SwapDirection,
        watchers: Sequence[MempoolWatcher] | None = None,
    ) -> TradeResult:
        """Run the full protected flow.

        ``watchers`` are callables handed the commit's VisibleFields while
        it is pending, the way a mempool bot would see it.
        """
        pool = await self.ledger.get_pool_state()
        expected = expected_output(pool, amount_in, direction)
        details, commit_tx = self.build_commitment(amount_in, direction, expected)

        visible: VisibleFields = self.ledger.observe(commit_tx)
        for watch in watchers or []:
            watch(visible, pool)

        committed = await self.ledger.submit(commit_tx)
        handle = committed.commitment
        if handle is None:
            msg = "Commit confirmation carried no commitment handle"
            raise SecureLPError(msg)

        await self.ledger.wait_until(handle.ready_at)
        try:
            revealed = await self.ledger.submit(self.build_reveal(details))
        except SecureLPError:
            logger.warning("reveal failed for %s, cancelling commitment", self.address[:8])
            await self.cancel()
            raise

        receipt = revealed.receipt
        actual_out = revealed.amount_out or 0
        return TradeResult(
            signature=revealed.signature,
            trader=self.address,
            amount_in=amount_in,
            expected_out=expected,
            actual_out=actual_out,
            slippage_loss=max(expected - actual_out, 0),
            direction=direction,
            was_attacked=False,
            fee_paid=receipt.fee if receipt else 0,
            protected=True,
            timestamp=revealed.timestamp,
        )
