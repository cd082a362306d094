"""In-process ledger the simulation trades against.

Stands in for a local validator: one AMM pool, the commit-reveal protocol
guarding it, token balances and an authoritative clock. Transactions are
signed, verified, and applied atomically after an optional confirmation
latency. Failed transactions change nothing.

By default the clock is virtual (``ManualClock``): ``wait_until`` moves it
forward instead of sleeping, which keeps runs fast and deterministic
while the reveal delay is still checked protocol-side against the same
clock that stamped the commitment.
"""

from __future__ import annotations

import asyncio
import logging
import time

from pydantic import BaseModel, ConfigDict

from securelp_core.amm.pool import AmmPool
from securelp_core.amm.swap_math import PoolState
from securelp_core.errors import InvalidSignature
from securelp_core.models.balances import BalanceTracker, Token
from securelp_core.models.commitment import Commitment, IntentKind, SwapDetails
from securelp_core.models.trade import SwapDirection
from securelp_core.protocol.clock import Clock, ManualClock
from securelp_core.protocol.commit_reveal import (
    CommitmentHandle,
    CommitRevealProtocol,
    ExecutionReceipt,
    ProtocolConfig,
)
from securelp_core.protocol.mempool import MempoolVisibilityModel, TransactionKind, VisibleFields
from securelp_core.simulation.cache import TTLCache
from securelp_core.simulation.transaction import SignedTransaction

logger = logging.getLogger(__name__)

POOL_CACHE_TTL = 1  # seconds of ledger time


class Confirmation(BaseModel):
    """Result of a confirmed transaction."""

    model_config = ConfigDict(frozen=True)

    signature: str
    kind: TransactionKind
    signer: str
    slot: int
    timestamp: int
    amount_out: int | None = None
    fee: int | None = None
    commitment: CommitmentHandle | None = None
    receipt: ExecutionReceipt | None = None
    refunded: int | None = None


class LocalLedger:
    """Single-pool ledger with signed transactions and a trusted clock."""

    def __init__(
        self,
        pool_state: PoolState,
        clock: Clock | None = None,
        protocol_config: ProtocolConfig | None = None,
        confirmation_latency: float = 0.0,
        name: str = "ledger",
    ) -> None:
        self.name = name
        self.clock = clock or ManualClock(start=int(time.time()))
        self.balances = BalanceTracker()
        self.pool = AmmPool(pool_state, self.balances)
        self.protocol = CommitRevealProtocol(
            self.pool, self.balances, self.clock, protocol_config
        )
        self.mempool = MempoolVisibilityModel()
        self._latency = confirmation_latency
        self._cache: TTLCache[PoolState] = TTLCache(self.clock, ttl=POOL_CACHE_TTL)
        self._sequences: dict[str, int] = {}
        self._history: list[Confirmation] = []
        self._slot = 0

    @property
    def slot(self) -> int:
        return self._slot

    @property
    def history(self) -> list[Confirmation]:
        return list(self._history)

    def next_sequence(self, address: str) -> int:
        return self._sequences.get(address, 0) + 1

    # ── Reads ────────────────────────────────────────────────────────

    async def get_pool_state(self) -> PoolState:
        await asyncio.sleep(0)
        return self._cache.get_or_load(self.pool.address, lambda: self.pool.state)

    async def get_commitment(self, owner: str) -> Commitment | None:
        await asyncio.sleep(0)
        return self.protocol.get_commitment(owner)

    def get_balance(self, owner: str, token: Token) -> int:
        return self.balances.get_balance(owner, token)

    def observe(self, tx: SignedTransaction) -> VisibleFields:
        """What a mempool watcher sees for a pending ``tx``."""
        return self.mempool.observe(tx.kind, tx.payload)

    # ── Writes ───────────────────────────────────────────────────────

    async def airdrop(self, owner: str, token: Token, amount: int) -> None:
        if self._latency:
            await asyncio.sleep(self._latency)
        else:
            await asyncio.sleep(0)
        self.balances.credit(owner, token, amount)

    async def submit(self, tx: SignedTransaction) -> Confirmation:
        """Verify, wait for confirmation, then apply ``tx`` atomically.

        Protocol and arithmetic errors propagate unchanged; a rejected
        transaction leaves balances, pool and sequence untouched.
        """
        if not tx.verify():
            msg = f"Invalid signature on transaction {tx.id[:16]}"
            raise InvalidSignature(msg)
        if tx.id != tx.compute_id():
            msg = f"Transaction id {tx.id[:16]} does not match its contents"
            raise InvalidSignature(msg)
        expected = self.next_sequence(tx.signer)
        if tx.sequence != expected:
            msg = f"Invalid sequence for {tx.signer[:8]}: expected {expected}, got {tx.sequence}"
            raise InvalidSignature(msg)

        if self._latency:
            await asyncio.sleep(self._latency)
        else:
            await asyncio.sleep(0)

        confirmation = self._apply(tx)
        self._slot = confirmation.slot
        self._sequences[tx.signer] = tx.sequence
        self._cache.invalidate(self.pool.address)
        self._history.append(confirmation)
        logger.debug(
            "%s: confirmed %s from %s at slot %d",
            self.name, tx.kind.value, tx.signer[:8], confirmation.slot,
        )
        return confirmation

    def _apply(self, tx: SignedTransaction) -> Confirmation:
        p = tx.payload
        base = {
            "signature": tx.id,
            "kind": tx.kind,
            "signer": tx.signer,
            "slot": self._slot + 1,
            "timestamp": self.clock.now(),
        }
        if tx.kind is TransactionKind.SWAP:
            quote = self.pool.swap(
                tx.signer,
                int(p["amount_in"]),
                int(p.get("min_out", 0)),
                SwapDirection(p["direction"]),
            )
            return Confirmation(**base, amount_out=quote.amount_out, fee=quote.fee_amount)
        if tx.kind is TransactionKind.COMMIT:
            handle = self.protocol.commit(
                tx.signer,
                bytes.fromhex(p["hash"]),
                int(p["amount"]),
                IntentKind(p["intent"]),
            )
            return Confirmation(**base, commitment=handle)
        if tx.kind is TransactionKind.REVEAL:
            details = SwapDetails.deserialize(bytes.fromhex(p["details"]))
            receipt = self.protocol.reveal_and_execute(tx.signer, details)
            return Confirmation(
                **base, amount_out=receipt.amount_out, fee=receipt.fee, receipt=receipt
            )
        refunded = self.protocol.cancel(tx.signer)
        return Confirmation(**base, refunded=refunded)

    # ── Clock ────────────────────────────────────────────────────────

    async def wait_until(self, timestamp: int) -> None:
        """Suspend until the ledger clock reaches ``timestamp``.

        Not cancellable from the protocol's point of view: an early reveal
        simply fails with DelayNotMet.
        """
        if isinstance(self.clock, ManualClock):
            await asyncio.sleep(0)
            if self.clock.now() < timestamp:
                self.clock.set(timestamp)
            return
        while self.clock.now() < timestamp:
            await asyncio.sleep(max(timestamp - time.time(), 0.05))

    # ── Simulation support ───────────────────────────────────────────

    def reset_pool(self, state: PoolState) -> None:
        """Replace the pool with an independent snapshot."""
        self.pool.reset(state)
        self._cache.invalidate(self.pool.address)
