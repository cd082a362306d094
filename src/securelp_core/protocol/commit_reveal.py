"""Commit-Reveal protection for swaps and stakes.

Prevents sandwiching: a trader first commits sha256(SwapDetails), which
reveals nothing an attacker can size a front-run with, then reveals the
details in the same transaction that executes the trade.

Flow:
1. Trader builds SwapDetails (amount, min_out, slippage, 32-byte nonce)
2. commit(hash, approximate amount, intent): rent is escrowed, created_at
   is stamped from the ledger clock
3. Ledger clock passes created_at + MIN_DELAY_SECONDS
4. reveal_and_execute(details): delay, hash and slippage are checked,
   the trade executes, the commitment closes and rent is refunded
5. Alternatively cancel() closes the commitment and refunds rent at any time

States per owner: NoCommitment → Committed → {Revealed, Cancelled} → NoCommitment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from securelp_core.amm.pool import ExecutionTarget
from securelp_core.errors import (
    AmountTooSmall,
    CommitmentAlreadyExists,
    CommitmentNotFound,
    DelayNotMet,
    HashMismatch,
    SlippageTooHigh,
)
from securelp_core.models.balances import BalanceTracker, Token
from securelp_core.models.commitment import (
    COMMITMENT_SPACE,
    HASH_LENGTH,
    Commitment,
    CommitmentStore,
    IntentKind,
    SwapDetails,
    verify_commitment,
)
from securelp_core.protocol.clock import Clock

logger = logging.getLogger(__name__)


# ── Constants ────────────────────────────────────────────────────────

MIN_DELAY_SECONDS = 1
MAX_SLIPPAGE_BPS = 1_000          # 10%
MIN_COMMIT_AMOUNT = 1_000_000     # 0.001 SOL
ACCOUNT_STORAGE_OVERHEAD = 128
LAMPORTS_PER_BYTE_YEAR = 3_480
EXEMPTION_THRESHOLD_YEARS = 2


def rent_exempt_minimum(space: int) -> int:
    """Lamports an account of ``space`` bytes must hold to be rent-exempt."""
    return (ACCOUNT_STORAGE_OVERHEAD + space) * LAMPORTS_PER_BYTE_YEAR * EXEMPTION_THRESHOLD_YEARS


@dataclass
class ProtocolConfig:
    """Configurable commit-reveal parameters."""

    min_delay_seconds: int = MIN_DELAY_SECONDS
    max_slippage_bps: int = MAX_SLIPPAGE_BPS
    min_commit_amount: int = MIN_COMMIT_AMOUNT
    commitment_space: int = COMMITMENT_SPACE

    @property
    def commitment_rent(self) -> int:
        return rent_exempt_minimum(self.commitment_space)


class CommitmentHandle(BaseModel):
    """Returned by commit; what the client needs to time its reveal."""

    model_config = ConfigDict(frozen=True)

    owner: str
    commitment_hash: str = Field(description="Hex of the committed digest")
    created_at: int
    ready_at: int = Field(description="Earliest ledger time a reveal is accepted")
    rent_lamports: int


class ExecutionReceipt(BaseModel):
    """Record of a successful reveal-and-execute."""

    model_config = ConfigDict(frozen=True)

    owner: str
    intent: IntentKind
    amount_in: int
    amount_out: int
    fee: int
    min_out: int
    executed_at: int
    commitment_hash: str
    rent_refunded: int


class CommitRevealProtocol:
    """State machine guarding one execution target.

    ``owner`` arguments are the authenticated signer of the calling
    transaction; the ledger verifies signatures before dispatching here,
    so an owner can only ever touch its own commitment.
    """

    def __init__(
        self,
        target: ExecutionTarget,
        balances: BalanceTracker,
        clock: Clock,
        config: ProtocolConfig | None = None,
        store: CommitmentStore | None = None,
    ) -> None:
        self.config = config or ProtocolConfig()
        self._target = target
        self._balances = balances
        self._clock = clock
        self._store = store or CommitmentStore()
        self._receipts: list[ExecutionReceipt] = []
        self._cancelled = 0

    @property
    def store(self) -> CommitmentStore:
        return self._store

    @property
    def receipts(self) -> list[ExecutionReceipt]:
        return list(self._receipts)

    @property
    def cancelled_count(self) -> int:
        return self._cancelled

    def get_commitment(self, owner: str) -> Commitment | None:
        return self._store.get(owner)

    # ── Commit ───────────────────────────────────────────────────────

    def commit(
        self,
        owner: str,
        commitment_hash: bytes,
        amount: int,
        intent: IntentKind,
    ) -> CommitmentHandle:
        """Record a blinded intent for ``owner``."""
        if len(commitment_hash) != HASH_LENGTH:
            msg = f"Commitment hash must be {HASH_LENGTH} bytes, got {len(commitment_hash)}"
            raise ValueError(msg)
        if amount < self.config.min_commit_amount:
            raise AmountTooSmall(amount, self.config.min_commit_amount)
        if self._store.get(owner) is not None:
            raise CommitmentAlreadyExists(owner)

        rent = self.config.commitment_rent
        # Validated before any balance moves.
        commitment = Commitment(
            owner=owner,
            hash=commitment_hash,
            created_at=self._clock.now(),
            amount=amount,
            intent=intent,
            rent_lamports=rent,
        )
        self._balances.debit(owner, Token.SOL, rent)
        self._store.create(commitment)

        logger.info(
            "commitment created: owner=%s amount=%d intent=%s",
            owner[:8], amount, intent.value,
        )
        return CommitmentHandle(
            owner=owner,
            commitment_hash=commitment_hash.hex(),
            created_at=commitment.created_at,
            ready_at=commitment.created_at + self.config.min_delay_seconds,
            rent_lamports=rent,
        )

    # ── Reveal ───────────────────────────────────────────────────────

    def reveal_and_execute(self, owner: str, details: SwapDetails) -> ExecutionReceipt:
        """Verify ``details`` against the owner's commitment and execute.

        Checks, in order: commitment exists, delay elapsed, hash matches,
        declared slippage within the cap, quoted output covers min_out.
        Nothing changes unless every check and the execution succeed.
        """
        commitment = self._store.get(owner)
        if commitment is None:
            raise CommitmentNotFound(owner)

        now = self._clock.now()
        ready_at = commitment.created_at + self.config.min_delay_seconds
        if now < ready_at:
            raise DelayNotMet(now, ready_at)

        if not verify_commitment(commitment.hash, details):
            raise HashMismatch(commitment.hash, details.commitment_hash())

        if details.slippage_bps > self.config.max_slippage_bps:
            msg = (
                f"Slippage {details.slippage_bps} bps exceeds maximum "
                f"{self.config.max_slippage_bps} bps"
            )
            raise SlippageTooHigh(msg)

        quote = self._target.quote(details.amount_in, commitment.intent)
        if quote.amount_out < details.min_out:
            msg = f"Output {quote.amount_out} below minimum {details.min_out}"
            raise SlippageTooHigh(msg)

        # Target validates balances and re-checks min_out before mutating
        executed = self._target.execute(
            owner, details.amount_in, details.min_out, commitment.intent
        )

        self._store.close(owner)
        self._balances.credit(owner, Token.SOL, commitment.rent_lamports)
        receipt = ExecutionReceipt(
            owner=owner,
            intent=commitment.intent,
            amount_in=details.amount_in,
            amount_out=executed.amount_out,
            fee=executed.fee_amount,
            min_out=details.min_out,
            executed_at=now,
            commitment_hash=commitment.hash.hex(),
            rent_refunded=commitment.rent_lamports,
        )
        self._receipts.append(receipt)

        logger.info(
            "reveal executed: owner=%s intent=%s in=%d out=%d",
            owner[:8], commitment.intent.value, details.amount_in, executed.amount_out,
        )
        return receipt

    # ── Cancel ───────────────────────────────────────────────────────

    def cancel(self, owner: str) -> int:
        """Close the owner's commitment without executing. Returns refunded rent."""
        commitment = self._store.close(owner)
        if commitment is None:
            raise CommitmentNotFound(owner)
        self._balances.credit(owner, Token.SOL, commitment.rent_lamports)
        self._cancelled += 1
        logger.info("commitment cancelled: owner=%s", owner[:8])
        return commitment.rent_lamports
