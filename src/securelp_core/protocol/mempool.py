"""Mempool visibility: what an observer learns from a pending transaction.

Real bots read pending transactions from block-engine feeds and private
RPCs and decode the instruction data. The model here skips the capture and
classifies the decoded payload directly:

  SWAP    everything: trader, exact amount_in, min_out, direction.
          Enough to size a sandwich.
  COMMIT  trader, a 32-byte hash, the approximate amount and the intent.
          The hash covers (amount, min_out, slippage, 32-byte nonce) and
          cannot be inverted, so there is nothing to size an attack with.
  REVEAL  the details become public inside the transaction that executes
          them; by the time anyone can read them the trade is done.
  CANCEL  no trade at all.

Stateless: the simulator and the ``explain`` command use the same
classification.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from securelp_core.models.commitment import IntentKind
from securelp_core.models.trade import SwapDirection


class TransactionKind(str, Enum):
    SWAP = "swap"
    COMMIT = "commit"
    REVEAL = "reveal"
    CANCEL = "cancel"


class VisibleFields(BaseModel):
    """What the observer can read from one pending transaction."""

    model_config = ConfigDict(frozen=True)

    kind: TransactionKind
    trader: str
    amount_in: int | None = Field(default=None, description="Exact input, direct swaps only")
    min_out: int | None = Field(default=None, description="Exact minimum output, direct swaps only")
    direction: SwapDirection | None = None
    commitment_hash: str | None = Field(default=None, description="Hex digest, commits only")
    approximate_amount: int | None = Field(default=None, description="Display amount, commits only")
    intent: IntentKind | None = None
    can_sandwich: bool = False


class PendingSwap(BaseModel):
    """A victim swap with every parameter a sandwich needs."""

    model_config = ConfigDict(frozen=True)

    trader: str
    amount_in: int = Field(gt=0)
    min_out: int = Field(ge=0)
    direction: SwapDirection


class MempoolVisibilityModel:
    """Classifies pending transactions by attack surface."""

    def observe(self, kind: TransactionKind, payload: Mapping[str, Any]) -> VisibleFields:
        trader = str(payload["trader"])
        if kind is TransactionKind.SWAP:
            return VisibleFields(
                kind=kind,
                trader=trader,
                amount_in=int(payload["amount_in"]),
                min_out=int(payload.get("min_out", 0)),
                direction=SwapDirection(payload["direction"]),
                can_sandwich=True,
            )
        if kind is TransactionKind.COMMIT:
            digest = payload["hash"]
            return VisibleFields(
                kind=kind,
                trader=trader,
                commitment_hash=digest.hex() if isinstance(digest, bytes) else str(digest),
                approximate_amount=int(payload["amount"]),
                intent=IntentKind(payload["intent"]),
                can_sandwich=False,
            )
        # Reveal executes atomically with disclosure; cancel moves no value
        return VisibleFields(kind=kind, trader=trader, can_sandwich=False)

    @staticmethod
    def to_pending_swap(visible: VisibleFields) -> PendingSwap | None:
        """Lift sandwichable fields into a PendingSwap, or None."""
        if not visible.can_sandwich or visible.amount_in is None or visible.direction is None:
            return None
        return PendingSwap(
            trader=visible.trader,
            amount_in=visible.amount_in,
            min_out=visible.min_out or 0,
            direction=visible.direction,
        )

    @staticmethod
    def explain_protection() -> str:
        return """
WHY COMMIT-REVEAL PROTECTS AGAINST MEV
======================================

NORMAL SWAP (vulnerable)
  Transaction: amm.swap(amount=5 SOL, min_out=4.8, A->B)
  Observer sees: amount=5, direction=A->B, slippage=4%
  Result: the optimal sandwich can be computed and executed

COMMIT-REVEAL (protected)
  Phase 1: commit(hash=0x7a3b9c..., amount~5 SOL)
  Phase 2: reveal_and_execute(details={amount, min_out, slippage, nonce})
  Observer sees: a hash and an approximate amount
  Result: no sandwich can be sized, the parameters are hidden

WHY THE HASH IS USELESS TO AN ATTACKER
  - hash = SHA256(amount | min_out | slippage | 32-byte nonce)
  - without the nonce the hash cannot be reversed (2^256 guesses)
  - the details are disclosed only inside the executing transaction
  - the reveal is accepted only after the ledger clock passes the delay
"""
