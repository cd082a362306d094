"""Commitment records and the blinded swap details behind them.

A trader commits ``sha256(serialize(SwapDetails))`` first and reveals the
full ``SwapDetails`` only inside the transaction that executes the trade.
Observers of the commit see a 32-byte digest plus a rough amount; the
slippage tolerance and minimum output stay hidden.

Wire layout of ``SwapDetails`` (little-endian, 50 bytes):

    amount_in     u64
    min_out       u64
    slippage_bps  u16
    nonce         [u8; 32]
"""

from __future__ import annotations

import secrets
import struct
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from securelp_core.crypto.hashing import digests_equal, sha256_digest


# ── Constants ────────────────────────────────────────────────────────

U64_MAX = 2**64 - 1
BPS_DENOMINATOR = 10_000
NONCE_LENGTH = 32
HASH_LENGTH = 32
SWAP_DETAILS_FORMAT = "<QQH32s"
SWAP_DETAILS_SIZE = struct.calcsize(SWAP_DETAILS_FORMAT)  # 50
# discriminator + owner + hash + created_at + bump + amount + intent
COMMITMENT_SPACE = 8 + 32 + 32 + 8 + 1 + 8 + 1


class IntentKind(str, Enum):
    """Direction of a committed intent."""

    STAKE = "stake"      # SOL in
    UNSTAKE = "unstake"  # staked token in, SOL out


class SwapDetails(BaseModel):
    """The secret half of a commitment. Held client-side until reveal."""

    model_config = ConfigDict(frozen=True)

    amount_in: int = Field(ge=0, le=U64_MAX, description="Input amount in base units")
    min_out: int = Field(ge=0, le=U64_MAX, description="Minimum acceptable output")
    slippage_bps: int = Field(
        ge=0, le=BPS_DENOMINATOR, description="Slippage tolerance in basis points"
    )
    nonce: bytes = Field(description="32 random bytes that blind the hash")

    @field_validator("nonce")
    @classmethod
    def _check_nonce(cls, v: bytes) -> bytes:
        if len(v) != NONCE_LENGTH:
            msg = f"nonce must be {NONCE_LENGTH} bytes, got {len(v)}"
            raise ValueError(msg)
        return v

    @classmethod
    def create(cls, amount_in: int, min_out: int, slippage_bps: int) -> SwapDetails:
        """Build details with a fresh random nonce."""
        return cls(
            amount_in=amount_in,
            min_out=min_out,
            slippage_bps=slippage_bps,
            nonce=secrets.token_bytes(NONCE_LENGTH),
        )

    def serialize(self) -> bytes:
        return struct.pack(
            SWAP_DETAILS_FORMAT,
            self.amount_in,
            self.min_out,
            self.slippage_bps,
            self.nonce,
        )

    @classmethod
    def deserialize(cls, data: bytes) -> SwapDetails:
        if len(data) != SWAP_DETAILS_SIZE:
            msg = f"SwapDetails must be {SWAP_DETAILS_SIZE} bytes, got {len(data)}"
            raise ValueError(msg)
        amount_in, min_out, slippage_bps, nonce = struct.unpack(SWAP_DETAILS_FORMAT, data)
        return cls(
            amount_in=amount_in,
            min_out=min_out,
            slippage_bps=slippage_bps,
            nonce=nonce,
        )

    def commitment_hash(self) -> bytes:
        """SHA-256 of the serialized details, the value published at commit."""
        return sha256_digest(self.serialize())


def verify_commitment(commitment_hash: bytes, details: SwapDetails) -> bool:
    """Verify that revealed details match a commitment hash."""
    return digests_equal(details.commitment_hash(), commitment_hash)


class Commitment(BaseModel):
    """A live blinded intent. At most one per owner."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(description="Address of the committing trader")
    hash: bytes = Field(description="SHA-256 of the serialized SwapDetails")
    created_at: int = Field(description="Unix seconds from the ledger clock")
    amount: int = Field(ge=0, le=U64_MAX, description="Approximate amount, display only")
    intent: IntentKind
    rent_lamports: int = Field(default=0, ge=0, description="Escrowed rent, refunded on close")

    @field_validator("hash")
    @classmethod
    def _check_hash(cls, v: bytes) -> bytes:
        if len(v) != HASH_LENGTH:
            msg = f"commitment hash must be {HASH_LENGTH} bytes, got {len(v)}"
            raise ValueError(msg)
        return v


class CommitmentStore:
    """Authoritative record of live commitments, keyed by owner.

    Mirrors the per-user commitment account: the owner's address is the
    key, so a second commit for the same owner is rejected rather than
    overwritten.
    """

    def __init__(self) -> None:
        self._commitments: dict[str, Commitment] = {}

    def create(self, commitment: Commitment) -> bool:
        """Store a commitment. Returns False if the owner already has one."""
        if commitment.owner in self._commitments:
            return False
        self._commitments[commitment.owner] = commitment
        return True

    def get(self, owner: str) -> Commitment | None:
        return self._commitments.get(owner)

    def close(self, owner: str) -> Commitment | None:
        """Remove and return the owner's commitment, if any."""
        return self._commitments.pop(owner, None)

    def owners(self) -> list[str]:
        return list(self._commitments)

    @property
    def live_count(self) -> int:
        return len(self._commitments)
