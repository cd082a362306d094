"""Signed transactions submitted to the local ledger."""

from __future__ import annotations

import hashlib
import json
from typing import Any

from pydantic import BaseModel, Field

from securelp_core.crypto.identity import TraderIdentity, address_from_public_bytes
from securelp_core.protocol.mempool import TransactionKind


class SignedTransaction(BaseModel):
    """One instruction, signed by its sender.

    ``payload`` is what an observer decodes from the pending transaction;
    the mempool model classifies it by ``kind``. ``sequence`` is the
    signer's per-account counter and prevents replays.
    """

    id: str = Field(default="", description="Transaction hash")
    kind: TransactionKind
    signer: str = Field(description="Address of the signing trader")
    public_key: str = Field(description="Hex raw Ed25519 public key")
    sequence: int = Field(ge=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    signature: str = Field(default="", description="Hex Ed25519 signature over signing_bytes")

    def model_post_init(self, __context: Any) -> None:
        """Generate ID if not set."""
        if not self.id:
            self.id = self.compute_id()

    def signing_bytes(self) -> bytes:
        """Canonical bytes covered by the signature."""
        return json.dumps(
            {
                "kind": self.kind.value,
                "signer": self.signer,
                "public_key": self.public_key,
                "sequence": self.sequence,
                "payload": self.payload,
            },
            sort_keys=True,
        ).encode()

    def compute_id(self) -> str:
        return hashlib.sha256(self.signing_bytes()).hexdigest()

    @classmethod
    def create(
        cls,
        identity: TraderIdentity,
        kind: TransactionKind,
        payload: dict[str, Any],
        sequence: int,
    ) -> SignedTransaction:
        tx = cls(
            kind=kind,
            signer=identity.address,
            public_key=identity.public_bytes.hex(),
            sequence=sequence,
            payload=payload,
        )
        tx.signature = identity.sign(tx.signing_bytes()).hex()
        return tx

    def verify(self) -> bool:
        """Signature is valid and the signer address matches the key."""
        try:
            public_bytes = bytes.fromhex(self.public_key)
            signature = bytes.fromhex(self.signature)
        except ValueError:
            return False
        if address_from_public_bytes(public_bytes) != self.signer:
            return False
        return TraderIdentity.verify_with_public_key(
            public_bytes, signature, self.signing_bytes()
        )
