"""Trader identity management: key generation and signing."""

from __future__ import annotations

import hashlib
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

ADDRESS_LENGTH = 40


def address_from_public_bytes(public_bytes: bytes) -> str:
    """Derive an address from a raw 32-byte Ed25519 public key."""
    return hashlib.sha256(public_bytes).hexdigest()[:ADDRESS_LENGTH]


class TraderIdentity:
    """Manages a trader's signing keypair.

    Uses Ed25519, the same curve as Solana wallets. The address is
    derived from the SHA-256 hash of the raw public key, so anyone holding
    the public key can recompute and check it.
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self._public_bytes = self._public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self._address = address_from_public_bytes(self._public_bytes)

    @classmethod
    def generate(cls) -> TraderIdentity:
        """Fresh keypair from the OS random source."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: str | Path) -> TraderIdentity:
        """Load an Ed25519 key written by ``save``."""
        path = Path(path)
        private_key = serialization.load_pem_private_key(path.read_bytes(), password=None)
        if not isinstance(private_key, Ed25519PrivateKey):
            msg = "Key file must contain an Ed25519 private key"
            raise TypeError(msg)
        return cls(private_key)

    @classmethod
    def load_or_generate(cls, path: str | Path) -> TraderIdentity:
        """Load identity from file if it exists, otherwise generate and save."""
        path = Path(path)
        if path.exists():
            return cls.from_file(path)
        identity = cls.generate()
        identity.save(path)
        path.chmod(0o600)
        return identity

    def save(self, path: str | Path) -> None:
        """Write the private key as unencrypted PKCS8 PEM."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        key_bytes = self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        path.write_bytes(key_bytes)

    @property
    def address(self) -> str:
        """The trader's address (hex prefix of the public key hash)."""
        return self._address

    @property
    def public_key(self) -> Ed25519PublicKey:
        return self._public_key

    @property
    def public_bytes(self) -> bytes:
        """Raw 32-byte public key, as carried in signed transactions."""
        return self._public_bytes

    def sign(self, data: bytes) -> bytes:
        """Sign data with the trader's private key."""
        return self._private_key.sign(data)

    def verify(self, signature: bytes, data: bytes) -> bool:
        """Verify a signature against data using this trader's public key."""
        return self.verify_with_public_key(self._public_bytes, signature, data)

    @staticmethod
    def verify_with_public_key(
        public_bytes: bytes,
        signature: bytes,
        data: bytes,
    ) -> bool:
        """Verify a signature using an arbitrary raw public key."""
        try:
            Ed25519PublicKey.from_public_bytes(public_bytes).verify(signature, data)
        except (InvalidSignature, ValueError):
            return False
        return True
