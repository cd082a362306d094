"""Cryptographic utilities for SecureLP: hashing, signing, trader identity."""

from securelp_core.crypto.hashing import digests_equal, sha256, sha256_digest
from securelp_core.crypto.identity import TraderIdentity, address_from_public_bytes

__all__ = [
    "TraderIdentity",
    "address_from_public_bytes",
    "digests_equal",
    "sha256",
    "sha256_digest",
]
