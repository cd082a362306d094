"""Hashing utilities for SecureLP commitments and transactions."""

from __future__ import annotations

import hashlib
import hmac


def sha256_digest(data: str | bytes) -> bytes:
    """Compute the raw 32-byte SHA-256 digest of data."""
    if isinstance(data, str):
        data = data.encode()
    return hashlib.sha256(data).digest()


def sha256(data: str | bytes) -> str:
    """Compute SHA-256 hash of data as hex."""
    return sha256_digest(data).hex()


def digests_equal(a: bytes, b: bytes) -> bool:
    """Constant-time comparison of two digests."""
    return hmac.compare_digest(a, b)
