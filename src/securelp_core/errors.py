"""Error taxonomy for SecureLP.

Two families matter to callers:

  - ``ProtocolViolation``: the caller did something the commit-reveal
    protocol forbids (revealed too early, wrong details, second live
    commitment, ...). Retrying the same call cannot succeed.
  - ``ArithmeticFault``: the pool math cannot produce a valid result
    (overflow, empty reserve, zero output). The operation is aborted
    before any state is touched.

Every check runs before the first mutation, so an exception always means
"nothing happened".
"""

from __future__ import annotations


class SecureLPError(Exception):
    """Base class for every error raised by securelp_core."""


# ── Protocol violations ──────────────────────────────────────────────

class ProtocolViolation(SecureLPError):
    """Caller error reported synchronously by the protocol."""


class CommitmentAlreadyExists(ProtocolViolation):
    def __init__(self, owner: str) -> None:
        self.owner = owner
        super().__init__(f"Commitment already exists for {owner}")


class CommitmentNotFound(ProtocolViolation):
    def __init__(self, owner: str) -> None:
        self.owner = owner
        super().__init__(f"No commitment found for {owner}")


class DelayNotMet(ProtocolViolation):
    """Reveal attempted before ``created_at + min_delay``."""

    def __init__(self, now: int, ready_at: int) -> None:
        self.now = now
        self.ready_at = ready_at
        super().__init__(
            f"Reveal delay not met: now={now}, ready at {ready_at} "
            f"({ready_at - now}s remaining)"
        )


class HashMismatch(ProtocolViolation):
    def __init__(self, expected: bytes, actual: bytes) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Revealed details hash {actual.hex()[:16]}… does not match "
            f"commitment {expected.hex()[:16]}…"
        )


class SlippageTooHigh(ProtocolViolation):
    """Either the declared tolerance is above the cap or the output is below min_out."""


class AmountTooSmall(ProtocolViolation):
    def __init__(self, amount: int, minimum: int) -> None:
        self.amount = amount
        self.minimum = minimum
        super().__init__(f"Amount {amount} below minimum {minimum}")


class InvalidSignature(ProtocolViolation):
    """Transaction signature or signer address did not verify."""


class PoolPaused(ProtocolViolation):
    pass


# ── Arithmetic faults ────────────────────────────────────────────────

class ArithmeticFault(SecureLPError):
    """Pool math could not produce a valid result."""


class MathOverflow(ArithmeticFault):
    pass


class InsufficientLiquidity(ArithmeticFault):
    pass


# ── Accounting ───────────────────────────────────────────────────────

class InsufficientBalance(SecureLPError):
    def __init__(self, owner: str, token: str, balance: int, required: int) -> None:
        self.owner = owner
        self.token = token
        self.balance = balance
        self.required = required
        super().__init__(
            f"Insufficient {token} balance for {owner}: {balance} < {required}"
        )


class SetupError(SecureLPError):
    """Simulation environment could not be prepared."""
