"""Token balances for traders, pools and escrow accounts.

Balances are integer base units (lamports for SOL, smallest unit for SPL
tokens). Nothing here knows about pools or protocols; callers check what
they need with ``get_balance`` and then move value with ``debit``/``credit``
so a failing check never leaves a half-applied transfer behind.
"""

from __future__ import annotations

from enum import Enum

from securelp_core.errors import InsufficientBalance


class Token(str, Enum):
    """Assets tracked by the ledger."""

    SOL = "sol"          # native, pays rent and is staked
    TOKEN_A = "token_a"  # AMM side A
    TOKEN_B = "token_b"  # AMM side B
    SLP_SOL = "slp_sol"  # liquid staking receipt
    LP = "lp"            # AMM liquidity share


class BalanceTracker:
    """Tracks balances per (owner, token)."""

    def __init__(self) -> None:
        self._balances: dict[tuple[str, Token], int] = {}

    def get_balance(self, owner: str, token: Token) -> int:
        return self._balances.get((owner, token), 0)

    def credit(self, owner: str, token: Token, amount: int) -> None:
        if amount < 0:
            msg = f"Credit amount must be non-negative, got {amount}"
            raise ValueError(msg)
        key = (owner, token)
        self._balances[key] = self._balances.get(key, 0) + amount

    def debit(self, owner: str, token: Token, amount: int) -> None:
        if amount < 0:
            msg = f"Debit amount must be non-negative, got {amount}"
            raise ValueError(msg)
        balance = self.get_balance(owner, token)
        if balance < amount:
            raise InsufficientBalance(owner, token.value, balance, amount)
        self._balances[(owner, token)] = balance - amount

    def transfer(self, sender: str, recipient: str, token: Token, amount: int) -> None:
        """Move tokens between owners. Raises InsufficientBalance before mutating."""
        self.debit(sender, token, amount)
        self.credit(recipient, token, amount)

    def require(self, owner: str, token: Token, amount: int) -> None:
        """Raise InsufficientBalance unless owner holds at least amount."""
        balance = self.get_balance(owner, token)
        if balance < amount:
            raise InsufficientBalance(owner, token.value, balance, amount)

    def balances_of(self, owner: str) -> dict[Token, int]:
        return {
            token: amount
            for (holder, token), amount in self._balances.items()
            if holder == owner
        }

    def total_supply(self, token: Token) -> int:
        return sum(
            amount for (_, t), amount in self._balances.items() if t == token
        )
