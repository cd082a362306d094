"""Simulation account setup.

Accounts are created in bounded batches: members of a batch run
concurrently, each with its own keypair and its own balances, and the
next batch starts only after the previous one is fully funded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from securelp_core.crypto.identity import TraderIdentity
from securelp_core.errors import SetupError
from securelp_core.models.balances import Token
from securelp_core.simulation.config import DEFAULT_SETUP_BATCH_SIZE
from securelp_core.simulation.ledger import LocalLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    identity: TraderIdentity
    funding: Mapping[Token, int]

    @property
    def address(self) -> str:
        return self.identity.address


async def create_account(ledger: LocalLedger, funding: Mapping[Token, int]) -> Account:
    identity = TraderIdentity.generate()
    for token, amount in funding.items():
        if amount:
            await ledger.airdrop(identity.address, token, amount)
    return Account(identity=identity, funding=dict(funding))


async def create_accounts(
    ledger: LocalLedger,
    count: int,
    funding: Mapping[Token, int],
    batch_size: int = DEFAULT_SETUP_BATCH_SIZE,
) -> list[Account]:
    """Create and fund ``count`` accounts, ``batch_size`` at a time."""
    if count < 0 or batch_size <= 0:
        msg = f"invalid account setup: count={count}, batch_size={batch_size}"
        raise SetupError(msg)

    accounts: list[Account] = []
    for start in range(0, count, batch_size):
        size = min(batch_size, count - start)
        batch = await asyncio.gather(
            *(create_account(ledger, funding) for _ in range(size))
        )
        accounts.extend(batch)
        logger.debug("%s: funded accounts %d-%d", ledger.name, start + 1, start + size)
    return accounts
