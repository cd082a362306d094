"""Tests for signed transactions, the local ledger and account setup."""

from __future__ import annotations

import asyncio

import pytest

from securelp_core.amm.swap_math import PoolState
from securelp_core.crypto.identity import TraderIdentity
from securelp_core.errors import DelayNotMet, InvalidSignature, SetupError, SlippageTooHigh
from securelp_core.models.balances import Token
from securelp_core.models.commitment import SwapDetails
from securelp_core.protocol.clock import ManualClock
from securelp_core.protocol.mempool import TransactionKind
from securelp_core.simulation.accounts import create_accounts
from securelp_core.simulation.cache import TTLCache
from securelp_core.simulation.ledger import LocalLedger
from securelp_core.simulation.transaction import SignedTransaction

SOL = 1_000_000_000


def make_ledger() -> LocalLedger:
    return LocalLedger(
        PoolState(reserve_a=1000 * SOL, reserve_b=1000 * SOL, fee_bps=30, lp_supply=1000 * SOL),
        clock=ManualClock(start=10_000),
    )


def swap_payload(identity: TraderIdentity, amount: int = SOL, min_out: int = 0) -> dict:
    return {"trader": identity.address, "amount_in": amount, "min_out": min_out, "direction": "AtoB"}


class TestSignedTransaction:
    def test_create_and_verify(self):
        identity = TraderIdentity.generate()
        tx = SignedTransaction.create(identity, TransactionKind.SWAP, swap_payload(identity), 1)
        assert tx.verify()
        assert len(tx.id) == 64

    def test_tampered_payload_fails(self):
        identity = TraderIdentity.generate()
        tx = SignedTransaction.create(identity, TransactionKind.SWAP, swap_payload(identity), 1)
        tx.payload["amount_in"] = 2 * SOL
        assert not tx.verify()

    def test_signer_must_match_key(self):
        identity = TraderIdentity.generate()
        other = TraderIdentity.generate()
        tx = SignedTransaction.create(identity, TransactionKind.SWAP, swap_payload(identity), 1)
        forged = tx.model_copy(update={"signer": other.address})
        assert not forged.verify()

    def test_bad_hex(self):
        identity = TraderIdentity.generate()
        tx = SignedTransaction.create(identity, TransactionKind.SWAP, swap_payload(identity), 1)
        assert not tx.model_copy(update={"signature": "zz"}).verify()


class TestLocalLedger:
    def test_swap_confirms(self):
        async def run():
            ledger = make_ledger()
            alice = TraderIdentity.generate()
            await ledger.airdrop(alice.address, Token.TOKEN_A, 2 * SOL)
            tx = SignedTransaction.create(alice, TransactionKind.SWAP, swap_payload(alice), 1)
            confirmation = await ledger.submit(tx)
            return ledger, alice, confirmation

        ledger, alice, confirmation = asyncio.run(run())
        assert confirmation.slot == 1
        assert confirmation.amount_out > 0
        assert ledger.get_balance(alice.address, Token.TOKEN_A) == SOL
        assert ledger.next_sequence(alice.address) == 2
        assert len(ledger.history) == 1

    def test_forged_transaction_rejected(self):
        async def run():
            ledger = make_ledger()
            alice = TraderIdentity.generate()
            mallory = TraderIdentity.generate()
            await ledger.airdrop(alice.address, Token.TOKEN_A, 2 * SOL)
            tx = SignedTransaction.create(mallory, TransactionKind.SWAP, swap_payload(alice), 1)
            forged = tx.model_copy(update={"signer": alice.address})
            with pytest.raises(InvalidSignature):
                await ledger.submit(forged)
            return ledger, alice

        ledger, alice = asyncio.run(run())
        assert ledger.get_balance(alice.address, Token.TOKEN_A) == 2 * SOL

    def test_mismatched_id_rejected(self):
        async def run():
            ledger = make_ledger()
            alice = TraderIdentity.generate()
            await ledger.airdrop(alice.address, Token.TOKEN_A, 2 * SOL)
            tx = SignedTransaction.create(alice, TransactionKind.SWAP, swap_payload(alice), 1)
            relabelled = tx.model_copy(update={"id": "ab" * 32})
            assert relabelled.verify()
            with pytest.raises(InvalidSignature):
                await ledger.submit(relabelled)
            return ledger, alice

        ledger, alice = asyncio.run(run())
        assert ledger.get_balance(alice.address, Token.TOKEN_A) == 2 * SOL
        assert ledger.history == []

    def test_replay_rejected(self):
        async def run():
            ledger = make_ledger()
            alice = TraderIdentity.generate()
            await ledger.airdrop(alice.address, Token.TOKEN_A, 5 * SOL)
            tx = SignedTransaction.create(alice, TransactionKind.SWAP, swap_payload(alice), 1)
            await ledger.submit(tx)
            with pytest.raises(InvalidSignature):
                await ledger.submit(tx)
            return ledger, alice

        ledger, alice = asyncio.run(run())
        assert ledger.get_balance(alice.address, Token.TOKEN_A) == 4 * SOL

    def test_failed_transaction_keeps_sequence(self):
        async def run():
            ledger = make_ledger()
            alice = TraderIdentity.generate()
            await ledger.airdrop(alice.address, Token.TOKEN_A, 2 * SOL)
            tx = SignedTransaction.create(
                alice, TransactionKind.SWAP, swap_payload(alice, min_out=2 * SOL), 1
            )
            with pytest.raises(SlippageTooHigh):
                await ledger.submit(tx)
            return ledger, alice

        ledger, alice = asyncio.run(run())
        assert ledger.next_sequence(alice.address) == 1
        assert ledger.slot == 0
        assert ledger.history == []

    def test_commit_reveal_through_ledger(self):
        async def run():
            ledger = make_ledger()
            alice = TraderIdentity.generate()
            await ledger.airdrop(alice.address, Token.SOL, SOL)
            await ledger.airdrop(alice.address, Token.TOKEN_A, 2 * SOL)
            details = SwapDetails.create(SOL, 0, 100)
            commit = SignedTransaction.create(
                alice,
                TransactionKind.COMMIT,
                {"trader": alice.address, "hash": details.commitment_hash().hex(),
                 "amount": SOL, "intent": "stake"},
                1,
            )
            committed = await ledger.submit(commit)
            reveal = SignedTransaction.create(
                alice,
                TransactionKind.REVEAL,
                {"trader": alice.address, "details": details.serialize().hex()},
                2,
            )
            with pytest.raises(DelayNotMet):
                await ledger.submit(reveal)
            await ledger.wait_until(committed.commitment.ready_at)
            revealed = await ledger.submit(reveal)
            return ledger, alice, revealed

        ledger, alice, revealed = asyncio.run(run())
        assert revealed.receipt is not None
        assert ledger.get_balance(alice.address, Token.SOL) == SOL
        assert ledger.get_balance(alice.address, Token.TOKEN_B) == revealed.amount_out
        assert ledger.protocol.get_commitment(alice.address) is None

    def test_observe_commit(self):
        ledger = make_ledger()
        alice = TraderIdentity.generate()
        details = SwapDetails.create(SOL, 0, 100)
        tx = SignedTransaction.create(
            alice,
            TransactionKind.COMMIT,
            {"trader": alice.address, "hash": details.commitment_hash().hex(),
             "amount": SOL, "intent": "stake"},
            1,
        )
        visible = ledger.observe(tx)
        assert not visible.can_sandwich
        assert visible.amount_in is None

    def test_wait_until_never_rewinds(self):
        ledger = make_ledger()
        asyncio.run(ledger.wait_until(5))
        assert ledger.clock.now() == 10_000
        asyncio.run(ledger.wait_until(10_050))
        assert ledger.clock.now() == 10_050

    def test_pool_read_refreshes_after_write(self):
        async def run():
            ledger = make_ledger()
            alice = TraderIdentity.generate()
            before = await ledger.get_pool_state()
            await ledger.airdrop(alice.address, Token.TOKEN_A, SOL)
            await ledger.submit(
                SignedTransaction.create(alice, TransactionKind.SWAP, swap_payload(alice), 1)
            )
            after = await ledger.get_pool_state()
            return before, after

        before, after = asyncio.run(run())
        assert after.reserve_a == before.reserve_a + SOL

    def test_latency_is_awaited(self):
        ledger = LocalLedger(
            PoolState(reserve_a=1000 * SOL, reserve_b=1000 * SOL),
            clock=ManualClock(),
            confirmation_latency=0.01,
        )
        alice = TraderIdentity.generate()
        asyncio.run(ledger.airdrop(alice.address, Token.SOL, 1))
        assert ledger.get_balance(alice.address, Token.SOL) == 1


class TestTTLCache:
    def test_expiry(self):
        clock = ManualClock(start=0)
        cache: TTLCache[int] = TTLCache(clock, ttl=2)
        cache.put("k", 1)
        clock.advance(1)
        assert cache.get("k") == 1
        clock.advance(1)
        assert cache.get("k") is None

    def test_get_or_load_counts(self):
        clock = ManualClock(start=0)
        cache: TTLCache[str] = TTLCache(clock, ttl=5)
        calls = []

        def loader():
            calls.append(1)
            return "v"

        assert cache.get_or_load("k", loader) == "v"
        assert cache.get_or_load("k", loader) == "v"
        assert len(calls) == 1
        assert (cache.hits, cache.misses) == (1, 1)

    def test_invalidate(self):
        cache: TTLCache[int] = TTLCache(ManualClock(), ttl=5)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.invalidate("a")
        assert cache.get("a") is None
        assert len(cache) == 1
        cache.invalidate()
        assert len(cache) == 0

    def test_negative_ttl(self):
        with pytest.raises(ValueError):
            TTLCache(ManualClock(), ttl=-1)


class TestAccounts:
    def test_distinct_funded_accounts(self):
        ledger = make_ledger()
        accounts = asyncio.run(
            create_accounts(ledger, 7, {Token.SOL: SOL, Token.TOKEN_A: 2 * SOL}, batch_size=3)
        )
        assert len(accounts) == 7
        assert len({a.address for a in accounts}) == 7
        for account in accounts:
            assert ledger.get_balance(account.address, Token.SOL) == SOL
            assert ledger.get_balance(account.address, Token.TOKEN_A) == 2 * SOL

    def test_invalid_batch_size(self):
        with pytest.raises(SetupError):
            asyncio.run(create_accounts(make_ledger(), 2, {Token.SOL: 1}, batch_size=0))
