"""Tests for SwapDetails encoding and the commitment store."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from securelp_core.models.commitment import (
    SWAP_DETAILS_SIZE,
    Commitment,
    CommitmentStore,
    IntentKind,
    SwapDetails,
    verify_commitment,
)


def details(**overrides) -> SwapDetails:
    fields = {"amount_in": 1_000_000_000, "min_out": 990_000_000, "slippage_bps": 100, "nonce": b"\x07" * 32}
    fields.update(overrides)
    return SwapDetails(**fields)


class TestSwapDetails:
    def test_serialized_size(self):
        assert SWAP_DETAILS_SIZE == 50
        assert len(details().serialize()) == 50

    def test_little_endian_layout(self):
        raw = details(amount_in=1, min_out=2, slippage_bps=3).serialize()
        assert raw[:8] == (1).to_bytes(8, "little")
        assert raw[8:16] == (2).to_bytes(8, "little")
        assert raw[16:18] == (3).to_bytes(2, "little")
        assert raw[18:] == b"\x07" * 32

    def test_deserialize_restores_fields(self):
        original = details()
        assert SwapDetails.deserialize(original.serialize()) == original

    def test_deserialize_wrong_length(self):
        with pytest.raises(ValueError):
            SwapDetails.deserialize(b"\x00" * 49)

    def test_nonce_length_enforced(self):
        with pytest.raises(ValidationError):
            details(nonce=b"short")

    def test_amount_range_enforced(self):
        with pytest.raises(ValidationError):
            details(amount_in=2**64)
        with pytest.raises(ValidationError):
            details(min_out=-1)

    def test_create_uses_fresh_nonce(self):
        a = SwapDetails.create(1000, 900, 100)
        b = SwapDetails.create(1000, 900, 100)
        assert a.nonce != b.nonce
        assert a.commitment_hash() != b.commitment_hash()

    def test_hash_is_deterministic(self):
        assert details().commitment_hash() == details().commitment_hash()
        assert len(details().commitment_hash()) == 32


class TestVerifyCommitment:
    def test_matching_details(self):
        d = details()
        assert verify_commitment(d.commitment_hash(), d)

    @pytest.mark.parametrize(
        "change",
        [
            {"amount_in": 1_000_000_001},
            {"min_out": 990_000_001},
            {"slippage_bps": 101},
            {"nonce": b"\x08" * 32},
        ],
    )
    def test_any_altered_field_fails(self, change):
        h = details().commitment_hash()
        assert not verify_commitment(h, details(**change))


class TestCommitmentStore:
    def _commitment(self, owner: str = "alice") -> Commitment:
        return Commitment(
            owner=owner,
            hash=details().commitment_hash(),
            created_at=100,
            amount=1_000_000_000,
            intent=IntentKind.STAKE,
        )

    def test_one_per_owner(self):
        store = CommitmentStore()
        assert store.create(self._commitment())
        assert not store.create(self._commitment())
        assert store.live_count == 1

    def test_close_removes(self):
        store = CommitmentStore()
        store.create(self._commitment())
        closed = store.close("alice")
        assert closed is not None
        assert store.get("alice") is None
        assert store.close("alice") is None

    def test_independent_owners(self):
        store = CommitmentStore()
        store.create(self._commitment("alice"))
        store.create(self._commitment("bob"))
        assert sorted(store.owners()) == ["alice", "bob"]

    def test_hash_length_enforced(self):
        with pytest.raises(ValidationError):
            Commitment(owner="a", hash=b"\x00" * 31, created_at=0, amount=0, intent=IntentKind.STAKE)
