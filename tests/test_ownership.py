from __future__ import annotations

import random

import pytest

from flipindex.core.ids import ownership_summary_id
from flipindex.core.models import CollectionStats, OwnershipSummary
from flipindex.handlers.ownership import OwnerDeltas, apply_delta, apply_deltas
from flipindex.storage import MemoryEntityStore

COLLECTION = "0x" + "c0" * 20
OWNERS = ["0x" + f"{i:02x}" * 20 for i in range(1, 6)]


def _summary(store, owner: str) -> OwnershipSummary | None:
    return store.load(OwnershipSummary, ownership_summary_id(COLLECTION, owner))


def test_first_token_creates_summary_and_counts_owner():
    store = MemoryEntityStore()
    stats = CollectionStats(id=COLLECTION)

    summary = apply_delta(store, stats, OWNERS[0], 1, timestamp=10)

    assert summary.nft_count == 1
    assert summary.first_owned_at_block_timestamp == 10
    assert stats.owner_count == 1
    assert _summary(store, OWNERS[0]) == summary


def test_dropping_to_zero_keeps_row_and_uncounts_owner():
    store = MemoryEntityStore()
    stats = CollectionStats(id=COLLECTION)
    apply_delta(store, stats, OWNERS[0], 2, timestamp=10)
    apply_delta(store, stats, OWNERS[0], -2, timestamp=20)

    summary = _summary(store, OWNERS[0])
    assert summary is not None
    assert summary.nft_count == 0
    assert summary.first_owned_at_block_timestamp == 10
    assert summary.last_updated_at_block_timestamp == 20
    assert stats.owner_count == 0


def test_count_is_clamped_at_zero():
    store = MemoryEntityStore()
    stats = CollectionStats(id=COLLECTION, owner_count=0)

    summary = apply_delta(store, stats, OWNERS[0], -1, timestamp=10)

    assert summary.nft_count == 0
    assert stats.owner_count == 0


def test_positive_to_positive_does_not_touch_owner_count():
    store = MemoryEntityStore()
    stats = CollectionStats(id=COLLECTION)
    apply_delta(store, stats, OWNERS[0], 1, timestamp=1)
    apply_delta(store, stats, OWNERS[0], 3, timestamp=2)
    apply_delta(store, stats, OWNERS[0], -2, timestamp=3)
    assert stats.owner_count == 1
    assert _summary(store, OWNERS[0]).nft_count == 2


def test_owner_deltas_net_moves_in_first_seen_order():
    deltas = OwnerDeltas()
    deltas.move(OWNERS[0], OWNERS[1])
    deltas.move(OWNERS[0], OWNERS[1])
    deltas.move(OWNERS[2], OWNERS[1])

    assert list(deltas) == [(OWNERS[0], -2), (OWNERS[1], 3), (OWNERS[2], -1)]
    assert len(deltas) == 3
    assert deltas.get(OWNERS[0]) == -2
    assert deltas.get(OWNERS[3]) == 0


def test_apply_deltas_skips_zero_nets():
    store = MemoryEntityStore()
    stats = CollectionStats(id=COLLECTION)
    deltas = OwnerDeltas()
    deltas.move(OWNERS[0], OWNERS[0])

    apply_deltas(store, stats, deltas, timestamp=5)

    assert _summary(store, OWNERS[0]) is None
    assert stats.owner_count == 0


@pytest.mark.parametrize("seed", range(10))
def test_owner_count_matches_positive_summaries_for_every_prefix(seed):
    rng = random.Random(seed)
    store = MemoryEntityStore()
    stats = CollectionStats(id=COLLECTION)
    for step in range(200):
        owner = rng.choice(OWNERS)
        apply_delta(store, stats, owner, rng.randint(-3, 3), timestamp=step)
        holders = [s for s in store.all(OwnershipSummary) if s.nft_count > 0]
        assert stats.owner_count == len(holders)
        assert all(s.nft_count >= 0 for s in store.all(OwnershipSummary))
