"""Ownership-summary delta application.

`apply_delta` is the single place where `OwnershipSummary.nft_count` changes
and where the collection's `owner_count` reacts to zero-crossings. It must be
called at most once per owner per event, so multi-token handlers first fold
their per-token moves into an `OwnerDeltas` accumulator.
"""

from __future__ import annotations

from collections.abc import Iterator

from flipindex.core.ids import ownership_summary_id
from flipindex.core.interfaces import IEntityStore
from flipindex.core.models import CollectionStats, OwnershipSummary


class OwnerDeltas:
    """Net signed count change per owner, iterated in first-seen order.

    Insertion order is the replay order of `apply_delta`, which keeps the
    sequence of summary writes identical across runs.
    """

    __slots__ = ("_deltas",)

    def __init__(self) -> None:
        self._deltas: dict[str, int] = {}

    def add(self, owner: str, delta: int) -> None:
        key = owner.lower()
        self._deltas[key] = self._deltas.get(key, 0) + delta

    def move(self, previous_owner: str, new_owner: str, count: int = 1) -> None:
        self.add(previous_owner, -count)
        self.add(new_owner, count)

    def __iter__(self) -> Iterator[tuple[str, int]]:
        return iter(self._deltas.items())

    def __len__(self) -> int:
        return len(self._deltas)

    def get(self, owner: str) -> int:
        return self._deltas.get(owner.lower(), 0)


def apply_delta(
    store: IEntityStore,
    stats: CollectionStats,
    owner: str,
    delta: int,
    timestamp: int,
) -> OwnershipSummary:
    """Apply `delta` to the owner's summary and update `stats.owner_count`.

    The summary is saved here; `stats` is only mutated and must be saved by
    the caller after all deltas of the event are applied.
    """
    collection = stats.id
    owner = owner.lower()
    summary_id = ownership_summary_id(collection, owner)
    summary = store.load(OwnershipSummary, summary_id)
    if summary is None:
        summary = OwnershipSummary(
            id=summary_id,
            collection_address=collection,
            owner=owner,
            nft_count=0,
            first_owned_at_block_timestamp=timestamp,
            last_updated_at_block_timestamp=timestamp,
        )

    old_count = summary.nft_count
    new_count = max(old_count + delta, 0)
    summary.nft_count = new_count
    summary.last_updated_at_block_timestamp = timestamp
    store.save(summary)

    if old_count == 0 and new_count > 0:
        stats.owner_count += 1
    elif old_count > 0 and new_count == 0:
        stats.owner_count = max(stats.owner_count - 1, 0)
    return summary


def apply_deltas(
    store: IEntityStore,
    stats: CollectionStats,
    deltas: OwnerDeltas,
    timestamp: int,
) -> None:
    """Apply every accumulated net delta once; zero nets are skipped."""
    for owner, delta in deltas:
        if delta == 0:
            continue
        apply_delta(store, stats, owner, delta, timestamp)
