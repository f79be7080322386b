"""Helpers shared by the registry and trade handlers.

Sub-failure policy: when a handler looks up a row that is not there, it
either degrades to a default or aborts the whole event. The table below is
the single source of truth for that choice; the helpers consult it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum

from flipindex.core.errors import MissingParentEntity
from flipindex.core.ids import event_id, nft_ownership_id
from flipindex.core.interfaces import IEntityStore
from flipindex.core.models import CollectionInfo, CollectionStats, Meta, NFTOwnership, Txs, TxType

logger = logging.getLogger(__name__)


class OnMissing(str, Enum):
    DEFAULT = "default"  # create a zeroed row and continue
    ABORT = "abort"  # reject the event, nothing written


MISSING_ROW_POLICY: dict[type, OnMissing] = {
    CollectionInfo: OnMissing.ABORT,
    NFTOwnership: OnMissing.ABORT,
    CollectionStats: OnMissing.DEFAULT,
}


def _on_missing(entity_type: type, what: str) -> None:
    """Raise if the policy aborts on this row type; otherwise let the caller default."""
    if MISSING_ROW_POLICY[entity_type] is OnMissing.ABORT:
        raise MissingParentEntity(f"{what} not found")
    logger.debug("%s not found, using default", what)


def require_collection(store: IEntityStore, address: str) -> CollectionInfo:
    info = store.load(CollectionInfo, address)
    if info is None:
        _on_missing(CollectionInfo, f"CollectionInfo {address}")
        raise MissingParentEntity(f"CollectionInfo {address} has no default")
    return info


def load_or_create_stats(store: IEntityStore, address: str, timestamp: int) -> CollectionStats:
    stats = store.load(CollectionStats, address)
    if stats is None:
        _on_missing(CollectionStats, f"CollectionStats {address}")
        stats = CollectionStats(id=address, last_updated_at_block_timestamp=timestamp)
    return stats


def require_ownerships(store: IEntityStore, address: str, token_ids: Sequence[int]) -> list[NFTOwnership]:
    """Load the ownership row of every token; abort on the first missing one."""
    rows: list[NFTOwnership] = []
    for token_id in token_ids:
        row = store.load(NFTOwnership, nft_ownership_id(address, token_id))
        if row is None:
            _on_missing(NFTOwnership, f"NFT ownership {address}-{token_id}")
            raise MissingParentEntity(f"NFT ownership {address}-{token_id} has no default")
        rows.append(row)
    return rows


def record_tx(
    store: IEntityStore,
    meta: Meta,
    *,
    collection: str,
    tx_type: TxType,
    sender: str,
    price: int,
    token_ids: Sequence[int],
) -> Txs:
    txs = Txs(
        id=event_id(meta.tx_hash, meta.log_index),
        collection_address=collection,
        tx_type=int(tx_type),
        sender=sender.lower(),
        price=price,
        token_ids=list(token_ids),
        block_number=meta.block_number,
        block_timestamp=meta.block_timestamp,
        transaction_hash=meta.tx_hash,
        log_index=meta.log_index,
    )
    store.save(txs)
    return txs
