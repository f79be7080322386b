"""Trade aggregation handlers (trade contract events).

Every handler runs in two phases:

1. validate: load CollectionInfo and the NFTOwnership rows the event touches,
   raising `EventRejected` before anything is written;
2. apply: write ownership rows, fold owner moves into one `OwnerDeltas`,
   apply each owner's net delta once, append the `Txs` row, save
   `CollectionStats` last (its `owner_count` is updated by the deltas).

Floor price heuristics, kept as-is from the deployed subgraph:
- single-token mint/buy/sell/quick-buy: floor = last price
- bulk buy/sell/quick-buy: floor = total_price // len(token_ids)
- bulk mint: floor unchanged
"""

from __future__ import annotations

import logging
from enum import Enum

from flipindex.core.errors import DuplicateCreate
from flipindex.core.events import (
    Bought,
    BulkBuyExecuted,
    BulkMintExecuted,
    BulkQuickBuyExecuted,
    BulkSellExecuted,
    BulkTrade,
    Minted,
    QuickBuyExecuted,
    Sold,
    TokenTrade,
    TransferCrossChain,
)
from flipindex.core.ids import cross_chain_status_id, nft_ownership_id
from flipindex.core.interfaces import IEntityStore
from flipindex.core.models import CollectionStats, CrossChainStatus, Meta, NFTOwnership, TxType
from flipindex.handlers.common import (
    load_or_create_stats,
    record_tx,
    require_collection,
    require_ownerships,
)
from flipindex.handlers.ownership import OwnerDeltas, apply_deltas

logger = logging.getLogger(__name__)


class Direction(int, Enum):
    """Effect of a trade on `current_supply` (tokens held outside the contract)."""

    INTO_CIRCULATION = 1
    TO_CONTRACT = -1


_TOKEN_TRADES: dict[type[TokenTrade], tuple[TxType, Direction]] = {
    Bought: (TxType.BUY, Direction.INTO_CIRCULATION),
    QuickBuyExecuted: (TxType.QUICK_BUY, Direction.INTO_CIRCULATION),
    Sold: (TxType.SELL, Direction.TO_CONTRACT),
}

_BULK_TRADES: dict[type[BulkTrade], tuple[TxType, Direction]] = {
    BulkBuyExecuted: (TxType.BULK_BUY, Direction.INTO_CIRCULATION),
    BulkQuickBuyExecuted: (TxType.QUICK_BUY, Direction.INTO_CIRCULATION),
    BulkSellExecuted: (TxType.BULK_SELL, Direction.TO_CONTRACT),
}


def _touch(stats: CollectionStats, meta: Meta, *, volume: int, supply_delta: int) -> None:
    stats.total_volume += volume
    stats.total_transactions += 1
    stats.current_supply = max(stats.current_supply + supply_delta, 0)
    stats.last_updated_at_block_timestamp = meta.block_timestamp


def handle_minted(store: IEntityStore, event: Minted) -> None:
    collection = event.flip_contract
    require_collection(store, collection)
    ownership_id = nft_ownership_id(collection, event.token_id)
    ownership = store.load(NFTOwnership, ownership_id)
    stats = load_or_create_stats(store, collection, event.meta.block_timestamp)

    deltas = OwnerDeltas()
    if ownership is None:
        ownership = NFTOwnership(
            id=ownership_id,
            collection_address=collection,
            token_id=event.token_id,
            owner=event.to,
        )
        deltas.add(event.to, 1)
    else:
        logger.warning(
            "re-mint of %s-%s, moving it from %s to %s",
            collection, event.token_id, ownership.owner, event.to,
        )
        deltas.move(ownership.owner, event.to)
        ownership.owner = event.to
    store.save(ownership)

    _touch(stats, event.meta, volume=event.price, supply_delta=1)
    stats.total_supply += 1
    stats.floor_price = event.price
    apply_deltas(store, stats, deltas, event.meta.block_timestamp)
    record_tx(
        store,
        event.meta,
        collection=collection,
        tx_type=TxType.MINT,
        sender=event.to,
        price=event.price,
        token_ids=[event.token_id],
    )
    store.save(stats)


def handle_token_trade(store: IEntityStore, event: TokenTrade) -> None:
    """Bought / Sold / QuickBuyExecuted."""
    tx_type, direction = _TOKEN_TRADES[type(event)]
    collection = event.flip_contract
    require_collection(store, collection)
    (ownership,) = require_ownerships(store, collection, [event.token_id])
    stats = load_or_create_stats(store, collection, event.meta.block_timestamp)

    new_owner = event.counterparty if direction is Direction.INTO_CIRCULATION else collection
    deltas = OwnerDeltas()
    deltas.move(ownership.owner, new_owner)
    ownership.owner = new_owner
    store.save(ownership)

    _touch(stats, event.meta, volume=event.price, supply_delta=direction.value)
    stats.floor_price = event.price
    apply_deltas(store, stats, deltas, event.meta.block_timestamp)
    record_tx(
        store,
        event.meta,
        collection=collection,
        tx_type=tx_type,
        sender=event.counterparty,
        price=event.price,
        token_ids=[event.token_id],
    )
    store.save(stats)


def handle_bulk_trade(store: IEntityStore, event: BulkTrade) -> None:
    """BulkBuyExecuted / BulkSellExecuted / BulkQuickBuyExecuted.

    All token rows are validated before the first write. Owner moves are
    accumulated across every token so that two tokens leaving the same owner
    become a single -2 on that owner's summary.
    """
    tx_type, direction = _BULK_TRADES[type(event)]
    collection = event.flip_contract
    require_collection(store, collection)
    ownerships = require_ownerships(store, collection, event.token_ids)
    stats = load_or_create_stats(store, collection, event.meta.block_timestamp)

    new_owner = event.counterparty if direction is Direction.INTO_CIRCULATION else collection
    deltas = OwnerDeltas()
    for ownership in ownerships:
        deltas.move(ownership.owner, new_owner)
        ownership.owner = new_owner
        store.save(ownership)
    apply_deltas(store, stats, deltas, event.meta.block_timestamp)

    count = len(event.token_ids)
    _touch(stats, event.meta, volume=event.total_price, supply_delta=direction.value * count)
    stats.floor_price = event.total_price // count
    record_tx(
        store,
        event.meta,
        collection=collection,
        tx_type=tx_type,
        sender=event.counterparty,
        price=event.total_price,
        token_ids=event.token_ids,
    )
    store.save(stats)


def handle_bulk_mint(store: IEntityStore, event: BulkMintExecuted) -> None:
    """Mint fresh token ids only; any existing id rejects the whole event."""
    collection = event.flip_contract
    require_collection(store, collection)
    ids = [nft_ownership_id(collection, token_id) for token_id in event.token_ids]
    for token_id, ownership_id in zip(event.token_ids, ids):
        if store.load(NFTOwnership, ownership_id) is not None:
            raise DuplicateCreate(f"NFT ownership already exists: {collection}-{token_id}")
    stats = load_or_create_stats(store, collection, event.meta.block_timestamp)

    for token_id, ownership_id in zip(event.token_ids, ids):
        store.save(
            NFTOwnership(
                id=ownership_id,
                collection_address=collection,
                token_id=token_id,
                owner=event.counterparty,
            )
        )
    count = len(event.token_ids)
    deltas = OwnerDeltas()
    deltas.add(event.counterparty, count)
    apply_deltas(store, stats, deltas, event.meta.block_timestamp)

    _touch(stats, event.meta, volume=event.total_price, supply_delta=count)
    stats.total_supply += count
    record_tx(
        store,
        event.meta,
        collection=collection,
        tx_type=TxType.BULK_MINT,
        sender=event.counterparty,
        price=event.total_price,
        token_ids=event.token_ids,
    )
    store.save(stats)


def handle_transfer_cross_chain(store: IEntityStore, event: TransferCrossChain) -> None:
    """Park the token with its contract and record the outgoing transfer.

    Supply, volume and ownership summaries are untouched: the token is in
    transit, not burned.
    """
    collection = event.flip_contract
    require_collection(store, collection)
    (ownership,) = require_ownerships(store, collection, [event.token_id])

    ownership.owner = collection
    store.save(ownership)
    store.save(
        CrossChainStatus(
            id=cross_chain_status_id(collection, event.token_id),
            contract_address=collection,
            token_id=event.token_id,
            sender=event.sender,
            receiver=event.receiver,
            destination=event.destination,
            is_transferred=True,
            block_number=event.meta.block_number,
            block_timestamp=event.meta.block_timestamp,
            transaction_hash=event.meta.tx_hash,
        )
    )
