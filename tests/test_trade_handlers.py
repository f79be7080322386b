from __future__ import annotations

import pytest
from conftest import A, B, C, COLLECTION, EventFactory, apply, snapshot

from flipindex.core.errors import DuplicateCreate, MalformedEvent, MissingParentEntity
from flipindex.core.ids import cross_chain_status_id, event_id, nft_ownership_id, ownership_summary_id
from flipindex.core.models import (
    CollectionStats,
    CrossChainStatus,
    NFTOwnership,
    OwnershipSummary,
    Txs,
    TxType,
)


def owner_of(store, token_id: int) -> str:
    return store.load(NFTOwnership, nft_ownership_id(COLLECTION, token_id)).owner


def count_of(store, owner: str) -> int:
    summary = store.load(OwnershipSummary, ownership_summary_id(COLLECTION, owner))
    return summary.nft_count if summary else 0


def stats_of(store) -> CollectionStats:
    return store.load(CollectionStats, COLLECTION)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


def test_mint_then_buy(store, ev):
    apply(store, ev.created(), ev.minted(A, 1, 100))

    stats = stats_of(store)
    assert (stats.current_supply, stats.total_supply, stats.total_volume, stats.floor_price) == (1, 1, 100, 100)
    assert stats.owner_count == 1
    assert count_of(store, A) == 1

    apply(store, ev.bought(B, 1, 150))

    assert owner_of(store, 1) == B
    assert count_of(store, A) == 0
    assert count_of(store, B) == 1
    stats = stats_of(store)
    assert stats.current_supply == 2
    assert stats.total_supply == 1
    assert stats.total_volume == 250
    assert stats.total_transactions == 2
    assert stats.floor_price == 150
    assert stats.owner_count == 1


def test_bulk_mint_then_bulk_sell(store, ev):
    apply(store, ev.created(), ev.bulk_mint(A, [1, 2, 3], 30))

    stats = stats_of(store)
    assert (stats.current_supply, stats.total_supply) == (3, 3)
    assert count_of(store, A) == 3

    apply(store, ev.bulk_sell(A, [1, 2], 20))

    stats = stats_of(store)
    assert stats.current_supply == 1
    assert stats.total_supply == 3
    assert count_of(store, A) == 1
    assert count_of(store, COLLECTION) == 2
    assert owner_of(store, 1) == owner_of(store, 2) == COLLECTION
    assert owner_of(store, 3) == A
    assert stats.owner_count == 2


def test_bulk_buy_from_one_owner_applies_single_net_delta(store, ev):
    apply(store, ev.created(), ev.bulk_mint(A, [1, 2], 20), ev.minted(C, 3, 10))

    apply(store, ev.bulk_buy(B, [1, 2, 3], 90))

    assert count_of(store, A) == 0
    assert count_of(store, C) == 0
    assert count_of(store, B) == 3
    assert stats_of(store).owner_count == 1


def test_quick_buy_moves_token_and_records_quick_buy(store, ev):
    apply(store, ev.created(), ev.minted(A, 1, 100), ev.sold(A, 1, 90))
    quick = ev.quick_buy(B, 1, 95)
    apply(store, quick)

    assert owner_of(store, 1) == B
    assert count_of(store, COLLECTION) == 0
    tx = store.load(Txs, event_id(quick.meta.tx_hash, quick.meta.log_index))
    assert tx.tx_type == TxType.QUICK_BUY
    assert tx.sender == B


def test_bulk_quick_buy_is_recorded_as_quick_buy(store, ev):
    apply(store, ev.created(), ev.bulk_mint(A, [1, 2], 20), ev.bulk_sell(A, [1, 2], 18))
    bulk = ev.bulk_quick_buy(B, [1, 2], 40)
    apply(store, bulk)

    tx = store.load(Txs, event_id(bulk.meta.tx_hash, bulk.meta.log_index))
    assert tx.tx_type == TxType.QUICK_BUY
    assert tx.token_ids == [1, 2]
    assert tx.price == 40
    assert stats_of(store).current_supply == 2


def test_remint_is_treated_as_a_transfer(store, ev):
    apply(store, ev.created(), ev.minted(A, 1, 100), ev.minted(B, 1, 120))

    assert owner_of(store, 1) == B
    assert count_of(store, A) == 0
    assert count_of(store, B) == 1
    assert stats_of(store).owner_count == 1
    assert stats_of(store).total_supply == 2


def test_sell_never_drives_supply_negative(store, ev):
    apply(store, ev.created(), ev.minted(A, 1, 100), ev.sold(A, 1, 90), ev.sold(A, 1, 80))
    assert stats_of(store).current_supply == 0


def test_stats_default_when_missing(memory_store, ev):
    apply(memory_store, ev.created(), ev.minted(A, 1, 100))
    # a collection registered before stats existed: info present, stats row gone
    memory_store._rows.pop((CollectionStats.__table__, COLLECTION))

    apply(memory_store, ev.bought(B, 1, 40))

    stats = stats_of(memory_store)
    assert stats.current_supply == 1
    assert stats.total_volume == 40
    assert stats.total_transactions == 1


# ---------------------------------------------------------------------------
# Floor price heuristics
# ---------------------------------------------------------------------------


def test_floor_price_uses_last_price_for_single_and_average_for_bulk(store, ev):
    apply(store, ev.created(initial_price=7), ev.bulk_mint(A, [1, 2, 3], 300))
    assert stats_of(store).floor_price == 7  # bulk mint leaves the floor alone

    apply(store, ev.bulk_buy(B, [1, 2, 3], 100))
    assert stats_of(store).floor_price == 33

    apply(store, ev.bulk_sell(B, [1, 2], 51))
    assert stats_of(store).floor_price == 25

    apply(store, ev.bought(C, 1, 500))
    assert stats_of(store).floor_price == 500


# ---------------------------------------------------------------------------
# Activity feed
# ---------------------------------------------------------------------------


def test_every_trade_appends_one_tx_row(memory_store, ev):
    events = [
        ev.created(),
        ev.minted(A, 1, 100),
        ev.bought(B, 1, 150),
        ev.sold(B, 1, 140),
        ev.bulk_mint(A, [2, 3], 200),
        ev.bulk_buy(C, [2, 3], 220),
        ev.bulk_sell(C, [2], 100),
    ]
    apply(memory_store, *events)

    rows = memory_store.all(Txs)
    assert [r.tx_type for r in rows] == [
        TxType.MINT,
        TxType.BUY,
        TxType.SELL,
        TxType.BULK_MINT,
        TxType.BULK_BUY,
        TxType.BULK_SELL,
    ]
    assert stats_of(memory_store).total_transactions == len(rows)
    assert stats_of(memory_store).total_volume == sum(r.price for r in rows)
    bulk_buy = events[5]
    assert memory_store.load(Txs, event_id(bulk_buy.meta.tx_hash, 0)).token_ids == [2, 3]


# ---------------------------------------------------------------------------
# Rejections leave the store untouched
# ---------------------------------------------------------------------------


def test_buy_of_unminted_token_is_rejected(memory_store, ev):
    apply(memory_store, ev.created())
    before = snapshot(memory_store)
    with pytest.raises(MissingParentEntity):
        apply(memory_store, ev.bought(B, 1, 100))
    assert snapshot(memory_store) == before


def test_bulk_buy_with_one_unknown_token_changes_nothing(memory_store, ev):
    apply(memory_store, ev.created(), ev.bulk_mint(A, [1, 2], 20))
    before = snapshot(memory_store)

    with pytest.raises(MissingParentEntity):
        apply(memory_store, ev.bulk_buy(B, [1, 2, 99], 300))

    assert snapshot(memory_store) == before


def test_bulk_mint_of_existing_token_is_rejected(memory_store, ev):
    apply(memory_store, ev.created(), ev.minted(A, 2, 10))
    before = snapshot(memory_store)

    with pytest.raises(DuplicateCreate):
        apply(memory_store, ev.bulk_mint(B, [1, 2, 3], 30))

    assert snapshot(memory_store) == before


def test_trade_on_unknown_collection_is_rejected(memory_store, ev):
    with pytest.raises(MissingParentEntity):
        apply(memory_store, ev.minted(A, 1, 100))
    assert snapshot(memory_store) == snapshot(type(memory_store)())


@pytest.mark.parametrize("token_ids", [[], [1, 1]])
def test_bulk_events_reject_empty_or_repeated_ids(ev, token_ids):
    with pytest.raises(MalformedEvent):
        ev.bulk_buy(B, token_ids, 10)


# ---------------------------------------------------------------------------
# Cross-chain transfer
# ---------------------------------------------------------------------------


def test_cross_chain_transfer_parks_token_and_keeps_stats(store, ev):
    apply(store, ev.created(), ev.minted(A, 1, 100))
    stats_before = stats_of(store)
    transfer = ev.transfer(A, 1, B, "0x" + "de" * 20)

    apply(store, transfer)

    assert stats_of(store) == stats_before
    assert owner_of(store, 1) == COLLECTION
    assert count_of(store, A) == 1
    status = store.load(CrossChainStatus, cross_chain_status_id(COLLECTION, 1))
    assert status.is_transferred
    assert (status.sender, status.receiver) == (A, B)
    assert status.transaction_hash == transfer.meta.tx_hash


def test_cross_chain_status_is_last_write_wins(store, ev):
    apply(store, ev.created(), ev.minted(A, 1, 100))
    apply(store, ev.transfer(A, 1, B, "0x" + "de" * 20), ev.transfer(A, 1, C, "0x" + "df" * 20))
    assert store.load(CrossChainStatus, cross_chain_status_id(COLLECTION, 1)).receiver == C


def test_cross_chain_transfer_of_unknown_token_is_rejected(memory_store, ev):
    apply(memory_store, ev.created())
    before = snapshot(memory_store)
    with pytest.raises(MissingParentEntity):
        apply(memory_store, ev.transfer(A, 1, B, "0x" + "de" * 20))
    assert snapshot(memory_store) == before


# ---------------------------------------------------------------------------
# Address case
# ---------------------------------------------------------------------------


def mixed_case(address: str) -> str:
    return "0x" + address[2:].upper()


def test_mixed_case_addresses_land_on_lowercase_rows(store):
    ev = EventFactory(mixed_case(COLLECTION))
    bought = ev.bought(mixed_case(B), 1, 150)
    apply(store, ev.created(), ev.minted(mixed_case(A), 1, 100), bought)

    assert owner_of(store, 1) == B
    assert (count_of(store, A), count_of(store, B)) == (0, 1)
    assert stats_of(store).owner_count == 1
    assert store.load(Txs, event_id(bought.meta.tx_hash, bought.meta.log_index)).sender == B


def test_event_constructors_lowercase_addresses(ev):
    transfer = ev.transfer(mixed_case(A), 1, mixed_case(B), mixed_case(C))
    assert (transfer.sender, transfer.receiver, transfer.destination) == (A, B, C)
    assert ev.bulk_buy(mixed_case(B), [1], 10).counterparty == B
