from __future__ import annotations

import dataclasses

import pyarrow.parquet as pq
import pytest
from conftest import A, B, C, COLLECTION, OTHER_COLLECTION, EventFactory, apply

from flipindex.core.errors import UnstorableEntity
from flipindex.core.events import ConfigField
from flipindex.core.models import CollectionInfo, CollectionStats, NFTOwnership, Txs, TxType
from flipindex.dispatch import Dispatcher, Outcome
from flipindex.storage import DuckDBEntityStore, export_parquet
from flipindex.storage.queries import (
    count_txs,
    fetch_collections,
    fetch_cross_chain_status,
    fetch_holders,
    fetch_txs,
)

BIG = 2**255 + 12345


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


def test_uint256_values_survive_a_round_trip(duckdb_store):
    tx = Txs(
        id="0xabc-1",
        collection_address=COLLECTION,
        tx_type=int(TxType.BULK_BUY),
        sender=A,
        price=BIG,
        token_ids=[BIG, 1, 0],
        block_number=1,
        block_timestamp=2,
        transaction_hash="0xabc",
        log_index=1,
    )
    duckdb_store.save(tx)
    assert duckdb_store.load(Txs, tx.id) == tx


def test_save_is_an_upsert(duckdb_store):
    duckdb_store.save(CollectionStats(id=COLLECTION, total_volume=5))
    duckdb_store.save(CollectionStats(id=COLLECTION, total_volume=BIG))

    assert duckdb_store.count(CollectionStats) == 1
    assert duckdb_store.load(CollectionStats, COLLECTION).total_volume == BIG


def test_missing_row_loads_as_none(duckdb_store):
    assert duckdb_store.load(NFTOwnership, "0xnope") is None


def test_failed_transaction_rolls_back(duckdb_store):
    duckdb_store.save(CollectionStats(id=COLLECTION, current_supply=1))

    with pytest.raises(RuntimeError):
        with duckdb_store.transaction():
            duckdb_store.save(CollectionStats(id=COLLECTION, current_supply=2))
            duckdb_store.save(CollectionStats(id=OTHER_COLLECTION))
            raise RuntimeError("boom")

    assert duckdb_store.load(CollectionStats, COLLECTION).current_supply == 1
    assert duckdb_store.load(CollectionStats, OTHER_COLLECTION) is None


def test_nested_transactions_are_refused(duckdb_store):
    with duckdb_store.transaction():
        with pytest.raises(RuntimeError):
            with duckdb_store.transaction():
                pass


def test_data_persists_across_connections(tmp_path):
    path = tmp_path / "db" / "flip.duckdb"
    with DuckDBEntityStore(path) as store:
        apply(store, EventFactory().created())
    with DuckDBEntityStore(path) as store:
        assert store.load(CollectionInfo, COLLECTION).symbol == "FLP"


# ---------------------------------------------------------------------------
# Read model
# ---------------------------------------------------------------------------


@pytest.fixture
def populated(duckdb_store):
    ev = EventFactory()
    other = EventFactory(OTHER_COLLECTION)
    other.block = 5_000
    apply(
        duckdb_store,
        ev.created(),
        ev.bulk_mint(A, [1, 2, 3], 300),  # 102
        ev.bought(B, 1, 150),  # 103
        ev.bulk_sell(A, [2], 90),  # 104
        ev.transfer(B, 1, C, "0x" + "de" * 20),  # 105
        other.created(),
        other.minted(C, 10, 5),
    )
    return duckdb_store


def test_fetch_txs_is_newest_first(populated):
    df = fetch_txs(populated, collection=COLLECTION)
    assert list(df["tx_type"]) == ["BULK_SELL", "BUY", "BULK_MINT"]
    assert list(df["block_number"]) == [104, 103, 102]


def test_fetch_txs_filters(populated):
    assert list(fetch_txs(populated, sender=B)["tx_type"]) == ["BUY"]
    assert list(fetch_txs(populated, tx_types=[TxType.MINT, TxType.BULK_MINT])["tx_type"]) == ["MINT", "BULK_MINT"]
    assert list(fetch_txs(populated, collection=COLLECTION, token_id=2)["tx_type"]) == ["BULK_SELL", "BULK_MINT"]
    assert count_txs(populated) == 4
    assert count_txs(populated, collection=OTHER_COLLECTION) == 1


def test_fetch_txs_paginates(populated):
    page = fetch_txs(populated, first=2, skip=1)
    assert len(page) == 2
    assert list(page["block_number"]) == [104, 103]


def test_fetch_holders_excludes_empty_balances(populated):
    df = fetch_holders(populated, COLLECTION)
    # ties broken by first ownership
    assert list(zip(df["owner"], df["nft_count"])) == [(A, 1), (B, 1), (COLLECTION, 1)]


def test_fetch_cross_chain_status_by_sender_or_receiver(populated):
    by_sender = fetch_cross_chain_status(populated, COLLECTION, B)
    by_receiver = fetch_cross_chain_status(populated, COLLECTION, C.upper().replace("0X", "0x"))

    assert list(by_sender["token_id"]) == ["1"]
    assert list(by_receiver["receiver"]) == [C]
    assert fetch_cross_chain_status(populated, COLLECTION, A).empty


def test_fetch_collections_orders_by_volume(populated):
    df = fetch_collections(populated)
    assert list(df["address"]) == [COLLECTION, OTHER_COLLECTION]
    assert list(df["total_volume"]) == ["540", "5"]


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def test_export_parquet_writes_one_file_per_table(populated, tmp_path):
    written = export_parquet(populated, tmp_path / "snap")

    assert set(written) == {
        "collection_info",
        "collection_stats",
        "nft_ownership",
        "ownership_summary",
        "cross_chain_status",
        "txs",
        "checkpoint",
        "sync_state",
    }
    txs = pq.read_table(written["txs"])
    assert txs.num_rows == 4
    stats = pq.read_table(written["collection_stats"]).to_pylist()
    assert {row["id"]: row["total_volume"] for row in stats} == {COLLECTION: "540", OTHER_COLLECTION: "5"}
    assert not list((tmp_path / "snap").glob("*.tmp"))


# ---------------------------------------------------------------------------
# Out-of-range values
# ---------------------------------------------------------------------------


def test_creator_fee_keeps_full_uint256_range(duckdb_store, ev):
    created = dataclasses.replace(ev.created(), creator_fee_percent=2**64)

    assert Dispatcher(duckdb_store).dispatch(created) is Outcome.APPLIED
    assert duckdb_store.load(CollectionInfo, COLLECTION).creator_fee == 2**64


def test_value_outside_column_range_is_unstorable(duckdb_store):
    with pytest.raises(UnstorableEntity):
        duckdb_store.save(CollectionStats(id=COLLECTION, current_supply=2**64))

    duckdb_store.save(CollectionStats(id=COLLECTION, current_supply=1))
    assert duckdb_store.load(CollectionStats, COLLECTION).current_supply == 1


def test_unstorable_event_is_dropped_and_the_stream_continues(duckdb_store, ev):
    dispatcher = Dispatcher(duckdb_store)
    dispatcher.dispatch(ev.created())
    stats = duckdb_store.load(CollectionStats, COLLECTION)
    stats.current_supply = 2**63 - 1
    duckdb_store.save(stats)

    assert dispatcher.dispatch(ev.minted(A, 1, 100)) is Outcome.DROPPED
    assert duckdb_store.load(CollectionStats, COLLECTION) == stats
    assert duckdb_store.count(Txs) == 0
    assert dispatcher.dispatch(ev.config(ConfigField.GAS_LIMIT, 9)) is Outcome.APPLIED
    assert duckdb_store.load(CollectionInfo, COLLECTION).gas_limit == 9
