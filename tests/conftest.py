from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from flipindex.core.events import (
    Bought,
    BulkBuyExecuted,
    BulkMintExecuted,
    BulkQuickBuyExecuted,
    BulkSellExecuted,
    CollectionCreated,
    ConfigChanged,
    ConfigField,
    CrossChainSettings,
    Minted,
    QuickBuyExecuted,
    Sold,
    TransferCrossChain,
)
from flipindex.core.models import ENTITY_TYPES, Meta
from flipindex.dispatch import route
from flipindex.storage import DuckDBEntityStore, MemoryEntityStore

COLLECTION = "0x" + "c0" * 20
OTHER_COLLECTION = "0x" + "c1" * 20
CREATOR = "0x" + "cc" * 20
A = "0x" + "aa" * 20
B = "0x" + "bb" * 20
C = "0x" + "dd" * 20


class EventFactory:
    """Builds typed events at strictly increasing chain positions."""

    def __init__(self, collection: str = COLLECTION) -> None:
        self.collection = collection
        self.block = 100

    def meta(self) -> Meta:
        self.block += 1
        return Meta(
            block_number=self.block,
            block_timestamp=1_700_000_000 + self.block * 12,
            tx_hash="0x" + f"{self.block:064x}",
            log_index=0,
            address=self.collection,
        )

    def created(self, *, initial_price: int = 100, name: str = "Flip", cross_chain: CrossChainSettings | None = None):
        return CollectionCreated(
            meta=self.meta(),
            creator=CREATOR,
            flip_address=self.collection,
            price_address="0x" + "99" * 20,
            name=name,
            symbol="FLP",
            initial_price=initial_price,
            max_supply=1_000,
            max_price=10_000,
            creator_fee_percent=5,
            base_uri="ipfs://flip/",
            cross_chain=cross_chain,
        )

    def config(self, field: ConfigField, value: str | int) -> ConfigChanged:
        return ConfigChanged(meta=self.meta(), flip_address=self.collection, field=field, value=value)

    def minted(self, to: str, token_id: int, price: int) -> Minted:
        return Minted(meta=self.meta(), flip_contract=self.collection, to=to, token_id=token_id, price=price)

    def bought(self, buyer: str, token_id: int, price: int) -> Bought:
        return Bought(self.meta(), self.collection, buyer, token_id, price)

    def sold(self, seller: str, token_id: int, price: int) -> Sold:
        return Sold(self.meta(), self.collection, seller, token_id, price)

    def quick_buy(self, buyer: str, token_id: int, price: int) -> QuickBuyExecuted:
        return QuickBuyExecuted(self.meta(), self.collection, buyer, token_id, price)

    def bulk_buy(self, buyer: str, token_ids: list[int], total: int) -> BulkBuyExecuted:
        return BulkBuyExecuted(self.meta(), self.collection, buyer, tuple(token_ids), total)

    def bulk_sell(self, seller: str, token_ids: list[int], total: int) -> BulkSellExecuted:
        return BulkSellExecuted(self.meta(), self.collection, seller, tuple(token_ids), total)

    def bulk_quick_buy(self, buyer: str, token_ids: list[int], total: int) -> BulkQuickBuyExecuted:
        return BulkQuickBuyExecuted(self.meta(), self.collection, buyer, tuple(token_ids), total)

    def bulk_mint(self, buyer: str, token_ids: list[int], total: int) -> BulkMintExecuted:
        return BulkMintExecuted(self.meta(), self.collection, buyer, tuple(token_ids), total)

    def transfer(self, sender: str, token_id: int, receiver: str, destination: str) -> TransferCrossChain:
        return TransferCrossChain(self.meta(), self.collection, sender, token_id, receiver, destination)


def apply(store, *events) -> None:
    """Apply events through the handlers, one transaction each."""
    for event in events:
        with store.transaction():
            route(store, event)


def snapshot(store: MemoryEntityStore) -> dict[type, list]:
    return {t: store.all(t) for t in ENTITY_TYPES}


@pytest.fixture
def ev() -> EventFactory:
    return EventFactory()


@pytest.fixture
def memory_store() -> MemoryEntityStore:
    return MemoryEntityStore()


@pytest.fixture
def duckdb_store():
    store = DuckDBEntityStore()
    yield store
    store.close()


@pytest.fixture(params=["memory", "duckdb"])
def store(request):
    if request.param == "memory":
        yield MemoryEntityStore()
        return
    s = DuckDBEntityStore()
    yield s
    s.close()


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.get_logs = AsyncMock(return_value=[])
    rpc.latest_block = AsyncMock(return_value=100)
    rpc.aclose = AsyncMock()
    return rpc


@pytest.fixture
def mock_manifest():
    manifest = AsyncMock()
    manifest.append = AsyncMock()
    return manifest
