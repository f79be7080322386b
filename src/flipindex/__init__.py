from __future__ import annotations

from .core.events import IndexedEvent
from .core.models import CollectionInfo, CollectionStats, NFTOwnership, OwnershipSummary, Txs, TxType
from .decoding.registries import make_factory_registry, make_flip_registry, make_trade_registry
from .dispatch.dispatcher import Dispatcher
from .storage.duckdb_store import DuckDBEntityStore
from .storage.memory import MemoryEntityStore

__all__ = [
    "IndexedEvent",
    "CollectionInfo",
    "CollectionStats",
    "NFTOwnership",
    "OwnershipSummary",
    "Txs",
    "TxType",
    "make_factory_registry",
    "make_flip_registry",
    "make_trade_registry",
    "Dispatcher",
    "DuckDBEntityStore",
    "MemoryEntityStore",
]
