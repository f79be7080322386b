"""Core data models, typed events, id derivation, errors and configuration.

This package provides:
- Entity models (CollectionInfo, CollectionStats, NFTOwnership, ...)
- Typed events (IndexedEvent union) and log records (EventLog, Meta)
- Configuration classes (IndexerSettings, NetworkConfig, RunConfig)
- The error taxonomy used by handlers and the dispatcher
"""

from flipindex.core.config import IndexerSettings, NetworkConfig, RunConfig, load_settings
from flipindex.core.errors import (
    ConfigError,
    DuplicateCreate,
    EventRejected,
    IndexerError,
    MalformedEvent,
    MissingConfigTarget,
    MissingParentEntity,
    StoreUnavailable,
    UnstorableEntity,
)
from flipindex.core.models import (
    ChunkRecord,
    CollectionInfo,
    CollectionStats,
    CrossChainStatus,
    EventLog,
    Meta,
    NFTOwnership,
    OwnershipSummary,
    TxType,
    Txs,
)

__all__ = [
    "IndexerSettings",
    "NetworkConfig",
    "RunConfig",
    "load_settings",
    "ConfigError",
    "DuplicateCreate",
    "EventRejected",
    "IndexerError",
    "MalformedEvent",
    "MissingConfigTarget",
    "MissingParentEntity",
    "StoreUnavailable",
    "UnstorableEntity",
    "ChunkRecord",
    "CollectionInfo",
    "CollectionStats",
    "CrossChainStatus",
    "EventLog",
    "Meta",
    "NFTOwnership",
    "OwnershipSummary",
    "TxType",
    "Txs",
]
