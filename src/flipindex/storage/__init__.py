"""Entity stores, read-model queries, snapshots and the run manifest.

This package provides:
- MemoryEntityStore: dict-backed store with staged transactions
- DuckDBEntityStore: persistent store, one table per entity type
- LiveManifest: append-only JSONL journal of processed chunks
- export_parquet: Parquet snapshot of every entity table
"""

from flipindex.storage.duckdb_store import DuckDBEntityStore
from flipindex.storage.export import export_parquet
from flipindex.storage.manifest import LiveManifest
from flipindex.storage.memory import MemoryEntityStore

__all__ = [
    "DuckDBEntityStore",
    "export_parquet",
    "LiveManifest",
    "MemoryEntityStore",
]
