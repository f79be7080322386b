"""Parquet snapshots of the materialized views.

One file per entity table, written atomically (tmp + replace) with the same
zstd codec the shard writers use. uint256 columns keep their decimal-string
representation.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from flipindex.storage.duckdb_store import TABLES, DuckDBEntityStore

logger = logging.getLogger(__name__)


def _atomic_write(out_path: Path, table: pa.Table, codec: str) -> Path:
    tmp = out_path.with_suffix(".tmp")
    pq.write_table(table, tmp, compression=codec)
    os.replace(tmp, out_path)
    return out_path


def export_parquet(store: DuckDBEntityStore, out_dir: Path, *, codec: str = "zstd") -> dict[str, Path]:
    """Write every entity table to `<out_dir>/<table>.parquet`.

    Returns
    -------
    dict[str, Path]
        Table name → written file.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    written: dict[str, Path] = {}
    for spec in TABLES.values():
        table = store.connection.execute(
            f"SELECT {', '.join(spec.names)} FROM {spec.table} ORDER BY id"
        ).fetch_arrow_table()
        path = _atomic_write(out_dir / f"{spec.table}.parquet", table, codec)
        logger.info("wrote %s (rows=%d, cols=%d)", path, table.num_rows, table.num_columns)
        written[spec.table] = path
    return written
