"""
queries.py
----------

Read-model queries over the DuckDB entity store, as consumed by the API
layer:

    - activity feed (txs) filterable by sender / collection / type / token
    - holder leaderboard per collection
    - cross-chain transfer status per (contract, sender-or-receiver)
    - collection overview

All functions return pandas DataFrames. Point lookups go through
`DuckDBEntityStore.load`.
"""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from flipindex.core.models import TxType
from flipindex.storage import sql_queries
from flipindex.storage.duckdb_store import DuckDBEntityStore


# =====================================================================
# ACTIVITY FEED
# =====================================================================

def _txs_filters(
    sender: str | None,
    collection: str | None,
    tx_types: Sequence[TxType] | None,
    token_id: int | None,
) -> tuple[str, list[object]]:
    conditions: list[str] = []
    params: list[object] = []
    if sender:
        conditions.append("sender = ?")
        params.append(sender.lower())
    if collection:
        conditions.append("collection_address = ?")
        params.append(collection.lower())
    if tx_types:
        conditions.append(f"tx_type IN ({', '.join('?' for _ in tx_types)})")
        params.extend(int(t) for t in tx_types)
    if token_id is not None:
        conditions.append("list_contains(token_ids, ?)")
        params.append(str(token_id))
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, params


def fetch_txs(
    store: DuckDBEntityStore,
    *,
    first: int = 20,
    skip: int = 0,
    sender: str | None = None,
    collection: str | None = None,
    tx_types: Sequence[TxType] | None = None,
    token_id: int | None = None,
) -> pd.DataFrame:
    """Activity feed, newest first.

    Args:
        store: DuckDB entity store.
        first: Page size.
        skip: Rows to skip (offset pagination).
        sender: Only rows sent by this address.
        collection: Only rows of this collection.
        tx_types: Only these transaction kinds.
        token_id: Only rows whose token list contains this id.

    Returns:
        DataFrame with one row per Txs entity; `tx_type` is mapped to its name.
    """
    where, params = _txs_filters(sender, collection, tx_types, token_id)
    query = f"{sql_queries.TXS_SELECT}{where}{sql_queries.TXS_ORDER_PAGE}"
    df = store.connection.execute(query, [*params, first, skip]).df()
    df["tx_type"] = df["tx_type"].map(lambda code: TxType(int(code)).name)
    return df


def count_txs(
    store: DuckDBEntityStore,
    *,
    sender: str | None = None,
    collection: str | None = None,
    tx_types: Sequence[TxType] | None = None,
    token_id: int | None = None,
) -> int:
    """Total rows matching the same filters as `fetch_txs`."""
    where, params = _txs_filters(sender, collection, tx_types, token_id)
    row = store.connection.execute(f"{sql_queries.TXS_COUNT} {where}", params).fetchone()
    return int(row[0]) if row else 0


# =====================================================================
# HOLDERS
# =====================================================================

def fetch_holders(store: DuckDBEntityStore, collection: str, *, first: int = 20, skip: int = 0) -> pd.DataFrame:
    """Current holders of a collection, largest balance first.

    Zero-balance summary rows are kept in the store but excluded here.
    """
    params = [collection.lower(), first, skip]
    return store.connection.execute(sql_queries.HOLDERS_QUERY, params).df()


# =====================================================================
# CROSS-CHAIN
# =====================================================================

def fetch_cross_chain_status(store: DuckDBEntityStore, contract: str, address: str) -> pd.DataFrame:
    """Latest cross-chain transfer of each token where `address` is sender or receiver."""
    address = address.lower()
    params = [contract.lower(), address, address]
    return store.connection.execute(sql_queries.CROSS_CHAIN_STATUS_QUERY, params).df()


# =====================================================================
# COLLECTIONS
# =====================================================================

def fetch_collections(store: DuckDBEntityStore, *, first: int = 20, skip: int = 0) -> pd.DataFrame:
    """Collections with their stats, highest total volume first."""
    return store.connection.execute(sql_queries.COLLECTIONS_QUERY, [first, skip]).df()
