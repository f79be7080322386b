"""Orchestration for chain-ordered ingestion with resumability.

This package provides:
- Main orchestrator (index_network) for fetching, decoding and dispatching logs
- run_index: the same with concrete RPC / DuckDB / manifest wiring
- Chunking utilities
"""

from flipindex.orchestration.indexer import IndexOutput, IndexStats, decode_logs, index_network, run_index
from flipindex.orchestration.utils import WorkSeed, build_work_seeds, iter_chunks

__all__ = [
    "IndexOutput",
    "IndexStats",
    "decode_logs",
    "index_network",
    "run_index",
    "WorkSeed",
    "build_work_seeds",
    "iter_chunks",
]
