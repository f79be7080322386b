"""Ingestion orchestrator: fetch → decode → dispatch, in chain order.

This module provides two layers:

1) `index_network(...)`:
   - Pure application-layer use case.
   - Depends ONLY on interfaces (IEvmLogsProvider, IEntityStore,
     IManifestRepository).
   - Does NOT instantiate RPC, stores or manifests, and does not close them.

2) `run_index(...)` (convenience wrapper):
   - Wires concrete implementations (RPC, DuckDBEntityStore, LiveManifest)
     for CLI / script usage and manages their lifecycle.

Chunks are processed strictly sequentially: a later block must never be
applied before an earlier one. A failing fetch splits the chunk in half; a
single block that still fails aborts the run after recording it as failed.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from flipindex.clients.rpc import RPC
from flipindex.core.config import RunConfig
from flipindex.core.errors import MalformedEvent
from flipindex.core.events import IndexedEvent
from flipindex.core.interfaces import IEntityStore, IEvmLogsProvider, IManifestRepository
from flipindex.core.models import ChunkRecord, EventLog, SyncState
from flipindex.decoding import EventRegistry, decode_log, make_flip_registry, to_indexed_event
from flipindex.dispatch import DispatchStats, Dispatcher
from flipindex.orchestration.utils import WorkSeed, build_work_seeds
from flipindex.storage.duckdb_store import DuckDBEntityStore
from flipindex.storage.manifest import LiveManifest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stats / output
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class IndexStats:
    """Aggregated counters for one ingestion run."""

    chunks_done: int = 0
    chunks_failed: int = 0
    total_logs: int = 0
    decoded: int = 0
    unknown: int = 0  # logs whose topic0 is not in the registry
    malformed: int = 0  # logs that failed decoding
    dispatch: DispatchStats = field(default_factory=DispatchStats)


@dataclass(kw_only=True)
class IndexOutput:
    """High-level output of the orchestrator."""

    network: str
    from_block: int
    to_block: int
    stats: IndexStats

    @property
    def up_to_date(self) -> bool:
        return self.from_block > self.to_block


ChunkCallback = Callable[[ChunkRecord], None]


# ---------------------------------------------------------------------------
# Range resolution
# ---------------------------------------------------------------------------


async def resolve_block_range(
    config: RunConfig,
    logs_provider: IEvmLogsProvider,
    store: IEntityStore,
) -> tuple[int, int]:
    """Return the inclusive range still to index; empty when start > end."""
    net = config.network
    if isinstance(config.end_block, str):
        if config.end_block.lower() != "latest":
            raise ValueError(f"unsupported end block {config.end_block!r}")
        end = await logs_provider.latest_block() - net.confirmations
    else:
        end = int(config.end_block)

    start = net.start_block
    state = store.load(SyncState, net.name)
    if state is not None:
        start = max(start, state.last_block + 1)
    return start, end


# ---------------------------------------------------------------------------
# Chunk processing
# ---------------------------------------------------------------------------


def _record(
    network: str,
    seed: WorkSeed,
    status: str,
    *,
    error: str | None = None,
    logs: int = 0,
    decoded: int = 0,
    dispatch: DispatchStats | None = None,
) -> ChunkRecord:
    return ChunkRecord(
        network=network,
        from_block=seed.start,
        to_block=seed.end,
        status=status,
        error=error,
        logs=logs,
        decoded=decoded,
        applied=dispatch.applied if dispatch else 0,
        rejected=dispatch.rejected if dispatch else 0,
        updated_at=time.time(),
    )


def decode_logs(logs: list[EventLog], registry: EventRegistry, stats: IndexStats) -> list[IndexedEvent]:
    """Decode chain-ordered logs into typed events, counting the ones left out."""
    events: list[IndexedEvent] = []
    for log in logs:
        try:
            parsed = decode_log(log, registry)
            if parsed is None:
                stats.unknown += 1
                continue
            events.append(to_indexed_event(parsed))
        except MalformedEvent as e:
            stats.malformed += 1
            logger.error("malformed log %s-%d at block %d: %s", log.tx_hash, log.log_index, log.block_number, e)
    stats.decoded += len(events)
    return events


async def _process_seed(
    seed: WorkSeed,
    *,
    config: RunConfig,
    logs_provider: IEvmLogsProvider,
    store: IEntityStore,
    manifest_repo: IManifestRepository,
    dispatcher: Dispatcher,
    registry: EventRegistry,
    stats: IndexStats,
    on_chunk: ChunkCallback | None,
) -> None:
    """Process one seed, splitting it on fetch failures (left half first)."""
    net = config.network
    stack: list[WorkSeed] = [seed]

    while stack:
        current = stack.pop()
        await manifest_repo.append(_record(net.name, current, "started"))
        try:
            logs = await logs_provider.get_logs(
                addresses=net.contract_addresses,
                from_block=current.start,
                to_block=current.end,
            )
        except Exception as e:
            stats.chunks_failed += 1
            failed = _record(net.name, current, "failed", error=str(e))
            await manifest_repo.append(failed)
            if on_chunk is not None:
                on_chunk(failed)
            if current.single_block:
                logger.error("block %d cannot be fetched, aborting: %s", current.start, e)
                raise
            logger.warning("fetch [%d, %d] failed, splitting: %s", current.start, current.end, e)
            left, right = current.split()
            stack.extend([right, left])
            continue

        stats.total_logs += len(logs)
        decoded_before = stats.decoded
        events = decode_logs(logs, registry, stats)
        chunk_stats = await dispatcher.dispatch_stream(events)
        stats.dispatch.merge(chunk_stats)

        with store.transaction():
            store.save(SyncState(id=net.name, last_block=current.end))

        stats.chunks_done += 1
        done = _record(
            net.name,
            current,
            "done",
            logs=len(logs),
            decoded=stats.decoded - decoded_before,
            dispatch=chunk_stats,
        )
        await manifest_repo.append(done)
        if on_chunk is not None:
            on_chunk(done)
        logger.info(
            "[%d, %d] logs=%d events=%d applied=%d rejected=%d",
            current.start,
            current.end,
            len(logs),
            done.decoded,
            chunk_stats.applied,
            chunk_stats.rejected,
        )


# ---------------------------------------------------------------------------
# 1) Pure application use case
# ---------------------------------------------------------------------------


async def index_network(
    *,
    config: RunConfig,
    logs_provider: IEvmLogsProvider,
    store: IEntityStore,
    manifest_repo: IManifestRepository,
    registry: EventRegistry | None = None,
    on_start: Callable[[int, int], None] | None = None,
    on_chunk: ChunkCallback | None = None,
) -> IndexOutput:
    """Index the network's factory and trade contracts up to the configured end block.

    Resumes after the stored `SyncState`; re-running over an indexed range is
    a no-op thanks to the per-collection checkpoints.
    """
    net = config.network
    start, end = await resolve_block_range(config, logs_provider, store)
    stats = IndexStats()
    output = IndexOutput(network=net.name, from_block=start, to_block=end, stats=stats)
    if start > end:
        logger.info("%s is up to date (next block %d, target %d)", net.name, start, end)
        return output

    logger.info("indexing %s blocks [%d, %d] step=%d", net.name, start, end, net.step)
    if on_start is not None:
        on_start(start, end)

    dispatcher = Dispatcher(
        store,
        max_attempts=config.max_store_attempts,
        retry_backoff_s=config.store_retry_backoff_s,
    )
    registry = registry if registry is not None else make_flip_registry()
    for seed in build_work_seeds(start, end, net.step):
        await _process_seed(
            seed,
            config=config,
            logs_provider=logs_provider,
            store=store,
            manifest_repo=manifest_repo,
            dispatcher=dispatcher,
            registry=registry,
            stats=stats,
            on_chunk=on_chunk,
        )
    return output


# ---------------------------------------------------------------------------
# 2) Convenience wrapper with concrete wiring
# ---------------------------------------------------------------------------


async def run_index(
    config: RunConfig,
    *,
    database_path: Path,
    on_start: Callable[[int, int], None] | None = None,
    on_chunk: ChunkCallback | None = None,
) -> IndexOutput:
    """Wire RPC + DuckDB store + live manifest and run `index_network`."""
    net = config.network
    database_path.parent.mkdir(parents=True, exist_ok=True)
    rpc = RPC(net.rpc_url, timeout_s=net.timeout_s)
    store = DuckDBEntityStore(str(database_path))
    manifest = LiveManifest.for_run(config.manifests_dir, net.name)
    try:
        return await index_network(
            config=config,
            logs_provider=rpc,
            store=store,
            manifest_repo=manifest,
            on_start=on_start,
            on_chunk=on_chunk,
        )
    finally:
        store.close()
        await rpc.aclose()
