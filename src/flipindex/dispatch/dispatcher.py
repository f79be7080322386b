"""Event dispatcher: routes typed events to handlers, one event per transaction.

Each event is applied inside `store.transaction()` together with the
collection's `Checkpoint`, so an event is either fully applied or not at all,
and replaying an already-applied range is a no-op. Failures are resolved
through `FAILURE_POLICY`.

`dispatch_stream` runs one sequential worker per collection address; events
of different collections touch disjoint rows and may interleave. When one
worker fails, the others are cancelled between events before the error
propagates.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from flipindex.core.errors import IndexerError, MalformedEvent
from flipindex.core.events import (
    BulkMintExecuted,
    BulkTrade,
    CollectionCreated,
    ConfigChanged,
    IndexedEvent,
    Minted,
    TokenTrade,
    TransferCrossChain,
)
from flipindex.core.interfaces import IEntityStore
from flipindex.core.models import Checkpoint
from flipindex.dispatch.policy import Action, rule_for
from flipindex.handlers import (
    handle_bulk_mint,
    handle_bulk_trade,
    handle_collection_created,
    handle_config_changed,
    handle_minted,
    handle_token_trade,
    handle_transfer_cross_chain,
)

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    APPLIED = "applied"
    REPLAYED = "replayed"  # at or before the collection checkpoint, ignored
    DROPPED = "dropped"
    SKIPPED = "skipped"


@dataclass(kw_only=True)
class DispatchStats:
    """Counters for one dispatcher or one stream."""

    applied: int = 0
    replayed: int = 0
    dropped: int = 0
    skipped: int = 0
    retries: int = 0

    def record(self, outcome: Outcome) -> None:
        match outcome:
            case Outcome.APPLIED:
                self.applied += 1
            case Outcome.REPLAYED:
                self.replayed += 1
            case Outcome.DROPPED:
                self.dropped += 1
            case Outcome.SKIPPED:
                self.skipped += 1

    def merge(self, other: DispatchStats) -> None:
        self.applied += other.applied
        self.replayed += other.replayed
        self.dropped += other.dropped
        self.skipped += other.skipped
        self.retries += other.retries

    @property
    def rejected(self) -> int:
        return self.dropped + self.skipped


def describe(event: IndexedEvent) -> str:
    m = event.meta
    return f"{type(event).__name__} {event.collection} @{m.block_number}:{m.log_index} tx={m.tx_hash}"


def route(store: IEntityStore, event: IndexedEvent) -> None:
    """Call the handler for the event's concrete type."""
    match event:
        case CollectionCreated():
            handle_collection_created(store, event)
        case ConfigChanged():
            handle_config_changed(store, event)
        case Minted():
            handle_minted(store, event)
        case BulkMintExecuted():
            handle_bulk_mint(store, event)
        case BulkTrade():
            handle_bulk_trade(store, event)
        case TokenTrade():
            handle_token_trade(store, event)
        case TransferCrossChain():
            handle_transfer_cross_chain(store, event)
        case _:
            raise MalformedEvent(f"no handler for {type(event).__name__}")


class Dispatcher:
    """Apply typed events to an entity store with checkpointing and retries.

    Parameters
    ----------
    store : IEntityStore
        Target store; every event runs in its own `store.transaction()`.
    max_attempts : int
        Attempts per event when the store reports `StoreUnavailable`.
    retry_backoff_s : float
        Linear backoff base between attempts.
    """

    def __init__(
        self,
        store: IEntityStore,
        *,
        max_attempts: int = 3,
        retry_backoff_s: float = 0.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._store = store
        self._max_attempts = max_attempts
        self._retry_backoff_s = retry_backoff_s
        self._locks: dict[str, asyncio.Lock] = {}
        self.stats = DispatchStats()

    # ------------------------------------------------------------------
    # single event
    # ------------------------------------------------------------------

    def _attempt(self, event: IndexedEvent) -> Outcome:
        with self._store.transaction():
            checkpoint = self._store.load(Checkpoint, event.collection)
            if checkpoint is not None and checkpoint.covers(event.meta):
                return Outcome.REPLAYED
            route(self._store, event)
            self._advance(event)
        return Outcome.APPLIED

    def _advance(self, event: IndexedEvent) -> None:
        self._store.save(
            Checkpoint(
                id=event.collection,
                block_number=event.meta.block_number,
                log_index=event.meta.log_index,
            )
        )

    def _on_error(self, event: IndexedEvent, error: IndexerError, attempt: int) -> Outcome | None:
        """Settle the event per policy, or return None when it should be retried."""
        rule = rule_for(error)
        if rule.action is Action.RETRY:
            if attempt >= self._max_attempts:
                logger.error("giving up on %s after %d attempts: %s", describe(event), attempt, error)
                raise error
            logger.log(rule.log_level, "retrying %s (attempt %d): %s", describe(event), attempt, error)
            self.stats.retries += 1
            return None

        logger.log(rule.log_level, "%s %s: %s", rule.action.value, describe(event), error)
        # Rejected events still move the checkpoint so a replay does not
        # re-evaluate them against later state.
        with self._store.transaction():
            self._advance(event)
        return Outcome.DROPPED if rule.action is Action.DROP else Outcome.SKIPPED

    def _delay(self, attempt: int) -> float:
        return self._retry_backoff_s * attempt

    def dispatch(self, event: IndexedEvent) -> Outcome:
        """Apply one event synchronously."""
        attempt = 0
        while True:
            attempt += 1
            try:
                outcome = self._attempt(event)
            except IndexerError as e:
                outcome = self._on_error(event, e, attempt)
                if outcome is None:
                    time.sleep(self._delay(attempt))
                    continue
            self.stats.record(outcome)
            return outcome

    async def adispatch(self, event: IndexedEvent) -> Outcome:
        """Apply one event; retry backoff does not block the loop."""
        attempt = 0
        while True:
            attempt += 1
            try:
                outcome = self._attempt(event)
            except IndexerError as e:
                outcome = self._on_error(event, e, attempt)
                if outcome is None:
                    await asyncio.sleep(self._delay(attempt))
                    continue
            self.stats.record(outcome)
            return outcome

    # ------------------------------------------------------------------
    # streams
    # ------------------------------------------------------------------

    def _lock(self, collection: str) -> asyncio.Lock:
        lock = self._locks.get(collection)
        if lock is None:
            lock = self._locks[collection] = asyncio.Lock()
        return lock

    async def _drain(self, collection: str, events: list[IndexedEvent], stats: DispatchStats) -> None:
        async with self._lock(collection):
            for event in events:
                stats.record(await self.adispatch(event))
                await asyncio.sleep(0)

    async def dispatch_stream(self, events: Iterable[IndexedEvent]) -> DispatchStats:
        """Apply chain-ordered events, serialized per collection address."""
        queues: dict[str, list[IndexedEvent]] = {}
        for event in events:
            queues.setdefault(event.collection, []).append(event)

        stats = DispatchStats()
        retries_before = self.stats.retries
        workers = [
            asyncio.create_task(self._drain(collection, queue, stats)) for collection, queue in queues.items()
        ]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            # no collection may keep writing once the caller sees the failure
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        stats.retries = self.stats.retries - retries_before
        return stats
