from __future__ import annotations

from contextlib import AbstractContextManager
from typing import List, Protocol, TypeVar, runtime_checkable

from flipindex.core.models import ChunkRecord, Entity, EventLog

E = TypeVar("E", bound=Entity)


# ---------------------------------------------------------------------------
# IEntityStore
# ---------------------------------------------------------------------------

@runtime_checkable
class IEntityStore(Protocol):
    """
    Key-addressable entity storage with load/modify/save semantics.

    Domain expectations:
    - `load` returns a fresh copy; mutating it has no effect until `save`.
    - There are no multi-entity guarantees outside `transaction()`.
    - Transient failures surface as `StoreUnavailable`.
    """

    def load(self, entity_type: type[E], entity_id: str) -> E | None:
        """Return the entity with this id, or None if absent."""
        ...

    def save(self, entity: Entity) -> None:
        """Insert or replace the entity keyed by its `id`."""
        ...

    def transaction(self) -> AbstractContextManager[None]:
        """
        Group the writes of one event.

        Writes become visible on normal exit and are discarded if the block
        raises. Implementations:
        - MemoryEntityStore (staged dict)
        - DuckDBEntityStore (BEGIN / COMMIT / ROLLBACK)
        """
        ...


# ---------------------------------------------------------------------------
# IEvmLogsProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class IEvmLogsProvider(Protocol):
    """
    Abstract provider for fetching EVM logs.

    Domain expectations:
    - It returns EventLog objects with `block_timestamp` filled in.
    - It only serves blocks that are final for the caller's purposes.
    """

    async def get_logs(
        self,
        *,
        addresses: list[str],
        from_block: int,
        to_block: int,
    ) -> List[EventLog]:
        """Return all logs emitted by `addresses` over the inclusive block range."""
        ...

    async def latest_block(self) -> int:
        """Return the current chain head height."""
        ...


# ---------------------------------------------------------------------------
# IManifestRepository
# ---------------------------------------------------------------------------

@runtime_checkable
class IManifestRepository(Protocol):
    """
    Append-only manifest repository for chunk status tracking.

    The manifest is an audit journal; resumption is driven by the entity
    store's SyncState, not by the manifest.
    """

    async def append(self, record: ChunkRecord) -> None:
        """Append a new ChunkRecord (started/done/failed)."""
        ...
