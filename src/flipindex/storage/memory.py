from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager

from flipindex.core.interfaces import E
from flipindex.core.models import Entity

Key = tuple[str, str]


class MemoryEntityStore:
    """Dict-backed entity store.

    `load` hands out deep copies so no entity object is shared between
    handlers. Writes inside `transaction()` are staged and published only if
    the block exits normally.
    """

    def __init__(self) -> None:
        self._rows: dict[Key, Entity] = {}
        self._staged: dict[Key, Entity] | None = None

    def load(self, entity_type: type[E], entity_id: str) -> E | None:
        key = (entity_type.__table__, entity_id)
        if self._staged is not None and key in self._staged:
            return copy.deepcopy(self._staged[key])  # type: ignore[return-value]
        row = self._rows.get(key)
        return copy.deepcopy(row) if row is not None else None  # type: ignore[return-value]

    def save(self, entity: Entity) -> None:
        key = (type(entity).__table__, entity.id)
        target = self._staged if self._staged is not None else self._rows
        target[key] = copy.deepcopy(entity)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._staged is not None:
            raise RuntimeError("nested transactions are not supported")
        self._staged = {}
        try:
            yield
        except BaseException:
            self._staged = None
            raise
        staged, self._staged = self._staged, None
        self._rows.update(staged)

    def all(self, entity_type: type[E]) -> list[E]:
        """Every committed row of one entity type, in insertion order."""
        table = entity_type.__table__
        return [copy.deepcopy(row) for (t, _), row in self._rows.items() if t == table]  # type: ignore[misc]
