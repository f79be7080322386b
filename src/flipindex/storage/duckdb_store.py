"""DuckDB-backed entity store.

One table per entity type, DDL derived from the dataclass fields:
- `str` → VARCHAR, `bool` → BOOLEAN, `int` → BIGINT
- fields flagged `UINT256` → VARCHAR (decimal) / VARCHAR[] for lists,
  since DuckDB integers stop at 128 bits
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import duckdb

from flipindex.core.errors import StoreUnavailable, UnstorableEntity
from flipindex.core.interfaces import E
from flipindex.core.models import ENTITY_TYPES, Entity

_TRANSIENT = (
    duckdb.IOException,
    duckdb.TransactionException,
    duckdb.ConnectionException,
    duckdb.InterruptException,
)


@dataclass(frozen=True)
class _Column:
    name: str
    sql_type: str
    uint256: bool
    is_list: bool

    def encode(self, value: Any) -> Any:
        if value is None or not self.uint256:
            return value
        if self.is_list:
            return [str(v) for v in value]
        return str(value)

    def decode(self, value: Any) -> Any:
        if value is None or not self.uint256:
            return value
        if self.is_list:
            return [int(v) for v in value]
        return int(value)


def _column(f) -> _Column:
    typ = str(f.type).replace(" ", "")
    uint256 = bool(f.metadata.get("uint256"))
    is_list = typ.startswith("list[")
    if uint256:
        sql = "VARCHAR[]" if is_list else "VARCHAR"
    elif typ.startswith("bool"):
        sql = "BOOLEAN"
    elif typ.startswith("int"):
        sql = "BIGINT"
    else:
        sql = "VARCHAR"
    return _Column(f.name, sql, uint256, is_list)


@dataclass(frozen=True)
class TableSpec:
    table: str
    entity_type: type
    columns: tuple[_Column, ...]

    @classmethod
    def of(cls, entity_type: type) -> TableSpec:
        return cls(entity_type.__table__, entity_type, tuple(_column(f) for f in fields(entity_type)))

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.columns]

    def ddl(self) -> str:
        cols = ",\n  ".join(
            f"{c.name} {c.sql_type}" + (" PRIMARY KEY" if c.name == "id" else "") for c in self.columns
        )
        return f"CREATE TABLE IF NOT EXISTS {self.table} (\n  {cols}\n)"

    def upsert_sql(self) -> str:
        marks = ", ".join("?" for _ in self.columns)
        return f"INSERT OR REPLACE INTO {self.table} ({', '.join(self.names)}) VALUES ({marks})"

    def select_sql(self) -> str:
        return f"SELECT {', '.join(self.names)} FROM {self.table} WHERE id = ?"

    def to_row(self, entity: Entity) -> list[Any]:
        return [c.encode(getattr(entity, c.name)) for c in self.columns]

    def from_row(self, row: tuple[Any, ...]) -> Any:
        return self.entity_type(**{c.name: c.decode(v) for c, v in zip(self.columns, row)})


TABLES: dict[type, TableSpec] = {t: TableSpec.of(t) for t in ENTITY_TYPES}


class DuckDBEntityStore:
    """Persistent entity store on a single DuckDB connection.

    Parameters
    ----------
    path : Path | str
        Database file, or ":memory:".
    """

    def __init__(self, path: Path | str = ":memory:") -> None:
        if isinstance(path, Path):
            path.parent.mkdir(parents=True, exist_ok=True)
            path = path.as_posix()
        try:
            self._con = duckdb.connect(path)
        except _TRANSIENT as e:
            raise StoreUnavailable(f"cannot open {path}: {e}") from e
        self._in_tx = False
        for spec in TABLES.values():
            self._con.execute(spec.ddl())

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        return self._con

    def load(self, entity_type: type[E], entity_id: str) -> E | None:
        spec = TABLES[entity_type]
        try:
            row = self._con.execute(spec.select_sql(), [entity_id]).fetchone()
        except _TRANSIENT as e:
            raise StoreUnavailable(f"load {spec.table}/{entity_id}: {e}") from e
        except duckdb.Error as e:
            raise UnstorableEntity(f"load {spec.table}/{entity_id}: {e}") from e
        return spec.from_row(row) if row is not None else None

    def save(self, entity: Entity) -> None:
        spec = TABLES[type(entity)]
        try:
            self._con.execute(spec.upsert_sql(), spec.to_row(entity))
        except _TRANSIENT as e:
            raise StoreUnavailable(f"save {spec.table}/{entity.id}: {e}") from e
        except duckdb.Error as e:
            raise UnstorableEntity(f"save {spec.table}/{entity.id}: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._in_tx:
            raise RuntimeError("nested transactions are not supported")
        try:
            self._con.begin()
        except _TRANSIENT as e:
            raise StoreUnavailable(f"begin: {e}") from e
        self._in_tx = True
        try:
            yield
        except BaseException:
            self._in_tx = False
            self._con.rollback()
            raise
        self._in_tx = False
        try:
            self._con.commit()
        except _TRANSIENT as e:
            # a failed COMMIT has already aborted the transaction
            raise StoreUnavailable(f"commit: {e}") from e

    def count(self, entity_type: type) -> int:
        row = self._con.execute(f"SELECT count(*) FROM {TABLES[entity_type].table}").fetchone()
        return int(row[0]) if row else 0

    def close(self) -> None:
        self._con.close()

    def __enter__(self) -> DuckDBEntityStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
