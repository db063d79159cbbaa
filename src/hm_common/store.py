"""Relational store adapter shared by every entity.

One ``SqlEntityStore`` per entity translates between ORM rows and the
entity's domain dataclass through an explicit column map. The map also
drives partial updates: a value equal to its column's zero value is treated
as "not provided" and left out of the UPDATE.

Transaction ownership:
  - plain calls open a session from the injected factory and commit;
  - calls given ``session=`` run inside the caller's transaction and only
    flush, the caller commits or rolls back.
"""

from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, fields
from typing import Any, Generic, Protocol, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from src.hm_common.database import Base
from src.hm_common.datetime_utils import now_str

K = TypeVar("K")
T = TypeVar("T")


@dataclass(frozen=True)
class Field:
    """One writable attribute: domain field, table column, and its zero value."""

    name: str
    column: str
    zero: Any = 0

    def is_zero(self, value: Any) -> bool:
        return value is None or value == self.zero


class ColumnMap:
    def __init__(self, writable: Sequence[Field]) -> None:
        self.writable = list(writable)
        self._by_name = {f.name: f for f in self.writable}

    def sparse_update(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        """Column → value for every known field whose value is not its zero value.

        A deliberate update to 0 or "" is indistinguishable from an omitted
        field and is dropped.
        """
        values: dict[str, Any] = {}
        for name, value in changes.items():
            f = self._by_name.get(name)
            if f is None or f.is_zero(value):
                continue
            values[f.column] = value
        return values

    def insert_values(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        """Column → value for every known field present in ``changes``."""
        return {
            self._by_name[name].column: value
            for name, value in changes.items()
            if name in self._by_name
        }


class EntityStore(Protocol[K, T]):
    """What the repository needs from the source of truth."""

    columns: ColumnMap
    key_field: str

    @property
    def whitelist(self) -> Mapping[str, ColumnElement[Any]]: ...

    async def fetch_one(self, key: K) -> T | None: ...

    async def fetch_many(self, keys: Sequence[K]) -> list[T]: ...

    async def fetch_first(self, clause: ColumnElement[bool] | None) -> T | None: ...

    async def count(self, clause: ColumnElement[bool] | None) -> int: ...

    async def fetch_page(
        self,
        clause: ColumnElement[bool] | None,
        order_by: Sequence[ColumnElement[Any]],
        limit: int,
        offset: int,
    ) -> list[T]: ...

    async def insert(
        self, values: Mapping[str, Any], session: AsyncSession | None = None
    ) -> T: ...

    async def update(
        self, key: K, values: Mapping[str, Any], session: AsyncSession | None = None
    ) -> int: ...

    async def delete(
        self, keys: Sequence[K], session: AsyncSession | None = None
    ) -> int: ...


class SqlEntityStore(Generic[K, T]):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        orm_model: type[Base],
        entity_type: type[T],
        key_field: str,
        columns: ColumnMap,
        soft_delete_column: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._orm = orm_model
        self._entity_type = entity_type
        self._entity_fields = [f.name for f in fields(entity_type)]  # type: ignore[arg-type]
        self._table = orm_model.__table__  # type: ignore[attr-defined]
        self.key_field = key_field
        self.columns = columns
        self._key_col = self._table.c[key_field]
        self._tombstone = (
            self._table.c[soft_delete_column] if soft_delete_column else None
        )

    @property
    def whitelist(self) -> dict[str, ColumnElement[Any]]:
        return {c.name: c for c in self._table.c}

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self, session: AsyncSession | None) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            await session.flush()
            return
        async with self._session_factory() as own, own.begin():
            yield own

    def _live(self, clause: ColumnElement[bool] | None = None) -> list[ColumnElement[bool]]:
        where: list[ColumnElement[bool]] = []
        if self._tombstone is not None:
            where.append(self._tombstone.is_(None))
        if clause is not None:
            where.append(clause)
        return where

    def _to_entity(self, row: Any) -> T:
        return self._entity_type(
            **{name: getattr(row, name) for name in self._entity_fields}
        )

    async def _fetch(self, stmt: Any) -> list[T]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_entity(row) for row in result.scalars().all()]

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    async def fetch_one(self, key: K) -> T | None:
        rows = await self._fetch(
            select(self._orm).where(self._key_col == key, *self._live()).limit(1)
        )
        return rows[0] if rows else None

    async def fetch_many(self, keys: Sequence[K]) -> list[T]:
        if not keys:
            return []
        return await self._fetch(
            select(self._orm).where(self._key_col.in_(list(keys)), *self._live())
        )

    async def fetch_first(self, clause: ColumnElement[bool] | None) -> T | None:
        rows = await self._fetch(
            select(self._orm).where(*self._live(clause)).order_by(self._key_col).limit(1)
        )
        return rows[0] if rows else None

    async def count(self, clause: ColumnElement[bool] | None) -> int:
        stmt = select(func.count()).select_from(self._table).where(*self._live(clause))
        async with self._session_factory() as session:
            return int((await session.execute(stmt)).scalar_one())

    async def fetch_page(
        self,
        clause: ColumnElement[bool] | None,
        order_by: Sequence[ColumnElement[Any]],
        limit: int,
        offset: int,
    ) -> list[T]:
        return await self._fetch(
            select(self._orm)
            .where(*self._live(clause))
            .order_by(*order_by)
            .limit(limit)
            .offset(offset)
        )

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    async def insert(
        self, values: Mapping[str, Any], session: AsyncSession | None = None
    ) -> T:
        now = now_str()
        row = self._orm(**{**values, "created_at": now, "updated_at": now})
        async with self._session(session) as s:
            s.add(row)
            await s.flush()  # Assigns the autoincrement key
            await s.refresh(row)  # Load defaults without lazy IO
            return self._to_entity(row)

    async def update(
        self, key: K, values: Mapping[str, Any], session: AsyncSession | None = None
    ) -> int:
        stmt = (
            update(self._table)
            .where(self._key_col == key, *self._live())
            .values(**values, updated_at=now_str())
        )
        async with self._session(session) as s:
            result = await s.execute(stmt)
            return int(result.rowcount or 0)

    async def delete(
        self, keys: Sequence[K], session: AsyncSession | None = None
    ) -> int:
        if not keys:
            return 0
        where = self._key_col.in_(list(keys))
        if self._tombstone is not None:
            stmt: Any = (
                update(self._table)
                .where(where, *self._live())
                .values({self._tombstone.name: now_str()})
            )
        else:
            stmt = delete(self._table).where(where)
        async with self._session(session) as s:
            result = await s.execute(stmt)
            return int(result.rowcount or 0)


