"""Cache-aside repository engine, one instance per entity.

Read path (get_by_key):
    invalid key           → InvalidParamsError (no cache/store access)
    cache hit             → entity
    cache placeholder     → RecordNotFoundError (store not queried)
    cache miss            → single-flight store lookup keyed by str(key):
        found             → cache it, return it
        not found         → cache placeholder, RecordNotFoundError
        store error       → re-raised, cache untouched
    cache backend failure → treated as a miss

Writes go to the store first; the cache is only ever invalidated, never
written, on the write path. Cache failures are logged and swallowed: the
store is the source of truth.

Known consistency gap: the *_by_tx variants invalidate immediately, not on
commit. A reader between invalidation and a later rollback repopulates the
cache with the pre-transaction row, which is still correct; a reader
between invalidation and commit caches the old row until its TTL expires.
"""

import logging
from collections.abc import Callable, Hashable, Mapping, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.hm_common.cache import (
    CacheBackend,
    CacheBackendError,
    CacheNotFoundError,
    CachePlaceholderError,
    EntityCache,
)
from src.hm_common.database import Base
from src.hm_common.errors import InvalidParamsError, RecordNotFoundError
from src.hm_common.query import (
    Conditions,
    Params,
    QueryParamsError,
    build_order,
    build_page,
    build_query,
)
from src.hm_common.singleflight import SingleFlight
from src.hm_common.store import ColumnMap, EntityStore, SqlEntityStore

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


def _default_key_check(key: Any) -> bool:
    return bool(key)


class CachedRepository(Generic[K, T]):
    def __init__(
        self,
        name: str,
        store: EntityStore[K, T],
        cache: EntityCache[K, T] | None = None,
        *,
        is_valid_key: Callable[[Any], bool] = _default_key_check,
        default_sort: str = "-id",
    ) -> None:
        self.name = name
        self._store = store
        self._cache = cache
        # No cache → no coalescing either
        self._sfg: SingleFlight | None = SingleFlight() if cache is not None else None
        self._is_valid_key = is_valid_key
        self._default_sort = default_sort

    @property
    def cache(self) -> EntityCache[K, T] | None:
        return self._cache

    def _check_key(self, key: K) -> None:
        if not self._is_valid_key(key):
            raise InvalidParamsError(f"{self.name} key cannot be {key!r}")

    def _key_of(self, record: T) -> K:
        return getattr(record, self._store.key_field)

    # ------------------------------------------------------------------
    # cache helpers (best-effort)
    # ------------------------------------------------------------------

    async def _invalidate(self, key: K) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.delete(key)
        except CacheBackendError as exc:
            logger.warning("cache.delete error: %s %s: %s", self.name, key, exc)

    async def _load(self, key: K) -> T:
        """Store lookup run once per key by the single-flight leader."""
        assert self._cache is not None
        record = await self._store.fetch_one(key)
        if record is None:
            try:
                await self._cache.set_placeholder(key)
            except CacheBackendError as exc:
                logger.warning("cache.set_placeholder error: %s %s: %s", self.name, key, exc)
            raise RecordNotFoundError(self.name, key)
        try:
            await self._cache.set(key, record)
        except CacheBackendError as exc:
            logger.warning("cache.set error: %s %s: %s", self.name, key, exc)
        return record

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    async def get_by_key(self, key: K) -> T:
        self._check_key(key)

        if self._cache is None or self._sfg is None:
            record = await self._store.fetch_one(key)
            if record is None:
                raise RecordNotFoundError(self.name, key)
            return record

        try:
            return await self._cache.get(key)
        except CachePlaceholderError:
            raise RecordNotFoundError(self.name, key) from None
        except CacheNotFoundError:
            pass
        except CacheBackendError as exc:
            logger.warning("cache.get error, reading store: %s %s: %s", self.name, key, exc)

        return await self._sfg.do(str(key), lambda: self._load(key))

    async def get_by_keys(self, keys: Sequence[K]) -> dict[K, T]:
        """Batch lookup. Keys found nowhere are omitted from the result."""
        wanted = list(dict.fromkeys(k for k in keys if self._is_valid_key(k)))
        if not wanted:
            return {}

        if self._cache is None:
            return {self._key_of(r): r for r in await self._store.fetch_many(wanted)}

        try:
            found = await self._cache.multi_get(wanted)
        except CacheBackendError as exc:
            logger.warning("cache.multi_get error: %s: %s", self.name, exc)
            found = {}

        missed = [k for k in wanted if k not in found]
        if not missed:
            return found

        # Drop keys whose placeholder is live: known to be absent from the store
        real_missed: list[K] = []
        for key in missed:
            try:
                found[key] = await self._cache.get(key)
            except CachePlaceholderError:
                continue
            except (CacheNotFoundError, CacheBackendError):
                real_missed.append(key)

        if not real_missed:
            return found

        records = await self._store.fetch_many(real_missed)
        for record in records:
            found[self._key_of(record)] = record
        if records:
            try:
                await self._cache.multi_set(records)
            except CacheBackendError as exc:
                logger.warning("cache.multi_set error: %s: %s", self.name, exc)

        for key in real_missed:
            if key in found:
                continue
            try:
                await self._cache.set_placeholder(key)
            except CacheBackendError as exc:
                logger.warning("cache.set_placeholder error: %s %s: %s", self.name, key, exc)

        return found

    async def get_by_condition(self, conditions: Conditions) -> T:
        """First record matching the conditions. Not cached."""
        try:
            conditions.check_valid()
            clause = build_query(conditions.columns, self._store.whitelist)
        except QueryParamsError as exc:
            raise InvalidParamsError(str(exc)) from exc
        record = await self._store.fetch_first(clause)
        if record is None:
            raise RecordNotFoundError(self.name)
        return record

    async def list_by_params(self, params: Params) -> tuple[list[T], int]:
        """Filtered page of records plus the total match count.

        With sort "ignore count" the total is not computed and reported as 0.
        """
        try:
            clause = build_query(params.columns, self._store.whitelist)
            order_by, limit, offset = build_page(
                params, self._store.whitelist, self._default_sort
            )
        except QueryParamsError as exc:
            raise InvalidParamsError(f"query params error: {exc}") from exc

        total = 0
        if not params.ignore_count:
            total = await self._store.count(clause)
            if total == 0:
                return [], 0

        records = await self._store.fetch_page(clause, order_by, limit, offset)
        return records, total

    async def list_by_last_id(
        self, last_id: K, limit: int = 10, sort: str = ""
    ) -> list[T]:
        """Cursor page: records with key below ``last_id`` (all when it is 0)."""
        whitelist = self._store.whitelist
        try:
            order_by = build_order(sort, whitelist, self._default_sort)
        except QueryParamsError as exc:
            raise InvalidParamsError(str(exc)) from exc
        key_col = whitelist[self._store.key_field]
        clause = key_col < last_id if last_id else None
        return await self._store.fetch_page(clause, order_by, limit, 0)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    async def create(self, changes: Mapping[str, Any]) -> T:
        """Insert a record; the store assigns the key unless one is supplied.

        The cache is populated lazily by the next read; a placeholder left
        for the new key by an earlier miss is dropped.
        """
        if self._store.key_field in changes:
            self._check_key(changes[self._store.key_field])
        record = await self._store.insert(self._store.columns.insert_values(changes))
        await self._invalidate(self._key_of(record))
        return record

    def _update_values(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        # The key is immutable once assigned
        values = self._store.columns.sparse_update(changes)
        values.pop(self._store.key_field, None)
        return values

    async def update_by_key(self, key: K, changes: Mapping[str, Any]) -> None:
        """Partial update: zero-valued fields in ``changes`` are ignored."""
        self._check_key(key)
        try:
            await self._store.update(key, self._update_values(changes))
        finally:
            await self._invalidate(key)

    async def delete_by_key(self, key: K) -> None:
        self._check_key(key)
        await self._store.delete([key])
        await self._invalidate(key)

    async def delete_by_keys(self, keys: Sequence[K]) -> None:
        for key in keys:
            self._check_key(key)
        await self._store.delete(list(keys))
        for key in keys:
            await self._invalidate(key)

    async def create_by_tx(self, tx: AsyncSession, changes: Mapping[str, Any]) -> K:
        if self._store.key_field in changes:
            self._check_key(changes[self._store.key_field])
        record = await self._store.insert(
            self._store.columns.insert_values(changes), session=tx
        )
        key = self._key_of(record)
        await self._invalidate(key)
        return key

    async def update_by_tx(
        self, tx: AsyncSession, key: K, changes: Mapping[str, Any]
    ) -> None:
        self._check_key(key)
        try:
            await self._store.update(key, self._update_values(changes), session=tx)
        finally:
            await self._invalidate(key)

    async def delete_by_tx(self, tx: AsyncSession, key: K) -> None:
        self._check_key(key)
        await self._store.delete([key], session=tx)
        await self._invalidate(key)


def make_repository(
    *,
    name: str,
    session_factory: async_sessionmaker[AsyncSession],
    backend: CacheBackend | None,
    orm_model: type[Base],
    entity_type: type[T],
    columns: ColumnMap,
    key_field: str = "id",
    cache_prefix: str | None = None,
    soft_delete_column: str | None = None,
    default_sort: str | None = None,
) -> CachedRepository[Any, T]:
    """Wire store, optional cache and engine for one entity."""
    store: SqlEntityStore[Any, T] = SqlEntityStore(
        session_factory,
        orm_model,
        entity_type,
        key_field=key_field,
        columns=columns,
        soft_delete_column=soft_delete_column,
    )
    cache: EntityCache[Any, T] | None = None
    if backend is not None:
        cache = EntityCache(
            backend,
            prefix=cache_prefix or f"{name}:",
            model=entity_type,
            key_of=lambda record: getattr(record, key_field),
        )
    return CachedRepository(
        name,
        store,
        cache,
        default_sort=default_sort or f"-{key_field}",
    )
