"""Unit tests for the cache-aside repository engine (fake store, real memory cache)."""

import asyncio
from dataclasses import dataclass, replace
from typing import Any
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import Column as SAColumn
from sqlalchemy import Integer, MetaData, Table, Text

from src.hm_common.cache import PLACEHOLDER, CacheBackendError, EntityCache, MemoryCache
from src.hm_common.errors import InvalidParamsError, RecordNotFoundError
from src.hm_common.query import Column, Conditions, Params
from src.hm_common.repository import CachedRepository
from src.hm_common.store import ColumnMap, Field


@dataclass
class Note:
    id: int
    title: str
    stars: int


_table = Table(
    "notes",
    MetaData(),
    SAColumn("id", Integer, primary_key=True),
    SAColumn("title", Text),
    SAColumn("stars", Integer),
)


class FakeStore:
    """Dict-backed store; every method is an AsyncMock so awaits can be counted."""

    key_field = "id"

    def __init__(self, rows: dict[int, Note] | None = None, delay: float = 0) -> None:
        self.rows = dict(rows or {})
        self.delay = delay
        self.columns = ColumnMap([Field("title", "title", ""), Field("stars", "stars", 0)])
        self.fetch_one = AsyncMock(side_effect=self._fetch_one)
        self.fetch_many = AsyncMock(side_effect=self._fetch_many)
        self.fetch_first = AsyncMock(side_effect=self._fetch_first)
        self.count = AsyncMock(side_effect=lambda clause: len(self.rows))
        self.fetch_page = AsyncMock(
            side_effect=lambda clause, order_by, limit, offset: list(self.rows.values())[
                offset:offset + limit
            ]
        )
        self.insert = AsyncMock(side_effect=self._insert)
        self.update = AsyncMock(side_effect=self._update)
        self.delete = AsyncMock(side_effect=self._delete)

    @property
    def whitelist(self) -> dict[str, Any]:
        return {c.name: c for c in _table.c}

    async def _fetch_one(self, key: int) -> Note | None:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.rows.get(key)

    async def _fetch_many(self, keys: list[int]) -> list[Note]:
        return [self.rows[k] for k in keys if k in self.rows]

    async def _fetch_first(self, clause: Any) -> Note | None:
        return next(iter(self.rows.values()), None)

    async def _insert(self, values: dict[str, Any], session: Any = None) -> Note:
        key = max(self.rows, default=0) + 1
        note = Note(id=key, title=values.get("title", ""), stars=values.get("stars", 0))
        self.rows[key] = note
        return note

    async def _update(self, key: int, values: dict[str, Any], session: Any = None) -> int:
        if key not in self.rows:
            return 0
        self.rows[key] = replace(self.rows[key], **values)
        return 1

    async def _delete(self, keys: list[int], session: Any = None) -> int:
        return sum(1 for k in keys if self.rows.pop(k, None) is not None)


def _note(key: int, title: str = "n", stars: int = 1) -> Note:
    return Note(id=key, title=title, stars=stars)


@pytest.fixture
def backend() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore({1: _note(1, "one"), 2: _note(2, "two"), 3: _note(3, "three")})


@pytest.fixture
def cache(backend: MemoryCache) -> EntityCache[int, Note]:
    return EntityCache(backend, prefix="notes:", model=Note, key_of=lambda n: n.id)


@pytest.fixture
def repo(store: FakeStore, cache: EntityCache[int, Note]) -> CachedRepository[int, Note]:
    return CachedRepository("notes", store, cache)  # type: ignore[arg-type]


class TestGetByKey:
    async def test_zero_key_rejected_without_io(
        self, repo: CachedRepository[int, Note], store: FakeStore, backend: MemoryCache
    ) -> None:
        with pytest.raises(InvalidParamsError):
            await repo.get_by_key(0)
        store.fetch_one.assert_not_awaited()
        assert len(backend) == 0

    async def test_miss_loads_and_caches(
        self, repo: CachedRepository[int, Note], store: FakeStore, backend: MemoryCache
    ) -> None:
        assert await repo.get_by_key(1) == _note(1, "one")
        assert await repo.get_by_key(1) == _note(1, "one")
        assert store.fetch_one.await_count == 1
        assert await backend.get("notes:1") is not None

    async def test_missing_key_is_negative_cached(
        self, repo: CachedRepository[int, Note], store: FakeStore, backend: MemoryCache
    ) -> None:
        with pytest.raises(RecordNotFoundError):
            await repo.get_by_key(99)
        assert await backend.get("notes:99") == PLACEHOLDER

        with pytest.raises(RecordNotFoundError):
            await repo.get_by_key(99)
        assert store.fetch_one.await_count == 1

    async def test_concurrent_misses_issue_one_query(self, cache: EntityCache[int, Note]) -> None:
        store = FakeStore({5: _note(5, "five")}, delay=0.01)
        repo = CachedRepository("notes", store, cache)  # type: ignore[arg-type]

        results = await asyncio.gather(*(repo.get_by_key(5) for _ in range(20)))

        assert all(r == _note(5, "five") for r in results)
        assert store.fetch_one.await_count == 1

    async def test_concurrent_misses_for_absent_key_all_not_found(
        self, cache: EntityCache[int, Note]
    ) -> None:
        store = FakeStore(delay=0.01)
        repo = CachedRepository("notes", store, cache)  # type: ignore[arg-type]

        results = await asyncio.gather(
            *(repo.get_by_key(7) for _ in range(5)), return_exceptions=True
        )

        assert all(isinstance(r, RecordNotFoundError) for r in results)
        assert store.fetch_one.await_count == 1

    async def test_store_error_propagates_and_is_not_cached(
        self, repo: CachedRepository[int, Note], store: FakeStore, backend: MemoryCache
    ) -> None:
        store.fetch_one.side_effect = RuntimeError("connection reset")
        with pytest.raises(RuntimeError):
            await repo.get_by_key(1)
        assert await backend.get("notes:1") is None

    async def test_cache_failure_falls_back_to_store(self, store: FakeStore) -> None:
        broken = MemoryCache()
        broken.get = AsyncMock(side_effect=CacheBackendError("down"))  # type: ignore[method-assign]
        broken.set = AsyncMock(side_effect=CacheBackendError("down"))  # type: ignore[method-assign]
        cache = EntityCache(broken, prefix="notes:", model=Note, key_of=lambda n: n.id)
        repo = CachedRepository("notes", store, cache)  # type: ignore[arg-type]

        assert await repo.get_by_key(2) == _note(2, "two")

    async def test_without_cache_reads_store_every_time(self, store: FakeStore) -> None:
        repo = CachedRepository("notes", store)  # type: ignore[arg-type]
        await repo.get_by_key(1)
        await repo.get_by_key(1)
        assert store.fetch_one.await_count == 2
        with pytest.raises(RecordNotFoundError):
            await repo.get_by_key(42)


class TestGetByKeys:
    async def test_returns_subset_of_existing_keys(
        self, repo: CachedRepository[int, Note]
    ) -> None:
        found = await repo.get_by_keys([1, 3, 50])
        assert set(found) == {1, 3}
        assert found[3].title == "three"

    async def test_one_store_round_trip_for_all_misses(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        await repo.get_by_key(1)
        await repo.get_by_keys([1, 2, 3, 4])
        store.fetch_many.assert_awaited_once()
        assert sorted(store.fetch_many.await_args.args[0]) == [2, 3, 4]

    async def test_placeholders_are_not_requeried(
        self, repo: CachedRepository[int, Note], store: FakeStore, backend: MemoryCache
    ) -> None:
        await repo.get_by_keys([1, 4])
        assert await backend.get("notes:4") == PLACEHOLDER

        found = await repo.get_by_keys([1, 4])
        assert set(found) == {1}
        assert store.fetch_many.await_count == 1

    async def test_invalid_and_duplicate_keys_dropped(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        assert await repo.get_by_keys([0, 0]) == {}
        found = await repo.get_by_keys([2, 2, 0])
        assert list(found) == [2]
        assert store.fetch_many.await_args.args[0] == [2]


class TestWrites:
    async def test_update_invalidates_cached_entry(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        assert (await repo.get_by_key(1)).title == "one"
        await repo.update_by_key(1, {"title": "uno"})
        assert (await repo.get_by_key(1)).title == "uno"
        assert store.fetch_one.await_count == 2

    async def test_update_skips_zero_values(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        await repo.update_by_key(2, {"title": "", "stars": 5, "unknown": "x"})
        store.update.assert_awaited_once_with(2, {"stars": 5})

    async def test_update_never_changes_the_key(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        store.columns = ColumnMap([Field("id", "id", 0), Field("title", "title", "")])
        await repo.update_by_key(2, {"id": 9, "title": "deux"})
        store.update.assert_awaited_once_with(2, {"title": "deux"})

    async def test_update_invalidates_even_when_store_fails(
        self, repo: CachedRepository[int, Note], store: FakeStore, backend: MemoryCache
    ) -> None:
        await repo.get_by_key(1)
        store.update.side_effect = RuntimeError("lock timeout")
        with pytest.raises(RuntimeError):
            await repo.update_by_key(1, {"title": "x"})
        assert await backend.get("notes:1") is None

    async def test_update_zero_key_rejected(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        with pytest.raises(InvalidParamsError):
            await repo.update_by_key(0, {"title": "x"})
        store.update.assert_not_awaited()

    async def test_create_then_get(self, repo: CachedRepository[int, Note]) -> None:
        created = await repo.create({"title": "four", "stars": 4})
        assert await repo.get_by_key(created.id) == created

    async def test_create_after_negative_cache_is_visible(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        with pytest.raises(RecordNotFoundError):
            await repo.get_by_key(4)
        created = await repo.create({"title": "four"})
        assert created.id == 4
        assert (await repo.get_by_key(4)).title == "four"

    async def test_delete_invalidates(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        await repo.get_by_key(3)
        await repo.delete_by_key(3)
        with pytest.raises(RecordNotFoundError):
            await repo.get_by_key(3)

    async def test_delete_by_keys_checks_every_key_first(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        with pytest.raises(InvalidParamsError):
            await repo.delete_by_keys([1, 0])
        store.delete.assert_not_awaited()

        await repo.delete_by_keys([1, 2])
        assert list(store.rows) == [3]

    async def test_tx_variants_pass_the_session(
        self, repo: CachedRepository[int, Note], store: FakeStore, backend: MemoryCache
    ) -> None:
        tx = object()
        key = await repo.create_by_tx(tx, {"title": "t"})  # type: ignore[arg-type]
        assert store.insert.await_args.kwargs["session"] is tx

        await repo.get_by_key(key)
        await repo.update_by_tx(tx, key, {"title": "u"})  # type: ignore[arg-type]
        assert await backend.get(f"notes:{key}") is None

        await repo.delete_by_tx(tx, key)  # type: ignore[arg-type]
        assert store.delete.await_args.kwargs["session"] is tx


class TestListing:
    async def test_list_by_params(self, repo: CachedRepository[int, Note]) -> None:
        records, total = await repo.list_by_params(Params(page=0, limit=2))
        assert total == 3
        assert len(records) == 2

    async def test_empty_count_skips_page_query(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        store.rows.clear()
        assert await repo.list_by_params(Params()) == ([], 0)
        store.fetch_page.assert_not_awaited()

    async def test_ignore_count(self, repo: CachedRepository[int, Note], store: FakeStore) -> None:
        records, total = await repo.list_by_params(Params(sort="ignore count"))
        assert total == 0
        assert len(records) == 3
        store.count.assert_not_awaited()

    async def test_bad_filter_is_invalid_params(self, repo: CachedRepository[int, Note]) -> None:
        with pytest.raises(InvalidParamsError):
            await repo.list_by_params(Params(columns=[Column(name="nope", value=1)]))
        with pytest.raises(InvalidParamsError):
            await repo.list_by_params(Params(sort="nope"))

    async def test_get_by_condition(self, repo: CachedRepository[int, Note]) -> None:
        note = await repo.get_by_condition(
            Conditions(columns=[Column(name="title", value="one")])
        )
        assert note.id == 1

    async def test_get_by_condition_rejects_empty(
        self, repo: CachedRepository[int, Note]
    ) -> None:
        with pytest.raises(InvalidParamsError):
            await repo.get_by_condition(Conditions())

    async def test_get_by_condition_not_found(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        store.rows.clear()
        with pytest.raises(RecordNotFoundError):
            await repo.get_by_condition(Conditions(columns=[Column(name="title", value="x")]))

    async def test_list_by_last_id_without_cursor(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        await repo.list_by_last_id(0, limit=2)
        clause, _, limit, offset = store.fetch_page.await_args.args
        assert clause is None
        assert (limit, offset) == (2, 0)


class TestSuppliedKey:
    async def test_supplied_zero_key_rejected(
        self, repo: CachedRepository[int, Note], store: FakeStore
    ) -> None:
        store.key_field = "stars"
        with pytest.raises(InvalidParamsError):
            await repo.create({"title": "x", "stars": 0})
        store.insert.assert_not_awaited()
