"""Entity cache port: raw key/value backends plus a typed per-entity facade.

Backends store strings only. ``EntityCache`` owns key prefixes, TTLs and
JSON encoding of the domain dataclasses, and reserves the value ``"*"`` as
the negative-cache placeholder: a key holding it is known to be absent
from the database, which is different from a key that was never cached.

Miss signalling:
  - ``CacheNotFoundError``     nothing cached (or expired)
  - ``CachePlaceholderError``  the placeholder is cached
  - ``CacheBackendError``      the backend itself failed (connection, decode)
"""

import logging
import threading
import time
from collections.abc import Callable, Hashable, Iterable
from functools import lru_cache
from typing import Generic, Protocol, TypeVar

import redis.asyncio as aioredis
from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

PLACEHOLDER = "*"


class CacheNotFoundError(Exception):
    """Key is not cached."""


class CachePlaceholderError(Exception):
    """Key holds the not-found placeholder."""


class CacheBackendError(Exception):
    """The cache backend could not serve the request."""


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class CacheBackend(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def multi_get(self, keys: list[str]) -> dict[str, str]: ...

    async def multi_set(self, values: dict[str, str], ttl: int) -> None: ...

    async def delete(self, *keys: str) -> None: ...


class MemoryCache:
    """In-process backend with per-key expiry. Safe to share between threads."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._items: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _get_locked(self, key: str, now: float) -> str | None:
        item = self._items.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at <= now:
            del self._items[key]
            return None
        return value

    async def get(self, key: str) -> str | None:
        with self._lock:
            return self._get_locked(key, self._clock())

    async def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._items[key] = (value, self._clock() + ttl)

    async def multi_get(self, keys: list[str]) -> dict[str, str]:
        result: dict[str, str] = {}
        with self._lock:
            now = self._clock()
            for key in keys:
                value = self._get_locked(key, now)
                if value is not None:
                    result[key] = value
        return result

    async def multi_set(self, values: dict[str, str], ttl: int) -> None:
        with self._lock:
            expires_at = self._clock() + ttl
            for key, value in values.items():
                self._items[key] = (value, expires_at)

    async def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._items.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class RedisCache:
    """Redis backend. Every driver failure surfaces as CacheBackendError."""

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as exc:
            raise CacheBackendError(f"redis get {key}") from exc

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl)
        except RedisError as exc:
            raise CacheBackendError(f"redis set {key}") from exc

    async def multi_get(self, keys: list[str]) -> dict[str, str]:
        if not keys:
            return {}
        try:
            values = await self._client.mget(keys)
        except RedisError as exc:
            raise CacheBackendError("redis mget") from exc
        return {k: v for k, v in zip(keys, values) if v is not None}

    async def multi_set(self, values: dict[str, str], ttl: int) -> None:
        if not values:
            return
        try:
            async with self._client.pipeline(transaction=False) as pipe:
                for key, value in values.items():
                    pipe.set(key, value, ex=ttl)
                await pipe.execute()
        except RedisError as exc:
            raise CacheBackendError("redis multi set") from exc

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self._client.delete(*keys)
        except RedisError as exc:
            raise CacheBackendError("redis delete") from exc


def create_cache_backend(cache_type: str) -> CacheBackend | None:
    """Build the backend named by ``cache_type``; empty/unknown disables caching."""
    ctype = cache_type.strip().lower()
    if ctype == "redis":
        from src.hm_common.redis_client import get_redis

        return RedisCache(get_redis())
    if ctype == "memory":
        return MemoryCache()
    if ctype:
        logger.warning("Unknown CACHE_TYPE %r, entity caching disabled", cache_type)
    return None


@lru_cache(maxsize=1)
def get_cache_backend() -> CacheBackend | None:
    """Process-wide backend shared by every repository."""
    return create_cache_backend(settings.CACHE_TYPE)


# ---------------------------------------------------------------------------
# Typed facade
# ---------------------------------------------------------------------------

class EntityCache(Generic[K, T]):
    """Cache of one entity type, keyed by its primary key."""

    def __init__(
        self,
        backend: CacheBackend,
        prefix: str,
        model: type[T],
        key_of: Callable[[T], K],
        ttl: int = settings.CACHE_EXPIRE_SECONDS,
        placeholder_ttl: int = settings.CACHE_PLACEHOLDER_EXPIRE_SECONDS,
    ) -> None:
        if not prefix.endswith(":"):
            raise ValueError(f"cache prefix must end with a colon: {prefix!r}")
        self._backend = backend
        self._prefix = prefix
        self._adapter: TypeAdapter[T] = TypeAdapter(model)
        self._key_of = key_of
        self.ttl = ttl
        self.placeholder_ttl = placeholder_ttl

    def cache_key(self, key: K) -> str:
        return f"{self._prefix}{key}"

    def _encode(self, value: T) -> str:
        return self._adapter.dump_json(value).decode("utf-8")

    def _decode(self, cache_key: str, raw: str) -> T:
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as exc:
            raise CacheBackendError(f"undecodable cache entry {cache_key}") from exc

    async def get(self, key: K) -> T:
        cache_key = self.cache_key(key)
        raw = await self._backend.get(cache_key)
        if raw is None:
            raise CacheNotFoundError(cache_key)
        if raw == PLACEHOLDER:
            raise CachePlaceholderError(cache_key)
        return self._decode(cache_key, raw)

    async def set(self, key: K, value: T | None, ttl: int | None = None) -> None:
        if value is None or not key:
            return
        await self._backend.set(self.cache_key(key), self._encode(value), ttl or self.ttl)

    async def multi_get(self, keys: Iterable[K]) -> dict[K, T]:
        """Return cached entities only; misses and placeholders are left out."""
        by_cache_key = {self.cache_key(k): k for k in keys}
        raw_map = await self._backend.multi_get(list(by_cache_key))
        result: dict[K, T] = {}
        for cache_key, raw in raw_map.items():
            if raw == PLACEHOLDER:
                continue
            result[by_cache_key[cache_key]] = self._decode(cache_key, raw)
        return result

    async def multi_set(self, values: Iterable[T], ttl: int | None = None) -> None:
        encoded = {
            self.cache_key(self._key_of(v)): self._encode(v)
            for v in values
            if self._key_of(v)
        }
        await self._backend.multi_set(encoded, ttl or self.ttl)

    async def delete(self, key: K) -> None:
        await self._backend.delete(self.cache_key(key))

    async def set_placeholder(self, key: K) -> None:
        await self._backend.set(self.cache_key(key), PLACEHOLDER, self.placeholder_ttl)

    @staticmethod
    def is_placeholder_error(exc: BaseException | None) -> bool:
        return isinstance(exc, CachePlaceholderError)
