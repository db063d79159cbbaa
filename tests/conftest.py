"""Shared test fixtures.

Settings are read at import time, so the environment is prepared before
anything under src/ is imported.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CACHE_TYPE", "memory")
# Cheapest bcrypt cost keeps hashing fast in tests
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from collections.abc import AsyncIterator  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

import src.hm_gateway.user.db_models  # noqa: E402, F401
import src.hm_journal.infrastructure.db_models  # noqa: E402, F401
from src.hm_common.cache import MemoryCache  # noqa: E402
from src.hm_common.database import Base  # noqa: E402
from src.hm_common.repository import CachedRepository, make_repository  # noqa: E402
from src.hm_gateway.user.db_models import UserModel  # noqa: E402
from src.hm_gateway.user.models import User  # noqa: E402
from src.hm_gateway.user.repository import USER_COLUMNS  # noqa: E402
from src.hm_journal.infrastructure.persistence import JournalRepositories  # noqa: E402


@pytest.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Fresh in-memory SQLite database per test, schema from the ORM models."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def cache_backend() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def user_repo(
    session_factory: async_sessionmaker[AsyncSession], cache_backend: MemoryCache
) -> CachedRepository[int, User]:
    return make_repository(
        name="users",
        session_factory=session_factory,
        backend=cache_backend,
        orm_model=UserModel,
        entity_type=User,
        columns=USER_COLUMNS,
        soft_delete_column="deleted_at",
    )


@pytest.fixture
def journal(
    session_factory: async_sessionmaker[AsyncSession], cache_backend: MemoryCache
) -> JournalRepositories:
    return JournalRepositories.create(session_factory, cache_backend)
