"""Integration-test fixtures.

The app runs against a per-test in-memory SQLite database: every
repository provider is overridden with repositories bound to it.
"""

from collections.abc import AsyncIterator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from src.hm_common.repository import CachedRepository
from src.hm_gateway.user.models import User
from src.hm_gateway.user.repository import get_user_repository
from src.hm_journal.infrastructure import persistence
from src.hm_journal.infrastructure.persistence import JournalRepositories
from src.main import app


@pytest.fixture
async def client(
    user_repo: CachedRepository[int, User], journal: JournalRepositories
) -> AsyncIterator[AsyncClient]:
    overrides: dict[Any, Any] = {
        get_user_repository: lambda: user_repo,
        persistence.get_account_repository: lambda: journal.accounts,
        persistence.get_strategy_repository: lambda: journal.strategies,
        persistence.get_tag_repository: lambda: journal.tags,
        persistence.get_snapshot_repository: lambda: journal.snapshots,
        persistence.get_trade_tag_repository: lambda: journal.trade_tags,
        persistence.get_trade_repository: lambda: journal.trades,
    }
    app.dependency_overrides.update(overrides)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def auth_client(client: AsyncClient) -> AsyncClient:
    """Authenticated client — registers a user and injects Bearer token."""
    await client.post("/api/v1/users/register", json={
        "username": "journal_user",
        "password": "TestPass123!",
    })
    login_resp = await client.post("/api/v1/users/login", json={
        "username": "journal_user",
        "password": "TestPass123!",
    })
    token = login_resp.json()["data"]["token"]
    client.headers.update({"Authorization": f"Bearer {token}"})
    return client
