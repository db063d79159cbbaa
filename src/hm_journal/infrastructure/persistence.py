"""Journal repositories — one cache-aside engine per entity.

Each entity is described by its column map (field, column, zero value);
the engine, store and cache are generic. The zero values decide what a
partial update ignores.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.hm_common.cache import CacheBackend, get_cache_backend
from src.hm_common.database import async_session_factory
from src.hm_common.repository import CachedRepository, make_repository
from src.hm_common.store import ColumnMap, Field
from src.hm_journal.domain.models import Account, Snapshot, Strategy, Tag, Trade, TradeTag
from src.hm_journal.infrastructure.db_models import (
    AccountORM,
    SnapshotORM,
    StrategyORM,
    TagORM,
    TradeORM,
    TradeTagORM,
)

# ---------------------------------------------------------------------------
# Column maps
# ---------------------------------------------------------------------------

def _same(name: str, zero: Any) -> Field:
    return Field(name, name, zero)


ACCOUNT_COLUMNS = ColumnMap([
    _same("user_id", 0),
    _same("name", ""),
    _same("initial_balance", 0.0),
    _same("currency", ""),
])

STRATEGY_COLUMNS = ColumnMap([
    _same("user_id", 0),
    _same("name", ""),
    _same("description", ""),
])

TAG_COLUMNS = ColumnMap([
    _same("user_id", 0),
    _same("name", ""),
    _same("color", ""),
])

SNAPSHOT_COLUMNS = ColumnMap([
    _same("trade_id", 0),
    _same("type", ""),
    _same("image_url", ""),
])

# trade_id is the key: supplied on insert, never updated
TRADE_TAG_COLUMNS = ColumnMap([
    _same("trade_id", 0),
    _same("tag_id", 0),
])

TRADE_COLUMNS = ColumnMap([
    _same("account_id", 0),
    _same("strategy_id", 0),
    _same("status", ""),
    _same("symbol", ""),
    _same("direction", ""),
    _same("planned_entry_price", 0.0),
    _same("planned_stop_loss", 0.0),
    _same("planned_take_profit", 0.0),
    _same("position_size", 0.0),
    _same("planned_risk_amount", 0.0),
    _same("plan_notes", ""),
    _same("actual_entry_time", ""),
    _same("actual_entry_price", 0.0),
    _same("actual_exit_time", ""),
    _same("actual_exit_price", 0.0),
    _same("commission", 0.0),
    _same("pnl", 0.0),
    _same("r_multiple", 0.0),
    _same("exit_reason", ""),
    _same("execution_score", 0),
    _same("reflection_notes", ""),
])


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

@dataclass
class JournalRepositories:
    accounts: CachedRepository[Any, Account]
    strategies: CachedRepository[Any, Strategy]
    tags: CachedRepository[Any, Tag]
    snapshots: CachedRepository[Any, Snapshot]
    trade_tags: CachedRepository[Any, TradeTag]
    trades: CachedRepository[Any, Trade]

    @classmethod
    def create(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        backend: CacheBackend | None,
    ) -> "JournalRepositories":
        common = {"session_factory": session_factory, "backend": backend}
        return cls(
            accounts=make_repository(
                name="accounts", orm_model=AccountORM, entity_type=Account,
                columns=ACCOUNT_COLUMNS, **common,
            ),
            strategies=make_repository(
                name="strategies", orm_model=StrategyORM, entity_type=Strategy,
                columns=STRATEGY_COLUMNS, **common,
            ),
            tags=make_repository(
                name="tags", orm_model=TagORM, entity_type=Tag,
                columns=TAG_COLUMNS, **common,
            ),
            snapshots=make_repository(
                name="snapshots", orm_model=SnapshotORM, entity_type=Snapshot,
                columns=SNAPSHOT_COLUMNS, **common,
            ),
            trade_tags=make_repository(
                name="tradeTags", orm_model=TradeTagORM, entity_type=TradeTag,
                columns=TRADE_TAG_COLUMNS, key_field="trade_id",
                cache_prefix="tradeTags:", **common,
            ),
            trades=make_repository(
                name="trades", orm_model=TradeORM, entity_type=Trade,
                columns=TRADE_COLUMNS, **common,
            ),
        )


@lru_cache(maxsize=1)
def get_journal_repositories() -> JournalRepositories:
    return JournalRepositories.create(async_session_factory, get_cache_backend())


def get_account_repository() -> CachedRepository[Any, Account]:
    return get_journal_repositories().accounts


def get_strategy_repository() -> CachedRepository[Any, Strategy]:
    return get_journal_repositories().strategies


def get_tag_repository() -> CachedRepository[Any, Tag]:
    return get_journal_repositories().tags


def get_snapshot_repository() -> CachedRepository[Any, Snapshot]:
    return get_journal_repositories().snapshots


def get_trade_tag_repository() -> CachedRepository[Any, TradeTag]:
    return get_journal_repositories().trade_tags


def get_trade_repository() -> CachedRepository[Any, Trade]:
    return get_journal_repositories().trades
