"""Journal API routers: accounts, strategies, tags, snapshots, tradeTags, trades.

accounts / tags / trades require a bearer token on every route;
strategies / snapshots / tradeTags only on routes that change data.
"""

from fastapi import APIRouter

from src.hm_common.crud import CrudEntity, add_crud_routes
from src.hm_common.errors import register_entity_codes
from src.hm_gateway.auth.dependencies import get_current_user
from src.hm_journal.application.schemas import (
    AccountDetail,
    CreateAccountRequest,
    CreateSnapshotRequest,
    CreateStrategyRequest,
    CreateTagRequest,
    CreateTradeRequest,
    CreateTradeTagRequest,
    SnapshotDetail,
    StrategyDetail,
    TagDetail,
    TradeDetail,
    TradeTagDetail,
    UpdateAccountRequest,
    UpdateSnapshotRequest,
    UpdateStrategyRequest,
    UpdateTagRequest,
    UpdateTradeRequest,
    UpdateTradeTagRequest,
)
from src.hm_journal.infrastructure.persistence import (
    get_account_repository,
    get_snapshot_repository,
    get_strategy_repository,
    get_tag_repository,
    get_trade_repository,
    get_trade_tag_repository,
)

ACCOUNT_CODES = register_entity_codes(79, "accounts")
STRATEGY_CODES = register_entity_codes(76, "strategies")
TRADE_CODES = register_entity_codes(80, "trades")
TAG_CODES = register_entity_codes(36, "tags")
SNAPSHOT_CODES = register_entity_codes(73, "snapshots")
TRADE_TAG_CODES = register_entity_codes(1, "tradeTags")

ENTITIES = [
    CrudEntity(
        name="accounts",
        codes=ACCOUNT_CODES,
        repository=get_account_repository,
        create_model=CreateAccountRequest,
        update_model=UpdateAccountRequest,
        detail_model=AccountDetail,
        auth=get_current_user,
    ),
    CrudEntity(
        name="strategies",
        codes=STRATEGY_CODES,
        repository=get_strategy_repository,
        create_model=CreateStrategyRequest,
        update_model=UpdateStrategyRequest,
        detail_model=StrategyDetail,
        auth=get_current_user,
        protect_reads=False,
    ),
    CrudEntity(
        name="tags",
        codes=TAG_CODES,
        repository=get_tag_repository,
        create_model=CreateTagRequest,
        update_model=UpdateTagRequest,
        detail_model=TagDetail,
        auth=get_current_user,
    ),
    CrudEntity(
        name="snapshots",
        codes=SNAPSHOT_CODES,
        repository=get_snapshot_repository,
        create_model=CreateSnapshotRequest,
        update_model=UpdateSnapshotRequest,
        detail_model=SnapshotDetail,
        auth=get_current_user,
        protect_reads=False,
    ),
    CrudEntity(
        name="tradeTags",
        codes=TRADE_TAG_CODES,
        repository=get_trade_tag_repository,
        create_model=CreateTradeTagRequest,
        update_model=UpdateTradeTagRequest,
        detail_model=TradeTagDetail,
        key_field="trade_id",
        auth=get_current_user,
        protect_reads=False,
    ),
    CrudEntity(
        name="trades",
        codes=TRADE_CODES,
        repository=get_trade_repository,
        create_model=CreateTradeRequest,
        update_model=UpdateTradeRequest,
        detail_model=TradeDetail,
        auth=get_current_user,
    ),
]

routers = [
    add_crud_routes(APIRouter(prefix=f"/{e.name}", tags=[e.name]), e)
    for e in ENTITIES
]
