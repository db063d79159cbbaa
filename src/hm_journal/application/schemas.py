"""Request/response schemas for the journal entities.

Update bodies default every field to its zero value: a field left out of
the body (or sent as 0 / "") is not written. Create bodies require the
columns the table declares NOT NULL.
"""

from pydantic import Field

from src.hm_common.schemas import JsonModel

# ---------------------------------------------------------------------------
# accounts
# ---------------------------------------------------------------------------

class CreateAccountRequest(JsonModel):
    user_id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    initial_balance: float = 0.0
    currency: str = ""


class UpdateAccountRequest(JsonModel):
    user_id: int = 0
    name: str = ""
    initial_balance: float = 0.0
    currency: str = ""


class AccountDetail(JsonModel):
    id: int
    user_id: int
    name: str
    initial_balance: float
    currency: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


# ---------------------------------------------------------------------------
# strategies
# ---------------------------------------------------------------------------

class CreateStrategyRequest(JsonModel):
    user_id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    description: str = ""


class UpdateStrategyRequest(JsonModel):
    user_id: int = 0
    name: str = ""
    description: str = ""


class StrategyDetail(JsonModel):
    id: int
    user_id: int
    name: str
    description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


# ---------------------------------------------------------------------------
# tags
# ---------------------------------------------------------------------------

class CreateTagRequest(JsonModel):
    user_id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    color: str = ""


class UpdateTagRequest(JsonModel):
    user_id: int = 0
    name: str = ""
    color: str = ""


class TagDetail(JsonModel):
    id: int
    user_id: int
    name: str
    color: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


# ---------------------------------------------------------------------------
# snapshots
# ---------------------------------------------------------------------------

class CreateSnapshotRequest(JsonModel):
    trade_id: int = Field(..., ge=1)
    type: str = Field(..., min_length=1)
    image_url: str = Field(..., min_length=1)


class UpdateSnapshotRequest(JsonModel):
    trade_id: int = 0
    type: str = ""
    image_url: str = ""


class SnapshotDetail(JsonModel):
    id: int
    trade_id: int
    type: str
    image_url: str
    created_at: str | None = None
    updated_at: str | None = None


# ---------------------------------------------------------------------------
# trade tags (keyed by trade_id)
# ---------------------------------------------------------------------------

class CreateTradeTagRequest(JsonModel):
    trade_id: int = Field(..., ge=1)
    tag_id: int = Field(..., ge=1)


class UpdateTradeTagRequest(JsonModel):
    tag_id: int = 0


class TradeTagDetail(JsonModel):
    trade_id: int
    tag_id: int
    created_at: str | None = None
    updated_at: str | None = None


# ---------------------------------------------------------------------------
# trades
# ---------------------------------------------------------------------------

class _TradeFields(JsonModel):
    strategy_id: int = 0
    planned_entry_price: float = 0.0
    planned_stop_loss: float = 0.0
    planned_take_profit: float = 0.0
    position_size: float = 0.0
    planned_risk_amount: float = 0.0
    plan_notes: str = ""
    actual_entry_time: str = ""
    actual_entry_price: float = 0.0
    actual_exit_time: str = ""
    actual_exit_price: float = 0.0
    commission: float = 0.0
    pnl: float = 0.0
    r_multiple: float = 0.0
    exit_reason: str = ""
    execution_score: int = 0
    reflection_notes: str = ""


class CreateTradeRequest(_TradeFields):
    account_id: int = Field(..., ge=1)
    status: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)
    direction: str = Field(..., min_length=1)


class UpdateTradeRequest(_TradeFields):
    account_id: int = 0
    status: str = ""
    symbol: str = ""
    direction: str = ""


class TradeDetail(JsonModel):
    id: int
    account_id: int
    strategy_id: int | None = None
    status: str
    symbol: str
    direction: str
    planned_entry_price: float | None = None
    planned_stop_loss: float | None = None
    planned_take_profit: float | None = None
    position_size: float | None = None
    planned_risk_amount: float | None = None
    plan_notes: str | None = None
    actual_entry_time: str | None = None
    actual_entry_price: float | None = None
    actual_exit_time: str | None = None
    actual_exit_price: float | None = None
    commission: float | None = None
    pnl: float | None = None
    r_multiple: float | None = None
    exit_reason: str | None = None
    execution_score: int | None = None
    reflection_notes: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
