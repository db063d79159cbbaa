"""Domain models for hm_journal — pure dataclasses, no business logic.

Timestamps are kept as the stored "YYYY-MM-DD HH:MM:SS" strings.
"""

from dataclasses import dataclass


@dataclass
class Account:
    id: int
    user_id: int
    name: str
    initial_balance: float
    currency: str | None
    created_at: str | None
    updated_at: str | None


@dataclass
class Strategy:
    id: int
    user_id: int
    name: str
    description: str | None
    created_at: str | None
    updated_at: str | None


@dataclass
class Tag:
    id: int
    user_id: int
    name: str
    color: str | None
    created_at: str | None
    updated_at: str | None


@dataclass
class Snapshot:
    """Chart screenshot attached to a trade (e.g. "entry", "exit")."""

    id: int
    trade_id: int
    type: str
    image_url: str
    created_at: str | None
    updated_at: str | None


@dataclass
class TradeTag:
    """Tag assignment, keyed by the trade it belongs to."""

    trade_id: int
    tag_id: int
    created_at: str | None
    updated_at: str | None


@dataclass
class Trade:
    id: int
    account_id: int
    strategy_id: int | None
    status: str
    symbol: str
    direction: str
    # plan
    planned_entry_price: float | None
    planned_stop_loss: float | None
    planned_take_profit: float | None
    position_size: float | None
    planned_risk_amount: float | None
    plan_notes: str | None
    # execution
    actual_entry_time: str | None
    actual_entry_price: float | None
    actual_exit_time: str | None
    actual_exit_price: float | None
    commission: float | None
    pnl: float | None
    r_multiple: float | None
    # review
    exit_reason: str | None
    execution_score: int | None
    reflection_notes: str | None
    created_at: str | None
    updated_at: str | None
