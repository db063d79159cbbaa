"""SQLAlchemy ORM models for the journal tables.

Alembic migration 002_create_journal_tables.py is the authoritative DDL source.
Integer (not BigInteger) keys so SQLite treats them as rowid autoincrement.
"""

from sqlalchemy import Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.hm_common.database import Base


class AccountORM(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    initial_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    currency: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(String(100))
    updated_at: Mapped[str | None] = mapped_column(String(100))


class StrategyORM(Base):
    __tablename__ = "strategies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(String(100))
    updated_at: Mapped[str | None] = mapped_column(String(100))


class TagORM(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(String(100))
    updated_at: Mapped[str | None] = mapped_column(String(100))


class SnapshotORM(Base):
    __tablename__ = "snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    trade_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str | None] = mapped_column(String(100))
    updated_at: Mapped[str | None] = mapped_column(String(100))


class TradeTagORM(Base):
    __tablename__ = "trade_tags"

    trade_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    tag_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[str | None] = mapped_column(String(100))
    updated_at: Mapped[str | None] = mapped_column(String(100))


class TradeORM(Base):
    __tablename__ = "trades"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    strategy_id: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    symbol: Mapped[str] = mapped_column(Text, nullable=False)
    direction: Mapped[str] = mapped_column(Text, nullable=False)
    planned_entry_price: Mapped[float | None] = mapped_column(Float)
    planned_stop_loss: Mapped[float | None] = mapped_column(Float)
    planned_take_profit: Mapped[float | None] = mapped_column(Float)
    position_size: Mapped[float | None] = mapped_column(Float)
    planned_risk_amount: Mapped[float | None] = mapped_column(Float)
    plan_notes: Mapped[str | None] = mapped_column(Text)
    actual_entry_time: Mapped[str | None] = mapped_column(String(100))
    actual_entry_price: Mapped[float | None] = mapped_column(Float)
    actual_exit_time: Mapped[str | None] = mapped_column(String(100))
    actual_exit_price: Mapped[float | None] = mapped_column(Float)
    commission: Mapped[float | None] = mapped_column(Float)
    pnl: Mapped[float | None] = mapped_column(Float)
    r_multiple: Mapped[float | None] = mapped_column(Float)
    exit_reason: Mapped[str | None] = mapped_column(Text)
    execution_score: Mapped[int | None] = mapped_column(Integer)
    reflection_notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(String(100))
    updated_at: Mapped[str | None] = mapped_column(String(100))
