"""002: create journal tables (accounts, strategies, tags, trades, snapshots, trade_tags)

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [sa.Column("created_at", sa.String(100)), sa.Column("updated_at", sa.String(100))]


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("initial_balance", sa.Float, nullable=False, server_default="0"),
        sa.Column("currency", sa.Text),
        *_timestamps(),
    )
    op.create_index("ix_accounts_user_id", "accounts", ["user_id"])

    op.create_table(
        "strategies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        *_timestamps(),
    )
    op.create_index("ix_strategies_user_id", "strategies", ["user_id"])

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("color", sa.Text),
        *_timestamps(),
    )
    op.create_index("ix_tags_user_id", "tags", ["user_id"])

    op.create_table(
        "trades",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.Integer, nullable=False),
        sa.Column("strategy_id", sa.Integer),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("symbol", sa.Text, nullable=False),
        sa.Column("direction", sa.Text, nullable=False),
        sa.Column("planned_entry_price", sa.Float),
        sa.Column("planned_stop_loss", sa.Float),
        sa.Column("planned_take_profit", sa.Float),
        sa.Column("position_size", sa.Float),
        sa.Column("planned_risk_amount", sa.Float),
        sa.Column("plan_notes", sa.Text),
        sa.Column("actual_entry_time", sa.String(100)),
        sa.Column("actual_entry_price", sa.Float),
        sa.Column("actual_exit_time", sa.String(100)),
        sa.Column("actual_exit_price", sa.Float),
        sa.Column("commission", sa.Float),
        sa.Column("pnl", sa.Float),
        sa.Column("r_multiple", sa.Float),
        sa.Column("exit_reason", sa.Text),
        sa.Column("execution_score", sa.Integer),
        sa.Column("reflection_notes", sa.Text),
        *_timestamps(),
    )
    op.create_index("ix_trades_account_id", "trades", ["account_id"])

    op.create_table(
        "snapshots",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("trade_id", sa.Integer, nullable=False),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("image_url", sa.Text, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_snapshots_trade_id", "snapshots", ["trade_id"])

    # One tag assignment per trade, keyed by the trade
    op.create_table(
        "trade_tags",
        sa.Column("trade_id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("tag_id", sa.Integer, nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    for table in ("trade_tags", "snapshots", "trades", "tags", "strategies", "accounts"):
        op.drop_table(table)
