"""create dashboard tables

Revision ID: 3c1e9a7d5b20
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "3c1e9a7d5b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "coins",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("symbol", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("current_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("logo_url", sa.String(length=512), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_coins_id", "coins", ["id"], unique=False)
    op.create_index("ix_coins_symbol", "coins", ["symbol"], unique=True)

    op.create_table(
        "daily_metrics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coin_id", sa.Integer(), sa.ForeignKey("coins.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("otc_index", sa.Integer(), nullable=True),
        sa.Column("explosion_index", sa.Integer(), nullable=True),
        sa.Column("schelling_point", sa.Float(), nullable=True),
        sa.Column("entry_exit_type", sa.String(length=16), nullable=True),
        sa.Column("entry_exit_day", sa.Integer(), nullable=True),
        sa.Column("near_threshold", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("coin_id", "date", name="uq_daily_metrics_coin_date"),
    )
    op.create_index("ix_daily_metrics_id", "daily_metrics", ["id"], unique=False)
    op.create_index("ix_daily_metrics_coin_id", "daily_metrics", ["coin_id"], unique=False)
    op.create_index("ix_daily_metrics_date", "daily_metrics", ["date"], unique=False)

    op.create_table(
        "liquidity_overviews",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("btc_fund_change", sa.Float(), nullable=True),
        sa.Column("eth_fund_change", sa.Float(), nullable=True),
        sa.Column("sol_fund_change", sa.Float(), nullable=True),
        sa.Column("total_market_fund_change", sa.Float(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_liquidity_overviews_id", "liquidity_overviews", ["id"], unique=False)
    op.create_index("ix_liquidity_overviews_date", "liquidity_overviews", ["date"], unique=True)

    op.create_table(
        "trending_coins",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("symbol", sa.String(length=32), nullable=False),
        sa.Column("otc_index", sa.Integer(), nullable=True),
        sa.Column("explosion_index", sa.Integer(), nullable=True),
        sa.Column("entry_exit_type", sa.String(length=16), nullable=True),
        sa.Column("entry_exit_day", sa.Integer(), nullable=True),
        sa.Column("schelling_point", sa.Float(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("date", "symbol", name="uq_trending_coins_date_symbol"),
    )
    op.create_index("ix_trending_coins_id", "trending_coins", ["id"], unique=False)
    op.create_index("ix_trending_coins_date", "trending_coins", ["date"], unique=False)

    op.create_table(
        "user_favorites",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("device_id", sa.String(length=128), nullable=False),
        sa.Column("symbol", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("device_id", "symbol", name="uq_user_favorites_device_symbol"),
    )
    op.create_index("ix_user_favorites_id", "user_favorites", ["id"], unique=False)
    op.create_index("ix_user_favorites_device_id", "user_favorites", ["device_id"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="user"),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_username", "users", ["username"], unique=True)


def downgrade() -> None:
    op.drop_table("users")
    op.drop_table("user_favorites")
    op.drop_table("trending_coins")
    op.drop_table("liquidity_overviews")
    op.drop_table("daily_metrics")
    op.drop_table("coins")
