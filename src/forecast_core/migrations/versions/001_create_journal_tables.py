"""Create market journal tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SCHEMA = "forecast_journal"


def upgrade() -> None:
    # Schema is created by env.py before migrations run.
    op.create_table(
        "market_events",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("market", sa.Text, nullable=False),
        sa.Column("kind", sa.Text, nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("caller", sa.Text, nullable=False),
        sa.Column("payload", postgresql.JSONB, nullable=True),
        schema=SCHEMA,
    )
    op.create_index("ix_market_events_market", "market_events", ["market"], schema=SCHEMA)

    op.create_table(
        "market_snapshots",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("market", sa.Text, nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("question_id", sa.Text, nullable=False),
        sa.Column("supply", postgresql.JSONB, nullable=False),
        sa.Column("stake", postgresql.JSONB, nullable=False),
        sa.Column("collected_fees", postgresql.JSONB, nullable=True),
        sa.Column("payout_ratios", postgresql.JSONB, nullable=True),
        sa.Column("void", sa.Boolean, nullable=True),
        schema=SCHEMA,
    )
    op.create_index("ix_market_snapshots_market", "market_snapshots", ["market"], schema=SCHEMA)


def downgrade() -> None:
    op.drop_index("ix_market_snapshots_market", table_name="market_snapshots", schema=SCHEMA)
    op.drop_table("market_snapshots", schema=SCHEMA)
    op.drop_index("ix_market_events_market", table_name="market_events", schema=SCHEMA)
    op.drop_table("market_events", schema=SCHEMA)
