"""SQLAlchemy ORM models for the forecast_journal schema."""

from sqlalchemy import BigInteger, Boolean, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from forecast_core.db.base import Base

SCHEMA = "forecast_journal"


class MarketEventRow(Base):
    __tablename__ = "market_events"
    __table_args__ = {"schema": SCHEMA}

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    market: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    ts: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    caller: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSONB, nullable=True)


class MarketSnapshotRow(Base):
    __tablename__ = "market_snapshots"
    __table_args__ = {"schema": SCHEMA}

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    market: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    ts: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    question_id: Mapped[str] = mapped_column(Text, nullable=False)
    supply: Mapped[list] = mapped_column(JSONB, nullable=False)
    stake: Mapped[list] = mapped_column(JSONB, nullable=False)
    collected_fees: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    payout_ratios: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    void: Mapped[bool] = mapped_column(Boolean, default=False)
