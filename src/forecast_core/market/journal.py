"""Journal persistence: write market events and snapshots to the database."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from forecast_core.db.tables.journal import MarketEventRow, MarketSnapshotRow
from forecast_core.models import MarketEvent, MarketSnapshot

log = structlog.get_logger("market_journal")


def _to_datetime(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def persist_event(session: Session, event: MarketEvent) -> int:
    """Insert a MarketEvent into forecast_journal.market_events and return the row id."""
    row = MarketEventRow(
        market=event.market,
        kind=event.kind,
        ts=_to_datetime(event.ts),
        caller=event.caller,
        payload=event.model_dump(mode="json")["payload"],
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    return row.id


def persist_snapshot(session: Session, snapshot: MarketSnapshot) -> int:
    """Insert a MarketSnapshot into forecast_journal.market_snapshots and return the row id."""
    data = snapshot.model_dump(mode="json")
    row = MarketSnapshotRow(
        market=snapshot.market,
        ts=_to_datetime(snapshot.ts),
        status=snapshot.status.value,
        question_id=snapshot.question_id,
        supply=data["supply"],
        stake=data["stake"],
        collected_fees=data["collected_fees"],
        payout_ratios=data["payout_ratios"],
        void=snapshot.void,
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    log.info("snapshot_persisted", market=snapshot.market, status=snapshot.status.value, row_id=row.id)
    return row.id


class SessionJournal:
    """Journal sink for ``Market`` that writes each event through one session."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.written = 0

    def __call__(self, event: MarketEvent) -> None:
        try:
            persist_event(self.session, event)
        except SQLAlchemyError:
            self.session.rollback()
            raise
        self.written += 1


class MemoryJournal:
    """Journal sink that keeps events in a list."""

    def __init__(self) -> None:
        self.events: list[MarketEvent] = []

    def __call__(self, event: MarketEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]
