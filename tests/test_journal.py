"""Tests for journal persistence."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from conftest import START, TREASURY, make_market
from forecast_core.db.tables.journal import MarketEventRow, MarketSnapshotRow
from forecast_core.market.journal import SessionJournal, persist_event, persist_snapshot
from forecast_core.models import BuyOrder, BuyRouting, MarketEvent


class TestPersist:
    def test_persist_event(self, db_session):
        event = MarketEvent(market="m-1", kind="buy", ts=START, caller="bob", payload={"tokens_out": 1378})
        row_id = persist_event(db_session, event)

        row = db_session.get(MarketEventRow, row_id)
        assert row.market == "m-1"
        assert row.kind == "buy"
        assert row.caller == "bob"
        assert row.payload == {"tokens_out": 1378}

    def test_persist_snapshot(self, db_session):
        market = make_market(funded={"bob": 10_000_000})
        market.buy(
            "bob",
            BuyOrder(collateral_amount=1_000_000, outcome=0),
            BuyRouting(payer="bob", token_recipient="bob"),
        )
        row_id = persist_snapshot(db_session, market.snapshot())

        row = db_session.get(MarketSnapshotRow, row_id)
        assert row.status == "TRADING"
        assert row.supply == [1378, 0]
        assert row.stake == [950_000, 0]
        assert row.collected_fees == {TREASURY: 50_000}
        assert row.payout_ratios is None
        assert row.void is False
        assert row.question_id == market.question_id


class TestSessionJournal:
    def test_market_events_written(self, db_session):
        journal = SessionJournal(db_session)
        market = make_market(journal=journal, funded={"bob": 10_000_000})
        market.buy(
            "bob",
            BuyOrder(collateral_amount=1_000_000, outcome=1),
            BuyRouting(payer="bob", token_recipient="bob"),
        )

        assert journal.written == 3
        kinds = db_session.scalars(select(MarketEventRow.kind).order_by(MarketEventRow.id)).all()
        assert kinds == ["published", "status_advanced", "buy"]
        buy = db_session.scalars(select(MarketEventRow).where(MarketEventRow.kind == "buy")).one()
        assert buy.payload["tokens_out"] == 1378
        assert buy.market == "market-1"

    def test_failed_write_leaves_session_usable(self, db_session, monkeypatch):
        journal = SessionJournal(db_session)
        commit = db_session.commit
        calls = []

        def flaky_commit():
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError("INSERT", {}, Exception("db gone"))
            commit()

        monkeypatch.setattr(db_session, "commit", flaky_commit)
        first = MarketEvent(market="m-1", kind="buy", ts=START, caller="bob", payload={"tokens_out": 1})
        second = MarketEvent(market="m-1", kind="sell", ts=START, caller="bob", payload={"tokens_in": 1})

        with pytest.raises(OperationalError):
            journal(first)
        journal(second)

        assert journal.written == 1
        assert db_session.scalar(select(func.count()).select_from(MarketEventRow)) == 1
        assert db_session.scalars(select(MarketEventRow.kind)).all() == ["sell"]
