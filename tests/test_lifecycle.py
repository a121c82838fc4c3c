"""Tests for the market state machine."""

from __future__ import annotations

import pytest

from conftest import DAY, START, make_params
from forecast_core.market.errors import StateError, TimingError
from forecast_core.market.lifecycle import MarketStateMachine
from forecast_core.models import MarketStatus

END = START + 30 * DAY
DEADLINE = END + DAY


def _machine(status=MarketStatus.CREATED):
    return MarketStateMachine(make_params(), status)


class TestTransitions:
    def test_transition_table_order(self):
        sm = _machine()
        for target in (
            MarketStatus.PUBLISHED,
            MarketStatus.TRADING,
            MarketStatus.CLOSED,
            MarketStatus.REPORTED,
            MarketStatus.SETTLED,
        ):
            sm.transition(target)
        assert sm.status is MarketStatus.SETTLED

    def test_skipping_a_step_fails(self):
        with pytest.raises(StateError) as exc:
            _machine().transition(MarketStatus.TRADING)
        assert exc.value.code == "INVALID_TRANSITION"

    def test_settled_is_terminal(self):
        with pytest.raises(StateError) as exc:
            _machine(MarketStatus.SETTLED).transition(MarketStatus.CLOSED)
        assert exc.value.code == "MARKET_SETTLED"


class TestAdvance:
    def test_published_to_trading_at_start(self):
        sm = _machine(MarketStatus.PUBLISHED)
        assert sm.advance(START) is MarketStatus.TRADING

    def test_not_started(self):
        with pytest.raises(TimingError) as exc:
            _machine(MarketStatus.PUBLISHED).advance(START - 1)
        assert exc.value.code == "MARKET_NOT_STARTED"

    def test_not_ended(self):
        with pytest.raises(TimingError) as exc:
            _machine(MarketStatus.TRADING).advance(END - 1)
        assert exc.value.code == "MARKET_NOT_ENDED"

    def test_trading_to_closed_after_end(self):
        sm = _machine(MarketStatus.TRADING)
        assert sm.advance(END) is MarketStatus.CLOSED
        assert sm.status is MarketStatus.CLOSED

    def test_late_open_closes_immediately(self):
        assert _machine(MarketStatus.PUBLISHED).advance(END + 5) is MarketStatus.CLOSED

    def test_closed_only_leaves_through_settlement(self):
        with pytest.raises(StateError) as exc:
            _machine(MarketStatus.CLOSED).advance(DEADLINE)
        assert exc.value.code == "INVALID_TRANSITION"

    def test_settled_cannot_advance(self):
        with pytest.raises(StateError) as exc:
            _machine(MarketStatus.SETTLED).advance(DEADLINE)
        assert exc.value.code == "MARKET_SETTLED"


class TestGates:
    def test_effective_close(self):
        sm = _machine(MarketStatus.TRADING)
        assert sm.effective(END - 1) is MarketStatus.TRADING
        assert sm.effective(END) is MarketStatus.CLOSED
        assert sm.status is MarketStatus.TRADING

    def test_require_trading(self):
        _machine(MarketStatus.TRADING).require_trading(START)

    def test_require_trading_before_open(self):
        with pytest.raises(TimingError) as exc:
            _machine(MarketStatus.PUBLISHED).require_trading(START)
        assert exc.value.code == "MARKET_NOT_TRADING"

    def test_require_trading_after_close(self):
        with pytest.raises(TimingError) as exc:
            _machine(MarketStatus.TRADING).require_trading(END)
        assert exc.value.code == "MARKET_CLOSED"

    def test_settleable_after_deadline(self):
        sm = _machine(MarketStatus.TRADING)
        sm.require_settleable(DEADLINE)
        assert sm.status is MarketStatus.CLOSED

    def test_report_too_early(self):
        with pytest.raises(TimingError) as exc:
            _machine(MarketStatus.TRADING).require_settleable(DEADLINE - 1)
        assert exc.value.code == "REPORT_TOO_EARLY"

    def test_settle_requires_closed(self):
        with pytest.raises(StateError) as exc:
            _machine(MarketStatus.PUBLISHED).require_settleable(DEADLINE)
        assert exc.value.code == "INVALID_STATUS"

    def test_settle_twice(self):
        with pytest.raises(StateError) as exc:
            _machine(MarketStatus.SETTLED).require_settleable(DEADLINE)
        assert exc.value.code == "MARKET_SETTLED"
