"""Market lifecycle: one status field, one static transition table."""

from __future__ import annotations

import structlog

from forecast_core.market.errors import StateError, TimingError
from forecast_core.models.market import MarketParams, MarketStatus

log = structlog.get_logger("market_lifecycle")

TRANSITIONS: dict[MarketStatus, MarketStatus] = {
    MarketStatus.CREATED: MarketStatus.PUBLISHED,
    MarketStatus.PUBLISHED: MarketStatus.TRADING,
    MarketStatus.TRADING: MarketStatus.CLOSED,
    MarketStatus.CLOSED: MarketStatus.REPORTED,
    MarketStatus.REPORTED: MarketStatus.SETTLED,
}


class MarketStateMachine:
    """Validates and applies lifecycle transitions against the schedule."""

    def __init__(self, params: MarketParams, status: MarketStatus = MarketStatus.CREATED) -> None:
        self.start_time = params.start_time
        self.end_time = params.end_time
        self.report_deadline = params.report_deadline
        self.status = status

    def effective(self, now: int) -> MarketStatus:
        """Status as of *now*, counting the implicit close at ``end_time``."""
        if self.status is MarketStatus.TRADING and now >= self.end_time:
            return MarketStatus.CLOSED
        return self.status

    def sync(self, now: int) -> MarketStatus:
        """Persist the implicit TRADING -> CLOSED transition."""
        effective = self.effective(now)
        if effective is not self.status:
            self.transition(effective)
        return self.status

    def transition(self, target: MarketStatus) -> None:
        if self.status is MarketStatus.SETTLED:
            raise StateError("MARKET_SETTLED")
        if TRANSITIONS.get(self.status) is not target:
            raise StateError("INVALID_TRANSITION", current=self.status.value, target=target.value)
        log.info("market_status_changed", previous=self.status.value, status=target.value)
        self.status = target

    def require(self, *allowed: MarketStatus) -> None:
        if self.status not in allowed:
            raise StateError(
                "INVALID_STATUS",
                status=self.status.value,
                allowed=[s.value for s in allowed],
            )

    def advance(self, now: int) -> MarketStatus:
        """Time-gated generic advance used by ``next_market_status``.

        Publishing is gated by caller, not time, and is checked by the market.
        CLOSED can only be left through settlement.
        """
        previous = self.status
        current = self.sync(now)
        if previous is MarketStatus.TRADING and current is MarketStatus.CLOSED:
            return current
        if current is MarketStatus.SETTLED:
            raise StateError("MARKET_SETTLED")
        if current in (MarketStatus.CLOSED, MarketStatus.REPORTED):
            raise StateError("INVALID_TRANSITION", current=current.value)
        if current is MarketStatus.PUBLISHED and now < self.start_time:
            raise TimingError("MARKET_NOT_STARTED", now=now, start_time=self.start_time)
        if current is MarketStatus.TRADING and now < self.end_time:
            raise TimingError("MARKET_NOT_ENDED", now=now, end_time=self.end_time)
        self.transition(TRANSITIONS[current])
        # Advancing into TRADING after end_time closes straight away.
        return self.sync(now)

    def require_trading(self, now: int) -> None:
        """Gate for buy/sell: status TRADING and ``start_time <= now < end_time``."""
        self.sync(now)
        if self.status in (MarketStatus.CLOSED, MarketStatus.REPORTED, MarketStatus.SETTLED):
            raise TimingError("MARKET_CLOSED", now=now, end_time=self.end_time)
        if self.status is not MarketStatus.TRADING or now < self.start_time:
            raise TimingError("MARKET_NOT_TRADING", now=now, status=self.status.value)

    def require_settleable(self, now: int) -> None:
        """Gate for settlement: past the report deadline and CLOSED."""
        self.sync(now)
        if self.status is MarketStatus.SETTLED:
            raise StateError("MARKET_SETTLED")
        if now < self.report_deadline:
            raise TimingError("REPORT_TOO_EARLY", now=now, report_deadline=self.report_deadline)
        self.require(MarketStatus.CLOSED)
