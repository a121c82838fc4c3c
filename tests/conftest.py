"""Shared test fixtures."""

import pytest
from sqlalchemy import BigInteger, Integer, JSON, create_engine, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session

import forecast_core.db.tables  # noqa: F401  registers journal tables on Base.metadata
from forecast_core.db.base import Base
from forecast_core.market import InMemoryCollateralToken, ManualClock, Market, ONE
from forecast_core.models import CurveParams, FeeShare, MarketParams

START = 1_700_000_000
DAY = 86_400
ORACLE = "oracle"
CREATOR = "registry"
TREASURY = "treasury"


@pytest.fixture
def db_session():
    """In-memory SQLite session with all schemas/tables created.

    Patches JSONB→JSON and BigInteger→Integer for SQLite compatibility.
    """
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _rec):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    # SQLite doesn't support schemas, JSONB, or BigInteger autoincrement
    for table in Base.metadata.tables.values():
        table.schema = None
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
            if isinstance(col.type, BigInteger):
                col.type = Integer()

    Base.metadata.create_all(engine)

    session = Session(engine)
    yield session
    session.close()
    engine.dispose()


def make_params(
    outcome_count=2,
    slope=ONE,
    protocol_bps=500,
    min_investment=0,
    max_supply=None,
    start=START,
    trading_days=30,
    report_delay=DAY,
    max_referral_fee_bps=10_000,
    settings="Will it rain in Tokyo on 1 May?",
):
    """Market parameters with a 5% treasury share by default."""
    shares = [FeeShare(recipient=TREASURY, bps=protocol_bps)] if protocol_bps else []
    end = start + trading_days * DAY
    return MarketParams(
        outcome_count=outcome_count,
        start_time=start,
        end_time=end,
        report_deadline=end + report_delay,
        curve=CurveParams(slope=slope, min_investment=min_investment, max_supply=max_supply),
        fee_shares=shares,
        max_referral_fee_bps=max_referral_fee_bps,
        collateral="collateral",
        oracle=ORACLE,
        settings=settings,
    )


def make_market(
    collateral=None, clock=None, journal=None, funded=None, open_trading=True, outcome_tokens=None, **param_overrides
):
    """A market on a manual clock, optionally published and opened for trading.

    *funded* maps accounts to collateral minted and approved for the market.
    """
    collateral = collateral if collateral is not None else InMemoryCollateralToken()
    clock = clock if clock is not None else ManualClock(START)
    market = Market(
        address="market-1",
        creator=CREATOR,
        params=make_params(**param_overrides),
        collateral=collateral,
        clock=clock,
        journal=journal,
        outcome_tokens=outcome_tokens,
    )
    for account, amount in (funded or {}).items():
        collateral.mint(account, amount)
        collateral.approve(account, market.address, amount)
    if open_trading:
        market.publish(CREATOR)
        market.next_market_status(CREATOR)
    return market
