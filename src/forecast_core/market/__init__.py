"""Market engine: bonding-curve trading, settlement and claims."""

from forecast_core.market.claims import ClaimDistributor, ClaimPlan
from forecast_core.market.clock import Clock, ManualClock, SystemClock
from forecast_core.market.curve import BondingCurvePricer
from forecast_core.market.engine import Market
from forecast_core.market.errors import (
    ArithmeticFault,
    AuthorizationError,
    CapacityError,
    InvalidInputError,
    LedgerError,
    MarketError,
    StateError,
    TimingError,
)
from forecast_core.market.fees import FeeBreakdown, FeeLedger
from forecast_core.market.fixed_point import BPS, ONE
from forecast_core.market.ledgers import InMemoryCollateralToken, InMemoryOutcomeLedger
from forecast_core.market.lifecycle import MarketStateMachine
from forecast_core.market.oracle import (
    INVALID_ANSWER,
    OracleBridge,
    answer_to_report,
    derive_question_id,
)
from forecast_core.market.settlement import SettlementEngine

__all__ = [
    "ArithmeticFault",
    "AuthorizationError",
    "BPS",
    "BondingCurvePricer",
    "CapacityError",
    "ClaimDistributor",
    "ClaimPlan",
    "Clock",
    "FeeBreakdown",
    "FeeLedger",
    "INVALID_ANSWER",
    "InMemoryCollateralToken",
    "InMemoryOutcomeLedger",
    "InvalidInputError",
    "LedgerError",
    "ManualClock",
    "Market",
    "MarketError",
    "MarketStateMachine",
    "ONE",
    "OracleBridge",
    "SettlementEngine",
    "StateError",
    "SystemClock",
    "TimingError",
    "answer_to_report",
    "derive_question_id",
]
