"""Pydantic domain models."""

from forecast_core.models.event import MarketEvent
from forecast_core.models.market import (
    CurveParams,
    FeeShare,
    MarketParams,
    MarketSnapshot,
    MarketStatus,
    PayoutRatio,
)
from forecast_core.models.report import Report
from forecast_core.models.trade import (
    BuyOrder,
    BuyReceipt,
    BuyRouting,
    ClaimReceipt,
    SellOrder,
    SellReceipt,
    SellRouting,
    SettlementResult,
)

__all__ = [
    "BuyOrder",
    "BuyReceipt",
    "BuyRouting",
    "ClaimReceipt",
    "CurveParams",
    "FeeShare",
    "MarketEvent",
    "MarketParams",
    "MarketSnapshot",
    "MarketStatus",
    "PayoutRatio",
    "Report",
    "SellOrder",
    "SellReceipt",
    "SellRouting",
    "SettlementResult",
]
