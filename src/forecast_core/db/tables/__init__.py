"""Import all table modules so Base.metadata knows about them."""

from forecast_core.db.tables.journal import MarketEventRow, MarketSnapshotRow

__all__ = [
    "MarketEventRow",
    "MarketSnapshotRow",
]
