"""Structured logging."""

from forecast_core.logging.setup import get_logger, market_context, setup_logging

__all__ = ["get_logger", "market_context", "setup_logging"]
