"""Market error taxonomy.

Every failure carries a stable ``code`` string; ``str(err)`` is the code so
callers can match on it. Errors are raised before any state is committed.
"""

from __future__ import annotations

from typing import Any


class MarketError(Exception):
    """Base class for all engine failures."""

    code: str = "MARKET_ERROR"

    def __init__(self, code: str | None = None, **context: Any) -> None:
        if code is not None:
            self.code = code
        self.context = context
        super().__init__(self.code)


class AuthorizationError(MarketError):
    """Caller lacks the role or ownership the operation requires."""


class TimingError(MarketError):
    """Operation attempted outside its time window."""


class StateError(MarketError):
    """Operation not allowed in the market's current lifecycle state."""


class InvalidInputError(MarketError):
    """Input violates a documented contract (report shape, fees, outcome index)."""


class CapacityError(MarketError):
    """Requested quantity exceeds supply, balance or cap."""


class ArithmeticFault(MarketError):
    """Fixed-point underflow, overflow or division by zero."""

    code = "ARITHMETIC_FAULT"


class LedgerError(MarketError):
    """An external ledger refused a transfer."""
