"""Bonding-curve pricing: pure functions of supply, stake and slope.

The marginal price of an outcome token is linear in that outcome's supply::

    p(s) = slope * s / ONE

so the collateral needed to take supply from 0 to ``s`` is the integral

    C(s) = slope * s**2 / (2 * ONE)

Buying inverts the integral with an integer square root and rounds the token
count down; selling evaluates the integral and rounds the refund down. Both
roundings keep ``stake >= C(supply)`` for every outcome, so the pool can
always cover a full unwind.
"""

from __future__ import annotations

from decimal import Decimal

from forecast_core.market.errors import CapacityError
from forecast_core.market.fixed_point import ONE, Rounding, checked_sub, isqrt, mul_div


class BondingCurvePricer:
    """Quadratic-cost curve for a single slope, shared by every outcome."""

    def __init__(self, slope: int) -> None:
        if slope <= 0:
            raise ValueError("slope must be positive")
        self.slope = slope

    def integral(self, supply: int, rounding: Rounding = Rounding.DOWN) -> int:
        """C(supply) rounded in the requested direction."""
        return mul_div(self.slope, supply * supply, 2 * ONE, rounding)

    def tokens_for(self, supply: int, net_collateral: int) -> int:
        """Largest token amount whose exact curve cost fits in *net_collateral*.

        Solves ``C(s + q) - C(s) <= net`` for the biggest integer ``q``:
        ``(s + q)**2 <= s**2 + 2 * net * ONE / slope``.
        """
        if net_collateral <= 0:
            return 0
        headroom = mul_div(2 * net_collateral, ONE, self.slope)
        return checked_sub(isqrt(supply * supply + headroom), supply)

    def refund_for(self, supply: int, stake: int, tokens: int) -> int:
        """Collateral released by burning *tokens* from *supply*.

        Selling the entire supply releases the whole stake, rounding dust
        included; anything less pays the curve integral rounded down.
        """
        if tokens > supply:
            raise CapacityError("BEYOND_SUPPLY", supply=supply, tokens=tokens)
        if tokens == supply:
            return stake
        remaining = supply - tokens
        refund = mul_div(self.slope, supply * supply - remaining * remaining, 2 * ONE)
        return min(refund, stake)

    def cost_for(self, supply: int, tokens: int) -> int:
        """Collateral (net of fees) needed to mint exactly *tokens*, rounded up."""
        after = supply + tokens
        return mul_div(self.slope, after * after - supply * supply, 2 * ONE, Rounding.UP)

    def spot_price(self, supply: int) -> Decimal:
        """Marginal price of the next token, in collateral units per token."""
        return Decimal(self.slope) * Decimal(supply) / Decimal(ONE)
