"""Settlement: oracle authorization, report validation, payout freezing.

Payout rule
-----------
``pool = sum(stake)``; an outcome is *eligible* if anyone holds it.

* Valid report: each eligible outcome gets ``floor(pool * weight / 10_000)``.
  Whatever is left (weight on outcomes nobody holds, plus rounding) is the
  orphan, refunded to eligible outcomes in proportion to their own stake.
* Invalid report: the whole pool is orphan, so every outcome gets its own
  stake back.

The final rounding remainder goes to the eligible outcome with the largest
pot (lowest index on ties), so pots always sum to the pool.
"""

from __future__ import annotations

import structlog

from forecast_core.market.errors import AuthorizationError, InvalidInputError
from forecast_core.market.fixed_point import BPS, checked_sub, mul_div
from forecast_core.models.market import PayoutRatio
from forecast_core.models.report import Report

log = structlog.get_logger("settlement")


class SettlementEngine:
    """Checks who may settle and what a report must look like."""

    def __init__(self, oracle: str, outcome_count: int) -> None:
        self.oracle = oracle
        self.outcome_count = outcome_count

    def authorize(self, caller: str) -> None:
        if caller != self.oracle:
            raise AuthorizationError("UNAUTHORIZED_ORACLE", caller=caller)

    def validate(self, report: Report) -> None:
        if report.invalid:
            return
        weights = report.weights or []
        if len(weights) != self.outcome_count:
            raise InvalidInputError(
                "INVALID_REPORT", expected=self.outcome_count, got=len(weights),
            )
        if any(w < 0 or w > BPS for w in weights):
            raise InvalidInputError("INVALID_REPORT", weights=weights)
        if sum(weights) != BPS:
            raise InvalidInputError("INVALID_REPORT", total=sum(weights), expected_total=BPS)

    def compute_pots(self, report: Report, supply: list[int], stake: list[int]) -> list[int]:
        """Redistribute the pool across outcomes according to *report*."""
        pool = sum(stake)
        eligible = [i for i in range(self.outcome_count) if supply[i] > 0]
        if not eligible:
            # Nothing outstanding: stake is already zero everywhere.
            return list(stake)

        pots = [0] * self.outcome_count
        if not report.invalid:
            for i in eligible:
                pots[i] = mul_div(pool, report.weights[i], BPS)

        orphan = checked_sub(pool, sum(pots))
        eligible_stake = sum(stake[i] for i in eligible)
        if orphan and eligible_stake:
            for i in eligible:
                pots[i] += mul_div(orphan, stake[i], eligible_stake)

        remainder = checked_sub(pool, sum(pots))
        if remainder:
            richest = max(eligible, key=lambda i: (pots[i], -i))
            pots[richest] += remainder

        log.debug("pots_computed", pool=pool, pots=pots, void=report.invalid)
        return pots

    @staticmethod
    def freeze(pots: list[int], supply: list[int]) -> list[PayoutRatio]:
        return [PayoutRatio(numerator=pot, denominator=s) for pot, s in zip(pots, supply)]
