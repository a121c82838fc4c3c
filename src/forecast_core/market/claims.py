"""Claim distribution: pro-rata payout of each outcome's settled pot."""

from __future__ import annotations

from dataclasses import dataclass, field

from forecast_core.market.fixed_point import checked_sub, mul_div


@dataclass
class ClaimPlan:
    """Per-outcome burns and payouts for one holder, before anything moves."""

    burns: dict[int, int] = field(default_factory=dict)
    payouts: dict[int, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.payouts.values())

    @property
    def empty(self) -> bool:
        return not self.burns


class ClaimDistributor:
    """Pays holders from post-settlement pots, burning what they redeem.

    Each claim takes ``floor(pot * balance / supply)`` and shrinks both pot
    and supply, so later claimers see a ratio at least as good as the frozen
    one and the last holder of an outcome collects the remaining pot exactly.
    """

    def __init__(self) -> None:
        self._paid: dict[str, int] = {}

    def plan(self, balances: dict[int, int], stake: list[int], supply: list[int]) -> ClaimPlan:
        plan = ClaimPlan()
        for outcome, balance in balances.items():
            if balance <= 0:
                continue
            plan.burns[outcome] = balance
            plan.payouts[outcome] = mul_div(stake[outcome], balance, supply[outcome])
        return plan

    def apply(self, holder: str, plan: ClaimPlan, stake: list[int], supply: list[int]) -> None:
        """Debit the pots and supply in place and record the payout."""
        for outcome, burned in plan.burns.items():
            stake[outcome] = checked_sub(stake[outcome], plan.payouts[outcome])
            supply[outcome] = checked_sub(supply[outcome], burned)
        self._paid[holder] = self._paid.get(holder, 0) + plan.total

    def claimed(self, holder: str) -> int:
        """Total collateral paid to *holder* so far."""
        return self._paid.get(holder, 0)
