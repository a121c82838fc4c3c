"""Fee ledger: per-recipient fee accrual, independent of market outcome."""

from __future__ import annotations

from dataclasses import dataclass, field

from forecast_core.market.errors import InvalidInputError
from forecast_core.market.fixed_point import BPS, bps_of, checked_add, checked_sub
from forecast_core.models.market import FeeShare


@dataclass
class FeeBreakdown:
    """How a gross amount splits into fees and the remainder."""

    gross: int
    net: int
    allocations: dict[str, int] = field(default_factory=dict)
    unassigned: int = 0  # referral quoted without a recipient

    @property
    def total_fees(self) -> int:
        return sum(self.allocations.values()) + self.unassigned


class FeeLedger:
    """Accrues fees for protocol shares and referral recipients.

    Policy: each protocol share takes ``floor(gross * bps / 10_000)`` of every
    buy; an optional referral takes ``floor(gross * fee_bps / 10_000)`` of a
    buy or of a sell's gross refund. Sells pay no protocol fee. Each share is
    rounded down on its own and the remainder is the net amount. A recipient
    listed more than once has its amounts summed.
    """

    def __init__(self, shares: list[FeeShare], max_referral_bps: int = BPS) -> None:
        self.shares = list(shares)
        self.max_referral_bps = max_referral_bps
        self._balances: dict[str, int] = {}

    @property
    def protocol_bps(self) -> int:
        return sum(s.bps for s in self.shares)

    def check_referral(
        self,
        fee_bps: int,
        fee_recipient: str | None,
        protocol_bps: int = 0,
        require_recipient: bool = True,
    ) -> None:
        """Reject a referral rate the market does not allow."""
        if fee_bps < 0 or fee_bps > self.max_referral_bps:
            raise InvalidInputError("INVALID_FEE", fee_bps=fee_bps, max_bps=self.max_referral_bps)
        if protocol_bps + fee_bps > BPS:
            raise InvalidInputError("INVALID_FEE", fee_bps=fee_bps, protocol_bps=protocol_bps)
        if require_recipient and fee_bps > 0 and not fee_recipient:
            raise InvalidInputError("INVALID_FEE", reason="referral fee without recipient")

    def _split(
        self,
        gross: int,
        shares: list[FeeShare],
        fee_bps: int,
        fee_recipient: str | None,
    ) -> FeeBreakdown:
        allocations: dict[str, int] = {}
        for share in shares:
            allocations[share.recipient] = allocations.get(share.recipient, 0) + bps_of(gross, share.bps)
        unassigned = 0
        if fee_bps:
            referral = bps_of(gross, fee_bps)
            if fee_recipient:
                allocations[fee_recipient] = allocations.get(fee_recipient, 0) + referral
            else:
                unassigned = referral
        net = checked_sub(gross, sum(allocations.values()) + unassigned)
        return FeeBreakdown(gross=gross, net=net, allocations=allocations, unassigned=unassigned)

    def split_buy(self, gross: int, fee_bps: int = 0, fee_recipient: str | None = None) -> FeeBreakdown:
        """Protocol shares plus optional referral, deducted from a buy."""
        return self._split(gross, self.shares, fee_bps, fee_recipient)

    def split_sell(self, gross: int, fee_bps: int = 0, fee_recipient: str | None = None) -> FeeBreakdown:
        """Optional referral deducted from a sell refund."""
        return self._split(gross, [], fee_bps, fee_recipient)

    # ── Balances ──────────────────────────────────────────────

    def credit(self, breakdown: FeeBreakdown) -> None:
        if breakdown.unassigned:
            raise InvalidInputError("INVALID_FEE", reason="referral fee without recipient")
        for recipient, amount in breakdown.allocations.items():
            if amount:
                self._balances[recipient] = checked_add(self._balances.get(recipient, 0), amount)

    def balance_of(self, recipient: str) -> int:
        return self._balances.get(recipient, 0)

    def take(self, recipient: str) -> int:
        """Zero *recipient*'s balance and return what it held."""
        return self._balances.pop(recipient, 0)

    def total(self) -> int:
        return sum(self._balances.values())

    def balances(self) -> dict[str, int]:
        return dict(self._balances)
