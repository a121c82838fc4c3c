"""Market models: lifecycle status, construction parameters, snapshots."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_OUTCOMES = 256
BPS_DENOMINATOR = 10_000


class MarketStatus(str, Enum):
    """Lifecycle of a single market, in transition order."""

    CREATED = "CREATED"
    PUBLISHED = "PUBLISHED"
    TRADING = "TRADING"
    CLOSED = "CLOSED"
    REPORTED = "REPORTED"
    SETTLED = "SETTLED"


class FeeShare(BaseModel):
    """A protocol fee recipient and its share of every buy, in basis points."""

    model_config = ConfigDict(frozen=True)

    recipient: str = Field(min_length=1)
    bps: int = Field(ge=0, le=BPS_DENOMINATOR)


class CurveParams(BaseModel):
    """Bonding-curve parameters. ``slope`` is scaled by ``ONE`` (1e18)."""

    model_config = ConfigDict(frozen=True)

    slope: int = Field(gt=0)
    min_investment: int = Field(default=0, ge=0)
    max_supply: int | None = Field(default=None, gt=0)


class MarketParams(BaseModel):
    """Validated construction parameters for one market."""

    model_config = ConfigDict(frozen=True)

    outcome_count: int
    start_time: int = Field(ge=0)
    end_time: int
    report_deadline: int
    curve: CurveParams
    fee_shares: list[FeeShare] = Field(default_factory=list)
    max_referral_fee_bps: int = Field(default=BPS_DENOMINATOR, ge=0, le=BPS_DENOMINATOR)
    collateral: str = Field(min_length=1)
    oracle: str = Field(min_length=1)
    settings: str = ""

    @field_validator("outcome_count")
    @classmethod
    def _check_outcome_count(cls, v: int) -> int:
        if not 2 <= v <= MAX_OUTCOMES:
            raise ValueError(f"INVALID_OUTCOME_COUNT: {v} not in 2..{MAX_OUTCOMES}")
        return v

    @model_validator(mode="after")
    def _check_schedule_and_fees(self) -> "MarketParams":
        if not self.start_time < self.end_time <= self.report_deadline:
            raise ValueError(
                "INVALID_SCHEDULE: require start_time < end_time <= report_deadline"
            )
        recipients = [s.recipient for s in self.fee_shares]
        if len(set(recipients)) != len(recipients):
            raise ValueError("INVALID_FEE: duplicate fee recipient")
        if self.protocol_fee_bps > BPS_DENOMINATOR:
            raise ValueError(f"INVALID_FEE: protocol shares sum to {self.protocol_fee_bps} bps")
        return self

    @property
    def protocol_fee_bps(self) -> int:
        return sum(s.bps for s in self.fee_shares)


class PayoutRatio(BaseModel):
    """Collateral per outcome token, frozen at settlement as an exact fraction.

    A zero denominator means nobody held the outcome; its ratio reads as zero.
    """

    model_config = ConfigDict(frozen=True)

    numerator: int = Field(ge=0)
    denominator: int = Field(ge=0)

    @property
    def value(self) -> Decimal:
        if self.denominator == 0:
            return Decimal("0")
        return Decimal(self.numerator) / Decimal(self.denominator)


class MarketSnapshot(BaseModel):
    """Point-in-time view of a market's ledgers."""

    market: str
    ts: int
    status: MarketStatus
    question_id: str
    supply: list[int]
    stake: list[int]
    collected_fees: dict[str, int] = Field(default_factory=dict)
    payout_ratios: list[PayoutRatio] | None = None
    void: bool = False
