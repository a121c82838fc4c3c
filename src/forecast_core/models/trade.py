"""Trade orders, recipient routing and receipts."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from forecast_core.models.market import BPS_DENOMINATOR, MarketStatus, PayoutRatio


class BuyOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    collateral_amount: int = Field(gt=0)
    outcome: int = Field(ge=0)
    fee_bps: int = Field(default=0, ge=0, le=BPS_DENOMINATOR)
    min_tokens_out: int = Field(default=0, ge=0)


class BuyRouting(BaseModel):
    """Who pays, who receives the tokens, and who earns the referral fee."""

    model_config = ConfigDict(frozen=True)

    payer: str
    token_recipient: str
    fee_recipient: str | None = None


class SellOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    token_amount: int = Field(gt=0)
    outcome: int = Field(ge=0)
    min_collateral_out: int = Field(default=0, ge=0)
    fee_bps: int = Field(default=0, ge=0, le=BPS_DENOMINATOR)


class SellRouting(BaseModel):
    model_config = ConfigDict(frozen=True)

    seller: str
    collateral_recipient: str
    fee_recipient: str | None = None


class BuyReceipt(BaseModel):
    outcome: int
    collateral_in: int
    net_collateral: int
    fees: dict[str, int]
    tokens_out: int
    supply_after: int
    stake_after: int


class SellReceipt(BaseModel):
    outcome: int
    tokens_in: int
    gross_collateral: int
    fees: dict[str, int]
    collateral_out: int
    supply_after: int
    stake_after: int


class SettlementResult(BaseModel):
    status: MarketStatus
    payout_ratios: list[PayoutRatio]
    pots: list[int]
    void: bool


class ClaimReceipt(BaseModel):
    holder: str
    payout: int
    burned: dict[int, int] = Field(default_factory=dict)
