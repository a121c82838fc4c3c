"""Market: the per-market engine.

Wires the bonding curve, fee ledger, lifecycle, settlement and claim
distribution around two external ledgers (collateral and outcome tokens).

Every state-changing entry point runs as one transaction:

1. validate (timing, authorization, input, capacity),
2. apply effects to supply / stake / fees,
3. call the external ledgers.

If anything raises, the internal state is restored from the snapshot taken
on entry, ledger calls that already went through are reversed in reverse
order, and the error propagates, so a failed call changes nothing.
Re-entering the market from inside a ledger call is refused.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from decimal import Decimal
from functools import partial

import structlog

from forecast_core.logging.setup import market_context
from forecast_core.market.claims import ClaimDistributor
from forecast_core.market.clock import Clock, SystemClock
from forecast_core.market.curve import BondingCurvePricer
from forecast_core.market.errors import (
    AuthorizationError,
    CapacityError,
    InvalidInputError,
    StateError,
)
from forecast_core.market.fees import FeeLedger
from forecast_core.market.fixed_point import checked_add, checked_sub
from forecast_core.market.ledgers import CollateralToken, InMemoryOutcomeLedger, OutcomeTokenLedger
from forecast_core.market.lifecycle import MarketStateMachine
from forecast_core.market.oracle import derive_question_id
from forecast_core.market.settlement import SettlementEngine
from forecast_core.models.event import MarketEvent
from forecast_core.models.market import MarketParams, MarketSnapshot, MarketStatus, PayoutRatio
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

log = structlog.get_logger("market_engine")

JournalSink = Callable[[MarketEvent], None]
Undo = Callable[[], None]

# Everything a failed transaction must roll back.
_STATE_FIELDS = (
    "_lifecycle",
    "_fees",
    "_claims",
    "_supply",
    "_stake",
    "_payout_ratios",
    "_void",
)


class Market:
    """One prediction question, its outcome ledgers and its collateral pool."""

    def __init__(
        self,
        address: str,
        creator: str,
        params: MarketParams,
        collateral: CollateralToken,
        outcome_tokens: OutcomeTokenLedger | None = None,
        clock: Clock | None = None,
        journal: JournalSink | None = None,
    ) -> None:
        self.address = address
        self.creator = creator
        self.params = params
        self.collateral = collateral
        self.outcome_tokens = outcome_tokens if outcome_tokens is not None else InMemoryOutcomeLedger()
        self.clock = clock if clock is not None else SystemClock()
        self.journal = journal
        self.question_id = derive_question_id(address, params.settings)
        self.pricer = BondingCurvePricer(params.curve.slope)
        self._settlement = SettlementEngine(params.oracle, params.outcome_count)

        self._lifecycle = MarketStateMachine(params)
        self._fees = FeeLedger(params.fee_shares, params.max_referral_fee_bps)
        self._claims = ClaimDistributor()
        self._supply = [0] * params.outcome_count
        self._stake = [0] * params.outcome_count
        self._payout_ratios: list[PayoutRatio] | None = None
        self._void = False
        self._busy = False

        log.info(
            "market_created",
            market=address,
            creator=creator,
            outcome_count=params.outcome_count,
            slope=params.curve.slope,
            protocol_fee_bps=params.protocol_fee_bps,
            question_id=self.question_id,
        )

    # ── Transactions ──────────────────────────────────────────

    @contextmanager
    def _transaction(self, action: str) -> Iterator[list[Undo]]:
        """Run one entry point atomically.

        Yields a list that each successful ledger call appends its inverse to.
        """
        if self._busy:
            raise StateError("REENTRANT_CALL", action=action)
        self._busy = True
        saved = copy.deepcopy({name: getattr(self, name) for name in _STATE_FIELDS})
        undo: list[Undo] = []
        try:
            with market_context(self.address, action):
                yield undo
        except Exception:
            for name, value in saved.items():
                setattr(self, name, value)
            self._compensate(action, undo)
            raise
        finally:
            self._busy = False

    def _compensate(self, action: str, undo: list[Undo]) -> None:
        for step in reversed(undo):
            try:
                step()
            except Exception:
                log.exception("ledger_compensation_failed", market=self.address, action=action)
                raise
        if undo:
            log.warning("ledger_calls_reversed", market=self.address, action=action, count=len(undo))

    def _emit(self, kind: str, caller: str, ts: int, payload: dict) -> None:
        if self.journal is None:
            return
        event = MarketEvent(market=self.address, kind=kind, ts=ts, caller=caller, payload=payload)
        try:
            self.journal(event)
        except Exception:
            log.exception("journal_write_failed", market=self.address, kind=kind)

    def _check_outcome(self, outcome: int) -> None:
        if not 0 <= outcome < self.outcome_count:
            raise InvalidInputError(
                "INVALID_OUTCOME", outcome=outcome, outcome_count=self.outcome_count,
            )

    def _is_operator(self, owner: str, caller: str) -> bool:
        return caller == owner or self.outcome_tokens.is_approved_for_all(owner, caller)

    # ── Read-only views ───────────────────────────────────────

    @property
    def outcome_count(self) -> int:
        return self.params.outcome_count

    @property
    def status(self) -> MarketStatus:
        return self._lifecycle.effective(self.clock.now())

    def supply(self, outcome: int) -> int:
        self._check_outcome(outcome)
        return self._supply[outcome]

    def stake(self, outcome: int) -> int:
        self._check_outcome(outcome)
        return self._stake[outcome]

    @property
    def total_stake(self) -> int:
        return sum(self._stake)

    def collected_fees(self, recipient: str) -> int:
        return self._fees.balance_of(recipient)

    @property
    def total_fees(self) -> int:
        return self._fees.total()

    @property
    def payout_ratios(self) -> list[PayoutRatio] | None:
        return list(self._payout_ratios) if self._payout_ratios is not None else None

    def payout_ratio(self, outcome: int) -> PayoutRatio:
        self._check_outcome(outcome)
        if self._payout_ratios is None:
            raise StateError("MARKET_NOT_SETTLED")
        return self._payout_ratios[outcome]

    @property
    def is_void(self) -> bool:
        return self._void

    def claimed(self, holder: str) -> int:
        return self._claims.claimed(holder)

    def balance_of(self, holder: str, outcome: int) -> int:
        self._check_outcome(outcome)
        return self.outcome_tokens.balance_of(holder, outcome)

    def spot_price(self, outcome: int) -> Decimal:
        return self.pricer.spot_price(self.supply(outcome))

    def snapshot(self) -> MarketSnapshot:
        return MarketSnapshot(
            market=self.address,
            ts=self.clock.now(),
            status=self.status,
            question_id=self.question_id,
            supply=list(self._supply),
            stake=list(self._stake),
            collected_fees=self._fees.balances(),
            payout_ratios=self.payout_ratios,
            void=self._void,
        )

    # ── Quotes ────────────────────────────────────────────────

    def quote_buy(self, collateral_in: int, outcome: int, fee_bps: int = 0) -> int:
        """Tokens minted for *collateral_in* after protocol and referral fees.

        Returns 0 when the net collateral cannot buy a whole token.
        """
        self._check_outcome(outcome)
        self._fees.check_referral(fee_bps, None, self._fees.protocol_bps, require_recipient=False)
        breakdown = self._fees.split_buy(collateral_in, fee_bps)
        return self.pricer.tokens_for(self._supply[outcome], breakdown.net)

    def quote_sell(self, token_amount: int, outcome: int) -> int:
        """Gross collateral released by selling *token_amount* (before referral)."""
        self._check_outcome(outcome)
        return self.pricer.refund_for(self._supply[outcome], self._stake[outcome], token_amount)

    # ── Lifecycle ─────────────────────────────────────────────

    def _publish(self, caller: str) -> None:
        if caller != self.creator:
            raise AuthorizationError("UNAUTHORIZED_PUBLISHER", caller=caller)
        self._lifecycle.transition(MarketStatus.PUBLISHED)

    def publish(self, caller: str) -> MarketStatus:
        """CREATED -> PUBLISHED, by the registry identity that created the market."""
        now = self.clock.now()
        with self._transaction("publish"):
            self._publish(caller)
        self._emit("published", caller, now, {"status": MarketStatus.PUBLISHED.value})
        return MarketStatus.PUBLISHED

    def next_market_status(self, caller: str) -> MarketStatus:
        """Advance one lifecycle step if its gate (caller or time) allows."""
        now = self.clock.now()
        with self._transaction("next_market_status"):
            if self._lifecycle.status is MarketStatus.CREATED:
                self._publish(caller)
                status = MarketStatus.PUBLISHED
            else:
                status = self._lifecycle.advance(now)
        self._emit("status_advanced", caller, now, {"status": status.value})
        return status

    # ── Trading ───────────────────────────────────────────────

    def buy(self, caller: str, order: BuyOrder, routing: BuyRouting) -> BuyReceipt:
        """Pull collateral from the payer and mint outcome tokens on the curve."""
        now = self.clock.now()
        outcome = order.outcome
        with self._transaction("buy") as undo:
            self._lifecycle.require_trading(now)
            self._check_outcome(outcome)
            if not self._is_operator(routing.payer, caller):
                raise AuthorizationError("NOT_ELIGIBLE_TO_BUY", caller=caller, payer=routing.payer)
            self._fees.check_referral(order.fee_bps, routing.fee_recipient, self._fees.protocol_bps)
            curve = self.params.curve
            if order.collateral_amount < curve.min_investment:
                raise InvalidInputError(
                    "BELOW_MIN_INVESTMENT",
                    amount=order.collateral_amount,
                    min_investment=curve.min_investment,
                )

            breakdown = self._fees.split_buy(order.collateral_amount, order.fee_bps, routing.fee_recipient)
            supply = self._supply[outcome]
            tokens = self.pricer.tokens_for(supply, breakdown.net)
            if tokens == 0:
                raise InvalidInputError("ZERO_TOKENS_OUT", net_collateral=breakdown.net)
            if tokens < order.min_tokens_out:
                raise InvalidInputError("INSUFFICIENT_OUTPUT", tokens=tokens, minimum=order.min_tokens_out)
            if curve.max_supply is not None and supply + tokens > curve.max_supply:
                raise CapacityError("SUPPLY_CAP_EXCEEDED", supply=supply, tokens=tokens, cap=curve.max_supply)

            self._supply[outcome] = checked_add(supply, tokens)
            self._stake[outcome] = checked_add(self._stake[outcome], breakdown.net)
            self._fees.credit(breakdown)

            allowance = self.collateral.allowance(routing.payer, self.address)
            self.collateral.transfer_from(self.address, routing.payer, self.address, order.collateral_amount)
            undo.append(partial(self.collateral.approve, routing.payer, self.address, allowance))
            undo.append(partial(self.collateral.transfer, self.address, routing.payer, order.collateral_amount))
            self.outcome_tokens.mint(routing.token_recipient, outcome, tokens)
            undo.append(partial(self.outcome_tokens.burn, routing.token_recipient, outcome, tokens))

            receipt = BuyReceipt(
                outcome=outcome,
                collateral_in=order.collateral_amount,
                net_collateral=breakdown.net,
                fees=breakdown.allocations,
                tokens_out=tokens,
                supply_after=self._supply[outcome],
                stake_after=self._stake[outcome],
            )
            log.info(
                "market_buy",
                payer=routing.payer,
                recipient=routing.token_recipient,
                outcome=outcome,
                collateral_in=order.collateral_amount,
                fees=breakdown.total_fees,
                tokens_out=tokens,
            )
        self._emit("buy", caller, now, receipt.model_dump())
        return receipt

    def sell(self, caller: str, order: SellOrder, routing: SellRouting) -> SellReceipt:
        """Burn the seller's tokens and release collateral down the curve."""
        now = self.clock.now()
        outcome = order.outcome
        seller = routing.seller
        with self._transaction("sell") as undo:
            self._lifecycle.require_trading(now)
            self._check_outcome(outcome)
            if not self._is_operator(seller, caller):
                raise AuthorizationError("NOT_ELIGIBLE_TO_SELL", caller=caller, seller=seller)
            self._fees.check_referral(order.fee_bps, routing.fee_recipient)
            held = self.outcome_tokens.balance_of(seller, outcome)
            if held < order.token_amount:
                raise CapacityError("INSUFFICIENT_AMOUNT", held=held, requested=order.token_amount)

            gross = self.pricer.refund_for(self._supply[outcome], self._stake[outcome], order.token_amount)
            breakdown = self._fees.split_sell(gross, order.fee_bps, routing.fee_recipient)
            if breakdown.net < order.min_collateral_out:
                raise InvalidInputError(
                    "INSUFFICIENT_OUTPUT", collateral=breakdown.net, minimum=order.min_collateral_out,
                )

            self._supply[outcome] = checked_sub(self._supply[outcome], order.token_amount)
            self._stake[outcome] = checked_sub(self._stake[outcome], gross)
            self._fees.credit(breakdown)

            self.outcome_tokens.burn(seller, outcome, order.token_amount)
            undo.append(partial(self.outcome_tokens.mint, seller, outcome, order.token_amount))
            if breakdown.net:
                self.collateral.transfer(self.address, routing.collateral_recipient, breakdown.net)
                undo.append(
                    partial(self.collateral.transfer, routing.collateral_recipient, self.address, breakdown.net)
                )

            receipt = SellReceipt(
                outcome=outcome,
                tokens_in=order.token_amount,
                gross_collateral=gross,
                fees=breakdown.allocations,
                collateral_out=breakdown.net,
                supply_after=self._supply[outcome],
                stake_after=self._stake[outcome],
            )
            log.info(
                "market_sell",
                seller=seller,
                recipient=routing.collateral_recipient,
                outcome=outcome,
                tokens_in=order.token_amount,
                collateral_out=breakdown.net,
            )
        self._emit("sell", caller, now, receipt.model_dump())
        return receipt

    # ── Settlement & payouts ──────────────────────────────────

    def settle(self, caller: str, report: Report) -> SettlementResult:
        """Accept the oracle's report once and freeze per-outcome payout ratios."""
        now = self.clock.now()
        with self._transaction("settle"):
            self._settlement.authorize(caller)
            self._lifecycle.require_settleable(now)
            self._settlement.validate(report)
            self._lifecycle.transition(MarketStatus.REPORTED)

            pots = self._settlement.compute_pots(report, self._supply, self._stake)
            self._payout_ratios = self._settlement.freeze(pots, self._supply)
            self._stake = pots
            self._void = report.invalid
            self._lifecycle.transition(MarketStatus.SETTLED)

            result = SettlementResult(
                status=MarketStatus.SETTLED,
                payout_ratios=list(self._payout_ratios),
                pots=list(pots),
                void=report.invalid,
            )
            log.info("market_settled", pots=pots, void=report.invalid, weights=report.weights)
        self._emit("settled", caller, now, result.model_dump(mode="json"))
        return result

    def claim(self, caller: str, holder: str) -> ClaimReceipt:
        """Redeem all of *holder*'s outcome tokens; anyone may trigger it."""
        now = self.clock.now()
        with self._transaction("claim") as undo:
            if self._lifecycle.status is not MarketStatus.SETTLED:
                raise StateError("MARKET_NOT_SETTLED", status=self._lifecycle.status.value)
            balances = {
                outcome: self.outcome_tokens.balance_of(holder, outcome)
                for outcome in range(self.outcome_count)
            }
            plan = self._claims.plan(balances, self._stake, self._supply)
            if plan.empty:
                log.debug("claim_noop", holder=holder, caller=caller)
                return ClaimReceipt(holder=holder, payout=0)

            self._claims.apply(holder, plan, self._stake, self._supply)

            for outcome, burned in plan.burns.items():
                self.outcome_tokens.burn(holder, outcome, burned)
                undo.append(partial(self.outcome_tokens.mint, holder, outcome, burned))
            if plan.total:
                self.collateral.transfer(self.address, holder, plan.total)
                undo.append(partial(self.collateral.transfer, holder, self.address, plan.total))

            receipt = ClaimReceipt(holder=holder, payout=plan.total, burned=dict(plan.burns))
            log.info("claim_paid", holder=holder, caller=caller, payout=plan.total, burned=plan.burns)
        self._emit("claim", caller, now, receipt.model_dump(mode="json"))
        return receipt

    def withdraw_fees(self, caller: str, recipient: str) -> int:
        """Pay *recipient*'s accrued fees to *recipient*; anyone may trigger it."""
        now = self.clock.now()
        with self._transaction("withdraw_fees"):
            amount = self._fees.take(recipient)
            if amount == 0:
                log.debug("fees_withdraw_noop", recipient=recipient, caller=caller)
                return 0
            self.collateral.transfer(self.address, recipient, amount)
            log.info("fees_withdrawn", recipient=recipient, caller=caller, amount=amount)
        self._emit("fees_withdrawn", caller, now, {"recipient": recipient, "amount": amount})
        return amount
