"""Scenario runner: replays a YAML script of market actions in-process.

A scenario looks like::

    clock_start: 1700000000
    market:
      address: market-1
      creator: registry
      settings: "Will it rain in Tokyo on 1 May?"
    steps:
      - {action: fund, account: bob, amount: 10000000}
      - {action: publish}
      - {action: advance}
      - {action: buy, caller: bob, outcome: 0, amount: 1000000}
      - {action: wait, seconds: 2678400}
      - {action: answer, value: 0}
      - {action: wait, seconds: 86400}
      - {action: settle, caller: bob}
      - {action: claim, caller: bob, holder: bob}

Any step may carry ``expect_error: CODE``; the step must then fail with that
code and the run continues.
"""

from __future__ import annotations

import argparse
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog
import yaml

from forecast_core.config.loader import load_config
from forecast_core.config.schema import AppConfig
from forecast_core.db.engine import get_session, init_engine
from forecast_core.logging.setup import setup_logging
from forecast_core.market.clock import ManualClock
from forecast_core.market.engine import JournalSink, Market
from forecast_core.market.errors import MarketError
from forecast_core.market.journal import SessionJournal, persist_snapshot
from forecast_core.market.ledgers import InMemoryCollateralToken
from forecast_core.market.oracle import INVALID_ANSWER, OracleBridge
from forecast_core.models import BuyOrder, BuyRouting, MarketSnapshot, SellOrder, SellRouting

log = structlog.get_logger("market_runner")

BRIDGE_ADDRESS = "oracle-bridge"
COLLATERAL_ADDRESS = "collateral"


class ScenarioError(Exception):
    """The scenario script itself is malformed or did not go as declared."""


class ScenarioContext:
    """Market, bridge, ledgers and clock shared by all steps of one run."""

    def __init__(self, config: AppConfig, scenario: dict, journal: JournalSink | None = None) -> None:
        market_cfg = scenario.get("market", {})
        self.clock = ManualClock(int(scenario.get("clock_start", 0)))
        self.collateral = InMemoryCollateralToken()
        self.bridge = OracleBridge(BRIDGE_ADDRESS, self.clock, config.oracle.answer_timeout_s)
        self.creator = market_cfg.get("creator", "registry")
        params = config.market.to_params(
            start_time=self.clock.now() + int(market_cfg.get("start_offset_s", 0)),
            collateral=COLLATERAL_ADDRESS,
            oracle=self.bridge.address,
            settings=market_cfg.get("settings", ""),
        )
        self.market = Market(
            address=market_cfg.get("address", "market-1"),
            creator=self.creator,
            params=params,
            collateral=self.collateral,
            clock=self.clock,
            journal=journal,
        )
        self.bridge.register(self.market)


# ── Step handlers ─────────────────────────────────────────────


def _fund(ctx: ScenarioContext, step: dict) -> Any:
    """Mint collateral to an account and approve the market to spend it."""
    account, amount = step["account"], int(step["amount"])
    ctx.collateral.mint(account, amount)
    ctx.collateral.approve(account, ctx.market.address, ctx.collateral.allowance(account, ctx.market.address) + amount)
    return ctx.collateral.balance_of(account)


def _approve(ctx: ScenarioContext, step: dict) -> Any:
    """Let an operator trade outcome tokens on behalf of an owner."""
    owner, operator = step["owner"], step["operator"]
    ctx.market.outcome_tokens.set_approval_for_all(owner, operator, bool(step.get("approved", True)))
    return ctx.market.outcome_tokens.is_approved_for_all(owner, operator)


def _publish(ctx: ScenarioContext, step: dict) -> Any:
    return ctx.market.publish(step.get("caller", ctx.creator)).value


def _advance(ctx: ScenarioContext, step: dict) -> Any:
    return ctx.market.next_market_status(step.get("caller", ctx.creator)).value


def _wait(ctx: ScenarioContext, step: dict) -> Any:
    return ctx.clock.advance(int(step["seconds"]))


def _buy(ctx: ScenarioContext, step: dict) -> Any:
    caller = step["caller"]
    order = BuyOrder(
        collateral_amount=int(step["amount"]),
        outcome=int(step["outcome"]),
        fee_bps=int(step.get("fee_bps", 0)),
        min_tokens_out=int(step.get("min_tokens_out", 0)),
    )
    routing = BuyRouting(
        payer=step.get("payer", caller),
        token_recipient=step.get("recipient", caller),
        fee_recipient=step.get("fee_recipient"),
    )
    return ctx.market.buy(caller, order, routing).tokens_out


def _sell(ctx: ScenarioContext, step: dict) -> Any:
    caller = step["caller"]
    seller = step.get("seller", caller)
    outcome = int(step["outcome"])
    tokens = step["tokens"]
    if tokens == "all":
        tokens = ctx.market.balance_of(seller, outcome)
    order = SellOrder(
        token_amount=int(tokens),
        outcome=outcome,
        min_collateral_out=int(step.get("min_collateral_out", 0)),
        fee_bps=int(step.get("fee_bps", 0)),
    )
    routing = SellRouting(
        seller=seller,
        collateral_recipient=step.get("recipient", seller),
        fee_recipient=step.get("fee_recipient"),
    )
    return ctx.market.sell(caller, order, routing).collateral_out


def _answer(ctx: ScenarioContext, step: dict) -> Any:
    value = step["value"]
    answer = INVALID_ANSWER if value == "invalid" else int(value)
    ctx.bridge.submit_answer(ctx.market.question_id, answer)
    return hex(answer)


def _settle(ctx: ScenarioContext, step: dict) -> Any:
    result = ctx.bridge.settle_market(step.get("caller", "keeper"), ctx.market)
    return result.pots


def _claim(ctx: ScenarioContext, step: dict) -> Any:
    holder = step["holder"]
    return ctx.market.claim(step.get("caller", holder), holder).payout


def _withdraw_fees(ctx: ScenarioContext, step: dict) -> Any:
    recipient = step["recipient"]
    return ctx.market.withdraw_fees(step.get("caller", recipient), recipient)


STEP_HANDLERS: dict[str, Callable[[ScenarioContext, dict], Any]] = {
    "fund": _fund,
    "approve": _approve,
    "publish": _publish,
    "advance": _advance,
    "wait": _wait,
    "buy": _buy,
    "sell": _sell,
    "answer": _answer,
    "settle": _settle,
    "claim": _claim,
    "withdraw_fees": _withdraw_fees,
}


def run_steps(ctx: ScenarioContext, steps: list[dict]) -> list[Any]:
    """Execute each step in order, returning each step's result."""
    results: list[Any] = []
    for index, step in enumerate(steps):
        action = step.get("action")
        handler = STEP_HANDLERS.get(action)
        if handler is None:
            raise ScenarioError(f"step {index}: unknown action {action!r}")
        expected = step.get("expect_error")
        try:
            result = handler(ctx, step)
        except MarketError as exc:
            if expected != exc.code:
                raise
            log.info("step_failed_as_expected", index=index, action=action, code=exc.code)
            results.append(exc.code)
            continue
        if expected is not None:
            raise ScenarioError(f"step {index}: expected {expected}, but {action} succeeded")
        log.info("step_done", index=index, action=action, result=result)
        results.append(result)
    return results


def run_scenario(
    config: AppConfig,
    scenario: dict,
    journal: JournalSink | None = None,
) -> tuple[ScenarioContext, list[Any]]:
    ctx = ScenarioContext(config, scenario, journal=journal)
    results = run_steps(ctx, scenario.get("steps", []))
    return ctx, results


def load_scenario(path: str | Path) -> dict:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def main(config_path: str | None = None, scenario_path: str | None = None) -> MarketSnapshot:
    """Entry point: load config and scenario, replay it, print the final snapshot."""
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format=config.logging.format)
    if scenario_path is None:
        raise ScenarioError("a scenario file is required")
    scenario = load_scenario(scenario_path)

    if config.journal.enabled:
        init_engine(config.database.url)
        with get_session() as session:
            ctx, _ = run_scenario(config, scenario, journal=SessionJournal(session))
            snapshot = ctx.market.snapshot()
            persist_snapshot(session, snapshot)
    else:
        ctx, _ = run_scenario(config, scenario)
        snapshot = ctx.market.snapshot()

    print(json.dumps(snapshot.model_dump(mode="json"), indent=2))
    return snapshot


def cli() -> None:
    parser = argparse.ArgumentParser(description="Replay a prediction-market scenario")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--scenario", required=True, help="Path to scenario.yaml")
    args = parser.parse_args()
    main(config_path=args.config, scenario_path=args.scenario)
