"""Oracle bridge: question ids, answer intake and settlement triggering."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from forecast_core.market.clock import Clock
    from forecast_core.market.engine import Market

from forecast_core.market.errors import InvalidInputError, TimingError
from forecast_core.models.report import Report
from forecast_core.models.trade import SettlementResult

log = structlog.get_logger("oracle_bridge")

INVALID_ANSWER = 2**256 - 1


def derive_question_id(market_address: str, settings: str) -> str:
    """Stable id for the question a market asks, as 0x-prefixed hex.

    Both fields are length-prefixed so that no two (address, settings)
    pairs share an encoding.
    """
    h = hashlib.sha3_256()
    for part in (market_address, settings):
        raw = part.encode("utf-8")
        h.update(len(raw).to_bytes(8, "big"))
        h.update(raw)
    return "0x" + h.hexdigest()


def answer_to_report(answer: int, outcome_count: int) -> Report:
    """Translate a raw oracle answer into a settlement report.

    The all-ones sentinel, and any index that does not name an outcome, void
    the market.
    """
    if answer == INVALID_ANSWER:
        return Report.void()
    if 0 <= answer < outcome_count:
        return Report.for_outcome(answer, outcome_count)
    log.warning("answer_out_of_range", answer=answer, outcome_count=outcome_count)
    return Report.void()


@dataclass
class AnswerEntry:
    """An answer from the external truth source and when it arrived."""

    answer: int
    answered_at: int


class OracleBridge:
    """Registers markets and settles them once their answer is final.

    The bridge address is what markets are configured with as their oracle;
    ``settle_market`` may be triggered by anyone.
    """

    def __init__(self, address: str, clock: "Clock", answer_timeout: int = 86400) -> None:
        self.address = address
        self.clock = clock
        self.answer_timeout = answer_timeout
        self._markets: dict[str, str] = {}
        self._answers: dict[str, AnswerEntry] = {}

    def register(self, market: "Market") -> str:
        self._markets[market.address] = market.question_id
        log.info("question_registered", market=market.address, question_id=market.question_id)
        return market.question_id

    def get_question_id(self, market_address: str) -> str:
        try:
            return self._markets[market_address]
        except KeyError:
            raise InvalidInputError("UNKNOWN_QUESTION", market=market_address) from None

    def submit_answer(self, question_id: str, answer: int) -> None:
        """Record the external answer; a later submission replaces the earlier one."""
        if question_id not in self._markets.values():
            raise InvalidInputError("UNKNOWN_QUESTION", question_id=question_id)
        self._answers[question_id] = AnswerEntry(answer=answer, answered_at=self.clock.now())
        log.info("answer_submitted", question_id=question_id, answer=hex(answer))

    def is_final(self, question_id: str) -> bool:
        entry = self._answers.get(question_id)
        if entry is None:
            return False
        return self.clock.now() >= entry.answered_at + self.answer_timeout

    def settle_market(self, caller: str, market: "Market") -> SettlementResult:
        question_id = self.get_question_id(market.address)
        if not self.is_final(question_id):
            raise TimingError("ANSWER_NOT_FINAL", question_id=question_id)
        entry = self._answers[question_id]
        report = answer_to_report(entry.answer, market.outcome_count)
        log.info("settling_market", market=market.address, triggered_by=caller, void=report.invalid)
        return market.settle(self.address, report)
