"""Market event: one journal entry per successful state change."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

EventKind = Literal[
    "published",
    "status_advanced",
    "buy",
    "sell",
    "settled",
    "claim",
    "fees_withdrawn",
]


class MarketEvent(BaseModel):
    market: str
    kind: EventKind
    ts: int
    caller: str
    payload: dict[str, Any] = Field(default_factory=dict)
