"""Oracle report model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Report(BaseModel):
    """Outcome distribution handed to ``Market.settle``.

    ``weights`` holds one basis-point weight per outcome and must sum to
    10 000. Oracles that report on a 100 000 scale must be rescaled by the
    caller; such totals are rejected. ``invalid=True`` marks an unresolvable
    question (no weights).
    Shape against a specific market is checked at settlement, not here.
    """

    model_config = ConfigDict(frozen=True)

    weights: list[int] | None = None
    invalid: bool = False

    @model_validator(mode="after")
    def _one_of(self) -> "Report":
        if self.invalid == (self.weights is not None):
            raise ValueError("INVALID_REPORT: give either weights or invalid=True")
        return self

    @classmethod
    def for_outcome(cls, outcome: int, outcome_count: int) -> "Report":
        """One-hot report: *outcome* takes the whole pool."""
        weights = [0] * outcome_count
        weights[outcome] = 10_000
        return cls(weights=weights)

    @classmethod
    def void(cls) -> "Report":
        return cls(invalid=True)
