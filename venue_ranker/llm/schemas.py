"""
Wire schemas for the JSON the LLM is asked to return.

Payloads that do not validate are rejected rather than trusted.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..ranking.models import ATTRIBUTE_FIELDS, ContextSignals, MealPeriod

MAX_SOFT_SIGNALS = 6


class SignalsPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hard_constraints: dict[str, Any] = Field(default_factory=dict, alias="hardConstraints")
    meal_period: MealPeriod | None = Field(default=None, alias="mealPeriod")
    soft_signals: list[str] = Field(default_factory=list, alias="softSignals")
    occasion: str | None = None

    @field_validator("hard_constraints", "soft_signals", mode="before")
    @classmethod
    def _null_as_empty(cls, value, info):
        if value is None:
            return {} if info.field_name == "hard_constraints" else []
        return value

    @field_validator("meal_period", mode="before")
    @classmethod
    def _blank_meal_period(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    def to_signals(self) -> ContextSignals:
        # Only positive requirements survive; false and unknown are dropped
        hard = {
            key: True
            for key, value in self.hard_constraints.items()
            if value is True and key in ATTRIBUTE_FIELDS
        }
        soft = [s.strip() for s in self.soft_signals if s and s.strip()][:MAX_SOFT_SIGNALS]
        occasion = self.occasion.strip() if self.occasion else None
        return ContextSignals(
            hard_constraints=hard,
            meal_period=self.meal_period,
            soft_signals=soft,
            occasion=occasion or None,
        )


class RelevancePayload(BaseModel):
    scores: dict[str, float]

    @field_validator("scores")
    @classmethod
    def _in_range(cls, value: dict[str, float]) -> dict[str, float]:
        for rid, score in value.items():
            if not 0.0 <= score <= 10.0:
                raise ValueError(f"score for {rid} out of range: {score}")
        return value
