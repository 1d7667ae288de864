from __future__ import annotations

from collections.abc import Iterable, Mapping

from .models import Candidate, ContextSignals

VIOLATION_PENALTY = 0.4
MIN_CONSTRAINT_SCORE = 0.1


def required_attributes(signals: ContextSignals | None) -> set[str]:
    """Hard constraints plus the attribute for the requested meal period."""
    if signals is None:
        return set()
    required = {key for key, value in signals.hard_constraints.items() if value is True}
    if signals.meal_period is not None:
        required.add(signals.meal_period.attribute)
    return required


def constraint_score(
    attributes: Mapping[str, bool | None],
    signals: ContextSignals | None,
    penalty: float = VIOLATION_PENALTY,
    floor: float = MIN_CONSTRAINT_SCORE,
) -> float:
    """
    Multiplicative penalty in [floor, 1] for explicitly contradicted requirements.

    Only an attribute stored as ``False`` counts as a violation; a missing
    or ``None`` attribute is unknown and never penalised.
    """
    violations = sum(1 for key in required_attributes(signals) if attributes.get(key) is False)
    return max(floor, 1.0 - violations * penalty)


def apply_constraint_scores(
    candidates: Iterable[Candidate],
    signals: ContextSignals | None,
    penalty: float = VIOLATION_PENALTY,
    floor: float = MIN_CONSTRAINT_SCORE,
) -> None:
    for candidate in candidates:
        candidate.constraint_score = constraint_score(candidate.attributes, signals, penalty, floor)
