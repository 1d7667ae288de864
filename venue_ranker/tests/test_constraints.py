import pytest

from venue_ranker.ranking.constraints import (
    apply_constraint_scores,
    constraint_score,
    required_attributes,
)
from venue_ranker.ranking.models import ATTRIBUTE_FIELDS, Candidate, ContextSignals, MealPeriod

OUTDOOR = ContextSignals(hard_constraints={"outdoorSeating": True})


def test_explicit_false_attribute_is_penalised():
    assert constraint_score({"outdoorSeating": False}, OUTDOOR) == pytest.approx(0.6)


def test_missing_attribute_is_not_penalised():
    assert constraint_score({}, OUTDOOR) == 1.0


def test_unknown_attribute_is_not_penalised():
    assert constraint_score({"outdoorSeating": None}, OUTDOOR) == 1.0


def test_satisfied_attribute_keeps_full_score():
    assert constraint_score({"outdoorSeating": True}, OUTDOOR) == 1.0


def test_no_signals_means_no_penalty():
    assert constraint_score({"outdoorSeating": False}, None) == 1.0
    assert constraint_score({"outdoorSeating": False}, ContextSignals()) == 1.0


def test_meal_period_counts_as_requirement():
    signals = ContextSignals(meal_period=MealPeriod.dinner)
    assert required_attributes(signals) == {"servesDinner"}
    assert constraint_score({"servesDinner": False}, signals) == pytest.approx(0.6)


def test_two_violations():
    signals = ContextSignals(
        hard_constraints={"outdoorSeating": True, "goodForChildren": True},
    )
    attrs = {"outdoorSeating": False, "goodForChildren": False}
    assert constraint_score(attrs, signals) == pytest.approx(0.2)


def test_score_is_floored_and_monotonic():
    attrs = {name: False for name in ATTRIBUTE_FIELDS}
    previous = 1.0
    hard: dict[str, bool] = {}
    for name in ATTRIBUTE_FIELDS:
        hard[name] = True
        score = constraint_score(attrs, ContextSignals(hard_constraints=dict(hard)))
        assert 0.1 <= score <= 1.0
        assert score <= previous
        previous = score
    assert previous == pytest.approx(0.1)


def test_false_entries_in_hard_constraints_are_ignored():
    signals = ContextSignals(hard_constraints={"outdoorSeating": False})
    assert required_attributes(signals) == set()


def test_apply_constraint_scores_fills_every_candidate():
    a = Candidate(id="a", name="A", lat=0, long=0, attributes={"outdoorSeating": False})
    b = Candidate(id="b", name="B", lat=0, long=0)

    apply_constraint_scores([a, b], OUTDOOR)

    assert a.constraint_score == pytest.approx(0.6)
    assert b.constraint_score == 1.0
