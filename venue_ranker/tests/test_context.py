from __future__ import annotations

from venue_ranker.ranking.cache import ExpiringCache
from venue_ranker.ranking.context import ContextSignalExtractor
from venue_ranker.ranking.errors import CollaboratorError, MalformedResponseError
from venue_ranker.ranking.models import ContextSignals, MealPeriod

SIGNALS = ContextSignals(
    hard_constraints={"outdoorSeating": True},
    meal_period=MealPeriod.dinner,
    soft_signals=["relaxed", "quiet enough to talk", "family friendly"],
    occasion="dinner with parents",
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class CountingExtractor:
    def __init__(self, result=SIGNALS, error: Exception | None = None) -> None:
        self.calls: list[str] = []
        self.result = result
        self.error = error

    def __call__(self, text: str) -> ContextSignals:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.result


def test_same_context_within_ttl_calls_collaborator_once():
    fake = CountingExtractor()
    extractor = ContextSignalExtractor(ExpiringCache(1800), fake)

    first = extractor.extract("dinner with parents, need outdoor seating")
    second = extractor.extract("dinner with parents, need outdoor seating")

    assert first == SIGNALS
    assert second == SIGNALS
    assert len(fake.calls) == 1


def test_different_phrasing_misses_cache():
    fake = CountingExtractor()
    extractor = ContextSignalExtractor(ExpiringCache(1800), fake)

    extractor.extract("dinner with parents")
    extractor.extract("Dinner with parents")

    assert len(fake.calls) == 2


def test_empty_context_skips_collaborator():
    fake = CountingExtractor()
    extractor = ContextSignalExtractor(ExpiringCache(1800), fake)

    assert extractor.extract("") is None
    assert fake.calls == []


def test_expired_entry_triggers_new_call():
    clock = FakeClock()
    fake = CountingExtractor()
    extractor = ContextSignalExtractor(ExpiringCache(1800, clock=clock), fake)

    extractor.extract("brunch")
    clock.now += 1801
    extractor.extract("brunch")

    assert len(fake.calls) == 2


def test_collaborator_failure_returns_none_and_is_not_cached():
    cache = ExpiringCache(1800)
    failing = CountingExtractor(error=CollaboratorError("timeout"))
    extractor = ContextSignalExtractor(cache, failing)

    assert extractor.extract("date night") is None
    assert len(cache) == 0

    # Next request retries because nothing was cached
    assert extractor.extract("date night") is None
    assert len(failing.calls) == 2


def test_malformed_response_returns_none():
    extractor = ContextSignalExtractor(
        ExpiringCache(1800),
        CountingExtractor(error=MalformedResponseError("bad json")),
    )
    assert extractor.extract("date night") is None
