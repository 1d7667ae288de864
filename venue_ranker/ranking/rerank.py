from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..llm.groq_client import score_relevance
from .cache import ExpiringCache
from .config import DEFAULT_RANKING_CONFIG, RankingConfig
from .errors import CollaboratorError
from .models import Candidate, ContextSignals

logger = logging.getLogger(__name__)

RelevanceFn = Callable[[str, list[str], str | None, list[dict[str, Any]]], dict[str, float]]


def summarize_candidate(
    candidate: Candidate,
    max_reviews: int = 3,
    max_chars: int = 200,
) -> dict[str, Any]:
    """Compact view of a candidate for the relevance prompt."""
    excerpts = [r.text.strip()[:max_chars] for r in candidate.reviews if r.text and r.text.strip()]
    return {
        "id": candidate.id,
        "name": candidate.name,
        "price_tier": candidate.price_tier,
        "cuisines": candidate.cuisines,
        "attributes": sorted(k for k, v in candidate.attributes.items() if v is True),
        "reviews": excerpts[:max_reviews],
    }


def blend(
    ranked: list[Candidate],
    llm_scores: dict[str, float],
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> list[Candidate]:
    """
    Combine primary rank, LLM relevance and the constraint multiplier.

    ``ranked`` is the full primary-sorted list. Candidates the LLM did not
    score get the neutral context score.
    """
    total = len(ranked)
    for index, candidate in enumerate(ranked):
        normalized_rank = 1.0 - index / (total - 1) if total > 1 else 1.0
        llm_score = llm_scores.get(candidate.id)
        if llm_score is None:
            llm_score = config.neutral_context_score
        candidate.context_score = llm_score / 10.0
        candidate.blended_score = (
            normalized_rank * config.rank_weight + candidate.context_score * config.context_weight
        ) * candidate.constraint_score
    return sorted(ranked, key=lambda c: c.blended_score, reverse=True)


def order_by_constraints(ranked: list[Candidate]) -> list[Candidate]:
    """Stable sort on constraint score; ties keep their primary order."""
    return sorted(ranked, key=lambda c: c.constraint_score, reverse=True)


class ContextualReRanker:
    def __init__(
        self,
        cache: ExpiringCache,
        score: RelevanceFn = score_relevance,
        config: RankingConfig = DEFAULT_RANKING_CONFIG,
    ) -> None:
        self._cache = cache
        self._score = score
        self._config = config

    def shortlist_scores(
        self,
        context_text: str,
        signals: ContextSignals,
        ranked: list[Candidate],
    ) -> dict[str, float] | None:
        """LLM relevance for the top-K candidates, or ``None`` if the call failed."""
        shortlist = ranked[: self._config.shortlist_size]
        if not shortlist:
            return {}

        key = (tuple(sorted(c.id for c in shortlist)), context_text)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        summaries = [
            summarize_candidate(c, self._config.review_excerpts, self._config.review_excerpt_chars)
            for c in shortlist
        ]
        logger.info("Scoring %d shortlisted candidates for context (cache miss)", len(summaries))
        try:
            scores = self._score(context_text, list(signals.soft_signals), signals.occasion, summaries)
        except CollaboratorError:
            logger.warning("Contextual re-ranking failed, keeping primary order", exc_info=True)
            return None

        self._cache.set(key, scores)
        return scores

    def rerank(
        self,
        context_text: str,
        signals: ContextSignals,
        ranked: list[Candidate],
    ) -> list[Candidate] | None:
        scores = self.shortlist_scores(context_text, signals, ranked)
        if scores is None:
            return None
        return blend(ranked, scores, self._config)
