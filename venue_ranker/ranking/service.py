from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Mapping
from enum import Enum
from functools import partial
from typing import Any

from pydantic import ValidationError as SchemaError

from ..analytics.store import record_event
from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.groq_client import extract_signals, score_relevance
from .cache import ExpiringCache
from .config import DEFAULT_RANKING_CONFIG, RankingConfig
from .constraints import apply_constraint_scores, required_attributes
from .context import ContextSignalExtractor, SignalsFn
from .data_store import CandidateStore
from .errors import ValidationError
from .geo import bounding_box, filter_by_radius
from .models import (
    PRICE_SYMBOLS,
    Candidate,
    ContextSignals,
    Pagination,
    PreferenceWeights,
    RankingRequest,
    RankingResponse,
    SortBy,
)
from .presentation import transform_candidate
from .rerank import ContextualReRanker, RelevanceFn, order_by_constraints
from .scoring import score_preferences

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    validate = "validate"
    fetch_filter = "fetch_filter"
    sort = "sort"
    context_enrich = "context_enrich"
    paginate = "paginate"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _as_list(value: Any) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if str(v).strip()]
    return [str(value)]


def _parse_price(value: str) -> int:
    value = value.strip()
    if value in PRICE_SYMBOLS:
        return PRICE_SYMBOLS.index(value) + 1
    if value.isdigit() and 1 <= int(value) <= len(PRICE_SYMBOLS):
        return int(value)
    raise ValidationError(f"Unknown price filter: {value!r}")


def _describe(exc: SchemaError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "request"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def validate_request(
    query: Mapping[str, Any],
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> RankingRequest:
    """
    Turn raw query parameters (camelCase keys, string or list values) into a
    ``RankingRequest``. Raises ``ValidationError`` before anything is fetched.
    """
    if query.get("lat") in (None, "") or query.get("long") in (None, ""):
        raise ValidationError("Latitude and longitude are required")

    preferences = query.get("preferences")
    if isinstance(preferences, str):
        try:
            preferences = json.loads(preferences)
        except json.JSONDecodeError as exc:
            raise ValidationError("preferences must be a JSON object") from exc
    if preferences is not None and not isinstance(preferences, (Mapping, PreferenceWeights)):
        raise ValidationError("preferences must be a JSON object")

    price_tiers = [_parse_price(p) for p in _as_list(query.get("price"))]

    try:
        return RankingRequest(
            lat=query["lat"],
            long=query["long"],
            radius=query.get("radius") or config.default_radius_m,
            price_tiers=price_tiers or None,
            min_rating=query.get("minRating") or None,
            types=_as_list(query.get("types")) or None,
            dietary_restrictions=_as_list(query.get("dietaryRestrictions")) or None,
            sort_by=query.get("sortBy") or SortBy.distance,
            preferences=preferences,
            page=query.get("page") or 1,
            page_size=query.get("pageSize") or config.default_page_size,
            context=query.get("context"),
        )
    except SchemaError as exc:
        raise ValidationError(_describe(exc)) from exc


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class RankingService:
    """
    Runs one ranking request through its stages:

        validate -> fetch_filter -> sort -> [context_enrich ->] paginate

    Validation and storage failures end the request. Every other failure
    degrades to the best ordering available so far. The two TTL caches are
    owned by the service and shared by all requests it handles.
    """

    def __init__(
        self,
        store: CandidateStore,
        config: RankingConfig = DEFAULT_RANKING_CONFIG,
        llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
        extract: SignalsFn | None = None,
        score: RelevanceFn | None = None,
        signals_cache: ExpiringCache | None = None,
        rerank_cache: ExpiringCache | None = None,
    ) -> None:
        self._store = store
        self._config = config
        self.signals_cache = (
            signals_cache if signals_cache is not None else ExpiringCache(config.signals_ttl_seconds)
        )
        self.rerank_cache = (
            rerank_cache if rerank_cache is not None else ExpiringCache(config.rerank_ttl_seconds)
        )
        self._extractor = ContextSignalExtractor(
            self.signals_cache,
            extract or partial(extract_signals, config=llm_config),
        )
        self._reranker = ContextualReRanker(
            self.rerank_cache,
            score or partial(score_relevance, config=llm_config),
            config,
        )

    def rank(self, query: Mapping[str, Any]) -> RankingResponse:
        start_time = time.time()

        self._enter(Stage.validate)
        request = validate_request(query, self._config)

        self._enter(Stage.fetch_filter)
        candidates = self._fetch_and_filter(request)

        self._enter(Stage.sort)
        ranked = self._primary_sort(request, candidates)

        signals: ContextSignals | None = None
        reranked = False
        if request.context_text:
            self._enter(Stage.context_enrich)
            ranked, signals, reranked = self._enrich(request, ranked)

        self._enter(Stage.paginate)
        response = self._paginate(request, ranked, signals)

        record_event("ranking", {
            "sort_by": request.sort_by.value,
            "page": request.page,
            "has_context": bool(request.context_text),
            "signals_available": signals is not None,
            "reranked": reranked,
            "total_candidates": response.pagination.total_count,
            "results_returned": len(response.data),
            "response_time_ms": round((time.time() - start_time) * 1000, 1),
        })
        return response

    def cache_stats(self) -> dict:
        return {
            "signals": self.signals_cache.stats(),
            "rerank": self.rerank_cache.stats(),
        }

    @staticmethod
    def _enter(stage: Stage) -> None:
        logger.debug("ranking stage=%s", stage.value)

    # --- Stages ---

    def _fetch_and_filter(self, request: RankingRequest) -> list[Candidate]:
        box = bounding_box(request.lat, request.long, request.radius)
        fetched = self._store.find_candidates(box, request.filters)

        # Exact distance filter (haversine)
        nearby = filter_by_radius(request.lat, request.long, request.radius, fetched)

        if request.dietary_restrictions:
            wanted = [d.lower() for d in request.dietary_restrictions]
            nearby = [
                c for c in nearby
                if any(w in tag.value.lower() for tag in c.tags for w in wanted)
            ]

        logger.debug("fetched=%d within_radius=%d", len(fetched), len(nearby))
        return nearby

    def _primary_sort(self, request: RankingRequest, candidates: list[Candidate]) -> list[Candidate]:
        if request.sort_by is SortBy.custom:
            try:
                for candidate in candidates:
                    breakdown = score_preferences(candidate, request.radius, request.preferences)
                    candidate.preference_score = breakdown.total
            except (ArithmeticError, ValueError):
                logger.warning("Preference scoring failed, sorting by distance", exc_info=True)
                for candidate in candidates:
                    candidate.preference_score = None
            else:
                return sorted(candidates, key=lambda c: c.preference_score, reverse=True)

        if request.sort_by is SortBy.rating:
            return sorted(candidates, key=lambda c: c.rating, reverse=True)

        return sorted(candidates, key=lambda c: c.distance_meters)

    def _enrich(
        self,
        request: RankingRequest,
        ranked: list[Candidate],
    ) -> tuple[list[Candidate], ContextSignals | None, bool]:
        context_text = request.context_text
        signals = self._extractor.extract(context_text)
        if signals is None:
            return ranked, None, False

        apply_constraint_scores(
            ranked,
            signals,
            self._config.violation_penalty,
            self._config.min_constraint_score,
        )

        # Deeper pages reuse the constraint ordering instead of calling the LLM again
        if request.page > 1:
            return order_by_constraints(ranked), signals, False

        reranked = self._reranker.rerank(context_text, signals, ranked)
        if reranked is not None:
            return reranked, signals, True

        if self._config.apply_constraints_on_rerank_failure and required_attributes(signals):
            return order_by_constraints(ranked), signals, False
        return ranked, signals, False

    def _paginate(
        self,
        request: RankingRequest,
        ranked: list[Candidate],
        signals: ContextSignals | None,
    ) -> RankingResponse:
        total_count = len(ranked)
        total_pages = math.ceil(total_count / request.page_size)
        start = (request.page - 1) * request.page_size
        page_items = ranked[start:start + request.page_size]

        data = [
            transform_candidate(c, request.preferences, with_context=signals is not None)
            for c in page_items
        ]
        return RankingResponse(
            data=data,
            pagination=Pagination(
                page=request.page,
                page_size=request.page_size,
                total_count=total_count,
                total_pages=total_pages,
                has_next_page=request.page < total_pages,
                has_previous_page=request.page > 1,
            ),
        )
