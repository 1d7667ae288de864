from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .ranking.config import DEFAULT_RANKING_CONFIG
from .ranking.data_store import DataFrameCandidateStore
from .ranking.errors import RankingError, ValidationError
from .ranking.models import ErrorResponse, RankingResponse
from .ranking.service import RankingService

logger = logging.getLogger(__name__)

app = FastAPI(title="Venue Ranking API", version="1.0.0")


@lru_cache(maxsize=1)
def get_ranking_service() -> RankingService:
    store = DataFrameCandidateStore.from_json(DEFAULT_RANKING_CONFIG.data_path)
    return RankingService(store, DEFAULT_RANKING_CONFIG)


# ── Error envelopes ──────────────────────────────────────────────────────


@app.exception_handler(RankingError)
async def ranking_error_handler(request: Request, exc: RankingError) -> JSONResponse:
    if isinstance(exc, ValidationError):
        body = ErrorResponse(message=str(exc), error=type(exc).__name__)
    else:
        logger.error("Error fetching restaurants: %s", exc)
        body = ErrorResponse(message="Failed to fetch restaurants", error=str(exc))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error while handling %s", request.url.path)
    body = ErrorResponse(message="Failed to fetch restaurants", error=str(exc) or type(exc).__name__)
    return JSONResponse(status_code=500, content=body.model_dump())


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/restaurants", response_model=RankingResponse)
def restaurants(
    lat: str | None = None,
    long: str | None = None,
    radius: str | None = None,
    price: list[str] | None = Query(default=None),
    min_rating: str | None = Query(default=None, alias="minRating"),
    types: list[str] | None = Query(default=None),
    dietary_restrictions: list[str] | None = Query(default=None, alias="dietaryRestrictions"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    preferences: str | None = None,
    page: str | None = None,
    page_size: str | None = Query(default=None, alias="pageSize"),
    context: str | None = None,
    service: RankingService = Depends(get_ranking_service),
) -> RankingResponse:
    """
    GET /restaurants?lat=30.2672&long=-97.7431&radius=5000&page=1&pageSize=10

    Parameters are validated by the ranking service so every failure
    returns the same ``{success, message, error}`` envelope.
    """
    return service.rank({
        "lat": lat,
        "long": long,
        "radius": radius,
        "price": price,
        "minRating": min_rating,
        "types": types,
        "dietaryRestrictions": dietary_restrictions,
        "sortBy": sort_by,
        "preferences": preferences,
        "page": page,
        "pageSize": page_size,
        "context": context,
    })


@app.get("/cache/stats")
def cache_stats(service: RankingService = Depends(get_ranking_service)) -> dict:
    return service.cache_stats()
