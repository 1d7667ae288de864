from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .models import Candidate, PreferenceWeights

logger = logging.getLogger(__name__)

FOOD_QUALITY_MAX = 10.0
AMBIANCE_SCORE_MAX = 10.0
IMAGE_RATING_MAX = 5.0
REVIEW_SATURATION = 50


@dataclass
class ScoreBreakdown:
    raw: dict[str, float] = field(default_factory=dict)
    weighted: dict[str, float] = field(default_factory=dict)
    weights: dict[str, float] = field(default_factory=dict)
    total: float = 0.0


def _food_quality(candidate: Candidate) -> float:
    if candidate.food_quality_score is not None:
        return candidate.food_quality_score / FOOD_QUALITY_MAX
    return candidate.rating * 2 / FOOD_QUALITY_MAX


def _ambiance(candidate: Candidate) -> float:
    if candidate.ambiance_score is not None:
        return candidate.ambiance_score / AMBIANCE_SCORE_MAX

    # No upstream score: average the ratings of ambiance-tagged photos
    ambiance_images = [
        img for img in candidate.images if any(t.lower() == "ambiance" for t in img.tags)
    ]
    if not ambiance_images:
        return candidate.rating / 5.0
    total = sum(img.rating or 0.0 for img in ambiance_images)
    return total / len(ambiance_images) / IMAGE_RATING_MAX


def _proximity(candidate: Candidate, radius_m: float) -> float:
    return 1.0 - (candidate.distance_meters or 0.0) / radius_m


def _price(candidate: Candidate) -> float:
    return 1.0 - (candidate.price_tier - 1) / 3.0


def _reviews(candidate: Candidate) -> float:
    return min(candidate.total_reviews / REVIEW_SATURATION, 1.0)


def score_preferences(
    candidate: Candidate,
    radius_m: float,
    weights: PreferenceWeights | None,
) -> ScoreBreakdown:
    """
    Weighted sum of five normalised signals for a single candidate.

    ``candidate.distance_meters`` must already be set. Without weights the
    score is 0 and the breakdown is empty.
    """
    if weights is None:
        return ScoreBreakdown()

    raw = {
        "foodQuality": _food_quality(candidate),
        "ambiance": _ambiance(candidate),
        "proximity": _proximity(candidate, radius_m),
        "price": _price(candidate),
        "reviews": _reviews(candidate),
    }
    weight_map = weights.as_dict()
    weighted = {name: value * weight_map[name] for name, value in raw.items()}
    breakdown = ScoreBreakdown(
        raw=raw,
        weighted=weighted,
        weights=weight_map,
        total=sum(weighted.values()),
    )

    logger.debug(
        "score-debug %s (%s) distance=%dm radius=%dm raw=%s weighted=%s total=%.4f",
        candidate.name,
        candidate.id,
        round(candidate.distance_meters or 0.0),
        round(radius_m),
        raw,
        weighted,
        breakdown.total,
    )
    return breakdown


def ambiance_is_top_priority(weights: PreferenceWeights | None) -> bool:
    """
    True when ambiance is one of the two heaviest weights the caller supplied.

    Only explicitly given weights are ranked, so ``{"ambiance": 0}`` alone
    still counts as top priority. Ties keep field declaration order.
    """
    if weights is None:
        return False
    supplied = weights.model_dump(by_alias=True, exclude_unset=True)
    ranked = sorted(supplied.items(), key=lambda kv: kv[1], reverse=True)
    return "ambiance" in [name for name, _ in ranked[:2]]
