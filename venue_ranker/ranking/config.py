from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent / "data" / "processed" / "venues.json"


@dataclass(frozen=True)
class RankingConfig:
    """
    Tunables for the ranking pipeline.

    The blend weights and the neutral context score reproduce the
    production ranking and should not be changed casually.
    """

    default_radius_m: float = 5000.0
    default_page_size: int = 10
    shortlist_size: int = 20
    review_excerpts: int = 3
    review_excerpt_chars: int = 200
    signals_ttl_seconds: float = 30 * 60
    rerank_ttl_seconds: float = 20 * 60
    rank_weight: float = 0.4
    context_weight: float = 0.6
    neutral_context_score: float = 5.0
    violation_penalty: float = 0.4
    min_constraint_score: float = 0.1
    apply_constraints_on_rerank_failure: bool = (
        os.getenv("APPLY_CONSTRAINTS_ON_RERANK_FAILURE", "false").lower() == "true"
    )
    data_path: Path = Path(os.getenv("VENUE_DATA_PATH", str(_DEFAULT_DATA_PATH)))


DEFAULT_RANKING_CONFIG = RankingConfig()
