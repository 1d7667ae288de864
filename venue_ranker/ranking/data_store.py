from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Protocol

import pandas as pd
from pydantic import ValidationError as SchemaError

from .errors import CollaboratorError
from .models import PRICE_SYMBOLS, BoundingBox, Candidate, CandidateFilters

logger = logging.getLogger(__name__)


class CandidateStore(Protocol):
    def find_candidates(self, box: BoundingBox, filters: CandidateFilters) -> list[Candidate]:
        """Venues inside ``box`` that pass ``filters``. Raises ``CollaboratorError``."""
        ...


def _normalize_record(record: dict[str, Any]) -> dict[str, Any]:
    out = dict(record)
    out["id"] = str(out["id"])
    # Upstream rows carry the price as a "$$" string
    if "price_tier" not in out and isinstance(out.get("price"), str):
        symbol = out["price"].strip()
        out["price_tier"] = PRICE_SYMBOLS.index(symbol) + 1 if symbol in PRICE_SYMBOLS else 1
    out.pop("price", None)
    out["rating"] = float(out.get("rating") or 0.0)
    return out


def _build_frame(records: list[dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(
        {
            "lat": [float(r["lat"]) for r in records],
            "long": [float(r["long"]) for r in records],
            "price_tier": [int(r.get("price_tier", 1)) for r in records],
            "rating": [r["rating"] for r in records],
        }
    )
    # Pre-lowercase tag values for type matching
    df["tag_values_lower"] = [
        {str(t.get("value", "")).strip().lower() for t in r.get("tags") or []} for r in records
    ]
    return df


class DataFrameCandidateStore:
    """
    Candidate source backed by an in-memory pandas DataFrame.

    Filtering runs on the frame; matching rows are turned into fresh
    ``Candidate`` objects on every call so per-request scores never leak
    between requests.
    """

    def __init__(self, records: list[dict[str, Any]] | None = None, path: Path | None = None) -> None:
        self._path = path
        self._records: list[dict[str, Any]] | None = None
        self._df: pd.DataFrame | None = None
        self._lock = threading.Lock()
        if records is not None:
            self._load_records(records)

    @classmethod
    def from_json(cls, path: Path) -> DataFrameCandidateStore:
        return cls(path=path)

    def _load_records(self, records: list[dict[str, Any]]) -> None:
        normalized = [_normalize_record(r) for r in records]
        self._df = _build_frame(normalized)
        self._records = normalized

    def _ensure_loaded(self) -> pd.DataFrame:
        with self._lock:
            if self._df is None:
                if self._path is None:
                    raise CollaboratorError("Candidate store has no data source")
                try:
                    raw = json.loads(Path(self._path).read_text(encoding="utf-8"))
                    self._load_records(raw)
                except (OSError, ValueError, KeyError, TypeError) as exc:
                    raise CollaboratorError(f"Could not load venues from {self._path}: {exc}") from exc
                logger.info("Loaded %d venues from %s", len(self._records or []), self._path)
            return self._df

    def find_candidates(self, box: BoundingBox, filters: CandidateFilters) -> list[Candidate]:
        df = self._ensure_loaded()

        # --- Bounding box ---
        long_mask = pd.Series(False, index=df.index)
        for lo, hi in box.long_ranges:
            long_mask = long_mask | df["long"].between(lo, hi)
        mask = df["lat"].between(box.min_lat, box.max_lat) & long_mask

        # --- Structured filters ---
        if filters.price_tiers:
            mask = mask & df["price_tier"].isin(filters.price_tiers)

        if filters.min_rating is not None:
            mask = mask & (df["rating"] >= filters.min_rating)

        if filters.types:
            wanted = {t.strip().lower() for t in filters.types}
            mask = mask & df["tag_values_lower"].apply(lambda values: bool(wanted & values))

        try:
            return [Candidate.model_validate(self._records[i]) for i in df.index[mask.to_numpy(dtype=bool)]]
        except SchemaError as exc:
            raise CollaboratorError(f"Stored venue record is invalid: {exc}") from exc
