from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Boolean venue attributes the NLU layer may assert as hard requirements.
ATTRIBUTE_FIELDS: tuple[str, ...] = (
    "outdoorSeating",
    "goodForGroups",
    "goodForChildren",
    "reservable",
    "servesCocktails",
    "servesWine",
    "servesBeer",
    "servesVegetarianFood",
    "servesDessert",
    "servesCoffee",
    "servesLunch",
    "servesDinner",
    "servesBreakfast",
    "servesBrunch",
    "liveMusic",
    "menuForChildren",
    "delivery",
    "dineIn",
    "takeout",
    "curbsidePickup",
)

PRICE_SYMBOLS = ["$", "$$", "$$$", "$$$$"]


class MealPeriod(str, Enum):
    breakfast = "breakfast"
    brunch = "brunch"
    lunch = "lunch"
    dinner = "dinner"

    @property
    def attribute(self) -> str:
        """Venue attribute that says whether the meal period is served."""
        return f"serves{self.value.capitalize()}"


class SortBy(str, Enum):
    distance = "distance"
    rating = "rating"
    custom = "custom"


# ── Candidate records ────────────────────────────────────────────────────


class Tag(BaseModel):
    value: str
    type: str | None = None


class Review(BaseModel):
    text: str = ""
    rating: float | None = None
    author: str | None = None
    tags: list[str] = Field(default_factory=list)


class Image(BaseModel):
    url: str
    tags: list[str] = Field(default_factory=list)
    rating: float | None = None


class Candidate(BaseModel):
    id: str
    name: str
    lat: float
    long: float
    price_tier: int = Field(default=1, ge=1, le=4)
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    food_quality_score: float | None = Field(default=None, ge=0.0, le=10.0)
    ambiance_score: float | None = Field(default=None, ge=0.0, le=10.0)
    review_count: int | None = Field(default=None, ge=0)
    attributes: dict[str, bool | None] = Field(default_factory=dict)
    tags: list[Tag] = Field(default_factory=list)
    reviews: list[Review] = Field(default_factory=list)
    images: list[Image] = Field(default_factory=list)
    address: str | None = None
    phone_number: str | None = None
    map_link: str | None = None

    # Filled in while a request is being ranked
    distance_meters: float | None = None
    constraint_score: float = 1.0
    preference_score: float | None = None
    context_score: float | None = None
    blended_score: float | None = None

    @property
    def cuisines(self) -> list[str]:
        return [t.value for t in self.tags if (t.type or "").lower() == "cuisine"]

    @property
    def total_reviews(self) -> int:
        if self.review_count is not None:
            return self.review_count
        return len(self.reviews)


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_lat: float
    max_lat: float
    min_long: float
    max_long: float

    @property
    def long_ranges(self) -> list[tuple[float, float]]:
        """Longitude intervals covered; two when the box wraps across ±180."""
        if self.min_long <= self.max_long:
            return [(self.min_long, self.max_long)]
        return [(self.min_long, 180.0), (-180.0, self.max_long)]

    def contains(self, lat: float, long: float) -> bool:
        if not self.min_lat <= lat <= self.max_lat:
            return False
        return any(lo <= long <= hi for lo, hi in self.long_ranges)


class CandidateFilters(BaseModel):
    """Structured filters the candidate store applies alongside the bounding box."""

    price_tiers: list[int] | None = None
    min_rating: float | None = None
    types: list[str] | None = None


# ── Scoring inputs ───────────────────────────────────────────────────────


class PreferenceWeights(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    food_quality: float = Field(default=0.0, ge=0.0, alias="foodQuality")
    ambiance: float = Field(default=0.0, ge=0.0)
    proximity: float = Field(default=0.0, ge=0.0)
    price: float = Field(default=0.0, ge=0.0)
    reviews: float = Field(default=0.0, ge=0.0)

    def as_dict(self) -> dict[str, float]:
        return self.model_dump(by_alias=True)


class ContextSignals(BaseModel):
    model_config = ConfigDict(frozen=True)

    hard_constraints: dict[str, bool] = Field(default_factory=dict)
    meal_period: MealPeriod | None = None
    soft_signals: list[str] = Field(default_factory=list)
    occasion: str | None = None


class RankingRequest(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    long: float = Field(..., ge=-180.0, le=180.0)
    radius: float = Field(default=5000.0, gt=0.0)
    price_tiers: list[int] | None = None
    min_rating: float | None = Field(default=None, ge=0.0, le=5.0)
    types: list[str] | None = None
    dietary_restrictions: list[str] | None = None
    sort_by: SortBy = SortBy.distance
    preferences: PreferenceWeights | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)
    context: str | None = None

    @model_validator(mode="after")
    def _custom_sort_needs_preferences(self) -> RankingRequest:
        if self.sort_by is SortBy.custom and self.preferences is None:
            raise ValueError("preferences are required when sortBy=custom")
        return self

    @property
    def filters(self) -> CandidateFilters:
        return CandidateFilters(
            price_tiers=self.price_tiers,
            min_rating=self.min_rating,
            types=self.types,
        )

    @property
    def context_text(self) -> str:
        """Raw context text, or an empty string when none was given."""
        if self.context and self.context.strip():
            return self.context
        return ""


# ── API output ───────────────────────────────────────────────────────────


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TopReview(_CamelModel):
    author: str
    rating: float | None = None
    quote: str


class RestaurantOut(_CamelModel):
    id: str
    name: str
    distance: int
    price: str
    rating: float
    hero_image: str
    ambient_images: list[str]
    popular_dish_photos: list[str]
    top_review: TopReview | None = None
    cuisine: list[str]
    attributes: dict[str, bool | None]
    address: str | None = None
    phone_number: str | None = None
    lat: float
    long: float
    map_link: str | None = None
    score: float | None = None
    constraint_score: float | None = None
    blended_score: float | None = None


class Pagination(_CamelModel):
    page: int
    page_size: int
    total_count: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class RankingResponse(_CamelModel):
    success: bool = True
    data: list[RestaurantOut]
    pagination: Pagination


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: str | None = None
