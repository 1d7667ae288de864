from __future__ import annotations

from .models import PRICE_SYMBOLS, Candidate, Image, PreferenceWeights, RestaurantOut, Review, TopReview
from .scoring import ambiance_is_top_priority

AMBIANCE_KEYWORDS = (
    "ambiance",
    "atmosphere",
    "decor",
    "vibe",
    "aesthetic",
    "cozy",
    "elegant",
    "modern",
    "rustic",
    "romantic",
)


def _is_ambiance_image(image: Image) -> bool:
    return any(t.lower() == "ambiance" for t in image.tags)


def _is_ambiance_review(review: Review) -> bool:
    text = review.text.lower()
    if any(k in text for k in AMBIANCE_KEYWORDS):
        return True
    return any(k in tag.lower() for tag in review.tags for k in AMBIANCE_KEYWORDS)


def _pick_hero(images: list[Image], prefer_ambiance: bool) -> str:
    if prefer_ambiance:
        for image in images:
            if _is_ambiance_image(image):
                return image.url
    return images[0].url if images else ""


def _pick_review(reviews: list[Review], prefer_ambiance: bool) -> TopReview | None:
    chosen: Review | None = None
    if prefer_ambiance:
        chosen = next((r for r in reviews if _is_ambiance_review(r)), None)
    if chosen is None and reviews:
        chosen = reviews[0]
    if chosen is None:
        return None
    return TopReview(author=chosen.author or "Anonymous", rating=chosen.rating, quote=chosen.text)


def transform_candidate(
    candidate: Candidate,
    weights: PreferenceWeights | None = None,
    with_context: bool = False,
) -> RestaurantOut:
    """Shape a ranked candidate for the app, preferring ambiance media when the user cares most about it."""
    prefer_ambiance = ambiance_is_top_priority(weights)

    # Highest-rated media first
    images = sorted(candidate.images, key=lambda i: i.rating or 0.0, reverse=True)
    reviews = sorted(candidate.reviews, key=lambda r: r.rating or 0.0, reverse=True)

    food_photos = [i.url for i in images if any(t.lower() == "food" for t in i.tags)][:5]

    return RestaurantOut(
        id=candidate.id,
        name=candidate.name,
        distance=round(candidate.distance_meters or 0.0),
        price=PRICE_SYMBOLS[candidate.price_tier - 1],
        rating=candidate.rating,
        hero_image=_pick_hero(images, prefer_ambiance),
        ambient_images=[i.url for i in images[1:4]],
        popular_dish_photos=food_photos or [i.url for i in images[:5]],
        top_review=_pick_review(reviews, prefer_ambiance),
        cuisine=candidate.cuisines,
        attributes=candidate.attributes,
        address=candidate.address,
        phone_number=candidate.phone_number,
        lat=candidate.lat,
        long=candidate.long,
        map_link=candidate.map_link,
        score=candidate.preference_score,
        constraint_score=candidate.constraint_score if with_context else None,
        blended_score=candidate.blended_score,
    )
