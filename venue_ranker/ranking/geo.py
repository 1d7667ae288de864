from __future__ import annotations

import math
from collections.abc import Iterable

from .models import BoundingBox, Candidate

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE_LAT = 111_000.0


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in meters."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def bounding_box(lat: float, long: float, radius_m: float) -> BoundingBox:
    """
    Cheap lat/long window around the origin for the storage prefilter.

    A degree of latitude is taken as 111 km, which is shorter than the true
    length, so the latitude span always covers the circle. The longitude
    span is the larger of the flat approximation and the exact spherical
    extent ``asin(sin(d) / cos(lat))``. A circle that reaches a pole covers
    every longitude. A box that crosses ±180 wraps, leaving
    ``min_long > max_long``. Exact filtering happens afterwards in
    ``filter_by_radius``.
    """
    lat_diff = radius_m / METERS_PER_DEGREE_LAT
    min_lat = max(-90.0, lat - lat_diff)
    max_lat = min(90.0, lat + lat_diff)

    if lat + lat_diff >= 90.0 or lat - lat_diff <= -90.0:
        return BoundingBox(min_lat=min_lat, max_lat=max_lat, min_long=-180.0, max_long=180.0)

    cos_lat = math.cos(math.radians(lat))
    ratio = math.sin(radius_m / EARTH_RADIUS_M) / cos_lat
    if ratio >= 1.0:
        return BoundingBox(min_lat=min_lat, max_lat=max_lat, min_long=-180.0, max_long=180.0)

    long_diff = max(
        radius_m / (METERS_PER_DEGREE_LAT * cos_lat),
        math.degrees(math.asin(ratio)),
    )
    if long_diff >= 180.0:
        return BoundingBox(min_lat=min_lat, max_lat=max_lat, min_long=-180.0, max_long=180.0)

    min_long = long - long_diff
    max_long = long + long_diff
    if min_long < -180.0:
        min_long += 360.0
    if max_long > 180.0:
        max_long -= 360.0
    return BoundingBox(min_lat=min_lat, max_lat=max_lat, min_long=min_long, max_long=max_long)


def filter_by_radius(
    lat: float,
    long: float,
    radius_m: float,
    candidates: Iterable[Candidate],
) -> list[Candidate]:
    """Set ``distance_meters`` on every candidate and drop those outside the radius."""
    kept: list[Candidate] = []
    for candidate in candidates:
        candidate.distance_meters = haversine_meters(lat, long, candidate.lat, candidate.long)
        if candidate.distance_meters <= radius_m:
            kept.append(candidate)
    return kept
