import math

import pytest

from venue_ranker.ranking.geo import EARTH_RADIUS_M, bounding_box, filter_by_radius, haversine_meters
from venue_ranker.ranking.models import Candidate


def _destination(lat: float, long: float, bearing_deg: float, meters: float) -> tuple[float, float]:
    """Point reached by travelling ``meters`` from (lat, long) on a great circle."""
    d = meters / EARTH_RADIUS_M
    brg = math.radians(bearing_deg)
    lat1 = math.radians(lat)
    lon1 = math.radians(long)
    lat2 = math.asin(math.sin(lat1) * math.cos(d) + math.cos(lat1) * math.sin(d) * math.cos(brg))
    lon2 = lon1 + math.atan2(
        math.sin(brg) * math.sin(d) * math.cos(lat1),
        math.cos(d) - math.sin(lat1) * math.sin(lat2),
    )
    # Normalise to [-180, 180)
    return math.degrees(lat2), (math.degrees(lon2) + 540.0) % 360.0 - 180.0


def _candidate(cid: str, lat: float, long: float) -> Candidate:
    return Candidate(id=cid, name=cid, lat=lat, long=long)


def test_haversine_zero_distance():
    assert haversine_meters(40.0, -74.0, 40.0, -74.0) == 0


def test_haversine_one_degree_of_latitude():
    expected = EARTH_RADIUS_M * math.radians(1.0)
    assert haversine_meters(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected)


def test_haversine_is_symmetric():
    a = haversine_meters(30.2672, -97.7431, 30.2849, -97.7341)
    b = haversine_meters(30.2849, -97.7341, 30.2672, -97.7431)
    assert a == pytest.approx(b)


def test_bounding_box_centered_on_origin():
    box = bounding_box(40.0, -74.0, 1000)
    assert box.min_lat < 40.0 < box.max_lat
    assert box.min_long < -74.0 < box.max_long
    assert box.max_lat - 40.0 == pytest.approx(1000 / 111000)
    assert box.max_long - (-74.0) == pytest.approx(1000 / (111000 * math.cos(math.radians(40.0))))


@pytest.mark.parametrize(
    "lat,long,radius",
    [
        (40.0, -74.0, 1000),
        (30.2672, -97.7431, 5000),
        (-33.8688, 151.2093, 20000),
        (0.0, 0.0, 10000),
        (60.1699, 24.9384, 8000),
        (0.0, 179.999, 1000),
        (-10.0, -179.95, 20000),
        (85.0, 0.0, 200000),
        (89.5, 10.0, 100000),
        (-89.9, 45.0, 50000),
    ],
)
def test_bounding_box_contains_every_point_within_radius(lat, long, radius):
    box = bounding_box(lat, long, radius)
    for bearing in range(0, 360, 1):
        for fraction in (0.25, 0.5, 0.999):
            p_lat, p_long = _destination(lat, long, bearing, radius * fraction)
            assert haversine_meters(lat, long, p_lat, p_long) <= radius
            assert box.contains(p_lat, p_long), (bearing, fraction)


def test_filter_keeps_only_candidates_inside_radius():
    near_lat, near_long = _destination(40.0, -74.0, 0, 500)
    far_lat, far_long = _destination(40.0, -74.0, 0, 1500)
    near = _candidate("near", near_lat, near_long)
    far = _candidate("far", far_lat, far_long)

    kept = filter_by_radius(40.0, -74.0, 1000, [near, far])

    assert [c.id for c in kept] == ["near"]
    assert kept[0].distance_meters == pytest.approx(500, abs=0.5)


def test_filter_drops_box_corner_outside_circle():
    box = bounding_box(40.0, -74.0, 1000)
    corner = _candidate("corner", box.max_lat - 1e-6, box.max_long - 1e-6)
    assert box.contains(corner.lat, corner.long)

    kept = filter_by_radius(40.0, -74.0, 1000, [corner])

    assert kept == []
    assert corner.distance_meters > 1000


def test_filter_sets_distance_on_all_candidates():
    lat, long = _destination(30.0, -97.0, 90, 250)
    candidate = _candidate("a", lat, long)
    filter_by_radius(30.0, -97.0, 1000, [candidate])
    assert candidate.distance_meters == pytest.approx(250, abs=0.5)


def test_box_wraps_across_antimeridian():
    box = bounding_box(0.0, 179.999, 1000)

    assert box.min_long > box.max_long
    assert len(box.long_ranges) == 2
    assert haversine_meters(0.0, 179.999, 0.0, -179.999) < 1000
    assert box.contains(0.0, -179.999)
    assert box.contains(0.0, 179.995)
    assert not box.contains(0.0, 0.0)


def test_box_widens_longitude_at_high_latitude():
    box = bounding_box(85.0, 0.0, 200000)

    # Widest point of the circle lies poleward of the origin
    assert haversine_meters(85.0, 0.0, 85.333, 21.086) <= 200000
    assert box.contains(85.333, 21.086)
    assert box.max_long > 200000 / (111000 * math.cos(math.radians(85.0)))


def test_circle_reaching_pole_covers_every_longitude():
    box = bounding_box(89.5, 10.0, 100000)
    assert box.long_ranges == [(-180.0, 180.0)]
    assert box.max_lat == 90.0
    assert box.contains(89.8, -170.0)
