import math

import numpy as np
import pytest

from runmyway.exceptions import InsufficientCandidatesError
from runmyway.models.domain import Point, TravelMode
from runmyway.services.generation.candidates import WaypointCandidateGenerator
from runmyway.services.geospatial import distance

PARIS = Point(48.8566, 2.3522)
# Longitude degrees are full size at the equator, so ring radii measure exactly.
EQUATOR = Point(0.0, 0.0)
# offset_km assumes 111 km per degree; haversine measures ~111.195.
DEGREE_SCALE = 111.19492664455873 / 111.0


class FixedRandom:
    def __init__(self, value: float = 0.5) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


def test_short_walk_places_two_opposite_points():
    points = WaypointCandidateGenerator().generate(PARIS, 5.0, TravelMode.WALKING, 1.0, FixedRandom())

    assert len(points) == 2
    north, south = points
    assert north.lat > PARIS.lat > south.lat
    for point in points:
        assert distance(PARIS, point) == pytest.approx(1000.0 * DEGREE_SCALE, rel=1e-3)


def test_radius_is_capped_at_profile_maximum():
    points = WaypointCandidateGenerator().generate(PARIS, 5.0, TravelMode.WALKING, 10.0, FixedRandom())

    for point in points:
        assert distance(PARIS, point) <= 5000 / 3 * DEGREE_SCALE + 1


def test_too_few_waypoints_raise():
    generator = WaypointCandidateGenerator(min_required_waypoints=3)

    with pytest.raises(InsufficientCandidatesError):
        generator.generate(PARIS, 5.0, TravelMode.WALKING, 1.0, FixedRandom())


def test_non_positive_target_raises():
    with pytest.raises(InsufficientCandidatesError):
        WaypointCandidateGenerator().generate(PARIS, 0.0, TravelMode.WALKING, 1.0, FixedRandom())


def test_seeded_generator_is_reproducible():
    generator = WaypointCandidateGenerator()

    first = generator.generate(PARIS, 12.0, TravelMode.RUNNING, 1.0, np.random.default_rng(42))
    second = generator.generate(PARIS, 12.0, TravelMode.RUNNING, 1.0, np.random.default_rng(42))
    other = generator.generate(PARIS, 12.0, TravelMode.RUNNING, 1.0, np.random.default_rng(7))

    assert first == second
    assert first != other


def test_variation_stays_in_configured_range():
    generator = WaypointCandidateGenerator()
    low = generator.generate(EQUATOR, 10.0, TravelMode.WALKING, 1.0, FixedRandom(0.0))
    high = generator.generate(EQUATOR, 10.0, TravelMode.WALKING, 1.0, FixedRandom(0.99))
    long_low = generator.generate(EQUATOR, 30.0, TravelMode.WALKING, 1.0, FixedRandom(0.0))

    for point in low:
        assert distance(EQUATOR, point) == pytest.approx(2000 * 0.6 * DEGREE_SCALE, rel=1e-3)
    for point in high:
        assert distance(EQUATOR, point) == pytest.approx(2000 * (0.6 + 0.99 * 0.8) * DEGREE_SCALE, rel=1e-3)
    for point in long_low:
        assert distance(EQUATOR, point) == pytest.approx(6000 * 0.6 * DEGREE_SCALE, rel=1e-3)


@pytest.mark.parametrize(
    "target, count, expected",
    [(10.0, 5, 0.2), (100.0, 3, 0.35), (40.0, 10, math.pi / 10)],
)
def test_jitter_span(target, count, expected):
    assert WaypointCandidateGenerator().jitter_span(target, count) == pytest.approx(expected)


def test_detours_follow_distance_brackets():
    generator = WaypointCandidateGenerator()
    points = generator.generate_detours(EQUATOR, 30.0, 1, 1.0, FixedRandom())

    assert len(points) == 3
    for point in points:
        assert distance(EQUATOR, point) == pytest.approx(6000 * DEGREE_SCALE, rel=1e-3)


def test_detours_rotate_with_attempt():
    generator = WaypointCandidateGenerator()
    first = generator.generate_detours(EQUATOR, 12.0, 1, 1.0, FixedRandom())
    second = generator.generate_detours(EQUATOR, 12.0, 2, 1.0, FixedRandom())

    assert len(first) == len(second) == 3
    assert first != second


def test_detour_radius_scales_with_factor():
    generator = WaypointCandidateGenerator()
    base = generator.generate_detours(EQUATOR, 12.0, 1, 1.0, FixedRandom())
    wider = generator.generate_detours(EQUATOR, 12.0, 1, 2.0, FixedRandom())

    assert distance(EQUATOR, wider[0]) == pytest.approx(2 * distance(EQUATOR, base[0]), rel=1e-3)
