import pytest

from runmyway.models.domain import TravelMode
from runmyway.services.generation.tables import (
    ModeRadiusProfile,
    SearchRadiusTable,
    ToleranceTable,
    radius_factor,
)


@pytest.mark.parametrize(
    "target, expected",
    [(5.0, 0.05), (8.0, 0.05), (8.01, 0.08), (20.0, 0.08), (30.0, 0.12), (50.0, 0.12), (60.0, 0.15)],
)
def test_loop_tolerances_include_upper_bound(target, expected):
    assert ToleranceTable.for_loops().tolerance(target) == pytest.approx(expected)


@pytest.mark.parametrize("target, expected", [(10.0, 0.15), (19.9, 0.15), (20.0, 0.20), (49.0, 0.20), (50.0, 0.25)])
def test_point_to_point_tolerances_exclude_upper_bound(target, expected):
    assert ToleranceTable.for_point_to_point().tolerance(target) == pytest.approx(expected)


def test_allowed_deviation():
    assert ToleranceTable.for_loops().allowed_deviation_km(5.0) == pytest.approx(0.25)


@pytest.mark.parametrize(
    "brackets, default",
    [
        (((10.0, 0.05), (10.0, 0.08)), 0.1),
        (((10.0, 0.08), (20.0, 0.05)), 0.1),
        (((10.0, 0.05), (20.0, 0.08)), 0.07),
    ],
)
def test_tolerance_table_rejects_invalid_brackets(brackets, default):
    with pytest.raises(ValueError):
        ToleranceTable(brackets, default)


def test_walking_profile_for_short_loop():
    profile = SearchRadiusTable().profile_for(TravelMode.WALKING, 5.0)

    assert profile.base_radius_km(5.0) == pytest.approx(1.0)
    assert profile.max_radius_km(5.0) == pytest.approx(5 / 3)
    assert profile.waypoint_count(5.0) == 2


def test_running_uses_walking_profile_up_to_ten_km():
    table = SearchRadiusTable()

    assert table.profile_for(TravelMode.RUNNING, 9.0) is table.profiles[TravelMode.WALKING]
    assert table.profile_for(TravelMode.RUNNING, 10.0) is table.profiles[TravelMode.WALKING]
    assert table.profile_for(TravelMode.RUNNING, 12.0) is table.profiles[TravelMode.RUNNING]


def test_running_and_cycling_radii_are_capped():
    table = SearchRadiusTable()
    running = table.profile_for(TravelMode.RUNNING, 60.0)
    cycling = table.profile_for(TravelMode.CYCLING, 100.0)

    assert running.base_radius_km(60.0) == pytest.approx(8.0)
    assert running.max_radius_km(60.0) == pytest.approx(12.0)
    assert running.waypoint_count(60.0) == 6
    assert cycling.base_radius_km(100.0) == pytest.approx(15.0)
    assert cycling.max_radius_km(100.0) == pytest.approx(20.0)
    assert cycling.waypoint_count(24.0) == 3


@pytest.mark.parametrize("mode", list(TravelMode))
def test_max_radius_never_below_base(mode):
    table = SearchRadiusTable()
    for target in (0.5, 1, 5, 10, 15, 25, 40, 60, 80, 120, 200):
        profile = table.profile_for(mode, target)
        assert profile.max_radius_km(target) >= profile.base_radius_km(target) >= 0


def test_mode_radius_profile_validation():
    with pytest.raises(ValueError):
        ModeRadiusProfile(base_fraction=0.5, max_fraction=0.2, points_divisor=2, min_points=2, max_points=4)
    with pytest.raises(ValueError):
        ModeRadiusProfile(
            base_fraction=0.2,
            max_fraction=0.3,
            points_divisor=2,
            min_points=2,
            max_points=4,
            base_cap_km=10.0,
            max_cap_km=5.0,
        )
    with pytest.raises(ValueError):
        ModeRadiusProfile(base_fraction=0.2, max_fraction=0.3, points_divisor=2, min_points=5, max_points=4)


def test_radius_table_requires_fallback_profile():
    with pytest.raises(ValueError):
        SearchRadiusTable(profiles={TravelMode.CYCLING: SearchRadiusTable().profiles[TravelMode.CYCLING]})


def test_radius_factor_schedule():
    assert radius_factor(1, 4.0, 5.0) == 1.0
    assert radius_factor(2, 4.0, 5.0) == pytest.approx(1.25)
    assert radius_factor(2, 1.0, 5.0) == pytest.approx(2.0)
    assert radius_factor(3, 4.0, 5.0) == pytest.approx(1.25 * 1.1)
    assert radius_factor(4, 50.0, 5.0) == pytest.approx(0.3)
    assert radius_factor(5, 50.0, 5.0) == pytest.approx(0.2)
    assert radius_factor(9, 4.0, 5.0) == pytest.approx(1.25 * 1.5)


def test_radius_factor_without_measurement_grows_linearly():
    assert radius_factor(2, 0.0, 5.0) == pytest.approx(1.3)
    assert radius_factor(4, 0.0, 5.0) == pytest.approx(1.9)
