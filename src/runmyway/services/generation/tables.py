"""Tolerance and search-radius lookup tables."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from ...config import Settings, settings
from ...models.domain import TravelMode


@dataclass(frozen=True, slots=True)
class ToleranceTable:
    """Distance bracket -> allowed relative deviation.

    ``brackets`` holds ``(upper_km, tolerance)`` pairs; targets past the last
    bracket use ``default``. With ``inclusive`` a target equal to an upper bound
    belongs to that bracket, otherwise to the next one.
    """

    brackets: tuple[tuple[float, float], ...]
    default: float
    inclusive: bool = True

    def __post_init__(self) -> None:
        previous_upper = 0.0
        previous_tolerance = 0.0
        for upper, tolerance in self.brackets:
            if upper <= previous_upper:
                raise ValueError(f"Tolerance brackets must strictly increase, got {upper} after {previous_upper}")
            if tolerance < previous_tolerance:
                raise ValueError("Tolerances must be non-decreasing with bracket size")
            previous_upper, previous_tolerance = upper, tolerance
        if self.default < previous_tolerance:
            raise ValueError("Default tolerance must be >= the last bracket tolerance")

    def tolerance(self, target_km: float) -> float:
        for upper, tolerance in self.brackets:
            if target_km < upper or (self.inclusive and target_km == upper):
                return tolerance
        return self.default

    def allowed_deviation_km(self, target_km: float) -> float:
        return target_km * self.tolerance(target_km)

    @classmethod
    def for_loops(cls, config: Settings | None = None) -> "ToleranceTable":
        config = config or settings
        return cls(tuple(config.loop_tolerance_brackets), config.loop_tolerance_default, inclusive=True)

    @classmethod
    def for_point_to_point(cls, config: Settings | None = None) -> "ToleranceTable":
        config = config or settings
        return cls(
            tuple(config.point_to_point_tolerance_brackets),
            config.point_to_point_tolerance_default,
            inclusive=False,
        )


@dataclass(frozen=True, slots=True)
class ModeRadiusProfile:
    base_fraction: float
    max_fraction: float
    points_divisor: float
    min_points: int
    max_points: int
    base_cap_km: Optional[float] = None
    max_cap_km: Optional[float] = None
    min_target_km: float = 0.0

    def __post_init__(self) -> None:
        if self.base_fraction < 0 or self.max_fraction < self.base_fraction:
            raise ValueError("max_fraction must be >= base_fraction >= 0")
        if self.base_cap_km is not None and self.max_cap_km is not None and self.max_cap_km < self.base_cap_km:
            raise ValueError("max_cap_km must be >= base_cap_km")
        if self.base_cap_km is not None and self.max_cap_km is None:
            raise ValueError("a capped base radius needs a capped max radius")
        if self.points_divisor <= 0 or self.min_points > self.max_points:
            raise ValueError("invalid waypoint count settings")

    def base_radius_km(self, target_km: float) -> float:
        radius = target_km * self.base_fraction
        return min(radius, self.base_cap_km) if self.base_cap_km is not None else radius

    def max_radius_km(self, target_km: float) -> float:
        radius = target_km * self.max_fraction
        if self.max_cap_km is not None:
            radius = min(radius, self.max_cap_km)
        return max(radius, self.base_radius_km(target_km))

    def waypoint_count(self, target_km: float) -> int:
        return min(self.max_points, max(self.min_points, math.floor(target_km / self.points_divisor)))


DEFAULT_RADIUS_PROFILES: dict[TravelMode, ModeRadiusProfile] = {
    TravelMode.WALKING: ModeRadiusProfile(
        base_fraction=1 / 5, max_fraction=1 / 3, points_divisor=2, min_points=2, max_points=10
    ),
    TravelMode.RUNNING: ModeRadiusProfile(
        base_fraction=1 / 5,
        max_fraction=1 / 3,
        points_divisor=3,
        min_points=3,
        max_points=6,
        base_cap_km=8.0,
        max_cap_km=12.0,
        min_target_km=10.0,
    ),
    TravelMode.CYCLING: ModeRadiusProfile(
        base_fraction=1 / 6,
        max_fraction=1 / 4,
        points_divisor=12,
        min_points=3,
        max_points=6,
        base_cap_km=15.0,
        max_cap_km=20.0,
    ),
}


class SearchRadiusTable:
    """Mode -> radius profile. Profiles only apply above their ``min_target_km``."""

    def __init__(
        self,
        profiles: Mapping[TravelMode, ModeRadiusProfile] | None = None,
        fallback_mode: TravelMode = TravelMode.WALKING,
    ) -> None:
        self.profiles = dict(profiles or DEFAULT_RADIUS_PROFILES)
        if fallback_mode not in self.profiles:
            raise ValueError(f"fallback mode {fallback_mode.value} has no radius profile")
        self.fallback_mode = fallback_mode

    def profile_for(self, mode: TravelMode, target_km: float) -> ModeRadiusProfile:
        profile = self.profiles.get(mode)
        if profile is None or target_km <= profile.min_target_km:
            return self.profiles[self.fallback_mode]
        return profile


# attempt -> (multiplier, lower bound, upper bound); the last row applies to later attempts.
RADIUS_FACTOR_BOUNDS: Sequence[tuple[int, float, float, float]] = (
    (2, 1.0, 0.5, 2.0),
    (3, 1.1, 0.4, 2.5),
    (4, 1.3, 0.3, 3.0),
    (5, 1.5, 0.2, 4.0),
)


def radius_factor(
    attempt: int,
    best_distance_km: float,
    target_km: float,
    bounds: Sequence[tuple[int, float, float, float]] = RADIUS_FACTOR_BOUNDS,
) -> float:
    """Radius multiplier for ``attempt`` given the best distance measured so far."""

    if attempt <= 1:
        return 1.0
    if best_distance_km > 0:
        ratio = target_km / best_distance_km
        multiplier, low, high = bounds[-1][1:]
        for row_attempt, row_multiplier, row_low, row_high in bounds:
            if attempt <= row_attempt:
                multiplier, low, high = row_multiplier, row_low, row_high
                break
        return max(low, min(high, ratio * multiplier))
    return 1.0 + (attempt - 1) * 0.3
