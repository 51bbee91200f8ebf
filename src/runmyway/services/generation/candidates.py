"""Geometric waypoint candidates placed around a center point."""

from __future__ import annotations

import logging
import math
from typing import Any

from ...config import settings
from ...exceptions import InsufficientCandidatesError
from ...models.domain import Point, TravelMode
from ..geospatial import offset_km
from .tables import SearchRadiusTable

logger = logging.getLogger(__name__)

MAX_JITTER_RADIANS = 0.7
JITTER_REFERENCE_KM = 50.0
DETOUR_ANGLE_STEP = 0.7


def _draw(rng: Any, low: float, high: float) -> float:
    return low + float(rng.random()) * (high - low)


class WaypointCandidateGenerator:
    """Places waypoints on a jittered ring whose radius scales with the target distance."""

    def __init__(
        self,
        radius_table: SearchRadiusTable | None = None,
        *,
        min_required_waypoints: int | None = None,
        variation_range: tuple[float, float] | None = None,
        long_variation_range: tuple[float, float] | None = None,
        detour_variation_range: tuple[float, float] | None = None,
        long_distance_threshold_km: float | None = None,
    ) -> None:
        self.radius_table = radius_table or SearchRadiusTable()
        self.min_required_waypoints = min_required_waypoints or settings.min_required_waypoints
        self.variation_range = variation_range or settings.variation_range
        self.long_variation_range = long_variation_range or settings.long_variation_range
        self.detour_variation_range = detour_variation_range or settings.detour_variation_range
        self.long_distance_threshold_km = (
            settings.long_distance_threshold_km if long_distance_threshold_km is None else long_distance_threshold_km
        )

    def jitter_span(self, target_km: float, num_waypoints: int) -> float:
        span = min(MAX_JITTER_RADIANS, target_km / JITTER_REFERENCE_KM)
        if target_km > JITTER_REFERENCE_KM:
            span *= JITTER_REFERENCE_KM / target_km
        # Keep neighbouring points from swapping places on the ring.
        return min(span, math.pi / num_waypoints)

    def generate(
        self,
        center: Point,
        target_km: float,
        mode: TravelMode,
        radius_factor: float,
        rng: Any,
    ) -> list[Point]:
        """Return ``num_waypoints`` points spread around ``center``.

        Raises InsufficientCandidatesError when the radius profile yields fewer
        points than ``min_required_waypoints``.
        """

        if target_km <= 0:
            raise InsufficientCandidatesError(f"Target distance must be positive, got {target_km}")
        profile = self.radius_table.profile_for(mode, target_km)
        num_waypoints = profile.waypoint_count(target_km)
        if num_waypoints < self.min_required_waypoints:
            raise InsufficientCandidatesError(
                f"Only {num_waypoints} waypoints for {target_km:.1f} km ({mode.value}); "
                f"need at least {self.min_required_waypoints}"
            )

        base_radius = profile.base_radius_km(target_km)
        max_radius = profile.max_radius_km(target_km)
        low, high = (
            self.long_variation_range if target_km > self.long_distance_threshold_km else self.variation_range
        )
        span = self.jitter_span(target_km, num_waypoints)

        points: list[Point] = []
        for index in range(num_waypoints):
            variation = _draw(rng, low, high)
            jitter = (float(rng.random()) - 0.5) * span
            angle = 2 * math.pi * index / num_waypoints + jitter
            radius = min(base_radius * radius_factor * variation, max_radius)
            points.append(offset_km(center, angle, radius))
        logger.debug(
            f"Generated {num_waypoints} candidates around {center.as_lat_lng()} "
            f"(base={base_radius:.2f} km, factor={radius_factor:.2f})"
        )
        return points

    def generate_detours(
        self,
        center: Point,
        target_km: float,
        attempt: int,
        radius_factor: float,
        rng: Any,
    ) -> list[Point]:
        """Detour points around the midpoint of a point-to-point route.

        The ring rotates by a fixed step per attempt so successive attempts probe
        different directions.
        """

        if target_km >= 50:
            base_radius = target_km / 4
        elif target_km >= 20:
            base_radius = target_km / 5
        else:
            base_radius = target_km / 6
        base_radius *= radius_factor

        slots = min(6, max(3, math.floor(target_km / 10)))
        count = min(max(3, math.floor(target_km / 15)), slots)
        low, high = self.detour_variation_range

        points: list[Point] = []
        for index in range(count):
            angle = 2 * math.pi * index / slots + DETOUR_ANGLE_STEP * attempt
            radius = base_radius * _draw(rng, low, high)
            points.append(offset_km(center, angle, radius))
        return points
