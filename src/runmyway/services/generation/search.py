"""Iterative search for a routed path whose length matches the target distance.

Each attempt places candidate waypoints, asks the routing engine for the real
path and compares its length to the target. The radius factor for the next
attempt is derived from the best distance measured so far, so the ring of
waypoints grows or shrinks until the routed length falls within tolerance or
the attempt budget runs out. The best attempt is always what gets returned.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence

from ...config import settings
from ...exceptions import InsufficientCandidatesError, RoutingError, RoutingUnavailableError
from ...models.domain import (
    POICandidate,
    Point,
    RoutedPath,
    RoutingProfile,
    SearchAttempt,
    Topology,
    TravelMode,
    profile_for_mode,
)
from ..geospatial import midpoint
from .candidates import WaypointCandidateGenerator
from .context import GenerationContext
from .models import SearchOutcome, SearchStatus
from .optimizer import RouteOrderOptimizer
from .tables import ToleranceTable, radius_factor

logger = logging.getLogger(__name__)


class RoutingEngine(Protocol):
    def compute_route(self, points: Sequence[Point], profile: RoutingProfile) -> RoutedPath:
        """Route through ``points`` in order; raise RoutingError on failure."""


@dataclass(slots=True)
class _SearchState:
    target_km: float
    attempts: list[SearchAttempt] = field(default_factory=list)
    best_attempt: Optional[SearchAttempt] = None
    best_route: Optional[RoutedPath] = None
    best_waypoints: list[Point] = field(default_factory=list)

    @property
    def next_index(self) -> int:
        return len(self.attempts) + 1

    @property
    def best_distance_km(self) -> float:
        return self.best_route.distance_km if self.best_route else 0.0

    def record_success(self, factor: float, route: RoutedPath, waypoints: list[Point]) -> SearchAttempt:
        deviation = abs(route.distance_km - self.target_km)
        attempt = SearchAttempt(
            attempt_index=self.next_index,
            radius_factor=factor,
            resulting_distance_km=route.distance_km,
            deviation_km=deviation,
        )
        self.attempts.append(attempt)
        if self.best_attempt is None or deviation < self.best_attempt.deviation_km:
            self.best_attempt = attempt
            self.best_route = route
            self.best_waypoints = list(waypoints)
        return attempt

    def record_failure(self, factor: float, error: Exception) -> SearchAttempt:
        attempt = SearchAttempt(attempt_index=self.next_index, radius_factor=factor, error=str(error))
        self.attempts.append(attempt)
        return attempt


class DistanceMatchingSearch:
    def __init__(
        self,
        router: RoutingEngine,
        *,
        candidates: WaypointCandidateGenerator | None = None,
        optimizer: RouteOrderOptimizer | None = None,
        loop_tolerances: ToleranceTable | None = None,
        point_to_point_tolerances: ToleranceTable | None = None,
        max_attempts: int | None = None,
        long_distance_threshold_km: float | None = None,
        long_distance_extra_attempts: int | None = None,
        attempt_delay_seconds: float | None = None,
        direct_acceptance_ratio: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.router = router
        self.candidates = candidates or WaypointCandidateGenerator()
        self.optimizer = optimizer or RouteOrderOptimizer()
        self.loop_tolerances = loop_tolerances or ToleranceTable.for_loops()
        self.point_to_point_tolerances = point_to_point_tolerances or ToleranceTable.for_point_to_point()
        self.max_attempts = max_attempts or settings.max_attempts
        self.long_distance_threshold_km = (
            settings.long_distance_threshold_km if long_distance_threshold_km is None else long_distance_threshold_km
        )
        self.long_distance_extra_attempts = (
            settings.long_distance_extra_attempts
            if long_distance_extra_attempts is None
            else long_distance_extra_attempts
        )
        self.attempt_delay_seconds = (
            settings.attempt_delay_seconds if attempt_delay_seconds is None else attempt_delay_seconds
        )
        self.direct_acceptance_ratio = (
            settings.direct_acceptance_ratio if direct_acceptance_ratio is None else direct_acceptance_ratio
        )
        self.sleep = sleep

    def attempt_budget(self, target_km: float) -> int:
        if target_km > self.long_distance_threshold_km:
            return self.max_attempts + self.long_distance_extra_attempts
        return self.max_attempts

    # ------------------------------------------------------------------ loop

    def generate_loop(
        self,
        start: Point,
        target_km: float,
        mode: TravelMode,
        context: GenerationContext,
        pois: Sequence[POICandidate] = (),
    ) -> SearchOutcome:
        """Search for a closed route from ``start`` of roughly ``target_km``."""

        budget = self.attempt_budget(target_km)
        tolerance = self.loop_tolerances.tolerance(target_km)
        allowed = target_km * tolerance
        profile = profile_for_mode(mode)
        poi_points = [poi.location for poi in pois]
        state = _SearchState(target_km=target_km)
        logger.info(
            f"Loop search: {target_km:.2f} km {mode.value}, tolerance {tolerance:.0%}, budget {budget} attempts"
        )

        for attempt_index in range(1, budget + 1):
            if attempt_index > 1 and self.attempt_delay_seconds > 0:
                self.sleep(self.attempt_delay_seconds)
            if context.cancelled:
                logger.info(f"Loop search cancelled before attempt {attempt_index}")
                return self._outcome(SearchStatus.CANCELLED, Topology.LOOP, tolerance, state)

            factor = radius_factor(attempt_index, state.best_distance_km, target_km)
            try:
                points = self.candidates.generate(start, target_km, mode, factor, context.rng)
                if poi_points:
                    points = self.optimizer.order_loop(start, [*points, *poi_points])
                waypoints = [start, *points, start]
                route = self.router.compute_route(waypoints, profile)
            except (InsufficientCandidatesError, RoutingError) as exc:
                logger.warning(f"Loop attempt {attempt_index}/{budget} failed: {exc}")
                context.emit(state.record_failure(factor, exc))
                continue

            attempt = state.record_success(factor, route, waypoints)
            context.emit(attempt)
            logger.info(
                f"Loop attempt {attempt_index}/{budget}: {route.distance_km:.2f} km "
                f"(deviation {attempt.deviation_km:.2f} km, factor {factor:.2f})"
            )
            if attempt.deviation_km <= allowed:
                logger.info(f"Loop accepted after {attempt_index} attempts")
                return self._outcome(SearchStatus.ACCEPTED, Topology.LOOP, tolerance, state)

        return self._exhausted(Topology.LOOP, tolerance, state)

    # -------------------------------------------------------- point-to-point

    def generate_point_to_point(
        self,
        start: Point,
        end: Point,
        target_km: float,
        mode: TravelMode,
        context: GenerationContext,
        pois: Sequence[POICandidate] = (),
    ) -> SearchOutcome:
        """Try the direct route first and fall back to detours when it is too short."""

        profile = profile_for_mode(mode)
        poi_points = self.optimizer.order_point_to_point(start, end, [poi.location for poi in pois])
        state = _SearchState(target_km=target_km)

        if context.cancelled:
            return self._outcome(SearchStatus.CANCELLED, Topology.POINT_TO_POINT, self.direct_acceptance_ratio, state)

        waypoints = [start, *poi_points, end]
        try:
            route = self.router.compute_route(waypoints, profile)
        except RoutingError as exc:
            logger.warning(f"Direct route failed, trying detours: {exc}")
            context.emit(state.record_failure(1.0, exc))
        else:
            attempt = state.record_success(1.0, route, waypoints)
            context.emit(attempt)
            logger.info(
                f"Direct route: {route.distance_km:.2f} km for a {target_km:.2f} km target "
                f"(deviation {attempt.deviation_km:.2f} km)"
            )
            if attempt.deviation_km <= target_km * self.direct_acceptance_ratio:
                return self._outcome(
                    SearchStatus.ACCEPTED, Topology.POINT_TO_POINT, self.direct_acceptance_ratio, state
                )
            if route.distance_km > target_km:
                # Detours can only lengthen the route.
                logger.info("Direct route already longer than the target, returning it as best effort")
                return self._outcome(
                    SearchStatus.EXHAUSTED, Topology.POINT_TO_POINT, self.direct_acceptance_ratio, state
                )

        return self._search_detours(start, end, target_km, mode, context, pois, state)

    def generate_route_with_detours(
        self,
        start: Point,
        end: Point,
        target_km: float,
        mode: TravelMode,
        context: GenerationContext,
        pois: Sequence[POICandidate] = (),
    ) -> SearchOutcome:
        """Lengthen a point-to-point route with detour waypoints around the segment midpoint."""

        return self._search_detours(start, end, target_km, mode, context, pois, _SearchState(target_km=target_km))

    def _search_detours(
        self,
        start: Point,
        end: Point,
        target_km: float,
        mode: TravelMode,
        context: GenerationContext,
        pois: Sequence[POICandidate],
        state: _SearchState,
    ) -> SearchOutcome:
        tolerance = self.point_to_point_tolerances.tolerance(target_km)
        allowed = target_km * tolerance
        profile = profile_for_mode(mode)
        center = midpoint(start, end)
        poi_points = [poi.location for poi in pois]

        for detour_index in range(1, self.max_attempts + 1):
            attempt_index = state.next_index
            if state.attempts and self.attempt_delay_seconds > 0:
                self.sleep(self.attempt_delay_seconds)
            if context.cancelled:
                logger.info(f"Detour search cancelled before attempt {attempt_index}")
                return self._outcome(SearchStatus.CANCELLED, Topology.POINT_TO_POINT, tolerance, state)

            factor = radius_factor(attempt_index, state.best_distance_km, target_km)
            detours = self.candidates.generate_detours(center, target_km, attempt_index, factor, context.rng)
            points = self.optimizer.order_point_to_point(start, end, [*detours, *poi_points])
            waypoints = [start, *points, end]
            try:
                route = self.router.compute_route(waypoints, profile)
            except RoutingError as exc:
                logger.warning(f"Detour attempt {detour_index}/{self.max_attempts} failed: {exc}")
                context.emit(state.record_failure(factor, exc))
                continue

            attempt = state.record_success(factor, route, waypoints)
            context.emit(attempt)
            logger.info(
                f"Detour attempt {detour_index}/{self.max_attempts}: {route.distance_km:.2f} km "
                f"(deviation {attempt.deviation_km:.2f} km, factor {factor:.2f})"
            )
            if attempt.deviation_km <= allowed:
                return self._outcome(SearchStatus.ACCEPTED, Topology.POINT_TO_POINT, tolerance, state)

        return self._exhausted(Topology.POINT_TO_POINT, tolerance, state)

    # --------------------------------------------------------------- helpers

    def _exhausted(self, topology: Topology, tolerance: float, state: _SearchState) -> SearchOutcome:
        if state.best_route is None:
            raise RoutingUnavailableError(
                f"No route produced in {len(state.attempts)} attempts", attempts=len(state.attempts)
            )
        logger.warning(
            f"Attempt budget exhausted; best route {state.best_route.distance_km:.2f} km "
            f"for a {state.target_km:.2f} km target"
        )
        return self._outcome(SearchStatus.EXHAUSTED, topology, tolerance, state)

    @staticmethod
    def _outcome(status: SearchStatus, topology: Topology, tolerance: float, state: _SearchState) -> SearchOutcome:
        cancelled = status is SearchStatus.CANCELLED
        return SearchOutcome(
            status=status,
            topology=topology,
            target_km=state.target_km,
            tolerance=tolerance,
            route=None if cancelled else state.best_route,
            waypoints=[] if cancelled else list(state.best_waypoints),
            attempts=list(state.attempts),
            best_attempt=state.best_attempt,
        )
