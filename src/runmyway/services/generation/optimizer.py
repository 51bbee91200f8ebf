"""Waypoint ordering heuristics.

Loops use a nearest-neighbour tour refined by position swaps; point-to-point
routes bucket points by how far along the start->end segment they sit.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ...models.domain import Point
from ..geospatial import bearing_degrees, centroid, distance, path_length, progression

MAX_SWAP_SWEEPS = 10
ZONE_BOUNDS = (0.33, 0.67)


class RouteOrderOptimizer:
    def __init__(self, max_sweeps: int = MAX_SWAP_SWEEPS) -> None:
        self.max_sweeps = max_sweeps

    def optimize(
        self,
        start: Point,
        points: Sequence[Point],
        end: Optional[Point] = None,
        loop: bool = True,
    ) -> list[Point]:
        if loop:
            return self.order_loop(start, points)
        if end is None:
            raise ValueError("Point-to-point ordering needs an end point")
        return self.order_point_to_point(start, end, points)

    # ------------------------------------------------------------------ loop

    def order_loop(self, start: Point, points: Sequence[Point]) -> list[Point]:
        """Order ``points`` for a closed tour from ``start``.

        The result is a permutation of ``points`` and never longer than the
        input order.
        """

        original = list(points)
        if len(original) <= 1:
            return original

        ordered = self._nearest_neighbour(start, original)
        self._refine_with_swaps(start, ordered)

        if self.total_path_length(start, ordered) > self.total_path_length(start, original):
            return original
        return ordered

    @staticmethod
    def _nearest_neighbour(start: Point, points: list[Point]) -> list[Point]:
        remaining = list(points)
        ordered: list[Point] = []
        current = start
        while remaining:
            # min() keeps the first of equal distances, i.e. the earlier input position.
            nearest_index = min(range(len(remaining)), key=lambda k: distance(current, remaining[k]))
            current = remaining.pop(nearest_index)
            ordered.append(current)
        return ordered

    def _refine_with_swaps(self, start: Point, ordered: list[Point]) -> None:
        n = len(ordered)

        def node(k: int) -> Point:
            # Positions -1 and n are both the start of the closed tour.
            return start if k < 0 or k >= n else ordered[k]

        for _ in range(self.max_sweeps):
            improved = False
            for i in range(n - 2):
                for j in range(i + 2, n):
                    before = (
                        distance(node(i - 1), node(i))
                        + distance(node(i), node(i + 1))
                        + distance(node(j - 1), node(j))
                        + distance(node(j), node(j + 1))
                    )
                    after = (
                        distance(node(i - 1), node(j))
                        + distance(node(j), node(i + 1))
                        + distance(node(j - 1), node(i))
                        + distance(node(i), node(j + 1))
                    )
                    if after < before - 1e-9:
                        ordered[i], ordered[j] = ordered[j], ordered[i]
                        improved = True
                        break
                if improved:
                    break
            if not improved:
                return

    # -------------------------------------------------------- point-to-point

    def order_point_to_point(self, start: Point, end: Point, points: Sequence[Point]) -> list[Point]:
        """Order ``points`` by progression from ``start`` towards ``end``."""

        if len(points) <= 1:
            return list(points)

        zones: list[list[tuple[float, Point]]] = [[], [], []]
        for point in points:
            value = progression(start, end, point)
            if value < ZONE_BOUNDS[0]:
                zones[0].append((value, point))
            elif value < ZONE_BOUNDS[1]:
                zones[1].append((value, point))
            else:
                zones[2].append((value, point))

        ordered: list[Point] = []
        for zone in zones:
            zone.sort(key=lambda item: item[0])
            zone_points = [point for _, point in zone]
            if len(zone_points) > 2:
                center = centroid(zone_points)
                zone_points.sort(key=lambda p: bearing_degrees(center.lat, center.lng, p.lat, p.lng))
            ordered.extend(zone_points)
        return ordered

    @staticmethod
    def total_path_length(
        start: Point,
        points: Sequence[Point],
        end: Optional[Point] = None,
        closed: bool = True,
    ) -> float:
        """Straight-line length in meters of start -> points (-> end, or back to start)."""

        path = [start, *points]
        if end is not None:
            path.append(end)
            return path_length(path)
        return path_length(path, closed=closed)
