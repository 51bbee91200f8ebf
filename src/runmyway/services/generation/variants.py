"""Candidate route variants built from collected POIs, and their ranking."""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional, Sequence

from ...config import settings
from ...exceptions import NoViableVariantError
from ...models.domain import POICandidate, Point, RouteVariant, StrategyTag
from ..geospatial import distance
from .optimizer import RouteOrderOptimizer

logger = logging.getLogger(__name__)

DISTANCE_FIT_WEIGHT = 40.0
IMPORTANCE_WEIGHT_CAP = 35.0


def distance_fit_score(estimated_km: float, target_km: float) -> float:
    if target_km <= 0:
        return 0.0
    return max(0.0, (1 - abs(estimated_km - target_km) / target_km) * DISTANCE_FIT_WEIGHT)


def importance_total(pois: Sequence[POICandidate]) -> float:
    return min(sum(poi.importance_score for poi in pois) / 2, IMPORTANCE_WEIGHT_CAP)


class RouteVariantGenerator:
    """Builds one variant per selection strategy and ranks them."""

    def __init__(
        self,
        optimizer: RouteOrderOptimizer | None = None,
        *,
        min_score: float | None = None,
        max_pois_per_variant: int | None = None,
    ) -> None:
        self.optimizer = optimizer or RouteOrderOptimizer()
        self.min_score = settings.poi_min_score if min_score is None else min_score
        self.max_pois_per_variant = max_pois_per_variant or settings.max_pois_per_variant

    def generate(
        self,
        pois_by_category: Mapping[str, Sequence[POICandidate]],
        *,
        start: Point,
        target_km: float,
        end: Optional[Point] = None,
    ) -> list[RouteVariant]:
        """Return variants in strategy order.

        An empty input yields no variants. Raises NoViableVariantError when POIs
        were supplied but none reaches ``min_score``.
        """

        supplied = sum(len(candidates) for candidates in pois_by_category.values())
        if supplied == 0:
            return []

        eligible: dict[str, list[POICandidate]] = {}
        for category_id, candidates in pois_by_category.items():
            kept = [poi for poi in candidates if poi.total_score >= self.min_score]
            if kept:
                eligible[category_id] = sorted(kept, key=lambda poi: poi.total_score, reverse=True)
        if not eligible:
            raise NoViableVariantError(
                f"None of the {supplied} POIs reached the minimum score of {self.min_score:.0f}"
            )

        strategies: list[tuple[StrategyTag, Callable[[], list[POICandidate]]]] = [
            (StrategyTag.BEST_FROM_EACH_CATEGORY, lambda: self._best_from_each_category(eligible)),
            (StrategyTag.MAX_DIVERSITY, lambda: self._max_diversity(eligible, start)),
            (StrategyTag.MAX_TOTAL_SCORE, lambda: self._max_total_score(eligible)),
        ]

        variants: list[RouteVariant] = []
        seen: set[frozenset] = set()
        for strategy, select in strategies:
            selected = select()
            key = frozenset((poi.location, poi.name) for poi in selected)
            if not selected or key in seen:
                continue
            seen.add(key)
            variants.append(self._build_variant(selected, strategy, start=start, end=end, target_km=target_km))
        return variants

    @staticmethod
    def rank(variants: Sequence[RouteVariant]) -> list[RouteVariant]:
        # sorted() is stable, so ties keep generation order.
        return sorted(variants, key=lambda variant: variant.total_score, reverse=True)

    def best(
        self,
        pois_by_category: Mapping[str, Sequence[POICandidate]],
        *,
        start: Point,
        target_km: float,
        end: Optional[Point] = None,
    ) -> Optional[RouteVariant]:
        ranked = self.rank(self.generate(pois_by_category, start=start, target_km=target_km, end=end))
        if not ranked:
            return None
        logger.info(f"Selected variant '{ranked[0].description}' with score {ranked[0].total_score:.1f}")
        return ranked[0]

    def _best_from_each_category(self, eligible: Mapping[str, list[POICandidate]]) -> list[POICandidate]:
        return [candidates[0] for candidates in eligible.values()][: self.max_pois_per_variant]

    def _max_diversity(self, eligible: Mapping[str, list[POICandidate]], start: Point) -> list[POICandidate]:
        chosen: list[POICandidate] = []
        anchors = [start]
        for candidates in eligible.values():
            if len(chosen) >= self.max_pois_per_variant:
                break
            pick = max(candidates, key=lambda poi: min(distance(poi.location, anchor) for anchor in anchors))
            chosen.append(pick)
            anchors.append(pick.location)
        return chosen

    def _max_total_score(self, eligible: Mapping[str, list[POICandidate]]) -> list[POICandidate]:
        pool = [poi for candidates in eligible.values() for poi in candidates]
        pool.sort(key=lambda poi: poi.total_score, reverse=True)
        return pool[: self.max_pois_per_variant]

    def _build_variant(
        self,
        selected: list[POICandidate],
        strategy: StrategyTag,
        *,
        start: Point,
        end: Optional[Point],
        target_km: float,
    ) -> RouteVariant:
        ordered_points = self.optimizer.optimize(
            start, [poi.location for poi in selected], end=end, loop=end is None
        )
        remaining = list(selected)
        ordered_pois: list[POICandidate] = []
        for point in ordered_points:
            index = next(k for k, poi in enumerate(remaining) if poi.location == point)
            ordered_pois.append(remaining.pop(index))

        estimated_km = self.optimizer.total_path_length(start, ordered_points, end=end) / 1000.0
        fit = distance_fit_score(estimated_km, target_km)
        importance = importance_total(ordered_pois)
        return RouteVariant(
            waypoints=ordered_points,
            selected_pois=ordered_pois,
            strategy=strategy,
            estimated_distance_km=estimated_km,
            distance_score=fit,
            importance_score=importance,
            total_score=fit + importance,
        )
