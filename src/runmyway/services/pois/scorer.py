"""Relevance scoring of place-search hits.

Scores are on a 0-100 scale split into four components:

* proximity to the search center (max 50),
* importance heuristics from the name, classification and external importance (max 30),
* diversity, i.e. distance from waypoints already chosen (max 15),
* small type bonuses for parks, gardens and tourism spots (max 5).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from ...config import settings
from ...models.domain import PlaceResult, POICandidate, Point
from ..geospatial import distance

PROXIMITY_WEIGHT = 50.0
IMPORTANCE_CAP = 30.0
DIVERSITY_CAP = 15.0
DIVERSITY_UNIT_M = 500.0

GRANDEUR_MARKERS = ("grand", "grande")
LANDMARK_MARKERS = ("national park", "parc national", "château", "castle", "cathedral", "cathédrale")
EXTERNAL_IMPORTANCE_THRESHOLD = 0.7


def max_acceptable_distance_m(target_km: float) -> float:
    return target_km * 1000.0 / 3.0


def importance_score(place: PlaceResult) -> float:
    name = place.display_name.lower()
    place_type = place.place_type.lower()
    place_class = place.category.lower()

    score = 0.0
    if any(marker in name for marker in GRANDEUR_MARKERS):
        score += 15
    if any(marker in name for marker in LANDMARK_MARKERS):
        score += 20
    if place_class == "tourism" and place_type == "attraction":
        score += 15
    if place.importance is not None and place.importance > EXTERNAL_IMPORTANCE_THRESHOLD:
        score += 10
    return min(score, IMPORTANCE_CAP)


def type_bonus(place: PlaceResult) -> float:
    place_type = place.place_type.lower()
    bonus = 0.0
    if "park" in place_type or "garden" in place_type:
        bonus += 3
    if "tourism" in place_type or place.category.lower() == "tourism":
        bonus += 2
    return bonus


def diversity_score(location: Point, existing_waypoints: Sequence[Point]) -> float:
    if not existing_waypoints:
        return DIVERSITY_CAP
    nearest = min(distance(location, waypoint) for waypoint in existing_waypoints)
    return min(nearest / DIVERSITY_UNIT_M, DIVERSITY_CAP)


@dataclass(slots=True)
class POIScorer:
    results_per_query: int = settings.poi_results_per_query

    def score(
        self,
        place: PlaceResult,
        *,
        center: Point,
        target_km: float,
        existing_waypoints: Sequence[Point] = (),
        category: str = "",
    ) -> POICandidate | None:
        """Score one place, or return None when it lies beyond the distance cutoff."""

        max_distance = max_acceptable_distance_m(target_km)
        from_center = distance(center, place.location)
        if max_distance <= 0 or from_center > max_distance:
            return None

        proximity = max(0.0, (max_distance - from_center) / max_distance * PROXIMITY_WEIGHT)
        importance = importance_score(place)
        diversity = diversity_score(place.location, existing_waypoints)
        bonus = type_bonus(place)
        return POICandidate(
            location=place.location,
            name=place.display_name,
            category=category,
            proximity_score=proximity,
            importance_score=importance,
            diversity_score=diversity,
            type_bonus=bonus,
            total_score=proximity + importance + diversity + bonus,
            distance_from_center_m=from_center,
        )

    def score_places(
        self,
        places: Iterable[PlaceResult],
        *,
        center: Point,
        target_km: float,
        existing_waypoints: Sequence[Point] = (),
        category: str = "",
    ) -> list[POICandidate]:
        scored = [
            candidate
            for candidate in (
                self.score(
                    place,
                    center=center,
                    target_km=target_km,
                    existing_waypoints=existing_waypoints,
                    category=category,
                )
                for place in places
            )
            if candidate is not None
        ]
        scored.sort(key=lambda candidate: candidate.total_score, reverse=True)
        return scored[: self.results_per_query]
