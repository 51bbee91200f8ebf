"""Domain value types shared by the generation engine."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..exceptions import InvalidPointError


class TravelMode(str, Enum):
    WALKING = "walking"
    RUNNING = "running"
    CYCLING = "cycling"


class RoutingProfile(str, Enum):
    WALKING_LIKE = "walking_like"
    CYCLING = "cycling"


class Topology(str, Enum):
    LOOP = "loop"
    POINT_TO_POINT = "point_to_point"


class StrategyTag(str, Enum):
    BEST_FROM_EACH_CATEGORY = "best_from_each_category"
    MAX_DIVERSITY = "max_diversity"
    MAX_TOTAL_SCORE = "max_total_score"


def profile_for_mode(mode: TravelMode) -> RoutingProfile:
    if mode is TravelMode.CYCLING:
        return RoutingProfile.CYCLING
    return RoutingProfile.WALKING_LIKE


@dataclass(frozen=True, slots=True)
class Point:
    """WGS84 coordinate in degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        for label, value, bound in (("lat", self.lat, 90.0), ("lng", self.lng, 180.0)):
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise InvalidPointError(f"{label} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidPointError(f"{label} must be finite, got {value!r}")
            if abs(value) > bound:
                raise InvalidPointError(f"{label}={value} is outside [-{bound}, {bound}]")

    def as_lat_lng(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(slots=True)
class PlaceResult:
    """Raw hit returned by the place-search service."""

    location: Point
    display_name: str
    category: str = ""
    place_type: str = ""
    importance: Optional[float] = None


@dataclass(slots=True)
class POICandidate:
    location: Point
    name: str
    category: str
    proximity_score: float
    importance_score: float
    diversity_score: float
    type_bonus: float
    total_score: float
    distance_from_center_m: float

    @property
    def short_name(self) -> str:
        return self.name.split(",")[0].strip()


@dataclass(slots=True)
class RouteVariant:
    waypoints: list[Point]
    selected_pois: list[POICandidate]
    strategy: StrategyTag
    estimated_distance_km: float = 0.0
    distance_score: float = 0.0
    importance_score: float = 0.0
    total_score: float = 0.0

    @property
    def description(self) -> str:
        return f"{self.strategy.value.replace('_', ' ')} ({len(self.selected_pois)} POI)"


@dataclass(slots=True)
class SearchAttempt:
    attempt_index: int
    radius_factor: float
    resulting_distance_km: Optional[float] = None
    deviation_km: Optional[float] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.resulting_distance_km is not None


@dataclass(slots=True)
class RoutedPath:
    """Path returned by the routing engine."""

    polyline: list[Point]
    distance_m: float
    duration_s: float
    source: str = "osrm"

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000.0

    @property
    def duration_min(self) -> float:
        return self.duration_s / 60.0


@dataclass(slots=True)
class MarkerStyle:
    color: str
    symbol: str
    size: str = "medium"


class MarkerKind(str, Enum):
    START = "start"
    END = "end"
    WAYPOINT = "waypoint"
    POI = "poi"

    def style(self) -> MarkerStyle:
        if self is MarkerKind.START:
            return MarkerStyle(color="#2e7d32", symbol="star", size="large")
        if self is MarkerKind.END:
            return MarkerStyle(color="#c62828", symbol="embassy", size="large")
        if self is MarkerKind.WAYPOINT:
            return MarkerStyle(color="#1565c0", symbol="circle-stroked", size="small")
        if self is MarkerKind.POI:
            return MarkerStyle(color="#f9a825", symbol="attraction")
        raise ValueError(f"Unhandled marker kind: {self!r}")
