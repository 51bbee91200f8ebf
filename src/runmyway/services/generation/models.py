"""Search result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...models.domain import Point, RoutedPath, SearchAttempt, Topology


class SearchStatus(str, Enum):
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class SearchOutcome:
    status: SearchStatus
    topology: Topology
    target_km: float
    tolerance: float
    route: Optional[RoutedPath] = None
    waypoints: List[Point] = field(default_factory=list)
    attempts: List[SearchAttempt] = field(default_factory=list)
    best_attempt: Optional[SearchAttempt] = None

    @property
    def deviation_km(self) -> Optional[float]:
        return self.best_attempt.deviation_km if self.best_attempt else None

    @property
    def accepted(self) -> bool:
        return self.status is SearchStatus.ACCEPTED
