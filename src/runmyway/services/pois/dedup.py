"""Near-duplicate POI merging."""

from __future__ import annotations

from typing import Sequence

from ...config import settings
from ...models.domain import POICandidate
from ..geospatial import distance


def deduplicate(
    candidates: Sequence[POICandidate],
    threshold_m: float | None = None,
) -> list[POICandidate]:
    """Drop candidates within ``threshold_m`` of a better-scored one.

    Candidates are claimed in descending score order, so no two survivors are
    within the threshold. On equal scores the candidate seen first wins.
    Survivors keep their input order.
    """

    threshold = settings.poi_dedup_threshold_m if threshold_m is None else threshold_m
    ranked = sorted(range(len(candidates)), key=lambda index: candidates[index].total_score, reverse=True)
    kept: list[int] = []
    for index in ranked:
        location = candidates[index].location
        if all(distance(location, candidates[other].location) > threshold for other in kept):
            kept.append(index)
    return [candidates[index] for index in sorted(kept)]
