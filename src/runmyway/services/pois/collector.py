"""Concurrent POI collection per category."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Mapping, Protocol, Sequence

from ...config import settings
from ...exceptions import GenerationCancelled, SearchError
from ...models.domain import PlaceResult, POICandidate, Point
from ..generation.context import GenerationContext
from .dedup import deduplicate
from .scorer import POIScorer

logger = logging.getLogger(__name__)


class PlaceSearchService(Protocol):
    def search(self, query: str, center: Point, radius_m: float) -> list[PlaceResult]:
        """Return raw places matching ``query`` around ``center``."""


def search_radius_m(target_km: float, max_radius_m: float | None = None) -> float:
    cap = settings.poi_search_max_radius_m if max_radius_m is None else max_radius_m
    return min(target_km * 1000.0 / 4.0, cap)


class POICollector:
    """Fans out one place search per query term and keeps the best POIs per category."""

    def __init__(
        self,
        places: PlaceSearchService,
        *,
        categories: Mapping[str, Sequence[str]] | None = None,
        scorer: POIScorer | None = None,
        top_per_category: int | None = None,
        max_parallel_requests: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.places = places
        self.categories = dict(categories if categories is not None else settings.poi_categories)
        self.scorer = scorer or POIScorer()
        self.top_per_category = top_per_category or settings.poi_top_per_category
        self.max_parallel_requests = max_parallel_requests or settings.poi_max_parallel_requests
        self.timeout_seconds = timeout_seconds or settings.poi_search_timeout_seconds

    def collect(
        self,
        category_ids: Sequence[str],
        *,
        center: Point,
        target_km: float,
        context: GenerationContext,
    ) -> dict[str, list[POICandidate]]:
        """Return ``{category_id: top candidates}``; categories with no hits are omitted."""

        requests: list[tuple[str, str]] = []
        for category_id in category_ids:
            queries = self.categories.get(category_id)
            if not queries:
                logger.warning(f"Unknown POI category '{category_id}', skipping")
                continue
            requests.extend((category_id, query) for query in queries)
        if not requests:
            return {}

        radius_m = search_radius_m(target_km)
        raw: dict[str, list[POICandidate]] = {category_id: [] for category_id, _ in requests}

        executor = ThreadPoolExecutor(max_workers=min(self.max_parallel_requests, len(requests)))
        try:
            futures: list[tuple[str, str, Future]] = [
                (category_id, query, executor.submit(self.places.search, query, center, radius_m))
                for category_id, query in requests
            ]
            for category_id, query, future in futures:
                if context.cancelled:
                    raise GenerationCancelled("POI collection cancelled")
                try:
                    places = future.result(timeout=self.timeout_seconds)
                except (SearchError, FutureTimeoutError) as exc:
                    logger.warning(f"POI search '{query}' ({category_id}) failed: {exc!r}")
                    continue
                raw[category_id].extend(
                    self.scorer.score_places(
                        places,
                        center=center,
                        target_km=target_km,
                        existing_waypoints=[center],
                        category=category_id,
                    )
                )
            if context.cancelled:
                raise GenerationCancelled("POI collection cancelled")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        selected: dict[str, list[POICandidate]] = {}
        for category_id, candidates in raw.items():
            unique = deduplicate(candidates)
            unique.sort(key=lambda candidate: candidate.total_score, reverse=True)
            if unique:
                selected[category_id] = unique[: self.top_per_category]
            else:
                logger.info(f"No POIs found for category '{category_id}'")
        return selected
