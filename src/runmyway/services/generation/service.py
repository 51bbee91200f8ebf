"""Route generation orchestration: geocoding, POIs, variants, search and fallback."""

from __future__ import annotations

import logging
import math
from dataclasses import asdict
from typing import Callable, Optional, Sequence

from ...config import settings
from ...exceptions import GenerationCancelled, NoViableVariantError, RoutingUnavailableError
from ...models.domain import POICandidate, Point, RouteVariant, Topology, TravelMode
from ...persistence.filesystem import FileStorage
from ...schemas.routing import (
    AttemptModel,
    LocationInput,
    POIModel,
    PointModel,
    RouteGenerationRequest,
    RouteGenerationResponse,
    VariantSummaryModel,
)
from ..geospatial import distance_to_segment, midpoint, offset_km, path_length
from ..outputs.route_formatter import route_result_to_geojson, route_result_to_json
from ..places.nominatim_client import NominatimClient
from ..pois.collector import POICollector
from ..pois.scorer import max_acceptable_distance_m
from ..routing.osrm_client import OSRMClient
from .context import GenerationContext
from .models import SearchOutcome, SearchStatus
from .search import DistanceMatchingSearch, RoutingEngine
from .variants import RouteVariantGenerator

FALLBACK_POINTS = 8
FALLBACK_RADIUS_SHRINK = 0.8
NO_VIABLE_VARIANT_WARNING = "No POIs could be incorporated into the route."


def _validate_distance(mode: TravelMode, target_km: float) -> None:
    limits = settings.mode_distance_limits_km.get(mode.value)
    if limits is None:
        return
    low, high = limits
    if not low <= target_km <= high:
        raise ValueError(f"Target distance {target_km} km is outside the {low}-{high} km range for {mode.value}.")


def _resolve_location(location: LocationInput, places: NominatimClient) -> Point:
    if location.point is not None:
        return Point(location.point.lat, location.point.lng)
    return places.geocode(location.address or "")


def _point_model(point: Point) -> PointModel:
    return PointModel(lat=point.lat, lng=point.lng)


def _poi_model(poi: POICandidate) -> POIModel:
    return POIModel(
        name=poi.name,
        short_name=poi.short_name,
        category=poi.category,
        lat=poi.location.lat,
        lng=poi.location.lng,
        total_score=poi.total_score,
        distance_from_center_m=poi.distance_from_center_m,
    )


def _variant_model(variant: Optional[RouteVariant]) -> Optional[VariantSummaryModel]:
    if variant is None:
        return None
    return VariantSummaryModel(
        strategy=variant.strategy,
        description=variant.description,
        estimated_distance_km=variant.estimated_distance_km,
        distance_score=variant.distance_score,
        importance_score=variant.importance_score,
        total_score=variant.total_score,
    )


def estimated_duration_min(distance_km: float, mode: TravelMode) -> float:
    speed = settings.mode_speeds_kmh.get(mode.value, settings.mode_speeds_kmh["walking"])
    return distance_km / speed * 60.0


def fallback_path(start: Point, target_km: float, end: Optional[Point], pois: Sequence[Point] = ()) -> list[Point]:
    """Straight-line path used when no router is reachable."""
    if end is not None:
        return [start, *pois, end]
    radius_km = target_km / (2 * math.pi) * FALLBACK_RADIUS_SHRINK
    ring = [offset_km(start, 2 * math.pi * i / FALLBACK_POINTS, radius_km) for i in range(FALLBACK_POINTS + 1)]
    return [start, *ring, start]


def collect_pois(
    payload: RouteGenerationRequest,
    *,
    start: Point,
    end: Optional[Point],
    places: NominatimClient,
    context: GenerationContext,
) -> dict[str, list[POICandidate]]:
    if not payload.poi_categories:
        return {}
    center = start if end is None else midpoint(start, end)
    collector = POICollector(places)
    pois_by_category = collector.collect(
        payload.poi_categories, center=center, target_km=payload.target_km, context=context
    )
    if end is None:
        return pois_by_category

    max_distance = max_acceptable_distance_m(payload.target_km)
    filtered: dict[str, list[POICandidate]] = {}
    for category_id, candidates in pois_by_category.items():
        kept = [poi for poi in candidates if distance_to_segment(poi.location, start, end) <= max_distance]
        if kept:
            filtered[category_id] = kept
    return filtered


def _base_response(
    payload: RouteGenerationRequest, start: Point, end: Optional[Point], context: GenerationContext
) -> dict:
    return {
        "topology": Topology.LOOP if end is None else Topology.POINT_TO_POINT,
        "mode": payload.mode,
        "target_km": payload.target_km,
        "start": _point_model(start),
        "end": _point_model(end) if end is not None else None,
        "metadata": {"seed": context.seed, "poi_categories": list(payload.poi_categories)},
    }


def _response_from_outcome(
    payload: RouteGenerationRequest,
    outcome: SearchOutcome,
    *,
    start: Point,
    end: Optional[Point],
    variant: Optional[RouteVariant],
    warnings: list[str],
    context: GenerationContext,
) -> RouteGenerationResponse:
    route = outcome.route
    base = _base_response(payload, start, end, context)
    base["metadata"].update({"routing_source": route.source if route else None, "attempt_count": len(outcome.attempts)})
    return RouteGenerationResponse(
        status=outcome.status.value,
        distance_km=route.distance_km if route else None,
        duration_min=route.duration_min if route else None,
        deviation_km=outcome.deviation_km if route else None,
        tolerance=outcome.tolerance,
        attempts=[AttemptModel(**asdict(attempt)) for attempt in outcome.attempts],
        waypoints=[_point_model(point) for point in outcome.waypoints],
        polyline=[_point_model(point) for point in route.polyline] if route else [],
        selected_pois=[_poi_model(poi) for poi in variant.selected_pois] if variant and route else [],
        variant=_variant_model(variant) if route else None,
        warnings=warnings,
        **base,
    )


def _fallback_response(
    payload: RouteGenerationRequest,
    *,
    start: Point,
    end: Optional[Point],
    variant: Optional[RouteVariant],
    warnings: list[str],
    context: GenerationContext,
    attempts: int,
) -> RouteGenerationResponse:
    pois = [poi.location for poi in variant.selected_pois] if variant else []
    path = fallback_path(start, payload.target_km, end, pois)
    distance_km = path_length(path) / 1000.0
    base = _base_response(payload, start, end, context)
    base["metadata"].update({"routing_source": "straight_line", "attempt_count": attempts})
    return RouteGenerationResponse(
        status=SearchStatus.EXHAUSTED.value,
        distance_km=distance_km,
        duration_min=estimated_duration_min(distance_km, payload.mode),
        deviation_km=abs(distance_km - payload.target_km),
        waypoints=[_point_model(point) for point in path],
        polyline=[_point_model(point) for point in path],
        selected_pois=[_poi_model(poi) for poi in variant.selected_pois] if variant else [],
        variant=_variant_model(variant),
        fallback=True,
        warnings=[*warnings, "Routing service unavailable; showing a straight-line approximation."],
        **base,
    )


def _cancelled_response(
    payload: RouteGenerationRequest,
    *,
    start: Point,
    end: Optional[Point],
    warnings: list[str],
    context: GenerationContext,
    outcome: Optional[SearchOutcome] = None,
) -> RouteGenerationResponse:
    return RouteGenerationResponse(
        status=SearchStatus.CANCELLED.value,
        attempts=[AttemptModel(**asdict(attempt)) for attempt in outcome.attempts] if outcome else [],
        warnings=warnings,
        **_base_response(payload, start, end, context),
    )


def persist_route(
    response: RouteGenerationResponse,
    *,
    run_label: Optional[str] = None,
    storage_factory: Callable[[], FileStorage] = FileStorage,
) -> str:
    storage = storage_factory()
    run_dir = storage.make_run_directory(prefix=run_label or f"route_{response.topology.value}")
    storage.write_json(run_dir / "summary.json", route_result_to_json(response))
    storage.write_json(run_dir / "route.geojson", route_result_to_geojson(response))
    logging.info(f"Persisted route outputs to {run_dir}")
    return str(run_dir)


def generate_route(
    payload: RouteGenerationRequest,
    *,
    router: Optional[RoutingEngine] = None,
    places: Optional[NominatimClient] = None,
    context: Optional[GenerationContext] = None,
    storage_factory: Callable[[], FileStorage] = FileStorage,
) -> RouteGenerationResponse:
    _validate_distance(payload.mode, payload.target_km)

    places = places or NominatimClient()
    context = context or GenerationContext.create(payload.seed)
    start = _resolve_location(payload.start, places)
    end = None
    if payload.end is not None and not payload.return_to_start:
        end = _resolve_location(payload.end, places)
    warnings: list[str] = []

    try:
        pois_by_category = collect_pois(payload, start=start, end=end, places=places, context=context)
    except GenerationCancelled:
        logging.info("Route generation cancelled during POI collection")
        return _cancelled_response(payload, start=start, end=end, warnings=warnings, context=context)

    variant: Optional[RouteVariant] = None
    try:
        variant = RouteVariantGenerator().best(pois_by_category, start=start, target_km=payload.target_km, end=end)
    except NoViableVariantError as exc:
        logging.warning(f"{NO_VIABLE_VARIANT_WARNING} {exc}")
        warnings.append(NO_VIABLE_VARIANT_WARNING)
    if payload.poi_categories and not pois_by_category:
        warnings.append("No POIs found for the requested categories.")
    selected_pois = variant.selected_pois if variant else []

    search = DistanceMatchingSearch(router or OSRMClient())
    try:
        if end is None:
            outcome = search.generate_loop(start, payload.target_km, payload.mode, context, pois=selected_pois)
        else:
            outcome = search.generate_point_to_point(
                start, end, payload.target_km, payload.mode, context, pois=selected_pois
            )
    except RoutingUnavailableError as exc:
        logging.warning(f"Routing unavailable, using straight-line fallback: {exc}")
        response = _fallback_response(
            payload,
            start=start,
            end=end,
            variant=variant,
            warnings=warnings,
            context=context,
            attempts=exc.attempts,
        )
    else:
        if outcome.status is SearchStatus.CANCELLED:
            return _cancelled_response(
                payload, start=start, end=end, warnings=warnings, context=context, outcome=outcome
            )
        if outcome.status is SearchStatus.EXHAUSTED:
            warnings.append(
                f"Closest route found is {outcome.route.distance_km:.2f} km for a {payload.target_km:.2f} km target."
            )
        response = _response_from_outcome(
            payload, outcome, start=start, end=end, variant=variant, warnings=warnings, context=context
        )

    if payload.persist:
        try:
            response.metadata["output_dir"] = persist_route(
                response, run_label=payload.run_label, storage_factory=storage_factory
            )
        except OSError as exc:
            logging.warning(f"Failed to persist route outputs: {exc}")
            response.warnings.append("Route outputs could not be saved.")
    return response
