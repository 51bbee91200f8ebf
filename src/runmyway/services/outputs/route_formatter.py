"""Serializers for generated routes."""

from __future__ import annotations

from typing import Any

from ...models.domain import MarkerKind
from ...schemas.routing import PointModel, RouteGenerationResponse


def route_result_to_json(result: RouteGenerationResponse) -> dict:
    return result.model_dump(mode="json")


def _marker(point: PointModel, kind: MarkerKind, **properties: Any) -> dict:
    style = kind.style()
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [point.lng, point.lat]},
        "properties": {
            "kind": kind.value,
            "marker-color": style.color,
            "marker-symbol": style.symbol,
            "marker-size": style.size,
            **properties,
        },
    }


def route_result_to_geojson(result: RouteGenerationResponse) -> dict:
    """FeatureCollection with the route line followed by start, waypoint, POI and end markers."""
    features: list[dict] = []
    if len(result.polyline) >= 2:
        features.append(
            {
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[point.lng, point.lat] for point in result.polyline],
                },
                "properties": {
                    "kind": "route",
                    "status": result.status,
                    "topology": result.topology.value,
                    "mode": result.mode.value,
                    "target_km": result.target_km,
                    "distance_km": result.distance_km,
                    "duration_min": result.duration_min,
                    "fallback": result.fallback,
                },
            }
        )

    features.append(_marker(result.start, MarkerKind.START))

    poi_locations = {(poi.lat, poi.lng) for poi in result.selected_pois}
    for index, point in enumerate(result.waypoints[1:-1], start=1):
        if (point.lat, point.lng) in poi_locations:
            continue
        features.append(_marker(point, MarkerKind.WAYPOINT, sequence=index))

    for poi in result.selected_pois:
        features.append(
            _marker(
                PointModel(lat=poi.lat, lng=poi.lng),
                MarkerKind.POI,
                name=poi.short_name,
                category=poi.category,
                score=round(poi.total_score, 1),
            )
        )

    if result.end is not None:
        features.append(_marker(result.end, MarkerKind.END))

    return {"type": "FeatureCollection", "features": features}
