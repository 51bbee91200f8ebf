"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import LineString, MultiPoint
from shapely.geometry import Point as ShapelyPoint

from ..models.domain import Point

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_M = EARTH_RADIUS_KM * 1000.0
# Equatorial approximation used for candidate placement; ~1% error at mid-latitudes.
KM_PER_DEGREE = 111.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance(a: Point, b: Point) -> float:
    """Great-circle distance in meters."""

    return haversine_km(a.lat, a.lng, b.lat, b.lng) * 1000.0


def bearing_degrees(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the initial bearing from (lat1, lon1) to (lat2, lon2)."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lambda = math.radians(lon2 - lon1)
    y = math.sin(delta_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda)
    bearing = math.degrees(math.atan2(y, x))
    return (bearing + 360) % 360


def _displaced(lat: float, lng: float) -> Point:
    """Clamp latitude to the poles and wrap longitude across the antimeridian."""
    return Point(max(-90.0, min(90.0, lat)), ((lng + 180.0) % 360.0) - 180.0)


def project(center: Point, bearing_radians: float, radius_meters: float) -> Point:
    """Displace ``center`` along a compass bearing (equirectangular approximation).

    Good enough at city scale (radius up to ~50 km); not suitable near the poles.
    """

    d_lat = radius_meters * math.cos(bearing_radians) / EARTH_RADIUS_M
    d_lng = radius_meters * math.sin(bearing_radians) / (EARTH_RADIUS_M * math.cos(math.radians(center.lat)))
    return _displaced(center.lat + math.degrees(d_lat), center.lng + math.degrees(d_lng))


def offset_km(center: Point, angle_radians: float, radius_km: float) -> Point:
    """Offset by ``radius_km`` converted to degrees with the flat 111 km/degree rule.

    The longitude offset is not corrected for latitude, so points spread into an
    ellipse away from the equator. Candidate generation relies on the router to
    measure the true length, so the approximation only shifts the shape.
    """

    radius_deg = radius_km / KM_PER_DEGREE
    return _displaced(
        center.lat + math.cos(angle_radians) * radius_deg,
        center.lng + math.sin(angle_radians) * radius_deg,
    )


def progression(start: Point, end: Point, point: Point) -> float:
    """Scalar projection of ``point`` on the start->end segment, clamped to [0, 1]."""

    if start.lat == end.lat and start.lng == end.lng:
        return 0.0
    segment = LineString([(start.lng, start.lat), (end.lng, end.lat)])
    value = segment.project(ShapelyPoint(point.lng, point.lat), normalized=True)
    return max(0.0, min(1.0, float(value)))


def centroid(points: Sequence[Point]) -> Point:
    if not points:
        raise ValueError("centroid() requires at least one point")
    center = MultiPoint([(p.lng, p.lat) for p in points]).centroid
    return Point(center.y, center.x)


def midpoint(a: Point, b: Point) -> Point:
    return Point((a.lat + b.lat) / 2, (a.lng + b.lng) / 2)


def distance_to_segment(point: Point, start: Point, end: Point) -> float:
    """Approximate distance (meters) from ``point`` to the start->end segment.

    Uses the nearest of the two endpoints and the midpoint rather than a true
    perpendicular distance.
    """

    return min(
        distance(point, start),
        distance(point, end),
        distance(point, midpoint(start, end)),
    )


def path_length(points: Sequence[Point], closed: bool = False) -> float:
    """Total length in meters of the polyline through ``points``."""

    if len(points) < 2:
        return 0.0
    total = sum(distance(points[i], points[i + 1]) for i in range(len(points) - 1))
    if closed:
        total += distance(points[-1], points[0])
    return total
