"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from ...exceptions import RoutingError
from ...models.domain import Point, RoutedPath, RoutingProfile

logger = logging.getLogger(__name__)

# Two points in central Paris, used to probe the service.
HEALTH_PROBE_COORDINATES = "2.352222,48.856613;2.294481,48.858370"


def osrm_profile_for(profile: RoutingProfile) -> str:
    if profile is RoutingProfile.CYCLING:
        return settings.osrm_cycling_profile
    return settings.osrm_walking_profile


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.osrm_base_url
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.base_url = self.base_url.rstrip("/")
        self.timeout = timeout or settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self.transport = transport

    def _get_client(self) -> httpx.Client:
        """Create a fresh client per call; instances may be shared across threads."""
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            limits=httpx.Limits(max_connections=1, max_keepalive_connections=0),
            transport=self.transport,
        )

    def route(self, coordinates: Sequence[tuple[float, float]], osrm_profile: str) -> dict:
        """Raw OSRM route response for ``(lat, lon)`` waypoints visited in order."""
        if len(coordinates) < 2:
            raise RoutingError("At least two coordinates are required for OSRM route.")

        # OSRM route endpoint expects coordinates as "lon,lat;lon,lat;..."
        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)
        params = {
            "overview": "full",
            "geometries": "polyline",
            "steps": "false",
        }
        url = f"{self.base_url}/route/v1/{osrm_profile}/{coordinate_str}"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    if response.status_code < 500 and response.status_code != 200:
                        # OSRM reports bad input with a 400 and a JSON body; nothing to retry.
                        data = _json_or_empty(response)
                        raise RoutingError(
                            f"OSRM route request rejected ({response.status_code}): "
                            f"{data.get('message', response.reason_phrase)}"
                        )
                    response.raise_for_status()
                    data = response.json()
                    if data.get("code") != "Ok":
                        error_msg = data.get("message", "Unknown OSRM route error")
                        raise RoutingError(f"OSRM route request failed: {error_msg}")
                    return data
                except httpx.HTTPStatusError as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise RoutingError(f"OSRM server error after {attempt} attempts: {e}") from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM route request timed out after {self.max_retries} retries: {e}")
                        raise RoutingError(f"OSRM route request timed out: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM route timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.TransportError, OSError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise RoutingError(f"Failed to connect to OSRM service at {self.base_url}: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
                except ValueError as e:
                    # Malformed JSON body.
                    raise RoutingError(f"Invalid OSRM response: {e}") from e
        finally:
            client.close()

    def compute_route(self, points: Sequence[Point], profile: RoutingProfile) -> RoutedPath:
        """Route through ``points`` in order and return the decoded path."""
        data = self.route([point.as_lat_lng() for point in points], osrm_profile_for(profile))
        routes = data.get("routes") or []
        if not routes:
            raise RoutingError("OSRM returned no routes")
        best = routes[0]
        geometry = best.get("geometry") or ""
        polyline = [Point(lat, lon) for lat, lon in decode_polyline(geometry)] if geometry else list(points)
        return RoutedPath(
            polyline=polyline,
            distance_m=float(best.get("distance", 0.0)),
            duration_s=float(best.get("duration", 0.0)),
        )


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def decode_polyline(polyline: str) -> list[tuple[float, float]]:
    """Decode Google polyline string to list of (lat, lon) coordinates.

    OSRM uses Google's polyline encoding format (precision 5) for route geometry.
    """
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    while index < len(polyline):
        deltas = []
        for _ in range(2):
            shift = 0
            result = 0
            while True:
                b = ord(polyline[index]) - 63
                index += 1
                result |= (b & 0x1f) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(result >> 1) if (result & 1) else (result >> 1))
        lat += deltas[0]
        lon += deltas[1]
        coordinates.append((lat / 1e5, lon / 1e5))

    return coordinates


def check_health(base_url: str | None = None, transport: httpx.BaseTransport | None = None) -> bool:
    """Check OSRM service health by routing between two fixed points.

    Public OSRM endpoints have no /health endpoint, so connectivity is tested
    with a minimal route request.
    """
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    url = f"{base.rstrip('/')}/route/v1/{settings.osrm_walking_profile}/{HEALTH_PROBE_COORDINATES}"
    try:
        with httpx.Client(timeout=5.0, transport=transport) as client:
            response = client.get(url, params={"overview": "false"})
        response.raise_for_status()
        return response.json().get("code") == "Ok"
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning(f"OSRM health check failed: {exc}")
        return False
