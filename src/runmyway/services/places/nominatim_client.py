"""HTTP client for Nominatim place search and geocoding."""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Optional

import httpx

from ...config import settings
from ...exceptions import GeocodingError, InvalidPointError, SearchError
from ...models.domain import PlaceResult, Point
from ..geospatial import KM_PER_DEGREE
from .cache import GeocodeCache, forward_key, geocode_cache, reverse_key

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 15


def viewbox(center: Point, radius_m: float) -> str:
    """Nominatim ``viewbox`` (left,top,right,bottom) around ``center``."""
    d_lat = radius_m / 1000.0 / KM_PER_DEGREE
    d_lng = d_lat / max(math.cos(math.radians(center.lat)), 1e-6)
    return f"{center.lng - d_lng},{center.lat + d_lat},{center.lng + d_lng},{center.lat - d_lat}"


def _place_from_json(item: dict[str, Any]) -> Optional[PlaceResult]:
    try:
        location = Point(float(item["lat"]), float(item["lon"]))
    except (KeyError, TypeError, ValueError, InvalidPointError):
        return None
    try:
        importance = float(item["importance"]) if item.get("importance") is not None else None
    except (TypeError, ValueError):
        importance = None
    return PlaceResult(
        location=location,
        display_name=item.get("display_name", ""),
        category=item.get("class", ""),
        place_type=item.get("type", ""),
        importance=importance,
    )


class NominatimClient:
    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        country_codes: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        cache: GeocodeCache | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.nominatim_base_url).rstrip("/")
        self.user_agent = user_agent or settings.nominatim_user_agent
        self.country_codes = country_codes if country_codes is not None else settings.nominatim_country_codes
        self.timeout = timeout or settings.nominatim_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.nominatim_max_retries
        self.cache = cache if cache is not None else geocode_cache
        self.transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent, "Accept-Language": "en"},
            transport=self.transport,
        )

    def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        url = f"{self.base_url}/{path}"
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params={**params, "format": "json"})
                    response.raise_for_status()
                    return response.json()
                except (httpx.TimeoutException, httpx.TransportError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    logger.debug(f"Nominatim request failed, retrying (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(0.2 * attempt)
        finally:
            client.close()

    def search(self, query: str, center: Point, radius_m: float) -> list[PlaceResult]:
        """Places matching ``query`` inside a box of ``radius_m`` around ``center``."""
        params: dict[str, Any] = {
            "q": query,
            "limit": SEARCH_LIMIT,
            "viewbox": viewbox(center, radius_m),
            "bounded": 1,
        }
        if self.country_codes:
            params["countrycodes"] = self.country_codes
        try:
            data = self._get_json("search", params)
        except (httpx.HTTPError, ValueError) as exc:
            raise SearchError(f"Place search '{query}' failed: {exc}") from exc
        if not isinstance(data, list):
            raise SearchError(f"Unexpected place search response for '{query}'")
        return [place for place in (_place_from_json(item) for item in data) if place is not None]

    def geocode(self, address: str) -> Point:
        address = address.strip()
        if not address:
            raise GeocodingError("Address must not be empty")
        key = forward_key(address)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        params: dict[str, Any] = {"q": address, "limit": 1}
        if self.country_codes:
            params["countrycodes"] = self.country_codes
        try:
            data = self._get_json("search", params)
        except (httpx.HTTPError, ValueError) as exc:
            raise GeocodingError(f"Geocoding '{address}' failed: {exc}") from exc
        places = [place for place in (_place_from_json(item) for item in data or []) if place is not None]
        if not places:
            raise GeocodingError(f"Address not found: {address}")

        logger.info(f"Geocoded '{address}' to {places[0].location.as_lat_lng()}")
        self.cache.set(key, places[0].location)
        return places[0].location

    def reverse_geocode(self, point: Point) -> Optional[str]:
        """Display name for ``point``, or None when nothing is found or the call fails."""
        key = reverse_key(point)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            data = self._get_json("reverse", {"lat": point.lat, "lon": point.lng})
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"Reverse geocoding {point.as_lat_lng()} failed: {exc}")
            return None
        name = data.get("display_name") if isinstance(data, dict) else None
        if name:
            self.cache.set(key, name)
        return name
