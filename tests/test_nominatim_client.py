import httpx
import pytest

from runmyway.exceptions import GeocodingError, SearchError
from runmyway.models.domain import Point
from runmyway.services.places.cache import GeocodeCache
from runmyway.services.places.nominatim_client import NominatimClient

CENTER = Point(48.8566, 2.3522)


def _client(handler, **kwargs) -> NominatimClient:
    kwargs.setdefault("cache", GeocodeCache(default_ttl=60.0, max_size=10))
    kwargs.setdefault("max_retries", 0)
    return NominatimClient(
        base_url="http://nominatim.test",
        user_agent="RunMyWay-tests/1.0",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_search_parses_results_and_sends_bounded_query():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[
                {
                    "lat": "48.8462",
                    "lon": "2.3372",
                    "display_name": "Jardin du Luxembourg, Paris",
                    "class": "leisure",
                    "type": "park",
                    "importance": 0.62,
                },
                {"display_name": "broken entry"},
            ],
        )

    places = _client(handler, country_codes="fr").search("park", CENTER, 1500.0)

    request = seen[0]
    assert request.headers["User-Agent"] == "RunMyWay-tests/1.0"
    assert request.url.path == "/search"
    assert request.url.params["limit"] == "15"
    assert request.url.params["bounded"] == "1"
    assert request.url.params["countrycodes"] == "fr"
    left, top, right, bottom = (float(value) for value in request.url.params["viewbox"].split(","))
    assert left < CENTER.lng < right and bottom < CENTER.lat < top
    assert len(places) == 1
    assert places[0].location == Point(48.8462, 2.3372)
    assert places[0].category == "leisure" and places[0].place_type == "park"
    assert places[0].importance == pytest.approx(0.62)


def test_search_failure_raises_search_error():
    with pytest.raises(SearchError):
        _client(lambda request: httpx.Response(503)).search("park", CENTER, 1000.0)


def test_geocode_uses_cache():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=[{"lat": "48.8443", "lon": "2.3744", "display_name": "Gare de Lyon"}])

    client = _client(handler)

    first = client.geocode("Gare de Lyon, Paris")
    second = client.geocode("  gare de lyon,   PARIS ")

    assert first == second == Point(48.8443, 2.3744)
    assert len(calls) == 1


def test_geocode_not_found():
    with pytest.raises(GeocodingError):
        _client(lambda request: httpx.Response(200, json=[])).geocode("Atlantis")


def test_geocode_rejects_empty_address():
    with pytest.raises(GeocodingError):
        _client(lambda request: httpx.Response(200, json=[])).geocode("   ")


def test_reverse_geocode_rounds_cache_key():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"display_name": "Hôtel de Ville, Paris"})

    client = _client(handler)

    assert client.reverse_geocode(Point(48.85661, 2.35222)) == "Hôtel de Ville, Paris"
    assert client.reverse_geocode(Point(48.85649, 2.35218)) == "Hôtel de Ville, Paris"
    assert len(calls) == 1
    assert calls[0].url.path == "/reverse"


def test_reverse_geocode_failure_returns_none():
    assert _client(lambda request: httpx.Response(500)).reverse_geocode(CENTER) is None


def test_cache_expires_entries():
    now = [0.0]
    cache = GeocodeCache(default_ttl=10.0, max_size=5, clock=lambda: now[0])
    cache.set("a", 1)

    assert cache.get("a") == 1
    now[0] = 11.0
    assert cache.get("a") is None
    assert cache.stats["hits"] == 1 and cache.stats["misses"] == 1


def test_cache_evicts_oldest_when_full():
    now = [0.0]
    cache = GeocodeCache(default_ttl=10.0, max_size=2, clock=lambda: now[0])
    cache.set("a", 1)
    now[0] = 1.0
    cache.set("b", 2)
    now[0] = 2.0
    cache.set("c", 3)

    assert len(cache) == 2
    assert cache.get("a") is None
    assert cache.get("b") == 2 and cache.get("c") == 3


def test_search_tolerates_malformed_importance():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=[{"lat": "48.8606", "lon": "2.3376", "display_name": "Louvre", "importance": "n/a"}],
        )

    places = _client(handler).search("museum", CENTER, 1500.0)

    assert len(places) == 1
    assert places[0].importance is None
