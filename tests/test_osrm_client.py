import httpx
import pytest

from runmyway.exceptions import RoutingError
from runmyway.models.domain import Point, RoutingProfile
from runmyway.services.routing.osrm_client import OSRMClient, check_health, decode_polyline

# Reference polyline from the encoding format documentation.
ENCODED = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"
POINTS = [Point(48.8566, 2.3522), Point(48.8606, 2.3376)]


def _client(handler, **kwargs) -> OSRMClient:
    kwargs.setdefault("max_retries", 2)
    kwargs.setdefault("backoff_seconds", 0.0)
    return OSRMClient(base_url="http://osrm.test/", transport=httpx.MockTransport(handler), **kwargs)


def _ok(distance: float = 5000.0, duration: float = 3600.0, geometry: str = ENCODED) -> dict:
    return {"code": "Ok", "routes": [{"distance": distance, "duration": duration, "geometry": geometry}]}


def test_decode_polyline():
    assert decode_polyline(ENCODED) == [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]
    assert decode_polyline("") == []


def test_compute_route_builds_request_and_decodes_geometry():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_ok())

    path = _client(handler).compute_route(POINTS, RoutingProfile.WALKING_LIKE)

    request = seen[0]
    assert request.url.path == "/route/v1/foot/2.3522,48.8566;2.3376,48.8606"
    assert request.url.params["overview"] == "full"
    assert request.url.params["geometries"] == "polyline"
    assert path.distance_km == pytest.approx(5.0)
    assert path.duration_min == pytest.approx(60.0)
    assert path.polyline[0] == Point(38.5, -120.2)
    assert path.source == "osrm"


def test_cycling_profile_is_mapped():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json=_ok())

    _client(handler).compute_route(POINTS, RoutingProfile.CYCLING)

    assert seen[0].startswith("/route/v1/bike/")


def test_non_ok_code_raises_without_retry():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"code": "NoRoute", "message": "Impossible route"})

    with pytest.raises(RoutingError, match="Impossible route"):
        _client(handler).compute_route(POINTS, RoutingProfile.WALKING_LIKE)
    assert len(calls) == 1


def test_client_error_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"code": "InvalidQuery", "message": "Query string malformed"})

    with pytest.raises(RoutingError, match="Query string malformed"):
        _client(handler).compute_route(POINTS, RoutingProfile.WALKING_LIKE)
    assert len(calls) == 1


def test_server_errors_are_retried_then_succeed():
    responses = [httpx.Response(503), httpx.Response(200, json=_ok(distance=4200.0))]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    path = _client(handler).compute_route(POINTS, RoutingProfile.WALKING_LIKE)

    assert path.distance_m == 4200.0
    assert responses == []


def test_server_errors_exhaust_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(RoutingError):
        _client(handler, max_retries=1).compute_route(POINTS, RoutingProfile.WALKING_LIKE)
    assert len(calls) == 2


def test_network_errors_become_routing_errors():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RoutingError, match="Failed to connect"):
        _client(handler).compute_route(POINTS, RoutingProfile.WALKING_LIKE)
    assert len(calls) == 3


def test_empty_routes_raise():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "Ok", "routes": []})

    with pytest.raises(RoutingError):
        _client(handler).compute_route(POINTS, RoutingProfile.WALKING_LIKE)


def test_single_point_is_rejected():
    with pytest.raises(RoutingError):
        _client(lambda request: httpx.Response(200, json=_ok())).compute_route(POINTS[:1], RoutingProfile.WALKING_LIKE)


def test_check_health():
    healthy = httpx.MockTransport(lambda request: httpx.Response(200, json={"code": "Ok", "routes": []}))
    broken = httpx.MockTransport(lambda request: httpx.Response(502))

    assert check_health("http://osrm.test", transport=healthy) is True
    assert check_health("http://osrm.test", transport=broken) is False
