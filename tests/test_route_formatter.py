from runmyway.models.domain import Topology, TravelMode
from runmyway.schemas.routing import POIModel, PointModel, RouteGenerationResponse
from runmyway.services.outputs.route_formatter import route_result_to_geojson, route_result_to_json

START = PointModel(lat=48.8566, lng=2.3522)
MID = PointModel(lat=48.8600, lng=2.3600)
POI = POIModel(
    name="Jardin des Plantes, Paris",
    short_name="Jardin des Plantes",
    category="park",
    lat=48.8440,
    lng=2.3596,
    total_score=72.36,
    distance_from_center_m=1400.0,
)
END = PointModel(lat=48.8400, lng=2.3700)


def _response(**overrides) -> RouteGenerationResponse:
    data = {
        "status": "accepted",
        "topology": Topology.POINT_TO_POINT,
        "mode": TravelMode.RUNNING,
        "target_km": 4.0,
        "start": START,
        "end": END,
        "distance_km": 4.1,
        "duration_min": 24.6,
        "waypoints": [START, MID, PointModel(lat=POI.lat, lng=POI.lng), END],
        "polyline": [START, MID, END],
        "selected_pois": [POI],
    }
    data.update(overrides)
    return RouteGenerationResponse(**data)


def test_json_output_is_plain_data():
    summary = route_result_to_json(_response())

    assert summary["topology"] == "point_to_point"
    assert summary["mode"] == "running"
    assert summary["start"] == {"lat": 48.8566, "lng": 2.3522}


def test_geojson_feature_order_and_styles():
    features = route_result_to_geojson(_response())["features"]

    kinds = [feature["properties"]["kind"] for feature in features]
    assert kinds == ["route", "start", "waypoint", "poi", "end"]

    line = features[0]
    assert line["geometry"]["type"] == "LineString"
    assert line["geometry"]["coordinates"][0] == [2.3522, 48.8566]
    assert line["properties"]["distance_km"] == 4.1

    start = features[1]["properties"]
    assert start["marker-color"] == "#2e7d32" and start["marker-size"] == "large"

    poi = features[3]["properties"]
    assert poi["name"] == "Jardin des Plantes"
    assert poi["score"] == 72.4
    assert poi["marker-size"] == "medium"


def test_geojson_without_route_line():
    collection = route_result_to_geojson(
        _response(status="cancelled", topology=Topology.LOOP, end=None, waypoints=[], polyline=[], selected_pois=[])
    )

    assert collection["type"] == "FeatureCollection"
    assert [feature["properties"]["kind"] for feature in collection["features"]] == ["start"]
