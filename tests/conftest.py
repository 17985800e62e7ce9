import pytest

from route_speed import solvice
from route_speed.models import RouteResponse

# Google's reference polyline: (38.5, -120.2), (40.7, -120.95), (43.252, -126.453)
SAMPLE_POLYLINE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


def make_response(legs, distance=None, duration=None, geometry=SAMPLE_POLYLINE) -> dict:
    """Build a route response payload around the given legs."""
    if distance is None:
        distance = sum(leg.get("distance", 0) for leg in legs)
    if duration is None:
        duration = sum(leg.get("duration", 0) for leg in legs)
    return {
        "code": "Ok",
        "routes": [
            {"distance": distance, "duration": duration, "geometry": geometry, "legs": legs},
        ],
        "waypoints": [
            {"location": [3.7174, 51.0543], "name": "Start"},
            {"location": [4.3517, 50.8503], "name": "End"},
        ],
    }


@pytest.fixture
def no_config(tmp_path, monkeypatch):
    """Ensure no config files or API environment variables are picked up."""
    missing = tmp_path / "nonexistent" / "route-speed.json"
    monkeypatch.setattr(solvice, "CONFIG_PATH", missing)
    monkeypatch.setattr(solvice, "LOCAL_CONFIG_PATH", missing)
    monkeypatch.delenv("SOLVICE_API_KEY", raising=False)
    monkeypatch.delenv("SOLVICE_BASE_URL", raising=False)


@pytest.fixture
def step_route_payload():
    """Two legs with step-level detail: 1 km at 36 km/h, then 2 km at 72 km/h."""
    return make_response([
        {
            "distance": 1000.0,
            "duration": 100.0,
            "steps": [
                {"distance": 400.0, "duration": 40.0, "geometry": "_p~iF~ps|U", "name": "Main St"},
                {"distance": 600.0, "duration": 60.0, "geometry": "_ulLnnqC"},
            ],
        },
        {
            "distance": 2000.0,
            "duration": 100.0,
            "steps": [
                {"distance": 2000.0, "duration": 100.0},
            ],
        },
    ])


@pytest.fixture
def annotation_route_payload():
    return make_response([
        {
            "distance": 300.0,
            "duration": 30.0,
            "annotation": {
                "distance": [100.0, 100.0, 100.0],
                "duration": [10.0, 5.0, 20.0],
            },
        },
    ])


@pytest.fixture
def leg_route_payload():
    return make_response([{"distance": 1000.0, "duration": 100.0}])


@pytest.fixture
def step_route(step_route_payload):
    return RouteResponse.from_dict(step_route_payload)


@pytest.fixture
def route_payload():
    """Factory for route response payloads: route_payload(legs, ...)."""
    return make_response
