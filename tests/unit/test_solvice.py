import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from route_speed import solvice
from route_speed.models import RouteConfig, RouteResponse


def _http_response(status=200, payload=None, reason="OK", text=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.reason = reason
    if isinstance(payload, Exception):
        response.json.side_effect = payload
        response.text = text or ""
    else:
        response.json.return_value = payload
        response.text = text if text is not None else json.dumps(payload)
    return response


@pytest.fixture
def request_obj():
    return solvice.build_request([(3.7174, 51.0543), (4.3517, 50.8503)], RouteConfig(vehicle_type="CAR"))


class TestLoadConfig:
    def test_no_files(self, no_config):
        assert solvice._load_config() == {}

    def test_local_overrides_global(self, tmp_path, monkeypatch):
        global_path = tmp_path / "global.json"
        local_path = tmp_path / "local.json"
        global_path.write_text(json.dumps({"solvice_api_key": "global-key", "request_timeout": 10}))
        local_path.write_text(json.dumps({"solvice_api_key": "local-key"}))
        monkeypatch.setattr(solvice, "CONFIG_PATH", global_path)
        monkeypatch.setattr(solvice, "LOCAL_CONFIG_PATH", local_path)

        config = solvice._load_config()
        assert config == {"solvice_api_key": "local-key", "request_timeout": 10}

    def test_invalid_json_ignored(self, tmp_path, monkeypatch):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        monkeypatch.setattr(solvice, "CONFIG_PATH", bad)
        monkeypatch.setattr(solvice, "LOCAL_CONFIG_PATH", tmp_path / "missing.json")
        assert solvice._load_config() == {}


class TestAuthHeaders:
    def test_from_env(self, no_config, monkeypatch):
        monkeypatch.setenv("SOLVICE_API_KEY", "env-key")
        assert solvice._get_auth_headers() == {"Authorization": "env-key"}
        assert solvice.is_configured()

    def test_missing(self, no_config):
        assert solvice._get_auth_headers() == {}
        assert not solvice.is_configured()

    def test_base_url_from_env(self, no_config, monkeypatch):
        monkeypatch.setenv("SOLVICE_BASE_URL", "http://localhost:8080/")
        assert solvice._get_base_url() == "http://localhost:8080"

    def test_default_base_url(self, no_config):
        assert solvice._get_base_url() == solvice.DEFAULT_BASE_URL


class TestBuildRequest:
    def test_too_few_coordinates(self):
        with pytest.raises(solvice.ValidationError, match="At least 2 coordinates"):
            solvice.build_request([(3.7, 51.0)])

    def test_none(self):
        with pytest.raises(solvice.ValidationError):
            solvice.build_request(None)

    def test_invalid_coordinate(self):
        with pytest.raises(solvice.ValidationError, match="index 0"):
            solvice.build_request([(300.0, 51.0), (3.7, 51.0)])

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            solvice.build_request([])


class TestParseRouteResponse:
    def test_success(self, step_route_payload):
        result = solvice.parse_route_response(_http_response(payload=step_route_payload))
        assert isinstance(result, RouteResponse)
        assert result.primary.distance == 3000.0

    def test_rate_limited(self):
        with pytest.raises(solvice.RateLimitError, match="Rate limit exceeded"):
            solvice.parse_route_response(_http_response(status=429, payload={}))

    def test_upstream_error_message(self):
        response = _http_response(status=400, payload={"error": "Invalid vehicle"}, reason="Bad Request")
        with pytest.raises(solvice.UpstreamError, match="Invalid vehicle") as exc_info:
            solvice.parse_route_response(response)
        assert exc_info.value.status == 400

    def test_upstream_error_fallback_message(self):
        response = _http_response(status=500, payload=ValueError("no json"), reason="Internal Server Error")
        with pytest.raises(solvice.UpstreamError, match="Route calculation failed: 500 Internal Server Error"):
            solvice.parse_route_response(response)

    def test_not_found_status(self):
        response = _http_response(status=404, payload={"error": "No routes found"}, reason="Not Found")
        with pytest.raises(solvice.NoRouteFound):
            solvice.parse_route_response(response)

    def test_invalid_json(self):
        with pytest.raises(solvice.InvalidResponseError, match="invalid JSON"):
            solvice.parse_route_response(_http_response(payload=ValueError("bad")))

    def test_not_an_object(self):
        with pytest.raises(solvice.InvalidResponseError, match="Invalid route response format"):
            solvice.parse_route_response(_http_response(payload=["routes"]))

    def test_empty_routes(self):
        with pytest.raises(solvice.NoRouteFound, match="No routes found for the given coordinates"):
            solvice.parse_route_response(_http_response(payload={"routes": [], "waypoints": []}))


class TestFetchRoute:
    def test_posts_payload(self, no_config, monkeypatch, request_obj, step_route_payload):
        monkeypatch.setenv("SOLVICE_API_KEY", "secret")
        with patch("route_speed.solvice.requests.post") as mock_post:
            mock_post.return_value = _http_response(payload=step_route_payload)
            result = solvice.fetch_route(request_obj)

        assert result.primary.distance == 3000.0
        args, kwargs = mock_post.call_args
        assert args[0] == "https://routing.solvice.io/route"
        assert kwargs["json"]["coordinates"] == [[3.7174, 51.0543], [4.3517, 50.8503]]
        assert kwargs["json"]["vehicleType"] == "CAR"
        assert kwargs["headers"]["Authorization"] == "secret"
        assert kwargs["timeout"] == solvice.DEFAULT_TIMEOUT

    def test_uses_session(self, no_config, request_obj, step_route_payload):
        session = MagicMock()
        session.post.return_value = _http_response(payload=step_route_payload)
        solvice.fetch_route(request_obj, session=session)
        session.post.assert_called_once()

    def test_connection_error(self, no_config, request_obj):
        with patch("route_speed.solvice.requests.post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(solvice.NetworkError, match="Network error - please check your connection"):
                solvice.fetch_route(request_obj)

    def test_timeout(self, no_config, request_obj):
        with patch("route_speed.solvice.requests.post", side_effect=requests.Timeout("slow")):
            with pytest.raises(solvice.NetworkError):
                solvice.fetch_route(request_obj)

    def test_async_wrapper(self, no_config, request_obj, step_route_payload):
        with patch("route_speed.solvice.requests.post") as mock_post:
            mock_post.return_value = _http_response(payload=step_route_payload)
            result = asyncio.run(solvice.fetch_route_async(request_obj))
        assert result.primary.distance == 3000.0
