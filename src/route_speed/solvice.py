"""Solvice routing API client."""

import asyncio
import json
import logging
import os
from pathlib import Path

import requests

from route_speed.models import Coordinate, RouteConfig, RouteRequest, RouteResponse, is_valid_coordinate

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "route-speed"
CONFIG_PATH = CONFIG_DIR / "route-speed.json"
LOCAL_CONFIG_PATH = Path("route-speed.json")

DEFAULT_BASE_URL = "https://routing.solvice.io"
DEFAULT_TIMEOUT = 30  # seconds

NETWORK_ERROR_MESSAGE = "Network error - please check your connection"
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
NO_ROUTES_MESSAGE = "No routes found for the given coordinates"


class RoutingError(Exception):
    """Base class for route calculation failures."""


class ValidationError(RoutingError, ValueError):
    """Request rejected before any network call."""


class NetworkError(RoutingError):
    """The routing service could not be reached."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE):
        super().__init__(message)


class UpstreamError(RoutingError):
    """The routing service answered with a non-success status."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        self.message = message
        super().__init__(message)


class RateLimitError(UpstreamError):
    def __init__(self):
        super().__init__(RATE_LIMIT_MESSAGE, status=429)


class NoRouteFound(UpstreamError):
    """A structurally valid response that holds no usable route."""

    def __init__(self, message: str = NO_ROUTES_MESSAGE, status: int | None = None):
        super().__init__(message, status=status)


class InvalidResponseError(RoutingError):
    """The response body could not be read as a route response."""


def _load_config() -> dict:
    """Load configuration from config files.

    Merges config from global and local files:
    1. ~/.config/route-speed/route-speed.json (global, loaded first)
    2. ./route-speed.json (local, overrides global)

    Returns:
        Dict with merged config values, empty dict if no files exist.
    """
    config = {}
    for config_path in [CONFIG_PATH, LOCAL_CONFIG_PATH]:
        if config_path.exists():
            try:
                with config_path.open() as f:
                    config.update(json.load(f))
            except (json.JSONDecodeError, OSError):
                continue
    return config


def _get_base_url() -> str:
    config = _load_config()
    base = config.get("solvice_base_url") or os.environ.get("SOLVICE_BASE_URL") or DEFAULT_BASE_URL
    return base.rstrip("/")


def _get_timeout() -> float:
    config = _load_config()
    return float(config.get("request_timeout", DEFAULT_TIMEOUT))


def _get_auth_headers() -> dict[str, str]:
    """Get authentication headers from config file or environment variables.

    Config file format:
        {
            "solvice_api_key": "your-api-key"
        }

    Environment variable:
        SOLVICE_API_KEY

    Returns:
        Dict with the Authorization header if a key is set, empty dict otherwise.
    """
    config = _load_config()
    api_key = config.get("solvice_api_key") or os.environ.get("SOLVICE_API_KEY")
    if api_key:
        return {"Authorization": api_key}
    return {}


def is_configured() -> bool:
    """Whether an API key is available for the routing service."""
    return bool(_get_auth_headers())


def build_request(coordinates: list[Coordinate], config: RouteConfig | None = None) -> RouteRequest:
    """Validate coordinates and build an immutable RouteRequest.

    Raises:
        ValidationError: If fewer than 2 coordinates are given or one is invalid.
    """
    if not coordinates or len(coordinates) < 2:
        raise ValidationError("At least 2 coordinates are required")
    for i, coord in enumerate(coordinates):
        if not is_valid_coordinate(coord):
            raise ValidationError(f"Invalid coordinates at index {i}")
    return RouteRequest(coordinates=tuple(tuple(c) for c in coordinates), config=config or RouteConfig())


def _error_message(response: requests.Response) -> str:
    fallback = f"Route calculation failed: {response.status_code} {response.reason or ''}".rstrip()
    try:
        data = response.json()
    except ValueError:
        return fallback
    if isinstance(data, dict):
        return data.get("error") or data.get("message") or fallback
    return fallback


def parse_route_response(response: requests.Response) -> RouteResponse:
    """Turn an HTTP response into a RouteResponse.

    Raises:
        RateLimitError: On HTTP 429.
        UpstreamError: On any other non-success status.
        InvalidResponseError: If the body is not a JSON object.
        NoRouteFound: If the response holds no routes.
    """
    if not response.ok:
        if response.status_code == 429:
            raise RateLimitError()
        if response.status_code == 404:
            raise NoRouteFound(_error_message(response), status=404)
        raise UpstreamError(_error_message(response), status=response.status_code)

    try:
        data = response.json()
    except ValueError as e:
        raise InvalidResponseError("Failed to parse route response - invalid JSON") from e

    if not isinstance(data, dict):
        raise InvalidResponseError("Invalid route response format")

    routes = data.get("routes")
    if not isinstance(routes, list) or not routes:
        raise NoRouteFound()

    return RouteResponse.from_dict(data)


def fetch_route(request: RouteRequest, session: requests.Session | None = None) -> RouteResponse:
    """Calculate a route with the Solvice routing API.

    Raises:
        NetworkError: If the service is unreachable or the request times out.
        UpstreamError: If the service returns a non-success status.
        InvalidResponseError: If the response cannot be parsed.
    """
    url = f"{_get_base_url()}/route"
    headers = {"Content-Type": "application/json", **_get_auth_headers()}
    http = session or requests

    logger.debug("POST %s with %d coordinates", url, len(request.coordinates))
    try:
        response = http.post(url, json=request.to_payload(), headers=headers, timeout=_get_timeout())
    except requests.RequestException as e:
        logger.warning("Routing request failed: %s", e)
        raise NetworkError() from e

    if not response.ok:
        logger.warning("Routing API error: status=%s body=%s", response.status_code, response.text[:200])
    return parse_route_response(response)


async def fetch_route_async(request: RouteRequest) -> RouteResponse:
    """Run fetch_route without blocking the event loop."""
    return await asyncio.to_thread(fetch_route, request)
