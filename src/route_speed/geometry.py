"""Route geometry extraction for the supported geometry formats."""

import json
import logging

from route_speed import polyline
from route_speed.models import Coordinate, RouteResponse, RouteResult, is_valid_coordinate

logger = logging.getLogger(__name__)

PRECISION_BY_FORMAT = {
    "polyline": 5,
    "polyline6": 6,
}


def decode_geometry(geometry, geometries: str = "polyline") -> list[Coordinate]:
    """Decode a single route geometry in the given format.

    GeoJSON geometry is parsed directly (as a JSON string or an already
    parsed mapping); the polyline formats go through the polyline codec.
    Anything unreadable yields an empty list.
    """
    if not geometry:
        return []

    if geometries == "geojson":
        if isinstance(geometry, str):
            try:
                geometry = json.loads(geometry)
            except json.JSONDecodeError:
                logger.debug("Failed to parse GeoJSON geometry")
                return []
        if not isinstance(geometry, dict):
            return []
        coords = geometry.get("coordinates") or []
        # Positions may carry a third altitude value
        if not isinstance(coords, list):
            return []
        if not all(isinstance(c, (list, tuple)) and is_valid_coordinate(c[:2]) for c in coords):
            return []
        return [(c[0], c[1]) for c in coords]

    precision = PRECISION_BY_FORMAT.get(geometries)
    if precision is None:
        raise ValueError(f"Unknown geometry format: {geometries}")
    if not isinstance(geometry, str):
        return []
    return polyline.decode(geometry, precision)


def route_coordinates(route: RouteResult, geometries: str = "polyline") -> list[Coordinate]:
    return decode_geometry(route.geometry, geometries)


def extract_route_coordinates(response: RouteResponse | None, geometries: str = "polyline") -> list[Coordinate]:
    """Concatenate the decoded geometry of every route in a response."""
    if response is None:
        return []
    coordinates: list[Coordinate] = []
    for route in response.routes:
        coordinates.extend(route_coordinates(route, geometries))
    return coordinates


def route_bounds(coordinates: list[Coordinate]) -> tuple[Coordinate, Coordinate] | None:
    """Bounding box as ((min_lon, min_lat), (max_lon, max_lat)), or None if empty."""
    if not coordinates:
        return None
    lons = [lon for lon, _ in coordinates]
    lats = [lat for _, lat in coordinates]
    return (min(lons), min(lats)), (max(lons), max(lats))
