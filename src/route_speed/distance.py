"""Distance calculations along decoded route geometry.

The cursor locator uses a flat-earth approximation (degrees scaled by a
constant) rather than Haversine. It is only used to pick the nearest vertex
for a hovered distance, where city and country scale error is acceptable.
"""

from __future__ import annotations
import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from route_speed.models import Coordinate

# Earth's mean radius in meters
EARTH_RADIUS_M = 6_371_000

# Approximate meters per degree for the flat-earth locator
METERS_PER_DEGREE = 111_000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points using Haversine formula.

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(a))

    return EARTH_RADIUS_M * c


def straight_line_distance(coordinates: list[Coordinate]) -> float:
    """Sum of great-circle distances between consecutive (lon, lat) waypoints."""
    total = 0.0
    for (lon1, lat1), (lon2, lat2) in zip(coordinates, coordinates[1:]):
        total += haversine_distance(lat1, lon1, lat2, lon2)
    return total


def planar_distance(a: Coordinate, b: Coordinate) -> float:
    """Flat-earth distance in meters between two (lon, lat) coordinates."""
    dlat = b[1] - a[1]
    dlon = b[0] - a[0]
    return math.sqrt(dlat * dlat + dlon * dlon) * METERS_PER_DEGREE


def cumulative_distances(coordinates: list[Coordinate]) -> list[float]:
    """Cumulative flat-earth distance at each coordinate, starting at 0."""
    if not coordinates:
        return []
    cum_dist = [0.0]
    for i in range(1, len(coordinates)):
        cum_dist.append(cum_dist[-1] + planar_distance(coordinates[i - 1], coordinates[i]))
    return cum_dist


def locate(coordinates: list[Coordinate], target_distance: float) -> Coordinate | None:
    """Return the coordinate whose cumulative distance is closest to target_distance.

    Ties go to the first occurrence. Returns None for an empty sequence.
    """
    if not coordinates:
        return None

    cum_dist = cumulative_distances(coordinates)
    best_index = 0
    best_diff = abs(target_distance - cum_dist[0])
    for i in range(1, len(cum_dist)):
        diff = abs(target_distance - cum_dist[i])
        if diff < best_diff:
            best_diff = diff
            best_index = i
    return coordinates[best_index]
