"""Formatting utilities for display."""

import math


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def format_distance(meters: float | None) -> str:
    """Format meters as "1.5 km"."""
    if not _is_number(meters):
        return "0.0 km"
    return f"{meters / 1000:.1f} km"


def format_duration(seconds: float | None) -> str:
    """Format seconds as "45 min" or "1h 30min"."""
    if not _is_number(seconds):
        return "0 min"
    minutes = int(math.floor(seconds / 60 + 0.5))
    if minutes < 60:
        return f"{minutes} min"
    hours, remaining = divmod(minutes, 60)
    return f"{hours}h {remaining}min"


def format_speed(speed_ms: float | None) -> str:
    """Format a speed in m/s as km/h."""
    if not _is_number(speed_ms):
        return "0.0 km/h"
    return f"{speed_ms * 3.6:.1f} km/h"


def format_coordinates(coordinate) -> str:
    """Format a (lon, lat) pair as "4.3517°, 50.8503°"."""
    if not coordinate or len(coordinate) != 2 or not all(_is_number(c) for c in coordinate):
        return "0.0000°, 0.0000°"
    lon, lat = coordinate
    return f"{lon:.4f}°, {lat:.4f}°"
