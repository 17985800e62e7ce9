"""Encoded polyline codec.

Paths are stored as alternating latitude/longitude deltas, each written as a
zig-zag encoded varint in 5-bit chunks offset into printable ASCII. Decoded
coordinates are returned as (lon, lat) to match GeoJSON ordering.
"""

import logging

from route_speed.models import Coordinate

logger = logging.getLogger(__name__)

SUPPORTED_PRECISIONS = (5, 6)

_ASCII_OFFSET = 63
_CHUNK_MASK = 0x1F
_CONTINUATION = 0x20


class _Truncated(Exception):
    pass


def _read_varint(encoded: str, index: int) -> tuple[int, int]:
    """Read one zig-zag varint starting at index.

    Returns:
        (signed value, index of the next unread character)
    """
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise _Truncated()
        chunk = ord(encoded[index]) - _ASCII_OFFSET
        index += 1
        if chunk < 0:
            raise ValueError(f"Invalid polyline character {encoded[index - 1]!r}")
        result |= (chunk & _CHUNK_MASK) << shift
        shift += 5
        if chunk < _CONTINUATION:
            break
    if result & 1:
        return ~(result >> 1), index
    return result >> 1, index


def decode(encoded: str, precision: int = 5) -> list[Coordinate]:
    """Decode an encoded polyline into (lon, lat) coordinates.

    A corrupted string, or one decoded at the wrong precision, yields an
    empty list rather than partially wrong geometry: decoding stops as soon
    as a coordinate falls outside geographic bounds. Callers treat an empty
    result as "no geometry available".
    """
    if not encoded or not isinstance(encoded, str) or precision not in SUPPORTED_PRECISIONS:
        return []

    factor = 10 ** precision
    coordinates: list[Coordinate] = []
    index = 0
    lat = 0
    lon = 0

    try:
        while index < len(encoded):
            delta_lat, index = _read_varint(encoded, index)
            delta_lon, index = _read_varint(encoded, index)
            lat += delta_lat
            lon += delta_lon

            decoded_lon = lon / factor
            decoded_lat = lat / factor
            if not (-180 <= decoded_lon <= 180 and -90 <= decoded_lat <= 90):
                logger.debug("Polyline decoded out of bounds at offset %d", index)
                return []
            coordinates.append((decoded_lon, decoded_lat))
    except _Truncated:
        logger.debug("Polyline truncated at offset %d", index)
        return []
    except (ValueError, TypeError, OverflowError) as e:
        logger.debug("Failed to decode polyline: %s", e)
        return []

    return coordinates


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []
    while value >= _CONTINUATION:
        chunks.append(chr((_CONTINUATION | (value & _CHUNK_MASK)) + _ASCII_OFFSET))
        value >>= 5
    chunks.append(chr(value + _ASCII_OFFSET))
    return "".join(chunks)


def encode(coordinates: list[Coordinate], precision: int = 5) -> str:
    """Encode (lon, lat) coordinates as a polyline string."""
    if not coordinates:
        return ""
    if precision not in SUPPORTED_PRECISIONS:
        raise ValueError(f"Unsupported polyline precision: {precision}")

    factor = 10 ** precision
    parts = []
    prev_lat = 0
    prev_lon = 0
    for lon, lat in coordinates:
        lat_i = round(lat * factor)
        lon_i = round(lon * factor)
        parts.append(_encode_value(lat_i - prev_lat))
        parts.append(_encode_value(lon_i - prev_lon))
        prev_lat = lat_i
        prev_lon = lon_i
    return "".join(parts)
