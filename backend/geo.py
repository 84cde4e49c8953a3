"""Coordinate parsing, great-circle distance and polyline encoding."""

import math

from errors import InvalidCoordinateError, PolylineDecodeError
from models import Coordinate, NearbyPoint

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_M = 6371e3
# Approximate length of one degree of latitude.
KM_PER_DEGREE = 111.32


def parse_coordinate(text: str) -> Coordinate:
    """Parses a ``lat,lng`` string.

    Raises:
        InvalidCoordinateError: With ``reason`` set to ``wrong_part_count``,
            ``not_a_number`` or ``out_of_range``. Values are never clamped.
    """
    parts = [p.strip() for p in (text or "").split(",")]
    if len(parts) != 2:
        raise InvalidCoordinateError(
            text, "wrong_part_count", 'Invalid coordinate format. Use "lat,lng".'
        )
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        raise InvalidCoordinateError(
            text, "not_a_number", "Coordinates must be valid numbers."
        ) from None
    if math.isnan(lat) or math.isnan(lng):
        raise InvalidCoordinateError(
            text, "not_a_number", "Coordinates must be valid numbers."
        )
    if not -90 <= lat <= 90:
        raise InvalidCoordinateError(
            text, "out_of_range", "Latitude must be between -90 and 90 degrees."
        )
    if not -180 <= lng <= 180:
        raise InvalidCoordinateError(
            text, "out_of_range", "Longitude must be between -180 and 180 degrees."
        )
    return Coordinate(lat=lat, lng=lng)


def _central_angle(a: Coordinate, b: Coordinate) -> float:
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    )
    # Rounding can push h just past 1 for antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Returns the great-circle distance in kilometres between two points."""
    return EARTH_RADIUS_KM * _central_angle(a, b)


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """Returns the great-circle distance in metres between two points."""
    return EARTH_RADIUS_M * _central_angle(a, b)


def degree_distance(a: Coordinate, b: Coordinate) -> float:
    """Planar distance in degrees; only meaningful for small offsets."""
    return math.hypot(b.lat - a.lat, b.lng - a.lng)


def check_minimum_distance(
    a: Coordinate, b: Coordinate, min_distance_m: float
) -> tuple[float, bool]:
    """Returns (distance_m, sufficient) for a pair of routing endpoints."""
    distance = haversine_m(a, b)
    return distance, distance >= min_distance_m


def adjust_coordinates_for_routing(
    point: Coordinate, adjustment_m: float = 100
) -> list[NearbyPoint]:
    """Suggests points a short distance around ``point`` to retry routing with."""
    lat_offset = adjustment_m / (KM_PER_DEGREE * 1000)
    lng_offset = adjustment_m / (
        KM_PER_DEGREE * 1000 * max(math.cos(math.radians(point.lat)), 1e-6)
    )
    half = adjustment_m / 2
    offsets = [
        (lat_offset, 0.0, f"{adjustment_m:.0f}m north"),
        (-lat_offset, 0.0, f"{adjustment_m:.0f}m south"),
        (0.0, lng_offset, f"{adjustment_m:.0f}m east"),
        (0.0, -lng_offset, f"{adjustment_m:.0f}m west"),
        (lat_offset / 2, lng_offset / 2, f"{half:.0f}m northeast"),
        (-lat_offset / 2, -lng_offset / 2, f"{half:.0f}m southwest"),
    ]
    return [
        NearbyPoint(lat=point.lat + dlat, lng=point.lng + dlng, description=desc)
        for dlat, dlng, desc in offsets
    ]


def _decode_value(encoded: str, index: int) -> tuple[int, int]:
    shift = 0
    value = 0
    while True:
        if index >= len(encoded):
            raise PolylineDecodeError(
                f"Polyline truncated at offset {index} of {len(encoded)}."
            )
        b = ord(encoded[index]) - 63
        index += 1
        value |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            break
    delta = ~(value >> 1) if (value & 1) else (value >> 1)
    return delta, index


def decode_polyline(encoded: str) -> list[tuple[float, float]]:
    """Decodes a Google-encoded polyline string to a list of (lat, lng) points.

    Implements the standard polyline encoding algorithm (precision 5).
    See: https://developers.google.com/maps/documentation/utilities/polylinealgorithm

    Raises:
        PolylineDecodeError: If the string ends in the middle of a value.
    """
    result: list[tuple[float, float]] = []
    index = 0
    lat = 0
    lng = 0

    while index < len(encoded):
        dlat, index = _decode_value(encoded, index)
        dlng, index = _decode_value(encoded, index)
        lat += dlat
        lng += dlng
        result.append((lat / 1e5, lng / 1e5))

    return result


def encode_polyline(coordinates: list[tuple[float, float]]) -> str:
    """Encodes a list of (lat, lng) tuples into a Google-encoded polyline."""
    encoded: list[str] = []
    prev_lat = 0
    prev_lng = 0

    for lat, lng in coordinates:
        lat_e5 = round(lat * 1e5)
        lng_e5 = round(lng * 1e5)

        for delta in (lat_e5 - prev_lat, lng_e5 - prev_lng):
            value = ~(delta << 1) if delta < 0 else (delta << 1)
            while value >= 0x20:
                encoded.append(chr((0x20 | (value & 0x1F)) + 63))
                value >>= 5
            encoded.append(chr(value + 63))

        prev_lat = lat_e5
        prev_lng = lng_e5

    return "".join(encoded)
