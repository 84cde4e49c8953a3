"""Synthetic waypoints that steer the directions provider onto different roads.

A single perturbed midpoint is enough to push the provider onto a materially
different path while staying inside the corridor between the two endpoints.
Circular routes use a ring of points around the origin instead.
"""

import math

import geo
from config import CIRCULAR_DEFAULT_RADIUS_KM, CIRCULAR_SPEED_KMH
from models import Coordinate, Strategy

# Offset bounds in degrees: 20% of the corridor, clamped to this range.
OFFSET_FRACTION: float = 0.2
MIN_OFFSET_DEG: float = 0.005
MAX_OFFSET_DEG: float = 0.05
# The scenic detour is a gentler diagonal nudge.
SCENIC_OFFSET_FACTOR: float = 0.3

CIRCULAR_SCENIC_POINTS: int = 8
CIRCULAR_DEFAULT_POINTS: int = 6


def waypoint_offset(origin: Coordinate, destination: Coordinate) -> float:
    """Returns the perturbation size in degrees for an origin/destination pair."""
    raw = OFFSET_FRACTION * geo.degree_distance(origin, destination)
    return min(max(raw, MIN_OFFSET_DEG), MAX_OFFSET_DEG)


def generate_waypoints(
    origin: Coordinate, destination: Coordinate, strategy: Strategy
) -> list[Coordinate]:
    """Returns the intermediate waypoints for ``strategy``.

    Direct and fast routes get none; every other strategy gets exactly one
    point shifted away from the corridor midpoint.
    """
    mid_lat = (origin.lat + destination.lat) / 2
    mid_lng = (origin.lng + destination.lng) / 2
    offset = waypoint_offset(origin, destination)

    if strategy is Strategy.NORTHERN:
        return [Coordinate(lat=mid_lat + offset, lng=mid_lng)]
    if strategy is Strategy.SOUTHERN:
        return [Coordinate(lat=mid_lat - offset, lng=mid_lng)]
    if strategy is Strategy.EASTERN:
        return [Coordinate(lat=mid_lat, lng=mid_lng + offset)]
    if strategy is Strategy.WESTERN:
        return [Coordinate(lat=mid_lat, lng=mid_lng - offset)]
    if strategy is Strategy.SCENIC:
        nudge = offset * SCENIC_OFFSET_FACTOR
        return [Coordinate(lat=mid_lat + nudge, lng=mid_lng - nudge)]
    return []


def circular_radius_km(
    distance_km: float | None = None, duration_min: float | None = None
) -> float:
    """Radius of a loop whose circumference matches the requested size."""
    if distance_km:
        return distance_km / (2 * math.pi)
    if duration_min:
        return (duration_min / 60) * CIRCULAR_SPEED_KMH / (2 * math.pi)
    return CIRCULAR_DEFAULT_RADIUS_KM


def generate_circular_waypoints(
    center: Coordinate,
    variant: str,
    *,
    distance_km: float | None = None,
    duration_min: float | None = None,
) -> list[Coordinate]:
    """Returns a ring of waypoints around ``center`` for a round trip.

    Scenic loops use more points so the provider follows the ring more
    closely.
    """
    radius_km = circular_radius_km(distance_km, duration_min)
    lat_radius = radius_km / geo.KM_PER_DEGREE
    lng_radius = radius_km / (
        geo.KM_PER_DEGREE * max(math.cos(math.radians(center.lat)), 1e-6)
    )
    count = CIRCULAR_SCENIC_POINTS if variant == "scenic" else CIRCULAR_DEFAULT_POINTS

    points = []
    for i in range(count):
        angle = 2 * math.pi * i / count
        points.append(
            Coordinate(
                lat=center.lat + lat_radius * math.cos(angle),
                lng=center.lng + lng_radius * math.sin(angle),
            )
        )
    return points
