"""OpenRouteService directions client.

Turns an origin, destination, profile and optional waypoints into a
``DirectionsRoute``: formatted steps plus the decoded full polyline. Provider
errors are raised as ``DirectionsError`` (``NotRoutableError`` for code 2010)
and network failures as ``UpstreamError`` subclasses so callers can decide
what to retry.
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

import geo
from config import Settings
from errors import (
    DirectionsError,
    NotRoutableError,
    PolylineDecodeError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from models import Coordinate, DirectionsRoute, RouteStep

logger = logging.getLogger(__name__)

# Provider error code for "could not find routable point within radius".
NOT_ROUTABLE_CODE: int = 2010

DRIVING_PROFILE: str = "driving-car"


def format_distance(distance_km: float) -> str:
    """Formats a step distance as 'X.XX km', or whole metres below 1 km."""
    if distance_km >= 1:
        return f"{distance_km:.2f} km"
    return f"{distance_km * 1000:.0f} m"


def format_duration(duration_s: float) -> str:
    return f"{round(duration_s / 60)} min"


def with_instruction_prefix(route: DirectionsRoute, prefix: str) -> DirectionsRoute:
    """Returns a copy of ``route`` whose instructions start with ``prefix``."""
    if not prefix:
        return route
    steps = [
        step.model_copy(update={"instruction": prefix + step.instruction})
        for step in route.steps
    ]
    return route.model_copy(update={"steps": steps})


def parse_route(
    route: dict[str, Any], origin: Coordinate, destination: Coordinate
) -> DirectionsRoute:
    """Converts one ORS ``routes[i]`` entry into a ``DirectionsRoute``.

    A malformed geometry string is not fatal: the path degrades to the
    straight origin/destination pair and step coordinates fall back to the
    endpoints.
    """
    encoded = route.get("geometry") or ""
    try:
        points = geo.decode_polyline(encoded) if encoded else []
    except PolylineDecodeError as exc:
        logger.warning("Discarding malformed route geometry: %s", exc)
        points = []
    if not points:
        points = [(origin.lat, origin.lng), (destination.lat, destination.lng)]
    coords = [Coordinate(lat=lat, lng=lng) for lat, lng in points]

    steps: list[RouteStep] = []
    for segment in route.get("segments", []):
        for step in segment.get("steps", []):
            way_points = step.get("way_points") or [0, len(coords) - 1]
            start_idx, end_idx = way_points[0], way_points[1]
            start = coords[start_idx] if start_idx < len(coords) else origin
            end = coords[end_idx] if end_idx < len(coords) else destination
            steps.append(
                RouteStep(
                    instruction=step.get("instruction") or "Continue",
                    distance=format_distance(float(step.get("distance", 0))),
                    duration=format_duration(float(step.get("duration", 0))),
                    start=start,
                    end=end,
                    polyline=coords[start_idx : end_idx + 1],
                )
            )

    return DirectionsRoute(steps=steps, full_polyline=coords)


class OpenRouteServiceClient:
    """Directions gateway backed by the OpenRouteService v2 API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._http = http_client

    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: str,
        avoid_features: Sequence[str] = (),
        waypoints: Sequence[Coordinate] = (),
        *,
        radius_m: float | None = None,
    ) -> DirectionsRoute:
        """Requests a single route through ``waypoints``.

        Raises:
            NotRoutableError: A point is too far from the road network.
            DirectionsError: Any other provider-side failure or empty result.
            UpstreamTimeoutError: The request timed out.
            UpstreamUnavailableError: The provider could not be reached.
        """
        # ORS expects [lng, lat] order.
        coordinates = [
            [c.lng, c.lat] for c in (origin, *waypoints, destination)
        ]
        body: dict[str, Any] = {
            "coordinates": coordinates,
            "format": "json",
            "instructions": True,
            "geometry": True,
            "units": "km",
            "continue_straight": False,
        }
        if radius_m is not None:
            body["radiuses"] = [radius_m] * len(coordinates)
        if avoid_features:
            body["options"] = {"avoid_features": list(avoid_features)}

        url = f"{self._settings.ors_base_url}/v2/directions/{profile}"
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": self._settings.ors_api_key,
        }
        logger.info(
            "ORS request: profile=%s, %d coordinates, radius=%s",
            profile,
            len(coordinates),
            radius_m,
        )

        try:
            resp = await self._http.post(
                url,
                json=body,
                headers=headers,
                timeout=self._settings.directions_timeout_s,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError(f"Directions request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise UpstreamUnavailableError(
                f"Directions provider unreachable: {exc}"
            ) from exc

        if resp.status_code != 200:
            _raise_for_error(resp)

        try:
            data = resp.json()
        except ValueError as exc:
            raise DirectionsError(
                "Malformed directions response", status_code=resp.status_code
            ) from exc
        routes = data.get("routes") if isinstance(data, dict) else None
        if not isinstance(routes, list):
            raise DirectionsError(
                "Malformed directions response", status_code=resp.status_code
            )
        first = routes[0] if routes else None
        if not isinstance(first, dict) or not first.get("segments"):
            raise DirectionsError(
                "No route found in response", status_code=resp.status_code
            )

        try:
            parsed = parse_route(first, origin, destination)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            raise DirectionsError(
                f"Malformed directions response: {exc}", status_code=resp.status_code
            ) from exc
        if not parsed.steps:
            raise DirectionsError(
                "Route contains no steps", status_code=resp.status_code
            )
        return parsed


def _raise_for_error(resp: httpx.Response) -> None:
    """Raises the ``DirectionsError`` matching an ORS error response."""
    code = None
    message = resp.text
    try:
        body = resp.json()
    except ValueError:
        body = {}
    error = body.get("error", {}) if isinstance(body, dict) else {}
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message", message)
    elif error:
        message = str(error)

    if code == NOT_ROUTABLE_CODE:
        raise NotRoutableError(message, code=code, status_code=resp.status_code)
    raise DirectionsError(message, code=code, status_code=resp.status_code)
