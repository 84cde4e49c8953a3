"""Street-name lookups for route endpoints via Google reverse geocoding.

Names are only used for display, so every failure degrades to the
coordinate's own ``lat,lng`` string.
"""

import asyncio
import logging
from typing import Protocol

import googlemaps
import googlemaps.exceptions

from config import Settings
from models import Coordinate

logger = logging.getLogger(__name__)


class StreetNamer(Protocol):
    async def street_name(self, point: Coordinate) -> str: ...


class GoogleGeocoder:
    """Reverse geocoder wrapping a ``googlemaps.Client``.

    The googlemaps client is synchronous, so lookups run in a worker thread
    and several of them can be awaited concurrently.
    """

    def __init__(self, settings: Settings, maps_client: googlemaps.Client | None = None):
        self._settings = settings
        self._maps = maps_client
        if self._maps is None and settings.google_maps_api_key:
            self._maps = googlemaps.Client(key=settings.google_maps_api_key)

    async def street_name(self, point: Coordinate) -> str:
        """Returns the street at ``point``, or ``"lat,lng"`` if unresolved."""
        if self._maps is None:
            return str(point)
        try:
            results = await asyncio.wait_for(
                asyncio.to_thread(self._maps.reverse_geocode, (point.lat, point.lng)),
                timeout=self._settings.geocode_timeout_s,
            )
        except (
            googlemaps.exceptions.ApiError,
            googlemaps.exceptions.HTTPError,
            googlemaps.exceptions.Timeout,
            googlemaps.exceptions.TransportError,
            asyncio.TimeoutError,
        ) as exc:
            logger.warning("Reverse geocode failed for %s: %s", point, exc)
            return str(point)
        return street_from_results(results) or str(point)


def street_from_results(results: list[dict]) -> str | None:
    """Picks the ``route`` component of the first result, else its address."""
    if not results:
        return None
    first = results[0]
    for component in first.get("address_components", []):
        if "route" in component.get("types", []):
            return component.get("long_name")
    return first.get("formatted_address")
