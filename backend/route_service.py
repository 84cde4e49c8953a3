"""Clean-air route recommendation pipeline.

Entry point ``plan`` dispatches a ``RouteRequest`` to one of three flows:

  1.  Diversified routes: short and medium corridors run every applicable
      strategy, score each candidate by AQI, prune near-duplicates and rank.
  2.  Fallback: long corridors, or diversification that produced nothing,
      request three fixed-profile routes instead.
  3.  Circular: a round trip from the origin, in three variants.

Failures inside a single strategy, sample point or street lookup degrade that
piece only. When every route attempt fails the response carries an ``error``
and ``suggestions`` instead of raising.
"""

import asyncio
import logging
import random
from collections.abc import Sequence

import httpx

import air_quality
import geo
import ranking
import strategies
import waypoints
from air_quality import AQIProvider, WaqiClient
from config import FALLBACK_SEARCH_RADIUS_M, MIN_ROUTING_DISTANCE_M, Settings
from directions import DRIVING_PROFILE, OpenRouteServiceClient, with_instruction_prefix
from errors import NoRouteFoundError, RouteError
from geocoding import GoogleGeocoder, StreetNamer
from models import (
    Coordinate,
    DirectionsRoute,
    RouteOption,
    RouteRequest,
    RouteResponse,
    RouteStep,
    Strategy,
)
from strategies import DirectionsGateway

logger = logging.getLogger(__name__)

# Fixed profiles used when diversification is skipped or fails.
FALLBACK_PROFILES: dict[str, tuple[str, ...]] = {
    "cycling-regular": ("highways",),
    "cycling-road": ("steps",),
    DRIVING_PROFILE: (),
}
FALLBACK_PREFIXES: dict[str, str] = {
    "cycling-road": "[Road] ",
    DRIVING_PROFILE: "[Driving] ",
}

# (waypoint layout, display label, directions profile)
CIRCULAR_VARIANTS: tuple[tuple[str, str, str], ...] = (
    ("duration", "Duration-based", "cycling-regular"),
    ("scenic", "Scenic Route", "cycling-regular"),
    ("fitness", "Fitness Route", "cycling-mountain"),
)

NO_ROUTE_ERROR = "Unable to find any routes between the specified locations."
NO_ROUTE_SUGGESTIONS = [
    "The coordinates may be too far from roads",
    "The distance may be too large for available routing profiles",
    "Try selecting points closer to main roads or intersections",
    "Consider if the locations are reachable by the selected transport mode",
]
UNEXPECTED_ERROR = "Unable to generate route recommendations"
UNEXPECTED_SUGGESTIONS = [
    "Check your internet connection",
    "Verify that the coordinates are valid",
    "Try again with different origin/destination points",
]


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


async def plan(
    request: RouteRequest,
    *,
    settings: Settings | None = None,
    directions: DirectionsGateway | None = None,
    aqi_provider: AQIProvider | None = None,
    geocoder: StreetNamer | None = None,
    rng: random.Random | None = None,
) -> RouteResponse:
    """Recommends routes for ``request``, ranked by average AQI.

    Args:
        request: Origin, destination and optional round-trip parameters.
        settings: Configuration; read from the environment if omitted.
        directions: Optional directions gateway. An OpenRouteService client
            is created from ``settings`` if omitted.
        aqi_provider: Optional AQI provider. A WAQI client is created from
            ``settings`` if omitted.
        geocoder: Optional street-name provider. A Google geocoder is
            created from ``settings`` if omitted.
        rng: Random source for synthetic AQI values.

    Returns:
        A ``RouteResponse``. When no route can be found it carries ``error``
        and ``suggestions`` rather than options.

    Raises:
        InvalidCoordinateError: If ``from`` or ``to`` is malformed. No
            provider is contacted in that case.
    """
    origin = geo.parse_coordinate(request.from_)
    destination = geo.parse_coordinate(request.to)
    settings = settings or Settings.from_env()

    async with httpx.AsyncClient() as http:
        pipeline = RoutePipeline(
            settings,
            directions=directions or OpenRouteServiceClient(settings, http),
            aqi_provider=aqi_provider or WaqiClient(settings, http),
            geocoder=geocoder or GoogleGeocoder(settings),
            rng=rng or random.Random(settings.random_seed),
        )
        try:
            if request.is_circular or origin == destination:
                return await pipeline.circular(origin, request)
            return await pipeline.recommend(origin, destination)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Route planning failed")
            return RouteResponse(
                error=f"{UNEXPECTED_ERROR}: {exc}",
                suggestions=list(UNEXPECTED_SUGGESTIONS),
            )


class RoutePipeline:
    """One request's worth of collaborators and the flows that use them."""

    def __init__(
        self,
        settings: Settings,
        *,
        directions: DirectionsGateway,
        aqi_provider: AQIProvider,
        geocoder: StreetNamer,
        rng: random.Random,
    ):
        self.settings = settings
        self.directions = directions
        self.aqi_provider = aqi_provider
        self.geocoder = geocoder
        self.rng = rng

    # -- Diversified routes -------------------------------------------------

    async def recommend(
        self, origin: Coordinate, destination: Coordinate
    ) -> RouteResponse:
        distance_km = geo.haversine_km(origin, destination)
        logger.info(
            "Recommending routes %s -> %s (%.2fkm)", origin, destination, distance_km
        )

        if distance_km > self.settings.fallback_distance_km:
            logger.info(
                "Distance %.2fkm too large for cycling strategies, using fallback",
                distance_km,
            )
            return await self.fallback(origin, destination)

        try:
            run = await strategies.run_strategies(
                origin, destination, self.directions, self.settings
            )
        except NoRouteFoundError as exc:
            logger.info("Route diversification failed: %s, using fallback", exc)
            return await self.fallback(origin, destination)
        except Exception:  # noqa: BLE001
            logger.exception("Route diversification crashed, using fallback")
            return await self.fallback(origin, destination)

        options = await asyncio.gather(
            *(
                self.score(c.steps, c.full_polyline, strategy=c.strategy)
                for c in run.candidates
            )
        )
        response = ranking.assemble(options, self.settings)

        distance_m, sufficient = geo.check_minimum_distance(
            origin, destination, MIN_ROUTING_DISTANCE_M
        )
        if not sufficient and response.warning is None:
            response = response.model_copy(
                update={
                    "warning": (
                        f"Points are too close ({distance_m:.0f}m). Minimum "
                        f"distance: {MIN_ROUTING_DISTANCE_M:.0f}m"
                    )
                }
            )
        return response

    # -- Fallback -----------------------------------------------------------

    async def fallback(
        self, origin: Coordinate, destination: Coordinate
    ) -> RouteResponse:
        """Scores one plain route per fixed profile, without waypoints."""
        logger.info("Using fallback profiles: %s", ", ".join(FALLBACK_PROFILES))
        results = await asyncio.gather(
            *(
                self._fallback_route(origin, destination, profile)
                for profile in FALLBACK_PROFILES
            )
        )
        valid = [
            (profile, route)
            for profile, route in zip(FALLBACK_PROFILES, results)
            if route is not None
        ]
        if not valid:
            return self.no_route(destination)

        options = await asyncio.gather(
            *(
                self.score(route.steps, route.full_polyline, profile=profile)
                for profile, route in valid
            )
        )
        return ranking.assemble(options, self.settings, fallback_used=True)

    async def _fallback_route(
        self, origin: Coordinate, destination: Coordinate, profile: str
    ) -> DirectionsRoute | None:
        try:
            route = await strategies.fetch_route(
                self.directions,
                origin,
                destination,
                profile,
                FALLBACK_PROFILES[profile],
                (),
                FALLBACK_SEARCH_RADIUS_M,
                self.settings,
            )
        except RouteError as exc:
            logger.warning("Fallback profile %s failed: %s", profile, exc)
            return None
        return with_instruction_prefix(route, FALLBACK_PREFIXES.get(profile, ""))

    # -- Circular -----------------------------------------------------------

    async def circular(
        self, origin: Coordinate, request: RouteRequest
    ) -> RouteResponse:
        """Builds and ranks the round-trip variants starting at ``origin``."""
        logger.info(
            "Circular route from %s (duration=%s, distance=%s)",
            origin,
            request.duration,
            request.distance,
        )
        results = await asyncio.gather(
            *(
                self._circular_variant(origin, layout, label, profile, request)
                for layout, label, profile in CIRCULAR_VARIANTS
            )
        )
        options = [option for option in results if option is not None]
        if not options:
            return self.no_route(origin)

        response = ranking.assemble(
            options, self.settings, dedupe=False, is_circular=True
        )
        return response.model_copy(
            update={
                "requested_duration": request.duration,
                "requested_distance": request.distance,
            }
        )

    async def _circular_variant(
        self,
        origin: Coordinate,
        layout: str,
        label: str,
        profile: str,
        request: RouteRequest,
    ) -> RouteOption | None:
        ring = waypoints.generate_circular_waypoints(
            origin,
            layout,
            distance_km=request.distance,
            duration_min=request.duration,
        )
        try:
            route = await strategies.fetch_route(
                self.directions,
                origin,
                origin,
                profile,
                (),
                ring,
                FALLBACK_SEARCH_RADIUS_M,
                self.settings,
            )
        except RouteError as exc:
            logger.warning("Circular variant %s failed: %s", label, exc)
            return None
        return await self.score(
            route.steps, route.full_polyline, profile=profile, variant=label
        )

    # -- Shared -------------------------------------------------------------

    async def score(
        self,
        steps: Sequence[RouteStep],
        full_polyline: Sequence[Coordinate],
        *,
        strategy: Strategy | None = None,
        profile: str | None = None,
        variant: str | None = None,
    ) -> RouteOption:
        """Fetches AQI and endpoint street names for a route and scores it."""
        points = [step.start for step in steps]
        aqi_values, from_name, to_name = await asyncio.gather(
            air_quality.get_aqi_for_route(
                points, self.aqi_provider, self.settings, self.rng
            ),
            self._street_name(steps[0].start),
            self._street_name(steps[-1].end),
        )
        return ranking.build_option(
            steps,
            aqi_values,
            from_name,
            to_name,
            self.settings,
            full_polyline=full_polyline,
            strategy=strategy,
            profile=profile,
            variant=variant,
        )

    async def _street_name(self, point: Coordinate) -> str:
        try:
            return await self.geocoder.street_name(point)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Street name lookup failed for %s: %s", point, exc)
            return str(point)

    def no_route(self, point: Coordinate) -> RouteResponse:
        logger.warning("No route found near %s", point)
        return RouteResponse(
            error=NO_ROUTE_ERROR,
            suggestions=list(NO_ROUTE_SUGGESTIONS),
            nearby_points=geo.adjust_coordinates_for_routing(point),
        )
