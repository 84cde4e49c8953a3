"""Runs the route diversification strategies against the directions provider.

Strategies are tried one at a time with a short pause between calls so the
provider's rate limit is respected. A failed strategy is recorded and
skipped; only a run where every strategy fails is an error.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

import geo
import waypoints
from config import (
    MAX_SEARCH_RADIUS_M,
    MIN_SEARCH_RADIUS_M,
    RETRY_SEARCH_RADIUS_M,
    Settings,
)
from directions import DRIVING_PROFILE, with_instruction_prefix
from errors import (
    DirectionsError,
    NoRouteFoundError,
    NotRoutableError,
    RouteError,
    UpstreamTimeoutError,
)
from models import (
    CandidateRoute,
    Coordinate,
    DirectionsRoute,
    Strategy,
    StrategyFailure,
    StrategyRun,
)

logger = logging.getLogger(__name__)

# Profile and avoided road features per strategy. Each combination should
# stay distinct so the provider has a reason to pick a different path.
STRATEGY_OPTIONS: dict[Strategy, tuple[str, tuple[str, ...]]] = {
    Strategy.DIRECT: ("cycling-regular", ("highways",)),
    Strategy.NORTHERN: ("cycling-regular", ("highways", "steps")),
    Strategy.SOUTHERN: ("cycling-road", ("steps",)),
    Strategy.EASTERN: ("cycling-regular", ("highways", "ferries")),
    Strategy.WESTERN: ("cycling-road", ("ferries",)),
    Strategy.SCENIC: ("cycling-regular", ("highways", "tollways")),
    Strategy.FAST: (DRIVING_PROFILE, ()),
}

INSTRUCTION_PREFIXES: dict[Strategy, str] = {
    Strategy.DIRECT: "",
    Strategy.NORTHERN: "[Northern] ",
    Strategy.SOUTHERN: "[Southern] ",
    Strategy.EASTERN: "[Eastern] ",
    Strategy.WESTERN: "[Western] ",
    Strategy.SCENIC: "[Scenic] ",
    Strategy.FAST: "[Fast] ",
}

DRIVING_RETRY_PREFIX = "(Driving route) "

ALL_STRATEGIES: tuple[Strategy, ...] = (
    Strategy.DIRECT,
    Strategy.NORTHERN,
    Strategy.SOUTHERN,
    Strategy.EASTERN,
    Strategy.WESTERN,
    Strategy.SCENIC,
    Strategy.FAST,
)


class DirectionsGateway(Protocol):
    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: str,
        avoid_features: Sequence[str] = (),
        waypoints: Sequence[Coordinate] = (),
        *,
        radius_m: float | None = None,
    ) -> DirectionsRoute: ...


def select_strategies(distance_km: float, settings: Settings) -> list[Strategy]:
    """Picks the strategy set for a corridor of ``distance_km``."""
    if distance_km > settings.long_tier_km:
        return [Strategy.DIRECT, Strategy.FAST]
    if distance_km > settings.medium_tier_km:
        return [Strategy.DIRECT, Strategy.NORTHERN, Strategy.SOUTHERN, Strategy.FAST]
    return list(ALL_STRATEGIES)


def search_radius_m(distance_km: float) -> float:
    """Snapping radius for a corridor: 100 m per km, kept within 1–5 km."""
    return min(max(distance_km * 100, MIN_SEARCH_RADIUS_M), MAX_SEARCH_RADIUS_M)


async def fetch_route(
    directions: DirectionsGateway,
    origin: Coordinate,
    destination: Coordinate,
    profile: str,
    avoid_features: Sequence[str],
    route_waypoints: Sequence[Coordinate],
    radius_m: float,
    settings: Settings,
) -> DirectionsRoute:
    """Requests one route, retrying once by car if a point is not routable.

    Raises:
        RouteError: The attempt (and its driving retry, if any) failed.
    """
    try:
        return await _timed_route(
            directions, origin, destination, profile, avoid_features,
            route_waypoints, radius_m, settings,
        )
    except NotRoutableError as exc:
        if profile == DRIVING_PROFILE:
            raise
        retry_radius = max(2 * radius_m, RETRY_SEARCH_RADIUS_M)
        logger.warning(
            "%s not routable (%s); retrying with %s, radius %.0fm",
            profile,
            exc,
            DRIVING_PROFILE,
            retry_radius,
        )
    route = await _timed_route(
        directions, origin, destination, DRIVING_PROFILE, (),
        route_waypoints, retry_radius, settings,
    )
    return with_instruction_prefix(route, DRIVING_RETRY_PREFIX)


async def _timed_route(
    directions: DirectionsGateway,
    origin: Coordinate,
    destination: Coordinate,
    profile: str,
    avoid_features: Sequence[str],
    route_waypoints: Sequence[Coordinate],
    radius_m: float,
    settings: Settings,
) -> DirectionsRoute:
    try:
        route = await asyncio.wait_for(
            directions.get_route(
                origin,
                destination,
                profile,
                avoid_features,
                route_waypoints,
                radius_m=radius_m,
            ),
            timeout=settings.directions_timeout_s,
        )
    except asyncio.TimeoutError as exc:
        raise UpstreamTimeoutError(
            f"{profile} route timed out after {settings.directions_timeout_s}s"
        ) from exc
    if not route.steps:
        raise DirectionsError(f"{profile} route contains no steps")
    return route


async def run_strategies(
    origin: Coordinate,
    destination: Coordinate,
    directions: DirectionsGateway,
    settings: Settings,
) -> StrategyRun:
    """Tries each strategy for the corridor in sequence.

    Raises:
        NoRouteFoundError: No strategy produced a route.
    """
    distance_km = geo.haversine_km(origin, destination)
    strategies = select_strategies(distance_km, settings)
    radius_m = search_radius_m(distance_km)
    logger.info(
        "Route distance %.2fkm: trying %s",
        distance_km,
        ", ".join(s.value for s in strategies),
    )

    candidates: list[CandidateRoute] = []
    failures: list[StrategyFailure] = []
    for i, strategy in enumerate(strategies):
        profile, avoid_features = STRATEGY_OPTIONS[strategy]
        route_waypoints = waypoints.generate_waypoints(origin, destination, strategy)
        try:
            route = await fetch_route(
                directions, origin, destination, profile, avoid_features,
                route_waypoints, radius_m, settings,
            )
        except RouteError as exc:
            failure = StrategyFailure(
                strategy=strategy,
                status_code=getattr(exc, "status_code", None),
                message=str(exc),
            )
            failures.append(failure)
            logger.warning(
                "Strategy %s failed (%s): %s",
                strategy.value,
                failure.status_code or "unknown",
                failure.message,
            )
        else:
            route = with_instruction_prefix(route, INSTRUCTION_PREFIXES[strategy])
            candidates.append(
                CandidateRoute(
                    strategy=strategy,
                    steps=route.steps,
                    full_polyline=route.full_polyline,
                )
            )

        if i < len(strategies) - 1 and settings.strategy_delay_s > 0:
            await asyncio.sleep(settings.strategy_delay_s)

    logger.info(
        "Generated %d routes out of %d strategy attempts",
        len(candidates),
        len(strategies),
    )
    if not candidates:
        raise NoRouteFoundError(
            "Unable to generate any routes with diversification strategies"
        )
    return StrategyRun(attempted=strategies, candidates=candidates, failures=failures)
