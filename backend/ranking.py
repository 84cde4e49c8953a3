"""Scores routes by air quality and assembles the ranked response."""

import logging
from collections.abc import Sequence

import similarity
from config import Settings
from models import (
    Coordinate,
    PollutionScore,
    RouteLabel,
    RouteOption,
    RouteResponse,
    RouteStep,
    Strategy,
)

logger = logging.getLogger(__name__)

SINGLE_ROUTE_WARNING = (
    "Only one viable route found between these locations. Consider choosing "
    "locations with more road network options for route alternatives."
)


def pollution_score(avg_aqi: float, settings: Settings) -> PollutionScore:
    """Maps an average AQI onto the EPA-style category bands."""
    if avg_aqi <= settings.good_max_aqi:
        return PollutionScore.GOOD
    if avg_aqi <= settings.moderate_max_aqi:
        return PollutionScore.MODERATE
    if avg_aqi <= settings.sensitive_max_aqi:
        return PollutionScore.UNHEALTHY_SENSITIVE
    return PollutionScore.UNHEALTHY


def average_aqi(values: Sequence[int]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def build_option(
    steps: Sequence[RouteStep],
    aqi_values: Sequence[int],
    from_name: str,
    to_name: str,
    settings: Settings,
    *,
    full_polyline: Sequence[Coordinate] = (),
    strategy: Strategy | None = None,
    profile: str | None = None,
    variant: str | None = None,
) -> RouteOption:
    """Attaches per-step AQI to ``steps`` and scores the route."""
    scored_steps = [
        step.model_copy(update={"aqi": aqi_values[i] if i < len(aqi_values) else None})
        for i, step in enumerate(steps)
    ]
    avg = average_aqi(aqi_values)
    score = pollution_score(avg, settings)
    return RouteOption(
        from_=from_name,
        to=to_name,
        steps=scored_steps,
        avg_aqi=avg,
        pollution_score=score,
        recommended=score in (PollutionScore.GOOD, PollutionScore.MODERATE),
        route_hash=similarity.route_hash(steps),
        full_polyline=list(full_polyline),
        strategy=strategy,
        profile=profile,
        variant=variant,
    )


def assemble(
    options: Sequence[RouteOption],
    settings: Settings,
    *,
    dedupe: bool = True,
    fallback_used: bool | None = None,
    is_circular: bool | None = None,
) -> RouteResponse:
    """Sorts options by average AQI, prunes duplicates and labels them.

    ``best`` is the cleanest option and ``alternative`` the runner-up.
    ``worst`` is the dirtiest option and is only set once there are three or
    more, so it never repeats ``alternative``. Every surviving option is
    listed in ``alternatives``.
    """
    ranked = sorted(options, key=lambda o: o.avg_aqi)
    if dedupe:
        ranked = similarity.dedupe(
            ranked, settings.similarity_ratio, settings.similarity_point_km
        )
    logger.info("Ranked %d unique routes out of %d", len(ranked), len(options))

    labelled = []
    for i, option in enumerate(ranked):
        if i == 0:
            label = RouteLabel.BEST
        elif i == len(ranked) - 1 and len(ranked) >= 3:
            label = RouteLabel.WORST
        else:
            label = RouteLabel.ALTERNATIVE
        labelled.append(option.model_copy(update={"label": label}))

    response = RouteResponse(
        best=labelled[0] if labelled else None,
        alternative=labelled[1] if len(labelled) >= 2 else None,
        worst=labelled[-1] if len(labelled) >= 3 else None,
        alternatives=labelled,
        route_count=len(labelled),
        fallback_used=fallback_used,
        is_circular=is_circular,
    )
    if len(labelled) == 1:
        logger.info("Only one unique route found; returning it alone")
        response = response.model_copy(update={"warning": SINGLE_ROUTE_WARNING})
    return response
