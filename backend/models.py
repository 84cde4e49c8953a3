"""Pydantic request, response and domain models for the routing backend.

Field names are snake_case in Python and serialise as camelCase, which is the
shape the map UI consumes.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Coordinate(_ApiModel):
    """A WGS84 point."""

    lat: float
    lng: float

    def __str__(self) -> str:
        return f"{self.lat},{self.lng}"


class Strategy(str, Enum):
    """Heuristic used to bias a candidate route's geometry."""

    DIRECT = "direct"
    NORTHERN = "northern"
    SOUTHERN = "southern"
    EASTERN = "eastern"
    WESTERN = "western"
    SCENIC = "scenic"
    FAST = "fast"


class PollutionScore(str, Enum):
    GOOD = "Good"
    MODERATE = "Moderate"
    UNHEALTHY_SENSITIVE = "Unhealthy for Sensitive Groups"
    UNHEALTHY = "Unhealthy"


class RouteLabel(str, Enum):
    BEST = "best"
    ALTERNATIVE = "alternative"
    WORST = "worst"


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class RouteRequest(_ApiModel):
    """Inbound request for route recommendations."""

    from_: str = Field(alias="from")
    """Origin as a 'lat,lng' string."""

    to: str
    """Destination as a 'lat,lng' string."""

    is_circular: bool = False
    """True for a round trip starting and ending at the origin."""

    duration: float | None = None
    """Requested round-trip duration in minutes (circular only)."""

    distance: float | None = None
    """Requested round-trip distance in kilometres (circular only)."""

    route_type_hint: str | None = None
    """Raw `type` query value from the map UI, e.g. "circular"."""


# ---------------------------------------------------------------------------
# Route geometry
# ---------------------------------------------------------------------------


class RouteStep(_ApiModel):
    """One manoeuvre of a route, as produced by the directions provider."""

    instruction: str
    distance: str
    """Formatted as 'X.XX km' or 'N m'."""
    duration: str
    """Formatted as 'N min'."""
    start: Coordinate
    end: Coordinate
    aqi: int | None = None
    polyline: list[Coordinate] = Field(default_factory=list)


class DirectionsRoute(_ApiModel):
    """A path returned by the directions provider."""

    steps: list[RouteStep]
    full_polyline: list[Coordinate] = Field(default_factory=list)


class CandidateRoute(_ApiModel):
    """A path produced by one strategy attempt."""

    strategy: Strategy
    steps: list[RouteStep]
    full_polyline: list[Coordinate] = Field(default_factory=list)


class StrategyFailure(_ApiModel):
    """Why a single strategy attempt produced no route."""

    strategy: Strategy
    status_code: int | None = None
    message: str


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


class RouteOption(_ApiModel):
    """A scored route ready to be shown on the map."""

    label: RouteLabel = RouteLabel.ALTERNATIVE
    from_: str = Field(alias="from")
    to: str
    steps: list[RouteStep]
    avg_aqi: float = Field(alias="avgAQI")
    pollution_score: PollutionScore
    recommended: bool
    route_hash: str
    full_polyline: list[Coordinate] = Field(default_factory=list)
    strategy: Strategy | None = None
    """Diversification strategy that produced the route, if any."""
    profile: str | None = None
    """Directions profile used by the fallback flow."""
    variant: str | None = None
    """Circular route variant ('Duration-based', 'Scenic Route', ...)."""


class NearbyPoint(_ApiModel):
    """A coordinate close to a failed point that may be easier to route."""

    lat: float
    lng: float
    description: str


class RouteResponse(_ApiModel):
    """The complete result of a route recommendation request."""

    best: RouteOption | None = None
    alternative: RouteOption | None = None
    worst: RouteOption | None = None
    alternatives: list[RouteOption] = Field(default_factory=list)
    route_count: int = 0
    fallback_used: bool | None = None
    is_circular: bool | None = None
    requested_duration: float | None = None
    requested_distance: float | None = None
    warning: str | None = None
    error: str | None = None
    suggestions: list[str] | None = None
    nearby_points: list[NearbyPoint] | None = None


class StrategyRun(_ApiModel):
    """Outcome of trying every strategy for one origin/destination pair."""

    attempted: list[Strategy] = Field(default_factory=list)
    candidates: list[CandidateRoute] = Field(default_factory=list)
    failures: list[StrategyFailure] = Field(default_factory=list)
