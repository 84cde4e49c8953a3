"""Clean-air routing backend service.

Exposes a health check and the route recommendation endpoint consumed by the
map UI.
"""

import logging

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

import route_service
from config import Settings
from errors import InvalidCoordinateError
from models import RouteRequest, RouteResponse

logging.basicConfig(level=logging.INFO)

app = FastAPI(
    title="Clean Air Route Backend",
    description="Cycling route recommendations ranked by air quality.",
    version="0.4.0",
)


def get_settings() -> Settings:
    """Reads configuration for a single request."""
    return Settings.from_env()


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint used to verify the service is live."""
    return {"status": "ok"}


@app.get(
    "/route",
    response_model=RouteResponse,
    response_model_exclude_none=True,
    responses={404: {"description": "No route found; body lists suggestions."}},
)
async def get_route(
    from_: str = Query(..., alias="from", description="Origin as 'lat,lng'."),
    to: str = Query(..., description="Destination as 'lat,lng'."),
    type: str | None = Query(None, description="'circular' for a round trip."),  # noqa: A002
    duration: float | None = Query(None, description="Round-trip minutes."),
    distance: float | None = Query(None, description="Round-trip kilometres."),
    settings: Settings = Depends(get_settings),
) -> RouteResponse | JSONResponse:
    """Recommends routes between two points, ranked by average AQI.

    A request whose origin equals its destination, or whose ``type`` is
    ``circular``, is answered with three round-trip variants instead.

    Returns:
        ``RouteResponse`` with best/alternative/worst options and the full
        list of unique alternatives.

    Raises:
        HTTPException 400: If either coordinate is malformed or out of range.
        HTTPException 502: If the pipeline fails unexpectedly.
    """
    request = RouteRequest(
        from_=from_,
        to=to,
        is_circular=type == "circular" or from_.strip() == to.strip(),
        duration=duration,
        distance=distance,
        route_type_hint=type,
    )
    try:
        response = await route_service.plan(request, settings=settings)
    except InvalidCoordinateError as exc:
        raise HTTPException(
            status_code=400,
            detail=f"{exc} Use format: -6.2001,106.8166",
        ) from exc
    except Exception as exc:  # noqa: BLE001
        logging.exception("route_service.plan failed")
        raise HTTPException(
            status_code=502,
            detail="Failed to generate routes. Please try again.",
        ) from exc

    if response.error:
        return JSONResponse(
            status_code=404,
            content=response.model_dump(by_alias=True, exclude_none=True, mode="json"),
        )
    return response
