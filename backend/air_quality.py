"""Air-quality lookups along a route.

Only a handful of strategic points are sent to the WAQI API (start, end and
the quarter marks). Every other point gets a synthetic reading derived from
the average of the real ones, so the route still shows plausible variation
without one request per step. Real readings are never overwritten and never
clamped; synthetic ones always fall inside [15, 300].
"""

import asyncio
import logging
import math
import random
from collections.abc import Sequence
from typing import Any, Protocol

import httpx

from config import SYNTHETIC_MAX_AQI, SYNTHETIC_MIN_AQI, Settings
from errors import UpstreamError, UpstreamTimeoutError, UpstreamUnavailableError
from models import Coordinate

logger = logging.getLogger(__name__)

# Routes with at most this many points are sampled in full.
FULL_SAMPLE_LIMIT: int = 5

# Area-character multipliers and the probability of drawing each one.
VARIATION_PROFILES: tuple[tuple[str, float, float], ...] = (
    ("normal", 1.0, 0.50),
    ("residential", 0.9, 0.20),
    ("morning_rush", 1.2, 0.15),
    ("park", 0.7, 0.10),
    ("industrial", 1.5, 0.05),
)
JITTER: float = 0.15            # ±15% random spread
PROGRESSION_AMPLITUDE: float = 10.0


class AQIProvider(Protocol):
    async def get_aqi(self, point: Coordinate) -> int | None: ...


class WaqiClient:
    """AQI provider backed by the World Air Quality Index API.

    Falls back to the nearest station found by keyword search when the
    geo feed has no reading for the exact point.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._http = http_client

    async def get_aqi(self, point: Coordinate) -> int | None:
        """Returns the AQI at ``point``, or None when no station has data.

        Raises:
            UpstreamTimeoutError: The request timed out.
            UpstreamUnavailableError: The API could not be reached.
        """
        feed = await self._get(f"/feed/geo:{point.lat};{point.lng}/")
        aqi = _extract_aqi(feed)
        if aqi is not None:
            return aqi

        search = await self._get("/search/", {"keyword": f"{point.lat},{point.lng}"})
        stations = search.get("data") if search.get("status") == "ok" else None
        if not (
            isinstance(stations, list) and stations and isinstance(stations[0], dict)
        ):
            return None

        station = await self._get(f"/feed/@{stations[0].get('uid')}/")
        return _extract_aqi(station)

    async def _get(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        query = {"token": self._settings.waqi_api_key, **(params or {})}
        try:
            resp = await self._http.get(
                f"{self._settings.waqi_base_url}{path}",
                params=query,
                timeout=self._settings.aqi_timeout_s,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError(f"WAQI request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise UpstreamUnavailableError(f"WAQI unreachable: {exc}") from exc

        if resp.status_code != 200:
            logger.warning("WAQI %s returned HTTP %d", path, resp.status_code)
            return {}
        try:
            payload = resp.json()
        except ValueError:
            logger.warning("WAQI %s returned a non-JSON body", path)
            return {}
        if not isinstance(payload, dict):
            logger.warning("WAQI %s returned a non-object body", path)
            return {}
        return payload


def _extract_aqi(payload: dict[str, Any]) -> int | None:
    if payload.get("status") != "ok":
        return None
    data = payload.get("data")
    if not isinstance(data, dict):
        return None
    # Stations without a current reading report "-".
    try:
        return int(data.get("aqi"))
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def sample_indices(count: int) -> list[int]:
    """Returns the indices of the points worth a real AQI lookup.

    Short routes are sampled in full; longer ones use the first and last
    points plus the quarter marks.
    """
    if count <= FULL_SAMPLE_LIMIT:
        return list(range(count))
    stride = count // 4
    middle = range(stride, count - 1, stride)
    return sorted({0, count - 1, *middle})


def synthetic_aqi(
    baseline: float, index: int, total: int, rng: random.Random
) -> int:
    """Draws a plausible AQI for an unsampled point, clamped to [15, 300]."""
    factors = [factor for _, factor, _ in VARIATION_PROFILES]
    weights = [weight for _, _, weight in VARIATION_PROFILES]
    factor = rng.choices(factors, weights=weights)[0]
    jitter = rng.uniform(1 - JITTER, 1 + JITTER)

    value = round(baseline * factor * jitter)
    progress = index / total if total else 0.0
    value += round(math.sin(progress * math.pi * 2) * PROGRESSION_AMPLITUDE)
    return max(SYNTHETIC_MIN_AQI, min(SYNTHETIC_MAX_AQI, value))


async def fetch_with_retry(
    provider: AQIProvider, point: Coordinate, settings: Settings
) -> int | None:
    """Fetches one reading, retrying transient failures a bounded number of times.

    Any other provider failure degrades this one point to ``None``.
    """
    attempts = settings.aqi_max_retries + 1
    for attempt in range(1, attempts + 1):
        try:
            return await asyncio.wait_for(
                provider.get_aqi(point), timeout=settings.aqi_timeout_s
            )
        except (UpstreamError, asyncio.TimeoutError) as exc:
            if attempt == attempts:
                logger.warning(
                    "AQI lookup for %s failed after %d attempts: %s",
                    point,
                    attempts,
                    str(exc) or "timeout",
                )
                return None
            logger.info(
                "Retrying AQI lookup for %s (%d retries left)",
                point,
                attempts - attempt,
            )
            await asyncio.sleep(settings.aqi_retry_backoff_s)
        except Exception as exc:  # noqa: BLE001
            logger.warning("AQI lookup for %s failed: %s", point, exc)
            return None


async def get_aqi_for_route(
    points: Sequence[Coordinate],
    provider: AQIProvider,
    settings: Settings,
    rng: random.Random,
) -> list[int]:
    """Returns one AQI value per point, in the same order as ``points``."""
    if not points:
        return []

    sampled = sample_indices(len(points))
    readings = await asyncio.gather(
        *(fetch_with_retry(provider, points[i], settings) for i in sampled)
    )
    real = {i: aqi for i, aqi in zip(sampled, readings) if aqi is not None}
    logger.info(
        "Got %d real AQI values out of %d sampled points", len(real), len(sampled)
    )

    if real:
        baseline = round(sum(real.values()) / len(real))
    else:
        baseline = settings.fallback_baseline_aqi
        logger.info("No real AQI data, using baseline %d", baseline)

    total = len(points)
    return [
        real[i] if i in real else synthetic_aqi(baseline, i, total, rng)
        for i in range(total)
    ]
