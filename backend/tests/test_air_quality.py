"""Tests for air_quality.py.

WAQI calls go through ``httpx.MockTransport``; aggregation tests use a fake
provider. No network access occurs during these tests.
"""

import random

import httpx
import pytest

import air_quality
from config import Settings
from errors import UpstreamTimeoutError, UpstreamUnavailableError
from fakes import FakeAQI
from models import Coordinate

_POINT = Coordinate(lat=-6.2, lng=106.8)


def _points(n):
    return [Coordinate(lat=-6.2 + i * 0.001, lng=106.8) for i in range(n)]


def _waqi(handler, settings=None):
    settings = settings or Settings(waqi_api_key="token")
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return air_quality.WaqiClient(settings, http), http


# ---------------------------------------------------------------------------
# sample_indices / synthetic_aqi
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "count, expected",
    [
        (0, []),
        (3, [0, 1, 2]),
        (5, [0, 1, 2, 3, 4]),
        (8, [0, 2, 4, 6, 7]),
        (100, [0, 25, 50, 75, 99]),
    ],
)
def test_sample_indices(count, expected):
    assert air_quality.sample_indices(count) == expected


def test_synthetic_aqi_is_clamped():
    rng = random.Random(1)
    high = [air_quality.synthetic_aqi(1000, i, 50, rng) for i in range(50)]
    low = [air_quality.synthetic_aqi(0, i, 50, rng) for i in range(50)]

    assert all(value == 300 for value in high)
    assert all(15 <= value <= 300 for value in low)


def test_synthetic_aqi_follows_baseline():
    rng = random.Random(3)
    values = [air_quality.synthetic_aqi(60, i, 200, rng) for i in range(200)]
    mean = sum(values) / len(values)
    assert 40 < mean < 90


# ---------------------------------------------------------------------------
# fetch_with_retry
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_fetch_with_retry_recovers_from_transient_errors(settings):
    provider = FakeAQI(
        fn=lambda p: 80,
        errors=[UpstreamTimeoutError("slow"), UpstreamUnavailableError("down")],
    )
    assert await air_quality.fetch_with_retry(provider, _POINT, settings) == 80
    assert provider.calls == 3


@pytest.mark.asyncio
async def test_fetch_with_retry_gives_up_after_max_retries(settings):
    provider = FakeAQI(errors=[UpstreamTimeoutError("slow")] * 5)
    assert await air_quality.fetch_with_retry(provider, _POINT, settings) is None
    assert provider.calls == settings.aqi_max_retries + 1


@pytest.mark.asyncio
async def test_fetch_with_retry_does_not_retry_missing_reading(settings):
    provider = FakeAQI(fn=lambda p: None)
    assert await air_quality.fetch_with_retry(provider, _POINT, settings) is None
    assert provider.calls == 1


# ---------------------------------------------------------------------------
# get_aqi_for_route
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_route_aqi_aligned_with_points(settings, rng):
    points = _points(12)
    values = await air_quality.get_aqi_for_route(points, FakeAQI(), settings, rng)
    assert len(values) == len(points)


@pytest.mark.asyncio
async def test_route_aqi_queries_only_sampled_points(settings, rng):
    provider = FakeAQI()
    await air_quality.get_aqi_for_route(_points(40), provider, settings, rng)
    assert provider.calls == len(air_quality.sample_indices(40))


@pytest.mark.asyncio
async def test_real_readings_are_kept_unclamped(settings, rng):
    points = _points(20)
    values = await air_quality.get_aqi_for_route(
        points, FakeAQI(fn=lambda p: 450), settings, rng
    )
    for i in air_quality.sample_indices(20):
        assert values[i] == 450
    synthetic = [v for i, v in enumerate(values) if i not in air_quality.sample_indices(20)]
    assert all(15 <= v <= 300 for v in synthetic)


@pytest.mark.asyncio
async def test_missing_readings_fall_back_to_baseline(rng):
    settings = Settings(aqi_retry_backoff_s=0, fallback_baseline_aqi=100)
    values = await air_quality.get_aqi_for_route(
        _points(10), FakeAQI(fn=lambda p: None), settings, rng
    )
    assert len(values) == 10
    assert all(15 <= v <= 300 for v in values)


@pytest.mark.asyncio
async def test_empty_route_has_no_readings(settings, rng):
    provider = FakeAQI()
    assert await air_quality.get_aqi_for_route([], provider, settings, rng) == []
    assert provider.calls == 0


# ---------------------------------------------------------------------------
# WaqiClient
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_waqi_reads_geo_feed():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"status": "ok", "data": {"aqi": 72}})

    client, http = _waqi(handler)
    async with http:
        assert await client.get_aqi(_POINT) == 72

    assert requests[0].url.path == "/feed/geo:-6.2;106.8/"
    assert requests[0].url.params["token"] == "token"


@pytest.mark.asyncio
async def test_waqi_falls_back_to_nearest_station():
    def handler(request):
        path = request.url.path
        if path.startswith("/feed/geo:"):
            return httpx.Response(200, json={"status": "ok", "data": {"aqi": "-"}})
        if path == "/search/":
            return httpx.Response(
                200, json={"status": "ok", "data": [{"uid": 8397}, {"uid": 1}]}
            )
        if path == "/feed/@8397/":
            return httpx.Response(200, json={"status": "ok", "data": {"aqi": "131"}})
        return httpx.Response(404)

    client, http = _waqi(handler)
    async with http:
        assert await client.get_aqi(_POINT) == 131


@pytest.mark.asyncio
async def test_waqi_returns_none_without_stations():
    def handler(request):
        if request.url.path == "/search/":
            return httpx.Response(200, json={"status": "ok", "data": []})
        return httpx.Response(200, json={"status": "error", "data": "Unknown station"})

    client, http = _waqi(handler)
    async with http:
        assert await client.get_aqi(_POINT) is None


@pytest.mark.asyncio
async def test_waqi_http_error_is_no_reading():
    client, http = _waqi(lambda request: httpx.Response(500, text="oops"))
    async with http:
        assert await client.get_aqi(_POINT) is None


@pytest.mark.asyncio
async def test_waqi_timeout_raises_upstream_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    client, http = _waqi(handler)
    async with http:
        with pytest.raises(UpstreamTimeoutError):
            await client.get_aqi(_POINT)


@pytest.mark.asyncio
async def test_waqi_connection_error_raises_upstream_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client, http = _waqi(handler)
    async with http:
        with pytest.raises(UpstreamUnavailableError):
            await client.get_aqi(_POINT)


@pytest.mark.parametrize("body", [[], "ok", {"status": "ok", "data": [42]}])
@pytest.mark.asyncio
async def test_waqi_unexpected_json_shape_is_no_reading(body):
    client, http = _waqi(lambda request: httpx.Response(200, json=body))
    async with http:
        assert await client.get_aqi(_POINT) is None


@pytest.mark.asyncio
async def test_fetch_with_retry_unexpected_error_is_no_reading(settings):
    provider = FakeAQI(errors=[AttributeError("'list' object has no attribute 'get'")])
    assert await air_quality.fetch_with_retry(provider, _POINT, settings) is None
    assert provider.calls == 1


@pytest.mark.asyncio
async def test_route_aqi_survives_one_failing_point(settings, rng):
    provider = FakeAQI(fn=lambda p: 70, errors=[KeyError("aqi")])
    values = await air_quality.get_aqi_for_route(_points(12), provider, settings, rng)

    assert len(values) == 12
    assert values.count(70) >= len(air_quality.sample_indices(12)) - 1
