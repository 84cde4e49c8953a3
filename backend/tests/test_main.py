"""Tests for the HTTP surface in main.py.

``route_service.plan`` is monkeypatched wherever a provider would otherwise
be contacted.
"""

import pytest
from fastapi.testclient import TestClient

import main
import ranking
import route_service
from config import Settings
from fakes import JAKARTA_FROM, JAKARTA_TO, route_through
from models import RouteResponse


@pytest.fixture
def client():
    main.app.dependency_overrides[main.get_settings] = lambda: Settings(strategy_delay_s=0)
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def _capture_plan(monkeypatch, response):
    captured = {}

    async def fake_plan(request, *, settings=None, **kwargs):
        captured["request"] = request
        return response

    monkeypatch.setattr(route_service, "plan", fake_plan)
    return captured


def _one_route_response():
    steps = route_through([JAKARTA_FROM, JAKARTA_TO]).steps
    option = ranking.build_option(
        steps, [42] * len(steps), "Jalan Sudirman", "Jalan Thamrin", Settings()
    )
    return ranking.assemble([option], Settings())


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_route_serialises_camel_case(client, monkeypatch):
    _capture_plan(monkeypatch, _one_route_response())

    resp = client.get("/route", params={"from": "-6.2001,106.8166", "to": "-6.1745,106.8227"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["routeCount"] == 1
    assert body["best"]["avgAQI"] == 42
    assert body["best"]["from"] == "Jalan Sudirman"
    assert body["best"]["pollutionScore"] == "Good"
    assert "worst" not in body
    assert "error" not in body


def test_route_passes_circular_request(client, monkeypatch):
    captured = _capture_plan(monkeypatch, _one_route_response())

    client.get(
        "/route",
        params={"from": "-6.2,106.8", "to": "-6.2,106.8", "duration": 45},
    )

    request = captured["request"]
    assert request.is_circular is True
    assert request.duration == 45


def test_route_type_circular(client, monkeypatch):
    captured = _capture_plan(monkeypatch, _one_route_response())

    client.get(
        "/route",
        params={"from": "-6.2,106.8", "to": "-6.1,106.9", "type": "circular", "distance": 10},
    )

    assert captured["request"].is_circular is True
    assert captured["request"].distance == 10
    assert captured["request"].route_type_hint == "circular"


def test_route_invalid_coordinate_is_400(client):
    resp = client.get("/route", params={"from": "abc", "to": "-6.1745,106.8227"})

    assert resp.status_code == 400
    assert "lat,lng" in resp.json()["detail"]


def test_route_missing_param_is_422(client):
    assert client.get("/route", params={"from": "-6.2,106.8"}).status_code == 422


def test_route_no_route_is_404_with_suggestions(client, monkeypatch):
    _capture_plan(
        monkeypatch,
        RouteResponse(
            error=route_service.NO_ROUTE_ERROR,
            suggestions=list(route_service.NO_ROUTE_SUGGESTIONS),
        ),
    )

    resp = client.get("/route", params={"from": "0,-160", "to": "0.05,-160.05"})

    assert resp.status_code == 404
    body = resp.json()
    assert body["error"] == route_service.NO_ROUTE_ERROR
    assert body["suggestions"] == route_service.NO_ROUTE_SUGGESTIONS


def test_route_unexpected_failure_is_502(client, monkeypatch):
    async def broken_plan(request, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(route_service, "plan", broken_plan)

    resp = client.get("/route", params={"from": "-6.2,106.8", "to": "-6.1,106.9"})

    assert resp.status_code == 502
