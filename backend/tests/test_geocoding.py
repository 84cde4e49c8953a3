"""Tests for geocoding.py. googlemaps.Client is replaced by a MagicMock."""

from unittest.mock import MagicMock

import googlemaps.exceptions
import pytest

import geocoding
from config import Settings
from models import Coordinate

_POINT = Coordinate(lat=-6.2001, lng=106.8166)

_RESULTS = [
    {
        "formatted_address": "Jl. Jend. Sudirman No.1, Jakarta, Indonesia",
        "address_components": [
            {"long_name": "1", "types": ["street_number"]},
            {"long_name": "Jalan Jenderal Sudirman", "types": ["route"]},
            {"long_name": "Jakarta", "types": ["locality", "political"]},
        ],
    }
]


def test_street_from_results_prefers_route_component():
    assert geocoding.street_from_results(_RESULTS) == "Jalan Jenderal Sudirman"


def test_street_from_results_falls_back_to_address():
    results = [{"formatted_address": "Monas, Jakarta", "address_components": []}]
    assert geocoding.street_from_results(results) == "Monas, Jakarta"


def test_street_from_results_empty():
    assert geocoding.street_from_results([]) is None


@pytest.mark.asyncio
async def test_street_name_uses_reverse_geocode():
    maps = MagicMock()
    maps.reverse_geocode.return_value = _RESULTS
    geocoder = geocoding.GoogleGeocoder(Settings(), maps_client=maps)

    assert await geocoder.street_name(_POINT) == "Jalan Jenderal Sudirman"
    maps.reverse_geocode.assert_called_once_with((-6.2001, 106.8166))


@pytest.mark.asyncio
async def test_street_name_api_error_returns_coordinates():
    maps = MagicMock()
    maps.reverse_geocode.side_effect = googlemaps.exceptions.ApiError("REQUEST_DENIED")
    geocoder = geocoding.GoogleGeocoder(Settings(), maps_client=maps)

    assert await geocoder.street_name(_POINT) == "-6.2001,106.8166"


@pytest.mark.asyncio
async def test_street_name_no_results_returns_coordinates():
    maps = MagicMock()
    maps.reverse_geocode.return_value = []
    geocoder = geocoding.GoogleGeocoder(Settings(), maps_client=maps)

    assert await geocoder.street_name(_POINT) == "-6.2001,106.8166"


@pytest.mark.asyncio
async def test_street_name_without_api_key_returns_coordinates():
    geocoder = geocoding.GoogleGeocoder(Settings(google_maps_api_key=""))
    assert await geocoder.street_name(_POINT) == "-6.2001,106.8166"
