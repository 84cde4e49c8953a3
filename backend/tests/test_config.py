"""Tests for config.py."""

import config


def test_from_env_reads_keys(monkeypatch):
    monkeypatch.setenv("OPEN_ROUTE_API_KEY", " ors-key ")
    monkeypatch.setenv("WAQI_API_KEY", "waqi-key")
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "maps-key")
    monkeypatch.setenv("AQI_RANDOM_SEED", "42")

    settings = config.Settings.from_env()

    assert settings.ors_api_key == "ors-key"
    assert settings.waqi_api_key == "waqi-key"
    assert settings.google_maps_api_key == "maps-key"
    assert settings.random_seed == 42


def test_from_env_defaults(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda *args, **kwargs: False)
    for name in ("ORS_BASE_URL", "WAQI_BASE_URL", "AQI_RANDOM_SEED"):
        monkeypatch.delenv(name, raising=False)

    settings = config.Settings.from_env()

    assert settings.ors_base_url == "https://api.openrouteservice.org"
    assert settings.waqi_base_url == "https://api.waqi.info"
    assert settings.random_seed is None
    assert settings.long_tier_km == config.LONG_TIER_KM
