"""Runtime configuration for the clean-air routing backend.

Business rules are plain module constants so they can be tuned in one place;
``Settings`` bundles them with provider credentials and is passed explicitly
into every collaborator. Nothing here holds a client instance.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

# ---------------------------------------------------------------------------
# Routing rules. All tuneable constants live here.
# ---------------------------------------------------------------------------

# -- Strategy selection ---------------------------------------------------
# Corridor distances (km) that pick the strategy set.
MEDIUM_TIER_KM: float = 20.0        # below this, every strategy is tried
LONG_TIER_KM: float = 50.0          # above this, only direct + fast
# Above this distance cycling profiles are skipped entirely.
FALLBACK_DISTANCE_KM: float = 100.0

# -- Provider calls -------------------------------------------------------
DIRECTIONS_TIMEOUT_S: float = 15.0
STRATEGY_DELAY_S: float = 0.2       # pause between sequential strategy calls
AQI_TIMEOUT_S: float = 5.0
AQI_MAX_RETRIES: int = 2            # retries after the first attempt
AQI_RETRY_BACKOFF_S: float = 1.0
GEOCODE_TIMEOUT_S: float = 5.0

# Snapping radius (metres) sent to the directions provider.
MIN_SEARCH_RADIUS_M: float = 1000.0
MAX_SEARCH_RADIUS_M: float = 5000.0
RETRY_SEARCH_RADIUS_M: float = 2000.0
FALLBACK_SEARCH_RADIUS_M: float = 1000.0

# -- Similarity -----------------------------------------------------------
SIMILARITY_POINT_KM: float = 0.2    # sampled points further apart than this differ
SIMILARITY_RATIO: float = 0.3       # routes differ if more than this share differs
SIMILARITY_SAMPLE_SIZE: int = 5

# -- Pollution scoring ----------------------------------------------------
GOOD_MAX_AQI: float = 50
MODERATE_MAX_AQI: float = 100
SENSITIVE_MAX_AQI: float = 150
# Baseline used when no sampled point returned a real reading.
FALLBACK_BASELINE_AQI: int = 100
# Bounds applied to synthetic readings only.
SYNTHETIC_MIN_AQI: int = 15
SYNTHETIC_MAX_AQI: int = 300

# -- Circular routes ------------------------------------------------------
CIRCULAR_SPEED_KMH: float = 15.0
CIRCULAR_DEFAULT_RADIUS_KM: float = 1.11
MIN_ROUTING_DISTANCE_M: float = 50.0

_ENV_FILE = Path(__file__).resolve().parent / ".env"


class Settings(BaseModel):
    """Configuration passed into the routing pipeline and its clients."""

    ors_api_key: str = ""
    ors_base_url: str = "https://api.openrouteservice.org"
    waqi_api_key: str = ""
    waqi_base_url: str = "https://api.waqi.info"
    google_maps_api_key: str = ""

    medium_tier_km: float = MEDIUM_TIER_KM
    long_tier_km: float = LONG_TIER_KM
    fallback_distance_km: float = FALLBACK_DISTANCE_KM

    directions_timeout_s: float = DIRECTIONS_TIMEOUT_S
    strategy_delay_s: float = STRATEGY_DELAY_S
    aqi_timeout_s: float = AQI_TIMEOUT_S
    aqi_max_retries: int = AQI_MAX_RETRIES
    aqi_retry_backoff_s: float = AQI_RETRY_BACKOFF_S
    geocode_timeout_s: float = GEOCODE_TIMEOUT_S

    similarity_point_km: float = SIMILARITY_POINT_KM
    similarity_ratio: float = SIMILARITY_RATIO

    good_max_aqi: float = GOOD_MAX_AQI
    moderate_max_aqi: float = MODERATE_MAX_AQI
    sensitive_max_aqi: float = SENSITIVE_MAX_AQI
    fallback_baseline_aqi: int = FALLBACK_BASELINE_AQI

    # Seed for the synthetic AQI model; None draws from system entropy.
    random_seed: int | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Builds settings from the environment, reading ``backend/.env`` first."""
        load_dotenv(_ENV_FILE)
        seed = os.getenv("AQI_RANDOM_SEED", "").strip()
        return cls(
            ors_api_key=os.getenv("OPEN_ROUTE_API_KEY", "").strip(),
            ors_base_url=os.getenv(
                "ORS_BASE_URL", "https://api.openrouteservice.org"
            ),
            waqi_api_key=os.getenv("WAQI_API_KEY", "").strip(),
            waqi_base_url=os.getenv("WAQI_BASE_URL", "https://api.waqi.info"),
            google_maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY", "").strip(),
            random_seed=int(seed) if seed else None,
        )
