"""Pytest configuration for the clean-air routing backend test suite."""

import random
import sys
from pathlib import Path

import pytest

# Ensure the backend root is on the path so tests can import modules
# directly (e.g. `import route_service`) without a package prefix.
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Settings  # noqa: E402


@pytest.fixture
def settings():
    """Settings with no real sleeps and a fixed random seed."""
    return Settings(strategy_delay_s=0, aqi_retry_backoff_s=0, random_seed=7)


@pytest.fixture
def rng():
    return random.Random(7)
