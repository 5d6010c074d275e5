import sys
from pathlib import Path

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from settings import Settings  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_settings():
    return Settings(
        {
            "GOOGLE_MAPS_API_KEY": "maps-key",
            "LLM_API_URL": "http://llm.test/api/generate",
            "PLACES_BASE_URL": "https://places.test/maps/api/place",
            "CACHE_TTL_SECONDS": "300",
            "RATE_LIMIT_MAX": "0",
        }
    )
