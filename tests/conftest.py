"""Test fixtures."""

from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi.testclient import TestClient

from geo_weather.api.dependencies import get_connectivity, reset_singletons
from geo_weather.config import Settings, get_settings
from geo_weather.main import create_app
from geo_weather.models import WeatherRecord
from geo_weather.services.cache import WeatherCache
from geo_weather.services.connectivity import StaticConnectivity
from geo_weather.services.openweather import OpenWeatherClient, parse_weather_response
from geo_weather.services.storage import MemoryStorage
from tests.fakes import FakeClock


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        api_key="test-key",
        upstream_connect_timeout_seconds=1.0,
        upstream_receive_timeout_seconds=1.0,
        log_level="DEBUG",
        log_format="text",
    )


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed instant."""
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def storage() -> MemoryStorage:
    """Create empty in-memory storage."""
    return MemoryStorage(max_entries=100)


@pytest.fixture
def weather_cache(storage: MemoryStorage, clock: FakeClock) -> WeatherCache:
    """Create test weather cache."""
    return WeatherCache(storage, clock=clock)


@pytest.fixture
def openweather_client(settings: Settings) -> OpenWeatherClient:
    """Create test OpenWeatherMap client."""
    return OpenWeatherClient(settings)


@pytest.fixture
def london_payload() -> dict[str, Any]:
    """Provider response for London."""
    return {
        "id": 2643743,
        "name": "London",
        "coord": {"lat": 51.5, "lon": -0.12},
        "main": {
            "temp": 15.0,
            "feels_like": 14.2,
            "temp_min": 13.1,
            "temp_max": 16.8,
            "humidity": 72,
            "pressure": 1012,
        },
        "wind": {"speed": 4.1},
        "weather": [{"description": "clear sky", "main": "Clear", "icon": "01d"}],
        "clouds": {"all": 0},
        "visibility": 10000,
        "sys": {"country": "GB", "sunrise": 1717213200, "sunset": 1717272000},
        "dt": 1717243200,
    }


@pytest.fixture
def london_record(london_payload: dict[str, Any]) -> WeatherRecord:
    """Parsed London record."""
    return parse_weather_response(london_payload)


@pytest.fixture
def app():
    """Create test application that believes it is online."""
    reset_singletons()
    get_settings.cache_clear()
    application = create_app()
    application.dependency_overrides[get_connectivity] = lambda: StaticConnectivity(True)
    return application


@pytest.fixture
def client(app) -> TestClient:
    """Create test client."""
    return TestClient(app)
