"""FastAPI dependencies.

This is the composition root: the gateway gets its collaborators through
its constructor, and only these functions know which implementations to use.
"""

from typing import Annotated

from fastapi import Depends

from geo_weather.config import Settings, get_settings
from geo_weather.services.cache import WeatherCache
from geo_weather.services.connectivity import ConnectivityChecker, HttpConnectivityChecker
from geo_weather.services.openweather import OpenWeatherClient
from geo_weather.services.storage import create_storage
from geo_weather.services.weather import WeatherGateway

# Singleton instances for services
_weather_cache: WeatherCache | None = None
_openweather_client: OpenWeatherClient | None = None


def get_weather_cache(settings: Annotated[Settings, Depends(get_settings)]) -> WeatherCache:
    """Get weather cache instance (singleton)."""
    global _weather_cache
    if _weather_cache is None:
        _weather_cache = WeatherCache(create_storage(settings))
    return _weather_cache


def get_openweather_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> OpenWeatherClient:
    """Get OpenWeatherMap client instance (singleton)."""
    global _openweather_client
    if _openweather_client is None:
        _openweather_client = OpenWeatherClient(settings)
    return _openweather_client


def get_connectivity(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ConnectivityChecker:
    """Get connectivity checker."""
    return HttpConnectivityChecker(settings)


def get_weather_gateway(
    cache: Annotated[WeatherCache, Depends(get_weather_cache)],
    client: Annotated[OpenWeatherClient, Depends(get_openweather_client)],
    connectivity: Annotated[ConnectivityChecker, Depends(get_connectivity)],
) -> WeatherGateway:
    """Get weather gateway instance."""
    return WeatherGateway(client, cache, connectivity)


# Type aliases for dependency injection
CacheDep = Annotated[WeatherCache, Depends(get_weather_cache)]
GatewayDep = Annotated[WeatherGateway, Depends(get_weather_gateway)]


def reset_singletons() -> None:
    """Reset singleton instances (for testing)."""
    global _weather_cache, _openweather_client
    _weather_cache = None
    _openweather_client = None
