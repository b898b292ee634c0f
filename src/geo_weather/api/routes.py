"""API route definitions."""

from typing import Annotated

import structlog
from fastapi import APIRouter, HTTPException, Query, status

from geo_weather.api.dependencies import CacheDep, GatewayDep
from geo_weather.api.schemas import (
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    ReadinessResponse,
)
from geo_weather.models import ByCity, ByCoordinates, WeatherRecord
from geo_weather.result import (
    ApiFailure,
    CacheFailure,
    CacheMissFailure,
    Failure,
    InvalidDataFailure,
    NetworkFailure,
    TimeoutFailure,
    WeatherResult,
)

logger = structlog.get_logger()

# API router for weather endpoints
api_router = APIRouter(prefix="/api/v1", tags=["weather"])

# Health router for health checks
health_router = APIRouter(prefix="/health", tags=["health"])

FAILURE_STATUS: dict[type[Failure], tuple[int, str]] = {
    NetworkFailure: (status.HTTP_503_SERVICE_UNAVAILABLE, "NETWORK_UNAVAILABLE"),
    TimeoutFailure: (status.HTTP_504_GATEWAY_TIMEOUT, "UPSTREAM_TIMEOUT"),
    ApiFailure: (status.HTTP_502_BAD_GATEWAY, "UPSTREAM_ERROR"),
    InvalidDataFailure: (status.HTTP_502_BAD_GATEWAY, "INVALID_UPSTREAM_DATA"),
    CacheFailure: (status.HTTP_500_INTERNAL_SERVER_ERROR, "CACHE_ERROR"),
    CacheMissFailure: (status.HTTP_404_NOT_FOUND, "CACHE_MISS"),
}

ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    502: {"model": ErrorResponse, "description": "Upstream API error or invalid data"},
    503: {"model": ErrorResponse, "description": "Offline with no cached data"},
    504: {"model": ErrorResponse, "description": "Upstream timeout"},
}


def _unwrap(result: WeatherResult) -> WeatherRecord:
    """Return the record or raise the HTTP error matching the failure."""
    if not isinstance(result, Failure):
        return result.value

    status_code, code = FAILURE_STATUS.get(
        type(result), (status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR")
    )

    upstream_status = result.status_code if isinstance(result, ApiFailure) else None
    raise HTTPException(
        status_code=status_code,
        detail=ErrorResponse(
            error=ErrorDetail(
                code=code,
                message=result.message,
                upstream_status=upstream_status,
            )
        ).model_dump(),
    )


@api_router.get("/weather", response_model=WeatherRecord, responses=ERROR_RESPONSES)
async def get_weather(
    gateway: GatewayDep,
    lat: Annotated[float, Query(ge=-90, le=90, description="Latitude")],
    lon: Annotated[float, Query(ge=-180, le=180, description="Longitude")],
) -> WeatherRecord:
    """Get current weather for coordinates.

    Served from the provider when online, from a cache entry younger than
    30 minutes when offline.
    """
    result = await gateway.resolve(ByCoordinates(latitude=lat, longitude=lon))
    return _unwrap(result)


@api_router.get("/weather/city", response_model=WeatherRecord, responses=ERROR_RESPONSES)
async def get_weather_for_city(
    gateway: GatewayDep,
    q: Annotated[str, Query(min_length=1, description="City name")],
) -> WeatherRecord:
    """Get current weather for a city name."""
    result = await gateway.resolve(ByCity(name=q))
    return _unwrap(result)


@api_router.get(
    "/weather/cached",
    response_model=WeatherRecord,
    responses={404: {"model": ErrorResponse, "description": "No valid cache entry"}},
)
async def get_cached_weather(
    gateway: GatewayDep,
    lat: Annotated[float, Query(ge=-90, le=90, description="Latitude")],
    lon: Annotated[float, Query(ge=-180, le=180, description="Longitude")],
) -> WeatherRecord:
    """Get cached weather for coordinates without contacting the provider."""
    result = await gateway.cached(ByCoordinates(latitude=lat, longitude=lon))
    return _unwrap(result)


@api_router.delete("/cache/{key}", status_code=status.HTTP_204_NO_CONTENT)
async def evict_cache_entry(key: str, cache: CacheDep) -> None:
    """Remove one cache entry."""
    await cache.evict(key)


@api_router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache(cache: CacheDep) -> None:
    """Remove all cache entries."""
    await cache.clear_all()


@health_router.get("/live", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    """Liveness probe - checks if the service is running."""
    return HealthResponse(status="ok")


@health_router.get("/ready", response_model=ReadinessResponse)
async def readiness(cache: CacheDep) -> ReadinessResponse:
    """Readiness probe - checks if the service is ready to accept traffic."""
    cache_status = "ok" if cache.is_healthy() else "unhealthy"

    response = ReadinessResponse(
        status=cache_status,
        checks={"cache": cache_status},
    )

    if cache_status != "ok":
        logger.warning("Readiness check failed", checks=response.checks)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=response.model_dump(),
        )

    return response
