"""Weather gateway orchestrating connectivity, upstream client and cache."""

from typing import Protocol

import structlog
from prometheus_client import Counter

from geo_weather.exceptions import (
    CacheError,
    InvalidDataError,
    NetworkError,
    UpstreamAPIError,
    UpstreamTimeoutError,
)
from geo_weather.models import ByCity, ByCoordinates, Query, WeatherRecord
from geo_weather.result import (
    ApiFailure,
    CacheFailure,
    CacheMissFailure,
    Failure,
    GenericFailure,
    InvalidDataFailure,
    NetworkFailure,
    Success,
    TimeoutFailure,
    WeatherResult,
)
from geo_weather.services.cache import WeatherCache
from geo_weather.services.connectivity import ConnectivityChecker
from geo_weather.services.openweather import CancelToken

logger = structlog.get_logger()

OFFLINE_MISS_MESSAGE = "No internet connection and no cached data available"

# Metrics
gateway_results = Counter(
    "gateway_results_total",
    "Weather gateway results",
    ["source", "outcome"],
)


class WeatherFetcher(Protocol):
    """Remote source of weather records."""

    async def fetch_by_coordinates(
        self,
        lat: float,
        lon: float,
        cancel_token: CancelToken | None = None,
    ) -> WeatherRecord: ...

    async def fetch_by_city(
        self,
        name: str,
        cancel_token: CancelToken | None = None,
    ) -> WeatherRecord: ...


class WeatherGateway:
    """Resolve weather queries from the network or the cache.

    Online, the upstream answer is authoritative: fetch errors are returned
    as failures even when the cache holds data for the query. Offline, only
    a non-expired cache entry is served.
    """

    def __init__(
        self,
        client: WeatherFetcher,
        cache: WeatherCache,
        connectivity: ConnectivityChecker,
    ) -> None:
        """Initialize gateway with its collaborators."""
        self._client = client
        self._cache = cache
        self._connectivity = connectivity

    async def resolve(
        self,
        query: Query,
        cancel_token: CancelToken | None = None,
    ) -> WeatherResult:
        """Get current weather for a query.

        Never raises: every outcome is a ``Success`` or a ``Failure``.
        """
        try:
            connected = await self._connectivity.is_connected()
        except Exception as e:
            logger.exception("Connectivity check failed", cache_key=query.cache_key)
            return self._record(GenericFailure(f"Failed to check connectivity: {e}"), "network")

        if connected:
            return await self._resolve_online(query, cancel_token)
        return await self._resolve_offline(query)

    async def cached(self, query: Query) -> WeatherResult:
        """Get the non-expired cached record for a query, without the network."""
        try:
            record = await self._cache.read_valid(query.cache_key)
        except CacheError as e:
            return self._record(CacheFailure(e.message), "cache")
        except Exception as e:
            return self._record(
                CacheFailure(f"Failed to retrieve cached weather: {e}"), "cache"
            )

        if record is None:
            return self._record(CacheMissFailure(), "cache")
        return self._record(Success(record), "cache")

    async def _resolve_online(
        self,
        query: Query,
        cancel_token: CancelToken | None,
    ) -> WeatherResult:
        logger.info("Fetching from upstream", cache_key=query.cache_key)

        try:
            record = await self._fetch(query, cancel_token)
        except NetworkError as e:
            return self._record(NetworkFailure(e.message), "network")
        except UpstreamTimeoutError as e:
            return self._record(TimeoutFailure(e.message), "network")
        except UpstreamAPIError as e:
            return self._record(ApiFailure(e.message, e.status_code), "network")
        except InvalidDataError as e:
            return self._record(InvalidDataFailure(e.message), "network")
        except Exception as e:
            logger.exception("Unexpected fetch error", cache_key=query.cache_key)
            return self._record(GenericFailure(f"Failed to fetch weather: {e}"), "network")

        try:
            await self._cache.write(record, key=query.cache_key)
        except Exception as e:
            # The fresh record is still returned
            logger.warning(
                "Failed to cache fetched weather",
                cache_key=query.cache_key,
                error=str(e),
            )

        return self._record(Success(record), "network")

    async def _resolve_offline(self, query: Query) -> WeatherResult:
        logger.info("Offline, looking up cache", cache_key=query.cache_key)

        try:
            record = await self._cache.read_valid(query.cache_key)
        except CacheError as e:
            return self._record(CacheFailure(e.message), "cache")
        except Exception as e:
            return self._record(
                CacheFailure(f"Failed to retrieve cached weather: {e}"), "cache"
            )

        if record is None:
            return self._record(NetworkFailure(OFFLINE_MISS_MESSAGE), "cache")
        return self._record(Success(record), "cache")

    async def _fetch(self, query: Query, cancel_token: CancelToken | None) -> WeatherRecord:
        if isinstance(query, ByCoordinates):
            return await self._client.fetch_by_coordinates(
                query.latitude, query.longitude, cancel_token=cancel_token
            )
        if isinstance(query, ByCity):
            return await self._client.fetch_by_city(query.name, cancel_token=cancel_token)
        raise TypeError(f"Unsupported query type: {type(query).__name__}")

    def _record(self, result: WeatherResult, source: str) -> WeatherResult:
        if isinstance(result, Failure):
            outcome = type(result).__name__
            logger.warning(
                "Weather request failed",
                source=source,
                failure=outcome,
                detail=result.message,
            )
        else:
            outcome = "success"
        gateway_results.labels(source=source, outcome=outcome).inc()
        return result
