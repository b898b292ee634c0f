"""Exceptions raised by the fetcher and the cache.

These never cross the gateway boundary: ``WeatherGateway`` converts each of
them into the matching failure from :mod:`geo_weather.result`.
"""


class WeatherError(Exception):
    """Base exception for weather data errors."""

    default_message = "An error occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(WeatherError):
    """Raised on connection errors and cancelled requests."""

    default_message = "Network error occurred"


class UpstreamTimeoutError(WeatherError):
    """Raised when the upstream request exceeds its timeout."""

    default_message = "Request timeout"


class UpstreamAPIError(WeatherError):
    """Raised when upstream responds with a non-success status."""

    default_message = "API error occurred"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidDataError(WeatherError):
    """Raised when an upstream response cannot be validated."""

    default_message = "Invalid data received"


class CacheError(WeatherError):
    """Raised when the storage layer fails (not on a cache miss)."""

    default_message = "Cache error occurred"
