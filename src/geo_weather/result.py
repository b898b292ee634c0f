"""Result type returned by the weather gateway.

A call resolves to exactly one of two arms: ``Success`` carrying the value,
or one of the ``Failure`` subclasses carrying a human-readable message.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from geo_weather.models import WeatherRecord

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful result."""

    value: T


@dataclass(frozen=True)
class Failure:
    """Base failure."""

    message: str = "An error occurred"


@dataclass(frozen=True)
class NetworkFailure(Failure):
    """No connectivity and no usable cache, or a transport connection error."""

    message: str = "Network error occurred"


@dataclass(frozen=True)
class TimeoutFailure(Failure):
    """The upstream request timed out."""

    message: str = "Request timeout"


@dataclass(frozen=True)
class ApiFailure(Failure):
    """Upstream responded with a non-success status."""

    message: str = "API error occurred"
    status_code: int | None = None


@dataclass(frozen=True)
class InvalidDataFailure(Failure):
    """Upstream response could not be parsed into a weather record."""

    message: str = "Invalid data received"


@dataclass(frozen=True)
class CacheFailure(Failure):
    """The storage layer errored."""

    message: str = "Cache error occurred"


@dataclass(frozen=True)
class CacheMissFailure(CacheFailure):
    """A cache-only lookup found no non-expired entry."""

    message: str = "No cached weather found for this location"


@dataclass(frozen=True)
class GenericFailure(Failure):
    """Any other unexpected error."""


WeatherResult = Success[WeatherRecord] | Failure
