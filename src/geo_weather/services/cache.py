"""Cache service for weather data."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog
from prometheus_client import Counter
from pydantic import ValidationError

from geo_weather.exceptions import CacheError
from geo_weather.models import WeatherRecord
from geo_weather.services.storage import KeyValueStorage

logger = structlog.get_logger()

KEY_PREFIX = "cached_weather_"
TIMESTAMP_SUFFIX = "_timestamp"

# Records younger than this are served without a network call
CACHE_EXPIRATION = timedelta(minutes=30)

# Metrics
cache_hits = Counter("cache_hits_total", "Total cache hits")
cache_misses = Counter("cache_misses_total", "Total cache misses")
cache_writes = Counter("cache_writes_total", "Total cache writes")


def utc_now() -> datetime:
    return datetime.now(UTC)


class WeatherCache:
    """Time-bounded weather cache on top of a key-value storage.

    Each entry is a serialized record plus the wall-clock time of the write,
    in epoch milliseconds. Expiry is judged lazily when an entry is read.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize cache with a storage backend and a clock."""
        self._storage = storage
        self._clock = clock

    def _make_keys(self, key: str) -> tuple[str, str]:
        record_key = f"{KEY_PREFIX}{key}"
        return record_key, f"{record_key}{TIMESTAMP_SUFFIX}"

    async def write(self, record: WeatherRecord, key: str | None = None) -> None:
        """Store a record, replacing any existing entry.

        Args:
            record: Record to store
            key: Cache key; defaults to the record's location ID
        """
        record_key, timestamp_key = self._make_keys(key if key is not None else str(record.id))
        stored_at = int(self._clock().timestamp() * 1000)

        try:
            await self._storage.set_string(record_key, record.to_cache_string())
            await self._storage.set_int(timestamp_key, stored_at)
        except CacheError:
            logger.error("Failed to cache weather", key=record_key)
            raise

        cache_writes.inc()
        logger.debug("Weather cached", key=record_key, record_id=record.id)

    async def read_valid(self, key: str) -> WeatherRecord | None:
        """Return the cached record if it has not expired."""
        if not await self.is_valid(key):
            cache_misses.inc()
            logger.debug("Cache miss or expired", key=key, cache_hit=False)
            return None
        return await self._read(key)

    async def read_stale(self, key: str) -> WeatherRecord | None:
        """Return the cached record regardless of its age."""
        return await self._read(key)

    async def is_valid(self, key: str) -> bool:
        """Check that an entry exists, has a timestamp, and has not expired."""
        record_key, timestamp_key = self._make_keys(key)

        if await self._storage.get_string(record_key) is None:
            return False

        stored_at = await self._storage.get_int(timestamp_key)
        if stored_at is None:
            # Entry from a writer that did not record a timestamp
            return False

        age = self._clock() - datetime.fromtimestamp(stored_at / 1000, tz=UTC)
        if age >= CACHE_EXPIRATION:
            logger.debug("Cache expired", key=key, age_minutes=int(age.total_seconds() // 60))
            return False
        return True

    async def evict(self, key: str) -> None:
        """Remove one entry together with its timestamp."""
        record_key, timestamp_key = self._make_keys(key)
        await self._storage.remove(record_key)
        await self._storage.remove(timestamp_key)
        logger.info("Cache cleared for key", key=key)

    async def clear_all(self) -> None:
        """Remove every entry from the backing storage."""
        await self._storage.clear()
        logger.info("All cache cleared")

    def is_healthy(self) -> bool:
        """Check if the backing storage is operational."""
        return self._storage.is_healthy()

    async def _read(self, key: str) -> WeatherRecord | None:
        record_key, _ = self._make_keys(key)
        payload = await self._storage.get_string(record_key)
        if payload is None:
            cache_misses.inc()
            return None

        try:
            record = WeatherRecord.from_cache_string(payload)
        except ValidationError as e:
            logger.error("Corrupt cache entry", key=key)
            raise CacheError(f"Failed to decode cached weather for {key!r}") from e

        cache_hits.inc()
        logger.debug("Cache hit", key=key, cache_hit=True)
        return record
