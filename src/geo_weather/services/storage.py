"""Key-value storage backends for the weather cache."""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

import structlog
from cachetools import LRUCache

from geo_weather.config import Settings
from geo_weather.exceptions import CacheError

logger = structlog.get_logger()


class KeyValueStorage(Protocol):
    """Async string/int/bool key-value store."""

    async def get_string(self, key: str) -> str | None: ...

    async def set_string(self, key: str, value: str) -> None: ...

    async def get_int(self, key: str) -> int | None: ...

    async def set_int(self, key: str, value: int) -> None: ...

    async def get_bool(self, key: str) -> bool | None: ...

    async def set_bool(self, key: str, value: bool) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def clear(self) -> None: ...

    def is_healthy(self) -> bool: ...


def _typed(key: str, value: Any, expected: type) -> Any:
    """Return a stored value, rejecting one of the wrong type."""
    if value is None:
        return None
    # bool is an int subclass; keep them apart
    if isinstance(value, expected) and (expected is bool or not isinstance(value, bool)):
        return value
    raise CacheError(f"Stored value for {key!r} is not of type {expected.__name__}")


class MemoryStorage:
    """Bounded in-process storage.

    Least recently used keys are dropped once ``max_entries`` is reached.
    """

    def __init__(self, max_entries: int = 10000) -> None:
        self._data: LRUCache[str, Any] = LRUCache(maxsize=max_entries)

    async def get_string(self, key: str) -> str | None:
        return _typed(key, self._data.get(key), str)

    async def set_string(self, key: str, value: str) -> None:
        self._data[key] = value

    async def get_int(self, key: str) -> int | None:
        return _typed(key, self._data.get(key), int)

    async def set_int(self, key: str, value: int) -> None:
        self._data[key] = value

    async def get_bool(self, key: str) -> bool | None:
        return _typed(key, self._data.get(key), bool)

    async def set_bool(self, key: str, value: bool) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def clear(self) -> None:
        self._data.clear()

    def is_healthy(self) -> bool:
        return isinstance(len(self._data), int)

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStorage:
    """Storage persisted to a single JSON file.

    The whole mapping is loaded once and rewritten on every change. Writes go
    through a temporary file and ``os.replace`` so a crash never leaves a
    truncated file behind.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    async def get_string(self, key: str) -> str | None:
        data = await self._load()
        return _typed(key, data.get(key), str)

    async def set_string(self, key: str, value: str) -> None:
        await self._update(key, value)

    async def get_int(self, key: str) -> int | None:
        data = await self._load()
        return _typed(key, data.get(key), int)

    async def set_int(self, key: str, value: int) -> None:
        await self._update(key, value)

    async def get_bool(self, key: str) -> bool | None:
        data = await self._load()
        return _typed(key, data.get(key), bool)

    async def set_bool(self, key: str, value: bool) -> None:
        await self._update(key, value)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await self._load()
            if key not in data:
                return
            updated = {k: v for k, v in data.items() if k != key}
            await asyncio.to_thread(self._dump, updated)
            self._data = updated

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._dump, {})
            self._data = {}

    def is_healthy(self) -> bool:
        directory = self._path.parent
        return directory.is_dir() and os.access(directory, os.W_OK)

    async def _update(self, key: str, value: Any) -> None:
        async with self._lock:
            updated = {**await self._load(), key: value}
            # Memory only follows the file once the write succeeded
            await asyncio.to_thread(self._dump, updated)
            self._data = updated

    async def _load(self) -> dict[str, Any]:
        if self._data is None:
            self._data = await asyncio.to_thread(self._read)
        return self._data

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            content = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CacheError(f"Failed to read storage file {self._path}: {e}") from e
        if not isinstance(content, dict):
            raise CacheError(f"Storage file {self._path} does not hold a JSON object")
        return content

    def _dump(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp_path, self._path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("Failed to write storage file", path=str(self._path), error=str(e))
            raise CacheError(f"Failed to write storage file {self._path}: {e}") from e


def create_storage(settings: Settings) -> KeyValueStorage:
    """Build the storage backend selected by settings."""
    if settings.storage_path:
        return JsonFileStorage(settings.storage_path)
    return MemoryStorage(settings.storage_max_entries)
