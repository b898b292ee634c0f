"""Tests for key-value storage backends."""

import json
import os
from pathlib import Path

import pytest

from geo_weather.config import Settings
from geo_weather.exceptions import CacheError
from geo_weather.services.storage import JsonFileStorage, MemoryStorage, create_storage


class TestMemoryStorage:
    """Tests for MemoryStorage."""

    @pytest.mark.asyncio
    async def test_typed_values(self, storage: MemoryStorage) -> None:
        """Test set and get for each value type."""
        await storage.set_string("s", "value")
        await storage.set_int("i", 42)
        await storage.set_bool("b", True)

        assert await storage.get_string("s") == "value"
        assert await storage.get_int("i") == 42
        assert await storage.get_bool("b") is True

    @pytest.mark.asyncio
    async def test_missing_key(self, storage: MemoryStorage) -> None:
        """Test missing keys return None."""
        assert await storage.get_string("missing") is None
        assert await storage.get_int("missing") is None

    @pytest.mark.asyncio
    async def test_wrong_type_raises(self, storage: MemoryStorage) -> None:
        """Test reading a value as the wrong type."""
        await storage.set_string("s", "value")
        with pytest.raises(CacheError):
            await storage.get_int("s")

    @pytest.mark.asyncio
    async def test_bool_is_not_int(self, storage: MemoryStorage) -> None:
        """Test booleans are not returned as integers."""
        await storage.set_bool("b", False)
        with pytest.raises(CacheError):
            await storage.get_int("b")

    @pytest.mark.asyncio
    async def test_remove_and_clear(self, storage: MemoryStorage) -> None:
        """Test removal of one key and all keys."""
        await storage.set_string("a", "1")
        await storage.set_string("b", "2")

        await storage.remove("a")
        await storage.remove("never-set")
        assert await storage.get_string("a") is None
        assert await storage.get_string("b") == "2"

        await storage.clear()
        assert len(storage) == 0

    @pytest.mark.asyncio
    async def test_max_entries(self) -> None:
        """Test least recently used keys are dropped."""
        storage = MemoryStorage(max_entries=2)
        await storage.set_int("a", 1)
        await storage.set_int("b", 2)
        await storage.set_int("c", 3)

        assert len(storage) == 2
        assert await storage.get_int("a") is None
        assert await storage.get_int("c") == 3

    def test_is_healthy(self, storage: MemoryStorage) -> None:
        """Test health check."""
        assert storage.is_healthy() is True


class TestJsonFileStorage:
    """Tests for JsonFileStorage."""

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path: Path) -> None:
        """Test values survive a new storage instance."""
        path = tmp_path / "cache.json"
        storage = JsonFileStorage(path)
        await storage.set_string("s", "value")
        await storage.set_int("i", 7)

        reopened = JsonFileStorage(path)
        assert await reopened.get_string("s") == "value"
        assert await reopened.get_int("i") == 7
        assert json.loads(path.read_text(encoding="utf-8")) == {"s": "value", "i": 7}

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        """Test a missing file behaves as empty storage."""
        storage = JsonFileStorage(tmp_path / "absent.json")
        assert await storage.get_string("s") is None

    @pytest.mark.asyncio
    async def test_remove_and_clear(self, tmp_path: Path) -> None:
        """Test removal is persisted."""
        path = tmp_path / "cache.json"
        storage = JsonFileStorage(path)
        await storage.set_string("a", "1")
        await storage.set_string("b", "2")

        await storage.remove("a")
        assert await JsonFileStorage(path).get_string("a") is None

        await storage.clear()
        assert json.loads(path.read_text(encoding="utf-8")) == {}

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        """Test unreadable content is a cache error."""
        path = tmp_path / "cache.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(CacheError):
            await JsonFileStorage(path).get_string("s")

    @pytest.mark.asyncio
    async def test_failed_write_leaves_state_unchanged(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a failed write leaves memory and disk unchanged."""
        path = tmp_path / "cache.json"
        storage = JsonFileStorage(path)
        await storage.set_string("a", "1")

        def fail_replace(src: str, dst: str) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)

        with pytest.raises(CacheError):
            await storage.set_string("b", "2")
        with pytest.raises(CacheError):
            await storage.remove("a")
        with pytest.raises(CacheError):
            await storage.clear()

        assert await storage.get_string("b") is None
        assert await storage.get_string("a") == "1"
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": "1"}
        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]

    def test_is_healthy(self, tmp_path: Path) -> None:
        """Test health check on a writable directory."""
        assert JsonFileStorage(tmp_path / "cache.json").is_healthy() is True


class TestCreateStorage:
    """Tests for backend selection."""

    def test_memory_by_default(self) -> None:
        """Test memory storage without a path."""
        assert isinstance(create_storage(Settings(storage_path=None)), MemoryStorage)

    def test_file_with_path(self, tmp_path: Path) -> None:
        """Test file storage when a path is configured."""
        settings = Settings(storage_path=str(tmp_path / "cache.json"))
        assert isinstance(create_storage(settings), JsonFileStorage)
