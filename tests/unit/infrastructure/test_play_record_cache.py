"""Tests for CachePlayRecordStore."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from castarr.domain.entities.playback import PlayRecord
from castarr.infrastructure.persistence.play_record_cache import (
    CachePlayRecordStore,
    _serialize_record,
)


def _make_record(**overrides) -> PlayRecord:
    values = dict(
        title="Show",
        poster="https://img.example.com/p.jpg",
        episode_index=2,
        total_episodes=12,
        position_sec=754,
        total_sec=1420,
        intro_end_millis=85_000.0,
        outro_start_millis=None,
    )
    values.update(overrides)
    return PlayRecord(**values)


class TestCachePlayRecordStore:
    async def test_save_stores_json_record(self, mock_cache: AsyncMock) -> None:
        store = CachePlayRecordStore(cache=mock_cache)
        await store.save("bfzy", "42", _make_record())

        mock_cache.set.assert_awaited_once()
        key, value = mock_cache.set.call_args[0]
        assert key == "playrecord:bfzy:42"
        restored = json.loads(value)
        assert restored["episode_index"] == 2
        assert restored["position_sec"] == 754
        assert restored["outro_start_millis"] is None

    async def test_save_uses_configured_ttl(self, mock_cache: AsyncMock) -> None:
        store = CachePlayRecordStore(cache=mock_cache, ttl_days=2)
        await store.save("bfzy", "42", _make_record())
        assert mock_cache.set.call_args[1]["ttl"] == 2 * 86_400

    async def test_get_returns_record(self, mock_cache: AsyncMock) -> None:
        record = _make_record()
        mock_cache.get = AsyncMock(return_value=_serialize_record(record))
        store = CachePlayRecordStore(cache=mock_cache)

        assert await store.get("bfzy", "42") == record
        mock_cache.get.assert_awaited_once_with("playrecord:bfzy:42")

    async def test_get_missing(self, mock_cache: AsyncMock) -> None:
        store = CachePlayRecordStore(cache=mock_cache)
        assert await store.get("bfzy", "nope") is None

    async def test_get_corrupt_entry(self, mock_cache: AsyncMock) -> None:
        mock_cache.get = AsyncMock(return_value="{not json")
        store = CachePlayRecordStore(cache=mock_cache)
        assert await store.get("bfzy", "42") is None

    async def test_get_missing_title(self, mock_cache: AsyncMock) -> None:
        mock_cache.get = AsyncMock(return_value=json.dumps({"episode_index": 1}))
        store = CachePlayRecordStore(cache=mock_cache)
        assert await store.get("bfzy", "42") is None

    async def test_backend_errors_propagate(self, mock_cache: AsyncMock) -> None:
        mock_cache.set = AsyncMock(side_effect=OSError("disk full"))
        store = CachePlayRecordStore(cache=mock_cache)
        with pytest.raises(OSError):
            await store.save("bfzy", "42", _make_record())

    async def test_last_write_wins_on_diskcache(self, tmp_path) -> None:
        from castarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter

        async with DiskcacheAdapter(directory=tmp_path / "cache") as cache:
            store = CachePlayRecordStore(cache=cache)
            await store.save("bfzy", "42", _make_record(position_sec=10))
            await store.save("bfzy", "42", _make_record(position_sec=20))
            result = await store.get("bfzy", "42")

        assert result is not None
        assert result.position_sec == 20
