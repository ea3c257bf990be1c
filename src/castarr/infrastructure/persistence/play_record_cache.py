"""Play record store backed by CachePort (diskcache/redis)."""

from __future__ import annotations

import json

import structlog

from castarr.domain.entities.playback import PlayRecord
from castarr.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

_SECONDS_PER_DAY = 86_400


def _key(source: str, content_id: str) -> str:
    return f"playrecord:{source}:{content_id}"


def _serialize_record(record: PlayRecord) -> str:
    return json.dumps(
        {
            "title": record.title,
            "poster": record.poster,
            "episode_index": record.episode_index,
            "total_episodes": record.total_episodes,
            "position_sec": record.position_sec,
            "total_sec": record.total_sec,
            "intro_end_millis": record.intro_end_millis,
            "outro_start_millis": record.outro_start_millis,
        }
    )


def _deserialize_record(data: str) -> PlayRecord:
    d = json.loads(data)
    return PlayRecord(
        title=d["title"],
        poster=d.get("poster", ""),
        episode_index=int(d.get("episode_index", 0)),
        total_episodes=int(d.get("total_episodes", 0)),
        position_sec=int(d.get("position_sec", 0)),
        total_sec=int(d.get("total_sec", 0)),
        intro_end_millis=d.get("intro_end_millis"),
        outro_start_millis=d.get("outro_start_millis"),
    )


class CachePlayRecordStore:
    """Persists one :class:`PlayRecord` per ``(source, content_id)``.

    Backend errors propagate to the caller; corrupt entries read as
    ``None``.
    """

    def __init__(self, cache: CachePort, ttl_days: int = 365) -> None:
        self.cache = cache
        self.ttl = ttl_days * _SECONDS_PER_DAY

    async def save(self, source: str, content_id: str, record: PlayRecord) -> None:
        await self.cache.set(
            _key(source, content_id), _serialize_record(record), ttl=self.ttl
        )
        log.debug(
            "play_record_saved",
            source=source,
            content_id=content_id,
            episode_index=record.episode_index,
            position_sec=record.position_sec,
        )

    async def get(self, source: str, content_id: str) -> PlayRecord | None:
        data = await self.cache.get(_key(source, content_id))
        if data is None:
            return None
        try:
            return _deserialize_record(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.error(
                "play_record_deserialize_error",
                source=source,
                content_id=content_id,
                error=str(e),
            )
            return None
