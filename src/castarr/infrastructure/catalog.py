"""In-memory episode catalog filled from ranked candidate sources."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from castarr.domain.entities.playback import Episode


class InMemoryEpisodeCatalog:
    """Episode lists keyed by ``(source, content_id)``."""

    def __init__(self) -> None:
        self._episodes: dict[tuple[str, str], tuple[Episode, ...]] = {}
        self._lock = threading.Lock()

    def register(
        self, source: str, content_id: str, episodes: Iterable[Episode]
    ) -> None:
        with self._lock:
            self._episodes[(source, content_id)] = tuple(episodes)

    async def get_episodes(self, source: str, content_id: str) -> list[Episode]:
        with self._lock:
            return list(self._episodes.get((source, content_id), ()))
