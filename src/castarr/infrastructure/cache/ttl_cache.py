"""In-process TTL cache with lazy expiry.

Used for probe results (keyed by probe URL), filter results (keyed by
playlist URL) and published playlists (keyed by token).  Entries are
immutable :class:`CacheEntry` objects; writes replace the whole entry.
Expiry is checked at read time only; there is no background sweep.
"""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

from castarr.domain.entities.sources import CacheEntry, CacheStats
from castarr.domain.ports.clock import ClockPort
from castarr.infrastructure.clock import SystemClock

T = TypeVar("T")


class TtlCache(Generic[T]):
    """Mutex-guarded mapping of key -> :class:`CacheEntry`."""

    def __init__(self, ttl_seconds: float, clock: ClockPort | None = None) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.ttl_seconds = ttl_seconds
        self._clock = clock or SystemClock()
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()

    def _is_fresh(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.stored_at < self.ttl_seconds

    def get(self, key: str) -> T | None:
        """Return the value for *key* if stored less than ``ttl_seconds`` ago."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not self._is_fresh(entry, self._clock.monotonic()):
            return None
        return entry.value

    def set(self, key: str, value: T) -> None:
        entry = CacheEntry(value=value, stored_at=self._clock.monotonic())
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        now = self._clock.monotonic()
        with self._lock:
            entries = list(self._entries.values())
        valid = sum(1 for entry in entries if self._is_fresh(entry, now))
        return CacheStats(total=len(entries), valid=valid, expired=len(entries) - valid)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
