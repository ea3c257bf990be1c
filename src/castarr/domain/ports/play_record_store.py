"""Port for play record persistence."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from castarr.domain.entities.playback import PlayRecord


@runtime_checkable
class PlayRecordStorePort(Protocol):
    """Async key-value interface keyed by ``(source, content_id)``.

    Last write wins; no versioning or transactions.
    """

    async def get(self, source: str, content_id: str) -> PlayRecord | None: ...

    async def save(self, source: str, content_id: str, record: PlayRecord) -> None: ...
