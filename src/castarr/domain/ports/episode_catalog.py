"""Port for resolving the episode list of a source."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from castarr.domain.entities.playback import Episode


@runtime_checkable
class EpisodeCatalogPort(Protocol):
    """Supplies the ordered episodes a source offers for a content item."""

    async def get_episodes(self, source: str, content_id: str) -> list[Episode]: ...
