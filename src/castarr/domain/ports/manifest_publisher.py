"""Port for publishing filtered playlist text as a fetchable URL."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ManifestPublisherPort(Protocol):
    """Mints a URL that serves *content*.

    Returns ``None`` when the runtime cannot publish; callers then fall
    back to the original playlist URL.
    """

    def publish(self, content: str) -> str | None: ...
