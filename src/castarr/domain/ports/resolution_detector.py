"""Port for detecting the resolution label of a manifest."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from castarr.domain.cancellation import CancelToken


@runtime_checkable
class ResolutionDetectorPort(Protocol):
    """Returns a label such as ``"1080p"`` or ``None`` when unknown.

    Implementations never raise; failures yield ``None``.
    """

    async def detect(
        self, url: str, cancel: CancelToken | None = None
    ) -> str | None: ...
