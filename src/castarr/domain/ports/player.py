"""Port for the playback engine handle held by a session."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PlayerHandlePort(Protocol):
    """Engine controls.  The session holds the handle but does not own it."""

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def seek(self, seconds: float) -> None: ...
