"""Port for surfacing non-fatal notifications to the UI collaborator."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from castarr.domain.entities.playback import Notification


@runtime_checkable
class NotifierPort(Protocol):
    def notify(self, notification: Notification) -> None: ...
