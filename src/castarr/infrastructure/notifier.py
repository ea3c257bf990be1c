"""Notifier that writes notifications to the structured log."""

from __future__ import annotations

import structlog

from castarr.domain.entities.playback import Notification

log = structlog.get_logger(__name__)

_LOG_METHODS = {
    "info": "info",
    "success": "info",
    "warning": "warning",
    "error": "error",
}


class LogNotifier:
    """Default :class:`NotifierPort` for headless use (API, CLI)."""

    def notify(self, notification: Notification) -> None:
        emit = getattr(log, _LOG_METHODS.get(notification.level, "info"))
        emit(
            "notification",
            notification_level=notification.level,
            title=notification.title,
            detail=notification.detail,
        )
