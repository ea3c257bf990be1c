"""Domain entities for playback sessions and persisted progress."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

NotificationLevel = Literal["info", "success", "warning", "error"]


class PlaybackStatus(str, Enum):
    """Lifecycle states of a playback session."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    SEEKING = "seeking"
    ENDED = "ended"


@dataclass(frozen=True)
class Episode:
    url: str
    title: str = ""


@dataclass(frozen=True)
class PlayRecord:
    """Resumable progress for one ``(source, content_id)`` pair.

    Written as a full snapshot; the store keeps the last write.
    """

    title: str
    poster: str = ""
    episode_index: int = 0
    total_episodes: int = 0
    position_sec: int = 0
    total_sec: int = 0
    intro_end_millis: float | None = None
    outro_start_millis: float | None = None


@dataclass(frozen=True)
class Notification:
    """Non-fatal message surfaced to the UI collaborator."""

    level: NotificationLevel
    title: str
    detail: str = ""


@dataclass(frozen=True)
class SessionState:
    """Read-only snapshot of a playback session."""

    source: str | None
    content_id: str | None
    episodes: tuple[Episode, ...]
    current_episode_index: int
    status: PlaybackStatus
    initial_resume_millis: float = 0.0
    intro_end_millis: float | None = None
    outro_start_millis: float | None = None
    position_millis: float = 0.0
    duration_millis: float | None = None
    seek_ratio: float = 0.0
    progress_ratio: float = 0.0
    show_next_episode_hint: bool = False

    @property
    def current_episode(self) -> Episode | None:
        if 0 <= self.current_episode_index < len(self.episodes):
            return self.episodes[self.current_episode_index]
        return None

    @property
    def has_next_episode(self) -> bool:
        return self.current_episode_index < len(self.episodes) - 1


@dataclass(frozen=True)
class ProgressUpdate:
    """What a single progress event caused."""

    advanced: bool = False
    persisted: bool = False
    near_end: bool = False
