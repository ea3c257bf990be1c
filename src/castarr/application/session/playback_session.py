"""Playback session state machine.

One session drives one viewer through the episodes of a content item::

    IDLE -> LOADING -> READY -> {PLAYING, PAUSED, SEEKING} -> ENDED

All mutation goes through the named operations below; callers read the
state through :meth:`PlaybackSession.snapshot`.  Async operations are
serialized by a per-session :class:`asyncio.Lock`.  Collaborator I/O in
:meth:`PlaybackSession.load_session` runs outside the lock so a newer
load can supersede an older one.

Timers are evaluated lazily against the injected clock: the seek settle
window, the progress save throttle and the loading watchdog are applied
by the next operation or :meth:`PlaybackSession.snapshot`.  While the
engine buffers an episode a loop timer also fires the watchdog, so a
stalled engine that sends no further events still surfaces an error.
"""

from __future__ import annotations

import asyncio

import structlog

from castarr.domain.cancellation import CancelToken
from castarr.domain.entities.playback import (
    Episode,
    Notification,
    NotificationLevel,
    PlaybackStatus,
    PlayRecord,
    ProgressUpdate,
    SessionState,
)
from castarr.domain.exceptions import OperationCancelled, SessionLoadError
from castarr.domain.ports.clock import ClockPort
from castarr.domain.ports.episode_catalog import EpisodeCatalogPort
from castarr.domain.ports.notifier import NotifierPort
from castarr.domain.ports.play_record_store import PlayRecordStorePort
from castarr.domain.ports.player import PlayerHandlePort
from castarr.infrastructure.clock import SystemClock

log = structlog.get_logger(__name__)

# States in which the engine has an episode it can pause/resume.
_ACTIVE = frozenset(
    {
        PlaybackStatus.READY,
        PlaybackStatus.PLAYING,
        PlaybackStatus.PAUSED,
        PlaybackStatus.SEEKING,
    }
)


class PlaybackSession:
    """Stateful controller for one viewer's playback."""

    def __init__(
        self,
        catalog: EpisodeCatalogPort,
        store: PlayRecordStorePort,
        *,
        notifier: NotifierPort | None = None,
        clock: ClockPort | None = None,
        save_throttle_seconds: float = 10.0,
        seek_settle_seconds: float = 0.5,
        load_timeout_seconds: float = 60.0,
        near_end_ratio: float = 0.95,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._notifier = notifier
        self._clock = clock or SystemClock()
        self._save_throttle = save_throttle_seconds
        self._seek_settle = seek_settle_seconds
        self._load_timeout = load_timeout_seconds
        self._near_end_ratio = near_end_ratio

        self._lock = asyncio.Lock()
        self._player: PlayerHandlePort | None = None
        self._generation = 0
        self._load_cancel: CancelToken | None = None
        self._watchdog: asyncio.TimerHandle | None = None
        self._clear()

    # -- internal state -------------------------------------------------

    def _clear(self) -> None:
        self._cancel_watchdog()
        self._source: str | None = None
        self._content_id: str | None = None
        self._title = ""
        self._poster = ""
        self._episodes: tuple[Episode, ...] = ()
        self._index = 0
        self._status = PlaybackStatus.IDLE
        self._initial_resume_millis = 0.0
        self._intro_end_millis: float | None = None
        self._outro_start_millis: float | None = None
        self._clear_episode_progress()
        self._load_pending = False
        self._loading_since: float | None = None
        self._seek_started_at: float | None = None
        self._status_before_seek = PlaybackStatus.PAUSED
        self._last_save_at: float | None = None

    def _clear_episode_progress(self) -> None:
        self._position_millis = 0.0
        self._duration_millis: float | None = None
        self._seek_ratio = 0.0
        self._progress_ratio = 0.0
        self._show_next_hint = False

    def _notify(self, level: NotificationLevel, title: str, detail: str = "") -> None:
        if self._notifier is not None:
            self._notifier.notify(Notification(level=level, title=title, detail=detail))

    def _has_next(self) -> bool:
        return self._index < len(self._episodes) - 1

    def _is_loaded(self) -> bool:
        return self._status in _ACTIVE and self._duration_millis is not None

    def _awaiting_episode(self) -> bool:
        return (
            self._status is PlaybackStatus.LOADING and self._duration_millis is None
        )

    def _enter_loading(self) -> None:
        self._status = PlaybackStatus.LOADING
        self._loading_since = self._clock.monotonic()

    def _await_engine(self) -> None:
        """LOADING while the engine buffers; armed with a loop watchdog."""
        self._enter_loading()
        self._cancel_watchdog()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._watchdog = loop.call_later(
            self._load_timeout, self._on_watchdog, self._loading_since
        )

    def _cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    def _on_watchdog(self, loading_since: float | None) -> None:
        self._watchdog = None
        if (
            self._status is PlaybackStatus.LOADING
            and self._loading_since == loading_since
        ):
            self._expire_loading()

    def _expire_loading(self) -> None:
        log.warning(
            "session_load_watchdog_expired",
            source=self._source,
            content_id=self._content_id,
            episode_index=self._index,
        )
        if self._load_pending:
            self._abandon_load("watchdog")
            self._clear()
        else:
            self._cancel_watchdog()
            self._status = PlaybackStatus.PAUSED
            self._loading_since = None
        self._notify("error", "Playback timed out", "Please try again.")

    def _refresh(self) -> None:
        """Apply expired timers (seek settle, loading watchdog)."""
        now = self._clock.monotonic()

        if (
            self._status is PlaybackStatus.SEEKING
            and self._seek_started_at is not None
            and now - self._seek_started_at >= self._seek_settle
        ):
            self._status = self._status_before_seek
            self._seek_started_at = None

        if (
            self._status is PlaybackStatus.LOADING
            and self._loading_since is not None
            and now - self._loading_since >= self._load_timeout
        ):
            self._expire_loading()

    def _abandon_load(self, reason: str) -> None:
        self._generation += 1
        if self._load_cancel is not None:
            self._load_cancel.cancel(reason)
            self._load_cancel = None

    # -- snapshot -------------------------------------------------------

    def snapshot(self) -> SessionState:
        """Current state, after applying any expired timers."""
        self._refresh()
        return SessionState(
            source=self._source,
            content_id=self._content_id,
            episodes=self._episodes,
            current_episode_index=self._index,
            status=self._status,
            initial_resume_millis=self._initial_resume_millis,
            intro_end_millis=self._intro_end_millis,
            outro_start_millis=self._outro_start_millis,
            position_millis=self._position_millis,
            duration_millis=self._duration_millis,
            seek_ratio=self._seek_ratio,
            progress_ratio=self._progress_ratio,
            show_next_episode_hint=self._show_next_hint,
        )

    # -- player handle --------------------------------------------------

    def attach_player(self, player: PlayerHandlePort) -> None:
        self._player = player

    def detach_player(self) -> None:
        self._player = None

    # -- loading --------------------------------------------------------

    async def _read_inputs(
        self, source: str, content_id: str
    ) -> tuple[list[Episode], PlayRecord | None]:
        episodes = await self._catalog.get_episodes(source, content_id)
        try:
            record = await self._store.get(source, content_id)
        except Exception as exc:
            log.warning(
                "play_record_read_failed",
                source=source,
                content_id=content_id,
                error=str(exc),
            )
            record = None
        return episodes, record

    async def load_session(
        self,
        source: str,
        content_id: str,
        episode_index: int = 0,
        resume_sec: float | None = None,
        *,
        title: str = "",
        poster: str = "",
    ) -> bool:
        """Load episodes and saved progress for ``(source, content_id)``.

        Returns ``True`` when the session committed and is READY.  A load
        that is superseded by a newer call returns ``False`` without
        touching the session.  Fatal failures (no episodes, index out of
        range, catalog error, timeout) notify and leave the session IDLE.
        """
        async with self._lock:
            self._abandon_load("superseded")
            generation = self._generation
            token = CancelToken()
            self._load_cancel = token
            self._load_pending = True
            self._cancel_watchdog()
            self._enter_loading()

        log.info(
            "session_load_started",
            source=source,
            content_id=content_id,
            episode_index=episode_index,
        )

        try:
            episodes, record = await asyncio.wait_for(
                token.guard(self._read_inputs(source, content_id)),
                timeout=self._load_timeout,
            )
            if not episodes:
                raise SessionLoadError(f"no episodes for {source}/{content_id}")
            if not 0 <= episode_index < len(episodes):
                raise SessionLoadError(
                    f"episode index {episode_index} out of range (0..{len(episodes) - 1})"
                )
        except OperationCancelled:
            log.info("session_load_superseded", source=source, content_id=content_id)
            return False
        except Exception as exc:
            async with self._lock:
                if generation != self._generation:
                    return False
                self._load_cancel = None
                self._clear()
            reason = (
                "timed out" if isinstance(exc, asyncio.TimeoutError) else str(exc)
            )
            log.error(
                "session_load_failed",
                source=source,
                content_id=content_id,
                error_type=type(exc).__name__,
                error=reason,
            )
            self._notify("error", "Failed to load playback", reason)
            return False

        async with self._lock:
            if generation != self._generation:
                log.info("session_load_discarded", source=source, content_id=content_id)
                return False

            self._load_cancel = None
            self._clear()
            self._source = source
            self._content_id = content_id
            self._title = title or (record.title if record else "")
            self._poster = poster or (record.poster if record else "")
            self._episodes = tuple(episodes)
            self._index = episode_index
            if resume_sec is not None:
                self._initial_resume_millis = resume_sec * 1000
            elif record is not None and record.position_sec:
                self._initial_resume_millis = record.position_sec * 1000
            if record is not None:
                self._intro_end_millis = record.intro_end_millis
                self._outro_start_millis = record.outro_start_millis
            self._status = PlaybackStatus.READY

        log.info(
            "session_loaded",
            source=source,
            content_id=content_id,
            episodes=len(episodes),
            episode_index=episode_index,
            resume_millis=self._initial_resume_millis,
        )
        return True

    async def on_load_start(self) -> None:
        """The engine started buffering the current episode."""
        async with self._lock:
            self._refresh()
            if self._episodes:
                self._await_engine()

    async def on_loaded(self, duration_millis: float) -> None:
        """The engine finished loading; jump to the resume/intro point once."""
        async with self._lock:
            self._refresh()
            if not self._episodes:
                return
            self._duration_millis = duration_millis
            self._position_millis = 0.0
            self._status = PlaybackStatus.READY
            self._loading_since = None
            self._cancel_watchdog()

            target = max(self._initial_resume_millis, self._intro_end_millis or 0.0)
            if target > 0 and self._player is not None:
                self._player.seek(target / 1000)
                log.debug("session_initial_seek", target_millis=target)

    # -- playback events ------------------------------------------------

    async def on_progress(
        self, position_millis: float, duration_millis: float
    ) -> ProgressUpdate:
        """Handle a progress tick from the engine."""
        async with self._lock:
            self._refresh()
            if not self._episodes or self._status is PlaybackStatus.IDLE:
                return ProgressUpdate()
            # Ticks of the previous stream arriving before on_loaded.
            if self._awaiting_episode():
                return ProgressUpdate()

            outro = self._outro_start_millis
            if (
                outro
                and duration_millis
                and position_millis >= duration_millis - outro
                and self._has_next()
            ):
                log.info("session_outro_skip", episode_index=self._index)
                self._play_episode(self._index + 1)
                return ProgressUpdate(advanced=True)

            if self._status is PlaybackStatus.SEEKING:
                self._status_before_seek = PlaybackStatus.PLAYING
            else:
                self._status = PlaybackStatus.PLAYING
            self._loading_since = None
            self._cancel_watchdog()
            self._position_millis = position_millis
            self._duration_millis = duration_millis or None
            self._progress_ratio = (
                position_millis / duration_millis if duration_millis else 0.0
            )

            if not duration_millis:
                return ProgressUpdate()

            persisted = await self._persist(immediate=False)
            near_end = (
                position_millis / duration_millis > self._near_end_ratio
                and self._has_next()
                and not outro
            )
            self._show_next_hint = near_end
            return ProgressUpdate(persisted=persisted, near_end=near_end)

    async def on_end(self) -> bool:
        """The current episode finished; returns ``True`` if it advanced."""
        async with self._lock:
            self._refresh()
            if not self._episodes:
                return False
            if self._awaiting_episode():
                return False
            if self._has_next():
                return self._play_episode(self._index + 1)
            self._status = PlaybackStatus.ENDED
            self._show_next_hint = False
            return False

    async def on_playback_error(self, message: str) -> None:
        log.error(
            "playback_error",
            source=self._source,
            content_id=self._content_id,
            episode_index=self._index,
            error=message,
        )
        self._notify("error", "Playback error", message)

    # -- user controls --------------------------------------------------

    def _play_episode(self, index: int) -> bool:
        if not 0 <= index < len(self._episodes):
            return False
        self._index = index
        self._initial_resume_millis = 0.0
        self._seek_started_at = None
        self._clear_episode_progress()
        self._await_engine()
        log.info("session_episode_selected", episode_index=index)
        return True

    async def play_episode(self, index: int) -> bool:
        """Switch to episode *index*; out-of-range indices are ignored."""
        async with self._lock:
            self._refresh()
            return self._play_episode(index)

    async def toggle_play_pause(self) -> None:
        async with self._lock:
            self._refresh()
            if self._player is None or self._status not in _ACTIVE:
                return
            current = (
                self._status_before_seek
                if self._status is PlaybackStatus.SEEKING
                else self._status
            )
            if current is PlaybackStatus.PLAYING:
                self._player.pause()
                new = PlaybackStatus.PAUSED
            else:
                self._player.resume()
                new = PlaybackStatus.PLAYING
            if self._status is PlaybackStatus.SEEKING:
                self._status_before_seek = new
            else:
                self._status = new

    async def seek(self, target_millis: float) -> None:
        """Seek immediately; the SEEKING state settles after a short window."""
        async with self._lock:
            self._refresh()
            if not self._episodes:
                return
            if self._status is not PlaybackStatus.SEEKING:
                self._status_before_seek = (
                    PlaybackStatus.PLAYING
                    if self._status is PlaybackStatus.PLAYING
                    else PlaybackStatus.PAUSED
                )
            self._status = PlaybackStatus.SEEKING
            self._seek_started_at = self._clock.monotonic()
            self._seek_ratio = (
                target_millis / self._duration_millis if self._duration_millis else 0.0
            )
            if self._player is not None:
                self._player.seek(target_millis / 1000)

    async def set_intro_end_time(self) -> float | None:
        """Toggle the intro skip point at the current position.

        Returns the new value (``None`` when cleared or not loaded).
        """
        async with self._lock:
            self._refresh()
            if not self._is_loaded():
                return None
            if self._intro_end_millis is not None:
                self._intro_end_millis = None
                await self._persist(immediate=True)
                self._notify("info", "Intro mark cleared")
                return None
            self._intro_end_millis = self._position_millis
            await self._persist(immediate=True)
            self._notify("success", "Intro mark saved", "Intro end time recorded.")
            return self._intro_end_millis

    async def set_outro_start_time(self) -> float | None:
        """Toggle the outro skip point as an offset from the end."""
        async with self._lock:
            self._refresh()
            if not self._is_loaded():
                return None
            if self._outro_start_millis is not None:
                self._outro_start_millis = None
                await self._persist(immediate=True)
                self._notify("info", "Outro mark cleared")
                return None
            if not self._duration_millis:
                return None
            self._outro_start_millis = self._duration_millis - self._position_millis
            await self._persist(immediate=True)
            self._notify("success", "Outro mark saved", "Outro start time recorded.")
            return self._outro_start_millis

    # -- persistence ----------------------------------------------------

    async def _persist(self, *, immediate: bool) -> bool:
        if (
            self._source is None
            or self._content_id is None
            or not self._is_loaded()
        ):
            return False

        now = self._clock.monotonic()
        if (
            not immediate
            and self._last_save_at is not None
            and now - self._last_save_at < self._save_throttle
        ):
            return False

        record = PlayRecord(
            title=self._title,
            poster=self._poster,
            episode_index=self._index,
            total_episodes=len(self._episodes),
            position_sec=int(self._position_millis // 1000),
            total_sec=int((self._duration_millis or 0) // 1000),
            intro_end_millis=self._intro_end_millis,
            outro_start_millis=self._outro_start_millis,
        )
        try:
            await self._store.save(self._source, self._content_id, record)
        except Exception as exc:
            log.error(
                "play_record_save_failed",
                source=self._source,
                content_id=self._content_id,
                error=str(exc),
            )
            self._notify("error", "Could not save progress", str(exc))
            return False
        self._last_save_at = now
        return True

    async def persist_progress(self, immediate: bool = False) -> bool:
        """Write a progress snapshot; returns ``True`` if a write happened.

        Non-immediate writes are dropped within the throttle window of the
        previous write.
        """
        async with self._lock:
            self._refresh()
            return await self._persist(immediate=immediate)

    def reset(self) -> None:
        """Return to IDLE; persisted records are left untouched."""
        self._abandon_load("reset")
        self._clear()
        log.debug("session_reset")
