"""Shared test fixtures for the Castarr test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from castarr.domain.entities.playback import Episode, Notification, PlayRecord
from castarr.domain.entities.sources import CandidateSource

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def monotonic(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def levels(self) -> list[str]:
        return [n.level for n in self.notifications]


class FakePlayer:
    """Records engine calls."""

    def __init__(self) -> None:
        self.seeks: list[float] = []
        self.pauses = 0
        self.resumes = 0

    def pause(self) -> None:
        self.pauses += 1

    def resume(self) -> None:
        self.resumes += 1

    def seek(self, seconds: float) -> None:
        self.seeks.append(seconds)


class FakePlayRecordStore:
    """In-memory PlayRecordStorePort with call recording."""

    def __init__(self) -> None:
        self.records: dict[tuple[str, str], PlayRecord] = {}
        self.saves: list[tuple[str, str, PlayRecord]] = []
        self.fail_get = False
        self.fail_save = False

    async def get(self, source: str, content_id: str) -> PlayRecord | None:
        if self.fail_get:
            raise OSError("store offline")
        return self.records.get((source, content_id))

    async def save(self, source: str, content_id: str, record: PlayRecord) -> None:
        if self.fail_save:
            raise OSError("disk full")
        self.saves.append((source, content_id, record))
        self.records[(source, content_id)] = record


class FakeCatalog:
    def __init__(self, episodes: dict[tuple[str, str], list[Episode]] | None = None):
        self.episodes = episodes or {}

    async def get_episodes(self, source: str, content_id: str) -> list[Episode]:
        return list(self.episodes.get((source, content_id), []))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def player() -> FakePlayer:
    return FakePlayer()


@pytest.fixture()
def store() -> FakePlayRecordStore:
    return FakePlayRecordStore()


@pytest.fixture()
def episodes() -> list[Episode]:
    return [
        Episode(url=f"https://cdn.example.com/show/ep{i}/index.m3u8", title=f"E{i}")
        for i in range(1, 4)
    ]


@pytest.fixture()
def catalog(episodes: list[Episode]) -> FakeCatalog:
    return FakeCatalog({("bfzy", "42"): episodes})


@pytest.fixture()
def candidate() -> CandidateSource:
    return CandidateSource(
        key="bfzy",
        name="BF",
        episode_urls=(
            "https://cdn.example.com/show/ep1/index.m3u8",
            "https://cdn.example.com/show/ep2/index.m3u8",
        ),
        resolution="1080p",
    )


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.exists = AsyncMock(return_value=False)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache
