"""Domain entities for candidate sources, probing and scoring.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Literal, TypeVar

T = TypeVar("T")

ProbeErrorKind = Literal[
    "timeout",
    "http_status",
    "http_error",
    "cancelled",
    "no_episodes",
]


@dataclass(frozen=True)
class CandidateSource:
    """A playable source as supplied by the search/catalog collaborator.

    ``key`` identifies the source (e.g. ``"bfzy"``); ``episode_urls`` are
    the resolved manifest URLs in episode order.
    """

    key: str
    episode_urls: tuple[str, ...] = ()
    name: str = ""
    resolution: str | None = None  # "1080p", "720p", ... or None if unknown

    @property
    def episode_count(self) -> int:
        return len(self.episode_urls)

    @property
    def probe_url(self) -> str | None:
        """First episode URL, measured on behalf of the whole source."""
        return self.episode_urls[0] if self.episode_urls else None


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe cycle against a source's probe URL.

    ``latency_ms`` is ``None`` when the source is unavailable.
    Unavailability is a normal outcome, recorded here rather than raised.
    """

    latency_ms: float | None
    throughput_kbps: float = 0.0
    available: bool = False
    error: ProbeErrorKind | None = None

    @classmethod
    def unavailable(cls, error: ProbeErrorKind | None = None) -> ProbeResult:
        return cls(latency_ms=None, throughput_kbps=0.0, available=False, error=error)


@dataclass(frozen=True)
class ScoredSource:
    """A candidate source combined with its probe result and composite score."""

    source: CandidateSource
    probe: ProbeResult
    score: float
    resolution: str | None = None


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Immutable cache slot; ``stored_at`` is a monotonic timestamp in seconds."""

    value: T
    stored_at: float


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time statistics of a TTL cache."""

    total: int = 0
    valid: int = 0
    expired: int = 0


@dataclass(frozen=True)
class RankingReport:
    """Result of one ranking cycle."""

    ranked: list[ScoredSource] = field(default_factory=list)
    cancelled: bool = False

    @property
    def best(self) -> ScoredSource | None:
        """Highest-ranked available source, if any."""
        for scored in self.ranked:
            if scored.probe.available:
                return scored
        return None
