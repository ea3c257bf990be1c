from .manifest import (
    DEFAULT_AD_PATTERNS,
    FilteredManifest,
    FilterOptions,
    Segment,
)
from .playback import (
    Episode,
    Notification,
    PlaybackStatus,
    PlayRecord,
    ProgressUpdate,
    SessionState,
)
from .sources import (
    CacheEntry,
    CacheStats,
    CandidateSource,
    ProbeResult,
    RankingReport,
    ScoredSource,
)

__all__ = [
    "DEFAULT_AD_PATTERNS",
    "CacheEntry",
    "CacheStats",
    "CandidateSource",
    "Episode",
    "FilterOptions",
    "FilteredManifest",
    "Notification",
    "PlayRecord",
    "PlaybackStatus",
    "ProbeResult",
    "ProgressUpdate",
    "RankingReport",
    "ScoredSource",
    "Segment",
    "SessionState",
]
