"""Domain entities for HLS playlist filtering."""

from __future__ import annotations

from dataclasses import dataclass

# URI fragments that mark advertisement segments (case-insensitive).
DEFAULT_AD_PATTERNS: tuple[str, ...] = (
    "ad.",
    "ads.",
    "advertising.",
    "doubleclick.",
    "googlesyndication.",
    "amazon-adsystem.",
    "adsystem.",
    "adform.",
    "adnxs.",
    "googletag",
    "googleads",
    "/ads/",
    "/ad/",
    "/advertising/",
    "preroll",
    "midroll",
    "postroll",
)


@dataclass(frozen=True)
class Segment:
    """One media segment of a playlist."""

    uri: str
    duration: float
    is_ad: bool = False


@dataclass(frozen=True)
class FilterOptions:
    """Ad classification settings for a single filter call."""

    remove_ads: bool = True
    min_segment_duration: float = 3.0
    ad_patterns: tuple[str, ...] = DEFAULT_AD_PATTERNS


@dataclass(frozen=True)
class FilteredManifest:
    """Summary of a filter run.

    Invariants: ``filtered_duration_sec <= total_duration_sec`` and
    ``removed_segment_count == original count - kept count``.
    """

    original_url: str
    filtered_url: str
    removed_segment_count: int = 0
    total_duration_sec: float = 0.0
    filtered_duration_sec: float = 0.0

    @classmethod
    def passthrough(
        cls, url: str, *, total_duration_sec: float = 0.0
    ) -> FilteredManifest:
        """Unfiltered result that plays the original URL."""
        return cls(
            original_url=url,
            filtered_url=url,
            removed_segment_count=0,
            total_duration_sec=total_duration_sec,
            filtered_duration_sec=total_duration_sec,
        )

    @property
    def saved_seconds(self) -> float:
        return self.total_duration_sec - self.filtered_duration_sec
