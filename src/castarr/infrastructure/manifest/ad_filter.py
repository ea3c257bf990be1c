"""Manifest ad filter — fetches an HLS playlist and drops ad segments.

Flow for one URL::

    cache hit? -> fetch -> parse -> classify -> regenerate -> publish

Any fetch or parse failure degrades to the original URL (nothing
removed, durations 0) and is not cached, so the next call retries.
"""

from __future__ import annotations

import httpx
import structlog

from castarr.domain.cancellation import CancelToken
from castarr.domain.entities.manifest import FilteredManifest, FilterOptions
from castarr.domain.entities.playback import Notification
from castarr.domain.entities.sources import CacheStats
from castarr.domain.exceptions import (
    ManifestFetchError,
    ManifestParseError,
    OperationCancelled,
)
from castarr.domain.ports.clock import ClockPort
from castarr.domain.ports.manifest_publisher import ManifestPublisherPort
from castarr.domain.ports.notifier import NotifierPort
from castarr.infrastructure.cache.ttl_cache import TtlCache
from castarr.infrastructure.manifest.playlist import (
    classify_segments,
    ensure_playlist,
    is_master_playlist,
    parse_segments,
    regenerate_playlist,
)

log = structlog.get_logger(__name__)


def looks_like_playlist(url: str) -> bool:
    return ".m3u8" in url.lower()


class ManifestAdFilter:
    """Filters advertisement segments out of HLS media playlists.

    Results are cached per playlist URL for ``cache_ttl_seconds``.
    Master playlists are returned unfiltered since they list variants,
    not segments.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        publisher: ManifestPublisherPort,
        *,
        fetch_timeout: float = 10.0,
        cache_ttl_seconds: float = 600.0,
        clock: ClockPort | None = None,
        default_options: FilterOptions | None = None,
        notifier: NotifierPort | None = None,
    ) -> None:
        self._http = http_client
        self._publisher = publisher
        self._fetch_timeout = fetch_timeout
        self._cache: TtlCache[FilteredManifest] = TtlCache(
            cache_ttl_seconds, clock=clock
        )
        self._default_options = default_options or FilterOptions()
        self._notifier = notifier

    async def _fetch(self, url: str, cancel: CancelToken | None) -> str:
        request = self._http.get(
            url, timeout=self._fetch_timeout, follow_redirects=True
        )
        try:
            resp = await (cancel.guard(request) if cancel is not None else request)
        except httpx.HTTPError as exc:
            raise ManifestFetchError(f"{type(exc).__name__}: {exc}") from exc
        if not resp.is_success:
            raise ManifestFetchError(f"HTTP {resp.status_code}")
        return resp.text

    async def filter_manifest(
        self,
        url: str,
        options: FilterOptions | None = None,
        cancel: CancelToken | None = None,
    ) -> FilteredManifest:
        """Filter the playlist at *url* and publish the result.

        Never raises: failures return a pass-through result pointing at
        *url*.
        """
        cached = self._cache.get(url)
        if cached is not None:
            log.debug("manifest_cache_hit", url=url)
            return cached

        options = options or self._default_options
        try:
            content = await self._fetch(url, cancel)
            ensure_playlist(content)
        except OperationCancelled:
            log.debug("manifest_fetch_cancelled", url=url)
            return FilteredManifest.passthrough(url)
        except (ManifestFetchError, ManifestParseError) as exc:
            log.warning(
                "manifest_filter_failed",
                url=url,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return FilteredManifest.passthrough(url)

        if is_master_playlist(content):
            log.debug("manifest_master_passthrough", url=url)
            result = FilteredManifest.passthrough(url)
            self._cache.set(url, result)
            return result

        segments = parse_segments(content)
        if options.remove_ads:
            classified = classify_segments(segments, options)
            kept = [s for s in classified if not s.is_ad]
        else:
            kept = segments

        total = sum(s.duration for s in segments)
        filtered_total = sum(s.duration for s in kept)

        published = self._publisher.publish(
            regenerate_playlist(kept, content, base_url=url)
        )
        if published is None:
            log.info("manifest_publish_unavailable", url=url)
            result = FilteredManifest.passthrough(url, total_duration_sec=total)
        else:
            result = FilteredManifest(
                original_url=url,
                filtered_url=published,
                removed_segment_count=len(segments) - len(kept),
                total_duration_sec=total,
                filtered_duration_sec=filtered_total,
            )

        self._cache.set(url, result)
        log.info(
            "manifest_filtered",
            url=url,
            segments=len(segments),
            removed=result.removed_segment_count,
            saved_seconds=round(result.saved_seconds, 1),
        )
        return result

    async def resolve_playable_url(
        self,
        url: str,
        options: FilterOptions | None = None,
        cancel: CancelToken | None = None,
    ) -> FilteredManifest:
        """URL the player should open for an episode.

        Non-playlist URLs are returned untouched.  When ad segments were
        removed a success notification reports how many.
        """
        if not looks_like_playlist(url):
            return FilteredManifest.passthrough(url)

        result = await self.filter_manifest(url, options, cancel)
        if result.removed_segment_count > 0 and self._notifier is not None:
            self._notifier.notify(
                Notification(
                    level="success",
                    title="Ads filtered",
                    detail=(
                        f"Removed {result.removed_segment_count} ad segments "
                        f"({result.saved_seconds:.1f}s)"
                    ),
                )
            )
        return result

    def cached_result(self, url: str) -> FilteredManifest | None:
        """Cached filter result for *url*, if still fresh."""
        return self._cache.get(url)

    def clear_cache(self) -> None:
        self._cache.clear()
        log.info("manifest_cache_cleared")

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()
