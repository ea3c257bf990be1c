"""Unit tests for ManifestAdFilter."""

from __future__ import annotations

import httpx
import pytest
import respx

from castarr.domain.cancellation import CancelToken
from castarr.domain.entities.manifest import FilterOptions
from castarr.infrastructure.manifest.ad_filter import ManifestAdFilter
from castarr.infrastructure.manifest.publisher import InMemoryManifestPublisher

_URL = "https://cdn.example.com/show/ep1/index.m3u8"
_BASE = "http://castarr.local:7979"

_FIVE_SEGMENTS = """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-TARGETDURATION:10
#EXTINF:10.0,
seg1.ts
#EXTINF:10.0,
seg2.ts
#EXTINF:1.2,
seg3.ts
#EXTINF:10.0,
seg4.ts
#EXTINF:10.0,
https://cdn.example.com/ads/seg5.ts
#EXT-X-ENDLIST
"""


class NullPublisher:
    def publish(self, content: str) -> str | None:
        return None


def _filter(client: httpx.AsyncClient, clock=None, **kwargs) -> ManifestAdFilter:
    publisher = kwargs.pop("publisher", None) or InMemoryManifestPublisher(
        _BASE, clock=clock
    )
    return ManifestAdFilter(client, publisher, clock=clock, **kwargs)


class TestFilterManifest:
    @respx.mock
    async def test_five_segment_example(self) -> None:
        respx.get(_URL).respond(200, text=_FIVE_SEGMENTS)
        publisher = InMemoryManifestPublisher(_BASE)
        async with httpx.AsyncClient() as client:
            result = await _filter(client, publisher=publisher).filter_manifest(_URL)

        assert result.removed_segment_count == 2
        assert result.total_duration_sec == pytest.approx(41.2)
        assert result.filtered_duration_sec == pytest.approx(30.0)
        assert result.filtered_url.startswith(f"{_BASE}/api/v1/manifests/")
        assert result.filtered_url.endswith(".m3u8")

        token = result.filtered_url.rsplit("/", 1)[1].removesuffix(".m3u8")
        published = publisher.get(token)
        assert published is not None
        assert published.count("#EXTINF") == 3
        assert "seg3.ts" not in published
        assert "/ads/" not in published
        assert "https://cdn.example.com/show/ep1/seg4.ts" in published
        assert published.endswith("#EXT-X-ENDLIST")

    @respx.mock
    async def test_remove_ads_disabled_keeps_everything(self) -> None:
        respx.get(_URL).respond(200, text=_FIVE_SEGMENTS)
        async with httpx.AsyncClient() as client:
            result = await _filter(client).filter_manifest(
                _URL, FilterOptions(remove_ads=False)
            )

        assert result.removed_segment_count == 0
        assert result.filtered_duration_sec == result.total_duration_sec

    @respx.mock
    async def test_custom_min_duration(self) -> None:
        respx.get(_URL).respond(200, text=_FIVE_SEGMENTS)
        async with httpx.AsyncClient() as client:
            result = await _filter(client).filter_manifest(
                _URL, FilterOptions(min_segment_duration=0.5, ad_patterns=())
            )
        assert result.removed_segment_count == 0

    @respx.mock
    async def test_invariants_hold(self) -> None:
        respx.get(_URL).respond(200, text=_FIVE_SEGMENTS)
        async with httpx.AsyncClient() as client:
            result = await _filter(client).filter_manifest(_URL)
        assert result.filtered_duration_sec <= result.total_duration_sec
        assert result.removed_segment_count == 5 - 3

    @respx.mock
    async def test_cached_within_ttl(self, clock) -> None:
        route = respx.get(_URL).respond(200, text=_FIVE_SEGMENTS)
        async with httpx.AsyncClient() as client:
            ad_filter = _filter(client, clock)
            first = await ad_filter.filter_manifest(_URL)
            second = await ad_filter.filter_manifest(_URL)
            assert first == second
            assert route.call_count == 1

            clock.advance(601)
            await ad_filter.filter_manifest(_URL)
            assert route.call_count == 2

    @respx.mock
    async def test_publish_unavailable_falls_back(self) -> None:
        respx.get(_URL).respond(200, text=_FIVE_SEGMENTS)
        async with httpx.AsyncClient() as client:
            result = await _filter(client, publisher=NullPublisher()).filter_manifest(
                _URL
            )

        assert result.filtered_url == _URL
        assert result.removed_segment_count == 0

    @respx.mock
    async def test_master_playlist_passthrough(self) -> None:
        respx.get(_URL).respond(
            200, text="#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=1\nlow/index.m3u8\n"
        )
        async with httpx.AsyncClient() as client:
            result = await _filter(client).filter_manifest(_URL)
        assert result.filtered_url == _URL
        assert result.removed_segment_count == 0


class TestFailurePassthrough:
    @respx.mock
    async def test_http_status(self) -> None:
        respx.get(_URL).respond(404)
        async with httpx.AsyncClient() as client:
            ad_filter = _filter(client)
            result = await ad_filter.filter_manifest(_URL)

            assert result.filtered_url == _URL
            assert result.removed_segment_count == 0
            assert result.total_duration_sec == 0
            assert ad_filter.cached_result(_URL) is None

    @respx.mock
    async def test_network_error(self) -> None:
        respx.get(_URL).mock(side_effect=httpx.ConnectError("refused"))
        async with httpx.AsyncClient() as client:
            result = await _filter(client).filter_manifest(_URL)
        assert result.filtered_url == _URL

    @respx.mock
    async def test_not_a_playlist(self) -> None:
        respx.get(_URL).respond(200, text="<html>blocked</html>")
        async with httpx.AsyncClient() as client:
            result = await _filter(client).filter_manifest(_URL)
        assert result.filtered_url == _URL
        assert result.removed_segment_count == 0

    @respx.mock
    async def test_failure_not_cached(self) -> None:
        route = respx.get(_URL)
        route.side_effect = [
            httpx.Response(500),
            httpx.Response(200, text=_FIVE_SEGMENTS),
        ]
        async with httpx.AsyncClient() as client:
            ad_filter = _filter(client)
            await ad_filter.filter_manifest(_URL)
            result = await ad_filter.filter_manifest(_URL)
        assert result.removed_segment_count == 2

    @respx.mock(assert_all_called=False)
    async def test_cancelled(self) -> None:
        route = respx.get(_URL).respond(200, text=_FIVE_SEGMENTS)
        token = CancelToken()
        token.cancel()
        async with httpx.AsyncClient() as client:
            result = await _filter(client).filter_manifest(_URL, cancel=token)
        assert result.filtered_url == _URL
        assert route.call_count == 0


class TestAdminAndResolve:
    @respx.mock
    async def test_cached_result_and_clear(self) -> None:
        respx.get(_URL).respond(200, text=_FIVE_SEGMENTS)
        async with httpx.AsyncClient() as client:
            ad_filter = _filter(client)
            assert ad_filter.cached_result(_URL) is None
            await ad_filter.filter_manifest(_URL)
            assert ad_filter.cached_result(_URL) is not None
            assert ad_filter.cache_stats().valid == 1

            ad_filter.clear_cache()
            assert ad_filter.cached_result(_URL) is None

    async def test_resolve_non_playlist_untouched(self, notifier) -> None:
        url = "https://cdn.example.com/movie.mp4"
        async with httpx.AsyncClient() as client:
            result = await _filter(client, notifier=notifier).resolve_playable_url(url)
        assert result.filtered_url == url
        assert notifier.notifications == []

    @respx.mock
    async def test_resolve_notifies_removed_count(self, notifier) -> None:
        respx.get(_URL).respond(200, text=_FIVE_SEGMENTS)
        async with httpx.AsyncClient() as client:
            result = await _filter(client, notifier=notifier).resolve_playable_url(_URL)

        assert result.filtered_url != _URL
        assert notifier.levels == ["success"]
        assert "2" in notifier.notifications[0].detail
