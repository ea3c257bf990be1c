"""Unit tests for SourceRanker."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from castarr.domain.cancellation import CancelToken
from castarr.domain.entities.sources import CacheStats, CandidateSource, ProbeResult
from castarr.infrastructure.probing.source_prober import SourceProber
from castarr.infrastructure.scoring.source_ranker import SourceRanker


def _source(key: str, eps: int = 10, resolution: str | None = "1080p") -> CandidateSource:
    return CandidateSource(
        key=key,
        episode_urls=tuple(f"https://{key}.example.com/{i}.m3u8" for i in range(eps)),
        resolution=resolution,
    )


class FakeProber:
    """Returns canned probe results per probe URL."""

    def __init__(self, results: dict[str, ProbeResult | Exception]) -> None:
        self._results = results
        self.calls: list[str] = []
        self.invalidated = 0
        self.cache = AsyncMock()
        self.cache.stats = lambda: CacheStats(total=3, valid=2, expired=1)

    async def probe_source(
        self, source: CandidateSource, cancel: CancelToken | None = None
    ) -> ProbeResult:
        self.calls.append(source.key)
        result = self._results.get(source.key, ProbeResult.unavailable("http_error"))
        if isinstance(result, Exception):
            raise result
        return result

    def invalidate_cache(self) -> None:
        self.invalidated += 1


def _up(latency_ms: float, kbps: float = 600.0) -> ProbeResult:
    return ProbeResult(latency_ms=latency_ms, throughput_kbps=kbps, available=True)


class TestRankSources:
    async def test_sorted_by_score_descending(self) -> None:
        prober = FakeProber({"slow": _up(1500), "fast": _up(50), "mid": _up(400)})
        ranker = SourceRanker(prober)  # type: ignore[arg-type]

        report = await ranker.rank_sources(
            [_source("slow"), _source("fast"), _source("mid")]
        )

        assert [s.source.key for s in report.ranked] == ["fast", "mid", "slow"]
        scores = [s.score for s in report.ranked]
        assert scores == sorted(scores, reverse=True)
        assert report.best is not None
        assert report.best.source.key == "fast"

    async def test_ties_keep_input_order(self) -> None:
        prober = FakeProber({k: _up(50) for k in ("c", "a", "b")})
        ranker = SourceRanker(prober)  # type: ignore[arg-type]

        report = await ranker.rank_sources([_source("c"), _source("a"), _source("b")])

        assert [s.source.key for s in report.ranked] == ["c", "a", "b"]

    async def test_partial_failure_sorts_last(self) -> None:
        prober = FakeProber(
            {
                "down": ProbeResult.unavailable("timeout"),
                "boom": RuntimeError("unexpected"),
                "up": _up(200),
            }
        )
        ranker = SourceRanker(prober)  # type: ignore[arg-type]

        report = await ranker.rank_sources(
            [_source("down"), _source("boom"), _source("up")]
        )

        assert [s.source.key for s in report.ranked] == ["up", "down", "boom"]
        assert report.ranked[1].score == 0
        assert report.ranked[2].score == 0
        assert report.ranked[2].probe.available is False

    async def test_empty_input(self) -> None:
        ranker = SourceRanker(FakeProber({}))  # type: ignore[arg-type]
        report = await ranker.rank_sources([])
        assert report.ranked == []
        assert report.best is None

    async def test_progress_callback(self) -> None:
        prober = FakeProber({"a": _up(50), "b": _up(60)})
        ranker = SourceRanker(prober)  # type: ignore[arg-type]
        seen: list[tuple[int, int]] = []

        await ranker.rank_sources(
            [_source("a"), _source("b")],
            on_progress=lambda done, total: seen.append((done, total)),
        )

        assert seen == [(1, 2), (2, 2)]

    async def test_cancelled_before_start(self) -> None:
        prober = FakeProber({"a": _up(50)})
        ranker = SourceRanker(prober)  # type: ignore[arg-type]
        token = CancelToken()
        token.cancel()

        report = await ranker.rank_sources([_source("a")], token)

        assert report.cancelled is True
        assert prober.calls == []
        assert report.ranked[0].probe.error == "cancelled"

    async def test_detects_missing_resolution(self) -> None:
        prober = FakeProber({"a": _up(50)})
        detector = AsyncMock()
        detector.detect = AsyncMock(return_value="2160p")
        ranker = SourceRanker(prober, resolution_detector=detector)  # type: ignore[arg-type]

        report = await ranker.rank_sources([_source("a", resolution=None)])

        assert report.ranked[0].resolution == "2160p"
        detector.detect.assert_awaited_once()

    async def test_known_resolution_skips_detection(self) -> None:
        prober = FakeProber({"a": _up(50)})
        detector = AsyncMock()
        ranker = SourceRanker(prober, resolution_detector=detector)  # type: ignore[arg-type]

        await ranker.rank_sources([_source("a", resolution="720p")])

        detector.detect.assert_not_called()

    async def test_detector_failure_means_unknown(self) -> None:
        prober = FakeProber({"a": _up(50)})
        detector = AsyncMock()
        detector.detect = AsyncMock(side_effect=RuntimeError("bad"))
        ranker = SourceRanker(prober, resolution_detector=detector)  # type: ignore[arg-type]

        report = await ranker.rank_sources([_source("a", resolution=None)])

        assert report.ranked[0].resolution is None
        assert report.ranked[0].score > 0

    def test_rejects_zero_concurrency(self) -> None:
        with pytest.raises(ValueError):
            SourceRanker(FakeProber({}), max_concurrent=0)  # type: ignore[arg-type]


class TestProbeCacheAdmin:
    def test_stats_and_invalidate(self) -> None:
        prober = FakeProber({})
        ranker = SourceRanker(prober)  # type: ignore[arg-type]

        assert ranker.probe_cache_stats() == CacheStats(total=3, valid=2, expired=1)
        ranker.invalidate_probe_cache()
        assert prober.invalidated == 1


class TestWithRealProber:
    @respx.mock
    async def test_rerank_within_ttl_uses_cache(self, clock) -> None:
        head = respx.head(url__regex=r"https://\w+\.example\.com/0\.m3u8").respond(200)
        respx.get(url__regex=r"https://\w+\.example\.com/0\.m3u8").respond(
            200, text="#EXTM3U\n"
        )
        sources = [_source("a"), _source("b")]

        async with httpx.AsyncClient() as client:
            ranker = SourceRanker(SourceProber(client, clock=clock), max_concurrent=1)
            await ranker.rank_sources(sources)
            await ranker.rank_sources(sources)
            assert head.call_count == 2

            clock.advance(601)
            await ranker.rank_sources(sources)
            assert head.call_count == 4
            assert ranker.probe_cache_stats().valid == 2
