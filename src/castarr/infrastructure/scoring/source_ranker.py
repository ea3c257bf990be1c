"""Source ranker — probes candidates concurrently and orders them by score."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence

import structlog

from castarr.domain.cancellation import CancelToken
from castarr.domain.entities.sources import (
    CacheStats,
    CandidateSource,
    ProbeResult,
    RankingReport,
    ScoredSource,
)
from castarr.domain.ports.resolution_detector import ResolutionDetectorPort
from castarr.infrastructure.probing.source_prober import SourceProber
from castarr.infrastructure.scoring.source_score import score_source

log = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class SourceRanker:
    """Ranks candidate sources for one piece of content.

    Probes run concurrently, bounded by a semaphore.  One failing probe
    never fails the cycle: it scores 0 and sorts last.  Ties keep the
    order in which the sources were supplied.
    """

    def __init__(
        self,
        prober: SourceProber,
        *,
        resolution_detector: ResolutionDetectorPort | None = None,
        max_concurrent: int = 8,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._prober = prober
        self._detector = resolution_detector
        self._max_concurrent = max_concurrent

    async def _resolve_resolution(
        self,
        source: CandidateSource,
        probe: ProbeResult,
        cancel: CancelToken | None,
    ) -> str | None:
        if source.resolution:
            return source.resolution
        if self._detector is None or not probe.available or source.probe_url is None:
            return None
        try:
            return await self._detector.detect(source.probe_url, cancel)
        except Exception as exc:
            log.debug("resolution_detect_failed", source=source.key, error=str(exc))
            return None

    async def _score_one(
        self, source: CandidateSource, cancel: CancelToken | None
    ) -> ScoredSource:
        probe = await self._prober.probe_source(source, cancel)
        resolution = await self._resolve_resolution(source, probe, cancel)
        return ScoredSource(
            source=source,
            probe=probe,
            score=score_source(probe, resolution, source.episode_count),
            resolution=resolution,
        )

    async def rank_sources(
        self,
        sources: Sequence[CandidateSource],
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> RankingReport:
        """Probe and score every source, best first.

        Args:
            sources: Candidates in discovery order.
            cancel: Shared token; firing it aborts every in-flight probe.
            on_progress: Called with ``(done, total)`` after each source.

        Returns:
            A :class:`RankingReport`; ``cancelled`` is set when the token
            fired before the cycle finished.
        """
        total = len(sources)
        if total == 0:
            return RankingReport()

        sem = asyncio.Semaphore(self._max_concurrent)
        done = 0

        async def _run(source: CandidateSource) -> ScoredSource:
            nonlocal done
            async with sem:
                try:
                    if cancel is not None and cancel.cancelled:
                        scored = ScoredSource(
                            source=source,
                            probe=ProbeResult.unavailable("cancelled"),
                            score=0.0,
                            resolution=source.resolution,
                        )
                    else:
                        scored = await self._score_one(source, cancel)
                except Exception as exc:
                    log.warning(
                        "source_probe_failed", source=source.key, error=str(exc)
                    )
                    scored = ScoredSource(
                        source=source,
                        probe=ProbeResult.unavailable("http_error"),
                        score=0.0,
                        resolution=source.resolution,
                    )
            done += 1
            if on_progress is not None:
                on_progress(done, total)
            return scored

        scored = await asyncio.gather(*(_run(s) for s in sources))
        # list.sort is stable: equal scores keep discovery order.
        ranked = sorted(scored, key=lambda s: s.score, reverse=True)
        cancelled = cancel is not None and cancel.cancelled

        best = ranked[0]
        log.info(
            "sources_ranked",
            total=total,
            available=sum(1 for s in ranked if s.probe.available),
            best=best.source.key if best.probe.available else None,
            best_score=best.score,
            cancelled=cancelled,
        )
        return RankingReport(ranked=ranked, cancelled=cancelled)

    def invalidate_probe_cache(self) -> None:
        self._prober.invalidate_cache()

    def probe_cache_stats(self) -> CacheStats:
        return self._prober.cache.stats()
