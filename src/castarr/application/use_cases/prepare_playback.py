"""Playback preparation use case — rank sources, load a session, filter ads."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog

from castarr.application.session.playback_session import PlaybackSession
from castarr.domain.cancellation import CancelToken
from castarr.domain.entities.manifest import FilteredManifest
from castarr.domain.entities.playback import Episode
from castarr.domain.entities.sources import (
    CandidateSource,
    RankingReport,
    ScoredSource,
)
from castarr.domain.ports.manifest_filter import ManifestFilterPort
from castarr.domain.ports.source_ranker import SourceRankerPort

log = structlog.get_logger(__name__)


class EpisodeRegistry(Protocol):
    def register(
        self, source: str, content_id: str, episodes: Iterable[Episode]
    ) -> None: ...


@dataclass(frozen=True)
class PreparedPlayback:
    """Outcome of :meth:`PlaybackPreparationUseCase.prepare`.

    ``chosen`` and ``playable_url`` are ``None`` when nothing could be
    loaded (no candidates, cancellation or a failed session load).
    """

    ranking: RankingReport
    chosen: ScoredSource | None = None
    playable_url: str | None = None
    manifest: FilteredManifest | None = None


def episodes_of(source: CandidateSource) -> list[Episode]:
    return [
        Episode(url=url, title=f"Episode {i + 1}")
        for i, url in enumerate(source.episode_urls)
    ]


class PlaybackPreparationUseCase:
    """Runs the ranking -> session load -> ad filter pipeline for one title."""

    def __init__(
        self,
        ranker: SourceRankerPort,
        manifest_filter: ManifestFilterPort,
        catalog: EpisodeRegistry,
        session: PlaybackSession,
    ) -> None:
        self._ranker = ranker
        self._filter = manifest_filter
        self._catalog = catalog
        self._session = session

    async def prepare(
        self,
        sources: Sequence[CandidateSource],
        content_id: str,
        episode_index: int = 0,
        resume_sec: float | None = None,
        *,
        title: str = "",
        poster: str = "",
        cancel: CancelToken | None = None,
    ) -> PreparedPlayback:
        """Pick the best source and return the URL the player should open.

        Falls back to the first candidate when no source is reachable.
        """
        ranking = await self._ranker.rank_sources(sources, cancel)
        if not ranking.ranked or ranking.cancelled:
            log.info(
                "playback_prepare_aborted",
                content_id=content_id,
                candidates=len(sources),
                cancelled=ranking.cancelled,
            )
            return PreparedPlayback(ranking=ranking)

        for scored in ranking.ranked:
            self._catalog.register(
                scored.source.key, content_id, episodes_of(scored.source)
            )

        chosen = ranking.best or ranking.ranked[0]
        if ranking.best is None:
            log.warning(
                "playback_no_available_source",
                content_id=content_id,
                fallback=chosen.source.key,
            )

        loaded = await self._session.load_session(
            chosen.source.key,
            content_id,
            episode_index,
            resume_sec,
            title=title,
            poster=poster,
        )
        if not loaded:
            return PreparedPlayback(ranking=ranking, chosen=chosen)

        episode = self._session.snapshot().current_episode
        if episode is None:
            return PreparedPlayback(ranking=ranking, chosen=chosen)

        manifest = await self._filter.resolve_playable_url(episode.url, cancel=cancel)
        log.info(
            "playback_prepared",
            content_id=content_id,
            source=chosen.source.key,
            score=chosen.score,
            episode_index=episode_index,
            removed_ads=manifest.removed_segment_count,
        )
        return PreparedPlayback(
            ranking=ranking,
            chosen=chosen,
            playable_url=manifest.filtered_url,
            manifest=manifest,
        )
