"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from castarr.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from castarr.application.session.playback_session import PlaybackSession
    from castarr.domain.ports import CachePort, NotifierPort, PlayRecordStorePort
    from castarr.infrastructure.catalog import InMemoryEpisodeCatalog
    from castarr.infrastructure.manifest.ad_filter import ManifestAdFilter
    from castarr.infrastructure.manifest.publisher import InMemoryManifestPublisher
    from castarr.infrastructure.scoring.source_ranker import SourceRanker


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CachePort
    http_client: httpx.AsyncClient
    notifier: NotifierPort

    # Probe & score
    source_ranker: SourceRanker

    # Manifest filtering
    manifest_publisher: InMemoryManifestPublisher
    manifest_filter: ManifestAdFilter

    # Playback session collaborators
    play_record_store: PlayRecordStorePort
    episode_catalog: InMemoryEpisodeCatalog
    session_factory: Callable[[], PlaybackSession]
