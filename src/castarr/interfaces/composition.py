"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from castarr.application.session.playback_session import PlaybackSession
from castarr.domain.entities.manifest import FilterOptions
from castarr.domain.ports.clock import ClockPort
from castarr.infrastructure.cache.cache_factory import create_cache
from castarr.infrastructure.catalog import InMemoryEpisodeCatalog
from castarr.infrastructure.config.schema import AppConfig
from castarr.infrastructure.manifest.ad_filter import ManifestAdFilter
from castarr.infrastructure.manifest.publisher import InMemoryManifestPublisher
from castarr.infrastructure.notifier import LogNotifier
from castarr.infrastructure.persistence.play_record_cache import CachePlayRecordStore
from castarr.infrastructure.probing.resolution_detector import M3u8ResolutionDetector
from castarr.infrastructure.probing.source_prober import SourceProber
from castarr.infrastructure.scoring.source_ranker import SourceRanker
from castarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def filter_options_from_config(config: AppConfig) -> FilterOptions:
    return FilterOptions(
        remove_ads=config.manifest.remove_ads,
        min_segment_duration=config.manifest.min_segment_duration_seconds,
        ad_patterns=tuple(config.manifest.ad_patterns),
    )


def build_session(state: AppState, clock: ClockPort | None = None) -> PlaybackSession:
    """One playback session per viewer, tuned by the ``session`` config section."""
    session_config = state.config.session
    return PlaybackSession(
        state.episode_catalog,
        state.play_record_store,
        notifier=state.notifier,
        clock=clock,
        save_throttle_seconds=session_config.save_throttle_seconds,
        seek_settle_seconds=session_config.seek_settle_seconds,
        load_timeout_seconds=session_config.load_timeout_seconds,
        near_end_ratio=session_config.near_end_ratio,
    )


def wire_components(state: AppState) -> None:
    """Build probing, filtering and session collaborators on *state*.

    Requires ``state.config``, ``state.cache`` and ``state.http_client``.
    """
    config = state.config
    state.notifier = LogNotifier()

    prober = SourceProber(
        state.http_client,
        latency_timeout=config.probe.latency_timeout_seconds,
        throughput_timeout=config.probe.throughput_timeout_seconds,
        cache_ttl_seconds=config.probe.cache_ttl_seconds,
    )
    detector = (
        M3u8ResolutionDetector(
            state.http_client, timeout=config.probe.latency_timeout_seconds
        )
        if config.probe.detect_resolution
        else None
    )
    state.source_ranker = SourceRanker(
        prober,
        resolution_detector=detector,
        max_concurrent=config.probe.max_concurrent,
    )

    state.manifest_publisher = InMemoryManifestPublisher(
        config.manifest.public_base_url,
        ttl_seconds=config.manifest.cache_ttl_seconds,
    )
    state.manifest_filter = ManifestAdFilter(
        state.http_client,
        state.manifest_publisher,
        fetch_timeout=config.manifest.fetch_timeout_seconds,
        cache_ttl_seconds=config.manifest.cache_ttl_seconds,
        default_options=filter_options_from_config(config),
        notifier=state.notifier,
    )

    state.play_record_store = CachePlayRecordStore(
        state.cache, ttl_days=config.session.play_record_ttl_days
    )
    state.episode_catalog = InMemoryEpisodeCatalog()
    state.session_factory = partial(build_session, state)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Cache (play record store depends on it)
        2. HTTP Client (prober, detector and filter share it)
        3. Components
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Cache
    cache = create_cache(
        backend=config.cache.backend,
        directory=str(config.cache.directory),
        redis_url=config.cache.redis_url,
        ttl_seconds=config.cache.ttl_seconds,
        max_concurrent=config.cache.max_concurrent,
    )
    await cache.__aenter__()
    state.cache = cache
    log.info("cache_initialized", backend=config.cache.backend)

    # 2) HTTP client
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=config.http_follow_redirects,
    )
    log.info("http_client_initialized", timeout=config.http_timeout_seconds)

    # 3) Components
    wire_components(state)
    log.info(
        "app_startup_complete",
        environment=config.environment,
        public_base_url=config.manifest.public_base_url,
    )

    try:
        yield
    finally:
        await state.http_client.aclose()
        log.info("http_client_closed")

        await state.cache.aclose()
        log.info("cache_closed")

        log.info("app_shutdown_complete")
