"""Tests for app assembly and the lifespan composition root."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from castarr.application.session.playback_session import PlaybackSession
from castarr.domain.entities.playback import Episode
from castarr.infrastructure.catalog import InMemoryEpisodeCatalog
from castarr.infrastructure.config import load_config
from castarr.infrastructure.manifest.ad_filter import ManifestAdFilter
from castarr.infrastructure.scoring.source_ranker import SourceRanker
from castarr.interfaces.app_state import AppState
from castarr.interfaces.composition import build_session, filter_options_from_config
from castarr.interfaces.main import build_app


@pytest.fixture()
def config(tmp_path):
    return load_config(
        cli_overrides={
            "cache_dir": str(tmp_path / "cache"),
            "min_segment_duration_seconds": 4.0,
        }
    )


class TestApp:
    def test_healthz(self, config) -> None:
        with TestClient(build_app(config)) as client:
            resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_lifespan_wires_components(self, config) -> None:
        app = build_app(config)
        with TestClient(app) as client:
            assert isinstance(app.state.source_ranker, SourceRanker)
            assert isinstance(app.state.manifest_filter, ManifestAdFilter)
            resp = client.get("/api/v1/sources/probe-cache")
            assert resp.json() == {"total": 0, "valid": 0, "expired": 0}

    def test_filter_options_from_config(self, config) -> None:
        options = filter_options_from_config(config)
        assert options.min_segment_duration == 4.0
        assert options.remove_ads is True
        assert "/ads/" in options.ad_patterns

    def test_lifespan_provides_session_factory(self, config) -> None:
        app = build_app(config)
        with TestClient(app):
            first = app.state.session_factory()
            second = app.state.session_factory()
        assert isinstance(first, PlaybackSession)
        assert first is not second


class TestBuildSession:
    @pytest.fixture()
    def state(self, tmp_path, store, notifier) -> AppState:
        state = AppState()
        state.config = load_config(
            cli_overrides={
                "cache_dir": str(tmp_path / "cache"),
                "save_throttle_seconds": 2.5,
            }
        )
        state.notifier = notifier
        state.play_record_store = store
        state.episode_catalog = InMemoryEpisodeCatalog()
        state.episode_catalog.register(
            "bfzy", "42", [Episode(url="https://cdn.example.com/1.m3u8")]
        )
        return state

    async def test_configured_throttle_reaches_session(
        self, state, store, clock
    ) -> None:
        session = build_session(state, clock)
        assert await session.load_session("bfzy", "42")
        await session.on_loaded(1_400_000.0)

        assert (await session.on_progress(1_000, 1_400_000.0)).persisted is True
        clock.advance(2)
        assert (await session.on_progress(3_000, 1_400_000.0)).persisted is False
        clock.advance(1)
        assert (await session.on_progress(4_000, 1_400_000.0)).persisted is True
        assert len(store.saves) == 2

    async def test_session_notifies_through_state_notifier(
        self, state, store, notifier, clock
    ) -> None:
        session = build_session(state, clock)
        await session.load_session("bfzy", "42")
        await session.on_loaded(1_400_000.0)
        store.fail_save = True
        await session.on_progress(1_000, 1_400_000.0)
        assert notifier.levels == ["error"]
