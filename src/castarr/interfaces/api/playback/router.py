"""Playback preparation endpoint."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from castarr.application.use_cases import PlaybackPreparationUseCase
from castarr.interfaces.api.sources.router import SourceIn
from castarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/playback", tags=["playback"])


class PrepareRequest(BaseModel):
    sources: list[SourceIn] = Field(min_length=1, max_length=200)
    content_id: str = Field(min_length=1)
    episode_index: int = Field(default=0, ge=0)
    resume_sec: float | None = Field(default=None, ge=0)
    title: str = ""
    poster: str = ""


@router.post("/prepare")
async def prepare_playback(body: PrepareRequest, request: Request) -> JSONResponse:
    """Rank the sources, load a session on the best one and filter its playlist."""
    state = cast(AppState, request.app.state)
    session = state.session_factory()
    use_case = PlaybackPreparationUseCase(
        state.source_ranker, state.manifest_filter, state.episode_catalog, session
    )
    prepared = await use_case.prepare(
        [s.to_entity() for s in body.sources],
        body.content_id,
        body.episode_index,
        body.resume_sec,
        title=body.title,
        poster=body.poster,
    )
    if prepared.playable_url is None:
        log.info(
            "playback_prepare_failed",
            content_id=body.content_id,
            chosen=prepared.chosen.source.key if prepared.chosen else None,
        )
        return JSONResponse(status_code=404, content={"error": "no_playable_source"})

    snapshot = session.snapshot()
    manifest = prepared.manifest
    return JSONResponse(
        content={
            "source": snapshot.source,
            "score": prepared.chosen.score if prepared.chosen else None,
            "playable_url": prepared.playable_url,
            "removed_segment_count": manifest.removed_segment_count if manifest else 0,
            "episode_index": snapshot.current_episode_index,
            "resume_sec": snapshot.initial_resume_millis / 1000.0,
            "intro_end_sec": _seconds(snapshot.intro_end_millis),
            "outro_start_sec": _seconds(snapshot.outro_start_millis),
            "status": snapshot.status.value,
        }
    )


def _seconds(millis: float | None) -> float | None:
    return None if millis is None else millis / 1000.0
