"""Source ranking endpoints."""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from castarr.domain.entities.sources import CandidateSource, ScoredSource
from castarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/sources", tags=["sources"])


class SourceIn(BaseModel):
    key: str = Field(min_length=1)
    name: str = ""
    episode_urls: list[str] = Field(default_factory=list)
    resolution: str | None = None

    def to_entity(self) -> CandidateSource:
        return CandidateSource(
            key=self.key,
            name=self.name,
            episode_urls=tuple(self.episode_urls),
            resolution=self.resolution,
        )


class RankRequest(BaseModel):
    sources: list[SourceIn] = Field(min_length=1, max_length=200)


def _scored_to_dict(scored: ScoredSource) -> dict[str, Any]:
    probe = scored.probe
    return {
        "key": scored.source.key,
        "name": scored.source.name,
        "score": scored.score,
        "resolution": scored.resolution,
        "episode_count": scored.source.episode_count,
        "available": probe.available,
        "latency_ms": None if probe.latency_ms is None else round(probe.latency_ms, 1),
        "throughput_kbps": round(probe.throughput_kbps, 1),
        "error": probe.error,
    }


@router.post("/rank")
async def rank_sources(body: RankRequest, request: Request) -> JSONResponse:
    """Probe every source and return them best first."""
    state = cast(AppState, request.app.state)
    report = await state.source_ranker.rank_sources(
        [s.to_entity() for s in body.sources]
    )
    best = report.best
    return JSONResponse(
        content={
            "best": best.source.key if best is not None else None,
            "cancelled": report.cancelled,
            "ranked": [_scored_to_dict(s) for s in report.ranked],
        }
    )


@router.get("/probe-cache")
async def probe_cache_stats(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    stats = state.source_ranker.probe_cache_stats()
    return JSONResponse(
        content={"total": stats.total, "valid": stats.valid, "expired": stats.expired}
    )


@router.delete("/probe-cache")
async def invalidate_probe_cache(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    state.source_ranker.invalidate_probe_cache()
    return JSONResponse(content={"status": "cleared"})
