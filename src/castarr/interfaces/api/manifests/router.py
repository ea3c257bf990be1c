"""Manifest filtering endpoints and published playlist delivery."""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from castarr.domain.entities.manifest import FilteredManifest, FilterOptions
from castarr.interfaces.app_state import AppState
from castarr.interfaces.composition import filter_options_from_config

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/manifests", tags=["manifests"])

_HLS_MEDIA_TYPE = "application/vnd.apple.mpegurl"


class FilterRequest(BaseModel):
    url: str = Field(min_length=1)
    remove_ads: bool | None = None
    min_segment_duration: float | None = Field(default=None, ge=0)
    ad_patterns: list[str] | None = None

    def to_options(self, defaults: FilterOptions) -> FilterOptions:
        return FilterOptions(
            remove_ads=(
                defaults.remove_ads if self.remove_ads is None else self.remove_ads
            ),
            min_segment_duration=(
                defaults.min_segment_duration
                if self.min_segment_duration is None
                else self.min_segment_duration
            ),
            ad_patterns=(
                defaults.ad_patterns
                if self.ad_patterns is None
                else tuple(self.ad_patterns)
            ),
        )


def _manifest_to_dict(result: FilteredManifest) -> dict[str, Any]:
    return {
        "original_url": result.original_url,
        "filtered_url": result.filtered_url,
        "removed_segment_count": result.removed_segment_count,
        "total_duration_sec": round(result.total_duration_sec, 3),
        "filtered_duration_sec": round(result.filtered_duration_sec, 3),
    }


@router.post("/filter")
async def filter_manifest(body: FilterRequest, request: Request) -> JSONResponse:
    """Filter ads out of a playlist; failures pass the original URL through."""
    state = cast(AppState, request.app.state)
    options = body.to_options(filter_options_from_config(state.config))
    result = await state.manifest_filter.filter_manifest(body.url, options)
    return JSONResponse(content=_manifest_to_dict(result))


@router.get("/stats")
async def filter_stats(
    request: Request,
    url: str = Query(..., min_length=1, description="Original playlist URL."),
) -> JSONResponse:
    state = cast(AppState, request.app.state)
    result = state.manifest_filter.cached_result(url)
    if result is None:
        return JSONResponse(status_code=404, content={"error": "not_cached"})
    return JSONResponse(content=_manifest_to_dict(result))


@router.delete("/cache")
async def clear_cache(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    state.manifest_filter.clear_cache()
    return JSONResponse(content={"status": "cleared"})


@router.get("/{token}.m3u8")
async def published_playlist(token: str, request: Request) -> Response:
    """Serve a playlist minted by the publisher."""
    state = cast(AppState, request.app.state)
    content = state.manifest_publisher.get(token)
    if content is None:
        log.debug("published_manifest_missing", token=token)
        return JSONResponse(status_code=404, content={"error": "manifest_not_found"})
    return Response(content=content, media_type=_HLS_MEDIA_TYPE)
