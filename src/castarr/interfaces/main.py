from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request

from castarr.infrastructure.config import AppConfig
from castarr.interfaces.app_state import AppState
from castarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def build_app(config: AppConfig) -> FastAPI:
    """Build the FastAPI app from configuration only.

    Resources (HTTP client, cache, ranker, filter) are created in lifespan().
    """
    app = FastAPI(
        title="Castarr",
        description="Streaming source ranking and HLS ad filtering",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from castarr.interfaces.api.manifests.router import router as manifests_router
    from castarr.interfaces.api.playback.router import router as playback_router
    from castarr.interfaces.api.sources.router import router as sources_router

    app.include_router(sources_router)
    app.include_router(manifests_router)
    app.include_router(playback_router)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                query=str(request.url.query),
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
