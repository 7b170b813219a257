from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request

from channelgate.infrastructure.config import AppConfig
from channelgate.interfaces.api.errors import register_error_handlers
from channelgate.interfaces.app_state import AppState
from channelgate.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def build_app(config: AppConfig) -> FastAPI:
    """Build the FastAPI app. Configuration only, no resource initialization.

    Resources (HTTP client, store, stream service) are created in lifespan().
    """
    app = FastAPI(
        title="channelgate",
        description="Stream URL resolution and session cache for live TV channels",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Only config lives in state until lifespan runs
    app.state = AppState()
    app.state.config = config

    from channelgate.interfaces.api.catalog.router import router as catalog_router
    from channelgate.interfaces.api.streams.router import router as streams_router

    app.include_router(streams_router)
    app.include_router(catalog_router)
    register_error_handlers(app)

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
