"""Stream resolution, session, preload and cache endpoints."""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from channelgate.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["streams"])


class PreloadRequest(BaseModel):
    channel_ids: list[str] = Field(
        default_factory=list,
        description="Channel ids in priority order.",
    )


@router.get("/channels/{channel_id}/stream")
async def channel_stream(channel_id: str, request: Request) -> dict[str, str]:
    """Resolve the session-bound stream URL (served from cache when fresh)."""
    state = cast(AppState, request.app.state)
    url = await state.stream_service.resolve_stream_url(channel_id)
    return {"channel_id": channel_id, "url": url}


@router.get("/channels/{channel_id}/catalog-stream")
async def channel_catalog_stream(channel_id: str, request: Request) -> dict[str, str]:
    state = cast(AppState, request.app.state)
    url = await state.stream_service.get_channels_stream(channel_id)
    return {"channel_id": channel_id, "url": url}


@router.post("/channels/{channel_id}/session")
async def channel_session(channel_id: str, request: Request) -> dict[str, Any]:
    """Initialize an upstream session.

    Concurrent requests for the same channel share one upstream call.
    """
    state = cast(AppState, request.app.state)
    result = await state.stream_service.initialize_session(channel_id)
    return result.to_dict()


@router.post("/preload")
async def preload(body: PreloadRequest, request: Request) -> dict[str, Any]:
    """Warm cache and sessions; per-channel failures are reported, not raised."""
    state = cast(AppState, request.app.state)
    log.info("preload_request", channels=len(body.channel_ids))
    report = await state.stream_service.preload(body.channel_ids)
    return report.to_dict()


@router.delete("/cache", status_code=204)
async def invalidate_cache(request: Request) -> Response:
    state = cast(AppState, request.app.state)
    await state.stream_service.invalidate_all()
    return Response(status_code=204)


@router.get("/cache")
async def cache_snapshot(request: Request) -> dict[str, Any]:
    """Diagnostic view of the in-memory cache and in-flight sessions."""
    service = cast(AppState, request.app.state).stream_service
    return {
        "ttl_ms": service.cache.ttl_ms,
        "valid_entries": len(service.cache),
        "entries": service.cache.snapshot(),
        "pending_sessions": service.sessions.pending,
    }
