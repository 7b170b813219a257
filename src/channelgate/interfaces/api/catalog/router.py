"""Live catalog endpoints (events, TV channels, categories)."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, cast

from fastapi import APIRouter, Request

from channelgate.domain.categories import generate_categories
from channelgate.interfaces.app_state import AppState

router = APIRouter(prefix="/api/v1/catalog", tags=["catalog"])


@router.get("/live")
async def live(request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    items = await state.catalog.fetch_live_sports()
    return {
        "items": [asdict(item) for item in items],
        "categories": generate_categories(items),
        "count": len(items),
    }


@router.get("/channels")
async def channels(request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    result = await state.catalog.fetch_channels()
    return {"channels": [asdict(ch) for ch in result], "count": len(result)}


@router.get("/categories")
async def categories(request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    return {"categories": await state.catalog.fetch_categories()}
