"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.datastructures import State

from channelgate.infrastructure.config import AppConfig

if TYPE_CHECKING:
    import asyncio

    from channelgate.application.stream_service import StreamService
    from channelgate.domain.entities.stream import PreloadReport
    from channelgate.domain.ports import CatalogClientPort


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Stream resolution (cache, sessions, preload)
    stream_service: StreamService

    # Live catalog
    catalog: CatalogClientPort

    # Startup warm-up (optional, preload.on_startup)
    _preload_task: asyncio.Task[PreloadReport] | None
