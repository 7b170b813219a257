"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator, cast

import structlog
from fastapi import FastAPI

from channelgate.application.stream_service import StreamService, build_stream_service
from channelgate.domain.categories import popular_channel_ids
from channelgate.domain.entities.stream import PreloadReport
from channelgate.domain.exceptions import StreamError
from channelgate.domain.ports import CatalogClientPort
from channelgate.infrastructure.config.schema import AppConfig
from channelgate.infrastructure.upstream.catalog_client import HttpxCatalogClient
from channelgate.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


async def startup_preload(
    service: StreamService,
    catalog: CatalogClientPort,
    config: AppConfig,
) -> PreloadReport:
    """Warm the configured channels, or the first live items if none are set."""
    channel_ids = list(config.preload.channel_ids)
    if not channel_ids:
        try:
            items = await catalog.fetch_live_sports()
        except StreamError as e:
            log.warning("startup_preload_catalog_failed", error=str(e))
            return PreloadReport()
        channel_ids = popular_channel_ids(items, config.preload.popular_limit)

    report = await service.preload(channel_ids)
    log.info(
        "startup_preload_done",
        succeeded=report.success_count,
        total=report.total,
    )
    return report


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Stream service (store, HTTP client, cache)
        2. Warm start from the persistent store
        3. Catalog client (shares the service's fetcher)
        4. Optional background preload
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Stream service
    service = build_stream_service(config)
    await service.__aenter__()
    state.stream_service = service
    log.info(
        "stream_service_initialized",
        backend=config.cache.backend,
        upstream=config.upstream.base_url,
    )

    # 2) Warm start
    try:
        await service.load_from_persistent()
    except Exception as e:
        # A broken store only costs the warm start.
        log.warning("stream_cache_load_failed", error=str(e))

    # 3) Catalog client
    if service.fetcher is None:
        raise RuntimeError("stream service was built without a fetcher")
    state.catalog = HttpxCatalogClient(
        fetcher=service.fetcher,
        base_url=config.upstream.base_url,
        session_path=config.upstream.session_path,
    )
    log.info("catalog_client_initialized")

    # 4) Startup preload (background, never blocks startup)
    state._preload_task = None
    if config.preload.on_startup:
        state._preload_task = asyncio.create_task(
            startup_preload(service, state.catalog, config)
        )
        log.info("startup_preload_scheduled")

    log.info("app_startup_complete")

    try:
        yield
    finally:
        if state._preload_task is not None and not state._preload_task.done():
            state._preload_task.cancel()
            with suppress(asyncio.CancelledError):
                await state._preload_task
            log.info("startup_preload_cancelled")

        await service.aclose()
        log.info("app_shutdown_complete")
