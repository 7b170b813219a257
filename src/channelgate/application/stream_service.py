"""Stream service: the public resolution API with an explicit lifecycle.

Owns the URL cache, both deduplication registries and the persistent
store.  Build one with :func:`build_stream_service` and use it as an
async context manager::

    async with build_stream_service(config) as service:
        await service.load_from_persistent()
        url = await service.resolve_stream_url("42")
"""

from __future__ import annotations

from typing import Iterable

import httpx
import structlog

from channelgate.application.use_cases.preload import PreloadOrchestrator
from channelgate.application.use_cases.session_coordinator import SessionCoordinator
from channelgate.application.use_cases.stream_resolution import (
    StreamResolutionUseCase,
)
from channelgate.domain.entities.stream import PreloadReport, UpstreamResult
from channelgate.domain.ports.key_value_store import KeyValueStorePort
from channelgate.domain.ports.upstream import UpstreamStreamPort
from channelgate.infrastructure.common.rate_limiter import (
    HostRateLimiter,
    SpacingRateLimiter,
)
from channelgate.infrastructure.common.resilient_fetcher import (
    ResilientFetcher,
    Sleep,
)
from channelgate.infrastructure.common.singleflight import SingleFlight
from channelgate.infrastructure.config.schema import AppConfig
from channelgate.infrastructure.persistence.url_cache import (
    Clock,
    StreamUrlCache,
    now_ms,
)
from channelgate.infrastructure.storage.store_factory import create_store
from channelgate.infrastructure.upstream.stream_client import HttpxStreamClient

log = structlog.get_logger(__name__)


class StreamService:
    """Facade over cache, session coordinator, resolver and preloader.

    ``__aenter__`` opens the store.  :meth:`aclose` cancels in-flight
    requests, flushes pending cache writes, then closes the store and the
    HTTP client if the service owns it.
    """

    def __init__(
        self,
        *,
        store: KeyValueStorePort,
        upstream: UpstreamStreamPort,
        cache: StreamUrlCache,
        session_delay_seconds: float = 0.5,
        fetcher: ResilientFetcher | None = None,
        http_client: httpx.AsyncClient | None = None,
        owns_http_client: bool = False,
    ) -> None:
        self.store = store
        self.upstream = upstream
        self.cache = cache
        self.fetcher = fetcher
        self._http_client = http_client
        self._owns_http_client = owns_http_client

        self._session_registry: SingleFlight[str, UpstreamResult] = SingleFlight(
            "session"
        )
        self._resolve_registry: SingleFlight[tuple[str, str], str] = SingleFlight(
            "resolve"
        )
        self.sessions = SessionCoordinator(
            upstream=upstream, cache=cache, registry=self._session_registry
        )
        self.resolver = StreamResolutionUseCase(
            upstream=upstream, cache=cache, registry=self._resolve_registry
        )
        self.preloader = PreloadOrchestrator(
            resolver=self.resolver,
            sessions=self.sessions,
            limiter=SpacingRateLimiter(session_delay_seconds),
        )
        self._closed = False

    async def __aenter__(self) -> StreamService:
        await self.store.__aenter__()
        log.info("stream_service_started", ttl_ms=self.cache.ttl_ms)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True

        await self._session_registry.aclose()
        await self._resolve_registry.aclose()
        await self.cache.aclose()
        await self.store.aclose()
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
        log.info("stream_service_closed")

    # Public API

    async def resolve_stream_url(self, channel_id: str) -> str:
        return await self.resolver.resolve_stream_url(channel_id)

    async def get_channels_stream(self, channel_id: str) -> str:
        return await self.resolver.get_channels_stream(channel_id)

    async def initialize_session(self, channel_id: str) -> UpstreamResult:
        return await self.sessions.initialize_session(channel_id)

    async def preload(self, channel_ids: Iterable[str]) -> PreloadReport:
        return await self.preloader.preload(channel_ids)

    async def invalidate_all(self) -> None:
        await self.cache.invalidate_all()

    async def load_from_persistent(self) -> int:
        return await self.cache.load_from_persistent()


def build_resilient_fetcher(
    config: AppConfig,
    http_client: httpx.AsyncClient,
    *,
    sleep: Sleep | None = None,
) -> ResilientFetcher:
    upstream = config.upstream
    return ResilientFetcher(
        http_client,
        rate_limiter=HostRateLimiter(
            default_rps=upstream.requests_per_second, adaptive=True
        ),
        max_retries=upstream.max_retries,
        attempt_timeout=upstream.timeout_seconds,
        backoff_base=upstream.backoff_base_seconds,
        max_backoff=upstream.max_backoff_seconds,
        sleep=sleep,
    )


def build_stream_service(
    config: AppConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
    store: KeyValueStorePort | None = None,
    clock: Clock = now_ms,
    sleep: Sleep | None = None,
) -> StreamService:
    """Wire a :class:`StreamService` from configuration.

    A caller-supplied *http_client* is left open on close; one created
    here is owned and closed by the service.  *store* overrides the
    configured backend.
    """
    owns_http_client = http_client is None
    if http_client is None:
        # Per-attempt deadlines are enforced by the fetcher; the client
        # timeout only bounds individual phases (connect/read).
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.upstream.timeout_seconds),
            headers={"User-Agent": config.upstream.user_agent},
            follow_redirects=True,
        )

    if store is None:
        store = create_store(
            config.cache.backend,
            directory=config.cache.directory,
            redis_url=config.cache.redis_url,
            max_concurrent=config.cache.max_concurrent,
        )

    fetcher = build_resilient_fetcher(config, http_client, sleep=sleep)
    upstream = HttpxStreamClient(
        fetcher=fetcher,
        base_url=config.upstream.base_url,
        session_path=config.upstream.session_path,
        catalog_path=config.upstream.catalog_path,
    )
    cache = StreamUrlCache(
        store,
        ttl_seconds=config.cache.ttl_seconds,
        key_prefix=config.cache.key_prefix,
        clock=clock,
    )
    return StreamService(
        store=store,
        upstream=upstream,
        cache=cache,
        session_delay_seconds=config.preload.session_delay_seconds,
        fetcher=fetcher,
        http_client=http_client,
        owns_http_client=owns_http_client,
    )
