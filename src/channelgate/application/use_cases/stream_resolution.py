"""Cache-first stream URL resolution."""

from __future__ import annotations

from typing import Awaitable, Callable

import structlog

from channelgate.domain.entities.stream import UpstreamResult
from channelgate.domain.ports.stream_url_cache import StreamUrlCachePort
from channelgate.domain.ports.upstream import UpstreamStreamPort
from channelgate.infrastructure.common.singleflight import SingleFlight
from channelgate.infrastructure.upstream.stream_client import validate_result

log = structlog.get_logger(__name__)


class StreamResolutionUseCase:
    """Resolve a channel's stream URL, serving from cache when possible.

    Two upstream routes are supported:

    - :meth:`resolve_stream_url` uses the session route (proxy URL).
    - :meth:`get_channels_stream` uses the channel catalog route.

    Both read and write the same cache key for a channel id, so a result
    from one route is served to the other until it expires.  Whether the
    routes are meant to share entries is not settled upstream; callers
    that need route-specific URLs should not rely on the cache.

    Concurrent misses for one channel are deduplicated through this use
    case's own registry, independent of the session coordinator's.
    """

    def __init__(
        self,
        *,
        upstream: UpstreamStreamPort,
        cache: StreamUrlCachePort,
        registry: SingleFlight[tuple[str, str], str] | None = None,
    ) -> None:
        self._upstream = upstream
        self._cache = cache
        self._registry = registry if registry is not None else SingleFlight("resolve")

    async def resolve_stream_url(self, channel_id: str) -> str:
        """Return a playable URL for *channel_id*.

        Raises:
            ExhaustedRetries: On cache miss, when the transport gave up.
            InvalidUpstreamResponse: On cache miss, when the payload is
                unusable.
        """
        return await self._resolve(
            channel_id, "session", self._upstream.fetch_session
        )

    async def get_channels_stream(self, channel_id: str) -> str:
        """Like :meth:`resolve_stream_url`, against the catalog route."""
        return await self._resolve(
            channel_id, "catalog", self._upstream.fetch_catalog_stream
        )

    async def _resolve(
        self,
        channel_id: str,
        route: str,
        fetch: Callable[[str], Awaitable[UpstreamResult]],
    ) -> str:
        cached = self._cache.get(channel_id)
        if cached is not None:
            return cached

        async def _load() -> str:
            result = validate_result(channel_id, await fetch(channel_id))
            self._cache.put(channel_id, result.stream_url)
            log.info("stream_url_resolved", channel_id=channel_id, route=route)
            return result.stream_url

        return await self._registry.do((route, channel_id), _load)
