"""Session initialization with per-channel request deduplication."""

from __future__ import annotations

import structlog

from channelgate.domain.entities.stream import UpstreamResult
from channelgate.domain.exceptions import InvalidUpstreamResponse
from channelgate.domain.ports.stream_url_cache import StreamUrlCachePort
from channelgate.domain.ports.upstream import UpstreamStreamPort
from channelgate.infrastructure.common.singleflight import SingleFlight
from channelgate.infrastructure.upstream.stream_client import validate_result

log = structlog.get_logger(__name__)


class SessionCoordinator:
    """Initializes upstream sessions, one request per channel at a time.

    Any number of concurrent ``initialize_session(x)`` calls share a single
    upstream request for ``x`` and observe the same result or the same
    exception.  A successful, validated result is written to the URL cache
    before any caller sees it; failures are never cached.

    The session route and the catalog route write to the same cache key
    for a channel (last writer wins).
    """

    def __init__(
        self,
        *,
        upstream: UpstreamStreamPort,
        cache: StreamUrlCachePort,
        registry: SingleFlight[str, UpstreamResult] | None = None,
    ) -> None:
        self._upstream = upstream
        self._cache = cache
        self._registry = registry if registry is not None else SingleFlight("session")

    @property
    def pending(self) -> list[str]:
        """Channel ids with a session request currently in flight."""
        return self._registry.in_flight()

    async def initialize_session(self, channel_id: str) -> UpstreamResult:
        """Initialize (or join the in-flight initialization of) a session.

        Raises:
            ExhaustedRetries: The transport gave up; annotated with the
                channel id.
            InvalidUpstreamResponse: The upstream answered with an unusable
                payload.
        """
        if channel_id in self._registry:
            log.debug("session_request_deduplicated", channel_id=channel_id)
        return await self._registry.do(
            channel_id, lambda: self._initialize(channel_id)
        )

    async def _initialize(self, channel_id: str) -> UpstreamResult:
        log.info("session_init_started", channel_id=channel_id)
        try:
            result = validate_result(
                channel_id, await self._upstream.fetch_session(channel_id)
            )
        except InvalidUpstreamResponse as e:
            log.warning(
                "session_init_invalid", channel_id=channel_id, reason=e.reason
            )
            raise
        except Exception as e:
            log.warning("session_init_failed", channel_id=channel_id, error=str(e))
            raise

        self._cache.put(channel_id, result.stream_url)
        log.info("session_init_succeeded", channel_id=channel_id)
        return result
