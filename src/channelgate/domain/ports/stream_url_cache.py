"""Port for the stream URL cache."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from channelgate.domain.entities.stream import CacheEntry


@runtime_checkable
class StreamUrlCachePort(Protocol):
    """TTL-bounded channel -> URL cache with a persistent mirror."""

    def get(self, channel_id: str) -> str | None: ...

    def put(self, channel_id: str, url: str) -> CacheEntry: ...

    async def invalidate_all(self) -> None: ...

    async def load_from_persistent(self) -> int: ...
