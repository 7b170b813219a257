"""Port for the upstream stream service."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from channelgate.domain.entities.catalog import LiveItem, TVChannel
from channelgate.domain.entities.stream import UpstreamResult


@runtime_checkable
class UpstreamStreamPort(Protocol):
    """Fetches raw stream results for a channel.

    Implementations raise ``ExhaustedRetries`` once the transport gives up
    and ``InvalidUpstreamResponse`` for non-2xx statuses or undecodable
    payloads.  Validation of ``success``/``stream_url`` is left to callers.
    """

    async def fetch_session(self, channel_id: str) -> UpstreamResult: ...

    async def fetch_catalog_stream(self, channel_id: str) -> UpstreamResult: ...


@runtime_checkable
class CatalogClientPort(Protocol):
    """Lists live events, TV channels and categories."""

    async def fetch_live_sports(self) -> list[LiveItem]: ...

    async def fetch_channels(self) -> list[TVChannel]: ...

    async def fetch_categories(self) -> list[str]: ...
