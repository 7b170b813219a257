"""Live catalog client: events, TV channels and categories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import structlog

from channelgate.domain.categories import extract_category_from_name
from channelgate.domain.entities.catalog import Channel, LiveItem, TVChannel
from channelgate.domain.exceptions import ExhaustedRetries, UpstreamUnavailable
from channelgate.infrastructure.common.resilient_fetcher import ResilientFetcher

log = structlog.get_logger(__name__)

# Always-on channels are listed as live items spanning the next 24 hours.
_LIVE_WINDOW = timedelta(hours=24)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


class HttpxCatalogClient:
    """Async catalog client over :class:`ResilientFetcher`.

    Implements ``CatalogClientPort`` from domain.ports.upstream.
    """

    def __init__(
        self,
        *,
        fetcher: ResilientFetcher,
        base_url: str,
        session_path: str = "gopst/channel",
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")
        self._session_path = session_path.strip("/")
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def _get_json(self, resource: str, path: str) -> dict[str, Any]:
        url = f"{self._base_url}/{path}"
        try:
            resp = await self._fetcher.fetch(url)
            resp.raise_for_status()
            data = resp.json()
        except ExhaustedRetries as e:
            log.warning("catalog_unreachable", resource=resource, error=str(e))
            raise UpstreamUnavailable(resource, str(e)) from e
        except httpx.HTTPStatusError as e:
            log.warning(
                "catalog_http_error",
                resource=resource,
                status=e.response.status_code,
            )
            raise UpstreamUnavailable(
                resource, f"HTTP {e.response.status_code}"
            ) from e
        except ValueError as e:
            raise UpstreamUnavailable(resource, "invalid JSON") from e

        if not isinstance(data, dict):
            raise UpstreamUnavailable(resource, "unexpected payload shape")
        return data

    async def fetch_live_sports(self) -> list[LiveItem]:
        """List live channels as :class:`LiveItem` objects.

        Each item carries one :class:`Channel` whose ``stream_url`` points
        at the session route for that channel.
        """
        data = await self._get_json("live sports", "gopst/channels/list")
        start = self._now()
        end = start + _LIVE_WINDOW

        items: list[LiveItem] = []
        for index, raw in enumerate(data.get("channels") or []):
            if not isinstance(raw, dict) or raw.get("id") is None:
                continue
            channel_id = str(raw["id"])
            name = str(raw.get("name") or f"Channel {index}")
            items.append(
                LiveItem(
                    id=channel_id,
                    match=name,
                    category=extract_category_from_name(name),
                    start=_iso(start),
                    end=_iso(end),
                    logo=str(raw.get("logo") or ""),
                    channels=(
                        Channel(
                            id=index + 1,
                            name=name,
                            stream_url=(
                                f"{self._base_url}/{self._session_path}/{channel_id}"
                            ),
                        ),
                    ),
                )
            )
        log.debug("catalog_live_loaded", count=len(items))
        return items

    async def fetch_channels(self) -> list[TVChannel]:
        data = await self._get_json("channels", "streams/channels")
        channels: list[TVChannel] = []
        for index, raw in enumerate(data.get("channels") or []):
            if not isinstance(raw, dict):
                continue
            channels.append(
                TVChannel(
                    id=raw["id"] if raw.get("id") is not None else index,
                    name=str(raw.get("name") or f"Channel {index}"),
                    image=str(raw.get("image") or ""),
                    stream_url=str(raw.get("streamUrl") or ""),
                )
            )
        return channels

    async def fetch_categories(self) -> list[str]:
        data = await self._get_json("categories", "categories")
        return [str(c) for c in data.get("categories") or []]
