"""Upstream stream API client built on :class:`ResilientFetcher`."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import structlog

from channelgate.domain.entities.stream import UpstreamResult
from channelgate.domain.exceptions import ExhaustedRetries, InvalidUpstreamResponse
from channelgate.infrastructure.common.resilient_fetcher import ResilientFetcher

log = structlog.get_logger(__name__)

_URL_FIELDS = ("proxyUrl", "streamUrl")


def parse_upstream_payload(channel_id: str, payload: Any) -> UpstreamResult:
    """Normalize a decoded JSON payload into an :class:`UpstreamResult`.

    The URL is read from ``proxyUrl`` or ``streamUrl``.  A payload without
    a ``success`` field counts as successful when it carries a URL.

    Raises:
        InvalidUpstreamResponse: If *payload* is not a JSON object.
    """
    if not isinstance(payload, dict):
        raise InvalidUpstreamResponse(channel_id, "payload is not a JSON object")

    url = ""
    for field in _URL_FIELDS:
        value = payload.get(field)
        if isinstance(value, str) and value:
            url = value
            break

    success = payload.get("success", bool(url))
    message = payload.get("message")
    return UpstreamResult(
        success=success is True,
        stream_url=url,
        message=str(message) if message is not None else None,
    )


def validate_result(channel_id: str, result: UpstreamResult) -> UpstreamResult:
    """Return *result* if usable.

    Raises:
        InvalidUpstreamResponse: ``success`` is not true or the URL is empty.
    """
    if result.success is not True:
        reason = result.message or "upstream reported success=false"
        raise InvalidUpstreamResponse(channel_id, reason)
    if not result.stream_url:
        raise InvalidUpstreamResponse(channel_id, "response has no stream URL")
    return result


class HttpxStreamClient:
    """Fetches session and catalog stream results for a channel.

    Implements ``UpstreamStreamPort`` from domain.ports.upstream.

    Args:
        fetcher: Resilient transport used for every request.
        base_url: Upstream API root.
        session_path: Route for session-bound proxy URLs.
        catalog_path: Route for the channel catalog streams.
    """

    def __init__(
        self,
        *,
        fetcher: ResilientFetcher,
        base_url: str,
        session_path: str = "gopst/channel",
        catalog_path: str = "streams/channel",
    ) -> None:
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")
        self._session_path = session_path.strip("/")
        self._catalog_path = catalog_path.strip("/")

    def session_url(self, channel_id: str) -> str:
        return f"{self._base_url}/{self._session_path}/{quote(channel_id, safe='')}"

    def catalog_url(self, channel_id: str) -> str:
        return f"{self._base_url}/{self._catalog_path}/{quote(channel_id, safe='')}"

    async def fetch_session(self, channel_id: str) -> UpstreamResult:
        return await self._fetch(channel_id, self.session_url(channel_id))

    async def fetch_catalog_stream(self, channel_id: str) -> UpstreamResult:
        return await self._fetch(channel_id, self.catalog_url(channel_id))

    async def _fetch(self, channel_id: str, url: str) -> UpstreamResult:
        try:
            response = await self._fetcher.fetch(url)
        except ExhaustedRetries as e:
            raise e.for_channel(channel_id) from e.__cause__

        if not response.is_success:
            log.warning(
                "upstream_bad_status",
                channel_id=channel_id,
                url=url,
                status=response.status_code,
            )
            raise InvalidUpstreamResponse(
                channel_id,
                f"unexpected HTTP status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise InvalidUpstreamResponse(
                channel_id,
                f"response is not valid JSON: {e}",
                status_code=response.status_code,
            ) from e

        return parse_upstream_payload(channel_id, payload)

