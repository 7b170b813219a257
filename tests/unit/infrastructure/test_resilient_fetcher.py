"""Tests for ResilientFetcher (timeouts, capped backoff, retry exhaustion)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from channelgate.domain.exceptions import (
    ExhaustedRetries,
    TransportFailure,
    TransportTimeout,
)
from channelgate.infrastructure.common.resilient_fetcher import (
    ResilientFetcher,
    _parse_retry_after,
)

URL = "https://upstream.example.com/gopst/channel/42"


def _make_fetcher(
    client: httpx.AsyncClient,
    *,
    max_retries: int = 3,
    attempt_timeout: float = 30.0,
    sleep: AsyncMock | None = None,
) -> ResilientFetcher:
    return ResilientFetcher(
        client,
        max_retries=max_retries,
        attempt_timeout=attempt_timeout,
        backoff_base=1.0,
        max_backoff=5.0,
        sleep=sleep or AsyncMock(),
    )


def _delays(sleep: AsyncMock) -> list[float]:
    return [c.args[0] for c in sleep.await_args_list]


class TestComputeDelay:
    def test_doubles_from_base(self) -> None:
        fetcher = _make_fetcher(httpx.AsyncClient())
        assert fetcher.compute_delay(0) == 1.0
        assert fetcher.compute_delay(1) == 2.0
        assert fetcher.compute_delay(2) == 4.0

    def test_capped_at_max_backoff(self) -> None:
        fetcher = _make_fetcher(httpx.AsyncClient())
        assert fetcher.compute_delay(3) == 5.0
        assert fetcher.compute_delay(10) == 5.0

    def test_retry_after_is_capped(self) -> None:
        fetcher = _make_fetcher(httpx.AsyncClient())
        assert fetcher.compute_delay(0, retry_after=2.0) == 2.0
        assert fetcher.compute_delay(0, retry_after=120.0) == 5.0

    def test_max_attempts_counts_first_try(self) -> None:
        fetcher = _make_fetcher(httpx.AsyncClient(), max_retries=3)
        assert fetcher.max_attempts == 4


class TestParseRetryAfter:
    def test_seconds(self) -> None:
        assert _parse_retry_after(httpx.Headers({"Retry-After": "3"})) == 3.0

    def test_missing(self) -> None:
        assert _parse_retry_after(httpx.Headers()) is None

    def test_http_date_ignored(self) -> None:
        headers = httpx.Headers({"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        assert _parse_retry_after(headers) is None


class TestFetch:
    @respx.mock
    async def test_passes_through_successful_response(self) -> None:
        route = respx.get(URL).mock(return_value=httpx.Response(200, json={"ok": 1}))
        sleep = AsyncMock()
        async with httpx.AsyncClient() as client:
            resp = await _make_fetcher(client, sleep=sleep).fetch(URL)

        assert resp.status_code == 200
        assert route.call_count == 1
        sleep.assert_not_awaited()

    @respx.mock
    async def test_succeeds_on_third_attempt(self) -> None:
        route = respx.get(URL).mock(
            side_effect=[
                httpx.ConnectError("connection refused"),
                httpx.ConnectError("connection refused"),
                httpx.Response(200, json={"success": True}),
            ]
        )
        sleep = AsyncMock()
        async with httpx.AsyncClient() as client:
            resp = await _make_fetcher(client, sleep=sleep).fetch(URL)

        assert resp.status_code == 200
        assert route.call_count == 3
        assert _delays(sleep) == [1.0, 2.0]

    @respx.mock
    async def test_exhaustion_raises_single_error(self) -> None:
        route = respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))
        sleep = AsyncMock()
        async with httpx.AsyncClient() as client:
            with pytest.raises(ExhaustedRetries) as exc_info:
                await _make_fetcher(client, sleep=sleep).fetch(URL)

        err = exc_info.value
        assert route.call_count == 4
        assert err.attempts == 4
        assert err.url == URL
        assert isinstance(err.cause, TransportFailure)
        assert err.__cause__ is err.cause
        assert "4 attempt(s)" in str(err)
        assert URL in str(err)
        # No sleep after the final attempt
        assert _delays(sleep) == [1.0, 2.0, 4.0]

    @respx.mock
    async def test_no_retries_means_one_attempt(self) -> None:
        route = respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))
        async with httpx.AsyncClient() as client:
            with pytest.raises(ExhaustedRetries) as exc_info:
                await _make_fetcher(client, max_retries=0).fetch(URL)

        assert route.call_count == 1
        assert exc_info.value.attempts == 1

    @respx.mock
    async def test_httpx_timeout_counts_as_timeout(self) -> None:
        respx.get(URL).mock(side_effect=httpx.ReadTimeout("slow"))
        async with httpx.AsyncClient() as client:
            with pytest.raises(ExhaustedRetries) as exc_info:
                await _make_fetcher(client, max_retries=1).fetch(URL)

        assert isinstance(exc_info.value.cause, TransportTimeout)

    async def test_attempt_deadline_aborts_slow_request(self) -> None:
        calls = 0

        async def _slow_request(method: str, url: str, **kwargs: object) -> None:
            nonlocal calls
            calls += 1
            await asyncio.sleep(10)

        client = AsyncMock(spec=httpx.AsyncClient)
        client.request.side_effect = _slow_request

        fetcher = _make_fetcher(client, max_retries=1, attempt_timeout=0.01)
        with pytest.raises(ExhaustedRetries) as exc_info:
            await fetcher.fetch(URL)

        assert calls == 2
        assert isinstance(exc_info.value.cause, TransportTimeout)

    @respx.mock
    @pytest.mark.parametrize(
        "error",
        [
            httpx.TooManyRedirects("redirect loop"),
            httpx.DecodingError("malformed gzip body"),
        ],
    )
    async def test_other_request_errors_become_transport_failures(
        self, error: httpx.RequestError
    ) -> None:
        route = respx.get(URL).mock(side_effect=error)
        async with httpx.AsyncClient() as client:
            with pytest.raises(ExhaustedRetries) as exc_info:
                await _make_fetcher(client, max_retries=1).fetch(URL)

        assert route.call_count == 2
        assert isinstance(exc_info.value.cause, TransportFailure)
        assert exc_info.value.cause.__cause__ is error

    @respx.mock
    async def test_retries_429_honouring_retry_after(self) -> None:
        route = respx.get(URL).mock(
            side_effect=[
                httpx.Response(429, headers={"Retry-After": "2"}),
                httpx.Response(200, json={}),
            ]
        )
        sleep = AsyncMock()
        async with httpx.AsyncClient() as client:
            resp = await _make_fetcher(client, sleep=sleep).fetch(URL)

        assert resp.status_code == 200
        assert route.call_count == 2
        assert _delays(sleep) == [2.0]

    @respx.mock
    async def test_persistent_503_exhausts(self) -> None:
        respx.get(URL).mock(return_value=httpx.Response(503))
        async with httpx.AsyncClient() as client:
            with pytest.raises(ExhaustedRetries) as exc_info:
                await _make_fetcher(client).fetch(URL)

        assert "HTTP 503" in str(exc_info.value.cause)

    @respx.mock
    async def test_other_error_status_returned_without_retry(self) -> None:
        route = respx.get(URL).mock(return_value=httpx.Response(404))
        sleep = AsyncMock()
        async with httpx.AsyncClient() as client:
            resp = await _make_fetcher(client, sleep=sleep).fetch(URL)

        assert resp.status_code == 404
        assert route.call_count == 1
        sleep.assert_not_awaited()
