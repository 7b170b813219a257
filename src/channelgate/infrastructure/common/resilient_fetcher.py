"""httpx fetcher with per-attempt timeouts and capped exponential backoff."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx
import structlog

from channelgate.domain.exceptions import (
    ExhaustedRetries,
    TransportError,
    TransportFailure,
    TransportTimeout,
)
from channelgate.infrastructure.common.rate_limiter import HostRateLimiter

log = structlog.get_logger(__name__)

_DEFAULT_RETRYABLE = frozenset({429, 503})

Sleep = Callable[[float], Awaitable[None]]


def _parse_retry_after(headers: httpx.Headers) -> float | None:
    """Parse a ``Retry-After`` header given in seconds.

    HTTP-date values are ignored and yield ``None``.
    """
    raw = headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


class ResilientFetcher:
    """Issue one logical HTTP request with bounded attempts.

    Every attempt is raced against *attempt_timeout*; a timeout, any
    ``httpx.RequestError`` or a throttling status (429/503 by default)
    counts as a failed attempt.  Between attempts the fetcher sleeps
    ``min(backoff_base * 2**attempt, max_backoff)`` (or the server's
    ``Retry-After``, capped the same way).  Once ``1 + max_retries``
    attempts have failed a single :class:`ExhaustedRetries` is raised.

    Any other response, including non-2xx statuses, is returned to the
    caller unchanged.  Nothing is cached here.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        rate_limiter: HostRateLimiter | None = None,
        max_retries: int = 3,
        attempt_timeout: float = 30.0,
        backoff_base: float = 1.0,
        max_backoff: float = 5.0,
        retryable_status_codes: frozenset[int] = _DEFAULT_RETRYABLE,
        sleep: Sleep | None = None,
    ) -> None:
        self._http = http_client
        self._rate_limiter = rate_limiter or HostRateLimiter()
        self._max_retries = max(0, max_retries)
        self._attempt_timeout = attempt_timeout
        self._backoff_base = backoff_base
        self._max_backoff = max_backoff
        self._retryable = retryable_status_codes
        self._sleep = sleep or asyncio.sleep

    @property
    def max_attempts(self) -> int:
        return 1 + self._max_retries

    def compute_delay(self, attempt: int, retry_after: float | None = None) -> float:
        """Backoff before the attempt following zero-based *attempt*."""
        if retry_after is not None:
            return min(max(retry_after, 0.0), self._max_backoff)
        return min(self._backoff_base * (2**attempt), self._max_backoff)

    async def fetch(
        self, url: str, *, method: str = "GET", **options: Any
    ) -> httpx.Response:
        """Send the request, retrying transient failures.

        Raises:
            ExhaustedRetries: every attempt failed; chained to the last
                underlying :class:`TransportError`.
        """
        last_error: TransportError | None = None

        for attempt in range(self.max_attempts):
            await self._rate_limiter.acquire(url)
            retry_after: float | None = None

            try:
                response = await asyncio.wait_for(
                    self._http.request(method, url, **options),
                    timeout=self._attempt_timeout,
                )
            except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
                self._rate_limiter.record_timeout(url)
                last_error = TransportTimeout(
                    f"attempt {attempt + 1} timed out after {self._attempt_timeout}s"
                )
                last_error.__cause__ = exc
            except httpx.RequestError as exc:
                last_error = TransportFailure(f"{type(exc).__name__}: {exc}")
                last_error.__cause__ = exc
            else:
                if response.status_code not in self._retryable:
                    self._rate_limiter.record_success(url)
                    return response
                self._rate_limiter.record_throttle(url)
                retry_after = _parse_retry_after(response.headers)
                last_error = TransportFailure(f"HTTP {response.status_code}")

            if attempt + 1 >= self.max_attempts:
                break

            delay = self.compute_delay(attempt, retry_after)
            log.info(
                "http_retry",
                url=url,
                attempt=attempt + 1,
                error=str(last_error),
                delay=round(delay, 2),
            )
            await self._sleep(delay)

        log.warning(
            "http_retries_exhausted",
            url=url,
            attempts=self.max_attempts,
            error=str(last_error),
        )
        raise ExhaustedRetries(url, self.max_attempts, last_error) from last_error
