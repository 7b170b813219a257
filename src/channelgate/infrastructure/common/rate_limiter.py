"""Rate limiters for upstream calls.

- :class:`TokenBucket` / :class:`HostRateLimiter`: proactive per-host
  throttling applied by the fetcher before every attempt, with optional
  AIMD adaptation (timeouts and 429/503 shrink the rate, successes grow it).
- :class:`SpacingRateLimiter`: enforces a fixed gap between the end of
  one call and the start of the next (session warm-up pacing).
"""

from __future__ import annotations

import asyncio
import time
from types import TracebackType
from urllib.parse import urlparse

import structlog

log = structlog.get_logger(__name__)


class TokenBucket:
    """Token bucket with optional AIMD rate adaptation.

    Args:
        rate: Tokens replenished per second. ``<= 0`` disables limiting.
        burst: Bucket capacity.
        adaptive: Adjust the rate from success/throttle/timeout feedback.
        min_rate: Floor for the adaptive rate.
        max_rate: Ceiling for the adaptive rate.
    """

    def __init__(
        self,
        rate: float,
        burst: int = 5,
        *,
        adaptive: bool = False,
        min_rate: float = 0.5,
        max_rate: float = 20.0,
    ) -> None:
        self._rate = rate
        self._burst = burst
        self._tokens = float(burst)
        self._stamp = time.monotonic()
        self._lock = asyncio.Lock()
        self._adaptive = adaptive
        self._min_rate = min_rate
        self._max_rate = max_rate

    @property
    def rate(self) -> float:
        return self._rate

    async def acquire(self) -> None:
        """Block until one token is available and take it."""
        if self._rate <= 0:
            return

        async with self._lock:
            self._refill()
            while self._tokens < 1.0:
                await asyncio.sleep((1.0 - self._tokens) / self._rate)
                self._refill()
            self._tokens -= 1.0

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self._burst, self._tokens + (now - self._stamp) * self._rate)
        self._stamp = now

    def record_success(self) -> None:
        if self._adaptive:
            self._rate = min(self._max_rate, self._rate * 1.1)

    def record_throttle(self) -> None:
        if self._adaptive:
            self._adjust(0.5, "rate_limit_throttle")

    def record_timeout(self) -> None:
        if self._adaptive:
            self._adjust(0.75, "rate_limit_timeout")

    def _adjust(self, factor: float, event: str) -> None:
        old = self._rate
        self._rate = max(self._min_rate, self._rate * factor)
        log.debug(event, old_rps=round(old, 2), new_rps=round(self._rate, 2))


class HostRateLimiter:
    """One :class:`TokenBucket` per upstream host.

    Args:
        default_rps: Requests per second per host. 0 = unlimited.
        burst: Bucket capacity per host.
        adaptive: Enable AIMD adaptation per host.
    """

    def __init__(
        self,
        default_rps: float = 0.0,
        burst: int = 5,
        *,
        adaptive: bool = False,
    ) -> None:
        self._default_rps = default_rps
        self._burst = burst
        self._adaptive = adaptive
        self._buckets: dict[str, TokenBucket] = {}

    @staticmethod
    def _host(url: str) -> str:
        return urlparse(url).hostname or ""

    def _bucket(self, url: str, *, create: bool) -> TokenBucket | None:
        host = self._host(url)
        if not host:
            return None
        bucket = self._buckets.get(host)
        if bucket is None and create:
            bucket = TokenBucket(
                rate=self._default_rps,
                burst=self._burst,
                adaptive=self._adaptive,
            )
            self._buckets[host] = bucket
        return bucket

    async def acquire(self, url: str) -> None:
        if self._default_rps <= 0:
            return
        bucket = self._bucket(url, create=True)
        if bucket is not None:
            await bucket.acquire()

    def record_success(self, url: str) -> None:
        bucket = self._bucket(url, create=False)
        if bucket is not None:
            bucket.record_success()

    def record_throttle(self, url: str) -> None:
        bucket = self._bucket(url, create=False)
        if bucket is not None:
            bucket.record_throttle()

    def record_timeout(self, url: str) -> None:
        bucket = self._bucket(url, create=False)
        if bucket is not None:
            bucket.record_timeout()


class SpacingRateLimiter:
    """Keep at least *interval* seconds between consecutive calls.

    The gap is measured from the moment the previous call finished
    (``release``) to the moment the next one may start (``acquire``), so
    a slow call never shortens the pause that follows it.  Use as an
    async context manager around each call::

        async with limiter:
            await do_call()
    """

    def __init__(self, interval: float) -> None:
        self.interval = max(0.0, interval)
        self._released_at: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        await self._lock.acquire()
        if self._released_at is None or self.interval <= 0:
            return
        wait = self._released_at + self.interval - time.monotonic()
        if wait > 0:
            try:
                await asyncio.sleep(wait)
            except BaseException:
                self._lock.release()
                raise

    def release(self) -> None:
        self._released_at = time.monotonic()
        self._lock.release()

    async def __aenter__(self) -> SpacingRateLimiter:
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.release()
