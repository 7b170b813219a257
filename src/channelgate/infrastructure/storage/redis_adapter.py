"""Redis adapter - async Redis via redis.asyncio."""

from __future__ import annotations

import asyncio
from typing import Iterable

import structlog
from redis.asyncio import Redis

log = structlog.get_logger(__name__)


class RedisAdapter:
    """Async Redis key-value store with a semaphore-bounded connection pool.

    Values are stored as UTF-8 strings (``decode_responses=True``).
    Redis errors propagate; the URL cache decides which ones to swallow.

    Args:
        url: Redis URL (e.g. `redis://localhost:6379/0`).
        max_concurrent: Max parallel Redis ops.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        max_concurrent: int = 50,
    ) -> None:
        self.url = url
        self._client: Redis | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> RedisAdapter:
        if self._client is None:
            self._client = Redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self._client.ping()
            log.info("redis_connected", url=self.url)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.info("redis_closed")

    def _require(self) -> Redis:
        if self._client is None:
            raise RuntimeError("Redis not initialized. Use 'async with store:'")
        return self._client

    async def get(self, key: str) -> str | None:
        client = self._require()
        async with self._semaphore:
            return await client.get(key)

    async def set(self, key: str, value: str) -> None:
        client = self._require()
        async with self._semaphore:
            await client.set(key, value)

    async def keys(self, prefix: str = "") -> list[str]:
        client = self._require()
        pattern = f"{prefix}*"
        async with self._semaphore:
            return [key async for key in client.scan_iter(match=pattern)]

    async def get_many(self, keys: Iterable[str]) -> dict[str, str | None]:
        client = self._require()
        wanted = list(keys)
        if not wanted:
            return {}
        async with self._semaphore:
            values = await client.mget(wanted)
        return dict(zip(wanted, values))

    async def remove_many(self, keys: Iterable[str]) -> int:
        doomed = list(keys)
        if self._client is None or not doomed:
            return 0
        async with self._semaphore:
            removed = await self._client.delete(*doomed)
        log.debug("store_remove_many", requested=len(doomed), removed=removed)
        return int(removed)
