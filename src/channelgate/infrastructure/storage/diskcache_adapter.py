"""Diskcache adapter - SQLite-based key-value store without daemon process."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable

import structlog
from diskcache import Cache as DiskCache

log = structlog.get_logger(__name__)


class DiskcacheAdapter:
    """Async wrapper for diskcache.Cache (sync-only library).

    - Uses `asyncio.to_thread` for I/O (no blocking of the event loop).
    - Semaphore prevents too many parallel disk ops (SQLite lock contention).
    - Implements context manager (`async with`).

    Args:
        directory: SQLite DB path.
        max_concurrent: Max parallel disk ops.
    """

    def __init__(
        self,
        directory: str | Path = "./.cache/channelgate",
        max_concurrent: int = 10,
    ) -> None:
        self.directory = Path(directory)
        self._cache: DiskCache | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> DiskcacheAdapter:
        if self._cache is None:
            self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info("diskcache_opened", path=str(self.directory))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._cache is not None:
            await asyncio.to_thread(self._cache.close)
            self._cache = None
            log.info("diskcache_closed", directory=str(self.directory))

    def _require(self) -> DiskCache:
        if self._cache is None:
            raise RuntimeError(
                "Store not initialized. "
                "Use 'async with store:' or await store.__aenter__()"
            )
        return self._cache

    async def get(self, key: str) -> str | None:
        cache = self._require()
        async with self._semaphore:
            return await asyncio.to_thread(cache.get, key, default=None)

    async def set(self, key: str, value: str) -> None:
        cache = self._require()
        async with self._semaphore:
            await asyncio.to_thread(cache.set, key, value)
            log.debug("store_set", key=key, size_bytes=len(value))

    async def keys(self, prefix: str = "") -> list[str]:
        cache = self._require()

        def _scan() -> list[str]:
            return [
                k
                for k in cache.iterkeys()
                if isinstance(k, str) and k.startswith(prefix)
            ]

        async with self._semaphore:
            return await asyncio.to_thread(_scan)

    async def get_many(self, keys: Iterable[str]) -> dict[str, str | None]:
        cache = self._require()
        wanted = list(keys)

        def _read() -> dict[str, str | None]:
            return {k: cache.get(k, default=None) for k in wanted}

        async with self._semaphore:
            return await asyncio.to_thread(_read)

    async def remove_many(self, keys: Iterable[str]) -> int:
        if self._cache is None:
            return 0
        cache = self._cache
        doomed = list(keys)

        def _delete() -> int:
            return sum(1 for k in doomed if cache.delete(k))

        async with self._semaphore:
            removed = await asyncio.to_thread(_delete)
            log.debug("store_remove_many", requested=len(doomed), removed=removed)
            return removed
