"""Stream URL cache: in-memory TTL map mirrored to a key-value store.

The in-memory map is authoritative for the process lifetime.  The
persistent store is written in the background (best effort) and only read
at startup by :meth:`StreamUrlCache.load_from_persistent`.
"""

from __future__ import annotations

import asyncio
import json
import math
import time
from typing import Callable

import structlog

from channelgate.domain.entities.stream import CacheEntry
from channelgate.domain.exceptions import CacheCorruption
from channelgate.domain.ports.key_value_store import KeyValueStorePort

log = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 600
DEFAULT_KEY_PREFIX = "streamUrl_"

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def _serialize_entry(entry: CacheEntry) -> str:
    return json.dumps({"url": entry.url, "expires": entry.expires_at})


def _deserialize_entry(key: str, raw: str | None) -> CacheEntry:
    """Parse a persisted value.

    Raises:
        CacheCorruption: If the value is missing, not JSON or misshapen.
    """
    if raw is None:
        raise CacheCorruption(key, "value missing")
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise CacheCorruption(key, f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise CacheCorruption(key, "expected an object")
    url = data.get("url")
    expires = data.get("expires")
    if not isinstance(url, str) or not url:
        raise CacheCorruption(key, "missing url")
    if isinstance(expires, bool) or not isinstance(expires, (int, float)):
        raise CacheCorruption(key, "missing expires")
    if not math.isfinite(expires):
        raise CacheCorruption(key, f"non-finite expires: {expires}")
    return CacheEntry(url=url, expires_at=int(expires))


class StreamUrlCache:
    """Channel -> URL cache with fixed TTL and a persistent mirror.

    Args:
        store: Persistent key-value store (the cache namespace is owned
            exclusively by this object).
        ttl_seconds: Lifetime of every entry.
        key_prefix: Namespace prefix for persisted keys.
        clock: Returns "now" in epoch milliseconds.
    """

    def __init__(
        self,
        store: KeyValueStorePort,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._ttl_ms = int(ttl_seconds * 1000)
        self._prefix = key_prefix
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._pending_writes: set[asyncio.Task[None]] = set()

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def key_for(self, channel_id: str) -> str:
        return f"{self._prefix}{channel_id}"

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for e in self._entries.values() if e.is_valid(now))

    def __contains__(self, channel_id: object) -> bool:
        return isinstance(channel_id, str) and self.get(channel_id) is not None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def entry(self, channel_id: str) -> CacheEntry | None:
        """Return the valid entry for *channel_id*, if any."""
        entry = self._entries.get(channel_id)
        if entry is None or not entry.is_valid(self._clock()):
            return None
        return entry

    def get(self, channel_id: str) -> str | None:
        """Return the cached URL, or None on miss or expiry.

        Expired entries are left in place (lazy expiry); the persistent
        store is never consulted here.
        """
        entry = self.entry(channel_id)
        if entry is None:
            log.debug("stream_cache_miss", channel_id=channel_id)
            return None
        log.debug("stream_cache_hit", channel_id=channel_id)
        return entry.url

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, channel_id: str, url: str) -> CacheEntry:
        """Store *url* for *channel_id* and mirror it in the background."""
        entry = CacheEntry(url=url, expires_at=self._clock() + self._ttl_ms)
        self._entries[channel_id] = entry

        task = asyncio.get_running_loop().create_task(
            self._persist(self.key_for(channel_id), entry)
        )
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
        return entry

    async def _persist(self, key: str, entry: CacheEntry) -> None:
        try:
            await self._store.set(key, _serialize_entry(entry))
        except Exception as e:
            log.warning("stream_cache_persist_failed", key=key, error=str(e))

    async def flush(self) -> None:
        """Wait for every background write scheduled so far."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    async def invalidate_all(self) -> None:
        """Drop every entry from memory and from the persistent namespace."""
        await self.flush()
        count = len(self._entries)
        self._entries.clear()
        try:
            keys = await self._store.keys(self._prefix)
            removed = await self._store.remove_many(keys) if keys else 0
        except Exception as e:
            log.warning("stream_cache_invalidate_store_failed", error=str(e))
            return
        log.info(
            "stream_cache_invalidated",
            memory_entries=count,
            persisted_removed=removed,
        )

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def load_from_persistent(self) -> int:
        """Warm the in-memory map from the store.

        Expired and corrupt entries are removed from the store.  An entry
        already in memory is kept when it expires later than the persisted
        one.  Returns the number of entries loaded.
        """
        keys = await self._store.keys(self._prefix)
        if not keys:
            log.info("stream_cache_loaded", loaded=0, discarded=0)
            return 0

        values = await self._store.get_many(keys)
        now = self._clock()
        doomed: list[str] = []
        loaded = 0

        for key in keys:
            try:
                entry = _deserialize_entry(key, values.get(key))
            except CacheCorruption as e:
                log.warning("stream_cache_corrupt_entry", key=key, reason=e.reason)
                doomed.append(key)
                continue
            if not entry.is_valid(now):
                doomed.append(key)
                continue

            channel_id = key[len(self._prefix):]
            current = self._entries.get(channel_id)
            if current is None or current.expires_at < entry.expires_at:
                self._entries[channel_id] = entry
            loaded += 1

        if doomed:
            await self._store.remove_many(doomed)

        log.info("stream_cache_loaded", loaded=loaded, discarded=len(doomed))
        return loaded

    async def aclose(self) -> None:
        await self.flush()

    def snapshot(self) -> dict[str, dict[str, object]]:
        """Diagnostic view of all in-memory entries (valid or not)."""
        now = self._clock()
        return {
            channel_id: {
                "url": entry.url,
                "expires_at": entry.expires_at,
                "valid": entry.is_valid(now),
            }
            for channel_id, entry in sorted(self._entries.items())
        }
