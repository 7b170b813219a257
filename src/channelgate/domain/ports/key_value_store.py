"""Key-value store port - interface for the persistent cache backend."""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStorePort(Protocol):
    """Async string key-value store.

    Implementations:
      - MemoryStoreAdapter (process-local, for tests and ephemeral runs)
      - DiskcacheAdapter (SQLite-based, no daemon)
      - RedisAdapter (Redis async client)

    Values are opaque strings; callers own serialization.  Adapters MUST
    support async context-manager semantics::

        async with store:
            await store.set("key", "value")
    """

    async def get(self, key: str) -> str | None:
        """Retrieve value. None = not found."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store value (no backend-side expiry)."""
        ...

    async def keys(self, prefix: str = "") -> list[str]:
        """List all keys starting with *prefix*."""
        ...

    async def get_many(self, keys: Iterable[str]) -> dict[str, str | None]:
        """Bulk read. Missing keys map to None."""
        ...

    async def remove_many(self, keys: Iterable[str]) -> int:
        """Bulk delete. Returns the number of keys actually removed."""
        ...

    async def aclose(self) -> None:
        """Cleanup hook (e.g. close Redis connection)."""
        ...

    async def __aenter__(self) -> KeyValueStorePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
