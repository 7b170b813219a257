"""In-process key-value store (no persistence across restarts)."""

from __future__ import annotations

from typing import Iterable


class MemoryStoreAdapter:
    """Dict-backed store implementing ``KeyValueStorePort``.

    Useful for tests and for running without a persistent backend.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def __aenter__(self) -> MemoryStoreAdapter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        return None

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._data if k.startswith(prefix)]

    async def get_many(self, keys: Iterable[str]) -> dict[str, str | None]:
        return {k: self._data.get(k) for k in keys}

    async def remove_many(self, keys: Iterable[str]) -> int:
        removed = 0
        for key in keys:
            if self._data.pop(key, None) is not None:
                removed += 1
        return removed
