"""Store factory - builds the key-value adapter selected by config."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import structlog

from channelgate.domain.ports.key_value_store import KeyValueStorePort
from channelgate.infrastructure.storage.diskcache_adapter import DiskcacheAdapter
from channelgate.infrastructure.storage.memory_adapter import MemoryStoreAdapter
from channelgate.infrastructure.storage.redis_adapter import RedisAdapter

log = structlog.get_logger(__name__)

StoreBackend = Literal["memory", "diskcache", "redis"]


def create_store(
    backend: StoreBackend = "diskcache",
    *,
    directory: str | Path = "./.cache/channelgate",
    redis_url: str = "redis://localhost:6379/0",
    max_concurrent: int = 10,
) -> KeyValueStorePort:
    """Create the persistent store for *backend*.

    Raises:
        ValueError: If `backend` is unknown.
    """
    log.info("store_factory_create", backend=backend)
    if backend == "memory":
        return MemoryStoreAdapter()
    if backend == "diskcache":
        return DiskcacheAdapter(directory=directory, max_concurrent=max_concurrent)
    if backend == "redis":
        return RedisAdapter(url=redis_url, max_concurrent=max(max_concurrent, 50))
    raise ValueError(
        f"Unknown store backend: {backend!r}. "
        "Must be 'memory', 'diskcache' or 'redis'."
    )
