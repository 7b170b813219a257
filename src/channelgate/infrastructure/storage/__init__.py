"""Key-value store backends for the persistent URL cache."""

from .diskcache_adapter import DiskcacheAdapter
from .memory_adapter import MemoryStoreAdapter
from .redis_adapter import RedisAdapter
from .store_factory import StoreBackend, create_store

__all__ = [
    "DiskcacheAdapter",
    "MemoryStoreAdapter",
    "RedisAdapter",
    "StoreBackend",
    "create_store",
]
