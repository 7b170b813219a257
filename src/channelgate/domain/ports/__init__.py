from .key_value_store import KeyValueStorePort
from .stream_url_cache import StreamUrlCachePort
from .upstream import CatalogClientPort, UpstreamStreamPort

__all__ = [
    "CatalogClientPort",
    "KeyValueStorePort",
    "StreamUrlCachePort",
    "UpstreamStreamPort",
]
