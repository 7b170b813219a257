from .catalog import Channel, LiveItem, TVChannel
from .stream import CacheEntry, ChannelId, PreloadReport, UpstreamResult

__all__ = [
    "CacheEntry",
    "Channel",
    "ChannelId",
    "LiveItem",
    "PreloadReport",
    "TVChannel",
    "UpstreamResult",
]
