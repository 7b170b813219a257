"""Catalog entities for live events and TV channels."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Channel:
    """A playable channel attached to a live item."""

    id: int
    name: str
    stream_url: str


@dataclass(frozen=True)
class LiveItem:
    """A live event (or always-on channel) as listed by the upstream."""

    id: str
    match: str
    category: str
    start: str
    end: str
    logo: str = ""
    channels: tuple[Channel, ...] = field(default=())


@dataclass(frozen=True)
class TVChannel:
    """A regular TV channel from the streams catalog."""

    id: int | str
    name: str
    image: str = ""
    stream_url: str = ""
