"""Domain entities for stream URL resolution.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass

ChannelId = str


@dataclass(frozen=True)
class CacheEntry:
    """A resolved stream URL with its absolute expiry (epoch milliseconds)."""

    url: str
    expires_at: int

    def is_valid(self, now_ms: int) -> bool:
        """An entry at exactly its expiry instant is already invalid."""
        return now_ms < self.expires_at


@dataclass(frozen=True)
class UpstreamResult:
    """Normalized upstream response for a channel lookup or session init."""

    success: bool
    stream_url: str = ""
    message: str | None = None

    @property
    def is_usable(self) -> bool:
        return self.success is True and bool(self.stream_url)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "streamUrl": self.stream_url,
            "message": self.message,
        }


@dataclass(frozen=True)
class PreloadReport:
    """Aggregate outcome of a preload run.

    ``succeeded`` lists the channels whose session warm-up succeeded and
    ``failed`` the rest of ``requested``, so the two partition it.
    ``resolve_failed`` lists the channels whose bulk URL resolution failed;
    a channel can appear there and still end up in ``succeeded``.
    """

    requested: tuple[ChannelId, ...] = ()
    resolved: tuple[ChannelId, ...] = ()
    succeeded: tuple[ChannelId, ...] = ()
    failed: tuple[ChannelId, ...] = ()
    resolve_failed: tuple[ChannelId, ...] = ()

    @property
    def total(self) -> int:
        return len(self.requested)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    def to_dict(self) -> dict[str, object]:
        return {
            "requested": list(self.requested),
            "resolved": list(self.resolved),
            "succeeded": list(self.succeeded),
            "failed": list(self.failed),
            "resolve_failed": list(self.resolve_failed),
            "success_count": self.success_count,
            "total": self.total,
        }
