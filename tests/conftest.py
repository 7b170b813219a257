"""Shared test fixtures for the channelgate test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from channelgate.domain.entities.stream import UpstreamResult
from channelgate.infrastructure.config.schema import AppConfig
from channelgate.infrastructure.persistence.url_cache import StreamUrlCache
from channelgate.infrastructure.storage.memory_adapter import MemoryStoreAdapter

# 2023-11-14T22:13:20Z
START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start_ms: int = START_MS) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


def ok_result(channel_id: str) -> UpstreamResult:
    return UpstreamResult(
        success=True, stream_url=f"https://cdn.example.com/{channel_id}.m3u8"
    )


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def memory_store() -> MemoryStoreAdapter:
    """Dict-backed key-value store."""
    return MemoryStoreAdapter()


@pytest.fixture()
def url_cache(memory_store: MemoryStoreAdapter, clock: FakeClock) -> StreamUrlCache:
    """StreamUrlCache with a 600 s TTL on a memory store and a fake clock."""
    return StreamUrlCache(memory_store, ttl_seconds=600, clock=clock)


# ---------------------------------------------------------------------------
# Upstream fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_upstream() -> AsyncMock:
    """UpstreamStreamPort mock answering with a valid URL per channel."""
    upstream = AsyncMock()
    upstream.fetch_session.side_effect = ok_result
    upstream.fetch_catalog_stream.side_effect = lambda cid: UpstreamResult(
        success=True, stream_url=f"https://catalog.example.com/{cid}.m3u8"
    )
    return upstream


@pytest.fixture()
def app_config() -> AppConfig:
    """Config pointing at a fake upstream, memory store, no preload delay."""
    return AppConfig.model_validate(
        {
            "environment": "test",
            "upstream": {
                "base_url": "https://upstream.example.com",
                "max_retries": 3,
                "timeout_seconds": 5.0,
            },
            "cache": {"backend": "memory"},
            "preload": {"session_delay_seconds": 0.0},
        }
    )
