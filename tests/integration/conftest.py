"""Shared fixtures for integration tests.

These tests use real infrastructure components (DiskcacheAdapter,
ResilientFetcher, the FastAPI app) with mocked HTTP via respx.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import respx

from channelgate.infrastructure.config.schema import AppConfig
from channelgate.infrastructure.storage.diskcache_adapter import DiskcacheAdapter

UPSTREAM = "https://upstream.example.com"


@pytest.fixture()
async def diskcache(tmp_path: Path) -> DiskcacheAdapter:
    """Real DiskcacheAdapter backed by tmp_path (auto-cleaned)."""
    adapter = DiskcacheAdapter(directory=tmp_path / "cache", max_concurrent=5)
    async with adapter:
        yield adapter


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
def disk_config(tmp_path: Path) -> AppConfig:
    """Config with a diskcache store under tmp_path and no retry delays."""
    return AppConfig.model_validate(
        {
            "environment": "test",
            "upstream": {
                "base_url": UPSTREAM,
                "backoff_base_seconds": 0.0,
                "max_backoff_seconds": 0.01,
            },
            "cache": {"backend": "diskcache", "dir": str(tmp_path / "store")},
            "preload": {"session_delay_seconds": 0.0},
        }
    )
