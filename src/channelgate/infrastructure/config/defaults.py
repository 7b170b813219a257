"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "channelgate",
    "environment": "dev",
    "upstream": {
        "base_url": "http://localhost:8080",
        "session_path": "gopst/channel",
        "catalog_path": "streams/channel",
        "timeout_seconds": 30.0,
        "max_retries": 3,
        "backoff_base_seconds": 1.0,
        "max_backoff_seconds": 5.0,
        "requests_per_second": 0.0,
        "user_agent": "channelgate/0.1.0",
    },
    "cache": {
        "backend": "diskcache",
        "dir": "./.cache/channelgate",
        "ttl_seconds": 600,
        "key_prefix": "streamUrl_",
    },
    "preload": {
        "session_delay_seconds": 0.5,
        "on_startup": False,
        "channel_ids": [],
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
}
