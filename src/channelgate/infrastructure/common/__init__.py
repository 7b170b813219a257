"""Common infrastructure utilities."""

from __future__ import annotations

from .rate_limiter import HostRateLimiter, SpacingRateLimiter, TokenBucket
from .resilient_fetcher import ResilientFetcher
from .singleflight import SingleFlight

__all__ = [
    "HostRateLimiter",
    "ResilientFetcher",
    "SingleFlight",
    "SpacingRateLimiter",
    "TokenBucket",
]
