"""Upstream API clients."""

from .catalog_client import HttpxCatalogClient
from .stream_client import HttpxStreamClient, parse_upstream_payload, validate_result

__all__ = [
    "HttpxCatalogClient",
    "HttpxStreamClient",
    "parse_upstream_payload",
    "validate_result",
]
