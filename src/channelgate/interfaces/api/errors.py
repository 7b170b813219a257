"""Maps stream errors to HTTP responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from channelgate.domain.exceptions import (
    ExhaustedRetries,
    InvalidUpstreamResponse,
    StreamError,
    UpstreamUnavailable,
)

log = structlog.get_logger(__name__)


def status_for(exc: StreamError) -> int:
    """HTTP status for *exc*: 503 when retrying may help, 502 otherwise."""
    if isinstance(exc, (ExhaustedRetries, UpstreamUnavailable)):
        return 503
    if isinstance(exc, InvalidUpstreamResponse):
        return 502
    return 500


def error_body(exc: StreamError) -> dict[str, object]:
    return {
        "error": type(exc).__name__,
        "detail": exc.user_message(),
        "retryable": exc.retryable,
    }


async def stream_error_handler(request: Request, exc: StreamError) -> JSONResponse:
    status_code = status_for(exc)
    log.warning(
        "stream_error_response",
        path=request.url.path,
        status_code=status_code,
        error=str(exc),
    )
    return JSONResponse(status_code=status_code, content=error_body(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(
        StreamError, stream_error_handler  # type: ignore[arg-type]
    )
