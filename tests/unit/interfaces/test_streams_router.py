"""Tests for the stream resolution API."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from channelgate.domain.entities.stream import PreloadReport, UpstreamResult
from channelgate.domain.exceptions import (
    ExhaustedRetries,
    InvalidUpstreamResponse,
    TransportFailure,
)
from channelgate.interfaces.api.errors import register_error_handlers
from channelgate.interfaces.api.streams.router import router


def _make_app(service: MagicMock) -> FastAPI:
    """Minimal FastAPI app with the streams router and a mocked service."""
    app = FastAPI()
    app.include_router(router)
    register_error_handlers(app)
    app.state.stream_service = service
    return app


def _mock_service() -> MagicMock:
    service = MagicMock()
    service.resolve_stream_url = AsyncMock(return_value="https://p/42.m3u8")
    service.get_channels_stream = AsyncMock(return_value="https://s/42.m3u8")
    service.initialize_session = AsyncMock(
        return_value=UpstreamResult(success=True, stream_url="https://p/42.m3u8")
    )
    service.preload = AsyncMock()
    service.invalidate_all = AsyncMock()
    return service


class TestStreamEndpoints:
    def test_resolve_stream(self) -> None:
        service = _mock_service()
        client = TestClient(_make_app(service))

        resp = client.get("/api/v1/channels/42/stream")

        assert resp.status_code == 200
        assert resp.json() == {"channel_id": "42", "url": "https://p/42.m3u8"}
        service.resolve_stream_url.assert_awaited_once_with("42")

    def test_catalog_stream(self) -> None:
        service = _mock_service()
        client = TestClient(_make_app(service))

        resp = client.get("/api/v1/channels/42/catalog-stream")

        assert resp.json()["url"] == "https://s/42.m3u8"
        service.get_channels_stream.assert_awaited_once_with("42")

    def test_session(self) -> None:
        client = TestClient(_make_app(_mock_service()))

        resp = client.post("/api/v1/channels/42/session")

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "streamUrl": "https://p/42.m3u8",
            "message": None,
        }


class TestErrorMapping:
    def test_exhausted_retries_is_503(self) -> None:
        service = _mock_service()
        service.resolve_stream_url.side_effect = ExhaustedRetries(
            "https://upstream/42", 4, TransportFailure("refused"), channel_id="42"
        )
        client = TestClient(_make_app(service))

        resp = client.get("/api/v1/channels/42/stream")

        assert resp.status_code == 503
        assert resp.json() == {
            "error": "ExhaustedRetries",
            "detail": (
                "stream currently unavailable for channel 42; "
                "please try again shortly"
            ),
            "retryable": True,
        }

    def test_invalid_response_is_502(self) -> None:
        service = _mock_service()
        service.initialize_session.side_effect = InvalidUpstreamResponse(
            "42", "upstream reported success=false"
        )
        client = TestClient(_make_app(service))

        resp = client.post("/api/v1/channels/42/session")

        assert resp.status_code == 502
        body = resp.json()
        assert body["detail"] == "stream currently unavailable for channel 42"
        assert body["retryable"] is False


class TestPreloadAndCache:
    def test_preload_returns_report(self) -> None:
        service = _mock_service()
        service.preload.return_value = PreloadReport(
            requested=("A", "B"),
            resolved=("A",),
            succeeded=("A",),
            failed=("B",),
        )
        client = TestClient(_make_app(service))

        resp = client.post("/api/v1/preload", json={"channel_ids": ["A", "B"]})

        assert resp.status_code == 200
        assert resp.json()["success_count"] == 1
        assert resp.json()["failed"] == ["B"]
        service.preload.assert_awaited_once_with(["A", "B"])

    def test_preload_rejects_bad_body(self) -> None:
        client = TestClient(_make_app(_mock_service()))
        resp = client.post("/api/v1/preload", json={"channel_ids": "A"})
        assert resp.status_code == 422

    def test_invalidate_cache(self) -> None:
        service = _mock_service()
        client = TestClient(_make_app(service))

        resp = client.delete("/api/v1/cache")

        assert resp.status_code == 204
        service.invalidate_all.assert_awaited_once()

    def test_cache_snapshot(self) -> None:
        service = _mock_service()
        service.cache.ttl_ms = 600_000
        service.cache.__len__.return_value = 1
        service.cache.snapshot.return_value = {
            "A": {"url": "https://p/A", "expires_at": 1, "valid": True}
        }
        service.sessions.pending = ["B"]
        client = TestClient(_make_app(service))

        resp = client.get("/api/v1/cache")

        assert resp.json() == {
            "ttl_ms": 600_000,
            "valid_entries": 1,
            "entries": {"A": {"url": "https://p/A", "expires_at": 1, "valid": True}},
            "pending_sessions": ["B"],
        }
