"""Tests for security headers, rate limiting and API-error auditing middleware."""

import time
from unittest.mock import patch

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from starlette.requests import Request

from showroom_api.api.middleware import (
    ApiErrorAuditMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
    get_client_ip,
)
from showroom_api.lib.audit.events import AuditEventType, Severity
from showroom_api.lib.audit.facade import AuditLogger
from showroom_api.lib.audit.record import AuditRecord


class ListSink:
    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    def append(self, record: AuditRecord) -> None:
        self.records.append(record)


def _create_test_app() -> FastAPI:
    """Create a minimal FastAPI app for middleware testing."""
    app = FastAPI()

    @app.get("/test")
    async def test_route() -> dict:
        return {"ok": True}

    @app.get("/missing")
    async def missing_route() -> dict:
        raise HTTPException(status_code=404, detail="nope")

    @app.get("/boom")
    async def boom_route() -> dict:
        msg = "kaboom"
        raise RuntimeError(msg)

    return app


class TestSecurityHeadersMiddleware:
    """Tests for SecurityHeadersMiddleware."""

    @pytest.fixture
    def client(self) -> TestClient:
        app = _create_test_app()
        app.add_middleware(SecurityHeadersMiddleware)
        return TestClient(app)

    def test_all_security_headers_present(self, client: TestClient) -> None:
        response = client.get("/test")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-XSS-Protection"] == "1; mode=block"
        assert "max-age=31536000" in response.headers["Strict-Transport-Security"]


class TestRateLimitMiddleware:
    """Tests for RateLimitMiddleware."""

    @pytest.fixture
    def sink(self) -> ListSink:
        return ListSink()

    @pytest.fixture
    def client(self, sink: ListSink) -> TestClient:
        app = _create_test_app()
        app.add_middleware(RateLimitMiddleware, requests_per_minute=3, audit=AuditLogger(sink))
        return TestClient(app)

    def test_requests_within_limit_succeed(self, client: TestClient, sink: ListSink) -> None:
        for _ in range(3):
            assert client.get("/test").status_code == 200
        assert sink.records == []

    def test_request_over_limit_returns_429(self, client: TestClient) -> None:
        for _ in range(3):
            client.get("/test")
        response = client.get("/test")
        assert response.status_code == 429
        assert response.json() == {"detail": "Rate limit exceeded"}

    def test_exceeding_is_recorded_once_per_window(self, client: TestClient, sink: ListSink) -> None:
        for _ in range(6):
            client.get("/test", headers={"User-Agent": "hammer"})

        assert len(sink.records) == 1
        record = sink.records[0]
        assert record.event_type == AuditEventType.RATE_LIMIT_EXCEEDED
        assert record.severity == Severity.HIGH
        assert record.user_agent == "hammer"
        assert record.details.context["path"] == "/test"

    def test_rate_limit_window_expires(self, sink: ListSink) -> None:
        """Old requests outside the 60s window are cleaned up."""
        app = _create_test_app()
        app.add_middleware(RateLimitMiddleware, requests_per_minute=2, audit=AuditLogger(sink))
        client = TestClient(app)

        base_time = time.time()
        with patch("showroom_api.api.middleware.time.time", return_value=base_time):
            assert client.get("/test").status_code == 200
            assert client.get("/test").status_code == 200
            assert client.get("/test").status_code == 429

        with patch("showroom_api.api.middleware.time.time", return_value=base_time + 61):
            assert client.get("/test").status_code == 200
            assert client.get("/test").status_code == 200
            assert client.get("/test").status_code == 429

        assert len(sink.records) == 2

    def test_different_clients_have_separate_limits(self, client: TestClient) -> None:
        for _ in range(3):
            client.get("/test", headers={"CF-Connecting-IP": "203.0.113.1"})
        assert client.get("/test", headers={"CF-Connecting-IP": "203.0.113.1"}).status_code == 429
        assert client.get("/test", headers={"CF-Connecting-IP": "203.0.113.2"}).status_code == 200

    def test_works_without_audit(self) -> None:
        app = _create_test_app()
        app.add_middleware(RateLimitMiddleware, requests_per_minute=1)
        client = TestClient(app)
        client.get("/test")
        assert client.get("/test").status_code == 429


class TestApiErrorAuditMiddleware:
    """Tests for ApiErrorAuditMiddleware."""

    @pytest.fixture
    def sink(self) -> ListSink:
        return ListSink()

    @pytest.fixture
    def client(self, sink: ListSink) -> TestClient:
        app = _create_test_app()
        app.add_middleware(ApiErrorAuditMiddleware, audit=AuditLogger(sink))
        return TestClient(app, raise_server_exceptions=False)

    def test_success_not_recorded(self, client: TestClient, sink: ListSink) -> None:
        assert client.get("/test").status_code == 200
        assert sink.records == []

    def test_client_error_recorded(self, client: TestClient, sink: ListSink) -> None:
        assert client.get("/missing", headers={"X-Real-IP": "192.0.2.44"}).status_code == 404

        assert len(sink.records) == 1
        record = sink.records[0]
        assert record.event_type == AuditEventType.API_ERROR
        assert record.severity == Severity.MEDIUM
        assert record.network_origin == "192.0.2.44"
        assert record.details.method == "GET"
        assert record.details.url == "/missing"
        assert record.details.status_code == 404
        assert record.details.error == "Not Found"
        assert record.details.duration_ms >= 0

    def test_unknown_route_recorded(self, client: TestClient, sink: ListSink) -> None:
        client.post("/nowhere")
        assert sink.records[0].details.status_code == 404

    def test_exception_recorded_as_500(self, client: TestClient, sink: ListSink) -> None:
        assert client.get("/boom").status_code == 500
        assert len(sink.records) == 1
        assert sink.records[0].details.status_code == 500
        assert sink.records[0].details.error == "RuntimeError"
        assert sink.records[0].severity == Severity.HIGH


def _make_request(headers: dict[str, str] | None = None, client_host: str | None = "127.0.0.1") -> Request:
    """Build a minimal Starlette Request with given headers and client address."""
    scope: dict = {
        "type": "http",
        "method": "GET",
        "path": "/test",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    if client_host is not None:
        scope["client"] = (client_host, 0)
    return Request(scope)


class TestGetClientIp:
    """Tests for the get_client_ip helper function."""

    def test_cf_connecting_ip_takes_priority(self) -> None:
        request = _make_request(
            headers={
                "CF-Connecting-IP": "203.0.113.1",
                "X-Forwarded-For": "198.51.100.1, 10.0.0.1",
                "X-Real-IP": "192.0.2.1",
            }
        )
        assert get_client_ip(request) == "203.0.113.1"

    def test_x_forwarded_for_uses_leftmost_ip(self) -> None:
        request = _make_request(headers={"X-Forwarded-For": "203.0.113.1, 10.0.0.1, 10.0.0.2"})
        assert get_client_ip(request) == "203.0.113.1"

    def test_falls_back_to_client_host(self) -> None:
        request = _make_request(client_host="10.0.0.1")
        assert get_client_ip(request) == "10.0.0.1"

    def test_returns_unknown_when_no_client(self) -> None:
        request = _make_request(headers={}, client_host=None)
        assert get_client_ip(request) == "unknown"

    def test_no_trusted_headers_uses_peer(self) -> None:
        request = _make_request(headers={"X-Real-IP": "203.0.113.1"}, client_host="10.0.0.5")
        assert get_client_ip(request, []) == "10.0.0.5"
