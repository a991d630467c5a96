from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import Request, Response

import app.main as main_module
from app.core.metrics import (
    build_metrics_response,
    instrument_http_request,
    record_booking_outcome,
    record_reminder_outcome,
)


def _make_request(path: str, *, method: str = "GET", route_path: str | None = None) -> Request:
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "headers": [],
        "client": ("127.0.0.1", 12345),
        "scheme": "http",
        "server": ("testserver", 80),
        "query_string": b"",
    }
    if route_path is not None:
        scope["route"] = SimpleNamespace(path=route_path)
    return Request(scope)


def _payload() -> str:
    return build_metrics_response().body.decode("utf-8")


@pytest.mark.asyncio
async def test_session_routes_are_labelled_by_template() -> None:
    async def _ok(_: Request) -> Response:
        return Response(status_code=200)

    request = _make_request(
        "/api/v1/sessions/6a0c1d6e-3d4b-4bd1-9d47-6c1f2d1f0a11/status",
        method="put",
        route_path="/api/v1/sessions/{session_id}/status",
    )
    await instrument_http_request(request, _ok)

    payload = _payload()
    assert 'path="/api/v1/sessions/{session_id}/status"' in payload
    assert 'method="PUT"' in payload
    assert "6a0c1d6e" not in payload


@pytest.mark.asyncio
async def test_crashing_handler_is_counted_as_500() -> None:
    async def _boom(_: Request) -> Response:
        raise RuntimeError("handler failed")

    request = _make_request("/api/v1/sessions/send-reminders", method="POST")
    with pytest.raises(RuntimeError):
        await instrument_http_request(request, _boom)

    payload = _payload()
    assert 'path="/api/v1/sessions/send-reminders",status_code="500"' in payload


@pytest.mark.asyncio
async def test_metrics_endpoint_serves_prometheus_text() -> None:
    response = await main_module.metrics_endpoint(_make_request("/metrics"))

    assert response.status_code == 200
    assert response.media_type.startswith("text/plain")
    assert "tutorbook_http_request_duration_seconds" in response.body.decode("utf-8")


def test_domain_counters_are_exported() -> None:
    record_booking_outcome("created")
    record_reminder_outcome("sent", 2)
    record_reminder_outcome("failed", 0)

    payload = _payload()
    assert 'tutorbook_session_bookings_total{outcome="created"}' in payload
    assert 'tutorbook_session_reminders_total{outcome="sent"}' in payload
