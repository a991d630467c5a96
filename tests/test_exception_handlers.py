from __future__ import annotations

import json

import pytest
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError

from app.shared.exceptions import (
    AlreadySubmittedException,
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotAvailableException,
    NotFoundException,
    ValidationException,
    app_exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
    unhandled_exception_handler,
)


def _make_request(path: str = "/api/v1/sessions") -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": path,
        "headers": [],
        "client": ("127.0.0.1", 12345),
        "scheme": "http",
        "server": ("testserver", 80),
        "query_string": b"",
    }
    return Request(scope)


def _body(response) -> dict:
    return json.loads(response.body.decode("utf-8"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc", "status_code", "code"),
    [
        (ValidationException("bad time"), 400, "validation_error"),
        (NotFoundException("missing"), 404, "not_found"),
        (ForbiddenException("nope"), 403, "forbidden"),
        (NotAvailableException("closed"), 400, "not_available"),
        (ConflictException("taken"), 400, "conflict"),
        (InvalidTransitionException("terminal"), 400, "invalid_transition"),
        (AlreadySubmittedException("twice"), 400, "already_submitted"),
    ],
)
async def test_domain_errors_render_stable_codes(exc, status_code: int, code: str) -> None:
    response = await app_exception_handler(_make_request(), exc)

    assert response.status_code == status_code
    assert _body(response) == {"error": {"code": code, "message": exc.message}}


@pytest.mark.asyncio
async def test_http_exception_keeps_headers() -> None:
    exc = HTTPException(status_code=401, detail="Invalid token", headers={"WWW-Authenticate": "Bearer"})

    response = await http_exception_handler(_make_request(), exc)

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert _body(response)["error"]["message"] == "Invalid token"


@pytest.mark.asyncio
async def test_request_validation_error_is_reported_as_validation_error() -> None:
    exc = RequestValidationError(
        [{"loc": ("body", "rating"), "msg": "Input should be a valid integer", "type": "int_type"}],
    )

    response = await request_validation_exception_handler(_make_request(), exc)

    assert response.status_code == 400
    body = _body(response)
    assert body["error"]["code"] == "validation_error"
    assert "body.rating" in body["error"]["message"]


@pytest.mark.asyncio
async def test_unexpected_error_is_hidden_behind_internal_error() -> None:
    response = await unhandled_exception_handler(_make_request(), RuntimeError("secret detail"))

    assert response.status_code == 500
    assert _body(response) == {"error": {"code": "internal_error", "message": "Internal server error"}}
