"""Tests asserting ``forum.main`` exception handlers build structured payloads."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    OperationalError,
    ProgrammingError,
)
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError
from starlette.datastructures import Headers

import forum.main as forum_main
from forum.errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    PermissionDeniedError,
)
from forum.schemas.error import ErrorType, ValidationErrorResponse
from forum.utils.request_context import clear_request_id, set_request_id


def _build_request(path: str = "/resource") -> Request:
    """Create a minimal ``Request`` suitable for invoking handlers."""

    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "headers": Headers().raw,
    }
    return Request(scope)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc", "expected_status", "expected_type"),
    [
        (NotFoundError("User doesn't exist!"), 404, "not_found"),
        (ConflictError("You have liked this restaurant!"), 409, "conflict"),
        (InvalidOperationError("You cannot follow yourself!"), 400, "invalid_operation"),
        (PermissionDeniedError("Permission denied!"), 403, "authorization_error"),
    ],
)
async def test_forum_exception_handler_maps_taxonomy(
    exc, expected_status, expected_type
) -> None:
    token = set_request_id("req-domain")
    try:
        response = await forum_main.forum_exception_handler(
            _build_request("/following/1"), exc
        )
    finally:
        clear_request_id(token)

    assert response.status_code == expected_status
    body = json.loads(response.body.decode())
    assert body["error_type"] == expected_type
    assert body["message"] == exc.message
    assert body["request_id"] == "req-domain"
    assert body["path"] == "/following/1"


@pytest.mark.asyncio
async def test_http_exception_handler_maps_unauthorized() -> None:
    exc = HTTPException(status_code=401, detail="Missing or invalid X-User-Id header")

    response = await forum_main.http_exception_handler(_build_request(), exc)

    assert response.status_code == 401
    body = json.loads(response.body.decode())
    assert body["error_type"] == ErrorType.AUTHENTICATION_ERROR.value
    assert body["message"] == "Missing or invalid X-User-Id header"


@pytest.mark.asyncio
async def test_validation_exception_handler_uses_builder(monkeypatch) -> None:
    request = _build_request("/users/top")
    exc = RequestValidationError(
        [{"loc": ["query", "limit"], "msg": "Invalid", "input": 0}]
    )

    called: dict[str, object] = {}

    def fake_builder(**kwargs):
        called["kwargs"] = kwargs
        return ValidationErrorResponse(
            message="Request validation failed",
            detail="1 validation error(s)",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            timestamp=datetime(2024, 1, 1, tzinfo=UTC),
            request_id="req-1",
            path="/users/top",
            errors=kwargs["errors"],
        )

    monkeypatch.setattr(forum_main, "build_validation_error_response", fake_builder)

    response = await forum_main.validation_exception_handler(request, exc)

    assert called["kwargs"]["path"] == "/users/top"
    assert called["kwargs"]["errors"][0].field == "query.limit"
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_database_connection_exception_handler_returns_503() -> None:
    exc = DBAPIError("SELECT 1", {}, Exception("connection refused"))

    response = await forum_main.database_exception_handler(
        _build_request("/users/1"), exc
    )

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    body = json.loads(response.body.decode())
    assert body["error_type"] == "database_error"
    assert body["retry_after"] == 5


@pytest.mark.asyncio
async def test_integrity_exception_handler_returns_conflict() -> None:
    exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    response = await forum_main.database_exception_handler(
        _build_request("/likes/1"), exc
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert json.loads(response.body.decode())["error_type"] == "conflict"


@pytest.mark.asyncio
async def test_generic_exception_handler_hides_details() -> None:
    response = await forum_main.generic_exception_handler(
        _build_request(), RuntimeError("boom")
    )

    assert response.status_code == 500
    body = json.loads(response.body.decode())
    assert body["error_type"] == "internal_error"
    assert "boom" not in body["detail"]


def test_sanitize_database_url_masks_password() -> None:
    masked = forum_main._sanitize_database_url(
        "postgresql+psycopg://forum:s3cret@db:5432/forum"
    )

    assert masked == "postgresql+psycopg://forum:***@db:5432/forum"
    assert forum_main._sanitize_database_url("sqlite+aiosqlite:///./data/forum.db") == (
        "sqlite+aiosqlite:///./data/forum.db"
    )


def test_combine_origins_deduplicates_preserving_order() -> None:
    combined = forum_main._combine_origins(
        ["http://localhost:3000", "https://forum.example.com/"],
        ["https://forum.example.com", "https://admin.example.com"],
    )

    assert combined == [
        "http://localhost:3000",
        "https://forum.example.com",
        "https://admin.example.com",
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc", "expected_status"),
    [
        (OperationalError("SELECT 1", {}, Exception("gone away")), 503),
        (ProgrammingError("SELECT nope", {}, Exception("syntax")), 500),
        (SQLAlchemyTimeoutError("QueuePool limit reached"), 504),
    ],
)
async def test_database_exception_handler_follows_exception_hierarchy(
    exc, expected_status
) -> None:
    response = await forum_main.database_exception_handler(_build_request(), exc)

    assert response.status_code == expected_status
