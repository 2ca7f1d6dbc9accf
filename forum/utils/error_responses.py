"""Builders for the structured error payloads returned by the API.

Every payload carries the active request id and a timezone-aware timestamp.
:func:`build_domain_error_response` additionally maps the forum error
taxonomy onto HTTP status codes in one place.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from fastapi import status

from forum.errors import (
    ConflictError,
    ForumError,
    InvalidOperationError,
    NotFoundError,
    PermissionDeniedError,
)
from forum.schemas.error import (
    ErrorResponse,
    ErrorType,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from forum.utils.request_context import get_request_id

__all__ = [
    "DOMAIN_ERROR_MAPPING",
    "build_domain_error_response",
    "build_error_response",
    "build_validation_error_response",
]

# Ordered: the first matching class wins.
DOMAIN_ERROR_MAPPING: tuple[tuple[type[ForumError], ErrorType, int, str], ...] = (
    (NotFoundError, ErrorType.NOT_FOUND, status.HTTP_404_NOT_FOUND, "Resource not found"),
    (ConflictError, ErrorType.CONFLICT, status.HTTP_409_CONFLICT, "Resource already exists"),
    (
        InvalidOperationError,
        ErrorType.INVALID_OPERATION,
        status.HTTP_400_BAD_REQUEST,
        "Operation not allowed",
    ),
    (
        PermissionDeniedError,
        ErrorType.AUTHORIZATION_ERROR,
        status.HTTP_403_FORBIDDEN,
        "Permission denied",
    ),
)


def _current_timestamp() -> datetime:
    """Return a timezone-aware timestamp; tests monkeypatch this."""

    return datetime.now(UTC)


def build_validation_error_response(
    *,
    errors: Sequence[ValidationErrorDetail],
    message: str,
    detail: str,
    status_code: int,
    path: str,
    error_type: ErrorType = ErrorType.VALIDATION_ERROR,
    request_id: str | None = None,
) -> ValidationErrorResponse:
    """Construct a ``ValidationErrorResponse``; ``errors`` is copied into a list."""

    return ValidationErrorResponse(
        error_type=error_type,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=request_id or get_request_id(),
        path=path,
        errors=list(errors),
    )


def build_error_response(
    *,
    error_type: ErrorType,
    message: str,
    detail: str,
    status_code: int,
    path: str,
    retry_after: int | None = None,
    request_id: str | None = None,
) -> ErrorResponse:
    """Construct a generic ``ErrorResponse`` enriched with metadata."""

    return ErrorResponse(
        error_type=error_type,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=request_id or get_request_id(),
        path=path,
        retry_after=retry_after,
    )


def build_domain_error_response(exc: ForumError, *, path: str) -> ErrorResponse:
    """Translate a forum domain error into its HTTP error payload.

    The exception message (e.g. ``"You cannot follow yourself!"``) becomes the
    user-facing ``message``; ``detail`` names the generic category.
    """

    for error_class, error_type, status_code, detail in DOMAIN_ERROR_MAPPING:
        if isinstance(exc, error_class):
            return build_error_response(
                error_type=error_type,
                message=exc.message,
                detail=detail,
                status_code=status_code,
                path=path,
            )

    return build_error_response(
        error_type=ErrorType.INTERNAL_ERROR,
        message=exc.message,
        detail="Unclassified forum error",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        path=path,
    )
