"""Domain error taxonomy raised by the forum services.

Each class also derives from the closest builtin exception so callers that
only care about the broad category can keep catching ``LookupError``,
``PermissionError`` or ``ValueError``.
"""

from __future__ import annotations

__all__ = [
    "ConflictError",
    "ForumError",
    "InvalidOperationError",
    "NotFoundError",
    "PermissionDeniedError",
]


class ForumError(Exception):
    """Base class for every error raised by the engagement core."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ForumError, LookupError):
    """A referenced user, restaurant or relation row does not exist."""


class ConflictError(ForumError):
    """The relation (or unique value) the caller tried to create already exists."""


class InvalidOperationError(ForumError, ValueError):
    """The request is well formed but not allowed, e.g. following yourself."""


class PermissionDeniedError(ForumError, PermissionError):
    """The acting user does not own the resource being changed."""
