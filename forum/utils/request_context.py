"""Request identifiers shared between middleware, handlers and logs.

The HTTP middleware in :mod:`forum.main` stores one identifier per request in
a ``ContextVar``; error payloads read it back so a client-visible
``request_id`` can be matched against server log lines.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token

__all__ = [
    "REQUEST_ID_CONTEXT",
    "REQUEST_ID_HEADER",
    "clear_request_id",
    "get_request_id",
    "resolve_request_id",
    "set_request_id",
]

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_INBOUND_ID_LENGTH = 128

REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("request_id", default="")


def resolve_request_id(inbound: str | None) -> str:
    """Reuse a caller-supplied identifier when sane, otherwise mint a uuid4."""

    if inbound:
        candidate = inbound.strip()
        if candidate and len(candidate) <= _MAX_INBOUND_ID_LENGTH and candidate.isprintable():
            return candidate
    return str(uuid.uuid4())


def set_request_id(request_id: str) -> Token[str]:
    """Store ``request_id`` for the active task and return the reset token."""

    return REQUEST_ID_CONTEXT.set(request_id)


def get_request_id() -> str:
    """Return the identifier of the active request, or ``""`` outside one."""

    return REQUEST_ID_CONTEXT.get()


def clear_request_id(token: Token[str] | None = None) -> None:
    """Reset to the value before ``token`` was issued, or to an empty string."""

    if token is not None:
        REQUEST_ID_CONTEXT.reset(token)
    else:
        REQUEST_ID_CONTEXT.set("")
