"""Request-scoped identifiers for log correlation and error envelopes.

The HTTP middleware stores one identifier per request in a ``ContextVar``;
exception handlers read it back so error payloads and log lines share it.
"""

from __future__ import annotations

import re
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

REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("request_id", default="")

# Inbound identifiers outside this pattern are replaced by a fresh UUID.
_ACCEPTED_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def resolve_request_id(inbound: str | None) -> str:
    """Return ``inbound`` when it is a well-formed identifier, else a new UUID."""

    if inbound and _ACCEPTED_REQUEST_ID.match(inbound):
        return inbound
    return str(uuid.uuid4())


def set_request_id(request_id: str) -> Token[str]:
    """Store ``request_id`` for the active task; the token allows a reset."""

    return REQUEST_ID_CONTEXT.set(request_id)


def get_request_id() -> str:
    """Return the identifier of the active request, or ``""`` outside one."""

    return REQUEST_ID_CONTEXT.get()


def clear_request_id(token: Token[str] | None = None) -> None:
    """Reset the identifier, restoring the previous value when given a token."""

    if token is not None:
        REQUEST_ID_CONTEXT.reset(token)
    else:
        REQUEST_ID_CONTEXT.set("")
