"""Request-id propagation via contextvars.

- HTTP middleware sets request_id on request entry (X-Request-ID or new uuid4)
- Audit trail and structured error logs read it via get_request_id()
- Uses Python contextvars: zero dependency, async-safe
"""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003 -- used at runtime by contextmanager
from contextlib import contextmanager
from contextvars import ContextVar, Token
from uuid import uuid4

current_request_id: ContextVar[str] = ContextVar("current_request_id", default="")


def get_request_id() -> str:
    """Return the current request id (empty string if not set)."""
    return current_request_id.get()


def set_request_id(request_id: str) -> Token[str]:
    """Set the request id for the current context. Returns a reset token."""
    return current_request_id.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    current_request_id.reset(token)


@contextmanager
def request_context(request_id: str | None = None) -> Generator[str, None, None]:
    """Scoped request id context manager.

    If request_id is None or empty, a new UUID4 is generated. The previous
    value is restored on exit.

    Usage::

        with request_context("req-abc") as rid:
            # get_request_id() == "req-abc"
            ...
    """
    effective_id = request_id if request_id else str(uuid4())
    token = current_request_id.set(effective_id)
    try:
        yield effective_id
    finally:
        current_request_id.reset(token)
