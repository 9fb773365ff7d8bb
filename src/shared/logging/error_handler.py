"""Structured error logging for the API boundary.

Anything that escapes as a non-HubGuardError (and adapter failures, at
WARNING) is logged once as a StructuredError carried in the record's
``structured_error`` extra. Context values under secret-looking keys are
redacted before they reach a handler.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import asdict, dataclass, field
from typing import Any

from src.shared.request_context import get_request_id

REDACTED = "[REDACTED]"

# Matched as substrings of the lower-cased key ("sfu_token_secret", "X-Api-Key").
_SENSITIVE_MARKERS = (
    "password",
    "secret",
    "token",
    "authorization",
    "cookie",
    "api_key",
    "api-key",
    "idempotency",
)


@dataclass(frozen=True)
class StructuredError:
    error_code: str
    message: str
    stack_trace: str
    context: dict[str, Any] = field(default_factory=dict)
    request_id: str = ""
    actor_user_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["context"] = _redact_sensitive(d["context"])
        return d


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in _SENSITIVE_MARKERS)


def _redact_value(value: Any) -> Any:
    if isinstance(value, dict):
        return _redact_sensitive(value)
    if isinstance(value, list | tuple):
        return [_redact_value(item) for item in value]
    return value


def _redact_sensitive(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key: REDACTED if _is_sensitive(str(key)) else _redact_value(value)
        for key, value in data.items()
    }


def create_structured_error(
    exc: Exception,
    *,
    error_code: str = "",
    request_id: str = "",
    actor_user_id: str = "",
    context: dict[str, Any] | None = None,
) -> StructuredError:
    """Build a StructuredError from an exception.

    error_code defaults to the exception's ``code`` (HubGuardError) and then
    to its class name. request_id defaults to the current request context.
    """
    code = error_code or getattr(exc, "code", "") or type(exc).__name__
    return StructuredError(
        error_code=code,
        message=str(exc),
        stack_trace="".join(traceback.format_exception(exc)),
        context=dict(context or {}),
        request_id=request_id or get_request_id(),
        actor_user_id=actor_user_id,
    )


def log_structured_error(
    logger: logging.Logger,
    exc: Exception,
    *,
    error_code: str = "",
    request_id: str = "",
    actor_user_id: str = "",
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> StructuredError:
    structured = create_structured_error(
        exc,
        error_code=error_code,
        request_id=request_id,
        actor_user_id=actor_user_id,
        context=context,
    )
    logger.log(
        level,
        "%s (request %s): %s",
        structured.error_code,
        structured.request_id or "-",
        structured.message,
        extra={"structured_error": structured.to_dict()},
    )
    return structured
