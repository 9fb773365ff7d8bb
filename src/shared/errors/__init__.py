"""Unified error hierarchy for hubguard.

Every error that can reach the API boundary carries a stable, machine-readable
``code`` so clients branch on the code, never on the message text.

Codes:
  forbidden_scope         -> actor has no authority over the resolved scope
  role_escalation_denied  -> actor manages the scope but cannot grant that role
  idempotency_conflict    -> idempotency key reused with a different payload
  not_found               -> target hub/server/channel/record does not exist
  adapter_failure         -> external room-provisioning/moderation call failed
"""

from __future__ import annotations


class HubGuardError(Exception):
    """Base error for all hubguard exceptions."""

    def __init__(self, message: str, code: str = "hubguard_error") -> None:
        self.code = code
        super().__init__(message)


# -- Authentication / authorization --


class AuthenticationError(HubGuardError):
    """Authentication failed (missing, invalid or expired token)."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, code="auth_failed")


class ForbiddenScopeError(HubGuardError):
    """Actor holds no authority over the scope for the attempted action."""

    def __init__(self, action: str = "", message: str = "") -> None:
        self.action = action
        super().__init__(
            message
            or (
                f"Forbidden: {action} is outside of assigned scope"
                if action
                else "Forbidden: action is outside of assigned scope"
            ),
            code="forbidden_scope",
        )


class RoleEscalationDeniedError(HubGuardError):
    """Actor may manage the scope but not grant the requested role there."""

    def __init__(self, role: str = "", message: str = "") -> None:
        self.role = role
        super().__init__(
            message or f"Role escalation denied: cannot grant {role or 'role'} at this scope",
            code="role_escalation_denied",
        )


# -- Workflow / domain errors --


class IdempotencyConflictError(HubGuardError):
    """An idempotency key was reused with a different request payload."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            "Idempotency key reuse with different payload is not allowed",
            code="idempotency_conflict",
        )


class NotFoundError(HubGuardError):
    """Requested resource not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found", code="not_found")


class ValidationError(HubGuardError):
    """Input validation failed."""

    def __init__(self, message: str, field: str = "") -> None:
        self.field = field
        super().__init__(message, code="validation")


# -- External adapter errors --


class AdapterFailureError(HubGuardError):
    """An external room-provisioning or moderation call failed."""

    def __init__(self, adapter: str, message: str = "") -> None:
        self.adapter = adapter
        super().__init__(
            message or f"{adapter} request failed",
            code="adapter_failure",
        )


class ServiceUnavailableError(HubGuardError):
    """A backing service (database) is temporarily unavailable."""

    def __init__(self, service: str, message: str = "") -> None:
        self.service = service
        super().__init__(
            message or f"{service} is temporarily unavailable",
            code="service_unavailable",
        )


__all__ = [
    "AdapterFailureError",
    "AuthenticationError",
    "ForbiddenScopeError",
    "HubGuardError",
    "IdempotencyConflictError",
    "NotFoundError",
    "RoleEscalationDeniedError",
    "ServiceUnavailableError",
    "ValidationError",
]
