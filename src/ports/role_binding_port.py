"""RoleBindingPort - Static role binding persistence.

Static bindings are immutable once written; the only mutation is deletion.
Synthesized bindings (ownership, delegation) never pass through this port.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.infra.auth.rbac import Role
    from src.shared.types import RoleBinding, Scope


class RoleBindingPort(ABC):
    """Port: role_bindings table."""

    @abstractmethod
    async def list_for_subject(self, subject: str) -> list[RoleBinding]:
        """Return every static binding held by subject, in any scope."""

    @abstractmethod
    async def get(self, binding_id: str) -> RoleBinding | None:
        """Return one binding by id, or None."""

    @abstractmethod
    async def insert(self, subject: str, role: Role, scope: Scope) -> RoleBinding:
        """Persist a new static binding and return it with its id."""

    @abstractmethod
    async def delete(self, binding_id: str) -> bool:
        """Delete a binding. Returns False if no row existed."""
