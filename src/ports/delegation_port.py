"""DelegationPort - Space-owner assignment persistence.

Real implementation: PostgreSQL space_owner_assignments table, unique on
(server_id, assigned_user_id).

Time is judged by the store's own clock (database ``now()``) in both
expire_stale and find_active so that an assignment cannot be considered
active after the expiry pass has judged it stale.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from src.shared.types import SpaceOwnerAssignment


class DelegationPort(ABC):
    """Port: space_owner_assignments table."""

    @abstractmethod
    async def expire_stale(
        self,
        *,
        server_id: str | None = None,
        user_id: str | None = None,
    ) -> list[SpaceOwnerAssignment]:
        """Move active rows whose expires_at has passed to ``expired``.

        Filters narrow the sweep; with neither filter every stale row is
        expired. Idempotent: a second call returns an empty list.

        Returns:
            The assignments that were expired by this call.
        """

    @abstractmethod
    async def find_active(
        self,
        server_id: str,
        user_id: str,
    ) -> SpaceOwnerAssignment | None:
        """Return the active, unexpired assignment for (server, user)."""

    @abstractmethod
    async def upsert(
        self,
        *,
        hub_id: str,
        server_id: str,
        assigned_user_id: str,
        assigned_by_user_id: str,
        expires_at: datetime | None = None,
    ) -> SpaceOwnerAssignment:
        """Create the assignment, or reactivate the existing row for the pair."""

    @abstractmethod
    async def get(self, assignment_id: str) -> SpaceOwnerAssignment | None:
        """Return one assignment by id, or None."""

    @abstractmethod
    async def revoke(self, assignment_id: str) -> SpaceOwnerAssignment | None:
        """Move an active row to ``revoked``.

        Returns:
            The revoked assignment, or None when no active row matched.
        """

    @abstractmethod
    async def list_for_server(self, server_id: str) -> list[SpaceOwnerAssignment]:
        """Return all assignments for a server, newest first."""
