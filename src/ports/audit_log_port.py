"""AuditLogPort - Append-only privileged action log.

No update or delete operation exists on this port.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.shared.types import AuditEntry, AuditRecord, Scope


class AuditLogPort(ABC):
    """Port: audit_events table."""

    @abstractmethod
    async def append(self, entry: AuditEntry) -> AuditRecord:
        """Persist one audit record and return it."""

    @abstractmethod
    async def list_events(self, scope: Scope, limit: int = 200) -> list[AuditRecord]:
        """Return records whose scope equals scope on every present axis.

        Args:
            scope: Filter; absent axes are not filtered.
            limit: Maximum number of records, newest first.
        """
