"""ReportPort - Moderation report persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.shared.types import ModerationReport, ReportStatus


class ReportPort(ABC):
    """Port: moderation_reports table."""

    @abstractmethod
    async def create(
        self,
        *,
        server_id: str,
        reporter_user_id: str,
        reason: str,
        channel_id: str | None = None,
        target_user_id: str | None = None,
        target_message_id: str | None = None,
    ) -> ModerationReport:
        """Insert an open report."""

    @abstractmethod
    async def get(self, report_id: str) -> ModerationReport | None: ...

    @abstractmethod
    async def update_status(
        self,
        report_id: str,
        status: ReportStatus,
        triaged_by_user_id: str,
    ) -> ModerationReport | None:
        """Set status and triager in one UPDATE. None if the report is gone."""
