"""ReportService - user-filed moderation reports and their triage."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.infra.auth.rbac import PrivilegedAction
from src.shared.errors import NotFoundError, ValidationError
from src.shared.types import ReportStatus, Scope

if TYPE_CHECKING:
    from src.authz.gateway.privileged import PrivilegedActionGateway
    from src.ports.report_port import ReportPort
    from src.ports.scope_directory_port import ScopeDirectoryPort
    from src.shared.types import ModerationReport

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(
        self,
        *,
        reports: ReportPort,
        directory: ScopeDirectoryPort,
        gateway: PrivilegedActionGateway,
    ) -> None:
        self._reports = reports
        self._directory = directory
        self._gateway = gateway

    async def create_report(
        self,
        reporter_user_id: str,
        *,
        server_id: str,
        reason: str,
        channel_id: str | None = None,
        target_user_id: str | None = None,
        target_message_id: str | None = None,
    ) -> ModerationReport:
        """File a report. Any authenticated user may do this; no gateway call."""
        if not reason or not reason.strip():
            raise ValidationError("reason must be non-empty", field="reason")

        server = await self._directory.get_server(server_id)
        if server is None:
            raise NotFoundError("server", server_id)
        if channel_id is not None:
            channel = await self._directory.get_channel(channel_id)
            if channel is None or channel.server_id != server_id:
                raise NotFoundError("channel", channel_id)

        report = await self._reports.create(
            server_id=server_id,
            reporter_user_id=reporter_user_id,
            reason=reason,
            channel_id=channel_id,
            target_user_id=target_user_id,
            target_message_id=target_message_id,
        )
        logger.info("Report %s filed on %s by %s", report.id, server_id, reporter_user_id)
        return report

    async def transition_report(
        self,
        actor_user_id: str,
        report_id: str,
        status: ReportStatus,
        reason: str,
    ) -> ModerationReport:
        """Move a report to triaged/resolved/dismissed (reports.triage).

        Raises:
            ValidationError: status is ``open``.
            NotFoundError: Report does not exist.
            ForbiddenScopeError: Actor cannot triage reports on that server.
        """
        if status is ReportStatus.OPEN:
            raise ValidationError("reports cannot transition back to open", field="status")

        report = await self._reports.get(report_id)
        if report is None:
            raise NotFoundError("report", report_id)

        async def effect() -> ModerationReport:
            updated = await self._reports.update_status(report_id, status, actor_user_id)
            if updated is None:
                raise NotFoundError("report", report_id)
            return updated

        return await self._gateway.execute(
            actor_user_id=actor_user_id,
            action=PrivilegedAction.REPORTS_TRIAGE,
            scope=Scope(server_id=report.server_id),
            reason=reason,
            effect=effect,
            metadata={"reportId": report_id, "status": status.value},
        )
