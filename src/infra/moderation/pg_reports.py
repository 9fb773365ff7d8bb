"""PostgreSQL adapter implementing ReportPort (moderation_reports table)."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

import sqlalchemy as sa

from src.infra.models import ModerationReportModel
from src.ports.report_port import ReportPort
from src.shared.types import ModerationReport, ReportStatus

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class PgReportStore(ReportPort):
    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

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
        now = datetime.now(UTC)
        model = ModerationReportModel(
            id=f"rpt_{uuid4().hex}",
            server_id=server_id,
            channel_id=channel_id,
            reporter_user_id=reporter_user_id,
            target_user_id=target_user_id,
            target_message_id=target_message_id,
            reason=reason,
            status=ReportStatus.OPEN.value,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            session.add(model)
            await session.commit()
        return _row_to_report(model)

    async def get(self, report_id: str) -> ModerationReport | None:
        stmt = sa.select(ModerationReportModel).where(ModerationReportModel.id == report_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_report(row) if row is not None else None

    async def update_status(
        self,
        report_id: str,
        status: ReportStatus,
        triaged_by_user_id: str,
    ) -> ModerationReport | None:
        stmt = (
            sa.update(ModerationReportModel)
            .where(ModerationReportModel.id == report_id)
            .values(
                status=status.value,
                triaged_by_user_id=triaged_by_user_id,
                updated_at=sa.func.now(),
            )
            .returning(ModerationReportModel)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            await session.commit()
        return _row_to_report(row) if row is not None else None


def _row_to_report(row: ModerationReportModel) -> ModerationReport:
    return ModerationReport(
        id=row.id,
        server_id=row.server_id,
        reporter_user_id=row.reporter_user_id,
        reason=row.reason,
        status=ReportStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
        channel_id=row.channel_id,
        target_user_id=row.target_user_id,
        target_message_id=row.target_message_id,
        triaged_by_user_id=row.triaged_by_user_id,
    )
