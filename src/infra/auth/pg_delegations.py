"""PostgreSQL adapter implementing DelegationPort.

- expire_stale: one UPDATE ... WHERE status='active' AND expires_at <= now()
  RETURNING the rows it moved, so concurrent sweeps never double-report
- find_active: same now() clock, (expires_at IS NULL OR expires_at > now())
- upsert: INSERT ... ON CONFLICT (server_id, assigned_user_id) DO UPDATE
  reactivates a revoked/expired row instead of adding a second one
- revoke: only rows still 'active' move to 'revoked'
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import insert as pg_insert

from src.infra.models import SpaceOwnerAssignmentModel as Assignment
from src.ports.delegation_port import DelegationPort
from src.shared.types import AssignmentStatus, SpaceOwnerAssignment

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class PgDelegationStore(DelegationPort):
    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def expire_stale(
        self,
        *,
        server_id: str | None = None,
        user_id: str | None = None,
    ) -> list[SpaceOwnerAssignment]:
        stmt = (
            sa.update(Assignment)
            .where(
                Assignment.status == AssignmentStatus.ACTIVE.value,
                Assignment.expires_at.is_not(None),
                Assignment.expires_at <= sa.func.now(),
            )
            .values(status=AssignmentStatus.EXPIRED.value, updated_at=sa.func.now())
            .returning(Assignment)
            .execution_options(synchronize_session=False)
        )
        if server_id is not None:
            stmt = stmt.where(Assignment.server_id == server_id)
        if user_id is not None:
            stmt = stmt.where(Assignment.assigned_user_id == user_id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
            await session.commit()
        return [_row_to_assignment(row) for row in rows]

    async def find_active(self, server_id: str, user_id: str) -> SpaceOwnerAssignment | None:
        stmt = sa.select(Assignment).where(
            Assignment.server_id == server_id,
            Assignment.assigned_user_id == user_id,
            Assignment.status == AssignmentStatus.ACTIVE.value,
            sa.or_(Assignment.expires_at.is_(None), Assignment.expires_at > sa.func.now()),
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_assignment(row) if row is not None else None

    async def upsert(
        self,
        *,
        hub_id: str,
        server_id: str,
        assigned_user_id: str,
        assigned_by_user_id: str,
        expires_at: datetime | None = None,
    ) -> SpaceOwnerAssignment:
        now = datetime.now(UTC)
        insert_stmt = pg_insert(Assignment).values(
            id=f"soa_{uuid4().hex}",
            hub_id=hub_id,
            server_id=server_id,
            assigned_user_id=assigned_user_id,
            assigned_by_user_id=assigned_by_user_id,
            status=AssignmentStatus.ACTIVE.value,
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=[Assignment.server_id, Assignment.assigned_user_id],
            set_={
                "status": AssignmentStatus.ACTIVE.value,
                "assigned_by_user_id": insert_stmt.excluded.assigned_by_user_id,
                "expires_at": insert_stmt.excluded.expires_at,
                "updated_at": sa.func.now(),
            },
        ).returning(Assignment)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one()
            await session.commit()
        return _row_to_assignment(row)

    async def get(self, assignment_id: str) -> SpaceOwnerAssignment | None:
        stmt = sa.select(Assignment).where(Assignment.id == assignment_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_assignment(row) if row is not None else None

    async def revoke(self, assignment_id: str) -> SpaceOwnerAssignment | None:
        stmt = (
            sa.update(Assignment)
            .where(
                Assignment.id == assignment_id,
                Assignment.status == AssignmentStatus.ACTIVE.value,
            )
            .values(status=AssignmentStatus.REVOKED.value, updated_at=sa.func.now())
            .returning(Assignment)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            await session.commit()
        return _row_to_assignment(row) if row is not None else None

    async def list_for_server(self, server_id: str) -> list[SpaceOwnerAssignment]:
        stmt = (
            sa.select(Assignment)
            .where(Assignment.server_id == server_id)
            .order_by(Assignment.created_at.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
        return [_row_to_assignment(row) for row in rows]


def _row_to_assignment(row: Assignment) -> SpaceOwnerAssignment:
    return SpaceOwnerAssignment(
        id=row.id,
        hub_id=row.hub_id,
        server_id=row.server_id,
        assigned_user_id=row.assigned_user_id,
        assigned_by_user_id=row.assigned_by_user_id,
        status=AssignmentStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
        expires_at=row.expires_at,
    )
