"""PostgreSQL adapter implementing RoleBindingPort (role_bindings table)."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

import sqlalchemy as sa

from src.infra.auth.rbac import Role
from src.infra.models import RoleBindingModel
from src.ports.role_binding_port import RoleBindingPort
from src.shared.types import RoleBinding, Scope

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class PgRoleBindingStore(RoleBindingPort):
    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_for_subject(self, subject: str) -> list[RoleBinding]:
        stmt = (
            sa.select(RoleBindingModel)
            .where(RoleBindingModel.product_user_id == subject)
            .order_by(RoleBindingModel.created_at)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
        return [_row_to_binding(row) for row in rows]

    async def get(self, binding_id: str) -> RoleBinding | None:
        stmt = sa.select(RoleBindingModel).where(RoleBindingModel.id == binding_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_binding(row) if row is not None else None

    async def insert(self, subject: str, role: Role, scope: Scope) -> RoleBinding:
        model = RoleBindingModel(
            id=f"rb_{uuid4().hex}",
            product_user_id=subject,
            role=role.value,
            hub_id=scope.hub_id,
            server_id=scope.server_id,
            channel_id=scope.channel_id,
            created_at=datetime.now(UTC),
        )
        async with self._session_factory() as session:
            session.add(model)
            await session.commit()
        return _row_to_binding(model)

    async def delete(self, binding_id: str) -> bool:
        stmt = sa.delete(RoleBindingModel).where(RoleBindingModel.id == binding_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        return bool(result.rowcount)


def _row_to_binding(row: RoleBindingModel) -> RoleBinding:
    return RoleBinding(
        subject=row.product_user_id,
        role=Role(row.role),
        scope=Scope(hub_id=row.hub_id, server_id=row.server_id, channel_id=row.channel_id),
        id=row.id,
    )
