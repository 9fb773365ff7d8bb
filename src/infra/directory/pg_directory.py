"""PostgreSQL adapter implementing ScopeDirectoryPort.

- Reads hubs / servers / channels by primary key
- Inserts servers and channels with adapter-generated text ids
- Channel controls and ownership transfer are single UPDATE ... RETURNING
  statements keyed by primary key (no read-modify-write)
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import sqlalchemy as sa

from src.infra.models import ChannelModel, HubModel, ServerModel
from src.ports.scope_directory_port import ScopeDirectoryPort
from src.shared.types import ChannelRecord, ChannelType, HubRecord, ServerRecord

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from src.shared.types import ChannelControls

logger = logging.getLogger(__name__)


class PgScopeDirectory(ScopeDirectoryPort):
    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_hub(self, hub_id: str) -> HubRecord | None:
        stmt = sa.select(HubModel).where(HubModel.id == hub_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_hub(row) if row is not None else None

    async def get_server(self, server_id: str) -> ServerRecord | None:
        stmt = sa.select(ServerModel).where(ServerModel.id == server_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_server(row) if row is not None else None

    async def get_channel(self, channel_id: str) -> ChannelRecord | None:
        stmt = sa.select(ChannelModel).where(ChannelModel.id == channel_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_channel(row) if row is not None else None

    async def create_server(
        self,
        *,
        hub_id: str,
        name: str,
        owner_user_id: str,
        external_space_id: str | None = None,
    ) -> ServerRecord:
        model = ServerModel(
            id=f"srv_{uuid4().hex}",
            hub_id=hub_id,
            name=name,
            external_space_id=external_space_id,
            owner_user_id=owner_user_id,
            created_by_user_id=owner_user_id,
            created_at=datetime.now(UTC),
        )
        async with self._session_factory() as session:
            session.add(model)
            await session.commit()
        return _row_to_server(model)

    async def create_channel(
        self,
        *,
        server_id: str,
        name: str,
        channel_type: ChannelType,
        category_id: str | None = None,
        external_room_id: str | None = None,
        voice_sfu_room_id: str | None = None,
        voice_max_participants: int | None = None,
    ) -> ChannelRecord:
        model = ChannelModel(
            id=f"chn_{uuid4().hex}",
            server_id=server_id,
            category_id=category_id,
            name=name,
            type=channel_type.value,
            external_room_id=external_room_id,
            is_locked=False,
            slow_mode_seconds=0,
            posting_restricted_to_roles=[],
            voice_sfu_room_id=voice_sfu_room_id,
            voice_max_participants=voice_max_participants,
            created_at=datetime.now(UTC),
        )
        async with self._session_factory() as session:
            session.add(model)
            await session.commit()
        return _row_to_channel(model)

    async def update_channel_controls(
        self,
        channel_id: str,
        controls: ChannelControls,
    ) -> ChannelRecord | None:
        values: dict[str, Any] = {}
        if controls.is_locked is not None:
            values["is_locked"] = controls.is_locked
        if controls.slow_mode_seconds is not None:
            values["slow_mode_seconds"] = controls.slow_mode_seconds
        if controls.posting_restricted_to_roles is not None:
            values["posting_restricted_to_roles"] = [
                role.value for role in controls.posting_restricted_to_roles
            ]
        if not values:
            return await self.get_channel(channel_id)

        stmt = (
            sa.update(ChannelModel)
            .where(ChannelModel.id == channel_id)
            .values(**values)
            .returning(ChannelModel)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            await session.commit()
        return _row_to_channel(row) if row is not None else None

    async def transfer_ownership(
        self,
        server_id: str,
        new_owner_user_id: str,
        *,
        expected_owner_user_id: str | None,
    ) -> ServerRecord | None:
        stmt = (
            sa.update(ServerModel)
            .where(
                ServerModel.id == server_id,
                ServerModel.owner_user_id.is_not_distinct_from(expected_owner_user_id),
            )
            .values(owner_user_id=new_owner_user_id)
            .returning(ServerModel)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            await session.commit()
        if row is None:
            return None
        logger.info("Server %s owner set to %s", server_id, new_owner_user_id)
        return _row_to_server(row)


def _row_to_hub(row: HubModel) -> HubRecord:
    return HubRecord(
        id=row.id,
        name=row.name,
        owner_user_id=row.owner_user_id,
        created_at=row.created_at,
    )


def _row_to_server(row: ServerModel) -> ServerRecord:
    return ServerRecord(
        id=row.id,
        hub_id=row.hub_id,
        name=row.name,
        owner_user_id=row.owner_user_id,
        created_by_user_id=row.created_by_user_id,
        created_at=row.created_at,
        external_space_id=row.external_space_id,
    )


def _row_to_channel(row: ChannelModel) -> ChannelRecord:
    return ChannelRecord(
        id=row.id,
        server_id=row.server_id,
        name=row.name,
        channel_type=ChannelType(row.type),
        created_at=row.created_at,
        category_id=row.category_id,
        external_room_id=row.external_room_id,
        is_locked=bool(row.is_locked),
        slow_mode_seconds=row.slow_mode_seconds or 0,
        posting_restricted_to_roles=tuple(row.posting_restricted_to_roles or ()),
        voice_sfu_room_id=row.voice_sfu_room_id,
        voice_max_participants=row.voice_max_participants,
    )
