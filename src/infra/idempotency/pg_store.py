"""PostgreSQL adapter implementing IdempotencyPort.

insert_if_absent relies on the primary key of idempotency_keys:
INSERT ... ON CONFLICT (idempotency_key) DO NOTHING, and the row count
tells the caller whether it won.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import insert as pg_insert

from src.infra.models import IdempotencyKeyModel
from src.ports.idempotency_port import IdempotencyPort
from src.shared.types import IdempotencyRecord

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class PgIdempotencyStore(IdempotencyPort):
    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, key: str) -> IdempotencyRecord | None:
        stmt = sa.select(IdempotencyKeyModel).where(IdempotencyKeyModel.idempotency_key == key)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        if row is None:
            return None
        return IdempotencyRecord(
            key=row.idempotency_key,
            request_hash=row.request_hash,
            response=dict(row.response_json),
        )

    async def insert_if_absent(self, record: IdempotencyRecord) -> bool:
        stmt = (
            pg_insert(IdempotencyKeyModel)
            .values(
                idempotency_key=record.key,
                request_hash=record.request_hash,
                response_json=record.response,
                created_at=datetime.now(UTC),
            )
            .on_conflict_do_nothing(index_elements=[IdempotencyKeyModel.idempotency_key])
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount == 1
