"""IdempotencyPort - Cached workflow responses keyed by idempotency key."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.shared.types import IdempotencyRecord


class IdempotencyPort(ABC):
    """Port: idempotency_keys table (primary key on the key)."""

    @abstractmethod
    async def get(self, key: str) -> IdempotencyRecord | None:
        """Return the stored record for key, or None."""

    @abstractmethod
    async def insert_if_absent(self, record: IdempotencyRecord) -> bool:
        """Insert record unless the key already exists.

        Returns:
            True if this call stored the record, False if another writer won.
        """
