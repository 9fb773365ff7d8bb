"""Shared fakes for testing without unittest.mock.

Real Python classes implementing the hubguard ports, plus a fake
AsyncSession for adapter statement tests.
"""

from tests.fakes.session import (
    FakeAsyncSession,
    FakeOrmRow,
    FakeResult,
    FakeScalarsResult,
    FakeSessionFactory,
)
from tests.fakes.stores import (
    FakeClock,
    InMemoryAuditLog,
    InMemoryDelegationStore,
    InMemoryIdempotencyStore,
    InMemoryReportStore,
    InMemoryRoleBindingStore,
    InMemoryScopeDirectory,
    RecordingRoomProvisioner,
)

__all__ = [
    "FakeAsyncSession",
    "FakeClock",
    "FakeOrmRow",
    "FakeResult",
    "FakeScalarsResult",
    "FakeSessionFactory",
    "InMemoryAuditLog",
    "InMemoryDelegationStore",
    "InMemoryIdempotencyStore",
    "InMemoryReportStore",
    "InMemoryRoleBindingStore",
    "InMemoryScopeDirectory",
    "RecordingRoomProvisioner",
]
