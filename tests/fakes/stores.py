"""In-memory implementations of every hubguard port.

Real Python classes, no AsyncMock/MagicMock. Time-dependent stores take a
FakeClock so expiry can be driven deterministically.

Usage:
    clock = FakeClock()
    directory = InMemoryScopeDirectory(clock)
    directory.add_hub("hub-1", owner_user_id="root")
    server = directory.add_server("srv-1", hub_id="hub-1", owner_user_id="alice")
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

from src.ports import (
    AuditLogPort,
    DelegationPort,
    IdempotencyPort,
    ReportPort,
    RoleBindingPort,
    RoomProvisioningPort,
    ScopeDirectoryPort,
)
from src.shared.errors import AdapterFailureError
from src.shared.types import (
    AssignmentStatus,
    AuditRecord,
    ChannelRecord,
    ChannelType,
    HubRecord,
    ModerationReport,
    ReportStatus,
    RoleBinding,
    ServerRecord,
    SpaceOwnerAssignment,
)

if TYPE_CHECKING:
    from src.infra.auth.rbac import Role
    from src.shared.types import AuditEntry, ChannelControls, IdempotencyRecord, Scope


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex}"


class FakeClock:
    """Mutable clock; call it to read the time, advance() to move it."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# -- Directory --


class InMemoryScopeDirectory(ScopeDirectoryPort):
    def __init__(self, clock: FakeClock | None = None) -> None:
        self._clock = clock or FakeClock()
        self.hubs: dict[str, HubRecord] = {}
        self.servers: dict[str, ServerRecord] = {}
        self.channels: dict[str, ChannelRecord] = {}

    # Seeding helpers

    def add_hub(self, hub_id: str, *, owner_user_id: str = "hub-owner") -> HubRecord:
        hub = HubRecord(
            id=hub_id, name=hub_id, owner_user_id=owner_user_id, created_at=self._clock()
        )
        self.hubs[hub_id] = hub
        return hub

    def add_server(
        self,
        server_id: str,
        *,
        hub_id: str,
        owner_user_id: str | None = None,
        external_space_id: str | None = None,
    ) -> ServerRecord:
        server = ServerRecord(
            id=server_id,
            hub_id=hub_id,
            name=server_id,
            owner_user_id=owner_user_id,
            created_by_user_id=owner_user_id or "seed",
            created_at=self._clock(),
            external_space_id=external_space_id,
        )
        self.servers[server_id] = server
        return server

    def add_channel(
        self,
        channel_id: str,
        *,
        server_id: str,
        channel_type: ChannelType = ChannelType.TEXT,
        external_room_id: str | None = None,
        voice_sfu_room_id: str | None = None,
    ) -> ChannelRecord:
        channel = ChannelRecord(
            id=channel_id,
            server_id=server_id,
            name=channel_id,
            channel_type=channel_type,
            created_at=self._clock(),
            external_room_id=external_room_id,
            voice_sfu_room_id=voice_sfu_room_id,
            voice_max_participants=25 if voice_sfu_room_id else None,
        )
        self.channels[channel_id] = channel
        return channel

    # Port

    async def get_hub(self, hub_id: str) -> HubRecord | None:
        return self.hubs.get(hub_id)

    async def get_server(self, server_id: str) -> ServerRecord | None:
        return self.servers.get(server_id)

    async def get_channel(self, channel_id: str) -> ChannelRecord | None:
        return self.channels.get(channel_id)

    async def create_server(
        self,
        *,
        hub_id: str,
        name: str,
        owner_user_id: str,
        external_space_id: str | None = None,
    ) -> ServerRecord:
        server = ServerRecord(
            id=_new_id("srv"),
            hub_id=hub_id,
            name=name,
            owner_user_id=owner_user_id,
            created_by_user_id=owner_user_id,
            created_at=self._clock(),
            external_space_id=external_space_id,
        )
        self.servers[server.id] = server
        return server

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
        channel = ChannelRecord(
            id=_new_id("chn"),
            server_id=server_id,
            name=name,
            channel_type=channel_type,
            created_at=self._clock(),
            category_id=category_id,
            external_room_id=external_room_id,
            voice_sfu_room_id=voice_sfu_room_id,
            voice_max_participants=voice_max_participants,
        )
        self.channels[channel.id] = channel
        return channel

    async def update_channel_controls(
        self,
        channel_id: str,
        controls: ChannelControls,
    ) -> ChannelRecord | None:
        channel = self.channels.get(channel_id)
        if channel is None:
            return None
        changes: dict[str, object] = {}
        if controls.is_locked is not None:
            changes["is_locked"] = controls.is_locked
        if controls.slow_mode_seconds is not None:
            changes["slow_mode_seconds"] = controls.slow_mode_seconds
        if controls.posting_restricted_to_roles is not None:
            changes["posting_restricted_to_roles"] = tuple(
                role.value for role in controls.posting_restricted_to_roles
            )
        channel = dataclasses.replace(channel, **changes)
        self.channels[channel_id] = channel
        return channel

    async def transfer_ownership(
        self,
        server_id: str,
        new_owner_user_id: str,
        *,
        expected_owner_user_id: str | None,
    ) -> ServerRecord | None:
        server = self.servers.get(server_id)
        if server is None or server.owner_user_id != expected_owner_user_id:
            return None
        server = dataclasses.replace(server, owner_user_id=new_owner_user_id)
        self.servers[server_id] = server
        return server


# -- Authorization stores --


class InMemoryRoleBindingStore(RoleBindingPort):
    def __init__(self) -> None:
        self.rows: dict[str, RoleBinding] = {}

    async def list_for_subject(self, subject: str) -> list[RoleBinding]:
        return [b for b in self.rows.values() if b.subject == subject]

    async def get(self, binding_id: str) -> RoleBinding | None:
        return self.rows.get(binding_id)

    async def insert(self, subject: str, role: Role, scope: Scope) -> RoleBinding:
        binding = RoleBinding(subject=subject, role=role, scope=scope, id=_new_id("rb"))
        self.rows[binding.id] = binding
        return binding

    async def delete(self, binding_id: str) -> bool:
        return self.rows.pop(binding_id, None) is not None


class InMemoryDelegationStore(DelegationPort):
    """Delegation rows judged against the injected clock (the 'database now')."""

    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self.rows: dict[str, SpaceOwnerAssignment] = {}

    def _is_stale(self, row: SpaceOwnerAssignment) -> bool:
        return (
            row.status is AssignmentStatus.ACTIVE
            and row.expires_at is not None
            and row.expires_at <= self._clock()
        )

    async def expire_stale(
        self,
        *,
        server_id: str | None = None,
        user_id: str | None = None,
    ) -> list[SpaceOwnerAssignment]:
        expired: list[SpaceOwnerAssignment] = []
        for row in list(self.rows.values()):
            if server_id is not None and row.server_id != server_id:
                continue
            if user_id is not None and row.assigned_user_id != user_id:
                continue
            if self._is_stale(row):
                updated = dataclasses.replace(
                    row, status=AssignmentStatus.EXPIRED, updated_at=self._clock()
                )
                self.rows[row.id] = updated
                expired.append(updated)
        return expired

    async def find_active(self, server_id: str, user_id: str) -> SpaceOwnerAssignment | None:
        for row in self.rows.values():
            if (
                row.server_id == server_id
                and row.assigned_user_id == user_id
                and row.status is AssignmentStatus.ACTIVE
                and (row.expires_at is None or row.expires_at > self._clock())
            ):
                return row
        return None

    async def upsert(
        self,
        *,
        hub_id: str,
        server_id: str,
        assigned_user_id: str,
        assigned_by_user_id: str,
        expires_at: datetime | None = None,
    ) -> SpaceOwnerAssignment:
        now = self._clock()
        for row in self.rows.values():
            if row.server_id == server_id and row.assigned_user_id == assigned_user_id:
                updated = dataclasses.replace(
                    row,
                    assigned_by_user_id=assigned_by_user_id,
                    status=AssignmentStatus.ACTIVE,
                    expires_at=expires_at,
                    updated_at=now,
                )
                self.rows[row.id] = updated
                return updated
        row = SpaceOwnerAssignment(
            id=_new_id("soa"),
            hub_id=hub_id,
            server_id=server_id,
            assigned_user_id=assigned_user_id,
            assigned_by_user_id=assigned_by_user_id,
            status=AssignmentStatus.ACTIVE,
            created_at=now,
            updated_at=now,
            expires_at=expires_at,
        )
        self.rows[row.id] = row
        return row

    async def get(self, assignment_id: str) -> SpaceOwnerAssignment | None:
        return self.rows.get(assignment_id)

    async def revoke(self, assignment_id: str) -> SpaceOwnerAssignment | None:
        row = self.rows.get(assignment_id)
        if row is None or row.status is not AssignmentStatus.ACTIVE:
            return None
        updated = dataclasses.replace(
            row, status=AssignmentStatus.REVOKED, updated_at=self._clock()
        )
        self.rows[assignment_id] = updated
        return updated

    async def list_for_server(self, server_id: str) -> list[SpaceOwnerAssignment]:
        rows = [row for row in self.rows.values() if row.server_id == server_id]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)


class InMemoryAuditLog(AuditLogPort):
    """Append-only list of records; tests read .records directly."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self._clock = clock or FakeClock()
        self.records: list[AuditRecord] = []

    async def append(self, entry: AuditEntry) -> AuditRecord:
        record = AuditRecord(
            id=_new_id("aud"),
            actor_user_id=entry.actor_user_id,
            action=entry.action,
            scope=entry.scope,
            outcome=entry.outcome,
            created_at=self._clock(),
            reason=entry.reason,
            target_user_id=entry.target_user_id,
            target_message_id=entry.target_message_id,
            metadata=dict(entry.metadata),
        )
        self.records.append(record)
        return record

    async def list_events(self, scope: Scope, limit: int = 200) -> list[AuditRecord]:
        def matches(record: AuditRecord) -> bool:
            return all(
                wanted is None or wanted == got
                for wanted, got in (
                    (scope.hub_id, record.scope.hub_id),
                    (scope.server_id, record.scope.server_id),
                    (scope.channel_id, record.scope.channel_id),
                )
            )

        return [r for r in reversed(self.records) if matches(r)][:limit]

    def actions(self) -> list[str]:
        return [r.action for r in self.records]


class InMemoryIdempotencyStore(IdempotencyPort):
    """Keyed records.

    ``preempt`` simulates a concurrent writer: when set, the next
    insert_if_absent stores that record first and then loses the race.
    """

    def __init__(self) -> None:
        self.rows: dict[str, IdempotencyRecord] = {}
        self.preempt: IdempotencyRecord | None = None

    async def get(self, key: str) -> IdempotencyRecord | None:
        return self.rows.get(key)

    async def insert_if_absent(self, record: IdempotencyRecord) -> bool:
        if self.preempt is not None:
            self.rows.setdefault(self.preempt.key, self.preempt)
            self.preempt = None
        if record.key in self.rows:
            return False
        self.rows[record.key] = record
        return True


class InMemoryReportStore(ReportPort):
    def __init__(self, clock: FakeClock | None = None) -> None:
        self._clock = clock or FakeClock()
        self.rows: dict[str, ModerationReport] = {}

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
        now = self._clock()
        report = ModerationReport(
            id=_new_id("rpt"),
            server_id=server_id,
            reporter_user_id=reporter_user_id,
            reason=reason,
            status=ReportStatus.OPEN,
            created_at=now,
            updated_at=now,
            channel_id=channel_id,
            target_user_id=target_user_id,
            target_message_id=target_message_id,
        )
        self.rows[report.id] = report
        return report

    async def get(self, report_id: str) -> ModerationReport | None:
        return self.rows.get(report_id)

    async def update_status(
        self,
        report_id: str,
        status: ReportStatus,
        triaged_by_user_id: str,
    ) -> ModerationReport | None:
        report = self.rows.get(report_id)
        if report is None:
            return None
        report = dataclasses.replace(
            report,
            status=status,
            triaged_by_user_id=triaged_by_user_id,
            updated_at=self._clock(),
        )
        self.rows[report_id] = report
        return report


# -- External chat network --


class RecordingRoomProvisioner(RoomProvisioningPort):
    """Records every call as (method, args). Failures are scripted per method.

    failures maps a method name to how many leading calls should raise
    AdapterFailureError before succeeding (-1: always fail).
    """

    def __init__(self, *, failures: dict[str, int] | None = None) -> None:
        self.calls: list[tuple[str, tuple[object, ...]]] = []
        self._failures = dict(failures or {})
        self._counter = 0

    def _record(self, method: str, *args: object) -> None:
        self.calls.append((method, args))
        remaining = self._failures.get(method, 0)
        if remaining:
            if remaining > 0:
                self._failures[method] = remaining - 1
            raise AdapterFailureError("fake_rooms", f"{method} failed")

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"!{prefix}{self._counter}:example.org"

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    async def create_space(self, name: str) -> str | None:
        self._record("create_space", name)
        return self._next_id("space")

    async def create_room(self, name: str, channel_type: ChannelType) -> str | None:
        self._record("create_room", name, channel_type)
        return self._next_id("room")

    async def attach_child(self, parent_id: str, child_id: str) -> None:
        self._record("attach_child", parent_id, child_id)

    async def kick(self, room_id: str, user_id: str, reason: str | None = None) -> None:
        self._record("kick", room_id, user_id, reason)

    async def ban(self, room_id: str, user_id: str, reason: str | None = None) -> None:
        self._record("ban", room_id, user_id, reason)

    async def unban(self, room_id: str, user_id: str, reason: str | None = None) -> None:
        self._record("unban", room_id, user_id, reason)

    async def redact(self, room_id: str, event_id: str, reason: str | None = None) -> None:
        self._record("redact", room_id, event_id, reason)
