"""Port interfaces - Layer boundary contracts.

Authorization core depends on these ABCs only; PostgreSQL and Matrix
adapters in src.infra implement them, in-memory fakes in tests/fakes.

    ScopeDirectoryPort    - hubs / servers / channels
    RoleBindingPort       - static role bindings
    DelegationPort        - space-owner assignments (lazy expiry)
    AuditLogPort          - append-only audit events
    IdempotencyPort       - cached workflow responses
    RoomProvisioningPort  - external chat network (soft dep)
    ReportPort            - moderation reports
"""

from src.ports.audit_log_port import AuditLogPort
from src.ports.delegation_port import DelegationPort
from src.ports.idempotency_port import IdempotencyPort
from src.ports.report_port import ReportPort
from src.ports.role_binding_port import RoleBindingPort
from src.ports.room_provisioning_port import RoomProvisioningPort
from src.ports.scope_directory_port import ScopeDirectoryPort

__all__ = [
    "AuditLogPort",
    "DelegationPort",
    "IdempotencyPort",
    "ReportPort",
    "RoleBindingPort",
    "RoomProvisioningPort",
    "ScopeDirectoryPort",
]
