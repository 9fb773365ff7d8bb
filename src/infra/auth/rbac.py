"""RBAC permission matrix: 4 roles x 14 privileged actions.

- Roles: hub_admin (hub level), space_owner > space_moderator > user (server level)
- Role -> action table is data, not logic: policy changes edit the table only
- hub_admin and space_owner share the maximal action set
- Delegation flows downward only: see ASSIGNABLE_ROLES
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class PrivilegedAction(Enum):
    """Closed set of privileged actions routed through the gateway."""

    # Moderation
    MODERATION_KICK = "moderation.kick"
    MODERATION_BAN = "moderation.ban"
    MODERATION_UNBAN = "moderation.unban"
    MODERATION_TIMEOUT = "moderation.timeout"
    MODERATION_REDACT = "moderation.redact"

    # Channel controls
    CHANNEL_LOCK = "channel.lock"
    CHANNEL_UNLOCK = "channel.unlock"
    CHANNEL_SLOWMODE = "channel.slowmode"
    CHANNEL_POSTING = "channel.posting"

    # Provisioning
    SPACE_CREATE = "space.create"
    CHANNEL_CREATE = "channel.create"

    # Misc
    VOICE_TOKEN_ISSUE = "voice.token.issue"
    REPORTS_TRIAGE = "reports.triage"
    AUDIT_READ = "audit.read"


@unique
class Role(Enum):
    """Roles are ordered within a scope level, never across levels."""

    HUB_ADMIN = "hub_admin"
    SPACE_OWNER = "space_owner"
    SPACE_MODERATOR = "space_moderator"
    USER = "user"


_MAXIMAL: frozenset[PrivilegedAction] = frozenset(PrivilegedAction)

ROLE_PERMISSION_MATRIX: dict[Role, frozenset[PrivilegedAction]] = {
    Role.HUB_ADMIN: _MAXIMAL,
    Role.SPACE_OWNER: _MAXIMAL,
    Role.SPACE_MODERATOR: frozenset(
        {
            PrivilegedAction.MODERATION_KICK,
            PrivilegedAction.MODERATION_TIMEOUT,
            PrivilegedAction.MODERATION_REDACT,
            PrivilegedAction.CHANNEL_LOCK,
            PrivilegedAction.CHANNEL_UNLOCK,
            PrivilegedAction.CHANNEL_SLOWMODE,
            PrivilegedAction.VOICE_TOKEN_ISSUE,
            PrivilegedAction.REPORTS_TRIAGE,
            PrivilegedAction.AUDIT_READ,
        }
    ),
    Role.USER: frozenset({PrivilegedAction.VOICE_TOKEN_ISSUE}),
}

# Roles allowed to manage (grant into) a scope.
HUB_MANAGER_ROLES: frozenset[Role] = frozenset({Role.HUB_ADMIN})
SERVER_MANAGER_ROLES: frozenset[Role] = frozenset({Role.HUB_ADMIN, Role.SPACE_OWNER})

# Manager role -> roles it may hand out. Never lateral, never upward.
ASSIGNABLE_ROLES: dict[Role, frozenset[Role]] = {
    Role.HUB_ADMIN: frozenset(Role),
    Role.SPACE_OWNER: frozenset({Role.SPACE_MODERATOR, Role.USER}),
}

# Roles that only make sense with a server id in the scope.
SERVER_SCOPED_ROLES: frozenset[Role] = frozenset({Role.SPACE_OWNER, Role.SPACE_MODERATOR})


def allowed_actions(role: Role) -> frozenset[PrivilegedAction]:
    """Return the action set for a given role."""
    return ROLE_PERMISSION_MATRIX.get(role, frozenset())


def action_allowed(role: Role, action: PrivilegedAction) -> bool:
    return action in allowed_actions(role)


def assignable_roles(manager_roles: frozenset[Role] | set[Role]) -> frozenset[Role]:
    """Union of roles the given manager roles may assign."""
    result: frozenset[Role] = frozenset()
    for role in manager_roles:
        result |= ASSIGNABLE_ROLES.get(role, frozenset())
    return result


def resolve_role(role_str: str) -> Role | None:
    """Parse a role string into a Role enum, returning None if invalid."""
    try:
        return Role(role_str)
    except ValueError:
        return None


def resolve_action(action_str: str) -> PrivilegedAction | None:
    try:
        return PrivilegedAction(action_str)
    except ValueError:
        return None
