"""Role -> privileged action matrix tests.

Validates:
- hub_admin and space_owner share the maximal action set
- space_moderator cannot ban, unban or restrict posting
- user may only request a voice token
- Assignable roles never flow upward or laterally
"""

from __future__ import annotations

import pytest

from src.infra.auth.rbac import (
    ROLE_PERMISSION_MATRIX,
    PrivilegedAction,
    Role,
    action_allowed,
    allowed_actions,
    assignable_roles,
    resolve_action,
    resolve_role,
)


@pytest.mark.unit
class TestPermissionMatrix:
    def test_every_role_has_an_entry(self) -> None:
        assert set(ROLE_PERMISSION_MATRIX) == set(Role)

    def test_owner_and_admin_are_maximal(self) -> None:
        assert allowed_actions(Role.HUB_ADMIN) == frozenset(PrivilegedAction)
        assert allowed_actions(Role.SPACE_OWNER) == allowed_actions(Role.HUB_ADMIN)

    @pytest.mark.smoke
    @pytest.mark.parametrize(
        "action",
        [
            PrivilegedAction.MODERATION_BAN,
            PrivilegedAction.MODERATION_UNBAN,
            PrivilegedAction.CHANNEL_POSTING,
        ],
    )
    def test_moderator_lacks_severe_actions(self, action: PrivilegedAction) -> None:
        assert not action_allowed(Role.SPACE_MODERATOR, action)

    def test_moderator_can_kick_and_lock(self) -> None:
        assert action_allowed(Role.SPACE_MODERATOR, PrivilegedAction.MODERATION_KICK)
        assert action_allowed(Role.SPACE_MODERATOR, PrivilegedAction.CHANNEL_LOCK)

    def test_user_only_gets_voice_token(self) -> None:
        assert allowed_actions(Role.USER) == frozenset({PrivilegedAction.VOICE_TOKEN_ISSUE})


@pytest.mark.unit
class TestAssignableRoles:
    def test_hub_admin_assigns_any_role(self) -> None:
        assert assignable_roles({Role.HUB_ADMIN}) == frozenset(Role)

    def test_space_owner_assigns_downward_only(self) -> None:
        assert assignable_roles({Role.SPACE_OWNER}) == frozenset({Role.SPACE_MODERATOR, Role.USER})

    def test_non_manager_assigns_nothing(self) -> None:
        assert assignable_roles({Role.SPACE_MODERATOR, Role.USER}) == frozenset()


@pytest.mark.unit
class TestParsing:
    def test_resolve_role(self) -> None:
        assert resolve_role("space_owner") is Role.SPACE_OWNER
        assert resolve_role("creator_admin") is None

    def test_resolve_action(self) -> None:
        assert resolve_action("channel.lock") is PrivilegedAction.CHANNEL_LOCK
        assert resolve_action("channel.delete") is None
