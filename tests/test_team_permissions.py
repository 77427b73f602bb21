import pytest

from app.core.exceptions import AuthorizationError
from app.services import team_membership_service, team_permission_service

EXPECTED = {
    "owner": {"read": True, "write": True, "manage_members": True, "delete": True},
    "admin": {"read": True, "write": True, "manage_members": True, "delete": False},
    "member": {"read": True, "write": False, "manage_members": False, "delete": False},
    "viewer": {"read": True, "write": False, "manage_members": False, "delete": False},
}


@pytest.mark.parametrize("role", sorted(EXPECTED))
@pytest.mark.parametrize("action", team_permission_service.ACTIONS)
def test_role_table(role, action):
    assert team_permission_service.role_allows(role, action) is EXPECTED[role][action]


@pytest.mark.parametrize("action", team_permission_service.ACTIONS)
def test_non_member_is_denied_everything(db, team, carol, action):
    assert team_permission_service.has_permission(db, team.id, carol.id, action) is False


def test_unknown_action_is_denied(db, team, alice):
    assert team_permission_service.has_permission(db, team.id, alice.id, "archive") is False


@pytest.mark.parametrize("role", ["admin", "member", "viewer"])
def test_has_permission_reads_current_role(db, team, bob, role):
    team_membership_service.add_member(db, team.id, bob.id, role)

    for action in team_permission_service.ACTIONS:
        assert team_permission_service.has_permission(db, team.id, bob.id, action) is EXPECTED[role][action]


def test_role_change_is_seen_on_next_check(db, team, bob):
    team_membership_service.add_member(db, team.id, bob.id, "viewer")
    assert not team_permission_service.has_permission(db, team.id, bob.id, "write")

    team_membership_service.update_member_role(db, team.id, bob.id, "admin")

    assert team_permission_service.has_permission(db, team.id, bob.id, "write")


def test_require_permission_returns_role(db, team, alice):
    assert team_permission_service.require_permission(db, team.id, alice.id, "delete") == "owner"


def test_require_permission_raises_for_viewer_write(db, team, bob):
    team_membership_service.add_member(db, team.id, bob.id, "viewer")

    with pytest.raises(AuthorizationError):
        team_permission_service.require_permission(db, team.id, bob.id, "write")


def test_nonexistent_team_is_denied(db, alice):
    assert team_permission_service.has_permission(db, 9999, alice.id, "read") is False
