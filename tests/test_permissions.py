"""Tests for the role -> permission table."""

from pollgate.auth.models import Permission, Role
from pollgate.auth.permissions import (
    ROLE_PERMISSIONS,
    has_all_permissions,
    has_any_permission,
    has_permission,
    permission_display_name,
    permissions_for,
    role_display_name,
)

MEMBER = {
    Permission.create_poll,
    Permission.edit_own_poll,
    Permission.delete_own_poll,
    Permission.vote_on_poll,
    Permission.view_poll,
}


def test_admin_holds_every_permission():
    assert permissions_for(Role.admin) == frozenset(Permission)
    assert len(ROLE_PERMISSIONS[Role.admin]) == 11


def test_member_permissions():
    assert permissions_for(Role.member) == MEMBER


def test_member_is_subset_of_admin():
    assert permissions_for(Role.member) < permissions_for(Role.admin)


def test_member_lacks_moderation_and_admin_permissions():
    for p in (
        Permission.manage_users,
        Permission.moderate_polls,
        Permission.moderate_comments,
        Permission.view_analytics,
        Permission.delete_any_poll,
        Permission.ban_users,
    ):
        assert not has_permission(Role.member, p)


def test_string_roles_are_accepted():
    assert permissions_for("admin") == permissions_for(Role.admin)
    assert has_permission("member", Permission.vote_on_poll)


def test_unknown_role_has_no_permissions():
    assert permissions_for("superuser") == frozenset()
    assert permissions_for(None) == frozenset()
    assert not has_permission("superuser", Permission.view_poll)


def test_any_and_all():
    assert has_any_permission(Role.member, [Permission.ban_users, Permission.view_poll])
    assert not has_any_permission(Role.member, [Permission.ban_users, Permission.manage_users])
    assert has_all_permissions(Role.admin, [Permission.ban_users, Permission.view_poll])
    assert not has_all_permissions(Role.member, [Permission.ban_users, Permission.view_poll])


def test_empty_any_and_all():
    assert not has_any_permission(Role.admin, [])
    assert has_all_permissions(Role.member, [])


def test_display_names():
    assert role_display_name(Role.admin) == "Administrator"
    assert role_display_name("member") == "Member"
    assert role_display_name("nobody") == "Unknown"
    assert permission_display_name(Permission.ban_users) == "Suspend Users"
    assert all(permission_display_name(p) for p in Permission)


def test_has_permission_matches_table():
    for role in Role:
        for permission in Permission:
            assert has_permission(role, permission) == (permission in permissions_for(role))
