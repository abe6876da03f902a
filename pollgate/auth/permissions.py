"""Static role -> permission table.

This table is the only place that knows what a role can do in isolation.
It says nothing about ownership or suspension; use
:func:`pollgate.auth.gate.effective_permissions` for an actual actor.
"""

from __future__ import annotations

from typing import Iterable, Union

from pollgate.auth.models import Permission, Role

_MEMBER_PERMISSIONS = frozenset(
    {
        Permission.create_poll,
        Permission.edit_own_poll,
        Permission.delete_own_poll,
        Permission.vote_on_poll,
        Permission.view_poll,
    }
)

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.admin: _MEMBER_PERMISSIONS
    | {
        Permission.manage_users,
        Permission.moderate_polls,
        Permission.moderate_comments,
        Permission.view_analytics,
        Permission.delete_any_poll,
        Permission.ban_users,
    },
    Role.member: _MEMBER_PERMISSIONS,
}

_ROLE_NAMES = {
    Role.admin: "Administrator",
    Role.member: "Member",
}

_PERMISSION_NAMES = {
    Permission.create_poll: "Create Polls",
    Permission.edit_own_poll: "Edit Own Polls",
    Permission.delete_own_poll: "Delete Own Polls",
    Permission.vote_on_poll: "Vote on Polls",
    Permission.view_poll: "View Polls",
    Permission.manage_users: "Manage Users",
    Permission.moderate_polls: "Moderate Polls",
    Permission.moderate_comments: "Moderate Comments",
    Permission.view_analytics: "View Analytics",
    Permission.delete_any_poll: "Delete Any Poll",
    Permission.ban_users: "Suspend Users",
}


def _as_role(role: Union[Role, str, None]) -> Role | None:
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def permissions_for(role: Union[Role, str, None]) -> frozenset[Permission]:
    """Return the permissions carried by *role*.

    Total: an unknown or missing role yields an empty set.
    """
    parsed = _as_role(role)
    if parsed is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(parsed, frozenset())


def has_permission(role: Union[Role, str, None], permission: Permission) -> bool:
    return permission in permissions_for(role)


def has_any_permission(role: Union[Role, str, None], permissions: Iterable[Permission]) -> bool:
    granted = permissions_for(role)
    return any(p in granted for p in permissions)


def has_all_permissions(role: Union[Role, str, None], permissions: Iterable[Permission]) -> bool:
    granted = permissions_for(role)
    return all(p in granted for p in permissions)


def role_display_name(role: Union[Role, str, None]) -> str:
    parsed = _as_role(role)
    return _ROLE_NAMES[parsed] if parsed is not None else "Unknown"


def permission_display_name(permission: Union[Permission, str]) -> str:
    try:
        return _PERMISSION_NAMES[Permission(permission)]
    except ValueError:
        return str(permission)
