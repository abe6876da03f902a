"""Auth domain models: roles, permissions and identity profiles."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


class Role(str, Enum):
    """Closed set of roles an identity can hold."""

    admin = "admin"
    member = "member"


class Permission(str, Enum):
    """Atomic capability tokens.  Never held directly, always derived from a Role."""

    # Poll permissions
    create_poll = "create_poll"
    edit_own_poll = "edit_own_poll"
    delete_own_poll = "delete_own_poll"
    vote_on_poll = "vote_on_poll"
    view_poll = "view_poll"

    # Administrative permissions
    manage_users = "manage_users"
    moderate_polls = "moderate_polls"
    moderate_comments = "moderate_comments"
    view_analytics = "view_analytics"
    delete_any_poll = "delete_any_poll"
    ban_users = "ban_users"


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Profile:
    """A registered identity's role and suspension state.

    ``is_active`` is false exactly when ``suspended_at`` is set.  Rows that
    contradict that (active but stamped as suspended, or inactive without a
    stamp) are read as suspended.
    """

    identity_id: str
    role: Union[Role, str] = Role.member
    is_active: bool = True
    suspended_at: Optional[str] = None
    suspended_by: Optional[str] = None
    suspension_reason: Optional[str] = None
    display_name: str = ""
    contact: str = ""
    created_at: str = ""
    updated_at: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow()
        if isinstance(self.role, str) and not isinstance(self.role, Role):
            try:
                self.role = Role(self.role)
            except ValueError:
                pass  # unknown roles carry no permissions
        if self.suspended_at:
            self.is_active = False

    @property
    def is_suspended(self) -> bool:
        return not self.is_active
