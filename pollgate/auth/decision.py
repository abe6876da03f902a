"""Authorization decision engine.

:func:`authorize` is the single entry point for "can this actor do this to
this resource".  It is pure: the caller fetches the actor's profile and the
resource beforehand, so every decision is reproducible from its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from pollgate.auth.gate import effective_permissions
from pollgate.auth.models import Permission, Profile

# Deny reasons
INACTIVE_OR_UNAUTHENTICATED = "inactive-or-unauthenticated"
MISSING_PERMISSION = "missing-permission"
NOT_OWNER = "not-owner"
MISSING_RESOURCE = "missing-resource"
SELF_MODERATION_DISALLOWED = "self-moderation-disallowed"
SELF_SUSPENSION = "self-suspension"
PROFILE_NOT_FOUND = "profile-not-found"

_MESSAGES = {
    INACTIVE_OR_UNAUTHENTICATED: "You must be signed in with an active account to do this.",
    MISSING_PERMISSION: "You are not authorized to perform this action.",
    NOT_OWNER: "You can only change content you created.",
    MISSING_RESOURCE: "The item you are acting on does not exist.",
    SELF_MODERATION_DISALLOWED: "You cannot moderate your own content.",
    SELF_SUSPENSION: "You cannot suspend your own account.",
    PROFILE_NOT_FOUND: "No such account.",
}


class Action(str, Enum):
    """Everything an actor can ask to do."""

    # ownerless
    view = "view"
    vote = "vote"
    create = "create"
    view_analytics = "view_analytics"
    # owned
    edit = "edit"
    delete = "delete"
    # moderation
    moderate_poll = "moderate_poll"
    moderate_comment = "moderate_comment"
    # identity administration
    change_role = "change_role"
    suspend = "suspend"


_OWNERLESS: dict[Action, Permission] = {
    Action.view: Permission.view_poll,
    Action.vote: Permission.vote_on_poll,
    Action.create: Permission.create_poll,
    Action.view_analytics: Permission.view_analytics,
    Action.moderate_poll: Permission.moderate_polls,
    Action.moderate_comment: Permission.moderate_comments,
    Action.change_role: Permission.manage_users,
    Action.suspend: Permission.ban_users,
}

# action -> (own-scoped, any-scoped)
_OWNED: dict[Action, tuple[Permission, Permission]] = {
    Action.edit: (Permission.edit_own_poll, Permission.delete_any_poll),
    Action.delete: (Permission.delete_own_poll, Permission.delete_any_poll),
}


class Owned(Protocol):
    owner_id: Optional[str]


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check.  Denial is a value, not an error."""

    allowed: bool
    reason: str = ""

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)

    @property
    def message(self) -> str:
        """Human-readable explanation suitable for showing to the actor."""
        if self.allowed:
            return ""
        return _MESSAGES.get(self.reason, "You are not authorized to perform this action.")

    def __bool__(self) -> bool:
        return self.allowed


def required_permission(action: Action) -> Permission:
    """Return the permission an ownerless or moderation *action* needs."""
    return _OWNERLESS[action]


def authorize(
    actor: Optional[Profile],
    action: Action,
    resource: Optional[Owned] = None,
) -> Decision:
    """Decide whether *actor* may perform *action* on *resource*.

    Parameters
    ----------
    actor:
        The caller's resolved profile, or ``None`` when anonymous.
    action:
        What the caller wants to do.
    resource:
        The target, when the action is owner-scoped (``edit``/``delete``).
        Only its ``owner_id`` is consulted.

    Returns
    -------
    Decision
        ``Decision.allow()`` or ``Decision.deny(reason)``.

    Moderation actions ignore ownership entirely.  Whether an owner may
    moderate their own content is a call-site policy, see
    :meth:`pollgate.moderation.state_machine.ModerationService.transition_moderation`.
    """
    if actor is None or not actor.is_active:
        return Decision.deny(INACTIVE_OR_UNAUTHENTICATED)

    perms = effective_permissions(actor)
    action = Action(action)

    if action in _OWNED:
        own_scoped, any_scoped = _OWNED[action]
        if any_scoped in perms:
            return Decision.allow()
        if resource is None:
            return Decision.deny(MISSING_RESOURCE)
        if resource.owner_id is not None and resource.owner_id == actor.identity_id and own_scoped in perms:
            return Decision.allow()
        return Decision.deny(NOT_OWNER)

    if _OWNERLESS[action] in perms:
        return Decision.allow()
    return Decision.deny(MISSING_PERMISSION)
