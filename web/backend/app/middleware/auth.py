"""Request-gating dependencies.

The caller's identity arrives in the ``X-Identity-Id`` header (whatever
session layer sits in front of the API is responsible for setting it).
Every route resolves it through the profile gate, so the circular-policy
fallback and the suspension rule apply uniformly.
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, status

from pollgate.auth.decision import INACTIVE_OR_UNAUTHENTICATED, MISSING_PERMISSION, Decision
from pollgate.auth.gate import effective_permissions
from pollgate.auth.models import Permission, Profile
from pollgate.auth.permissions import permission_display_name
from pollgate.core import Core, build_core
from pollgate.moderation.models import Rejection
from pollgate.voting import ALREADY_VOTED

# Shared core instance
_core: Optional[Core] = None


def get_core() -> Core:
    """Return the singleton :class:`Core` built from the environment."""
    global _core
    if _core is None:
        _core = build_core()
    return _core


async def get_current_actor(
    x_identity_id: Optional[str] = Header(None, alias="X-Identity-Id"),
    core: Core = Depends(get_core),
) -> Optional[Profile]:
    """Resolve the caller, or ``None`` for anonymous / unresolvable callers."""
    return core.gate.resolve_actor(x_identity_id)


async def require_actor(actor: Optional[Profile] = Depends(get_current_actor)) -> Profile:
    """Same as ``get_current_actor`` but requires an active account."""
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    if not actor.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been suspended",
        )
    return actor


def require_permissions(*permissions: Permission, any_of: bool = False) -> Callable:
    """Build a dependency that requires all (or, with ``any_of``, one) of *permissions*.

    Usage in a router::

        @router.get("/moderation/stats")
        async def stats(actor: Profile = Depends(require_permissions(Permission.moderate_polls))):
            ...
    """

    async def dependency(actor: Profile = Depends(require_actor)) -> Profile:
        granted = effective_permissions(actor)
        check = any if any_of else all
        if not check(p in granted for p in permissions):
            names = ", ".join(permission_display_name(p) for p in permissions)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "reason": MISSING_PERMISSION,
                    "message": f"Requires {'one of' if any_of else 'permission'}: {names}",
                },
            )
        return actor

    return dependency


require_moderator = require_permissions(
    Permission.moderate_polls, Permission.moderate_comments, any_of=True
)
require_user_management = require_permissions(Permission.manage_users)
require_ban_users = require_permissions(Permission.ban_users)


def raise_for_decision(decision: Decision) -> None:
    """Turn a denying decision into the matching HTTP error."""
    if decision.allowed:
        return
    if decision.reason == INACTIVE_OR_UNAUTHENTICATED:
        code = status.HTTP_401_UNAUTHORIZED
    elif decision.reason.endswith("not-found"):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_403_FORBIDDEN
    raise HTTPException(status_code=code, detail={"reason": decision.reason, "message": decision.message})


def raise_for_rejection(rejection: Rejection) -> None:
    if rejection.reason == ALREADY_VOTED:
        code = status.HTTP_409_CONFLICT
    elif rejection.reason.endswith("not-found"):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    raise HTTPException(status_code=code, detail={"reason": rejection.reason, "message": rejection.message})
