"""Identity administration API router.

Prefix: ``/api/identities``
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pollgate.auth.decision import Decision
from pollgate.auth.gate import effective_permissions
from pollgate.auth.models import Permission, Profile
from pollgate.core import Core
from web.backend.app.middleware.auth import (
    get_core,
    raise_for_decision,
    require_actor,
    require_ban_users,
    require_permissions,
    require_user_management,
)
from web.backend.app.models.api import (
    IdentityStatsResponse,
    ProfileResponse,
    RoleUpdateRequest,
    SuspendRequest,
)

router = APIRouter(prefix="/api/identities", tags=["identities"])


def _respond(result) -> ProfileResponse:
    if isinstance(result, Decision):
        raise_for_decision(result)
    return ProfileResponse.from_profile(result, effective_permissions(result))


@router.get("/me", response_model=ProfileResponse)
async def me(actor: Profile = Depends(require_actor)):
    """The caller's own profile and effective permissions."""
    return ProfileResponse.from_profile(actor, effective_permissions(actor))


@router.get("/stats", response_model=IdentityStatsResponse)
async def identity_stats(
    actor: Profile = Depends(require_permissions(Permission.view_analytics)),
    core: Core = Depends(get_core),
):
    result = core.identities.identity_stats(actor)
    if isinstance(result, Decision):
        raise_for_decision(result)
    return IdentityStatsResponse(
        total=result.total,
        active=result.active,
        suspended=result.suspended,
        administrators=result.administrators,
    )


@router.put("/{identity_id}/role", response_model=ProfileResponse)
async def change_role(
    identity_id: str,
    req: RoleUpdateRequest,
    actor: Profile = Depends(require_user_management),
    core: Core = Depends(get_core),
):
    return _respond(core.identities.change_role(actor, identity_id, req.role))


@router.post("/{identity_id}/suspend", response_model=ProfileResponse)
async def suspend(
    identity_id: str,
    req: SuspendRequest,
    actor: Profile = Depends(require_ban_users),
    core: Core = Depends(get_core),
):
    return _respond(core.identities.suspend(actor, identity_id, req.reason))


@router.post("/{identity_id}/unsuspend", response_model=ProfileResponse)
async def unsuspend(
    identity_id: str,
    actor: Profile = Depends(require_ban_users),
    core: Core = Depends(get_core),
):
    return _respond(core.identities.unsuspend(actor, identity_id))
