"""Moderation API router.

Prefix: ``/api/moderation``
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from pollgate.auth.decision import Decision
from pollgate.auth.models import Permission, Profile
from pollgate.core import Core
from pollgate.moderation.models import ModerationAction, ResourceKind
from web.backend.app.middleware.auth import (
    get_core,
    raise_for_decision,
    require_moderator,
    require_permissions,
)
from web.backend.app.models.api import (
    ModerationRequest,
    ModerationStatsResponse,
    ResourceResponse,
)

router = APIRouter(prefix="/api/moderation", tags=["moderation"])


@router.get("/stats", response_model=ModerationStatsResponse)
async def moderation_stats(
    actor: Profile = Depends(require_permissions(Permission.moderate_polls)),
    core: Core = Depends(get_core),
):
    """Pending and moderated counts for polls and comments."""
    result = core.moderation.moderation_stats(actor)
    if isinstance(result, Decision):
        raise_for_decision(result)
    return ModerationStatsResponse(
        pending_polls=result.pending_polls,
        pending_comments=result.pending_comments,
        moderated_polls=result.moderated_polls,
        moderated_comments=result.moderated_comments,
    )


@router.get("/{kind}", response_model=list[ResourceResponse])
async def moderation_queue(
    kind: ResourceKind,
    actor: Profile = Depends(require_moderator),
    core: Core = Depends(get_core),
):
    """Resources of *kind* that are pending or hidden, newest first."""
    result = core.moderation.moderation_queue(kind, actor)
    if isinstance(result, Decision):
        raise_for_decision(result)
    return [ResourceResponse.from_resource(r) for r in result]


@router.post("/{kind}/{resource_id}", response_model=ResourceResponse)
async def moderate(
    kind: ResourceKind,
    resource_id: str,
    req: ModerationRequest,
    actor: Profile = Depends(require_moderator),
    core: Core = Depends(get_core),
):
    """Approve, hide or delete a poll or comment."""
    resource = core.content.fetch_resource_with_owner(kind, resource_id)
    if resource is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{kind.value.capitalize()} '{resource_id}' not found",
        )

    result = core.moderation.transition_moderation(resource, ModerationAction(req.action), actor, req.reason)
    if isinstance(result, Decision):
        raise_for_decision(result)
    return ResourceResponse.from_resource(result)
