"""Voting API router.

Prefix: ``/api/polls``
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status

from pollgate.auth.decision import Decision
from pollgate.auth.models import Profile
from pollgate.core import Core
from pollgate.moderation.models import Rejection
from web.backend.app.middleware.auth import (
    get_core,
    get_current_actor,
    raise_for_decision,
    raise_for_rejection,
)
from web.backend.app.models.api import CastVoteRequest, VoteResponse

router = APIRouter(prefix="/api/polls", tags=["votes"])


@router.post("/{poll_id}/votes", response_model=VoteResponse, status_code=status.HTTP_201_CREATED)
async def cast_vote(
    poll_id: str,
    req: CastVoteRequest,
    actor: Optional[Profile] = Depends(get_current_actor),
    core: Core = Depends(get_core),
):
    """Cast the caller's single vote on a poll."""
    result = core.voting.cast_vote(actor, poll_id, req.option_id)
    if isinstance(result, Decision):
        raise_for_decision(result)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return VoteResponse(
        id=result.id,
        poll_id=result.poll_id,
        option_id=result.option_id,
        created_at=result.created_at,
    )
