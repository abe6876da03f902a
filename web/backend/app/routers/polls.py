"""Poll API router.

Prefix: ``/api/polls``
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

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
from web.backend.app.models.api import CreatePollRequest, PollResponse, UpdatePollRequest

router = APIRouter(prefix="/api/polls", tags=["polls"])


@router.post("", response_model=PollResponse, status_code=status.HTTP_201_CREATED)
async def create_poll(
    req: CreatePollRequest,
    actor: Optional[Profile] = Depends(get_current_actor),
    core: Core = Depends(get_core),
):
    """Create a poll owned by the caller."""
    result = core.polls.create_poll(actor, req.title, req.options, req.description)
    if isinstance(result, Decision):
        raise_for_decision(result)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return PollResponse.from_poll(result)


@router.get("/{poll_id}", response_model=PollResponse)
async def get_poll(
    poll_id: str,
    actor: Optional[Profile] = Depends(get_current_actor),
    core: Core = Depends(get_core),
):
    poll = core.polls.get_poll(poll_id, actor)
    if poll is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Poll not found")
    return PollResponse.from_poll(poll)


@router.put("/{poll_id}", response_model=PollResponse)
async def update_poll(
    poll_id: str,
    req: UpdatePollRequest,
    actor: Optional[Profile] = Depends(get_current_actor),
    core: Core = Depends(get_core),
):
    """Edit a poll's title or description.  Owner or any-scoped holder only."""
    result = core.polls.update_poll(poll_id, req.model_dump(exclude_none=True), actor)
    if isinstance(result, Decision):
        raise_for_decision(result)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return PollResponse.from_poll(result)


@router.delete("/{poll_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_poll(
    poll_id: str,
    actor: Optional[Profile] = Depends(get_current_actor),
    core: Core = Depends(get_core),
):
    """Delete a poll together with its comments and votes."""
    result = core.polls.delete_poll(poll_id, actor)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    raise_for_decision(result)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
