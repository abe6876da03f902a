"""Comments API router.

Prefix: ``/api``
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status

from pollgate.auth.decision import Decision
from pollgate.auth.models import Profile
from pollgate.core import Core
from pollgate.moderation.models import CommentAuthor, Rejection
from web.backend.app.middleware.auth import (
    get_core,
    get_current_actor,
    raise_for_decision,
    raise_for_rejection,
)
from web.backend.app.models.api import (
    CommentCountResponse,
    CommentResponse,
    CreateCommentRequest,
    UpdateCommentRequest,
)

router = APIRouter(prefix="/api", tags=["comments"])


@router.get("/polls/{poll_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    poll_id: str,
    actor: Optional[Profile] = Depends(get_current_actor),
    core: Core = Depends(get_core),
):
    """List the comments on a poll that the caller may see, oldest first."""
    return [CommentResponse.from_comment(c) for c in core.comments.list_visible_comments(poll_id, actor)]


@router.get("/polls/{poll_id}/comments/count", response_model=CommentCountResponse)
async def count_comments(poll_id: str, core: Core = Depends(get_core)):
    return CommentCountResponse(count=core.comments.comment_count(poll_id))


@router.post(
    "/polls/{poll_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    poll_id: str,
    req: CreateCommentRequest,
    actor: Optional[Profile] = Depends(get_current_actor),
    core: Core = Depends(get_core),
):
    """Post a comment as the signed-in identity, or as a guest with name and email."""
    if actor is not None:
        author = CommentAuthor.registered(actor)
    else:
        author = CommentAuthor.guest(req.guest_name or "", req.guest_email or "")

    result = core.comments.create_comment(poll_id, req.content, author, parent_id=req.parent_id)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return CommentResponse.from_comment(result)


@router.patch("/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    req: UpdateCommentRequest,
    actor: Optional[Profile] = Depends(get_current_actor),
    core: Core = Depends(get_core),
):
    result = core.comments.update_comment(comment_id, req.content, actor)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    if isinstance(result, Decision):
        raise_for_decision(result)
    return CommentResponse.from_comment(result)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    actor: Optional[Profile] = Depends(get_current_actor),
    core: Core = Depends(get_core),
):
    result = core.comments.delete_comment(comment_id, actor)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    raise_for_decision(result)
