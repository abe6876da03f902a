"""Pydantic models for API request/response serialization.

These models mirror the pollgate dataclasses and provide proper JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from pollgate.auth.models import Profile, Role
from pollgate.moderation.models import Comment, ModeratableResource, Poll


# ---------------------------------------------------------------------------
# Identity models
# ---------------------------------------------------------------------------


class ProfileResponse(BaseModel):
    """Mirrors pollgate.auth.models.Profile (contact details omitted)."""

    identity_id: str
    role: str
    is_active: bool
    suspended_at: Optional[str] = None
    suspended_by: Optional[str] = None
    suspension_reason: Optional[str] = None
    display_name: str = ""
    permissions: list[str] = Field(default_factory=list)
    created_at: str = ""
    updated_at: Optional[str] = None

    @classmethod
    def from_profile(cls, p: Profile, permissions: frozenset = frozenset()) -> "ProfileResponse":
        return cls(
            identity_id=p.identity_id,
            role=p.role.value if isinstance(p.role, Role) else str(p.role),
            is_active=p.is_active,
            suspended_at=p.suspended_at,
            suspended_by=p.suspended_by,
            suspension_reason=p.suspension_reason,
            display_name=p.display_name,
            permissions=sorted(perm.value for perm in permissions),
            created_at=p.created_at,
            updated_at=p.updated_at,
        )


class RoleUpdateRequest(BaseModel):
    """Request body for changing an identity's role."""

    role: Role


class SuspendRequest(BaseModel):
    reason: str = Field(default="", max_length=500)


class IdentityStatsResponse(BaseModel):
    total: int = 0
    active: int = 0
    suspended: int = 0
    administrators: int = 0


# ---------------------------------------------------------------------------
# Moderation models
# ---------------------------------------------------------------------------


class ModerationRequest(BaseModel):
    """Request body for a moderation transition."""

    action: str = Field(pattern="^(approve|hide|delete)$")
    reason: Optional[str] = Field(default=None, max_length=500)


class ResourceResponse(BaseModel):
    """Mirrors pollgate.moderation.models.ModeratableResource."""

    id: str
    kind: str
    owner_id: Optional[str] = None
    state: str
    is_approved: bool
    is_hidden: bool
    moderated_by: Optional[str] = None
    moderated_at: Optional[str] = None
    moderation_reason: Optional[str] = None
    created_at: str = ""

    @classmethod
    def from_resource(cls, r: ModeratableResource) -> "ResourceResponse":
        return cls(
            id=r.id,
            kind=r.kind.value,
            owner_id=r.owner_id,
            state=r.state.value,
            is_approved=r.is_approved,
            is_hidden=r.is_hidden,
            moderated_by=r.moderated_by,
            moderated_at=r.moderated_at,
            moderation_reason=r.moderation_reason,
            created_at=r.created_at,
        )


class ModerationStatsResponse(BaseModel):
    pending_polls: int = 0
    pending_comments: int = 0
    moderated_polls: int = 0
    moderated_comments: int = 0


# ---------------------------------------------------------------------------
# Comment models
# ---------------------------------------------------------------------------


class CreateCommentRequest(BaseModel):
    """Request body for a new comment.  Guests must supply name and email."""

    content: str
    parent_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None


class UpdateCommentRequest(BaseModel):
    content: str


class CommentResponse(BaseModel):
    """Mirrors pollgate.moderation.models.Comment (guest contact omitted)."""

    id: str
    poll_id: str
    parent_id: Optional[str] = None
    depth: int = 0
    content: str
    author_kind: str
    author_identity_id: Optional[str] = None
    author_display_name: str = ""
    is_approved: bool = True
    is_hidden: bool = False
    moderated_by: Optional[str] = None
    moderated_at: Optional[str] = None
    moderation_reason: Optional[str] = None
    created_at: str = ""
    updated_at: Optional[str] = None

    @classmethod
    def from_comment(cls, c: Comment) -> "CommentResponse":
        return cls(
            id=c.id,
            poll_id=c.poll_id,
            parent_id=c.parent_id,
            depth=c.depth,
            content=c.content,
            author_kind=c.author_kind.value,
            author_identity_id=c.author_identity_id,
            author_display_name=c.author_display_name,
            is_approved=c.is_approved,
            is_hidden=c.is_hidden,
            moderated_by=c.moderated_by,
            moderated_at=c.moderated_at,
            moderation_reason=c.moderation_reason,
            created_at=c.created_at,
            updated_at=c.updated_at,
        )


class CommentCountResponse(BaseModel):
    count: int = 0


# ---------------------------------------------------------------------------
# Vote models
# ---------------------------------------------------------------------------


class CastVoteRequest(BaseModel):
    option_id: str


class VoteResponse(BaseModel):
    id: str
    poll_id: str
    option_id: str
    created_at: str = ""


# ---------------------------------------------------------------------------
# Poll models
# ---------------------------------------------------------------------------


class CreatePollRequest(BaseModel):
    title: str
    description: str = ""
    options: list[str] = Field(default_factory=list)


class UpdatePollRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class PollOptionResponse(BaseModel):
    id: str
    text: str


class PollResponse(BaseModel):
    """Mirrors pollgate.moderation.models.Poll."""

    id: str
    owner_id: Optional[str] = None
    title: str = ""
    description: str = ""
    options: list[PollOptionResponse] = Field(default_factory=list)
    state: str = ""
    created_at: str = ""
    updated_at: Optional[str] = None

    @classmethod
    def from_poll(cls, p: Poll) -> "PollResponse":
        return cls(
            id=p.id,
            owner_id=p.owner_id,
            title=p.title,
            description=p.description,
            options=[PollOptionResponse(id=o.id, text=o.text) for o in p.options],
            state=p.state.value,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )
