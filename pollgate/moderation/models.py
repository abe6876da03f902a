"""Data models for moderatable resources: polls and threaded comments."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pollgate.auth.models import Profile, utcnow


class ResourceKind(str, Enum):
    poll = "poll"
    comment = "comment"


class ModerationState(str, Enum):
    """Visibility lifecycle of a moderatable resource."""

    pending = "pending"
    approved = "approved"
    hidden = "hidden"
    deleted = "deleted"


class ModerationAction(str, Enum):
    approve = "approve"
    hide = "hide"
    delete = "delete"


class ModerationFilter(str, Enum):
    """Storage-level selections over the moderation flags."""

    all = "all"
    visible = "visible"  # approved and not hidden
    needs_attention = "needs_attention"  # not approved, or hidden
    moderated = "moderated"  # carries a moderation stamp


class AuthorKind(str, Enum):
    registered = "registered"
    guest = "guest"


@dataclass
class ModeratableResource:
    """Fields shared by every resource that goes through moderation."""

    id: str
    owner_id: Optional[str] = None
    is_approved: bool = True
    is_hidden: bool = False
    moderated_by: Optional[str] = None
    moderated_at: Optional[str] = None
    moderation_reason: Optional[str] = None
    created_at: str = ""
    is_deleted: bool = False  # set only on the value returned by a delete transition

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow()

    @property
    def is_publicly_visible(self) -> bool:
        return self.is_approved and not self.is_hidden and not self.is_deleted

    @property
    def state(self) -> ModerationState:
        if self.is_deleted:
            return ModerationState.deleted
        if self.is_hidden:
            return ModerationState.hidden
        if self.is_approved:
            return ModerationState.approved
        return ModerationState.pending


@dataclass
class PollOption:
    id: str
    text: str


@dataclass
class Poll(ModeratableResource):
    """A poll; only the fields the core reasons about."""

    title: str = ""
    description: str = ""
    options: list[PollOption] = field(default_factory=list)
    updated_at: Optional[str] = None

    kind = ResourceKind.poll

    def has_option(self, option_id: str) -> bool:
        return any(o.id == option_id for o in self.options)


@dataclass
class CommentAuthor:
    """Who is writing a comment: a registered identity or a guest."""

    kind: AuthorKind
    identity_id: Optional[str] = None
    display_name: str = ""
    contact: str = ""

    @classmethod
    def registered(cls, profile: Profile) -> "CommentAuthor":
        return cls(
            kind=AuthorKind.registered,
            identity_id=profile.identity_id,
            display_name=profile.display_name,
            contact=profile.contact,
        )

    @classmethod
    def guest(cls, display_name: str, contact: str) -> "CommentAuthor":
        return cls(kind=AuthorKind.guest, display_name=display_name, contact=contact)


@dataclass
class Comment(ModeratableResource):
    """A threaded comment on a poll.

    ``owner_id`` mirrors ``author_identity_id``; guest comments have no owner.
    """

    poll_id: str = ""
    parent_id: Optional[str] = None
    depth: int = 0
    content: str = ""
    author_kind: AuthorKind = AuthorKind.registered
    author_identity_id: Optional[str] = None
    author_display_name: str = ""
    author_contact: str = ""
    updated_at: Optional[str] = None

    kind = ResourceKind.comment

    def __post_init__(self) -> None:
        super().__post_init__()
        if isinstance(self.author_kind, str):
            self.author_kind = AuthorKind(self.author_kind)
        self.owner_id = self.author_identity_id


@dataclass
class Vote:
    id: str
    poll_id: str
    option_id: str
    identity_id: str
    created_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow()


@dataclass(frozen=True)
class Rejection:
    """Malformed input, reported with a machine reason and a user message."""

    reason: str
    message: str
