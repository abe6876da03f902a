"""Threaded comments on polls.

Comments nest up to ``max_comment_depth`` levels below a root comment (root
depth is 0).  Registered authors own their comments; guest comments have no
owner and can only be removed by an actor holding an any-scoped permission.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from pollgate.auth.decision import NOT_OWNER, Action, Decision, authorize
from pollgate.auth.gate import ProfileGate, effective_permissions
from pollgate.auth.models import Permission, Profile, utcnow
from pollgate.config import ModerationPolicy
from pollgate.moderation.models import AuthorKind, Comment, CommentAuthor, Rejection
from pollgate.moderation.state_machine import ModerationService
from pollgate.security.audit_log import (
    COMMENT_CREATED,
    COMMENT_DELETED,
    COMMENT_UPDATED,
    UNAUTHORIZED_ACCESS,
    AuditSink,
)
from pollgate.storage import CommentStore

logger = logging.getLogger(__name__)

_CONTACT_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Rejection reasons
EMPTY_CONTENT = "empty-content"
CONTENT_TOO_LONG = "content-too-long"
GUEST_NAME_REQUIRED = "guest-name-required"
GUEST_CONTACT_REQUIRED = "guest-contact-required"
GUEST_CONTACT_INVALID = "guest-contact-invalid"
INACTIVE_AUTHOR = "inactive-author"
POLL_NOT_FOUND = "poll-not-found"
POLL_NOT_VISIBLE = "poll-not-visible"
PARENT_NOT_FOUND = "parent-not-found"
PARENT_POLL_MISMATCH = "parent-poll-mismatch"
MAX_DEPTH_REACHED = "max-depth-reached"
COMMENT_NOT_FOUND = "comment-not-found"


def is_visible_to(comment: Comment, actor: Optional[Profile]) -> bool:
    """Whether *actor* (``None`` for anonymous) may see *comment*."""
    if comment.is_approved and not comment.is_hidden:
        return True
    if actor is None:
        return False
    if Permission.moderate_comments in effective_permissions(actor):
        return True
    return comment.author_identity_id is not None and comment.author_identity_id == actor.identity_id


def filter_visible(comments: list[Comment], actor: Optional[Profile]) -> list[Comment]:
    return [c for c in comments if is_visible_to(c, actor)]


@dataclass
class ThreadNode:
    comment: Comment
    replies: list["ThreadNode"] = field(default_factory=list)


def thread(comments: list[Comment]) -> list[ThreadNode]:
    """Group an already-filtered comment list into nested threads.

    A reply whose parent is absent from *comments* (filtered out or deleted)
    is dropped together with its own replies, so hidden branches do not
    surface through their children.
    """
    nodes = {c.id: ThreadNode(c) for c in comments}
    roots: list[ThreadNode] = []
    for c in comments:
        node = nodes[c.id]
        if c.parent_id is None:
            roots.append(node)
        elif c.parent_id in nodes:
            nodes[c.parent_id].replies.append(node)
    return roots


class CommentService:
    """Create, list, edit and delete comments."""

    def __init__(
        self,
        store: CommentStore,
        gate: ProfileGate,
        moderation: ModerationService,
        policy: Optional[ModerationPolicy] = None,
        audit: Optional[AuditSink] = None,
        clock: Callable[[], str] = utcnow,
    ) -> None:
        self._store = store
        self._gate = gate
        self._moderation = moderation
        self._policy = policy or ModerationPolicy()
        self._audit = audit
        self._clock = clock

    # -- validation ------------------------------------------------------------

    def _check_content(self, content: str) -> Optional[Rejection]:
        if not content or not content.strip():
            return Rejection(EMPTY_CONTENT, "Comment content cannot be empty.")
        if len(content) > self._policy.max_comment_length:
            return Rejection(
                CONTENT_TOO_LONG,
                f"Comment is too long (max {self._policy.max_comment_length} characters).",
            )
        return None

    def _check_author(self, author: CommentAuthor) -> Union[CommentAuthor, Rejection]:
        if author.kind == AuthorKind.guest:
            if not author.display_name or not author.display_name.strip():
                return Rejection(GUEST_NAME_REQUIRED, "Name is required for guest comments.")
            if not author.contact or not author.contact.strip():
                return Rejection(GUEST_CONTACT_REQUIRED, "Email is required for guest comments.")
            if not _CONTACT_RE.match(author.contact.strip()):
                return Rejection(GUEST_CONTACT_INVALID, "Please enter a valid email address.")
            return CommentAuthor.guest(author.display_name.strip(), author.contact.strip())

        profile = self._gate.resolve_actor(author.identity_id)
        if profile is None or not profile.is_active:
            return Rejection(INACTIVE_AUTHOR, "Your account is not active.")
        return CommentAuthor.registered(profile)

    # -- operations ------------------------------------------------------------

    def create_comment(
        self,
        poll_id: str,
        content: str,
        author: CommentAuthor,
        parent_id: Optional[str] = None,
    ) -> Union[Comment, Rejection]:
        """Validate and insert a comment.

        Everything is validated before the store is written to.  The new
        comment is approved immediately when the policy's ``auto_approve`` is
        set, otherwise it waits in the pending state.
        """
        rejection = self._check_content(content)
        if rejection:
            return rejection
        resolved = self._check_author(author)
        if isinstance(resolved, Rejection):
            return resolved

        poll = self._store.get_poll(poll_id)
        if poll is None:
            return Rejection(POLL_NOT_FOUND, "Poll not found.")
        if not poll.is_publicly_visible:
            return Rejection(POLL_NOT_VISIBLE, "Cannot comment on this poll.")

        depth = 0
        if parent_id:
            parent = self._store.get_comment(parent_id)
            if parent is None:
                return Rejection(PARENT_NOT_FOUND, "Parent comment not found.")
            if parent.poll_id != poll_id:
                return Rejection(PARENT_POLL_MISMATCH, "Parent comment is not on this poll.")
            if parent.depth >= self._policy.max_comment_depth:
                return Rejection(MAX_DEPTH_REACHED, "Maximum comment nesting depth reached.")
            depth = parent.depth + 1

        comment = Comment(
            id=str(uuid.uuid4()),
            is_approved=self._policy.auto_approve,
            is_hidden=False,
            created_at=self._clock(),
            poll_id=poll_id,
            parent_id=parent_id or None,
            depth=depth,
            content=content.strip(),
            author_kind=resolved.kind,
            author_identity_id=resolved.identity_id,
            author_display_name=resolved.display_name,
            author_contact=resolved.contact,
        )
        stored = self._store.insert_comment(comment)
        logger.info("comment %s created on poll %s at depth %d", stored.id, poll_id, depth)
        if self._audit is not None:
            self._audit.log_event(
                actor=resolved.identity_id or f"guest:{resolved.contact}",
                action=COMMENT_CREATED,
                resource_type="comment",
                resource_id=stored.id,
                details={"poll_id": poll_id, "depth": depth, "author_kind": resolved.kind.value},
            )
        return stored

    def list_visible_comments(self, poll_id: str, actor: Optional[Profile] = None) -> list[Comment]:
        """Every comment on *poll_id* that *actor* may see, oldest first.

        Public readers see approved, non-hidden comments; authors also see
        their own; holders of ``moderate_comments`` see everything.  A poll
        that is not publicly visible shows its comments to moderators only.
        """
        poll = self._store.get_poll(poll_id)
        if poll is None:
            return []
        if not poll.is_publicly_visible and Permission.moderate_comments not in effective_permissions(actor):
            return []
        return filter_visible(self._store.fetch_comments_for_poll(poll_id), actor)

    def comment_count(self, poll_id: str) -> int:
        """Number of publicly visible comments on *poll_id*."""
        return len(self.list_visible_comments(poll_id, None))

    def update_comment(
        self, comment_id: str, content: str, actor: Optional[Profile]
    ) -> Union[Comment, Decision, Rejection]:
        """Edit a comment's content.  Only its registered author may do this."""
        comment = self._store.get_comment(comment_id)
        if comment is None:
            return Rejection(COMMENT_NOT_FOUND, "Comment not found.")
        decision = authorize(actor, Action.edit, comment)
        if decision.allowed and (actor is None or comment.owner_id != actor.identity_id):
            # comment text is editable by its author only
            decision = Decision.deny(NOT_OWNER)
        if not decision.allowed:
            self._deny(comment, actor, Action.edit, decision)
            return decision
        rejection = self._check_content(content)
        if rejection:
            return rejection

        updated = self._store.update_comment_content(comment_id, content.strip(), self._clock())
        if self._audit is not None:
            self._audit.log_event(
                actor=actor.identity_id,
                action=COMMENT_UPDATED,
                resource_type="comment",
                resource_id=comment_id,
            )
        return updated

    def delete_comment(self, comment_id: str, actor: Optional[Profile]) -> Union[Decision, Rejection]:
        """Remove a comment.

        Allowed for the registered author (own-scoped) or for any-scoped
        holders.  Replies are handled by the policy's ``orphan_replies``.
        """
        comment = self._store.get_comment(comment_id)
        if comment is None:
            return Rejection(COMMENT_NOT_FOUND, "Comment not found.")
        decision = authorize(actor, Action.delete, comment)
        if not decision.allowed:
            self._deny(comment, actor, Action.delete, decision)
            return decision

        self._store.delete_resource(comment.kind, comment.id)
        self._moderation.handle_orphaned_replies(comment, actor.identity_id)
        logger.info("comment %s deleted by %s", comment_id, actor.identity_id)
        if self._audit is not None:
            self._audit.log_event(
                actor=actor.identity_id,
                action=COMMENT_DELETED,
                resource_type="comment",
                resource_id=comment_id,
                details={"poll_id": comment.poll_id},
            )
        return decision

    def _deny(self, comment: Comment, actor: Optional[Profile], action: Action, decision: Decision) -> None:
        actor_id = actor.identity_id if actor else None
        logger.debug("denied %s on comment %s for %s: %s", action.value, comment.id, actor_id, decision.reason)
        if self._audit is not None:
            self._audit.log_event(
                actor=actor_id,
                action=UNAUTHORIZED_ACCESS,
                resource_type="comment",
                resource_id=comment.id,
                details={"attempted": action.value, "reason": decision.reason},
                success=False,
                severity="high",
            )
