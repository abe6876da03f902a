"""Poll lifecycle: create, read, owner-gated edit and delete.

Editing and deleting go through :func:`pollgate.auth.decision.authorize`
with the poll as the owned resource: the owner needs the own-scoped
permission, anyone else needs ``delete_any_poll``.  Deleting a poll removes
its comments and votes with it.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Optional, Union

from pollgate.auth.decision import Action, Decision, authorize
from pollgate.auth.gate import effective_permissions
from pollgate.auth.models import Permission, Profile, utcnow
from pollgate.config import ModerationPolicy
from pollgate.moderation.models import Poll, PollOption, Rejection
from pollgate.security.audit_log import (
    POLL_CREATED,
    POLL_DELETED,
    POLL_UPDATED,
    UNAUTHORIZED_ACCESS,
    AuditSink,
)
from pollgate.storage import PollStore

logger = logging.getLogger(__name__)

# Rejection reasons
POLL_NOT_FOUND = "poll-not-found"
TITLE_REQUIRED = "title-required"
TOO_FEW_OPTIONS = "too-few-options"
NOTHING_TO_UPDATE = "nothing-to-update"

MIN_OPTIONS = 2
_EDITABLE = ("title", "description")


def is_poll_visible_to(poll: Poll, actor: Optional[Profile]) -> bool:
    """Public polls are visible to all; others to their owner and poll moderators."""
    if poll.is_publicly_visible:
        return True
    if actor is None:
        return False
    if Permission.moderate_polls in effective_permissions(actor):
        return True
    return poll.owner_id is not None and poll.owner_id == actor.identity_id


class PollService:
    def __init__(
        self,
        store: PollStore,
        policy: Optional[ModerationPolicy] = None,
        audit: Optional[AuditSink] = None,
        clock: Callable[[], str] = utcnow,
    ) -> None:
        self._store = store
        self._policy = policy or ModerationPolicy()
        self._audit = audit
        self._clock = clock

    def create_poll(
        self,
        actor: Optional[Profile],
        title: str,
        options: list[str],
        description: str = "",
    ) -> Union[Poll, Decision, Rejection]:
        """Create a poll owned by *actor*.  Needs a title and at least two options."""
        decision = authorize(actor, Action.create)
        if not decision.allowed:
            self._deny(None, actor, Action.create, decision)
            return decision
        if not title or not title.strip():
            return Rejection(TITLE_REQUIRED, "Poll title is required.")
        texts = [o.strip() for o in options if o and o.strip()]
        if len(texts) < MIN_OPTIONS:
            return Rejection(TOO_FEW_OPTIONS, f"A poll needs at least {MIN_OPTIONS} options.")

        poll = self._store.create_poll(
            Poll(
                id=str(uuid.uuid4()),
                owner_id=actor.identity_id,
                is_approved=self._policy.auto_approve,
                created_at=self._clock(),
                title=title.strip(),
                description=(description or "").strip(),
                options=[PollOption(id=str(uuid.uuid4()), text=t) for t in texts],
            )
        )
        logger.info("poll %s created by %s", poll.id, actor.identity_id)
        self._log(actor, POLL_CREATED, poll.id)
        return poll

    def get_poll(self, poll_id: str, actor: Optional[Profile] = None) -> Optional[Poll]:
        """Return the poll if *actor* may see it, else ``None``."""
        poll = self._store.get_poll(poll_id)
        if poll is None or not is_poll_visible_to(poll, actor):
            return None
        return poll

    def update_poll(
        self, poll_id: str, fields: dict[str, Any], actor: Optional[Profile]
    ) -> Union[Poll, Decision, Rejection]:
        """Change a poll's title and/or description.  Other keys are ignored."""
        poll = self._store.get_poll(poll_id)
        if poll is None:
            return Rejection(POLL_NOT_FOUND, "Poll not found.")
        decision = authorize(actor, Action.edit, poll)
        if not decision.allowed:
            self._deny(poll, actor, Action.edit, decision)
            return decision

        changes = {k: (fields[k] or "").strip() for k in _EDITABLE if fields.get(k) is not None}
        if not changes:
            return Rejection(NOTHING_TO_UPDATE, "Nothing to update.")
        if "title" in changes and not changes["title"]:
            return Rejection(TITLE_REQUIRED, "Poll title is required.")

        changes["updated_at"] = self._clock()
        updated = self._store.update_poll(poll_id, changes)
        logger.info("poll %s updated by %s", poll_id, actor.identity_id)
        self._log(actor, POLL_UPDATED, poll_id, {"fields": sorted(k for k in changes if k != "updated_at")})
        return updated

    def delete_poll(self, poll_id: str, actor: Optional[Profile]) -> Union[Decision, Rejection]:
        poll = self._store.get_poll(poll_id)
        if poll is None:
            return Rejection(POLL_NOT_FOUND, "Poll not found.")
        decision = authorize(actor, Action.delete, poll)
        if not decision.allowed:
            self._deny(poll, actor, Action.delete, decision)
            return decision

        self._store.delete_resource(poll.kind, poll.id)
        logger.info("poll %s deleted by %s", poll_id, actor.identity_id)
        self._log(actor, POLL_DELETED, poll_id, {"owner_id": poll.owner_id})
        return decision

    # -- helpers -------------------------------------------------------------

    def _log(self, actor: Profile, event: str, poll_id: str, details: Optional[dict] = None) -> None:
        if self._audit is not None:
            self._audit.log_event(
                actor=actor.identity_id,
                action=event,
                resource_type="poll",
                resource_id=poll_id,
                details=details,
            )

    def _deny(self, poll: Optional[Poll], actor: Optional[Profile], action: Action, decision: Decision) -> None:
        actor_id = actor.identity_id if actor else None
        poll_id = poll.id if poll else None
        logger.debug("denied %s on poll %s for %s: %s", action.value, poll_id, actor_id, decision.reason)
        if self._audit is not None:
            self._audit.log_event(
                actor=actor_id,
                action=UNAUTHORIZED_ACCESS,
                resource_type="poll",
                resource_id=poll_id,
                details={"attempted": action.value, "reason": decision.reason},
                success=False,
                severity="high",
            )
