"""Moderation state machine for polls and comments.

States are derived from the two stored flags::

    pending  (not approved, not hidden)
    approved (approved, not hidden)   -- publicly visible
    hidden   (hidden)
    deleted  (terminal; the row is gone)

``approve`` and ``hide`` are allowed from any live state and are idempotent
in effect.  ``delete`` is allowed from any state.  Every transition
overwrites the audit stamp (``moderated_by``/``moderated_at``/
``moderation_reason``); only the latest event is kept on the resource.
Concurrent transitions on one resource are last-write-wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Union

from pollgate.auth.decision import SELF_MODERATION_DISALLOWED, Action, Decision, authorize
from pollgate.auth.models import Profile, utcnow
from pollgate.config import ORPHAN_HIDE, ModerationPolicy
from pollgate.moderation.models import (
    Comment,
    ModeratableResource,
    ModerationAction,
    ModerationFilter,
    ResourceKind,
)
from pollgate.security.audit_log import MODERATION_TRANSITION, UNAUTHORIZED_ACCESS, AuditSink
from pollgate.storage import ResourceStore

logger = logging.getLogger(__name__)

PARENT_DELETED_REASON = "parent comment deleted"

_MODERATE_ACTION = {
    ResourceKind.poll: Action.moderate_poll,
    ResourceKind.comment: Action.moderate_comment,
}


def moderation_action_for(kind: ResourceKind) -> Action:
    """Return the authorization action that gates moderating *kind*."""
    return _MODERATE_ACTION[ResourceKind(kind)]


def transition_fields(
    action: ModerationAction, actor_id: str, reason: Optional[str], now: str
) -> dict[str, Any]:
    """Return the stored fields a transition writes."""
    fields: dict[str, Any] = {
        "moderated_by": actor_id,
        "moderated_at": now,
        "moderation_reason": reason or None,
    }
    action = ModerationAction(action)
    if action == ModerationAction.approve:
        fields.update(is_approved=True, is_hidden=False)
    else:
        # hide and delete both clear approval
        fields.update(is_approved=False, is_hidden=True)
    return fields


def apply_transition(
    resource: ModeratableResource,
    action: ModerationAction,
    actor_id: str,
    reason: Optional[str] = None,
    now: Optional[str] = None,
) -> ModeratableResource:
    """Return a copy of *resource* after *action*.  Pure; no storage involved.

    Raises ``ValueError`` when asked to approve or hide a deleted resource.
    """
    action = ModerationAction(action)
    if resource.is_deleted and action != ModerationAction.delete:
        raise ValueError(f"cannot {action.value} a deleted resource")
    updated = replace(resource, **transition_fields(action, actor_id, reason, now or utcnow()))
    if action == ModerationAction.delete:
        updated.is_deleted = True
    return updated


@dataclass
class ModerationStats:
    pending_polls: int = 0
    pending_comments: int = 0
    moderated_polls: int = 0
    moderated_comments: int = 0


class ModerationService:
    """Runs moderation transitions against a resource store."""

    def __init__(
        self,
        store: ResourceStore,
        policy: Optional[ModerationPolicy] = None,
        audit: Optional[AuditSink] = None,
        clock: Callable[[], str] = utcnow,
    ) -> None:
        self._store = store
        self._policy = policy or ModerationPolicy()
        self._audit = audit
        self._clock = clock

    # -- transitions ---------------------------------------------------------

    def transition_moderation(
        self,
        resource: ModeratableResource,
        action: ModerationAction,
        actor: Optional[Profile],
        reason: Optional[str] = None,
    ) -> Union[ModeratableResource, Decision]:
        """Apply *action* to *resource* on behalf of *actor*.

        Returns the updated resource, or a denying :class:`Decision` when the
        actor lacks the matching moderate permission (no mutation happens).
        Storage failures propagate as :class:`~pollgate.errors.StorageError`.
        """
        action = ModerationAction(action)
        decision = self.check(resource, actor)
        if not decision.allowed:
            self._deny(resource, actor, action, decision)
            return decision

        now = self._clock()
        if action == ModerationAction.delete:
            self._store.delete_resource(resource.kind, resource.id)
            updated = apply_transition(resource, action, actor.identity_id, reason, now)
            if isinstance(resource, Comment):
                self.handle_orphaned_replies(resource, actor.identity_id)
        else:
            fields = transition_fields(action, actor.identity_id, reason, now)
            updated = self._store.update_moderation_fields(resource.kind, resource.id, fields)

        logger.info(
            "%s %s %s by %s", action.value, resource.kind.value, resource.id, actor.identity_id
        )
        if self._audit is not None:
            self._audit.log_event(
                actor=actor.identity_id,
                action=MODERATION_TRANSITION,
                resource_type=resource.kind.value,
                resource_id=resource.id,
                details={"transition": action.value, "reason": reason or ""},
            )
        return updated

    def check(self, resource: ModeratableResource, actor: Optional[Profile]) -> Decision:
        """Authorization for moderating *resource*, including the self-moderation policy."""
        decision = authorize(actor, moderation_action_for(resource.kind))
        if not decision.allowed:
            return decision
        if (
            not self._policy.owner_self_moderation
            and resource.owner_id is not None
            and resource.owner_id == actor.identity_id
        ):
            return Decision.deny(SELF_MODERATION_DISALLOWED)
        return decision

    def handle_orphaned_replies(self, parent: Comment, actor_id: str) -> list[Comment]:
        """Apply the orphan policy to direct replies of a deleted comment.

        With ``orphan_replies: dangling`` replies are left pointing at the
        missing parent.  With ``hide`` they are hidden and stamped.
        """
        if self._policy.orphan_replies != ORPHAN_HIDE:
            return []
        now = self._clock()
        hidden = []
        for reply in self._store.list_replies(parent.id):
            fields = transition_fields(ModerationAction.hide, actor_id, PARENT_DELETED_REASON, now)
            hidden.append(self._store.update_moderation_fields(ResourceKind.comment, reply.id, fields))
        return hidden

    # -- queue ---------------------------------------------------------------

    def moderation_queue(
        self, kind: ResourceKind, actor: Optional[Profile]
    ) -> Union[list[ModeratableResource], Decision]:
        """Return pending or hidden resources of *kind*, newest first."""
        decision = authorize(actor, moderation_action_for(kind))
        if not decision.allowed:
            self._deny(None, actor, "queue", decision, kind=ResourceKind(kind))
            return decision
        return self._store.list_resources(kind, ModerationFilter.needs_attention)

    def moderation_stats(self, actor: Optional[Profile]) -> Union[ModerationStats, Decision]:
        decision = authorize(actor, Action.moderate_poll)
        if not decision.allowed:
            self._deny(None, actor, "stats", decision, kind=ResourceKind.poll)
            return decision
        pending = ModerationFilter.needs_attention
        moderated = ModerationFilter.moderated
        return ModerationStats(
            pending_polls=len(self._store.list_resources(ResourceKind.poll, pending)),
            pending_comments=len(self._store.list_resources(ResourceKind.comment, pending)),
            moderated_polls=len(self._store.list_resources(ResourceKind.poll, moderated)),
            moderated_comments=len(self._store.list_resources(ResourceKind.comment, moderated)),
        )

    # -- helpers -------------------------------------------------------------

    def _deny(
        self,
        resource: Optional[ModeratableResource],
        actor: Optional[Profile],
        attempted: Any,
        decision: Decision,
        kind: Optional[ResourceKind] = None,
    ) -> None:
        kind = kind or resource.kind
        actor_id = actor.identity_id if actor else None
        attempted = getattr(attempted, "value", attempted)
        logger.debug("denied %s on %s for %s: %s", attempted, kind.value, actor_id, decision.reason)
        if self._audit is not None:
            self._audit.log_event(
                actor=actor_id,
                action=UNAUTHORIZED_ACCESS,
                resource_type=kind.value,
                resource_id=resource.id if resource else None,
                details={"attempted": attempted, "reason": decision.reason},
                success=False,
                severity="high",
            )
