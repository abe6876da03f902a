"""Vote-casting guard.

One vote per identity per poll is checked here immediately before the
insert.  The check and the insert are separate store calls, so two
concurrent casts by the same identity can both pass; a uniqueness
constraint on ``(poll_id, identity_id)`` in the store is what actually
closes that window.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Union

from pollgate.auth.decision import Action, Decision, authorize
from pollgate.auth.models import Profile
from pollgate.moderation.models import Rejection, Vote
from pollgate.security.audit_log import UNAUTHORIZED_ACCESS, VOTE_CAST, AuditSink
from pollgate.storage import VoteStore

logger = logging.getLogger(__name__)

POLL_NOT_FOUND = "poll-not-found"
OPTION_NOT_FOUND = "option-not-found"
ALREADY_VOTED = "already-voted"


class VotingService:
    def __init__(self, store: VoteStore, audit: Optional[AuditSink] = None) -> None:
        self._store = store
        self._audit = audit

    def cast_vote(
        self, actor: Optional[Profile], poll_id: str, option_id: str
    ) -> Union[Vote, Decision, Rejection]:
        decision = authorize(actor, Action.vote)
        if not decision.allowed:
            logger.debug("vote on %s denied: %s", poll_id, decision.reason)
            if self._audit is not None:
                self._audit.log_event(
                    actor=actor.identity_id if actor else None,
                    action=UNAUTHORIZED_ACCESS,
                    resource_type="poll",
                    resource_id=poll_id,
                    details={"attempted": Action.vote.value, "reason": decision.reason},
                    success=False,
                    severity="high",
                )
            return decision

        poll = self._store.get_poll(poll_id)
        if poll is None or not poll.is_publicly_visible:
            return Rejection(POLL_NOT_FOUND, "Poll not found.")
        if not poll.has_option(option_id):
            return Rejection(OPTION_NOT_FOUND, "Option not found or does not belong to this poll.")
        if self._store.has_vote(poll_id, actor.identity_id):
            return Rejection(ALREADY_VOTED, "You have already voted on this poll.")

        vote = self._store.insert_vote(
            Vote(id=str(uuid.uuid4()), poll_id=poll_id, option_id=option_id, identity_id=actor.identity_id)
        )
        if self._audit is not None:
            self._audit.log_event(
                actor=actor.identity_id,
                action=VOTE_CAST,
                resource_type="poll",
                resource_id=poll_id,
                details={"option_id": option_id},
            )
        return vote
