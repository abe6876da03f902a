"""Identity administration: role changes and suspensions.

Profiles are never deleted.  Suspension is reversible state: suspending sets
``is_active = False`` together with the suspension stamp, reinstating
clears both.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from pollgate.auth.decision import PROFILE_NOT_FOUND, SELF_SUSPENSION, Action, Decision, authorize
from pollgate.auth.gate import ProfileGate
from pollgate.auth.models import Profile, Role, utcnow
from pollgate.security.audit_log import (
    IDENTITY_SUSPENDED,
    IDENTITY_UNSUSPENDED,
    ROLE_CHANGED,
    UNAUTHORIZED_ACCESS,
    AuditSink,
)
from pollgate.storage import ProfileWriter

logger = logging.getLogger(__name__)


@dataclass
class IdentityStats:
    total: int = 0
    active: int = 0
    suspended: int = 0
    administrators: int = 0


class IdentityAdmin:
    """Role and suspension management, gated by ``manage_users``/``ban_users``."""

    def __init__(
        self,
        store: ProfileWriter,
        gate: ProfileGate,
        audit: Optional[AuditSink] = None,
        clock: Callable[[], str] = utcnow,
    ) -> None:
        self._store = store
        self._gate = gate
        self._audit = audit
        self._clock = clock

    def change_role(
        self, actor: Optional[Profile], target_id: str, role: Role
    ) -> Union[Profile, Decision]:
        decision = authorize(actor, Action.change_role)
        if not decision.allowed:
            return self._deny(actor, Action.change_role, target_id, decision)
        if self._target(actor, target_id) is None:
            return Decision.deny(PROFILE_NOT_FOUND)

        role = Role(role)
        updated = self._store.update_role(target_id, role)
        logger.info("role of %s changed to %s by %s", target_id, role.value, actor.identity_id)
        self._log(actor, ROLE_CHANGED, target_id, {"role": role.value})
        return updated

    def suspend(
        self, actor: Optional[Profile], target_id: str, reason: str = ""
    ) -> Union[Profile, Decision]:
        decision = authorize(actor, Action.suspend)
        if decision.allowed and actor.identity_id == target_id:
            decision = Decision.deny(SELF_SUSPENSION)
        if not decision.allowed:
            return self._deny(actor, Action.suspend, target_id, decision)
        if self._target(actor, target_id) is None:
            return Decision.deny(PROFILE_NOT_FOUND)

        updated = self._store.set_suspension(
            target_id,
            suspended_at=self._clock(),
            suspended_by=actor.identity_id,
            reason=reason or None,
        )
        logger.info("%s suspended by %s", target_id, actor.identity_id)
        self._log(actor, IDENTITY_SUSPENDED, target_id, {"reason": reason})
        return updated

    def unsuspend(self, actor: Optional[Profile], target_id: str) -> Union[Profile, Decision]:
        decision = authorize(actor, Action.suspend)
        if not decision.allowed:
            return self._deny(actor, Action.suspend, target_id, decision)
        if self._target(actor, target_id) is None:
            return Decision.deny(PROFILE_NOT_FOUND)

        updated = self._store.set_suspension(target_id, suspended_at=None, suspended_by=None, reason=None)
        logger.info("%s reinstated by %s", target_id, actor.identity_id)
        self._log(actor, IDENTITY_UNSUSPENDED, target_id)
        return updated

    def identity_stats(self, actor: Optional[Profile]) -> Union[IdentityStats, Decision]:
        decision = authorize(actor, Action.view_analytics)
        if not decision.allowed:
            return self._deny(actor, Action.view_analytics, None, decision)
        profiles = self._store.list_profiles()
        active = sum(1 for p in profiles if p.is_active)
        return IdentityStats(
            total=len(profiles),
            active=active,
            suspended=len(profiles) - active,
            administrators=sum(1 for p in profiles if p.role == Role.admin),
        )

    # -- helpers -------------------------------------------------------------

    def _target(self, actor: Profile, target_id: str) -> Optional[Profile]:
        # other identities never go through the privileged fallback
        return self._gate.lookup_profile(target_id, caller_id=actor.identity_id)

    def _log(self, actor: Profile, event: str, target_id: str, details: Optional[dict] = None) -> None:
        if self._audit is not None:
            self._audit.log_event(
                actor=actor.identity_id,
                action=event,
                resource_type="profile",
                resource_id=target_id,
                details=details,
                severity="medium",
            )

    def _deny(
        self, actor: Optional[Profile], action: Action, target_id: Optional[str], decision: Decision
    ) -> Decision:
        actor_id = actor.identity_id if actor else None
        logger.debug("denied %s on %s for %s: %s", action.value, target_id, actor_id, decision.reason)
        if self._audit is not None:
            self._audit.log_event(
                actor=actor_id,
                action=UNAUTHORIZED_ACCESS,
                resource_type="profile",
                resource_id=target_id,
                details={"attempted": action.value, "reason": decision.reason},
                success=False,
                severity="high",
            )
        return decision
