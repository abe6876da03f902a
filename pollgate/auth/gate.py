"""Profile gate: resolves identities to profiles and enforces the ban rule.

Lookups go through a two-tier reader.  The *standard* reader is subject to
the backing store's own access policy; the optional *privileged* reader
bypasses it.  The privileged tier is consulted only when the standard tier
fails with :class:`~pollgate.errors.CircularPolicyError` **and** the
identity being resolved is the caller's own.  Resolving anybody else never
escalates.
"""

from __future__ import annotations

import logging
from typing import Optional

from pollgate.auth.models import Permission, Profile
from pollgate.auth.permissions import permissions_for
from pollgate.errors import CircularPolicyError, StorageError
from pollgate.security.audit_log import PRIVILEGED_FALLBACK, AuditSink
from pollgate.storage import ProfileReader

logger = logging.getLogger(__name__)


def effective_permissions(profile: Optional[Profile]) -> frozenset[Permission]:
    """Return what *profile* may actually do right now.

    A missing or suspended profile yields no permissions regardless of role.
    Every permission check in the project goes through here.
    """
    if profile is None or not profile.is_active:
        return frozenset()
    return permissions_for(profile.role)


class ProfileGate:
    """Resolves identities to :class:`Profile` objects."""

    def __init__(
        self,
        standard: ProfileReader,
        privileged: Optional[ProfileReader] = None,
        audit: Optional[AuditSink] = None,
    ) -> None:
        self._standard = standard
        self._privileged = privileged
        self._audit = audit

    @property
    def has_privileged_reader(self) -> bool:
        return self._privileged is not None

    def resolve_actor(self, identity_id: Optional[str]) -> Optional[Profile]:
        """Resolve the *calling* identity.

        Returns ``None`` when the caller is anonymous, has no profile, or the
        store cannot answer.  Never raises for storage failures: an
        unresolvable caller is treated as unauthenticated.
        """
        if not identity_id:
            return None
        try:
            return self._standard.fetch_profile(identity_id)
        except CircularPolicyError:
            logger.warning("circular policy evaluation resolving caller %s", identity_id)
            return self._privileged_self_lookup(identity_id)
        except StorageError as exc:
            logger.error("profile lookup failed for caller %s: %s", identity_id, exc)
            return None

    def lookup_profile(self, identity_id: str, *, caller_id: Optional[str] = None) -> Optional[Profile]:
        """Resolve an arbitrary identity on behalf of *caller_id*.

        Self-lookups get the same treatment as :meth:`resolve_actor`.  For any
        other identity storage errors propagate unchanged and the privileged
        reader is never used.
        """
        if caller_id is not None and identity_id == caller_id:
            return self.resolve_actor(identity_id)
        return self._standard.fetch_profile(identity_id)

    def _privileged_self_lookup(self, identity_id: str) -> Optional[Profile]:
        if self._privileged is None:
            logger.warning("no privileged profile reader configured; treating %s as unauthenticated", identity_id)
            self._record_fallback(identity_id, success=False, note="no privileged reader")
            return None
        try:
            profile = self._privileged.fetch_profile(identity_id)
        except StorageError as exc:
            logger.error("privileged profile lookup failed for %s: %s", identity_id, exc)
            self._record_fallback(identity_id, success=False, note="privileged lookup failed")
            return None
        self._record_fallback(identity_id, success=profile is not None)
        return profile

    def _record_fallback(self, identity_id: str, *, success: bool, note: str = "") -> None:
        if self._audit is None:
            return
        self._audit.log_event(
            actor=identity_id,
            action=PRIVILEGED_FALLBACK,
            resource_type="profile",
            resource_id=identity_id,
            details={"note": note} if note else {},
            success=success,
            severity="medium",
        )
