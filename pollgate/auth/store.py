"""File-based JSON storage for identity profiles.

Implements the profile side of :mod:`pollgate.storage` with a list of
profile dicts under ``~/.pollgate/auth/profiles.json``.  The file store has
no row-level policy layer of its own, so the same class can serve as the
privileged (policy-bypassing) reader for the profile gate.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pollgate.auth.models import Profile, Role, utcnow
from pollgate.errors import RecordNotFound


class ProfileStore:
    """File-based storage for profiles.

    Storage path: ``~/.pollgate/auth/`` with:
    - ``profiles.json`` -- list of profile dicts
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".pollgate" / "auth"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._profiles_path = self._base / "profiles.json"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_json(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
            return data if isinstance(data, list) else []
        except (json.JSONDecodeError, OSError):
            return []

    def _write_json(self, path: Path, data: list[dict]) -> None:
        path.write_text(json.dumps(data, indent=2, default=str))

    @staticmethod
    def _profile_from_dict(d: dict) -> Profile:
        return Profile(
            identity_id=d["identity_id"],
            role=d.get("role", Role.member.value),
            is_active=d.get("is_active", True),
            suspended_at=d.get("suspended_at"),
            suspended_by=d.get("suspended_by"),
            suspension_reason=d.get("suspension_reason"),
            display_name=d.get("display_name", ""),
            contact=d.get("contact", ""),
            created_at=d.get("created_at", ""),
            updated_at=d.get("updated_at"),
        )

    @staticmethod
    def _profile_to_dict(p: Profile) -> dict:
        return {
            "identity_id": p.identity_id,
            "role": p.role.value if isinstance(p.role, Role) else p.role,
            "is_active": p.is_active,
            "suspended_at": p.suspended_at,
            "suspended_by": p.suspended_by,
            "suspension_reason": p.suspension_reason,
            "display_name": p.display_name,
            "contact": p.contact,
            "created_at": p.created_at,
            "updated_at": p.updated_at,
        }

    def _update(self, identity_id: str, **changes) -> Profile:
        profiles = self._read_json(self._profiles_path)
        for d in profiles:
            if d["identity_id"] == identity_id:
                d.update(changes)
                d["updated_at"] = utcnow()
                self._write_json(self._profiles_path, profiles)
                return self._profile_from_dict(d)
        raise RecordNotFound(f"profile {identity_id} not found")

    # ------------------------------------------------------------------
    # Profile CRUD
    # ------------------------------------------------------------------

    def create_profile(self, profile: Profile) -> Profile:
        """Persist a new profile. Returns the profile."""
        profiles = self._read_json(self._profiles_path)
        profiles.append(self._profile_to_dict(profile))
        self._write_json(self._profiles_path, profiles)
        return profile

    def fetch_profile(self, identity_id: str) -> Optional[Profile]:
        for d in self._read_json(self._profiles_path):
            if d["identity_id"] == identity_id:
                return self._profile_from_dict(d)
        return None

    def list_profiles(self) -> list[Profile]:
        profiles = [self._profile_from_dict(d) for d in self._read_json(self._profiles_path)]
        profiles.sort(key=lambda p: p.created_at, reverse=True)
        return profiles

    def update_role(self, identity_id: str, role: Role) -> Profile:
        """Change an identity's role. Raises ``RecordNotFound`` if absent."""
        return self._update(identity_id, role=Role(role).value)

    def set_suspension(
        self,
        identity_id: str,
        *,
        suspended_at: Optional[str],
        suspended_by: Optional[str],
        reason: Optional[str],
    ) -> Profile:
        """Suspend (``suspended_at`` set) or reinstate (``None``) an identity."""
        return self._update(
            identity_id,
            is_active=suspended_at is None,
            suspended_at=suspended_at,
            suspended_by=suspended_by,
            suspension_reason=reason,
        )
