"""File-based JSON storage for polls, comments and votes.

Implements the resource, comment and vote protocols of
:mod:`pollgate.storage` with JSON lists under ``~/.pollgate/content/``.
Deleting a poll removes its comments and votes; deleting a comment removes
only that row.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

from pollgate.errors import RecordNotFound
from pollgate.moderation.models import (
    Comment,
    ModeratableResource,
    ModerationFilter,
    Poll,
    PollOption,
    ResourceKind,
    Vote,
)

_MODERATION_FIELDS = {
    "is_approved",
    "is_hidden",
    "moderated_by",
    "moderated_at",
    "moderation_reason",
}

_POLL_CONTENT_FIELDS = {"title", "description", "updated_at"}


def _matches(d: dict, moderation: ModerationFilter) -> bool:
    approved = d.get("is_approved", True)
    hidden = d.get("is_hidden", False)
    if moderation == ModerationFilter.visible:
        return approved and not hidden
    if moderation == ModerationFilter.needs_attention:
        return not approved or hidden
    if moderation == ModerationFilter.moderated:
        return bool(d.get("moderated_at"))
    return True


class ContentStore:
    """File-based storage for moderatable content.

    Storage path: ``~/.pollgate/content/`` with:
    - ``polls.json`` -- list of poll dicts
    - ``comments.json`` -- list of comment dicts
    - ``votes.json`` -- list of vote dicts
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".pollgate" / "content"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._polls_path = self._base / "polls.json"
        self._comments_path = self._base / "comments.json"
        self._votes_path = self._base / "votes.json"

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

    def _path_for(self, kind: ResourceKind) -> Path:
        return self._polls_path if ResourceKind(kind) == ResourceKind.poll else self._comments_path

    @staticmethod
    def _poll_from_dict(d: dict) -> Poll:
        return Poll(
            id=d["id"],
            owner_id=d.get("owner_id"),
            is_approved=d.get("is_approved", True),
            is_hidden=d.get("is_hidden", False),
            moderated_by=d.get("moderated_by"),
            moderated_at=d.get("moderated_at"),
            moderation_reason=d.get("moderation_reason"),
            created_at=d.get("created_at", ""),
            title=d.get("title", ""),
            description=d.get("description", ""),
            options=[PollOption(**o) for o in d.get("options", [])],
            updated_at=d.get("updated_at"),
        )

    @staticmethod
    def _comment_from_dict(d: dict) -> Comment:
        return Comment(
            id=d["id"],
            is_approved=d.get("is_approved", True),
            is_hidden=d.get("is_hidden", False),
            moderated_by=d.get("moderated_by"),
            moderated_at=d.get("moderated_at"),
            moderation_reason=d.get("moderation_reason"),
            created_at=d.get("created_at", ""),
            poll_id=d["poll_id"],
            parent_id=d.get("parent_id"),
            depth=d.get("depth", 0),
            content=d.get("content", ""),
            author_kind=d.get("author_kind", "registered"),
            author_identity_id=d.get("author_identity_id"),
            author_display_name=d.get("author_display_name", ""),
            author_contact=d.get("author_contact", ""),
            updated_at=d.get("updated_at"),
        )

    def _from_dict(self, kind: ResourceKind, d: dict) -> ModeratableResource:
        if ResourceKind(kind) == ResourceKind.poll:
            return self._poll_from_dict(d)
        return self._comment_from_dict(d)

    @staticmethod
    def _to_dict(resource: ModeratableResource) -> dict:
        d = asdict(resource)
        d.pop("is_deleted", None)
        if isinstance(resource, Comment):
            d.pop("owner_id", None)
            d["author_kind"] = resource.author_kind.value
        return d

    def _poll_ids(self) -> set[str]:
        return {d["id"] for d in self._read_json(self._polls_path)}

    # ------------------------------------------------------------------
    # Generic moderatable-resource operations
    # ------------------------------------------------------------------

    def fetch_resource_with_owner(
        self, kind: ResourceKind, resource_id: str
    ) -> Optional[ModeratableResource]:
        """Look up a poll or comment by ID. Returns None if not found.

        Comments whose poll no longer exists are treated as not found.
        """
        for d in self._read_json(self._path_for(kind)):
            if d["id"] == resource_id:
                if ResourceKind(kind) == ResourceKind.comment and d["poll_id"] not in self._poll_ids():
                    return None
                return self._from_dict(kind, d)
        return None

    def update_moderation_fields(
        self, kind: ResourceKind, resource_id: str, fields: dict[str, Any]
    ) -> ModeratableResource:
        """Overwrite moderation flags and stamps. Raises ``RecordNotFound``."""
        unknown = set(fields) - _MODERATION_FIELDS
        if unknown:
            raise ValueError(f"not moderation fields: {sorted(unknown)}")
        path = self._path_for(kind)
        rows = self._read_json(path)
        for d in rows:
            if d["id"] == resource_id:
                d.update(fields)
                self._write_json(path, rows)
                return self._from_dict(kind, d)
        raise RecordNotFound(f"{ResourceKind(kind).value} {resource_id} not found")

    def delete_resource(self, kind: ResourceKind, resource_id: str) -> bool:
        """Remove a poll (with its comments and votes) or a single comment."""
        path = self._path_for(kind)
        rows = self._read_json(path)
        kept = [d for d in rows if d["id"] != resource_id]
        if len(kept) == len(rows):
            return False
        self._write_json(path, kept)
        if ResourceKind(kind) == ResourceKind.poll:
            comments = self._read_json(self._comments_path)
            self._write_json(self._comments_path, [c for c in comments if c["poll_id"] != resource_id])
            votes = self._read_json(self._votes_path)
            self._write_json(self._votes_path, [v for v in votes if v["poll_id"] != resource_id])
        return True

    def list_resources(
        self, kind: ResourceKind, moderation: ModerationFilter = ModerationFilter.all
    ) -> list[ModeratableResource]:
        """Return resources of *kind* matching *moderation*, newest first."""
        rows = [d for d in self._read_json(self._path_for(kind)) if _matches(d, moderation)]
        if ResourceKind(kind) == ResourceKind.comment:
            poll_ids = self._poll_ids()
            rows = [d for d in rows if d["poll_id"] in poll_ids]
        rows.sort(key=lambda d: d.get("created_at", ""), reverse=True)
        return [self._from_dict(kind, d) for d in rows]

    # ------------------------------------------------------------------
    # Polls
    # ------------------------------------------------------------------

    def create_poll(self, poll: Poll) -> Poll:
        """Persist a new poll. Returns the poll."""
        polls = self._read_json(self._polls_path)
        polls.append(self._to_dict(poll))
        self._write_json(self._polls_path, polls)
        return poll

    def get_poll(self, poll_id: str) -> Optional[Poll]:
        for d in self._read_json(self._polls_path):
            if d["id"] == poll_id:
                return self._poll_from_dict(d)
        return None

    def update_poll(self, poll_id: str, changes: dict[str, Any]) -> Poll:
        """Overwrite poll content fields. Raises ``RecordNotFound``."""
        unknown = set(changes) - _POLL_CONTENT_FIELDS
        if unknown:
            raise ValueError(f"not poll content fields: {sorted(unknown)}")
        polls = self._read_json(self._polls_path)
        for d in polls:
            if d["id"] == poll_id:
                d.update(changes)
                self._write_json(self._polls_path, polls)
                return self._poll_from_dict(d)
        raise RecordNotFound(f"poll {poll_id} not found")

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def get_comment(self, comment_id: str) -> Optional[Comment]:
        resource = self.fetch_resource_with_owner(ResourceKind.comment, comment_id)
        return resource if isinstance(resource, Comment) else None

    def fetch_comments_for_poll(self, poll_id: str) -> list[Comment]:
        """Return every comment on *poll_id*, oldest first, regardless of moderation."""
        if poll_id not in self._poll_ids():
            return []
        rows = [d for d in self._read_json(self._comments_path) if d["poll_id"] == poll_id]
        rows.sort(key=lambda d: d.get("created_at", ""))
        return [self._comment_from_dict(d) for d in rows]

    def insert_comment(self, comment: Comment) -> Comment:
        comments = self._read_json(self._comments_path)
        comments.append(self._to_dict(comment))
        self._write_json(self._comments_path, comments)
        return comment

    def update_comment_content(self, comment_id: str, content: str, updated_at: str) -> Comment:
        comments = self._read_json(self._comments_path)
        for d in comments:
            if d["id"] == comment_id:
                d["content"] = content
                d["updated_at"] = updated_at
                self._write_json(self._comments_path, comments)
                return self._comment_from_dict(d)
        raise RecordNotFound(f"comment {comment_id} not found")

    def list_replies(self, parent_id: str) -> list[Comment]:
        return [
            self._comment_from_dict(d)
            for d in self._read_json(self._comments_path)
            if d.get("parent_id") == parent_id
        ]

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    def has_vote(self, poll_id: str, identity_id: str) -> bool:
        return any(
            v["poll_id"] == poll_id and v["identity_id"] == identity_id
            for v in self._read_json(self._votes_path)
        )

    def insert_vote(self, vote: Vote) -> Vote:
        votes = self._read_json(self._votes_path)
        votes.append(asdict(vote))
        self._write_json(self._votes_path, votes)
        return vote

