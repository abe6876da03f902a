"""Abstract storage operations consumed by the core.

The core never talks to a database directly.  Anything that implements
these protocols can back it; :mod:`pollgate.auth.store` and
:mod:`pollgate.moderation.store` provide file-backed JSON implementations.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from pollgate.auth.models import Profile, Role
from pollgate.moderation.models import (
    Comment,
    ModeratableResource,
    ModerationFilter,
    Poll,
    ResourceKind,
    Vote,
)


class ProfileReader(Protocol):
    def fetch_profile(self, identity_id: str) -> Optional[Profile]:
        """Return the profile or ``None``.

        May raise :class:`~pollgate.errors.CircularPolicyError`.
        """
        ...


class ProfileWriter(ProfileReader, Protocol):
    def list_profiles(self) -> list[Profile]: ...

    def update_role(self, identity_id: str, role: Role) -> Profile: ...

    def set_suspension(
        self,
        identity_id: str,
        *,
        suspended_at: Optional[str],
        suspended_by: Optional[str],
        reason: Optional[str],
    ) -> Profile: ...


class ResourceStore(Protocol):
    def fetch_resource_with_owner(
        self, kind: ResourceKind, resource_id: str
    ) -> Optional[ModeratableResource]: ...

    def update_moderation_fields(
        self, kind: ResourceKind, resource_id: str, fields: dict[str, Any]
    ) -> ModeratableResource: ...

    def delete_resource(self, kind: ResourceKind, resource_id: str) -> bool: ...

    def list_resources(
        self, kind: ResourceKind, moderation: ModerationFilter = ModerationFilter.all
    ) -> list[ModeratableResource]: ...

    def list_replies(self, parent_id: str) -> list[Comment]: ...


class CommentStore(Protocol):
    def get_poll(self, poll_id: str) -> Optional[Poll]: ...

    def get_comment(self, comment_id: str) -> Optional[Comment]: ...

    def fetch_comments_for_poll(self, poll_id: str) -> list[Comment]: ...

    def insert_comment(self, comment: Comment) -> Comment: ...

    def delete_resource(self, kind: ResourceKind, resource_id: str) -> bool: ...

    def update_comment_content(self, comment_id: str, content: str, updated_at: str) -> Comment: ...


class VoteStore(Protocol):
    def get_poll(self, poll_id: str) -> Optional[Poll]: ...

    def has_vote(self, poll_id: str, identity_id: str) -> bool: ...

    def insert_vote(self, vote: Vote) -> Vote: ...


class PollStore(Protocol):
    def create_poll(self, poll: Poll) -> Poll: ...

    def get_poll(self, poll_id: str) -> Optional[Poll]: ...

    def update_poll(self, poll_id: str, changes: dict[str, Any]) -> Poll: ...

    def delete_resource(self, kind: ResourceKind, resource_id: str) -> bool: ...
