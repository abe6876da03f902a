"""Tests for poll creation and owner-gated edit/delete."""

import tempfile
from pathlib import Path

from pollgate.auth.decision import INACTIVE_OR_UNAUTHENTICATED, NOT_OWNER, Decision
from pollgate.auth.models import Profile, Role
from pollgate.config import ModerationPolicy
from pollgate.moderation.models import Comment, Poll, PollOption, Rejection, Vote
from pollgate.moderation.store import ContentStore
from pollgate.polls import (
    NOTHING_TO_UPDATE,
    POLL_NOT_FOUND,
    TITLE_REQUIRED,
    TOO_FEW_OPTIONS,
    PollService,
)
from pollgate.security.audit_log import (
    POLL_CREATED,
    POLL_DELETED,
    POLL_UPDATED,
    UNAUTHORIZED_ACCESS,
    MemoryAuditSink,
)

ADMIN = Profile("admin-1", role=Role.admin)
OWNER = Profile("owner-1", role=Role.member)
OTHER = Profile("member-2", role=Role.member)


def _setup(tmpdir, **policy):
    store = ContentStore(Path(tmpdir))
    store.create_poll(
        Poll(
            id="p1",
            owner_id="owner-1",
            title="Tabs or spaces?",
            description="Settle it.",
            options=[PollOption("o1", "Tabs"), PollOption("o2", "Spaces")],
        )
    )
    audit = MemoryAuditSink()
    service = PollService(
        store,
        policy=ModerationPolicy(**policy),
        audit=audit,
        clock=lambda: "2024-06-01T12:00:00+00:00",
    )
    return store, service, audit


def test_member_creates_poll():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, audit = _setup(tmpdir)
        poll = service.create_poll(OTHER, "  Vim or Emacs? ", ["Vim", "Emacs", " "])
        assert isinstance(poll, Poll)
        assert poll.owner_id == "member-2"
        assert poll.title == "Vim or Emacs?"
        assert [o.text for o in poll.options] == ["Vim", "Emacs"]
        assert store.get_poll(poll.id) == poll
        assert audit.get_events(action=POLL_CREATED)[0].resource_id == poll.id


def test_create_validates_title_and_options():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, service, _ = _setup(tmpdir)
        assert service.create_poll(OTHER, "  ", ["a", "b"]).reason == TITLE_REQUIRED
        assert service.create_poll(OTHER, "Only one", ["a", ""]).reason == TOO_FEW_OPTIONS

        denied = service.create_poll(None, "Anon", ["a", "b"])
        assert isinstance(denied, Decision)
        assert denied.reason == INACTIVE_OR_UNAUTHENTICATED


def test_new_poll_waits_for_approval_when_policy_says_so():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, service, _ = _setup(tmpdir, auto_approve=False)
        poll = service.create_poll(OTHER, "Pending?", ["yes", "no"])
        assert not poll.is_publicly_visible
        assert service.get_poll(poll.id) is None
        assert service.get_poll(poll.id, OTHER) == poll
        assert service.get_poll(poll.id, ADMIN) == poll
        assert service.get_poll(poll.id, OWNER) is None


def test_owner_updates_title_and_description():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, audit = _setup(tmpdir)
        updated = service.update_poll("p1", {"title": "Tabs vs spaces", "options": ["ignored"]}, OWNER)
        assert isinstance(updated, Poll)
        assert updated.title == "Tabs vs spaces"
        assert updated.description == "Settle it."
        assert updated.updated_at == "2024-06-01T12:00:00+00:00"
        assert [o.id for o in updated.options] == ["o1", "o2"]
        assert store.get_poll("p1").title == "Tabs vs spaces"
        assert audit.get_events(action=POLL_UPDATED)[0].details == {"fields": ["title"]}


def test_other_member_gets_not_owner():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, audit = _setup(tmpdir)
        edit = service.update_poll("p1", {"title": "Hijacked"}, OTHER)
        assert isinstance(edit, Decision)
        assert edit.reason == NOT_OWNER

        delete = service.delete_poll("p1", OTHER)
        assert delete.reason == NOT_OWNER
        assert store.get_poll("p1").title == "Tabs or spaces?"

        denials = audit.get_events(action=UNAUTHORIZED_ACCESS)
        assert [e.details["attempted"] for e in denials] == ["edit", "delete"]


def test_admin_edits_and_deletes_through_any_scoped_permission():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, audit = _setup(tmpdir)
        store.insert_comment(Comment(id="c1", poll_id="p1", content="tabs", author_identity_id="owner-1"))
        store.insert_vote(Vote(id="v1", poll_id="p1", option_id="o1", identity_id="member-2"))

        edited = service.update_poll("p1", {"description": "Closed."}, ADMIN)
        assert isinstance(edited, Poll)
        assert edited.description == "Closed."

        deleted = service.delete_poll("p1", ADMIN)
        assert isinstance(deleted, Decision) and deleted.allowed
        assert store.get_poll("p1") is None
        assert store.fetch_comments_for_poll("p1") == []
        assert not store.has_vote("p1", "member-2")
        assert audit.get_events(action=POLL_DELETED)[0].details == {"owner_id": "owner-1"}


def test_owner_deletes_own_poll():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _ = _setup(tmpdir)
        assert service.delete_poll("p1", OWNER).allowed
        assert store.get_poll("p1") is None


def test_missing_poll_and_empty_update():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, service, _ = _setup(tmpdir)
        assert service.update_poll("nope", {"title": "x"}, ADMIN).reason == POLL_NOT_FOUND
        assert service.delete_poll("nope", ADMIN).reason == POLL_NOT_FOUND

        empty = service.update_poll("p1", {}, OWNER)
        assert isinstance(empty, Rejection)
        assert empty.reason == NOTHING_TO_UPDATE
        assert service.update_poll("p1", {"title": " "}, OWNER).reason == TITLE_REQUIRED


def test_suspended_owner_cannot_edit():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, service, _ = _setup(tmpdir)
        suspended = Profile("owner-1", role=Role.member, is_active=False, suspended_at="2024-01-01T00:00:00+00:00")
        assert service.update_poll("p1", {"title": "x"}, suspended).reason == INACTIVE_OR_UNAUTHENTICATED
