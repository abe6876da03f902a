"""Tests for the moderation state machine."""

import tempfile
from pathlib import Path

import pytest

from pollgate.auth.decision import MISSING_PERMISSION, SELF_MODERATION_DISALLOWED, Decision
from pollgate.auth.models import Profile, Role
from pollgate.config import ORPHAN_HIDE, ModerationPolicy
from pollgate.moderation.models import (
    Comment,
    ModerationAction,
    ModerationFilter,
    ModerationState,
    Poll,
    ResourceKind,
)
from pollgate.moderation.state_machine import (
    PARENT_DELETED_REASON,
    ModerationService,
    apply_transition,
    transition_fields,
)
from pollgate.moderation.store import ContentStore
from pollgate.security.audit_log import MODERATION_TRANSITION, UNAUTHORIZED_ACCESS, MemoryAuditSink

ADMIN = Profile("admin-1", role=Role.admin)
OTHER_ADMIN = Profile("admin-2", role=Role.admin)
MEMBER = Profile("member-1", role=Role.member)


class _Clock:
    def __init__(self):
        self.tick = 0

    def __call__(self):
        self.tick += 1
        return f"2024-06-01T00:00:{self.tick:02d}+00:00"


def _service(tmpdir, **policy):
    store = ContentStore(Path(tmpdir) / "content")
    audit = MemoryAuditSink()
    service = ModerationService(store, policy=ModerationPolicy(**policy), audit=audit, clock=_Clock())
    return store, service, audit


def _poll(store, poll_id="p1", owner="member-1", **kw):
    return store.create_poll(Poll(id=poll_id, owner_id=owner, title="Lunch?", **kw))


def test_states_from_flags():
    assert Poll(id="p", is_approved=False).state == ModerationState.pending
    assert Poll(id="p").state == ModerationState.approved
    assert Poll(id="p", is_hidden=True).state == ModerationState.hidden
    assert Poll(id="p", is_approved=True, is_hidden=True).state == ModerationState.hidden


def test_transition_fields():
    approve = transition_fields(ModerationAction.approve, "a", "ok", "t1")
    assert approve["is_approved"] is True and approve["is_hidden"] is False
    hide = transition_fields(ModerationAction.hide, "a", None, "t1")
    assert hide["is_approved"] is False and hide["is_hidden"] is True
    assert hide["moderation_reason"] is None
    assert hide["moderated_by"] == "a" and hide["moderated_at"] == "t1"


def test_apply_transition_is_pure():
    poll = Poll(id="p1", owner_id="m")
    hidden = apply_transition(poll, ModerationAction.hide, "a", "spam", "t1")
    assert hidden.state == ModerationState.hidden
    assert poll.state == ModerationState.approved


def test_cannot_revive_deleted_resource():
    deleted = apply_transition(Poll(id="p1"), ModerationAction.delete, "a", None, "t1")
    assert deleted.state == ModerationState.deleted
    with pytest.raises(ValueError):
        apply_transition(deleted, ModerationAction.approve, "a", None, "t2")


def test_member_cannot_moderate_and_nothing_changes():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, audit = _service(tmpdir)
        poll = _poll(store, owner="someone")

        result = service.transition_moderation(poll, ModerationAction.hide, MEMBER, "spam")

        assert isinstance(result, Decision)
        assert result.reason == MISSING_PERMISSION
        stored = store.get_poll("p1")
        assert stored.state == ModerationState.approved
        assert stored.moderated_by is None
        assert audit.get_events(action=UNAUTHORIZED_ACCESS)[0].actor == "member-1"


def test_admin_hides_poll():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, audit = _service(tmpdir)
        poll = _poll(store)

        result = service.transition_moderation(poll, ModerationAction.hide, ADMIN, "spam")

        assert result.state == ModerationState.hidden
        stored = store.get_poll("p1")
        assert stored.is_hidden and not stored.is_approved
        assert stored.moderated_by == "admin-1"
        assert stored.moderation_reason == "spam"
        assert audit.get_events(action=MODERATION_TRANSITION)[0].details["transition"] == "hide"


def test_round_trip_keeps_only_latest_stamp():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _ = _service(tmpdir)
        poll = _poll(store, is_approved=False)

        poll = service.transition_moderation(poll, ModerationAction.approve, ADMIN, "looks fine")
        poll = service.transition_moderation(poll, ModerationAction.hide, OTHER_ADMIN, "reported")
        poll = service.transition_moderation(poll, ModerationAction.approve, ADMIN, None)

        stored = store.get_poll("p1")
        assert stored.state == ModerationState.approved
        assert stored.moderated_by == "admin-1"
        assert stored.moderated_at == "2024-06-01T00:00:03+00:00"
        assert stored.moderation_reason is None


def test_approve_is_idempotent_in_effect():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _ = _service(tmpdir)
        poll = _poll(store)
        first = service.transition_moderation(poll, ModerationAction.approve, ADMIN)
        second = service.transition_moderation(first, ModerationAction.approve, ADMIN)
        assert first.state == second.state == ModerationState.approved


def test_delete_removes_poll_and_its_comments():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _ = _service(tmpdir)
        poll = _poll(store)
        store.insert_comment(Comment(id="c1", poll_id="p1", content="hi", author_identity_id="member-1"))

        result = service.transition_moderation(poll, ModerationAction.delete, ADMIN, "off-topic")

        assert result.state == ModerationState.deleted
        assert store.get_poll("p1") is None
        assert store.get_comment("c1") is None
        assert store.fetch_resource_with_owner(ResourceKind.poll, "p1") is None


def test_self_moderation_allowed_by_default():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _ = _service(tmpdir)
        poll = _poll(store, owner="admin-1")
        result = service.transition_moderation(poll, ModerationAction.hide, ADMIN)
        assert result.state == ModerationState.hidden


def test_self_moderation_can_be_disabled():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _ = _service(tmpdir, owner_self_moderation=False)
        poll = _poll(store, owner="admin-1")
        result = service.transition_moderation(poll, ModerationAction.hide, ADMIN)
        assert isinstance(result, Decision)
        assert result.reason == SELF_MODERATION_DISALLOWED
        assert service.transition_moderation(poll, ModerationAction.hide, OTHER_ADMIN).is_hidden


def test_deleting_comment_leaves_replies_dangling_by_default():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _ = _service(tmpdir)
        _poll(store)
        parent = store.insert_comment(Comment(id="c1", poll_id="p1", content="root"))
        store.insert_comment(Comment(id="c2", poll_id="p1", parent_id="c1", depth=1, content="reply"))

        service.transition_moderation(parent, ModerationAction.delete, ADMIN)

        reply = store.get_comment("c2")
        assert reply.parent_id == "c1"
        assert reply.is_publicly_visible


def test_deleting_comment_hides_replies_when_configured():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _ = _service(tmpdir, orphan_replies=ORPHAN_HIDE)
        _poll(store)
        parent = store.insert_comment(Comment(id="c1", poll_id="p1", content="root"))
        store.insert_comment(Comment(id="c2", poll_id="p1", parent_id="c1", depth=1, content="reply"))

        service.transition_moderation(parent, ModerationAction.delete, ADMIN)

        reply = store.get_comment("c2")
        assert reply.is_hidden
        assert reply.moderation_reason == PARENT_DELETED_REASON


def test_moderation_queue():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _ = _service(tmpdir)
        _poll(store, "p1", created_at="2024-01-01T00:00:00+00:00", is_approved=False)
        _poll(store, "p2", created_at="2024-01-02T00:00:00+00:00")
        _poll(store, "p3", created_at="2024-01-03T00:00:00+00:00", is_hidden=True)

        queue = service.moderation_queue(ResourceKind.poll, ADMIN)
        assert [p.id for p in queue] == ["p3", "p1"]
        assert isinstance(service.moderation_queue(ResourceKind.poll, MEMBER), Decision)


def test_moderation_stats():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _ = _service(tmpdir)
        poll = _poll(store, "p1", is_approved=False)
        _poll(store, "p2")
        store.insert_comment(Comment(id="c1", poll_id="p2", content="x", is_approved=False))
        service.transition_moderation(poll, ModerationAction.approve, ADMIN)

        stats = service.moderation_stats(ADMIN)
        assert stats.pending_polls == 0
        assert stats.moderated_polls == 1
        assert stats.pending_comments == 1
        assert stats.moderated_comments == 0
        assert isinstance(service.moderation_stats(MEMBER), Decision)


def test_list_resources_filters():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, _, _ = _service(tmpdir)
        _poll(store, "p1", is_approved=False)
        _poll(store, "p2")
        visible = store.list_resources(ResourceKind.poll, ModerationFilter.visible)
        assert [p.id for p in visible] == ["p2"]
        assert len(store.list_resources(ResourceKind.poll)) == 2


def test_update_moderation_fields_rejects_other_fields():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, _, _ = _service(tmpdir)
        _poll(store)
        with pytest.raises(ValueError):
            store.update_moderation_fields(ResourceKind.poll, "p1", {"title": "changed"})
