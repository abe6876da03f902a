"""Tests for identity administration."""

import tempfile
from pathlib import Path

import pytest

from pollgate.auth.decision import (
    INACTIVE_OR_UNAUTHENTICATED,
    MISSING_PERMISSION,
    PROFILE_NOT_FOUND,
    SELF_SUSPENSION,
    Decision,
)
from pollgate.auth.gate import ProfileGate, effective_permissions
from pollgate.auth.management import IdentityAdmin
from pollgate.auth.models import Profile, Role
from pollgate.auth.store import ProfileStore
from pollgate.errors import RecordNotFound
from pollgate.security.audit_log import (
    IDENTITY_SUSPENDED,
    ROLE_CHANGED,
    UNAUTHORIZED_ACCESS,
    MemoryAuditSink,
)

NOW = "2024-07-01T09:00:00+00:00"


def _admin_setup(tmpdir):
    store = ProfileStore(Path(tmpdir) / "auth")
    audit = MemoryAuditSink()
    admin = store.create_profile(Profile("admin-1", role=Role.admin))
    store.create_profile(Profile("member-1", role=Role.member))
    service = IdentityAdmin(store, ProfileGate(store), audit=audit, clock=lambda: NOW)
    return store, service, audit, admin


def test_admin_promotes_member():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, audit, admin = _admin_setup(tmpdir)

        updated = service.change_role(admin, "member-1", Role.admin)

        assert updated.role == Role.admin
        assert store.fetch_profile("member-1").role == Role.admin
        assert audit.get_events(action=ROLE_CHANGED)[0].details == {"role": "admin"}


def test_member_cannot_change_roles():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, audit, _ = _admin_setup(tmpdir)
        member = store.fetch_profile("member-1")

        result = service.change_role(member, "admin-1", Role.member)

        assert isinstance(result, Decision)
        assert result.reason == MISSING_PERMISSION
        assert store.fetch_profile("admin-1").role == Role.admin
        assert audit.get_events(action=UNAUTHORIZED_ACCESS)


def test_anonymous_cannot_change_roles():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, service, _, _ = _admin_setup(tmpdir)
        assert service.change_role(None, "member-1", Role.admin).reason == INACTIVE_OR_UNAUTHENTICATED


def test_unknown_target():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, service, _, admin = _admin_setup(tmpdir)
        assert service.change_role(admin, "ghost", Role.admin).reason == PROFILE_NOT_FOUND
        assert service.suspend(admin, "ghost").reason == PROFILE_NOT_FOUND


def test_suspend_and_reinstate():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, audit, admin = _admin_setup(tmpdir)

        suspended = service.suspend(admin, "member-1", "spam")
        assert not suspended.is_active
        assert suspended.suspended_at == NOW
        assert suspended.suspended_by == "admin-1"
        assert suspended.suspension_reason == "spam"
        assert effective_permissions(store.fetch_profile("member-1")) == frozenset()
        assert audit.get_events(action=IDENTITY_SUSPENDED)[0].resource_id == "member-1"

        reinstated = service.unsuspend(admin, "member-1")
        assert reinstated.is_active
        assert reinstated.suspended_at is None
        assert reinstated.suspended_by is None
        assert effective_permissions(reinstated)


def test_admin_cannot_suspend_self():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _, admin = _admin_setup(tmpdir)
        assert service.suspend(admin, "admin-1").reason == SELF_SUSPENSION
        assert store.fetch_profile("admin-1").is_active


def test_suspended_admin_loses_powers():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _, admin = _admin_setup(tmpdir)
        store.create_profile(Profile("admin-2", role=Role.admin))
        service.suspend(admin, "admin-2")

        result = service.change_role(store.fetch_profile("admin-2"), "member-1", Role.admin)
        assert result.reason == INACTIVE_OR_UNAUTHENTICATED


def test_identity_stats():
    with tempfile.TemporaryDirectory() as tmpdir:
        store, service, _, admin = _admin_setup(tmpdir)
        service.suspend(admin, "member-1")

        stats = service.identity_stats(admin)
        assert (stats.total, stats.active, stats.suspended, stats.administrators) == (2, 1, 1, 1)
        assert service.identity_stats(Profile("member-2", role=Role.member)).reason == MISSING_PERMISSION


def test_store_update_of_missing_profile_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = ProfileStore(Path(tmpdir))
        with pytest.raises(RecordNotFound):
            store.update_role("ghost", Role.admin)


def test_list_profiles_newest_first():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = ProfileStore(Path(tmpdir))
        store.create_profile(Profile("old", created_at="2024-01-01T00:00:00+00:00"))
        store.create_profile(Profile("new", created_at="2024-02-01T00:00:00+00:00"))
        assert [p.identity_id for p in store.list_profiles()] == ["new", "old"]
