"""Tests for moderation policy loading."""

import tempfile
from pathlib import Path

import pytest
import yaml

from pollgate.config import (
    ORPHAN_DANGLING,
    ORPHAN_HIDE,
    POLICY_ENV_VAR,
    ConfigError,
    ModerationPolicy,
    load_policy,
)


def _write_policy(tmpdir: str, data) -> Path:
    path = Path(tmpdir) / "policy.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


def test_defaults():
    policy = ModerationPolicy()
    assert policy.auto_approve is True
    assert policy.owner_self_moderation is True
    assert policy.orphan_replies == ORPHAN_DANGLING
    assert policy.max_comment_length == 2000
    assert policy.max_comment_depth == 5
    assert policy.audit_sink == "memory"


def test_load_from_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_policy(tmpdir, {"auto_approve": False, "orphan_replies": "hide", "max_comment_depth": 3})
        policy = load_policy(path)
        assert policy.auto_approve is False
        assert policy.orphan_replies == ORPHAN_HIDE
        assert policy.max_comment_depth == 3


def test_nested_moderation_section():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_policy(tmpdir, {"moderation": {"owner_self_moderation": False}})
        assert load_policy(path).owner_self_moderation is False


def test_missing_file_uses_defaults():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert load_policy(Path(tmpdir) / "absent.yaml") == ModerationPolicy()


def test_empty_file_uses_defaults():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "policy.yaml"
        path.write_text("")
        assert load_policy(path) == ModerationPolicy()


def test_env_var(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_policy(tmpdir, {"max_comment_length": 280})
        monkeypatch.setenv(POLICY_ENV_VAR, str(path))
        assert load_policy().max_comment_length == 280


def test_no_path_and_no_env_var(monkeypatch):
    monkeypatch.delenv(POLICY_ENV_VAR, raising=False)
    assert load_policy() == ModerationPolicy()


def test_unknown_keys_are_ignored():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_policy(tmpdir, {"auto_approve": False, "colour": "blue"})
        assert load_policy(path).auto_approve is False


def test_invalid_values():
    with pytest.raises(ConfigError):
        ModerationPolicy(orphan_replies="delete")
    with pytest.raises(ConfigError):
        ModerationPolicy(max_comment_depth=0)
    with pytest.raises(ConfigError):
        ModerationPolicy(auto_approve="yes")
    with pytest.raises(ConfigError):
        ModerationPolicy(audit_sink="syslog")


def test_malformed_yaml():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "policy.yaml"
        path.write_text("auto_approve: [unclosed")
        with pytest.raises(ConfigError):
            load_policy(path)


def test_non_mapping_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_policy(tmpdir, ["a", "b"])
        with pytest.raises(ConfigError):
            load_policy(path)
