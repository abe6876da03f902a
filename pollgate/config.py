"""Moderation policy configuration.

Policy knobs are loaded from a YAML file.  A missing file falls back to the
defaults, which reproduce the behaviour of the hosted service (new content
is auto-approved, owners holding a moderate permission may moderate their
own content, replies to a deleted comment are left in place).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

POLICY_ENV_VAR = "POLLGATE_POLICY"

ORPHAN_DANGLING = "dangling"
ORPHAN_HIDE = "hide"
_ORPHAN_MODES = {ORPHAN_DANGLING, ORPHAN_HIDE}
_AUDIT_SINKS = {"memory", "jsonl"}


class ConfigError(ValueError):
    """The policy file contains a value of the wrong type or range."""


@dataclass
class ModerationPolicy:
    """Tunable policy parameters for moderation and comments."""

    auto_approve: bool = True
    owner_self_moderation: bool = True
    orphan_replies: str = ORPHAN_DANGLING  # dangling | hide
    max_comment_length: int = 2000
    max_comment_depth: int = 5
    audit_sink: str = "memory"  # memory | jsonl
    audit_capacity: int = 1000
    audit_dir: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("auto_approve", "owner_self_moderation"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"'{name}' must be true or false")
        for name in ("max_comment_length", "max_comment_depth", "audit_capacity"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"'{name}' must be a positive integer")
        if self.orphan_replies not in _ORPHAN_MODES:
            raise ConfigError(
                f"'orphan_replies' must be one of {sorted(_ORPHAN_MODES)}, got {self.orphan_replies!r}"
            )
        if self.audit_sink not in _AUDIT_SINKS:
            raise ConfigError(
                f"'audit_sink' must be one of {sorted(_AUDIT_SINKS)}, got {self.audit_sink!r}"
            )

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ModerationPolicy":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("ignoring unknown policy keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


def load_policy(path: str | Path | None = None) -> ModerationPolicy:
    """Load a :class:`ModerationPolicy` from a YAML file.

    When *path* is omitted the ``POLLGATE_POLICY`` environment variable is
    consulted.  A missing file yields the defaults.
    """
    if path is None:
        path = os.environ.get(POLICY_ENV_VAR)
    if not path:
        return ModerationPolicy()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("moderation policy file missing at %s; using defaults", path)
        return ModerationPolicy()
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse policy file {path}: {exc}") from exc

    if data is None:
        return ModerationPolicy()
    if not isinstance(data, dict):
        raise ConfigError(f"policy file {path} must contain a mapping")
    return ModerationPolicy.from_mapping(data.get("moderation", data))
