"""Wiring of stores, gate and services into one object.

Both the web layer and the CLI build their collaborators through
:func:`build_core` so they share one policy and one audit sink.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pollgate.auth.gate import ProfileGate
from pollgate.auth.management import IdentityAdmin
from pollgate.auth.store import ProfileStore
from pollgate.comments.service import CommentService
from pollgate.config import ModerationPolicy, load_policy
from pollgate.moderation.state_machine import ModerationService
from pollgate.moderation.store import ContentStore
from pollgate.polls import PollService
from pollgate.security.audit_log import AuditSink, build_sink
from pollgate.voting import VotingService

HOME_ENV_VAR = "POLLGATE_HOME"


@dataclass
class Core:
    policy: ModerationPolicy
    profiles: ProfileStore
    content: ContentStore
    audit: AuditSink
    gate: ProfileGate
    moderation: ModerationService
    polls: PollService
    comments: CommentService
    identities: IdentityAdmin
    voting: VotingService


def default_home() -> Path:
    return Path(os.environ.get(HOME_ENV_VAR) or Path.home() / ".pollgate")


def build_core(
    home: Optional[str | Path] = None,
    policy: Optional[ModerationPolicy] = None,
    audit: Optional[AuditSink] = None,
) -> Core:
    """Build every collaborator under *home* (default ``$POLLGATE_HOME`` or ``~/.pollgate``)."""
    home = Path(home) if home else default_home()
    policy = policy or load_policy()
    if audit is None:
        audit = build_sink(
            policy.audit_sink,
            capacity=policy.audit_capacity,
            base_dir=policy.audit_dir or home / "audit_logs",
        )

    profiles = ProfileStore(home / "auth")
    content = ContentStore(home / "content")
    # the file store has no row policy, so a second reader on it is the bypass tier
    gate = ProfileGate(profiles, privileged=ProfileStore(home / "auth"), audit=audit)
    moderation = ModerationService(content, policy=policy, audit=audit)
    return Core(
        policy=policy,
        profiles=profiles,
        content=content,
        audit=audit,
        gate=gate,
        moderation=moderation,
        polls=PollService(content, policy=policy, audit=audit),
        comments=CommentService(content, gate, moderation, policy=policy, audit=audit),
        identities=IdentityAdmin(profiles, gate, audit=audit),
        voting=VotingService(content, audit=audit),
    )
