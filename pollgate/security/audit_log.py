"""Audit sinks for security and moderation events.

Call sites write through the :class:`AuditSink` interface, so the in-process
ring buffer used in development can be swapped for the durable JSONL sink
(or any external sink) without touching them.  Auditing is best-effort
observability; nothing in the authorization path reads it back.
"""

from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

# Event names
UNAUTHORIZED_ACCESS = "unauthorized_access"
MODERATION_TRANSITION = "moderation_transition"
COMMENT_CREATED = "comment_created"
COMMENT_UPDATED = "comment_updated"
COMMENT_DELETED = "comment_deleted"
ROLE_CHANGED = "role_changed"
IDENTITY_SUSPENDED = "identity_suspended"
IDENTITY_UNSUSPENDED = "identity_unsuspended"
PRIVILEGED_FALLBACK = "privileged_fallback"
POLL_CREATED = "poll_created"
POLL_UPDATED = "poll_updated"
POLL_DELETED = "poll_deleted"
VOTE_CAST = "vote_cast"


@dataclass
class AuditEntry:
    """A single audit log entry."""

    id: str
    timestamp: str
    actor: str
    action: str
    resource_type: str
    resource_id: str
    details: dict[str, Any] = field(default_factory=dict)
    success: bool = True
    severity: str = "low"  # low | medium | high | critical


class AuditSink(ABC):
    """Destination for audit entries."""

    @abstractmethod
    def record(self, entry: AuditEntry) -> None:
        """Persist *entry*."""

    @abstractmethod
    def entries(self) -> Iterable[AuditEntry]:
        """Return every retained entry, in insertion order."""

    def log_event(
        self,
        actor: Optional[str],
        action: str,
        resource_type: str,
        resource_id: Optional[str],
        details: Optional[dict[str, Any]] = None,
        success: bool = True,
        severity: str = "low",
    ) -> AuditEntry:
        """Record an audit event and return the created entry."""
        entry = AuditEntry(
            id=uuid.uuid4().hex[:16],
            timestamp=datetime.now(timezone.utc).isoformat(),
            actor=actor or "anonymous",
            action=action,
            resource_type=resource_type,
            resource_id=resource_id or "",
            details=details or {},
            success=success,
            severity=severity,
        )
        self.record(entry)
        return entry

    def get_events(
        self,
        *,
        actor: Optional[str] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 200,
    ) -> list[AuditEntry]:
        """Return filtered audit events, newest first."""
        result = list(self.entries())

        if actor:
            result = [e for e in result if e.actor == actor]
        if action:
            result = [e for e in result if e.action == action]
        if resource_type:
            result = [e for e in result if e.resource_type == resource_type]
        if resource_id:
            result = [e for e in result if e.resource_id == resource_id]
        if start_date:
            result = [e for e in result if e.timestamp >= start_date]
        if end_date:
            result = [e for e in result if e.timestamp <= end_date]

        result.reverse()
        return result[:limit]

    def export_events(self, fmt: str = "json", **filters: Any) -> str:
        """Export audit events in the specified format (``json`` or ``csv``)."""
        filters.setdefault("limit", 10000)
        events = self.get_events(**filters)

        if fmt == "csv":
            lines = ["id,timestamp,actor,action,resource_type,resource_id,success,severity"]
            for e in events:
                lines.append(
                    f"{e.id},{e.timestamp},{e.actor},{e.action},{e.resource_type},"
                    f"{e.resource_id},{e.success},{e.severity}"
                )
            return "\n".join(lines)

        return json.dumps([asdict(e) for e in events], indent=2)

    def get_suspicious_activity(self) -> list[AuditEntry]:
        """Return denied or high-severity events, newest first."""
        return [
            e
            for e in reversed(list(self.entries()))
            if e.action == UNAUTHORIZED_ACCESS or e.severity in ("high", "critical")
        ]


class MemoryAuditSink(AuditSink):
    """In-process ring buffer keeping the most recent *capacity* entries."""

    def __init__(self, capacity: int = 1000) -> None:
        self._entries: deque[AuditEntry] = deque(maxlen=capacity)

    def record(self, entry: AuditEntry) -> None:
        self._entries.append(entry)
        logger.debug("audit %s by %s on %s/%s", entry.action, entry.actor, entry.resource_type, entry.resource_id)

    def entries(self) -> list[AuditEntry]:
        return list(self._entries)


class JsonlAuditSink(AuditSink):
    """File-based JSON audit sink.

    Events are persisted as newline-delimited JSON in daily log files stored
    under ``~/.pollgate/audit_logs/``.
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else Path.home() / ".pollgate" / "audit_logs"
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def _log_file_for_date(self, dt: datetime) -> Path:
        return self._base_dir / f"{dt.strftime('%Y-%m-%d')}.jsonl"

    def record(self, entry: AuditEntry) -> None:
        log_file = self._log_file_for_date(datetime.now(timezone.utc))
        with log_file.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(asdict(entry)) + "\n")

    def entries(self) -> list[AuditEntry]:
        """Read every entry from all log files, oldest first."""
        result: list[AuditEntry] = []
        for path in sorted(self._base_dir.glob("*.jsonl")):
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as exc:
                logger.warning("skipping unreadable audit file %s: %s", path, exc)
                continue
            for line in text.splitlines():
                if not line.strip():
                    continue
                try:
                    result.append(AuditEntry(**json.loads(line)))
                except (json.JSONDecodeError, TypeError):
                    logger.warning("skipping malformed audit line in %s", path)
        result.sort(key=lambda e: e.timestamp)
        return result


def build_sink(kind: str = "memory", *, capacity: int = 1000, base_dir: Optional[str | Path] = None) -> AuditSink:
    """Construct the sink named by a policy's ``audit_sink`` setting."""
    if kind == "jsonl":
        return JsonlAuditSink(base_dir)
    if kind == "memory":
        return MemoryAuditSink(capacity)
    raise ValueError(f"unknown audit sink {kind!r}")
