"""Security event auditing."""

from pollgate.security.audit_log import (
    AuditEntry,
    AuditSink,
    JsonlAuditSink,
    MemoryAuditSink,
    build_sink,
)

__all__ = [
    "AuditEntry",
    "AuditSink",
    "JsonlAuditSink",
    "MemoryAuditSink",
    "build_sink",
]
