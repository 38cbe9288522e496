"""Audit event types and the in-memory audit store."""

from __future__ import annotations

from .events import AuthAuditEvent, AuthEventType, build_event
from .memory import InMemoryAuthAuditStore

__all__: list[str] = [
    "AuthEventType",
    "AuthAuditEvent",
    "build_event",
    "InMemoryAuthAuditStore",
]
