"""Audit events for login and second-factor operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..request_context import RequestContext


class AuthEventType(Enum):
    """Types of account-security audit events.

    Event naming follows the pattern: `auth.<resource>.<action>`
    """

    # Login events
    LOGIN_SUCCESS = "auth.login.success"
    LOGIN_FAILED = "auth.login.failed"
    LOGOUT = "auth.logout"

    # Token events
    TOKEN_REFRESHED = "auth.token.refreshed"  # noqa: S105

    # Lockout
    USER_LOCKED = "auth.user.locked"
    USER_CREATED = "auth.user.created"

    # Second factor events
    MFA_CHALLENGE_SENT = "auth.mfa.challenge_sent"
    MFA_VERIFIED = "auth.mfa.verified"
    MFA_FAILED = "auth.mfa.failed"
    MFA_ENABLED = "auth.mfa.enabled"
    MFA_DISABLED = "auth.mfa.disabled"

    # Backup codes
    BACKUP_CODE_GENERATED = "auth.backup_code.generated"
    BACKUP_CODE_USED = "auth.backup_code.used"


@dataclass(frozen=True)
class AuthAuditEvent:
    """Account-security audit event.

    Attributes:
        event_type: The type of event.
        principal_id: Account id associated with the event.
        timestamp: When the event occurred (UTC).
        ip_address: Client IP address (if available).
        user_agent: Client user agent string (if available).
        request_id: Correlation ID for request tracing.
        success: Whether the operation was successful.
        error_code: Error code if operation failed.
        metadata: Additional event-specific data (never secrets).
    """

    event_type: AuthEventType
    principal_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    success: bool = True
    error_code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.success and not self.error_code:
            object.__setattr__(self, "error_code", "UNKNOWN_ERROR")

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "principal_id": self.principal_id,
            "timestamp": self.timestamp.isoformat(),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "request_id": self.request_id,
            "success": self.success,
            "error_code": self.error_code,
            "metadata": self.metadata,
        }


def build_event(
    event_type: AuthEventType,
    principal_id: str | None,
    *,
    request_context: RequestContext | None = None,
    error: Exception | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuthAuditEvent:
    """Create an event, copying client details from the request context.

    A non-None ``error`` marks the event failed and uses the exception
    class name as error code.
    """
    return AuthAuditEvent(
        event_type=event_type,
        principal_id=principal_id,
        ip_address=request_context.ip_address if request_context else None,
        user_agent=request_context.user_agent if request_context else None,
        request_id=request_context.request_id if request_context else None,
        success=error is None,
        error_code=type(error).__name__ if error is not None else None,
        metadata=metadata or {},
    )


__all__: list[str] = ["AuthEventType", "AuthAuditEvent", "build_event"]
