"""Collaborator ports (protocols).

The account-security services depend only on these protocols. Storage,
SMS/email transport and token signing are supplied by the application.
All ports use @runtime_checkable for isinstance checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .audit.events import AuthAuditEvent, AuthEventType
    from .models import Account, AccountView, TokenSet
    from .request_context import RequestContext


# ═══════════════════════════════════════════════════════════════
# CREDENTIAL STORE PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class ICredentialStore(Protocol):
    """Protocol for Account + Credentials persistence.

    Implementations must support partial-field updates without a full
    entity round-trip. Returned Accounts are snapshots: mutating them does
    not change stored state.
    """

    async def find_by_identifier(self, identifier: str) -> Account | None:
        """Look up an account by login identifier (case-insensitive email).

        Args:
            identifier: Email address as typed by the user.

        Returns:
            Account with credentials, or None if not found.
        """
        ...

    async def find_by_id(self, account_id: str) -> Account | None:
        """Look up an account by id.

        Args:
            account_id: Account identifier.

        Returns:
            Account with credentials, or None if not found.
        """
        ...

    async def create(self, account: Account) -> None:
        """Persist a new Account and its Credentials in one step.

        Args:
            account: Account with credentials attached.

        Raises:
            AccountAlreadyExistsError: Email already registered.
        """
        ...

    async def update_credentials(
        self, account_id: str, fields: Mapping[str, Any]
    ) -> None:
        """Update a subset of Credentials fields.

        Args:
            account_id: Account identifier.
            fields: Credentials field names mapped to new values.
        """
        ...

    async def update_account(self, account_id: str, fields: Mapping[str, Any]) -> None:
        """Update a subset of Account profile fields (e.g. phone_number).

        Args:
            account_id: Account identifier.
            fields: Account field names mapped to new values.
        """
        ...

    async def increment_login_attempts(self, account_id: str) -> int:
        """Atomically add one to ``login_attempts``.

        Must be a single conditional/atomic update at the storage layer so
        concurrent failures cannot overwrite each other.

        Args:
            account_id: Account identifier.

        Returns:
            The counter value after the increment.
        """
        ...


# ═══════════════════════════════════════════════════════════════
# NOTIFICATION GATEWAY PORTS
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class ISmsGateway(Protocol):
    """Protocol for SMS delivery.

    Implementations own their I/O timeout policy and raise on failure.
    """

    async def send_otp(self, phone_e164: str, message: str) -> None:
        """Send a text message.

        Args:
            phone_e164: Recipient in E.164 format (e.g. +15551234567).
            message: Rendered message body.
        """
        ...


@runtime_checkable
class IEmailGateway(Protocol):
    """Protocol for email verification delivery.

    Used by the sibling email-verification flow that sets
    ``is_email_verified``; the login core never calls it.
    """

    async def send_verification_link(self, email: str, link: str) -> None:
        """Send an email verification link.

        Args:
            email: Recipient address.
            link: Verification URL.
        """
        ...


# ═══════════════════════════════════════════════════════════════
# TOKEN ISSUER PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class ITokenIssuer(Protocol):
    """Protocol for session token issuing.

    The token wire format is opaque to this package.
    """

    async def issue(
        self, account: AccountView, request_context: RequestContext | None = None
    ) -> TokenSet:
        """Issue an access/refresh token pair for a verified account."""
        ...

    async def refresh(
        self, refresh_token: str, request_context: RequestContext | None = None
    ) -> TokenSet:
        """Exchange a refresh token for a new pair.

        Raises:
            InvalidTokenError: Token unknown, revoked or expired.
        """
        ...

    async def revoke(self, refresh_token: str) -> bool:
        """Revoke a refresh token.

        Returns:
            True if a token was revoked.
        """
        ...


# ═══════════════════════════════════════════════════════════════
# AUDIT PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IAuthAuditStore(Protocol):
    """Protocol for authentication audit event storage."""

    async def record(self, event: AuthAuditEvent) -> None:
        """Record an audit event.

        Args:
            event: The audit event to record.
        """
        ...

    async def get_events(
        self,
        principal_id: str,
        *,
        event_types: list[AuthEventType] | None = None,
        limit: int = 100,
    ) -> list[AuthAuditEvent]:
        """Get audit events for an account, most recent first.

        Args:
            principal_id: Account id to query.
            event_types: Optional filter by event types.
            limit: Maximum number of events to return.
        """
        ...


__all__: list[str] = [
    "ICredentialStore",
    "ISmsGateway",
    "IEmailGateway",
    "ITokenIssuer",
    "IAuthAuditStore",
]
