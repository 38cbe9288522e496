"""Opaque session token issuer for testing and development."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from .exceptions import InvalidTokenError
from .models import TokenSet
from .ports import ITokenIssuer

if TYPE_CHECKING:
    from .models import AccountView
    from .request_context import RequestContext


@dataclass
class _Session:
    account: AccountView
    access_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


class InMemoryTokenIssuer(ITokenIssuer):
    """ITokenIssuer handing out random opaque tokens kept in a dict.

    Refreshing rotates both tokens; the old refresh token stops working.

    Note:
        Sessions are lost on restart. Not suitable for production use.
    """

    def __init__(
        self,
        *,
        access_ttl_seconds: int = 3600,  # 1 hour
        refresh_ttl_seconds: int = 604800,  # 7 days
    ) -> None:
        self.access_ttl_seconds = access_ttl_seconds
        self.refresh_ttl_seconds = refresh_ttl_seconds
        self._sessions: dict[str, _Session] = {}

    async def issue(
        self, account: AccountView, request_context: RequestContext | None = None
    ) -> TokenSet:
        now = datetime.now(timezone.utc)
        access_token = secrets.token_urlsafe(32)
        refresh_token = secrets.token_urlsafe(32)
        self._sessions[refresh_token] = _Session(
            account=account,
            access_token=access_token,
            access_expires_at=now + timedelta(seconds=self.access_ttl_seconds),
            refresh_expires_at=now + timedelta(seconds=self.refresh_ttl_seconds),
        )
        return TokenSet(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.access_ttl_seconds,
        )

    async def refresh(
        self, refresh_token: str, request_context: RequestContext | None = None
    ) -> TokenSet:
        if not refresh_token:
            raise InvalidTokenError("Refresh token is required")
        session = self._sessions.pop(refresh_token, None)
        if session is None:
            raise InvalidTokenError("Invalid refresh token")
        if datetime.now(timezone.utc) > session.refresh_expires_at:
            raise InvalidTokenError("Refresh token has expired")
        return await self.issue(session.account, request_context)

    async def revoke(self, refresh_token: str) -> bool:
        return self._sessions.pop(refresh_token, None) is not None

    def resolve(self, access_token: str) -> AccountView | None:
        """Account behind a live access token, if any."""
        now = datetime.now(timezone.utc)
        for session in self._sessions.values():
            if (
                session.access_token == access_token
                and now <= session.access_expires_at
            ):
                return session.account
        return None


__all__: list[str] = ["InMemoryTokenIssuer"]
