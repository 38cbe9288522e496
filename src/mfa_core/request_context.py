"""Request metadata passed through to token issuers and audit events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class RequestContext:
    """Transport-neutral description of the calling request.

    Attributes:
        request_id: Correlation id for the request.
        ip_address: Client IP address (X-Forwarded-For or remote addr).
        user_agent: Client user agent string.
        created_at: When the context was captured.
    """

    request_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        *,
        remote_addr: str | None = None,
    ) -> RequestContext:
        """Build a context from HTTP headers.

        The first X-Forwarded-For hop wins over ``remote_addr``.
        """
        lowered = {k.lower(): v for k, v in headers.items()}
        forwarded = lowered.get("x-forwarded-for")
        ip_address = forwarded.split(",")[0].strip() if forwarded else remote_addr
        return cls(
            request_id=lowered.get("x-request-id"),
            ip_address=ip_address,
            user_agent=lowered.get("user-agent"),
        )

    def to_dict(self) -> dict[str, str | None]:
        return {
            "request_id": self.request_id,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": self.created_at.isoformat(),
        }


__all__: list[str] = ["RequestContext"]
