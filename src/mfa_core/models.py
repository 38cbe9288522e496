"""Account and credential records plus the result shapes returned to callers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class OtpPurpose(str, Enum):
    """What a pending SMS OTP was issued for.

    Both purposes share the single OTP slot on Credentials, so issuing one
    replaces any pending code of the other.
    """

    LOGIN_CHALLENGE = "login_challenge"
    PHONE_VERIFICATION = "phone_verification"


@dataclass
class BackupCode:
    """Single-use recovery code entry."""

    code: str
    created_at: datetime
    used: bool = False
    used_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "created_at": self.created_at.isoformat(),
            "used": self.used,
            "used_at": self.used_at.isoformat() if self.used_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupCode:
        return cls(
            code=data["code"],
            created_at=_parse_datetime(data["created_at"]),
            used=bool(data.get("used", False)),
            used_at=_parse_datetime(data["used_at"]) if data.get("used_at") else None,
        )


@dataclass
class Credentials:
    """Security state of one account (1:1 with Account).

    Invariants:
        - ``is_sms_2fa_enabled`` implies ``phone_number_verified``.
        - ``two_factor_enabled`` implies ``two_factor_secret`` is set.
        - At most one pending OTP; ``sms_otp_purpose`` tags its use.
    """

    password_hash: str
    login_attempts: int = 0
    locked_until: datetime | None = None
    is_email_verified: bool = False
    phone_number_verified: bool = False
    is_sms_2fa_enabled: bool = False
    sms_otp_code: str | None = None
    sms_otp_code_expires_at: datetime | None = None
    sms_otp_purpose: OtpPurpose | None = None
    two_factor_enabled: bool = False
    two_factor_secret: str | None = None
    backup_codes: list[BackupCode] = field(default_factory=list)
    last_login: datetime | None = None

    def is_locked(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.locked_until is not None and self.locked_until > now

    def remaining_lock_minutes(self, now: datetime | None = None) -> int:
        """Whole minutes until the lock expires, rounded up; 0 when unlocked."""
        now = now or datetime.now(timezone.utc)
        if self.locked_until is None or self.locked_until <= now:
            return 0
        return math.ceil((self.locked_until - now).total_seconds() / 60)


CREDENTIAL_FIELDS: frozenset[str] = frozenset(f.name for f in fields(Credentials))


@dataclass
class Account:
    """Registered account with its credentials attached.

    Attributes:
        id: Account identifier.
        email: Unique, lower-cased email used as the login identifier.
        display_name: Human readable name.
        phone_number: E.164 phone number, if any.
        org_unit_id: Owning organizational unit.
        credentials: The account's Credentials record.
    """

    id: str
    email: str
    display_name: str
    credentials: Credentials
    phone_number: str | None = None
    org_unit_id: str | None = None


@dataclass(frozen=True)
class AccountView:
    """Safe projection of an Account; never carries credentials."""

    id: str
    email: str
    display_name: str
    phone_number: str | None = None
    org_unit_id: str | None = None

    @classmethod
    def from_account(cls, account: Account) -> AccountView:
        return cls(
            id=account.id,
            email=account.email,
            display_name=account.display_name,
            phone_number=account.phone_number,
            org_unit_id=account.org_unit_id,
        )


@dataclass(frozen=True)
class TokenSet:
    """Access/refresh token pair produced by a token issuer."""

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"  # noqa: S105


@dataclass(frozen=True)
class LoginResult:
    """Successful authentication: tokens plus the account projection."""

    tokens: TokenSet
    account: AccountView


@dataclass(frozen=True)
class SmsChallengeReceipt:
    """Password accepted; an SMS OTP must be submitted before tokens are issued."""

    account_id: str
    message: str = "SMS OTP verification required."
    sms_otp_required: bool = True


@dataclass(frozen=True)
class TotpEnrollment:
    """Result of generating a TOTP secret.

    Attributes:
        secret: Base32 shared secret.
        provisioning_uri: otpauth:// URI for authenticator apps.
        qr_code_data_uri: PNG data URI of the URI, when qrcode is installed.
    """

    secret: str
    provisioning_uri: str
    qr_code_data_uri: str | None = None


def _parse_datetime(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value)
    # Treat naive datetime as UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__: list[str] = [
    "OtpPurpose",
    "BackupCode",
    "Credentials",
    "CREDENTIAL_FIELDS",
    "Account",
    "AccountView",
    "TokenSet",
    "LoginResult",
    "SmsChallengeReceipt",
    "TotpEnrollment",
]
