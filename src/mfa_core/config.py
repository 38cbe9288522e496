"""Configuration objects for the account-security services.

All options are immutable dataclasses handed to service constructors.
Defaults reproduce the production constants.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LoginPolicy:
    """Password lockout policy.

    Attributes:
        max_login_attempts: Consecutive failures that lock the account.
        lock_time_minutes: Lock duration once the limit is reached.
    """

    max_login_attempts: int = 10
    lock_time_minutes: int = 15


@dataclass(frozen=True)
class OtpConfig:
    """SMS one-time password configuration.

    Attributes:
        code_length: Number of digits in an OTP code.
        ttl_minutes: Minutes a code stays valid after issue.
        app_name: Application name inserted in the SMS text.
        english_calling_codes: Calling-code prefixes that receive the
            English template. Every other number gets the Spanish one.
    """

    code_length: int = 6
    ttl_minutes: int = 10
    app_name: str = "MyApp"
    english_calling_codes: tuple[str, ...] = ("+1", "+44", "+61", "+64", "+353", "+27")


@dataclass(frozen=True)
class TotpConfig:
    """TOTP configuration.

    Attributes:
        issuer: Application label shown in authenticator apps.
        digits: Number of digits per code.
        interval: Time step in seconds.
        valid_window: Accepted drift in steps (pyotp default is 0).
    """

    issuer: str = "MyApp"
    digits: int = 6
    interval: int = 30
    valid_window: int = 0


@dataclass(frozen=True)
class BackupCodeConfig:
    """Backup code configuration.

    Attributes:
        code_length: Characters per code.
        max_stored_codes: Maximum entries kept per account.
    """

    code_length: int = 10
    max_stored_codes: int = 20


__all__: list[str] = ["LoginPolicy", "OtpConfig", "TotpConfig", "BackupCodeConfig"]
