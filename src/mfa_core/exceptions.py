"""Account-security exceptions.

Every error raised by mfa-core inherits from MfaCoreError. The four
category bases (unauthorized, bad request, not found, internal) carry an
``http_status`` so transports can map them without a lookup table.
"""

from __future__ import annotations

# ═══════════════════════════════════════════════════════════════
# BASE ERRORS
# ═══════════════════════════════════════════════════════════════


class MfaCoreError(Exception):
    """Root exception for mfa-core."""

    http_status: int = 500


class UnauthorizedError(MfaCoreError):
    """Authentication failed or a verification code was rejected."""

    http_status = 401


class BadRequestError(MfaCoreError):
    """The account's enrollment state does not allow the operation."""

    http_status = 400


class NotFoundError(MfaCoreError):
    """An account assumed to exist by the caller is absent."""

    http_status = 404


class InternalError(MfaCoreError):
    """Invariant violation or downstream gateway failure."""

    http_status = 500


# ═══════════════════════════════════════════════════════════════
# AUTHENTICATION ERRORS
# ═══════════════════════════════════════════════════════════════


class InvalidCredentialsError(UnauthorizedError):
    """Raised for an unknown identifier or a wrong password.

    Both cases share one message so callers cannot enumerate accounts.
    """

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class AccountLockedError(UnauthorizedError):
    """Raised when a login is attempted while the account is locked.

    Attributes:
        remaining_minutes: Minutes left until the lock expires (rounded up).
    """

    def __init__(self, remaining_minutes: int, message: str | None = None) -> None:
        super().__init__(
            message
            or f"Account locked. Try again in {remaining_minutes} minutes"
        )
        self.remaining_minutes = remaining_minutes


class TooManyAttemptsError(UnauthorizedError):
    """Raised by the failed attempt that triggers the lock.

    Attributes:
        lock_time_minutes: Duration of the freshly applied lock.
    """

    def __init__(self, lock_time_minutes: int) -> None:
        super().__init__(
            f"Too many failed attempts. Account locked for {lock_time_minutes} minutes"
        )
        self.lock_time_minutes = lock_time_minutes


class EmailNotVerifiedError(UnauthorizedError):
    """Raised when the password is correct but the email is unverified."""

    def __init__(self, message: str = "Email not verified") -> None:
        super().__init__(message)


class InvalidTokenError(UnauthorizedError):
    """Raised by token issuers for unknown, revoked or expired refresh tokens."""


# ═══════════════════════════════════════════════════════════════
# OTP ERRORS
# ═══════════════════════════════════════════════════════════════


class OtpNotPendingError(UnauthorizedError):
    """No OTP is pending for the account (or it was already consumed)."""

    def __init__(self, message: str = "No OTP pending") -> None:
        super().__init__(message)


class OtpExpiredError(UnauthorizedError):
    """The pending OTP expired; it has been cleared."""

    def __init__(self, message: str = "OTP expired") -> None:
        super().__init__(message)


class OtpInvalidError(UnauthorizedError):
    """The submitted OTP does not match; the pending code stays usable."""

    def __init__(self, message: str = "Invalid OTP") -> None:
        super().__init__(message)


# ═══════════════════════════════════════════════════════════════
# ENROLLMENT ERRORS
# ═══════════════════════════════════════════════════════════════


class TotpNotConfiguredError(BadRequestError):
    """No TOTP secret has been generated for the account."""

    def __init__(self, message: str = "No 2FA secret generated") -> None:
        super().__init__(message)


class TwoFactorNotEnabledError(BadRequestError):
    """TOTP two-factor authentication is not enabled for the account."""

    def __init__(self, message: str = "2FA is not enabled") -> None:
        super().__init__(message)


class TotpInvalidError(BadRequestError):
    """A TOTP code was rejected during enrollment or removal."""

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class IncompleteTwoFactorConfigError(BadRequestError):
    """TOTP is flagged enabled but no secret is stored."""

    def __init__(self, message: str = "Incomplete 2FA configuration") -> None:
        super().__init__(message)


class PhoneNotVerifiedError(BadRequestError):
    """SMS two-factor requires a verified phone number."""

    def __init__(
        self, message: str = "Phone number must be verified before enabling SMS 2FA"
    ) -> None:
        super().__init__(message)


class SmsTwoFactorNotEnabledError(BadRequestError):
    """SMS two-factor authentication is not enabled for the account."""

    def __init__(self, message: str = "SMS 2FA is not enabled") -> None:
        super().__init__(message)


class BackupCodeLimitError(BadRequestError):
    """Every stored backup code is unused and the cap is reached."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Backup code limit of {limit} unused codes reached")
        self.limit = limit


class BackupCodeInvalidError(UnauthorizedError):
    """A submitted backup code is unknown or already used."""

    def __init__(self, message: str = "Invalid backup code") -> None:
        super().__init__(message)


class PasswordTooLongError(BadRequestError):
    """bcrypt only hashes the first 72 bytes of a password."""

    def __init__(self, max_bytes: int = 72) -> None:
        super().__init__(f"Password must not exceed {max_bytes} bytes")
        self.max_bytes = max_bytes


class AccountAlreadyExistsError(BadRequestError):
    """An account with the same email is already registered."""

    def __init__(self, message: str = "Email already registered") -> None:
        super().__init__(message)


# ═══════════════════════════════════════════════════════════════
# NOT FOUND / INTERNAL ERRORS
# ═══════════════════════════════════════════════════════════════


class AccountNotFoundError(NotFoundError):
    """Raised when an account id does not resolve to a record."""

    def __init__(self, account_id: object) -> None:
        super().__init__(f"Account with id={account_id!r} not found")
        self.account_id = account_id


class InvariantViolationError(InternalError):
    """A stored record breaks one of the credential invariants."""


class SmsDeliveryError(InternalError):
    """The SMS gateway failed to deliver a message."""


__all__: list[str] = [
    # Base
    "MfaCoreError",
    "UnauthorizedError",
    "BadRequestError",
    "NotFoundError",
    "InternalError",
    # Authentication
    "InvalidCredentialsError",
    "AccountLockedError",
    "TooManyAttemptsError",
    "EmailNotVerifiedError",
    "InvalidTokenError",
    # OTP
    "OtpNotPendingError",
    "OtpExpiredError",
    "OtpInvalidError",
    # Enrollment
    "TotpNotConfiguredError",
    "TwoFactorNotEnabledError",
    "TotpInvalidError",
    "IncompleteTwoFactorConfigError",
    "PhoneNotVerifiedError",
    "SmsTwoFactorNotEnabledError",
    "BackupCodeLimitError",
    "BackupCodeInvalidError",
    "AccountAlreadyExistsError",
    "PasswordTooLongError",
    # Not found / internal
    "AccountNotFoundError",
    "InvariantViolationError",
    "SmsDeliveryError",
]
