"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from mfa_core import (
    AccountAlreadyExistsError,
    AccountLockedError,
    AccountNotFoundError,
    BackupCodeInvalidError,
    BackupCodeLimitError,
    BadRequestError,
    EmailNotVerifiedError,
    IncompleteTwoFactorConfigError,
    InternalError,
    InvalidCredentialsError,
    InvalidTokenError,
    InvariantViolationError,
    MfaCoreError,
    NotFoundError,
    OtpExpiredError,
    OtpInvalidError,
    OtpNotPendingError,
    PasswordTooLongError,
    PhoneNotVerifiedError,
    SmsDeliveryError,
    SmsTwoFactorNotEnabledError,
    TooManyAttemptsError,
    TotpInvalidError,
    TotpNotConfiguredError,
    TwoFactorNotEnabledError,
    UnauthorizedError,
)


@pytest.mark.parametrize(
    ("error", "category", "status"),
    [
        (InvalidCredentialsError(), UnauthorizedError, 401),
        (AccountLockedError(3), UnauthorizedError, 401),
        (TooManyAttemptsError(15), UnauthorizedError, 401),
        (EmailNotVerifiedError(), UnauthorizedError, 401),
        (InvalidTokenError("bad"), UnauthorizedError, 401),
        (OtpNotPendingError(), UnauthorizedError, 401),
        (OtpExpiredError(), UnauthorizedError, 401),
        (OtpInvalidError(), UnauthorizedError, 401),
        (BackupCodeInvalidError(), UnauthorizedError, 401),
        (TotpNotConfiguredError(), BadRequestError, 400),
        (TwoFactorNotEnabledError(), BadRequestError, 400),
        (TotpInvalidError(), BadRequestError, 400),
        (IncompleteTwoFactorConfigError(), BadRequestError, 400),
        (PhoneNotVerifiedError(), BadRequestError, 400),
        (SmsTwoFactorNotEnabledError(), BadRequestError, 400),
        (BackupCodeLimitError(20), BadRequestError, 400),
        (AccountAlreadyExistsError(), BadRequestError, 400),
        (PasswordTooLongError(), BadRequestError, 400),
        (AccountNotFoundError("a1"), NotFoundError, 404),
        (InvariantViolationError("broken"), InternalError, 500),
        (SmsDeliveryError("down"), InternalError, 500),
    ],
)
def test_category_and_status(
    error: MfaCoreError, category: type[MfaCoreError], status: int
) -> None:
    assert isinstance(error, category)
    assert isinstance(error, MfaCoreError)
    assert error.http_status == status


def test_account_locked_message_and_attribute() -> None:
    error = AccountLockedError(7)

    assert error.remaining_minutes == 7
    assert str(error) == "Account locked. Try again in 7 minutes"


def test_user_facing_messages() -> None:
    assert str(InvalidCredentialsError()) == "Invalid credentials"
    assert str(OtpNotPendingError()) == "No OTP pending"
    assert str(OtpExpiredError()) == "OTP expired"
    assert str(OtpInvalidError()) == "Invalid OTP"
    assert str(TotpInvalidError()) == "Invalid token"
    assert AccountNotFoundError("a1").account_id == "a1"
    assert str(PasswordTooLongError()) == "Password must not exceed 72 bytes"
