"""SMS one-time password challenges.

Generates, stores and verifies short numeric codes with expiry. The code
lives on the account's Credentials record; a single slot serves both the
login challenge and phone-number verification, so issuing a code for one
purpose replaces a pending code of the other.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, NoReturn

from ..audit.events import AuthEventType, build_event
from ..config import OtpConfig
from ..exceptions import (
    AccountNotFoundError,
    InvariantViolationError,
    OtpExpiredError,
    OtpInvalidError,
    OtpNotPendingError,
    SmsDeliveryError,
)
from ..models import OtpPurpose

if TYPE_CHECKING:
    from ..models import Account
    from ..ports import IAuthAuditStore, ICredentialStore, ISmsGateway

logger = logging.getLogger(__name__)

_CLEARED_OTP: dict[str, Any] = {
    "sms_otp_code": None,
    "sms_otp_code_expires_at": None,
    "sms_otp_purpose": None,
}


def render_otp_message(phone_number: str, code: str, config: OtpConfig) -> str:
    """Render the SMS body for an OTP code.

    Numbers whose calling code is in ``config.english_calling_codes`` get the
    English text; every other number gets the Spanish text.
    """
    if phone_number.startswith(config.english_calling_codes):
        return (
            f"Your {config.app_name} OTP code is: {code}. "
            f"This code will expire in {config.ttl_minutes} minutes."
        )
    return (
        f"Su código OTP de {config.app_name} es: {code}. "
        f"Este código expirará en {config.ttl_minutes} minutos."
    )


class OtpChallengeManager:
    """Issues and verifies SMS OTP codes stored on Credentials.

    Example:
        ```python
        otp = OtpChallengeManager(
            credential_store=store,
            sms_gateway=TwilioSmsGateway(sid, token, "+15550001111"),
        )

        await otp.issue(account.id, OtpPurpose.LOGIN_CHALLENGE)
        account = await otp.verify(account.id, "042137")
        ```

    Note:
        Verification keeps no attempt counter; a wrong code leaves the
        pending code usable until it is matched or expires.
    """

    def __init__(
        self,
        *,
        credential_store: ICredentialStore,
        sms_gateway: ISmsGateway,
        config: OtpConfig | None = None,
        audit_store: IAuthAuditStore | None = None,
    ) -> None:
        """Initialize the OTP manager.

        Args:
            credential_store: Store holding the OTP fields.
            sms_gateway: Gateway used to deliver codes.
            config: OTP configuration.
            audit_store: Optional audit sink.
        """
        self.credential_store = credential_store
        self.sms_gateway = sms_gateway
        self.config = config or OtpConfig()
        self.audit_store = audit_store

    def _generate_code(self) -> str:
        """Uniform N-digit code, zero padded."""
        code = secrets.randbelow(10**self.config.code_length)
        return str(code).zfill(self.config.code_length)

    async def issue(
        self,
        account_id: str,
        purpose: OtpPurpose,
        *,
        phone_number: str | None = None,
    ) -> None:
        """Generate a code, persist it with its expiry and send it by SMS.

        Args:
            account_id: Account identifier.
            purpose: What the code will be verified for.
            phone_number: Destination; defaults to the account's phone.

        Raises:
            AccountNotFoundError: Unknown account.
            InvariantViolationError: No phone number to send to.
            SmsDeliveryError: The gateway failed.
        """
        account = await self.credential_store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)

        destination = phone_number or account.phone_number
        if not destination:
            logger.error(
                "Cannot issue OTP: account has no phone number",
                extra={"account_id": account_id, "purpose": purpose.value},
            )
            raise InvariantViolationError("Account has no phone number")

        code = self._generate_code()
        expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=self.config.ttl_minutes
        )
        await self.credential_store.update_credentials(
            account_id,
            {
                "sms_otp_code": code,
                "sms_otp_code_expires_at": expires_at,
                "sms_otp_purpose": purpose,
            },
        )

        message = render_otp_message(destination, code, self.config)
        try:
            await self.sms_gateway.send_otp(destination, message)
        except SmsDeliveryError:
            raise
        except Exception as e:
            logger.error(
                "Failed to send OTP SMS",
                extra={"account_id": account_id, "error": str(e)},
            )
            raise SmsDeliveryError("Failed to send OTP SMS") from e

        logger.info(
            "OTP sent",
            extra={"account_id": account_id, "purpose": purpose.value},
        )
        await self._audit(
            AuthEventType.MFA_CHALLENGE_SENT,
            account_id,
            metadata={"method": "sms", "purpose": purpose.value},
        )

    async def verify(
        self,
        account_id: str,
        submitted_code: str,
        purpose: OtpPurpose = OtpPurpose.LOGIN_CHALLENGE,
    ) -> Account:
        """Verify a submitted code against the pending OTP.

        On success the OTP fields are cleared; for phone verification the
        phone is also marked verified.

        Args:
            account_id: Account identifier.
            submitted_code: Code typed by the user.
            purpose: Purpose the pending code must have been issued for.

        Returns:
            The account as read before the OTP fields were cleared.

        Raises:
            AccountNotFoundError: Unknown account.
            OtpNotPendingError: No code pending for this purpose.
            OtpExpiredError: Code expired (fields cleared as a side effect).
            OtpInvalidError: Code mismatch (pending code kept).
        """
        account = await self.credential_store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        credentials = account.credentials

        if credentials.sms_otp_code is None:
            if credentials.sms_otp_code_expires_at is not None:
                await self.credential_store.update_credentials(
                    account_id, {"sms_otp_code_expires_at": None}
                )
            await self._reject(account_id, OtpNotPendingError(), purpose)

        if (
            credentials.sms_otp_purpose is not None
            and credentials.sms_otp_purpose != purpose
        ):
            # Pending code belongs to the other flow; leave it alone
            await self._reject(account_id, OtpNotPendingError(), purpose)

        expires_at = credentials.sms_otp_code_expires_at
        if expires_at is None or datetime.now(timezone.utc) > expires_at:
            await self.credential_store.update_credentials(account_id, _CLEARED_OTP)
            await self._reject(account_id, OtpExpiredError(), purpose)

        if not secrets.compare_digest(
            credentials.sms_otp_code.encode(), submitted_code.encode()
        ):
            await self._reject(account_id, OtpInvalidError(), purpose)

        updates = dict(_CLEARED_OTP)
        if purpose is OtpPurpose.PHONE_VERIFICATION:
            updates["phone_number_verified"] = True
        await self.credential_store.update_credentials(account_id, updates)

        logger.info(
            "OTP verified",
            extra={"account_id": account_id, "purpose": purpose.value},
        )
        await self._audit(
            AuthEventType.MFA_VERIFIED,
            account_id,
            metadata={"method": "sms", "purpose": purpose.value},
        )
        return account

    async def clear(self, account_id: str) -> None:
        """Drop any pending OTP for the account."""
        await self.credential_store.update_credentials(account_id, _CLEARED_OTP)

    async def _reject(
        self, account_id: str, error: Exception, purpose: OtpPurpose
    ) -> NoReturn:
        logger.warning(
            "OTP verification failed: %s",
            error,
            extra={"account_id": account_id, "purpose": purpose.value},
        )
        await self._audit(
            AuthEventType.MFA_FAILED,
            account_id,
            error=error,
            metadata={"method": "sms", "purpose": purpose.value},
        )
        raise error

    async def _audit(
        self,
        event_type: AuthEventType,
        account_id: str,
        *,
        error: Exception | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if self.audit_store is not None:
            await self.audit_store.record(
                build_event(event_type, account_id, error=error, metadata=metadata)
            )


__all__: list[str] = ["OtpPurpose", "OtpChallengeManager", "render_otp_message"]
