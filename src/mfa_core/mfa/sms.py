"""SMS second-factor enrollment.

Phone verification, then enable/disable of SMS as a login factor. Codes
are issued and checked by the OtpChallengeManager under the
``PHONE_VERIFICATION`` purpose.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..audit.events import AuthEventType, build_event
from ..exceptions import (
    AccountNotFoundError,
    PhoneNotVerifiedError,
    SmsTwoFactorNotEnabledError,
)
from ..models import OtpPurpose

if TYPE_CHECKING:
    from ..models import Account
    from ..ports import IAuthAuditStore, ICredentialStore
    from .otp import OtpChallengeManager

logger = logging.getLogger(__name__)


class SmsTwoFactorService:
    """Enrollment flow for SMS as a second factor.

    Example:
        ```python
        sms = SmsTwoFactorService(credential_store=store, otp_manager=otp)

        await sms.initiate_phone_verification(account.id, "+15551234567")
        await sms.verify_phone(account.id, "318204")
        await sms.enable(account.id)
        ```
    """

    def __init__(
        self,
        *,
        credential_store: ICredentialStore,
        otp_manager: OtpChallengeManager,
        audit_store: IAuthAuditStore | None = None,
    ) -> None:
        self.credential_store = credential_store
        self.otp_manager = otp_manager
        self.audit_store = audit_store

    async def _load(self, account_id: str) -> Account:
        account = await self.credential_store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def initiate_phone_verification(
        self, account_id: str, phone_number: str
    ) -> None:
        """Store the phone number and send a verification code to it.

        A changed number loses its verified status and disables SMS 2FA
        until it is verified again.

        Raises:
            AccountNotFoundError: Unknown account.
            SmsDeliveryError: The gateway failed.
        """
        account = await self._load(account_id)

        if account.phone_number != phone_number:
            await self.credential_store.update_account(
                account_id, {"phone_number": phone_number}
            )
            await self.credential_store.update_credentials(
                account_id,
                {"phone_number_verified": False, "is_sms_2fa_enabled": False},
            )
            logger.info("Phone number changed", extra={"account_id": account_id})

        await self.otp_manager.issue(
            account_id, OtpPurpose.PHONE_VERIFICATION, phone_number=phone_number
        )

    async def verify_phone(self, account_id: str, submitted_code: str) -> bool:
        """Confirm the phone number with the code sent to it.

        Raises:
            OtpNotPendingError, OtpExpiredError, OtpInvalidError: see
                OtpChallengeManager.verify.
        """
        await self.otp_manager.verify(
            account_id, submitted_code, OtpPurpose.PHONE_VERIFICATION
        )
        logger.info("Phone number verified", extra={"account_id": account_id})
        return True

    async def enable(self, account_id: str) -> bool:
        """Turn on SMS 2FA for a verified phone number.

        Raises:
            AccountNotFoundError: Unknown account.
            PhoneNotVerifiedError: Phone number not verified.
        """
        account = await self._load(account_id)
        if not account.phone_number or not account.credentials.phone_number_verified:
            raise PhoneNotVerifiedError()

        await self.credential_store.update_credentials(
            account_id, {"is_sms_2fa_enabled": True}
        )
        logger.info("SMS 2FA enabled", extra={"account_id": account_id})
        await self._audit(AuthEventType.MFA_ENABLED, account_id)
        return True

    async def disable(self, account_id: str) -> bool:
        """Turn off SMS 2FA and drop any pending code.

        Raises:
            AccountNotFoundError: Unknown account.
            SmsTwoFactorNotEnabledError: SMS 2FA is not enabled.
        """
        account = await self._load(account_id)
        if not account.credentials.is_sms_2fa_enabled:
            raise SmsTwoFactorNotEnabledError()

        await self.credential_store.update_credentials(
            account_id, {"is_sms_2fa_enabled": False}
        )
        await self.otp_manager.clear(account_id)
        logger.info("SMS 2FA disabled", extra={"account_id": account_id})
        await self._audit(AuthEventType.MFA_DISABLED, account_id)
        return True

    async def _audit(self, event_type: AuthEventType, account_id: str) -> None:
        if self.audit_store is not None:
            await self.audit_store.record(
                build_event(event_type, account_id, metadata={"method": "sms"})
            )


__all__: list[str] = ["SmsTwoFactorService"]
