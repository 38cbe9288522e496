"""TOTP (Time-based One-Time Password) enrollment and validation.

Works with any RFC 6238 authenticator app (Google Authenticator,
Microsoft Authenticator, Authy, 1Password, FreeOTP).

Uses pyotp library internally.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pyotp

from ..audit.events import AuthEventType, build_event
from ..config import TotpConfig
from ..exceptions import (
    AccountNotFoundError,
    IncompleteTwoFactorConfigError,
    TotpInvalidError,
    TotpNotConfiguredError,
    TwoFactorNotEnabledError,
)
from ..models import TotpEnrollment

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..models import Account
    from ..ports import IAuthAuditStore, ICredentialStore

logger = logging.getLogger(__name__)


class TotpManager:
    """TOTP factor for authenticator apps.

    The secret is persisted on generation but the factor only becomes
    active once the user proves possession with a valid code.

    Example:
        ```python
        totp = TotpManager(
            credential_store=store,
            config=TotpConfig(issuer="Acme"),
            qr_renderer=render_qr_data_uri,
        )

        enrollment = await totp.generate_secret(account.id)
        # user scans enrollment.qr_code_data_uri, then types a code
        await totp.enable(account.id, "492039")
        ```
    """

    def __init__(
        self,
        *,
        credential_store: ICredentialStore,
        config: TotpConfig | None = None,
        audit_store: IAuthAuditStore | None = None,
        qr_renderer: Callable[[str], str] | None = None,
    ) -> None:
        """Initialize the TOTP manager.

        Args:
            credential_store: Store holding the secret and enabled flag.
            config: TOTP configuration.
            audit_store: Optional audit sink.
            qr_renderer: Turns a provisioning URI into a QR image reference.
        """
        self.credential_store = credential_store
        self.config = config or TotpConfig()
        self.audit_store = audit_store
        self.qr_renderer = qr_renderer

    def _totp(self, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(
            secret,
            digits=self.config.digits,
            interval=self.config.interval,
        )

    def _verify_code(self, secret: str, code: str) -> bool:
        totp = self._totp(secret)
        return bool(totp.verify(code, valid_window=self.config.valid_window))

    async def _load(self, account_id: str) -> Account:
        account = await self.credential_store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def generate_secret(self, account_id: str) -> TotpEnrollment:
        """Create and persist a new secret without enabling the factor.

        Any previously stored secret is overwritten.

        Args:
            account_id: Account identifier.

        Returns:
            TotpEnrollment with the secret and otpauth:// provisioning URI.

        Raises:
            AccountNotFoundError: Unknown account.
        """
        account = await self._load(account_id)

        secret = pyotp.random_base32()
        provisioning_uri = self._totp(secret).provisioning_uri(
            name=account.email,
            issuer_name=self.config.issuer,
        )
        await self.credential_store.update_credentials(
            account_id, {"two_factor_secret": secret}
        )

        logger.info("2FA secret generated", extra={"account_id": account_id})
        return TotpEnrollment(
            secret=secret,
            provisioning_uri=provisioning_uri,
            qr_code_data_uri=(
                self.qr_renderer(provisioning_uri) if self.qr_renderer else None
            ),
        )

    async def enable(self, account_id: str, submitted_code: str) -> bool:
        """Activate TOTP after checking a code against the stored secret.

        Raises:
            AccountNotFoundError: Unknown account.
            TotpNotConfiguredError: generate_secret was never called.
            TotpInvalidError: Code rejected; nothing is changed.
        """
        account = await self._load(account_id)
        secret = account.credentials.two_factor_secret
        if not secret:
            raise TotpNotConfiguredError()

        if not self._verify_code(secret, submitted_code):
            logger.warning(
                "2FA enabling failed: invalid token", extra={"account_id": account_id}
            )
            await self._audit(AuthEventType.MFA_FAILED, account_id, TotpInvalidError())
            raise TotpInvalidError()

        await self.credential_store.update_credentials(
            account_id, {"two_factor_enabled": True}
        )
        logger.info("2FA enabled", extra={"account_id": account_id})
        await self._audit(AuthEventType.MFA_ENABLED, account_id)
        return True

    async def disable(self, account_id: str, submitted_code: str) -> bool:
        """Deactivate TOTP and clear the secret after checking a current code.

        Raises:
            AccountNotFoundError: Unknown account.
            TwoFactorNotEnabledError: TOTP is not active.
            IncompleteTwoFactorConfigError: Enabled without a secret.
            TotpInvalidError: Code rejected; nothing is changed.
        """
        account = await self._load(account_id)
        credentials = account.credentials
        if not credentials.two_factor_enabled:
            raise TwoFactorNotEnabledError()
        if not credentials.two_factor_secret:
            raise IncompleteTwoFactorConfigError()

        if not self._verify_code(credentials.two_factor_secret, submitted_code):
            logger.warning(
                "2FA disabling failed: invalid token", extra={"account_id": account_id}
            )
            await self._audit(AuthEventType.MFA_FAILED, account_id, TotpInvalidError())
            raise TotpInvalidError()

        await self.credential_store.update_credentials(
            account_id, {"two_factor_enabled": False, "two_factor_secret": None}
        )
        logger.info("2FA disabled", extra={"account_id": account_id})
        await self._audit(AuthEventType.MFA_DISABLED, account_id)
        return True

    async def validate_for_login(self, account_id: str, submitted_code: str) -> bool:
        """Check a TOTP code during login.

        Returns True unconditionally when TOTP is not enabled.

        Raises:
            AccountNotFoundError: Unknown account.
            IncompleteTwoFactorConfigError: Enabled without a secret.
        """
        account = await self._load(account_id)
        credentials = account.credentials
        if not credentials.two_factor_enabled:
            logger.debug(
                "2FA validation skipped: not enabled", extra={"account_id": account_id}
            )
            return True

        if not credentials.two_factor_secret:
            logger.error(
                "2FA enabled without a secret", extra={"account_id": account_id}
            )
            raise IncompleteTwoFactorConfigError()

        is_valid = self._verify_code(credentials.two_factor_secret, submitted_code)
        if is_valid:
            await self._audit(AuthEventType.MFA_VERIFIED, account_id)
        else:
            logger.warning("2FA validation failed", extra={"account_id": account_id})
            await self._audit(AuthEventType.MFA_FAILED, account_id, TotpInvalidError())
        return is_valid

    verify = validate_for_login

    async def _audit(
        self,
        event_type: AuthEventType,
        account_id: str,
        error: Exception | None = None,
    ) -> None:
        if self.audit_store is None:
            return
        metadata: dict[str, Any] = {"method": "totp"}
        await self.audit_store.record(
            build_event(event_type, account_id, error=error, metadata=metadata)
        )


__all__: list[str] = ["TotpManager"]
