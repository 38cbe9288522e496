"""Password login with lockout and an optional SMS OTP step.

The coordinator owns the login state machine::

    AwaitingCredentials -> Locked | EmailUnverified | SmsOtpPending | Authenticated
    SmsOtpPending       -> Authenticated (valid code) | caller re-submits

Token issuing is delegated to an ITokenIssuer; SMS codes to an
OtpChallengeManager.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, NoReturn

from .audit.events import AuthEventType, build_event
from .config import LoginPolicy
from .exceptions import (
    AccountAlreadyExistsError,
    AccountLockedError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvariantViolationError,
    PasswordTooLongError,
    TooManyAttemptsError,
)
from .hasher import PasswordHasher
from .models import (
    Account,
    AccountView,
    Credentials,
    LoginResult,
    OtpPurpose,
    SmsChallengeReceipt,
)

if TYPE_CHECKING:
    from .exceptions import UnauthorizedError
    from .mfa.otp import OtpChallengeManager
    from .models import TokenSet
    from .ports import IAuthAuditStore, ICredentialStore, ITokenIssuer
    from .request_context import RequestContext

logger = logging.getLogger(__name__)


class AuthenticationCoordinator:
    """Entry point for password login and the SMS OTP login step.

    Features:
    - bcrypt/argon2id password check with transparent rehash on login
    - Account lockout after ``max_login_attempts`` consecutive failures
    - Email verification gate
    - SMS OTP challenge when SMS 2FA is enabled
    - Uniform "Invalid credentials" for unknown identifiers and wrong passwords

    Example:
        ```python
        coordinator = AuthenticationCoordinator(
            credential_store=store,
            token_issuer=issuer,
            otp_manager=otp,
        )

        result = await coordinator.login("ana@example.com", "s3cret")
        if isinstance(result, SmsChallengeReceipt):
            result = await coordinator.verify_sms_otp_and_login(
                result.account_id, code_from_user
            )
        tokens = result.tokens
        ```
    """

    def __init__(
        self,
        *,
        credential_store: ICredentialStore,
        token_issuer: ITokenIssuer,
        otp_manager: OtpChallengeManager,
        password_hasher: PasswordHasher | None = None,
        policy: LoginPolicy | None = None,
        audit_store: IAuthAuditStore | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            credential_store: Account and credentials persistence.
            token_issuer: Issues tokens once authentication succeeds.
            otp_manager: Issues and verifies the SMS login code.
            password_hasher: Password hasher (default bcrypt).
            policy: Lockout policy (default 10 attempts, 15 minutes).
            audit_store: Optional audit sink.
        """
        self.credential_store = credential_store
        self.token_issuer = token_issuer
        self.otp_manager = otp_manager
        self.password_hasher = password_hasher or PasswordHasher()
        self.policy = policy or LoginPolicy()
        self.audit_store = audit_store

    async def login(
        self,
        identifier: str,
        password: str,
        request_context: RequestContext | None = None,
    ) -> LoginResult | SmsChallengeReceipt:
        """Authenticate with email and password.

        Args:
            identifier: Email address (matched case-insensitively).
            password: Plaintext password.
            request_context: Client details forwarded to the token issuer.

        Returns:
            LoginResult with tokens, or SmsChallengeReceipt when an SMS
            code must be submitted first.

        Raises:
            InvalidCredentialsError: Unknown identifier or wrong password.
            AccountLockedError: Account is locked.
            TooManyAttemptsError: This failure locked the account.
            EmailNotVerifiedError: Password correct, email unverified.
            InvariantViolationError: SMS 2FA enabled without a phone number.
            SmsDeliveryError: The login code could not be sent.
        """
        account = await self.credential_store.find_by_identifier(identifier)
        if account is None:
            logger.warning("Login failed: unknown identifier")
            await self._audit(
                AuthEventType.LOGIN_FAILED,
                None,
                request_context,
                error=InvalidCredentialsError(),
            )
            raise InvalidCredentialsError()

        credentials = account.credentials
        now = datetime.now(timezone.utc)

        if credentials.is_locked(now):
            remaining = credentials.remaining_lock_minutes(now)
            logger.warning(
                "Login rejected: account locked",
                extra={"account_id": account.id, "remaining_minutes": remaining},
            )
            error: UnauthorizedError = AccountLockedError(remaining)
            await self._audit(
                AuthEventType.LOGIN_FAILED, account.id, request_context, error=error
            )
            raise error

        if not self.password_hasher.verify(credentials.password_hash, password):
            await self._record_failure(account, now, request_context)

        updates: dict[str, Any] = {"last_login": now}
        if credentials.login_attempts > 0 or credentials.locked_until is not None:
            updates["login_attempts"] = 0
            updates["locked_until"] = None
        if self.password_hasher.needs_rehash(credentials.password_hash):
            try:
                updates["password_hash"] = self.password_hasher.hash(password)
                logger.info("Password hash upgraded", extra={"account_id": account.id})
            except PasswordTooLongError:
                logger.warning(
                    "Password hash not upgraded: password too long for bcrypt",
                    extra={"account_id": account.id},
                )
        await self.credential_store.update_credentials(account.id, updates)

        if not credentials.is_email_verified:
            logger.warning(
                "Login rejected: email not verified", extra={"account_id": account.id}
            )
            error = EmailNotVerifiedError()
            await self._audit(
                AuthEventType.LOGIN_FAILED, account.id, request_context, error=error
            )
            raise error

        if credentials.is_sms_2fa_enabled and credentials.phone_number_verified:
            if not account.phone_number:
                logger.error(
                    "SMS 2FA enabled but account has no phone number",
                    extra={"account_id": account.id},
                )
                raise InvariantViolationError(
                    "SMS 2FA is enabled but no phone number is registered"
                )
            await self.otp_manager.issue(
                account.id,
                OtpPurpose.LOGIN_CHALLENGE,
                phone_number=account.phone_number,
            )
            logger.info("Login awaiting SMS OTP", extra={"account_id": account.id})
            return SmsChallengeReceipt(account_id=account.id)

        return await self._complete_login(account, request_context)

    async def verify_sms_otp_and_login(
        self,
        account_id: str,
        submitted_code: str,
        request_context: RequestContext | None = None,
    ) -> LoginResult:
        """Finish a login that returned an SmsChallengeReceipt.

        Raises:
            AccountNotFoundError: Unknown account.
            OtpNotPendingError, OtpExpiredError, OtpInvalidError: surfaced
                unchanged from the OTP manager.
        """
        account = await self.otp_manager.verify(
            account_id, submitted_code, OtpPurpose.LOGIN_CHALLENGE
        )
        await self.credential_store.update_credentials(
            account_id, {"last_login": datetime.now(timezone.utc)}
        )
        return await self._complete_login(account, request_context)

    async def refresh_token(
        self,
        refresh_token: str,
        request_context: RequestContext | None = None,
    ) -> TokenSet:
        """Exchange a refresh token through the token issuer."""
        tokens = await self.token_issuer.refresh(refresh_token, request_context)
        await self._audit(AuthEventType.TOKEN_REFRESHED, None, request_context)
        return tokens

    async def logout(
        self,
        refresh_token: str,
        request_context: RequestContext | None = None,
    ) -> bool:
        """Revoke a refresh token through the token issuer."""
        revoked = await self.token_issuer.revoke(refresh_token)
        await self._audit(
            AuthEventType.LOGOUT,
            None,
            request_context,
            metadata={"revoked": revoked},
        )
        return revoked

    async def register(
        self,
        email: str,
        password: str,
        display_name: str,
        *,
        phone_number: str | None = None,
        org_unit_id: str | None = None,
    ) -> AccountView:
        """Create an Account with fresh Credentials (all flags false).

        Raises:
            AccountAlreadyExistsError: Email already registered.
        """
        normalized = email.strip().lower()
        if await self.credential_store.find_by_identifier(normalized) is not None:
            raise AccountAlreadyExistsError()

        account = Account(
            id=str(uuid.uuid4()),
            email=normalized,
            display_name=display_name,
            phone_number=phone_number,
            org_unit_id=org_unit_id,
            credentials=Credentials(password_hash=self.password_hasher.hash(password)),
        )
        await self.credential_store.create(account)

        logger.info("Account registered", extra={"account_id": account.id})
        await self._audit(AuthEventType.USER_CREATED, account.id, None)
        return AccountView.from_account(account)

    async def _record_failure(
        self,
        account: Account,
        now: datetime,
        request_context: RequestContext | None,
    ) -> NoReturn:
        """Count a wrong password and lock the account at the limit."""
        attempts = await self.credential_store.increment_login_attempts(account.id)

        if attempts >= self.policy.max_login_attempts:
            locked_until = now + timedelta(minutes=self.policy.lock_time_minutes)
            await self.credential_store.update_credentials(
                account.id, {"locked_until": locked_until}
            )
            logger.warning(
                "Account locked after too many failed attempts",
                extra={"account_id": account.id, "login_attempts": attempts},
            )
            error: Exception = TooManyAttemptsError(self.policy.lock_time_minutes)
            await self._audit(
                AuthEventType.USER_LOCKED,
                account.id,
                request_context,
                error=error,
                metadata={"login_attempts": attempts},
            )
            raise error

        logger.warning(
            "Login failed: invalid password",
            extra={"account_id": account.id, "login_attempts": attempts},
        )
        error = InvalidCredentialsError()
        await self._audit(
            AuthEventType.LOGIN_FAILED,
            account.id,
            request_context,
            error=error,
            metadata={"login_attempts": attempts},
        )
        raise error

    async def _complete_login(
        self, account: Account, request_context: RequestContext | None
    ) -> LoginResult:
        view = AccountView.from_account(account)
        tokens = await self.token_issuer.issue(view, request_context)
        logger.info("Login succeeded", extra={"account_id": account.id})
        await self._audit(AuthEventType.LOGIN_SUCCESS, account.id, request_context)
        return LoginResult(tokens=tokens, account=view)

    async def _audit(
        self,
        event_type: AuthEventType,
        account_id: str | None,
        request_context: RequestContext | None,
        *,
        error: Exception | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if self.audit_store is None:
            return
        await self.audit_store.record(
            build_event(
                event_type,
                account_id,
                request_context=request_context,
                error=error,
                metadata=metadata,
            )
        )


__all__: list[str] = ["AuthenticationCoordinator"]
