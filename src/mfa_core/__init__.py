"""mfa-core

Account security core: password login with lockout, SMS one-time codes,
TOTP authenticator apps and single-use backup codes.

Usage:
    ```python
    from mfa_core import (
        AuthenticationCoordinator,
        InMemoryCredentialStore,
        InMemoryTokenIssuer,
        OtpChallengeManager,
        SmsChallengeReceipt,
    )
    from mfa_core.gateways.twilio import TwilioSmsGateway

    store = InMemoryCredentialStore()
    otp = OtpChallengeManager(
        credential_store=store,
        sms_gateway=TwilioSmsGateway(sid, token, "+15550001111"),
    )
    coordinator = AuthenticationCoordinator(
        credential_store=store,
        token_issuer=InMemoryTokenIssuer(),
        otp_manager=otp,
    )

    result = await coordinator.login("ana@example.com", "s3cret")
    if isinstance(result, SmsChallengeReceipt):
        result = await coordinator.verify_sms_otp_and_login(result.account_id, code)
    ```

Submodules:
    - `mfa`: SMS OTP, TOTP, backup codes, SMS factor enrollment, QR helpers
    - `stores`: in-memory and SQLAlchemy credential stores
    - `gateways`: Twilio and recording SMS gateways
    - `contrib.fastapi`: FastAPI router
"""

from __future__ import annotations

# Audit
from .audit import (
    AuthAuditEvent,
    AuthEventType,
    InMemoryAuthAuditStore,
    build_event,
)

# Configuration
from .config import BackupCodeConfig, LoginPolicy, OtpConfig, TotpConfig

# Coordinator
from .coordinator import AuthenticationCoordinator

# Exceptions
from .exceptions import (
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
from .hasher import PasswordHasher

# Second factors
from .mfa import (
    BackupCodeVault,
    OtpChallengeManager,
    SmsTwoFactorService,
    TotpManager,
    render_otp_message,
)

# Models
from .models import (
    Account,
    AccountView,
    BackupCode,
    Credentials,
    LoginResult,
    OtpPurpose,
    SmsChallengeReceipt,
    TokenSet,
    TotpEnrollment,
)

# Ports
from .ports import (
    IAuthAuditStore,
    ICredentialStore,
    IEmailGateway,
    ISmsGateway,
    ITokenIssuer,
)
from .request_context import RequestContext
from .stores import InMemoryCredentialStore
from .tokens import InMemoryTokenIssuer

__all__: list[str] = [
    # Coordinator
    "AuthenticationCoordinator",
    # Second factors
    "OtpChallengeManager",
    "render_otp_message",
    "TotpManager",
    "BackupCodeVault",
    "SmsTwoFactorService",
    # Configuration
    "LoginPolicy",
    "OtpConfig",
    "TotpConfig",
    "BackupCodeConfig",
    # Models
    "Account",
    "AccountView",
    "BackupCode",
    "Credentials",
    "LoginResult",
    "OtpPurpose",
    "SmsChallengeReceipt",
    "TokenSet",
    "TotpEnrollment",
    "RequestContext",
    # Ports
    "ICredentialStore",
    "ISmsGateway",
    "IEmailGateway",
    "ITokenIssuer",
    "IAuthAuditStore",
    # Implementations
    "PasswordHasher",
    "InMemoryCredentialStore",
    "InMemoryTokenIssuer",
    # Audit
    "AuthEventType",
    "AuthAuditEvent",
    "InMemoryAuthAuditStore",
    "build_event",
    # Exceptions
    "MfaCoreError",
    "UnauthorizedError",
    "BadRequestError",
    "NotFoundError",
    "InternalError",
    "InvalidCredentialsError",
    "AccountLockedError",
    "TooManyAttemptsError",
    "EmailNotVerifiedError",
    "InvalidTokenError",
    "OtpNotPendingError",
    "OtpExpiredError",
    "OtpInvalidError",
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
    "AccountNotFoundError",
    "InvariantViolationError",
    "SmsDeliveryError",
]
