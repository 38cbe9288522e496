"""FastAPI router exposing login, TOTP, backup code and SMS 2FA endpoints.

Every MfaCoreError is turned into an HTTPException using its
``http_status``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Depends, HTTPException, Request

from ...exceptions import MfaCoreError
from ...models import SmsChallengeReceipt
from ...request_context import RequestContext
from ...schemas import (
    CODE_DIGITS,
    BackupCodeResponse,
    BackupCodeVerifyRequest,
    BackupCodeVerifyResponse,
    CodeRequest,
    LoginRequest,
    PhoneNumberRequest,
    RefreshTokenRequest,
    SmsChallengeResponse,
    SmsOtpVerifyRequest,
    SuccessResponse,
    TokenSetResponse,
    TotpSecretResponse,
    TotpVerifyResponse,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from ...coordinator import AuthenticationCoordinator
    from ...mfa.backup_codes import BackupCodeVault
    from ...mfa.sms import SmsTwoFactorService
    from ...mfa.totp import TotpManager

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors() -> Iterator[None]:
    """Re-raise MfaCoreError as HTTPException with the matching status."""
    try:
        yield
    except MfaCoreError as e:
        if e.http_status >= 500:
            logger.error("Request failed: %s", e, exc_info=e)
        headers = {"WWW-Authenticate": "Bearer"} if e.http_status == 401 else None
        raise HTTPException(
            status_code=e.http_status, detail=str(e), headers=headers
        ) from e


def request_context_from(request: Request) -> RequestContext:
    return RequestContext.from_headers(
        request.headers,
        remote_addr=request.client.host if request.client else None,
    )


def _check_code_lengths(
    coordinator: AuthenticationCoordinator,
    totp_manager: TotpManager,
    sms_service: SmsTwoFactorService | None,
) -> None:
    lengths = [
        ("OtpConfig.code_length", coordinator.otp_manager.config.code_length),
        ("TotpConfig.digits", totp_manager.config.digits),
    ]
    if sms_service is not None:
        lengths.append(
            ("OtpConfig.code_length", sms_service.otp_manager.config.code_length)
        )
    for name, length in lengths:
        if length != CODE_DIGITS:
            raise ValueError(
                f"{name}={length}, but request schemas only accept "
                f"{CODE_DIGITS}-digit codes"
            )


def create_auth_router(
    *,
    coordinator: AuthenticationCoordinator,
    totp_manager: TotpManager,
    backup_vault: BackupCodeVault,
    current_account_id: Callable[..., Any],
    sms_service: SmsTwoFactorService | None = None,
    prefix: str = "/auth",
    tags: list[str] | None = None,
) -> APIRouter:
    """Build the authentication router.

    Args:
        coordinator: Login coordinator.
        totp_manager: TOTP factor service.
        backup_vault: Backup code service.
        current_account_id: FastAPI dependency returning the authenticated
            account id; guards every enrollment endpoint.
        sms_service: SMS factor enrollment; its routes are omitted when None.
        prefix: URL prefix.
        tags: OpenAPI tags.

    Raises:
        ValueError: An OTP or TOTP config produces codes that are not
            CODE_DIGITS long, which the request schemas would reject.

    Example:
        ```python
        def current_account_id(request: Request) -> str:
            account = issuer.resolve(extract_bearer(request))
            if account is None:
                raise HTTPException(401, "Not authenticated")
            return account.id

        app.include_router(
            create_auth_router(
                coordinator=coordinator,
                totp_manager=totp,
                backup_vault=vault,
                current_account_id=current_account_id,
            )
        )
        ```
    """
    _check_code_lengths(coordinator, totp_manager, sms_service)
    router = APIRouter(prefix=prefix, tags=list(tags or ["auth"]))
    account_dependency = Depends(current_account_id)

    @router.post("/login", response_model=TokenSetResponse | SmsChallengeResponse)
    async def login(
        body: LoginRequest, request: Request
    ) -> TokenSetResponse | SmsChallengeResponse:
        with translate_errors():
            result = await coordinator.login(
                body.identifier, body.password, request_context_from(request)
            )
        if isinstance(result, SmsChallengeReceipt):
            return SmsChallengeResponse.from_receipt(result)
        return TokenSetResponse.from_login(result)

    @router.post("/login/verify-otp", response_model=TokenSetResponse)
    async def verify_sms_otp(
        body: SmsOtpVerifyRequest, request: Request
    ) -> TokenSetResponse:
        with translate_errors():
            result = await coordinator.verify_sms_otp_and_login(
                body.account_id, body.code, request_context_from(request)
            )
        return TokenSetResponse.from_login(result)

    @router.post("/token/refresh", response_model=TokenSetResponse)
    async def refresh_token(
        body: RefreshTokenRequest, request: Request
    ) -> TokenSetResponse:
        with translate_errors():
            tokens = await coordinator.refresh_token(
                body.refresh_token, request_context_from(request)
            )
        return TokenSetResponse.from_tokens(tokens)

    @router.post("/logout", response_model=SuccessResponse)
    async def logout(body: RefreshTokenRequest, request: Request) -> SuccessResponse:
        with translate_errors():
            revoked = await coordinator.logout(
                body.refresh_token, request_context_from(request)
            )
        return SuccessResponse(success=revoked)

    # TOTP

    @router.post("/2fa/generate", response_model=TotpSecretResponse)
    async def generate_totp_secret(
        account_id: str = account_dependency,
    ) -> TotpSecretResponse:
        with translate_errors():
            enrollment = await totp_manager.generate_secret(account_id)
        return TotpSecretResponse(
            secret=enrollment.secret,
            provisioning_uri=enrollment.provisioning_uri,
            qr_code_data_uri=enrollment.qr_code_data_uri,
        )

    @router.post("/2fa/enable", response_model=SuccessResponse)
    async def enable_totp(
        body: CodeRequest, account_id: str = account_dependency
    ) -> SuccessResponse:
        with translate_errors():
            await totp_manager.enable(account_id, body.code)
        return SuccessResponse()

    @router.post("/2fa/disable", response_model=SuccessResponse)
    async def disable_totp(
        body: CodeRequest, account_id: str = account_dependency
    ) -> SuccessResponse:
        with translate_errors():
            await totp_manager.disable(account_id, body.code)
        return SuccessResponse()

    @router.post("/2fa/verify", response_model=TotpVerifyResponse)
    async def verify_totp(
        body: CodeRequest, account_id: str = account_dependency
    ) -> TotpVerifyResponse:
        with translate_errors():
            is_valid = await totp_manager.validate_for_login(account_id, body.code)
        return TotpVerifyResponse(is_valid=is_valid)

    # Backup codes

    @router.post("/backup-codes", response_model=BackupCodeResponse)
    async def generate_backup_code(
        account_id: str = account_dependency,
    ) -> BackupCodeResponse:
        with translate_errors():
            code = await backup_vault.generate(account_id)
        return BackupCodeResponse(code=code)

    @router.post("/backup-codes/verify", response_model=BackupCodeVerifyResponse)
    async def verify_backup_code(
        body: BackupCodeVerifyRequest, account_id: str = account_dependency
    ) -> BackupCodeVerifyResponse:
        with translate_errors():
            is_valid = await backup_vault.verify(account_id, body.code)
        return BackupCodeVerifyResponse(is_valid=is_valid)

    if sms_service is None:
        return router

    # SMS second factor

    @router.post("/sms/initiate", response_model=SuccessResponse)
    async def initiate_phone_verification(
        body: PhoneNumberRequest, account_id: str = account_dependency
    ) -> SuccessResponse:
        with translate_errors():
            await sms_service.initiate_phone_verification(account_id, body.phone_number)
        return SuccessResponse()

    @router.post("/sms/verify", response_model=SuccessResponse)
    async def verify_phone(
        body: CodeRequest, account_id: str = account_dependency
    ) -> SuccessResponse:
        with translate_errors():
            await sms_service.verify_phone(account_id, body.code)
        return SuccessResponse()

    @router.post("/sms/enable", response_model=SuccessResponse)
    async def enable_sms(account_id: str = account_dependency) -> SuccessResponse:
        with translate_errors():
            await sms_service.enable(account_id)
        return SuccessResponse()

    @router.post("/sms/disable", response_model=SuccessResponse)
    async def disable_sms(account_id: str = account_dependency) -> SuccessResponse:
        with translate_errors():
            await sms_service.disable(account_id)
        return SuccessResponse()

    return router


__all__: list[str] = ["create_auth_router", "translate_errors", "request_context_from"]
