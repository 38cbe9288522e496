"""Request and response shapes exposed to transports."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .models import AccountView, LoginResult, SmsChallengeReceipt, TokenSet

# Request schemas accept codes of exactly this many digits; the FastAPI
# router refuses OTP and TOTP configs that generate a different length.
CODE_DIGITS = 6
CODE_PATTERN = rf"^\d{{{CODE_DIGITS}}}$"


class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1, description="Email address")
    password: str = Field(..., min_length=1)


class SmsOtpVerifyRequest(BaseModel):
    account_id: str = Field(..., min_length=1)
    code: str = Field(..., pattern=CODE_PATTERN)


class CodeRequest(BaseModel):
    """Six-digit code for TOTP enable/disable/verify and phone verification."""

    code: str = Field(..., pattern=CODE_PATTERN)


class BackupCodeVerifyRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)


class PhoneNumberRequest(BaseModel):
    phone_number: str = Field(..., pattern=r"^\+[1-9]\d{6,14}$", description="E.164")


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class AccountResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    display_name: str
    phone_number: str | None = None
    org_unit_id: str | None = None

    @classmethod
    def from_view(cls, view: AccountView) -> AccountResponse:
        return cls(
            id=view.id,
            email=view.email,
            display_name=view.display_name,
            phone_number=view.phone_number,
            org_unit_id=view.org_unit_id,
        )


class TokenSetResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"  # noqa: S105
    account: AccountResponse | None = None

    @classmethod
    def from_tokens(
        cls, tokens: TokenSet, account: AccountView | None = None
    ) -> TokenSetResponse:
        return cls(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=tokens.expires_in,
            token_type=tokens.token_type,
            account=AccountResponse.from_view(account) if account else None,
        )

    @classmethod
    def from_login(cls, result: LoginResult) -> TokenSetResponse:
        return cls.from_tokens(result.tokens, result.account)


class SmsChallengeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    sms_otp_required: bool = True
    account_id: str

    @classmethod
    def from_receipt(cls, receipt: SmsChallengeReceipt) -> SmsChallengeResponse:
        return cls(
            message=receipt.message,
            sms_otp_required=receipt.sms_otp_required,
            account_id=receipt.account_id,
        )


class TotpSecretResponse(BaseModel):
    secret: str
    provisioning_uri: str
    qr_code_data_uri: str | None = None


class SuccessResponse(BaseModel):
    success: bool = True


class TotpVerifyResponse(BaseModel):
    is_valid: bool


class BackupCodeResponse(BaseModel):
    code: str


class BackupCodeVerifyResponse(BaseModel):
    is_valid: bool


__all__: list[str] = [
    "CODE_DIGITS",
    "CODE_PATTERN",
    "LoginRequest",
    "SmsOtpVerifyRequest",
    "CodeRequest",
    "BackupCodeVerifyRequest",
    "PhoneNumberRequest",
    "RefreshTokenRequest",
    "AccountResponse",
    "TokenSetResponse",
    "SmsChallengeResponse",
    "TotpSecretResponse",
    "SuccessResponse",
    "TotpVerifyResponse",
    "BackupCodeResponse",
    "BackupCodeVerifyResponse",
]
