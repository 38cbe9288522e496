"""Tests for SMS OTP challenges."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from mfa_core import (
    AccountNotFoundError,
    AuthEventType,
    InMemoryAuthAuditStore,
    InMemoryCredentialStore,
    InvariantViolationError,
    OtpChallengeManager,
    OtpConfig,
    OtpExpiredError,
    OtpInvalidError,
    OtpNotPendingError,
    OtpPurpose,
    SmsDeliveryError,
    render_otp_message,
)
from mfa_core.gateways import RecordingSmsGateway
from mfa_core.models import Account

AccountFactory = Callable[..., Awaitable[Account]]


async def pending_code(store: InMemoryCredentialStore, account_id: str) -> str:
    account = await store.find_by_id(account_id)
    assert account is not None
    assert account.credentials.sms_otp_code is not None
    return account.credentials.sms_otp_code


def other_code(code: str) -> str:
    return "000000" if code != "000000" else "111111"


class TestRenderOtpMessage:
    def test_english_for_listed_calling_codes(self) -> None:
        config = OtpConfig(app_name="Acme")

        message = render_otp_message("+447700900123", "012345", config)

        assert message == (
            "Your Acme OTP code is: 012345. This code will expire in 10 minutes."
        )

    def test_spanish_for_other_calling_codes(self) -> None:
        config = OtpConfig(app_name="Acme")

        message = render_otp_message("+34600123456", "012345", config)

        assert message == (
            "Su código OTP de Acme es: 012345. Este código expirará en 10 minutos."
        )

    def test_ttl_comes_from_config(self) -> None:
        message = render_otp_message("+15551234567", "1", OtpConfig(ttl_minutes=5))

        assert "expire in 5 minutes" in message


class TestIssue:
    @pytest.mark.asyncio
    async def test_stores_code_with_expiry_and_sends_it(
        self,
        otp_manager: OtpChallengeManager,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
        sms_gateway: RecordingSmsGateway,
        audit_store: InMemoryAuthAuditStore,
    ) -> None:
        account = await account_factory()
        before = datetime.now(timezone.utc)

        await otp_manager.issue(account.id, OtpPurpose.LOGIN_CHALLENGE)

        stored = await store.find_by_id(account.id)
        assert stored is not None
        code = stored.credentials.sms_otp_code
        assert code is not None
        assert len(code) == 6
        assert code.isdigit()
        expires_at = stored.credentials.sms_otp_code_expires_at
        assert expires_at is not None
        assert before + timedelta(minutes=10) <= expires_at
        assert expires_at <= datetime.now(timezone.utc) + timedelta(minutes=10)
        assert sms_gateway.last is not None
        assert sms_gateway.last.phone_e164 == account.phone_number
        assert code in sms_gateway.last.message
        assert audit_store.count_by_type(AuthEventType.MFA_CHALLENGE_SENT) == 1

    def test_codes_keep_leading_zeros(
        self,
        store: InMemoryCredentialStore,
        sms_gateway: RecordingSmsGateway,
    ) -> None:
        manager = OtpChallengeManager(credential_store=store, sms_gateway=sms_gateway)

        codes = {manager._generate_code() for _ in range(500)}

        assert all(len(c) == 6 and c.isdigit() for c in codes)
        assert any(c.startswith("0") for c in codes)

    @pytest.mark.asyncio
    async def test_new_code_replaces_pending_one(
        self,
        otp_manager: OtpChallengeManager,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
    ) -> None:
        account = await account_factory()
        await otp_manager.issue(account.id, OtpPurpose.PHONE_VERIFICATION)

        await otp_manager.issue(account.id, OtpPurpose.LOGIN_CHALLENGE)

        stored = await store.find_by_id(account.id)
        assert stored is not None
        assert stored.credentials.sms_otp_purpose is OtpPurpose.LOGIN_CHALLENGE

    @pytest.mark.asyncio
    async def test_unknown_account(self, otp_manager: OtpChallengeManager) -> None:
        with pytest.raises(AccountNotFoundError):
            await otp_manager.issue("missing", OtpPurpose.LOGIN_CHALLENGE)

    @pytest.mark.asyncio
    async def test_no_phone_number(
        self, otp_manager: OtpChallengeManager, account_factory: AccountFactory
    ) -> None:
        account = await account_factory(phone_number=None)

        with pytest.raises(InvariantViolationError):
            await otp_manager.issue(account.id, OtpPurpose.LOGIN_CHALLENGE)

    @pytest.mark.asyncio
    async def test_gateway_errors_are_wrapped(
        self, store: InMemoryCredentialStore, account_factory: AccountFactory
    ) -> None:
        gateway = AsyncMock()
        gateway.send_otp.side_effect = TimeoutError("slow")
        manager = OtpChallengeManager(credential_store=store, sms_gateway=gateway)
        account = await account_factory()

        with pytest.raises(SmsDeliveryError) as exc_info:
            await manager.issue(account.id, OtpPurpose.LOGIN_CHALLENGE)

        assert isinstance(exc_info.value.__cause__, TimeoutError)
        gateway.send_otp.assert_awaited_once()


class TestVerify:
    @pytest.mark.asyncio
    async def test_code_is_single_use(
        self,
        otp_manager: OtpChallengeManager,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
    ) -> None:
        account = await account_factory()
        await otp_manager.issue(account.id, OtpPurpose.LOGIN_CHALLENGE)
        code = await pending_code(store, account.id)

        verified = await otp_manager.verify(account.id, code)

        assert verified.id == account.id
        with pytest.raises(OtpNotPendingError) as exc_info:
            await otp_manager.verify(account.id, code)
        assert str(exc_info.value) == "No OTP pending"

    @pytest.mark.asyncio
    async def test_expired_code_is_cleared(
        self,
        otp_manager: OtpChallengeManager,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
    ) -> None:
        account = await account_factory()
        await otp_manager.issue(account.id, OtpPurpose.LOGIN_CHALLENGE)
        code = await pending_code(store, account.id)
        await store.update_credentials(
            account.id,
            {
                "sms_otp_code_expires_at": datetime.now(timezone.utc)
                - timedelta(seconds=1)
            },
        )

        with pytest.raises(OtpExpiredError):
            await otp_manager.verify(account.id, code)

        stored = await store.find_by_id(account.id)
        assert stored is not None
        assert stored.credentials.sms_otp_code is None
        assert stored.credentials.sms_otp_code_expires_at is None
        with pytest.raises(OtpNotPendingError):
            await otp_manager.verify(account.id, code)

    @pytest.mark.asyncio
    async def test_wrong_code_keeps_pending_code(
        self,
        otp_manager: OtpChallengeManager,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
        audit_store: InMemoryAuthAuditStore,
    ) -> None:
        account = await account_factory()
        await otp_manager.issue(account.id, OtpPurpose.LOGIN_CHALLENGE)
        code = await pending_code(store, account.id)

        for _ in range(3):
            with pytest.raises(OtpInvalidError):
                await otp_manager.verify(account.id, other_code(code))

        assert await pending_code(store, account.id) == code
        await otp_manager.verify(account.id, code)
        assert audit_store.count_by_type(AuthEventType.MFA_FAILED) == 3

    @pytest.mark.asyncio
    async def test_missing_code_clears_stale_expiry(
        self,
        otp_manager: OtpChallengeManager,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
    ) -> None:
        account = await account_factory(
            sms_otp_code_expires_at=datetime.now(timezone.utc) + timedelta(minutes=5)
        )

        with pytest.raises(OtpNotPendingError):
            await otp_manager.verify(account.id, "123456")

        stored = await store.find_by_id(account.id)
        assert stored is not None
        assert stored.credentials.sms_otp_code_expires_at is None

    @pytest.mark.asyncio
    async def test_purpose_mismatch_leaves_other_flow_intact(
        self,
        otp_manager: OtpChallengeManager,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
    ) -> None:
        account = await account_factory()
        await otp_manager.issue(account.id, OtpPurpose.PHONE_VERIFICATION)
        code = await pending_code(store, account.id)

        with pytest.raises(OtpNotPendingError):
            await otp_manager.verify(account.id, code, OtpPurpose.LOGIN_CHALLENGE)

        await otp_manager.verify(account.id, code, OtpPurpose.PHONE_VERIFICATION)
        stored = await store.find_by_id(account.id)
        assert stored is not None
        assert stored.credentials.phone_number_verified is True

    @pytest.mark.asyncio
    async def test_login_purpose_does_not_verify_phone(
        self,
        otp_manager: OtpChallengeManager,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
    ) -> None:
        account = await account_factory()
        await otp_manager.issue(account.id, OtpPurpose.LOGIN_CHALLENGE)
        code = await pending_code(store, account.id)

        await otp_manager.verify(account.id, code)

        stored = await store.find_by_id(account.id)
        assert stored is not None
        assert stored.credentials.phone_number_verified is False

    @pytest.mark.asyncio
    async def test_unknown_account(self, otp_manager: OtpChallengeManager) -> None:
        with pytest.raises(AccountNotFoundError) as exc_info:
            await otp_manager.verify("missing", "123456")

        assert exc_info.value.http_status == 404

    @pytest.mark.asyncio
    async def test_clear_drops_pending_code(
        self,
        otp_manager: OtpChallengeManager,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
    ) -> None:
        account = await account_factory()
        await otp_manager.issue(account.id, OtpPurpose.LOGIN_CHALLENGE)
        code = await pending_code(store, account.id)

        await otp_manager.clear(account.id)

        with pytest.raises(OtpNotPendingError):
            await otp_manager.verify(account.id, code)
