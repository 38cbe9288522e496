"""Tests for the FastAPI auth router (optional; requires mfa-core[fastapi])."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

import httpx
import pyotp
from fastapi import FastAPI, HTTPException, Request

from mfa_core import (
    AuthenticationCoordinator,
    BackupCodeVault,
    InMemoryCredentialStore,
    InMemoryTokenIssuer,
    OtpChallengeManager,
    OtpConfig,
    SmsTwoFactorService,
    TotpConfig,
    TotpManager,
)
from mfa_core.contrib.fastapi import create_auth_router
from mfa_core.gateways import RecordingSmsGateway
from mfa_core.models import Account

PASSWORD = "correct-password"

AccountFactory = Callable[..., Awaitable[Account]]


@pytest.fixture
def app(
    coordinator: AuthenticationCoordinator,
    totp_manager: TotpManager,
    vault: BackupCodeVault,
    sms_service: SmsTwoFactorService,
    token_issuer: InMemoryTokenIssuer,
) -> FastAPI:
    def current_account_id(request: Request) -> str:
        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        account = token_issuer.resolve(token) if scheme == "Bearer" else None
        if account is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return account.id

    app = FastAPI()
    app.include_router(
        create_auth_router(
            coordinator=coordinator,
            totp_manager=totp_manager,
            backup_vault=vault,
            current_account_id=current_account_id,
            sms_service=sms_service,
        )
    )
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def login_headers(client: httpx.AsyncClient, email: str) -> dict[str, str]:
    response = await client.post(
        "/auth/login", json={"identifier": email, "password": PASSWORD}
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


class TestLoginRoutes:
    @pytest.mark.asyncio
    async def test_login_returns_tokens_and_account(
        self, client: httpx.AsyncClient, account_factory: AccountFactory
    ) -> None:
        account = await account_factory(email="ana@example.com")

        response = await client.post(
            "/auth/login",
            json={"identifier": "ana@example.com", "password": PASSWORD},
            headers={"X-Forwarded-For": "203.0.113.7"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "Bearer"
        assert body["account"]["id"] == account.id
        assert "password_hash" not in body["account"]

    @pytest.mark.asyncio
    async def test_wrong_password_is_401_with_bearer_challenge(
        self, client: httpx.AsyncClient, account_factory: AccountFactory
    ) -> None:
        await account_factory(email="ana@example.com")

        response = await client.post(
            "/auth/login", json={"identifier": "ana@example.com", "password": "nope"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_missing_fields_are_422(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/auth/login", json={"identifier": "x"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_sms_challenge_then_verify_otp(
        self,
        client: httpx.AsyncClient,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
        sms_gateway: RecordingSmsGateway,
    ) -> None:
        account = await account_factory(
            email="ana@example.com", phone_number_verified=True, is_sms_2fa_enabled=True
        )

        response = await client.post(
            "/auth/login", json={"identifier": "ana@example.com", "password": PASSWORD}
        )
        assert response.status_code == 200
        assert response.json() == {
            "message": "SMS OTP verification required.",
            "sms_otp_required": True,
            "account_id": account.id,
        }
        assert sms_gateway.last is not None

        stored = await store.find_by_id(account.id)
        assert stored is not None
        code = stored.credentials.sms_otp_code

        response = await client.post(
            "/auth/login/verify-otp", json={"account_id": account.id, "code": code}
        )
        assert response.status_code == 200
        assert response.json()["account"]["email"] == "ana@example.com"

        replay = await client.post(
            "/auth/login/verify-otp", json={"account_id": account.id, "code": code}
        )
        assert replay.status_code == 401
        assert replay.json()["detail"] == "No OTP pending"

    @pytest.mark.asyncio
    async def test_verify_otp_rejects_malformed_code(
        self, client: httpx.AsyncClient
    ) -> None:
        response = await client.post(
            "/auth/login/verify-otp", json={"account_id": "a1", "code": "12ab"}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_refresh_and_logout(
        self, client: httpx.AsyncClient, account_factory: AccountFactory
    ) -> None:
        await account_factory(email="ana@example.com")
        login = await client.post(
            "/auth/login", json={"identifier": "ana@example.com", "password": PASSWORD}
        )
        refresh_token = login.json()["refresh_token"]

        refreshed = await client.post(
            "/auth/token/refresh", json={"refresh_token": refresh_token}
        )
        assert refreshed.status_code == 200
        new_refresh = refreshed.json()["refresh_token"]
        assert new_refresh != refresh_token

        stale = await client.post(
            "/auth/token/refresh", json={"refresh_token": refresh_token}
        )
        assert stale.status_code == 401

        logout = await client.post("/auth/logout", json={"refresh_token": new_refresh})
        assert logout.json() == {"success": True}


class TestTotpRoutes:
    @pytest.mark.asyncio
    async def test_requires_authentication(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/auth/2fa/generate")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_enrollment_flow(
        self, client: httpx.AsyncClient, account_factory: AccountFactory
    ) -> None:
        await account_factory(email="ana@example.com")
        headers = await login_headers(client, "ana@example.com")

        generated = await client.post("/auth/2fa/generate", headers=headers)
        assert generated.status_code == 200
        secret = generated.json()["secret"]
        assert generated.json()["provisioning_uri"].startswith("otpauth://totp/")

        enabled = await client.post(
            "/auth/2fa/enable", json={"code": pyotp.TOTP(secret).now()}, headers=headers
        )
        assert enabled.json() == {"success": True}

        verified = await client.post(
            "/auth/2fa/verify", json={"code": pyotp.TOTP(secret).now()}, headers=headers
        )
        assert verified.json() == {"is_valid": True}

    @pytest.mark.asyncio
    async def test_enable_without_secret_is_400(
        self, client: httpx.AsyncClient, account_factory: AccountFactory
    ) -> None:
        await account_factory(email="ana@example.com")
        headers = await login_headers(client, "ana@example.com")

        response = await client.post(
            "/auth/2fa/enable", json={"code": "123456"}, headers=headers
        )

        assert response.status_code == 400
        assert "WWW-Authenticate" not in response.headers


class TestBackupCodeRoutes:
    @pytest.mark.asyncio
    async def test_generate_and_consume(
        self, client: httpx.AsyncClient, account_factory: AccountFactory
    ) -> None:
        await account_factory(
            email="ana@example.com",
            two_factor_enabled=True,
            two_factor_secret=pyotp.random_base32(),
        )
        headers = await login_headers(client, "ana@example.com")

        generated = await client.post("/auth/backup-codes", headers=headers)
        assert generated.status_code == 200
        code = generated.json()["code"]
        assert len(code) == 10

        first = await client.post(
            "/auth/backup-codes/verify", json={"code": code}, headers=headers
        )
        second = await client.post(
            "/auth/backup-codes/verify", json={"code": code}, headers=headers
        )
        assert first.json() == {"is_valid": True}
        assert second.json() == {"is_valid": False}

    @pytest.mark.asyncio
    async def test_generate_requires_two_factor(
        self, client: httpx.AsyncClient, account_factory: AccountFactory
    ) -> None:
        await account_factory(email="ana@example.com")
        headers = await login_headers(client, "ana@example.com")

        response = await client.post("/auth/backup-codes", headers=headers)

        assert response.status_code == 400


class TestSmsRoutes:
    @pytest.mark.asyncio
    async def test_phone_verification_and_enable(
        self,
        client: httpx.AsyncClient,
        account_factory: AccountFactory,
        store: InMemoryCredentialStore,
        sms_gateway: RecordingSmsGateway,
    ) -> None:
        account = await account_factory(email="ana@example.com", phone_number=None)
        headers = await login_headers(client, "ana@example.com")

        too_early = await client.post("/auth/sms/enable", headers=headers)
        assert too_early.status_code == 400

        initiated = await client.post(
            "/auth/sms/initiate",
            json={"phone_number": "+306912345678"},
            headers=headers,
        )
        assert initiated.status_code == 200
        assert sms_gateway.last is not None
        assert sms_gateway.last.phone_e164 == "+306912345678"

        stored = await store.find_by_id(account.id)
        assert stored is not None
        verified = await client.post(
            "/auth/sms/verify",
            json={"code": stored.credentials.sms_otp_code},
            headers=headers,
        )
        assert verified.status_code == 200

        enabled = await client.post("/auth/sms/enable", headers=headers)
        assert enabled.json() == {"success": True}

        disabled = await client.post("/auth/sms/disable", headers=headers)
        assert disabled.json() == {"success": True}

    @pytest.mark.asyncio
    async def test_rejects_non_e164_number(
        self, client: httpx.AsyncClient, account_factory: AccountFactory
    ) -> None:
        await account_factory(email="ana@example.com")
        headers = await login_headers(client, "ana@example.com")

        response = await client.post(
            "/auth/sms/initiate", json={"phone_number": "6912345678"}, headers=headers
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_routes_omitted_without_sms_service(
        self,
        coordinator: AuthenticationCoordinator,
        totp_manager: TotpManager,
        vault: BackupCodeVault,
    ) -> None:
        router = create_auth_router(
            coordinator=coordinator,
            totp_manager=totp_manager,
            backup_vault=vault,
            current_account_id=lambda: "a1",
        )

        paths = {route.path for route in router.routes}  # type: ignore[attr-defined]
        assert "/auth/login" in paths
        assert not any(path.startswith("/auth/sms") for path in paths)


class TestCodeLengthConfig:
    def test_rejects_totp_digits_schemas_cannot_accept(
        self,
        coordinator: AuthenticationCoordinator,
        store: InMemoryCredentialStore,
        vault: BackupCodeVault,
    ) -> None:
        totp_manager = TotpManager(credential_store=store, config=TotpConfig(digits=8))

        with pytest.raises(ValueError, match="TotpConfig.digits=8"):
            create_auth_router(
                coordinator=coordinator,
                totp_manager=totp_manager,
                backup_vault=vault,
                current_account_id=lambda: "a1",
            )

    def test_rejects_otp_code_length_schemas_cannot_accept(
        self,
        coordinator: AuthenticationCoordinator,
        totp_manager: TotpManager,
        vault: BackupCodeVault,
        store: InMemoryCredentialStore,
        sms_gateway: RecordingSmsGateway,
    ) -> None:
        otp_manager = OtpChallengeManager(
            credential_store=store,
            sms_gateway=sms_gateway,
            config=OtpConfig(code_length=4),
        )
        sms_service = SmsTwoFactorService(
            credential_store=store, otp_manager=otp_manager
        )

        with pytest.raises(ValueError, match="OtpConfig.code_length=4"):
            create_auth_router(
                coordinator=coordinator,
                totp_manager=totp_manager,
                backup_vault=vault,
                current_account_id=lambda: "a1",
                sms_service=sms_service,
            )
