"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from mfa_core import (
    Account,
    AuthenticationCoordinator,
    BackupCodeVault,
    Credentials,
    InMemoryAuthAuditStore,
    InMemoryCredentialStore,
    InMemoryTokenIssuer,
    OtpChallengeManager,
    PasswordHasher,
    SmsTwoFactorService,
    TotpManager,
)
from mfa_core.gateways import RecordingSmsGateway

PASSWORD = "correct-password"

AccountFactory = Callable[..., Awaitable[Account]]


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    """Low-cost bcrypt hasher to keep the suite fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture(scope="session")
def password_hash(hasher: PasswordHasher) -> str:
    return hasher.hash(PASSWORD)


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def sms_gateway() -> RecordingSmsGateway:
    return RecordingSmsGateway()


@pytest.fixture
def audit_store() -> InMemoryAuthAuditStore:
    return InMemoryAuthAuditStore()


@pytest.fixture
def token_issuer() -> InMemoryTokenIssuer:
    return InMemoryTokenIssuer()


@pytest.fixture
def otp_manager(
    store: InMemoryCredentialStore,
    sms_gateway: RecordingSmsGateway,
    audit_store: InMemoryAuthAuditStore,
) -> OtpChallengeManager:
    return OtpChallengeManager(
        credential_store=store, sms_gateway=sms_gateway, audit_store=audit_store
    )


@pytest.fixture
def coordinator(
    store: InMemoryCredentialStore,
    token_issuer: InMemoryTokenIssuer,
    otp_manager: OtpChallengeManager,
    hasher: PasswordHasher,
    audit_store: InMemoryAuthAuditStore,
) -> AuthenticationCoordinator:
    return AuthenticationCoordinator(
        credential_store=store,
        token_issuer=token_issuer,
        otp_manager=otp_manager,
        password_hasher=hasher,
        audit_store=audit_store,
    )


@pytest.fixture
def totp_manager(
    store: InMemoryCredentialStore, audit_store: InMemoryAuthAuditStore
) -> TotpManager:
    return TotpManager(credential_store=store, audit_store=audit_store)


@pytest.fixture
def vault(
    store: InMemoryCredentialStore, audit_store: InMemoryAuthAuditStore
) -> BackupCodeVault:
    return BackupCodeVault(credential_store=store, audit_store=audit_store)


@pytest.fixture
def sms_service(
    store: InMemoryCredentialStore,
    otp_manager: OtpChallengeManager,
    audit_store: InMemoryAuthAuditStore,
) -> SmsTwoFactorService:
    return SmsTwoFactorService(
        credential_store=store, otp_manager=otp_manager, audit_store=audit_store
    )


@pytest.fixture
def account_factory(
    store: InMemoryCredentialStore, password_hash: str
) -> AccountFactory:
    """Create and store an account; keyword arguments override Credentials fields."""
    counter = 0

    async def create(
        *,
        email: str | None = None,
        phone_number: str | None = "+15551234567",
        **credential_fields: Any,
    ) -> Account:
        nonlocal counter
        counter += 1
        credential_fields.setdefault("is_email_verified", True)
        credential_fields.setdefault("password_hash", password_hash)
        account = Account(
            id=f"account-{counter}",
            email=email or f"user{counter}@example.com",
            display_name=f"User {counter}",
            phone_number=phone_number,
            credentials=Credentials(**credential_fields),
        )
        await store.create(account)
        return account

    return create
