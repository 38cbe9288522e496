"""SQLAlchemy credential store.

One ``accounts`` row per Account with its Credentials inlined; backup
codes live in a JSON column. Works with any async driver (asyncpg,
aiosqlite).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..exceptions import AccountAlreadyExistsError, AccountNotFoundError
from ..models import CREDENTIAL_FIELDS, Account, BackupCode, Credentials, OtpPurpose
from ..ports import ICredentialStore

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    # Returns an async context manager yielding an AsyncSession
    AsyncSessionFactory = Callable[[], Any]

logger = logging.getLogger(__name__)

_ACCOUNT_FIELDS = frozenset({"email", "display_name", "phone_number", "org_unit_id"})


class Base(DeclarativeBase):
    """Declarative base for the mfa-core tables."""


class AccountModel(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(255))
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    org_unit_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    password_hash: Mapped[str] = mapped_column(String(255))
    login_attempts: Mapped[int] = mapped_column(Integer, default=0)
    locked_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    phone_number_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_sms_2fa_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    sms_otp_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    sms_otp_code_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sms_otp_purpose: Mapped[str | None] = mapped_column(String(32), nullable=True)
    two_factor_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    two_factor_secret: Mapped[str | None] = mapped_column(String(64), nullable=True)
    backup_codes: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; stored values are always UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_column(name: str, value: Any) -> Any:
    if name == "backup_codes":
        return [
            code.to_dict() if isinstance(code, BackupCode) else dict(code)
            for code in value or []
        ]
    if name == "sms_otp_purpose" and isinstance(value, OtpPurpose):
        return value.value
    return value


def _to_account(row: AccountModel) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        display_name=row.display_name,
        phone_number=row.phone_number,
        org_unit_id=row.org_unit_id,
        credentials=Credentials(
            password_hash=row.password_hash,
            login_attempts=row.login_attempts or 0,
            locked_until=_aware(row.locked_until),
            is_email_verified=bool(row.is_email_verified),
            phone_number_verified=bool(row.phone_number_verified),
            is_sms_2fa_enabled=bool(row.is_sms_2fa_enabled),
            sms_otp_code=row.sms_otp_code,
            sms_otp_code_expires_at=_aware(row.sms_otp_code_expires_at),
            sms_otp_purpose=(
                OtpPurpose(row.sms_otp_purpose) if row.sms_otp_purpose else None
            ),
            two_factor_enabled=bool(row.two_factor_enabled),
            two_factor_secret=row.two_factor_secret,
            backup_codes=[BackupCode.from_dict(c) for c in row.backup_codes or []],
            last_login=_aware(row.last_login),
        ),
    )


class SQLAlchemyCredentialStore(ICredentialStore):
    """ICredentialStore on an async SQLAlchemy session factory.

    Each call runs in its own session and commits before returning.

    Example:
        ```python
        engine = create_async_engine("postgresql+asyncpg://...")
        store = SQLAlchemyCredentialStore(
            async_sessionmaker(engine, expire_on_commit=False)
        )
        ```
    """

    def __init__(self, session_factory: AsyncSessionFactory) -> None:
        self._session_factory = session_factory

    async def find_by_identifier(self, identifier: str) -> Account | None:
        stmt = select(AccountModel).where(
            func.lower(AccountModel.email) == identifier.strip().lower()
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _to_account(row) if row is not None else None

    async def find_by_id(self, account_id: str) -> Account | None:
        async with self._session_factory() as session:
            row = await session.get(AccountModel, account_id)
            return _to_account(row) if row is not None else None

    async def create(self, account: Account) -> None:
        credentials = account.credentials
        row = AccountModel(
            id=account.id,
            email=account.email.strip().lower(),
            display_name=account.display_name,
            phone_number=account.phone_number,
            org_unit_id=account.org_unit_id,
            **{
                name: _to_column(name, getattr(credentials, name))
                for name in CREDENTIAL_FIELDS
            },
        )
        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning(
                    "Account creation rejected: duplicate email or id",
                    extra={"account_id": account.id},
                )
                raise AccountAlreadyExistsError() from e

    async def update_credentials(
        self, account_id: str, fields: Mapping[str, Any]
    ) -> None:
        unknown = set(fields) - CREDENTIAL_FIELDS
        if unknown:
            raise ValueError(f"Unknown credential fields: {sorted(unknown)}")
        await self._update(
            account_id, {name: _to_column(name, v) for name, v in fields.items()}
        )

    async def update_account(self, account_id: str, fields: Mapping[str, Any]) -> None:
        unknown = set(fields) - _ACCOUNT_FIELDS
        if unknown:
            raise ValueError(f"Unknown account fields: {sorted(unknown)}")
        values = dict(fields)
        if "email" in values:
            values["email"] = values["email"].strip().lower()
        try:
            await self._update(account_id, values)
        except IntegrityError as e:
            raise AccountAlreadyExistsError() from e

    async def increment_login_attempts(self, account_id: str) -> int:
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .values(login_attempts=AccountModel.login_attempts + 1)
            .returning(AccountModel.login_attempts)
        )
        async with self._session_factory() as session:
            attempts = (await session.execute(stmt)).scalar_one_or_none()
            if attempts is None:
                await session.rollback()
                raise AccountNotFoundError(account_id)
            await session.commit()
            return int(attempts)

    async def _update(self, account_id: str, values: dict[str, Any]) -> None:
        if not values:
            return
        stmt = (
            update(AccountModel).where(AccountModel.id == account_id).values(**values)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:  # type: ignore[attr-defined]
                await session.rollback()
                raise AccountNotFoundError(account_id)
            await session.commit()


__all__: list[str] = ["Base", "AccountModel", "SQLAlchemyCredentialStore"]
