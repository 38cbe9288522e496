"""In-memory credential store for testing and development."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from ..exceptions import AccountAlreadyExistsError, AccountNotFoundError
from ..models import CREDENTIAL_FIELDS
from ..ports import ICredentialStore

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..models import Account

_ACCOUNT_FIELDS = frozenset({"email", "display_name", "phone_number", "org_unit_id"})


class InMemoryCredentialStore(ICredentialStore):
    """Dict-backed ICredentialStore.

    Accounts are copied on the way in and out, so callers only ever see
    snapshots.

    Note:
        Data is lost on restart. Not suitable for production use.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._email_index: dict[str, str] = {}

    def _get(self, account_id: str) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def find_by_identifier(self, identifier: str) -> Account | None:
        account_id = self._email_index.get(identifier.strip().lower())
        if account_id is None:
            return None
        return copy.deepcopy(self._accounts[account_id])

    async def find_by_id(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        return copy.deepcopy(account) if account is not None else None

    async def create(self, account: Account) -> None:
        email = account.email.strip().lower()
        if email in self._email_index or account.id in self._accounts:
            raise AccountAlreadyExistsError()
        stored = copy.deepcopy(account)
        stored.email = email
        self._accounts[stored.id] = stored
        self._email_index[email] = stored.id

    async def update_credentials(
        self, account_id: str, fields: Mapping[str, Any]
    ) -> None:
        unknown = set(fields) - CREDENTIAL_FIELDS
        if unknown:
            raise ValueError(f"Unknown credential fields: {sorted(unknown)}")
        credentials = self._get(account_id).credentials
        for name, value in fields.items():
            setattr(credentials, name, copy.deepcopy(value))

    async def update_account(self, account_id: str, fields: Mapping[str, Any]) -> None:
        unknown = set(fields) - _ACCOUNT_FIELDS
        if unknown:
            raise ValueError(f"Unknown account fields: {sorted(unknown)}")
        account = self._get(account_id)
        if "email" in fields:
            email = fields["email"].strip().lower()
            if self._email_index.get(email, account_id) != account_id:
                raise AccountAlreadyExistsError()
            del self._email_index[account.email]
            self._email_index[email] = account_id
            fields = {**fields, "email": email}
        for name, value in fields.items():
            setattr(account, name, value)

    async def increment_login_attempts(self, account_id: str) -> int:
        # No await between read and write, so this is atomic on the event loop
        credentials = self._get(account_id).credentials
        credentials.login_attempts += 1
        return credentials.login_attempts

    def clear(self) -> None:
        self._accounts.clear()
        self._email_index.clear()


__all__: list[str] = ["InMemoryCredentialStore"]
