"""Backup codes for MFA recovery.

Single-use recovery codes stored on the account's Credentials record.
A consumed code is kept, flagged ``used`` with a timestamp, until the
stored list reaches its cap and used entries are pruned.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..audit.events import AuthEventType, build_event
from ..config import BackupCodeConfig
from ..exceptions import (
    AccountNotFoundError,
    BackupCodeInvalidError,
    BackupCodeLimitError,
    TwoFactorNotEnabledError,
)
from ..models import BackupCode

if TYPE_CHECKING:
    from ..ports import IAuthAuditStore, ICredentialStore

logger = logging.getLogger(__name__)


class BackupCodeVault:
    """Generates and consumes single-use recovery codes.

    Example:
        ```python
        vault = BackupCodeVault(credential_store=store)

        code = await vault.generate(account.id)   # e.g. "Q7K2M9XW4B"
        assert await vault.verify(account.id, code)
        assert not await vault.verify(account.id, code)
        ```
    """

    ALPHABET = string.ascii_uppercase + string.digits

    def __init__(
        self,
        *,
        credential_store: ICredentialStore,
        config: BackupCodeConfig | None = None,
        audit_store: IAuthAuditStore | None = None,
    ) -> None:
        """Initialize the vault.

        Args:
            credential_store: Store holding the backup code list.
            config: Backup code configuration.
            audit_store: Optional audit sink.
        """
        self.credential_store = credential_store
        self.config = config or BackupCodeConfig()
        self.audit_store = audit_store

    def _generate_code(self) -> str:
        return "".join(
            secrets.choice(self.ALPHABET) for _ in range(self.config.code_length)
        )

    def _make_room(self, codes: list[BackupCode]) -> list[BackupCode]:
        """Drop used codes, oldest first, until one more entry fits."""
        limit = self.config.max_stored_codes
        kept = list(codes)
        for entry in codes:
            if len(kept) < limit:
                break
            if entry.used:
                kept.remove(entry)
        if len(kept) >= limit:
            raise BackupCodeLimitError(limit)
        return kept

    async def generate(self, account_id: str) -> str:
        """Generate one backup code and append it to the account's list.

        Args:
            account_id: Account identifier.

        Returns:
            The plaintext code, shown to the user once.

        Raises:
            AccountNotFoundError: Unknown account.
            TwoFactorNotEnabledError: TOTP is not enabled.
            BackupCodeLimitError: The list is full of unused codes.
        """
        account = await self.credential_store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        if not account.credentials.two_factor_enabled:
            raise TwoFactorNotEnabledError("2FA is not enabled for this account")

        codes = self._make_room(account.credentials.backup_codes)
        code = self._generate_code()
        codes.append(BackupCode(code=code, created_at=datetime.now(timezone.utc)))
        await self.credential_store.update_credentials(
            account_id, {"backup_codes": codes}
        )

        logger.info("Backup code generated", extra={"account_id": account_id})
        await self._audit(AuthEventType.BACKUP_CODE_GENERATED, account_id)
        return code

    async def verify(self, account_id: str, submitted_code: str) -> bool:
        """Consume a backup code.

        Returns:
            True if an unused matching code was found and is now marked used;
            False otherwise, with nothing changed.

        Raises:
            AccountNotFoundError: Unknown account.
        """
        account = await self.credential_store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        credentials = account.credentials

        if not credentials.two_factor_enabled or not credentials.backup_codes:
            logger.warning(
                "Backup code rejected: 2FA not enabled or no codes",
                extra={"account_id": account_id},
            )
            return False

        codes = list(credentials.backup_codes)
        match = next(
            (
                entry
                for entry in codes
                if not entry.used
                and secrets.compare_digest(entry.code.encode(), submitted_code.encode())
            ),
            None,
        )
        if match is None:
            logger.warning(
                "Backup code rejected: not found or already used",
                extra={"account_id": account_id},
            )
            await self._audit(AuthEventType.MFA_FAILED, account_id, success=False)
            return False

        match.used = True
        match.used_at = datetime.now(timezone.utc)
        await self.credential_store.update_credentials(
            account_id, {"backup_codes": codes}
        )

        logger.info("Backup code used", extra={"account_id": account_id})
        await self._audit(AuthEventType.BACKUP_CODE_USED, account_id)
        return True

    async def get_remaining_count(self, account_id: str) -> int:
        """Number of unused backup codes."""
        account = await self.credential_store.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return sum(1 for entry in account.credentials.backup_codes if not entry.used)

    async def _audit(
        self, event_type: AuthEventType, account_id: str, *, success: bool = True
    ) -> None:
        if self.audit_store is None:
            return
        event = build_event(
            event_type,
            account_id,
            error=None if success else BackupCodeInvalidError(),
            metadata={"method": "backup_code"},
        )
        await self.audit_store.record(event)


__all__: list[str] = ["BackupCodeVault"]
