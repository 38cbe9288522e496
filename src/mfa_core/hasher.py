"""Password hashing utilities.

bcrypt hashing with constant-time verification and transparent cost
upgrade on login. argon2id is available as an optional stronger algorithm.
"""

from __future__ import annotations

from typing import Any, Literal, cast

import bcrypt

from .exceptions import PasswordTooLongError

BCRYPT_MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Password hasher using bcrypt or argon2id.

    Example:
        ```python
        hasher = PasswordHasher()
        hashed = hasher.hash("correct horse")

        if hasher.verify(hashed, "correct horse") and hasher.needs_rehash(hashed):
            await store.update_credentials(
                account_id, {"password_hash": hasher.hash("correct horse")}
            )
        ```
    """

    def __init__(
        self,
        *,
        algorithm: Literal["bcrypt", "argon2id"] = "bcrypt",
        rounds: int = 12,
    ) -> None:
        """Initialize the password hasher.

        Args:
            algorithm: Hashing algorithm (default bcrypt).
            rounds: bcrypt cost factor (default 12).
        """
        self.algorithm = algorithm
        self.rounds = rounds
        self._argon2: Any = None

    def _get_argon2(self) -> Any:
        """Lazy import argon2."""
        if self._argon2 is None:
            try:
                from argon2 import PasswordHasher as Argon2Hasher
            except ImportError as e:
                raise ImportError(
                    "argon2-cffi is required for argon2id hashing. "
                    "Install with: pip install mfa-core[argon2]"
                ) from e
            self._argon2 = Argon2Hasher()
        return self._argon2

    def hash(self, password: str) -> str:
        """Hash a plaintext password.

        Raises:
            PasswordTooLongError: bcrypt password over 72 bytes.
        """
        if self.algorithm == "argon2id":
            return cast("str", self._get_argon2().hash(password))
        if len(password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
            raise PasswordTooLongError(BCRYPT_MAX_PASSWORD_BYTES)
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode(), salt).decode()

    def verify(self, hashed_password: str, password: str) -> bool:
        """Verify a password against a stored hash.

        The algorithm is detected from the hash prefix. Both bcrypt and
        argon2 compare in constant time.

        Returns:
            True if the password matches. Malformed hashes never match,
            and neither do passwords longer than bcrypt can hash.
        """
        if not hashed_password:
            return False
        if hashed_password.startswith("$argon2"):
            return self._verify_argon2id(hashed_password, password)

        if len(password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(password.encode(), hashed_password.encode())
        except ValueError:
            # Invalid hash format or malformed hash
            return False

    def _verify_argon2id(self, hashed_password: str, password: str) -> bool:
        from argon2.exceptions import InvalidHashError, VerificationError

        try:
            return cast("bool", self._get_argon2().verify(hashed_password, password))
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """Check whether a stored hash should be upgraded.

        True when the algorithm differs from the configured one or the
        bcrypt cost is below the configured rounds.
        """
        if hashed_password.startswith("$argon2"):
            if self.algorithm != "argon2id":
                return True
            return cast("bool", self._get_argon2().check_needs_rehash(hashed_password))

        if self.algorithm != "bcrypt":
            return True

        # bcrypt format: $2b$12$...
        parts = hashed_password.split("$")
        if len(parts) >= 3:
            try:
                return int(parts[2]) < self.rounds
            except ValueError:
                return False
        return False


__all__: list[str] = ["PasswordHasher", "BCRYPT_MAX_PASSWORD_BYTES"]
