"""Credential store implementations.

The SQLAlchemy store is imported from ``mfa_core.stores.sqlalchemy``.
"""

from __future__ import annotations

from .memory import InMemoryCredentialStore

__all__: list[str] = ["InMemoryCredentialStore"]
