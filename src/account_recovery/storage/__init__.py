"""Durable storage that carries the email and token across page loads."""

from account_recovery.storage.store import (
    EMAIL_KEY,
    TOKEN_KEY,
    DurableStore,
    FileDurableStore,
)

__all__ = ["EMAIL_KEY", "TOKEN_KEY", "DurableStore", "FileDurableStore"]
