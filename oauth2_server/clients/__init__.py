"""Expose storage and identity backends."""

from .identity_directory import IdentityDirectory, SQLiteIdentityDirectory
from .sqlite_store import ItemExistsError, SQLiteStore

__all__ = [
    "IdentityDirectory",
    "ItemExistsError",
    "SQLiteIdentityDirectory",
    "SQLiteStore",
]
