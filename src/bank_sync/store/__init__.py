"""Persistent store for accounts, transactions and balance histories."""

from bank_sync.store.base import BaseStore, ReconcileResult, StoreError
from bank_sync.store.sqlite_store import SQLiteStore

__all__ = [
    "BaseStore",
    "ReconcileResult",
    "SQLiteStore",
    "StoreError",
]
