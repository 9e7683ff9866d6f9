"""
SQLite-based store implementation.

Tables:
- accounts: one row per upstream account, unique on vendor_id
- transactions: one row per operation, unique on vendor_id
- balance_histories: one row per account and year

Documents are kept as JSON next to the columns used for lookups.
"""

import json
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from bank_sync.models.account import Account
from bank_sync.models.balance_history import BalanceHistory
from bank_sync.models.transaction import Transaction
from bank_sync.store.base import BaseStore, ReconcileResult, StoreError
from bank_sync.utils.logging_config import get_logger

logger = get_logger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


class SQLiteStore(BaseStore):
    """
    SQLite store with upsert-by-natural-key semantics.

    A connection is opened per operation, so the store can be shared by
    the pipeline's worker threads.
    """

    def __init__(self, db_path: Path | str, timeout: float = 30.0):
        """
        Initialize the store and create its schema.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds to wait for a locked database
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    vendor_id TEXT NOT NULL UNIQUE,
                    document TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS transactions (
                    id TEXT PRIMARY KEY,
                    vendor_id TEXT NOT NULL UNIQUE,
                    account_id TEXT NOT NULL,
                    document TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (account_id) REFERENCES accounts(id)
                )
            """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS balance_histories (
                    id TEXT PRIMARY KEY,
                    rev INTEGER NOT NULL,
                    year INTEGER NOT NULL,
                    account_id TEXT NOT NULL,
                    document TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (year, account_id)
                )
            """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_account ON transactions(account_id)"
            )

    # Accounts and transactions

    def save_accounts_and_transactions(
        self,
        accounts: Sequence[Account],
        transactions: Sequence[Transaction],
    ) -> ReconcileResult:
        result = ReconcileResult()
        now = _now()

        with self._transaction() as conn:
            ids_by_vendor_id: dict[str, str] = {}
            for account in accounts:
                account_id, created = self._upsert_account(conn, account, now)
                ids_by_vendor_id[account.vendor_id] = account_id
                result.accounts.append(replace(account, id=account_id))
                result.created += int(created)
                result.updated += int(not created)

            for txn in transactions:
                if not txn.vendor_id:
                    raise StoreError(f"Transaction without vendor_id: {txn!r}")
                account_id = ids_by_vendor_id.get(txn.vendor_account_id)
                if account_id is None:
                    account_id = self._account_id_for(conn, txn.vendor_account_id)
                if account_id is None:
                    raise StoreError(
                        f"Transaction {txn.vendor_id} references unknown account "
                        f"{txn.vendor_account_id}"
                    )
                created = self._upsert_transaction(conn, txn, account_id, now)
                result.transactions.append(txn)
                result.created += int(created)
                result.updated += int(not created)

        logger.info(
            f"Saved {len(result.accounts)} accounts and {len(result.transactions)} transactions "
            f"({result.created} created, {result.updated} updated)"
        )
        return result

    def _account_id_for(self, conn: sqlite3.Connection, vendor_id: str) -> Optional[str]:
        row = conn.execute("SELECT id FROM accounts WHERE vendor_id = ?", (vendor_id,)).fetchone()
        return row["id"] if row else None

    def _upsert_account(
        self, conn: sqlite3.Connection, account: Account, now: str
    ) -> tuple[str, bool]:
        existing_id = self._account_id_for(conn, account.vendor_id)
        account_id = existing_id or _new_id()
        document = json.dumps(replace(account, id=account_id).to_document())

        if existing_id:
            conn.execute(
                "UPDATE accounts SET document = ?, updated_at = ? WHERE id = ?",
                (document, now, account_id),
            )
            return account_id, False

        conn.execute(
            """
            INSERT INTO accounts (id, vendor_id, document, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
        """,
            (account_id, account.vendor_id, document, now, now),
        )
        return account_id, True

    def _upsert_transaction(
        self, conn: sqlite3.Connection, txn: Transaction, account_id: str, now: str
    ) -> bool:
        row = conn.execute(
            "SELECT id, document FROM transactions WHERE vendor_id = ?", (txn.vendor_id,)
        ).fetchone()

        doc = txn.to_document()
        doc["account"] = account_id

        if row:
            # dateImport records the first import, later runs keep it
            previous = json.loads(row["document"])
            doc["dateImport"] = previous.get("dateImport", doc["dateImport"])
            doc["_id"] = row["id"]
            conn.execute(
                "UPDATE transactions SET account_id = ?, document = ?, updated_at = ? WHERE id = ?",
                (account_id, json.dumps(doc), now, row["id"]),
            )
            return False

        txn_id = _new_id()
        doc["_id"] = txn_id
        conn.execute(
            """
            INSERT INTO transactions (id, vendor_id, account_id, document, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """,
            (txn_id, txn.vendor_id, account_id, json.dumps(doc), now, now),
        )
        return True

    def list_accounts(self) -> list[Account]:
        """Return all stored accounts."""
        with self._transaction() as conn:
            rows = conn.execute("SELECT document FROM accounts ORDER BY vendor_id").fetchall()
        return [Account.from_document(json.loads(row["document"])) for row in rows]

    def list_transactions(self, account_id: Optional[str] = None) -> list[dict]:
        """Return stored transaction documents, optionally for one account."""
        with self._transaction() as conn:
            if account_id is None:
                rows = conn.execute("SELECT document FROM transactions ORDER BY vendor_id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT document FROM transactions WHERE account_id = ? ORDER BY vendor_id",
                    (account_id,),
                ).fetchall()
        return [json.loads(row["document"]) for row in rows]

    # Balance histories

    def find_balance_history(self, year: int, account_id: str) -> Optional[BalanceHistory]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id, rev, document FROM balance_histories WHERE year = ? AND account_id = ? LIMIT 1",
                (year, account_id),
            ).fetchone()

        if row is None:
            return None

        doc = json.loads(row["document"])
        doc["_id"] = row["id"]
        doc["_rev"] = str(row["rev"])
        return BalanceHistory.from_document(doc)

    def save_balance_histories(self, histories: Sequence[BalanceHistory]) -> list[BalanceHistory]:
        saved: list[BalanceHistory] = []
        now = _now()

        with self._transaction() as conn:
            for history in histories:
                saved.append(self._upsert_balance_history(conn, history, now))

        logger.info(f"Saved {len(saved)} balance histories")
        return saved

    def _upsert_balance_history(
        self, conn: sqlite3.Connection, history: BalanceHistory, now: str
    ) -> BalanceHistory:
        if history.id:
            row = conn.execute(
                "SELECT id, rev FROM balance_histories WHERE id = ?", (history.id,)
            ).fetchone()
        else:
            row = conn.execute(
                "SELECT id, rev FROM balance_histories WHERE year = ? AND account_id = ?",
                (history.year, history.account_id),
            ).fetchone()

        history_id = row["id"] if row else (history.id or _new_id())
        rev = (row["rev"] + 1) if row else 1
        document = replace(history, id=None, rev=None).to_document()

        if row:
            conn.execute(
                """
                UPDATE balance_histories
                SET rev = ?, year = ?, account_id = ?, document = ?, updated_at = ?
                WHERE id = ?
            """,
                (rev, history.year, history.account_id, json.dumps(document), now, history_id),
            )
        else:
            conn.execute(
                """
                INSERT INTO balance_histories (id, rev, year, account_id, document, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (history_id, rev, history.year, history.account_id, json.dumps(document), now),
            )

        return replace(history, id=history_id, rev=str(rev))
