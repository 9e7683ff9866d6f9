"""Abstract base class for the persistent store."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Sequence

from bank_sync.models.account import Account
from bank_sync.models.balance_history import BalanceHistory
from bank_sync.models.transaction import Transaction


class StoreError(Exception):
    """Exception raised when the store rejects or fails an operation."""

    pass


@dataclass
class ReconcileResult:
    """Outcome of saving accounts and transactions.

    Attributes:
        accounts: Accounts as persisted, with their store id set.
        transactions: Transactions as persisted.
        created: Number of records created.
        updated: Number of existing records updated.
    """

    accounts: list[Account] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    created: int = 0
    updated: int = 0


class BaseStore(ABC):
    """Persistent store of accounts, transactions and balance histories.

    Every write is an upsert keyed by a natural key, so submitting the same
    records again updates them instead of creating duplicates. Each call is
    atomic on its own; implementations must accept calls from several
    threads.
    """

    @abstractmethod
    def save_accounts_and_transactions(
        self,
        accounts: Sequence[Account],
        transactions: Sequence[Transaction],
    ) -> ReconcileResult:
        """Upsert accounts by vendor_id, then transactions by vendor_id.

        Args:
            accounts: Normalized accounts.
            transactions: Normalized transactions of those accounts.

        Returns:
            The persisted accounts (with ids) and transactions.

        Raises:
            StoreError: If a transaction references an unknown account.
        """
        pass

    @abstractmethod
    def find_balance_history(self, year: int, account_id: str) -> Optional[BalanceHistory]:
        """Return the balance history of an account for a year, if stored.

        Args:
            year: Calendar year.
            account_id: Store identifier of the account.

        Returns:
            The matching document, or None.
        """
        pass

    @abstractmethod
    def save_balance_histories(self, histories: Sequence[BalanceHistory]) -> list[BalanceHistory]:
        """Upsert balance histories by document id.

        Documents without an id are created and receive one.

        Args:
            histories: Documents to save.

        Returns:
            The saved documents, with id and revision set.
        """
        pass

    @property
    def name(self) -> str:
        """Return store name for logging."""
        return self.__class__.__name__
