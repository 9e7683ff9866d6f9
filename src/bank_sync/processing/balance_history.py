"""Merges the day's account balances into yearly balance histories."""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, tzinfo
from typing import Optional, Sequence

from bank_sync.models.account import Account
from bank_sync.models.balance_history import BalanceHistory
from bank_sync.store.base import BaseStore
from bank_sync.utils.date_utils import Clock, utc_now
from bank_sync.utils.logging_config import get_logger

logger = get_logger(__name__)


class BalanceHistoryMerger:
    """Adds today's balance of each persisted account to its yearly history.

    Each account gets its own document: the stored one for the current year
    if any, else a new empty one. Only today's entry is written, so earlier
    days are never altered and re-running on the same day converges on the
    latest balance.
    """

    def __init__(
        self,
        store: BaseStore,
        clock: Clock = utc_now,
        tz: Optional[tzinfo] = None,
        max_workers: int = 8,
    ):
        """Initialize merger.

        Args:
            store: Store holding the balance histories.
            clock: Source of the current time.
            tz: Timezone defining "today" (None = local time).
            max_workers: Maximum concurrent history lookups.
        """
        self.store = store
        self.clock = clock
        self.tz = tz
        self.max_workers = max_workers

    def today(self) -> date:
        """Current calendar date in the merger's timezone."""
        return self.clock().astimezone(self.tz).date()

    def get_balance_history(self, year: int, account_id: str) -> BalanceHistory:
        """Fetch the history of one account for one year.

        Args:
            year: Calendar year.
            account_id: Store identifier of the account.

        Returns:
            The stored document, or an empty one for that year and account.
        """
        history = self.store.find_balance_history(year, account_id)
        if history is None:
            logger.debug(f"No balance history for account {account_id} in {year}, starting one")
            return BalanceHistory.empty(year, account_id)
        return history

    @staticmethod
    def merge_balance(history: BalanceHistory, account: Account, day: date) -> BalanceHistory:
        """Write an account's balance for one day into its history.

        Args:
            history: Document to update in place.
            account: Account whose balance was observed.
            day: Observation day.

        Returns:
            The same document.
        """
        history.set_balance(day.isoformat(), account.balance)
        return history

    def fetch_balance(self, account: Account, day: date) -> BalanceHistory:
        """Fetch and update the history of one persisted account.

        Raises:
            ValueError: If the account has no store identifier.
        """
        if not account.id:
            raise ValueError(f"Account {account.vendor_id} has not been persisted")
        history = self.get_balance_history(day.year, account.id)
        return self.merge_balance(history, account, day)

    def fetch_balances(self, accounts: Sequence[Account]) -> list[BalanceHistory]:
        """Fetch and update the histories of persisted accounts concurrently.

        Args:
            accounts: Accounts as returned by the store.

        Returns:
            One history per account, in account order.
        """
        if not accounts:
            return []

        day = self.today()
        workers = min(self.max_workers, len(accounts))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="balances") as executor:
            histories = list(executor.map(lambda account: self.fetch_balance(account, day), accounts))

        logger.info(f"Merged balances of {day.isoformat()} into {len(histories)} histories")
        return histories


def fetch_balances(
    accounts: Sequence[Account],
    store: BaseStore,
    clock: Clock = utc_now,
) -> list[BalanceHistory]:
    """Convenience function to merge today's balances into yearly histories.

    Args:
        accounts: Accounts as returned by the store.
        store: Store holding the balance histories.
        clock: Source of the current time.

    Returns:
        One history per account, in account order.
    """
    return BalanceHistoryMerger(store, clock).fetch_balances(accounts)
