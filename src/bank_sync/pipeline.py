"""Synchronization pipeline: upstream records to persisted accounts and histories."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from bank_sync.config import Config
from bank_sync.models.account import Account
from bank_sync.models.balance_history import BalanceHistory
from bank_sync.models.transaction import Transaction
from bank_sync.processing.account_normalizer import AccountNormalizer
from bank_sync.processing.balance_history import BalanceHistoryMerger
from bank_sync.processing.transaction_normalizer import TransactionNormalizer
from bank_sync.store.base import BaseStore
from bank_sync.upstream.base import BaseUpstream
from bank_sync.utils.date_utils import Clock, utc_now
from bank_sync.utils.logging_config import LogContext, get_logger

logger = get_logger(__name__)


class PipelineStage(Enum):
    """Stages of one run, in order."""

    STARTED = "started"
    AUTHENTICATED = "authenticated"
    ACCOUNTS_FETCHED = "accounts_fetched"
    ACCOUNTS_NORMALIZED = "accounts_normalized"
    TRANSACTIONS_NORMALIZED = "transactions_normalized"
    RECONCILED = "reconciled"
    BALANCES_MERGED = "balances_merged"
    BALANCES_PERSISTED = "balances_persisted"
    DONE = "done"


@dataclass
class SyncResult:
    """Summary of a pipeline run.

    Attributes:
        stage: Last stage reached.
        accounts: Accounts (persisted ones once reconciliation ran).
        transactions: Normalized transactions.
        histories: Balance histories as saved.
        warnings: Normalization warnings.
        dry_run: Whether persistence was skipped.
    """

    stage: PipelineStage = PipelineStage.STARTED
    accounts: list[Account] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    histories: list[BalanceHistory] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    dry_run: bool = False


class SyncPipeline:
    """Runs one synchronization from the upstream source into the store.

    Stages run in a fixed order and any exception aborts the run. Nothing is
    retried or resumed: the next run derives everything from upstream again
    and the store's upserts make that converge.
    """

    def __init__(
        self,
        config: Config,
        upstream: BaseUpstream,
        store: Optional[BaseStore] = None,
        clock: Clock = utc_now,
        on_stage: Optional[Callable[[PipelineStage], None]] = None,
    ):
        """Initialize pipeline.

        Args:
            config: Application configuration.
            upstream: Source of raw records.
            store: Persistent store (may be None for dry runs).
            clock: Source of the current time.
            on_stage: Called with each stage as it is reached.
        """
        self.config = config
        self.upstream = upstream
        self.store = store
        self.clock = clock
        self.on_stage = on_stage
        self.account_normalizer = AccountNormalizer(config)
        self.transaction_normalizer = TransactionNormalizer(config, clock)

    def _advance(self, result: SyncResult, stage: PipelineStage) -> None:
        result.stage = stage
        logger.debug(f"Pipeline stage: {stage.value}")
        if self.on_stage is not None:
            self.on_stage(stage)

    def run(self, dry_run: bool = False) -> SyncResult:
        """Run the pipeline.

        Args:
            dry_run: Stop after normalization without touching the store.

        Returns:
            Summary of the run.

        Raises:
            LoginFailedError: If the upstream rejects the credentials.
            VendorDownError: If the upstream is down.
            UpstreamError: If the upstream sends unusable data.
            NormalizationError: In strict mode, for an unparsable record.
            StoreError: If the store fails.
        """
        if self.store is None and not dry_run:
            raise ValueError("A store is required unless dry_run is set")

        result = SyncResult(dry_run=dry_run)
        self.account_normalizer.warnings.clear()

        with LogContext(
            logger, "authenticate", upstream=self.upstream.name, login=self.config.upstream.login
        ):
            self.upstream.authenticate()
        self._advance(result, PipelineStage.AUTHENTICATED)

        with LogContext(logger, "list accounts"):
            raw_accounts = self.upstream.list_accounts()
        self._advance(result, PipelineStage.ACCOUNTS_FETCHED)

        accounts = self.account_normalizer.normalize_all(raw_accounts)
        result.accounts = accounts
        result.warnings.extend(self.account_normalizer.warnings)
        self._advance(result, PipelineStage.ACCOUNTS_NORMALIZED)

        with LogContext(logger, "fetch transactions", accounts=len(accounts)):
            transactions = self.fetch_transactions(accounts)
        result.transactions = transactions
        result.warnings.extend(
            f"{t.vendor_id}: {warning}" for t in transactions for warning in t.warnings
        )
        self._advance(result, PipelineStage.TRANSACTIONS_NORMALIZED)

        if dry_run:
            logger.info("Dry run, skipping persistence")
            self._advance(result, PipelineStage.DONE)
            return result

        store: BaseStore = self.store  # type: ignore[assignment]
        with LogContext(logger, "reconcile", store=store.name):
            reconciled = store.save_accounts_and_transactions(accounts, transactions)
        result.accounts = reconciled.accounts
        self._advance(result, PipelineStage.RECONCILED)

        merger = BalanceHistoryMerger(
            store,
            clock=self.clock,
            tz=self.config.tzinfo,
            max_workers=self.config.sync.max_workers,
        )
        with LogContext(logger, "merge balances"):
            histories = merger.fetch_balances(reconciled.accounts)
        self._advance(result, PipelineStage.BALANCES_MERGED)

        with LogContext(logger, "save balances"):
            result.histories = store.save_balance_histories(histories)
        self._advance(result, PipelineStage.BALANCES_PERSISTED)

        self._advance(result, PipelineStage.DONE)
        logger.info(
            f"Synchronized {len(result.accounts)} accounts, {len(result.transactions)} "
            f"transactions, {len(result.histories)} balance histories"
        )
        return result

    def fetch_transactions(self, accounts: list[Account]) -> list[Transaction]:
        """Download and normalize each account's operations concurrently.

        Accounts are independent of one another; within one account the
        upstream order is kept, since natural keys depend on it.

        Args:
            accounts: Normalized accounts.

        Returns:
            All transactions, grouped by account in account order.
        """
        if not accounts:
            return []

        workers = min(self.config.sync.max_workers, len(accounts))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="history") as executor:
            per_account = list(executor.map(self._fetch_account_transactions, accounts))

        return [txn for transactions in per_account for txn in transactions]

    def _fetch_account_transactions(self, account: Account) -> list[Transaction]:
        with LogContext(logger, "fetch history", account_number=account.raw_number):
            records = self.upstream.list_transactions(account.raw_number)
        return self.transaction_normalizer.normalize(account, records)


def run_sync(
    config: Config,
    upstream: BaseUpstream,
    store: Optional[BaseStore] = None,
    dry_run: bool = False,
) -> SyncResult:
    """Convenience function to run one synchronization.

    Args:
        config: Application configuration.
        upstream: Source of raw records.
        store: Persistent store (may be None for dry runs).
        dry_run: Stop after normalization without touching the store.

    Returns:
        Summary of the run.
    """
    return SyncPipeline(config, upstream, store).run(dry_run=dry_run)
