"""Transaction normalizer and natural key synthesis.

Upstream operations carry no durable identifier, so each transaction gets a
key built from its account, the calendar day of its recorded date and its
position among that account's operations of the same day:

    "{account.vendor_id}_{YYYY-MM-DD}_{ordinal}"

The key is reproducible across runs as long as the upstream returns the
operations of one account and day in the same order every time. The upstream
does not document that ordering; it is a precondition of idempotent
re-imports, not something this module can check.
"""

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional

from bank_sync.config import Config
from bank_sync.models.account import Account
from bank_sync.models.raw import NormalizationError, RawTransactionRecord
from bank_sync.models.transaction import Transaction
from bank_sync.processing.classifier import LabelClassifier
from bank_sync.utils.amount_utils import ZERO, parse_amount
from bank_sync.utils.date_utils import Clock, parse_datetime, to_iso, to_utc_iso, utc_now
from bank_sync.utils.logging_config import get_logger

logger = get_logger(__name__)


def build_vendor_id(account_vendor_id: str, day: str, ordinal: int) -> str:
    """Build a transaction natural key."""
    return f"{account_vendor_id}_{day}_{ordinal}"


def assign_vendor_ids(account: Account, transactions: list[Transaction]) -> None:
    """Assign natural keys to one account's transactions, in place.

    Transactions are grouped by the day of their recorded date; within a day
    the ordinal follows the list order, starting at 0. Value dates play no
    part.

    Args:
        account: Owning account.
        transactions: The account's transactions in upstream order.
    """
    next_ordinal: dict[str, int] = defaultdict(int)
    for txn in transactions:
        day = txn.day_key
        txn.vendor_id = build_vendor_id(account.vendor_id, day, next_ordinal[day])
        next_ordinal[day] += 1


class TransactionNormalizer:
    """Normalizes one account's upstream operations into Transactions.

    Each record is normalized on its own (amount, dates, type), then natural
    keys are assigned over the whole list. Output order is input order.
    """

    def __init__(self, config: Config, clock: Clock = utc_now):
        """Initialize normalizer.

        Args:
            config: Application configuration.
            clock: Source of the import timestamp.
        """
        self.config = config
        self.clock = clock
        self.classifier = LabelClassifier(
            config.transaction_rules, config.default_transaction_type
        )
        self.tz = config.tzinfo

    def normalize(self, account: Account, records: Iterable[object]) -> list[Transaction]:
        """Normalize the operations of one account.

        Args:
            account: Owning account.
            records: Upstream operation records, in upstream order.

        Returns:
            One Transaction per record, same order, with vendor_id set.

        Raises:
            NormalizationError: If a record is not an object, or in strict
                mode if an amount or recorded date cannot be parsed.
        """
        date_import = to_utc_iso(self.clock())
        transactions = [
            self._normalize_record(account, record, date_import) for record in records
        ]
        assign_vendor_ids(account, transactions)

        undated = sum(1 for t in transactions if t.date is None)
        if undated:
            logger.warning(f"Account {account.vendor_id}: {undated} transactions without a usable date")
        logger.info(f"Normalized {len(transactions)} transactions for account {account.vendor_id}")

        return transactions

    def _normalize_record(
        self,
        account: Account,
        data: object,
        date_import: str,
    ) -> Transaction:
        raw = data if isinstance(data, RawTransactionRecord) else RawTransactionRecord.from_dict(data)
        warnings: list[str] = []
        strict = self.config.sync.strict

        try:
            amount = parse_amount(raw.amount)
        except NormalizationError:
            if strict:
                raise
            amount = ZERO
            warnings.append(f"unparsable amount {raw.amount!r}, using 0")

        recorded = self._parse_date(raw.recorded_date)
        if recorded is None:
            if strict:
                raise NormalizationError(
                    f"Cannot parse recorded date {raw.recorded_date!r} of '{raw.label}'",
                    field="rdate",
                )
            warnings.append(f"unparsable recorded date {raw.recorded_date!r}")

        value = self._parse_date(raw.value_date)
        if value is None:
            value = recorded

        for warning in warnings:
            logger.warning(f"Account {account.vendor_id}, '{raw.label}': {warning}")

        return Transaction(
            label=raw.label,
            type=self.classifier.classify(raw.label),
            date=to_iso(recorded) if recorded else None,
            date_operation=to_iso(value) if value else None,
            date_import=date_import,
            currency=account.currency,
            vendor_account_id=account.vendor_id,
            amount=amount,
            warnings=warnings,
        )

    def _parse_date(self, raw: object) -> Optional[datetime]:
        if raw is None:
            return None
        try:
            return parse_datetime(raw, self.tz)
        except ValueError:
            return None


def normalize_transactions(
    account: Account,
    records: Iterable[object],
    config: Config,
    clock: Clock = utc_now,
) -> list[Transaction]:
    """Convenience function to normalize one account's operations.

    Args:
        account: Owning account.
        records: Upstream operation records, in upstream order.
        config: Application configuration.
        clock: Source of the import timestamp.

    Returns:
        One Transaction per record, same order, with vendor_id set.
    """
    return TransactionNormalizer(config, clock).normalize(account, records)
