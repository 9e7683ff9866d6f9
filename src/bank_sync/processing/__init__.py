"""Normalization and balance history processing."""

from bank_sync.processing.account_normalizer import AccountNormalizer, normalize_accounts
from bank_sync.processing.balance_history import BalanceHistoryMerger, fetch_balances
from bank_sync.processing.classifier import (
    LabelClassifier,
    classify_account_label,
    classify_transaction_label,
)
from bank_sync.processing.transaction_normalizer import (
    TransactionNormalizer,
    assign_vendor_ids,
    normalize_transactions,
)

__all__ = [
    "AccountNormalizer",
    "normalize_accounts",
    "BalanceHistoryMerger",
    "fetch_balances",
    "LabelClassifier",
    "classify_account_label",
    "classify_transaction_label",
    "TransactionNormalizer",
    "assign_vendor_ids",
    "normalize_transactions",
]
