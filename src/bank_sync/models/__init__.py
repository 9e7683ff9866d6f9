"""Data models for accounts, transactions and balance histories."""

from bank_sync.models.account import Account, AccountType
from bank_sync.models.balance_history import BalanceHistory
from bank_sync.models.label_rule import LabelRule, MatchMode
from bank_sync.models.raw import NormalizationError, RawAccountRecord, RawTransactionRecord
from bank_sync.models.transaction import UNDATED_DAY_KEY, Transaction

__all__ = [
    "Account",
    "AccountType",
    "BalanceHistory",
    "LabelRule",
    "MatchMode",
    "NormalizationError",
    "RawAccountRecord",
    "RawTransactionRecord",
    "Transaction",
    "UNDATED_DAY_KEY",
]
