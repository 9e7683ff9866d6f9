"""Bank transaction model."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

# Day bucket for transactions whose recorded date could not be parsed
UNDATED_DAY_KEY = "undated"

DEFAULT_TRANSACTION_TYPE = "none"


@dataclass
class Transaction:
    """Canonical bank transaction.

    Attributes:
        label: Operation description as sent upstream.
        type: Operation type tag derived from the label ("none" if unknown).
        date: Recorded date, ISO 8601 with offset (None if unparsable).
        date_operation: Value date, ISO 8601 with offset.
        date_import: UTC time of the import run, ISO 8601 with "Z".
        currency: Currency of the owning account.
        vendor_account_id: vendor_id of the owning account.
        amount: Signed amount (negative for debits).
        vendor_id: Synthesized natural key "{account}_{day}_{ordinal}".
        category_id: Category placeholder filled before categorization.
        category_probability: Confidence attached to category_id.
        warnings: Normalization problems met while building this record.
    """

    label: str
    type: str
    date: Optional[str]
    date_operation: Optional[str]
    date_import: str
    currency: Optional[str]
    vendor_account_id: str
    amount: Decimal
    vendor_id: Optional[str] = None
    category_id: str = "0"
    category_probability: float = 1.0
    warnings: list[str] = field(default_factory=list)

    @property
    def day_key(self) -> str:
        """Calendar day of the recorded date, or the undated bucket."""
        if not self.date:
            return UNDATED_DAY_KEY
        return self.date[:10]

    def to_document(self) -> dict[str, object]:
        """Render the transaction as a store document."""
        return {
            "label": self.label,
            "type": self.type,
            "cozyCategoryId": self.category_id,
            "cozyCategoryProba": self.category_probability,
            "date": self.date,
            "dateOperation": self.date_operation,
            "dateImport": self.date_import,
            "currency": self.currency,
            "vendorAccountId": self.vendor_account_id,
            "amount": float(self.amount),
            "vendorId": self.vendor_id,
        }

    def __repr__(self) -> str:
        return (
            f"Transaction(vendor_id={self.vendor_id!r}, "
            f"label={self.label[:30]!r}, amount={self.amount})"
        )
