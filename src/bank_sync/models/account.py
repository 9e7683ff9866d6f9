"""Bank account model."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class AccountType(str, Enum):
    """Account type tags understood by the banking doctypes."""

    CHECKING = "Checking"
    SAVINGS = "Savings"
    CREDIT_CARD = "CreditCard"
    LOAN = "Loan"
    INVESTMENT = "Investment"
    UNKNOWN = "unknown"


@dataclass
class Account:
    """Canonical bank account.

    Attributes:
        institution_label: Bank name, constant for one upstream integration.
        label: Display name from upstream.
        type: AccountType tag derived from the label.
        balance: Signed balance.
        number: Upstream account number.
        vendor_id: Natural key for upserts (the upstream number).
        raw_number: Upstream account number, unmasked.
        currency: ISO currency code.
        id: Identifier assigned by the store, None until persisted.
    """

    institution_label: str
    label: str
    type: str
    balance: Decimal
    number: str
    vendor_id: str
    raw_number: str
    currency: Optional[str] = None
    id: Optional[str] = None

    def to_document(self) -> dict[str, object]:
        """Render the account as a store document."""
        doc: dict[str, object] = {
            "institutionLabel": self.institution_label,
            "label": self.label,
            "type": self.type,
            "balance": float(self.balance),
            "number": self.number,
            "vendorId": self.vendor_id,
            "rawNumber": self.raw_number,
            "currency": self.currency,
        }
        if self.id is not None:
            doc["_id"] = self.id
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, object]) -> "Account":
        """Create an Account from a store document."""
        return cls(
            institution_label=str(doc.get("institutionLabel", "")),
            label=str(doc.get("label", "")),
            type=str(doc.get("type", AccountType.UNKNOWN.value)),
            balance=Decimal(str(doc.get("balance", 0))),
            number=str(doc["number"]),
            vendor_id=str(doc["vendorId"]),
            raw_number=str(doc.get("rawNumber", doc["number"])),
            currency=doc.get("currency"),  # type: ignore[arg-type]
            id=doc.get("_id"),  # type: ignore[arg-type]
        )

    def __repr__(self) -> str:
        return f"Account(vendor_id={self.vendor_id!r}, label={self.label!r}, type={self.type})"
