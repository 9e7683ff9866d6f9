"""Yearly balance history document."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

ACCOUNT_DOCTYPE = "io.cozy.bank.accounts"

BALANCE_HISTORY_VERSION = 1


@dataclass
class BalanceHistory:
    """Balances observed for one account during one calendar year.

    Attributes:
        year: Calendar year covered by the document.
        account_id: Store identifier of the owning account.
        balances: Mapping of "YYYY-MM-DD" to the balance observed that day.
        id: Document identifier assigned by the store.
        rev: Document revision assigned by the store.
        metadata: Document metadata (schema version).
    """

    year: int
    account_id: str
    balances: dict[str, Decimal] = field(default_factory=dict)
    id: Optional[str] = None
    rev: Optional[str] = None
    metadata: dict[str, object] = field(
        default_factory=lambda: {"version": BALANCE_HISTORY_VERSION}
    )

    @classmethod
    def empty(cls, year: int, account_id: str) -> "BalanceHistory":
        """Create a document with no recorded balances."""
        return cls(year=year, account_id=account_id)

    @property
    def relationships(self) -> dict[str, object]:
        """Back-reference to the owning account."""
        return {"account": {"data": {"_id": self.account_id, "_type": ACCOUNT_DOCTYPE}}}

    def set_balance(self, day: str, balance: Decimal) -> None:
        """Record the balance for one day, replacing any value for that day.

        Args:
            day: Date as "YYYY-MM-DD".
            balance: Observed balance.
        """
        self.balances[day] = balance

    def to_document(self) -> dict[str, object]:
        """Render the history as a store document."""
        doc: dict[str, object] = {
            "year": self.year,
            "balances": {day: float(value) for day, value in sorted(self.balances.items())},
            "metadata": dict(self.metadata),
            "relationships": self.relationships,
        }
        if self.id is not None:
            doc["_id"] = self.id
        if self.rev is not None:
            doc["_rev"] = self.rev
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> "BalanceHistory":
        """Create a BalanceHistory from a store document.

        Raises:
            KeyError: If the document lacks its year or account relationship.
        """
        account_id = doc["relationships"]["account"]["data"]["_id"]
        balances = {
            str(day): Decimal(str(value))
            for day, value in (doc.get("balances") or {}).items()
        }
        return cls(
            year=int(doc["year"]),
            account_id=str(account_id),
            balances=balances,
            id=doc.get("_id"),
            rev=doc.get("_rev"),
            metadata=dict(doc.get("metadata") or {"version": BALANCE_HISTORY_VERSION}),
        )

    def __repr__(self) -> str:
        return (
            f"BalanceHistory(year={self.year}, account_id={self.account_id!r}, "
            f"days={len(self.balances)})"
        )
