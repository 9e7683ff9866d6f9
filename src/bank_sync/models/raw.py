"""Raw upstream records, validated at the normalization boundary."""

from dataclasses import dataclass, field


class NormalizationError(ValueError):
    """Exception raised when an upstream record cannot be normalized."""

    def __init__(self, message: str, field: str | None = None):
        """Initialize NormalizationError.

        Args:
            message: Error message.
            field: Name of the offending field, if known.
        """
        self.field = field
        super().__init__(message)


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class RawAccountRecord:
    """Account entry from the upstream account list.

    Attributes:
        label: Display name, e.g. "LIVRET A".
        balance: Balance as sent upstream (string or number, may be missing).
        currency: ISO currency code, passed through unchanged.
        number: Account number, the account's durable identity.
        upstream_id: Upstream identifier such as "XXXXXXXX@creditmutuel".
        raw_data: The record as received.
    """

    label: str
    balance: object
    currency: str | None
    number: str
    upstream_id: str | None = None
    raw_data: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: object) -> "RawAccountRecord":
        """Build a record from an upstream JSON object.

        The number falls back to the id without its "@backend" suffix.

        Args:
            data: Decoded JSON object.

        Returns:
            A new RawAccountRecord.

        Raises:
            NormalizationError: If data is not an object or has no identifier.
        """
        if not isinstance(data, dict):
            raise NormalizationError(
                f"Account record must be an object, got {type(data).__name__}"
            )

        upstream_id = _optional_str(data.get("id"))
        number = _optional_str(data.get("number"))
        if number is None and upstream_id is not None:
            number = _optional_str(upstream_id.split("@", 1)[0])
        if number is None:
            raise NormalizationError("Account record has no number or id", field="number")

        return cls(
            label=str(data.get("label") or ""),
            balance=data.get("balance"),
            currency=_optional_str(data.get("currency")),
            number=number,
            upstream_id=upstream_id,
            raw_data=dict(data),
        )


@dataclass
class RawTransactionRecord:
    """Operation entry from an account history.

    Attributes:
        label: Operation description.
        amount: Amount as sent upstream.
        recorded_date: Date the bank recorded the operation ("rdate").
        value_date: Value date ("vdate").
        raw_data: The record as received.
    """

    label: str
    amount: object
    recorded_date: object
    value_date: object
    raw_data: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: object) -> "RawTransactionRecord":
        """Build a record from an upstream JSON object.

        "rdate" falls back to "date"; "vdate" falls back to the recorded date.

        Raises:
            NormalizationError: If data is not an object.
        """
        if not isinstance(data, dict):
            raise NormalizationError(
                f"Transaction record must be an object, got {type(data).__name__}"
            )

        recorded = data.get("rdate") or data.get("date")
        return cls(
            label=str(data.get("label") or ""),
            amount=data.get("amount"),
            recorded_date=recorded,
            value_date=data.get("vdate") or recorded,
            raw_data=dict(data),
        )
