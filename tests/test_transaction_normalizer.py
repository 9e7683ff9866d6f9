"""Tests for the transaction normalizer and natural key synthesis."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from bank_sync.config import Config, SyncConfig
from bank_sync.models.account import Account
from bank_sync.models.raw import NormalizationError
from bank_sync.models.transaction import UNDATED_DAY_KEY
from bank_sync.processing.transaction_normalizer import (
    TransactionNormalizer,
    assign_vendor_ids,
    build_vendor_id,
    normalize_transactions,
)

IMPORT_TIME = datetime(2020, 4, 17, 10, 7, 30, 553000, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return IMPORT_TIME


@pytest.fixture
def account() -> Account:
    """Create the account owning the test operations."""
    return Account(
        institution_label="CreditMutuel",
        label="COMPTE COURANT",
        type="Checking",
        balance=Decimal("1000.00"),
        number="XXXXXXXX",
        vendor_id="XXXXXXXX",
        raw_number="XXXXXXXX",
        currency="EUR",
    )


@pytest.fixture
def normalizer() -> TransactionNormalizer:
    """Create a lenient normalizer with a fixed clock."""
    return TransactionNormalizer(Config(), clock=fixed_clock)


def op(label: str, amount: object, rdate: object, vdate: object = None) -> dict:
    record = {"label": label, "amount": amount, "rdate": rdate}
    if vdate is not None:
        record["vdate"] = vdate
    return record


class TestNaturalKeys:
    """Tests for vendor_id synthesis."""

    def test_two_operations_same_day(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test the two-operation example: ordinals follow upstream order."""
        transactions = normalizer.normalize(
            account,
            [
                op("VIR SEPA LOCATION BOX", "-89.00", "2020-04-02T00:00:00+02:00"),
                op("PRLV EDF", "-45.50", "2020-04-02T00:00:00+02:00"),
            ],
        )

        assert [t.vendor_id for t in transactions] == [
            "XXXXXXXX_2020-04-02_0",
            "XXXXXXXX_2020-04-02_1",
        ]
        assert [t.type for t in transactions] == ["transfer", "direct debit"]
        assert [t.amount for t in transactions] == [Decimal("-89.00"), Decimal("-45.50")]

    def test_deterministic(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test that the same input yields the same keys on every run."""
        records = [
            op("A", "1", "2020-04-02"),
            op("B", "2", "2020-04-03"),
            op("C", "3", "2020-04-02"),
        ]
        first = [t.vendor_id for t in normalizer.normalize(account, records)]
        second = [t.vendor_id for t in normalizer.normalize(account, records)]
        assert first == second

    def test_unique_and_grouped_by_day(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test that ordinals restart per day and keys never collide."""
        transactions = normalizer.normalize(
            account,
            [
                op("A", "1", "2020-04-02"),
                op("B", "2", "2020-04-03"),
                op("C", "3", "2020-04-02"),
                op("D", "4", "2020-04-03"),
            ],
        )
        keys = [t.vendor_id for t in transactions]
        assert keys == [
            "XXXXXXXX_2020-04-02_0",
            "XXXXXXXX_2020-04-03_0",
            "XXXXXXXX_2020-04-02_1",
            "XXXXXXXX_2020-04-03_1",
        ]
        assert len(set(keys)) == len(keys)

    def test_value_date_is_ignored(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test that grouping uses the recorded date only."""
        transactions = normalizer.normalize(
            account,
            [
                op("A", "1", "2020-04-02", vdate="2020-04-01"),
                op("B", "2", "2020-04-02", vdate="2020-04-05"),
            ],
        )
        assert [t.vendor_id for t in transactions] == [
            "XXXXXXXX_2020-04-02_0",
            "XXXXXXXX_2020-04-02_1",
        ]

    def test_build_vendor_id(self) -> None:
        """Test the key format."""
        assert build_vendor_id("ACC", "2020-04-02", 3) == "ACC_2020-04-02_3"

    def test_assign_vendor_ids_in_place(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test that reassigning keys after reordering follows the new order."""
        transactions = normalizer.normalize(
            account, [op("A", "1", "2020-04-02"), op("B", "2", "2020-04-02")]
        )
        transactions.reverse()
        assign_vendor_ids(account, transactions)
        assert transactions[0].label == "B"
        assert transactions[0].vendor_id == "XXXXXXXX_2020-04-02_0"


class TestTransactionFields:
    """Tests for the normalized transaction fields."""

    def test_fields(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test dates, currency and account reference."""
        txn = normalizer.normalize(
            account,
            [op("PRLV EDF", -45.5, "2020-04-02T00:00:00+02:00", vdate="2020-04-01T00:00:00+02:00")],
        )[0]

        assert txn.date == "2020-04-02T00:00:00+02:00"
        assert txn.date_operation == "2020-04-01T00:00:00+02:00"
        assert txn.date_import == "2020-04-17T10:07:30.553Z"
        assert txn.currency == "EUR"
        assert txn.vendor_account_id == "XXXXXXXX"
        assert txn.warnings == []

    def test_value_date_defaults_to_recorded(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test that a missing value date falls back to the recorded date."""
        txn = normalizer.normalize(account, [op("X", "1", "2020-04-02T00:00:00+02:00")])[0]
        assert txn.date_operation == txn.date

    def test_date_field_fallback(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test that "date" is used when "rdate" is absent."""
        txn = normalizer.normalize(
            account, [{"label": "X", "amount": "1", "date": "2020-04-02T00:00:00+02:00"}]
        )[0]
        assert txn.vendor_id == "XXXXXXXX_2020-04-02_0"

    def test_document(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test the store document."""
        txn = normalizer.normalize(account, [op("PRLV EDF", "-45.50", "2020-04-02T00:00:00+02:00")])[0]
        doc = txn.to_document()
        assert doc["amount"] == -45.5
        assert doc["vendorId"] == "XXXXXXXX_2020-04-02_0"
        assert doc["vendorAccountId"] == "XXXXXXXX"
        assert doc["cozyCategoryId"] == "0"
        assert doc["cozyCategoryProba"] == 1.0
        assert doc["type"] == "direct debit"

    def test_empty_input(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test that no operations yields no transactions."""
        assert normalizer.normalize(account, []) == []


class TestNormalizationPolicy:
    """Tests for unparsable amounts and dates."""

    def test_unparsable_amount_lenient(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test that an unparsable amount becomes zero with a warning."""
        txn = normalizer.normalize(account, [op("X", "??", "2020-04-02")])[0]
        assert txn.amount == Decimal("0")
        assert len(txn.warnings) == 1

    def test_unparsable_date_goes_to_undated_bucket(
        self, normalizer: TransactionNormalizer, account: Account
    ) -> None:
        """Test that undated operations share the sentinel bucket."""
        transactions = normalizer.normalize(
            account,
            [
                op("A", "1", "not a date"),
                op("B", "2", "2020-04-02"),
                op("C", "3", None),
            ],
        )
        assert transactions[0].date is None
        assert transactions[0].day_key == UNDATED_DAY_KEY
        assert [t.vendor_id for t in transactions] == [
            "XXXXXXXX_undated_0",
            "XXXXXXXX_2020-04-02_0",
            "XXXXXXXX_undated_1",
        ]
        assert transactions[0].warnings
        assert not transactions[1].warnings

    def test_strict_amount(self, account: Account) -> None:
        """Test that strict mode raises on an unparsable amount."""
        config = Config(sync=SyncConfig(strict=True))
        with pytest.raises(NormalizationError):
            normalize_transactions(account, [op("X", "??", "2020-04-02")], config, clock=fixed_clock)

    def test_strict_date(self, account: Account) -> None:
        """Test that strict mode raises on an unparsable recorded date."""
        config = Config(sync=SyncConfig(strict=True))
        with pytest.raises(NormalizationError) as exc_info:
            normalize_transactions(account, [op("X", "1", "someday")], config, clock=fixed_clock)
        assert exc_info.value.field == "rdate"

    def test_non_object_record(self, normalizer: TransactionNormalizer, account: Account) -> None:
        """Test that a record that is not an object is rejected even when lenient."""
        with pytest.raises(NormalizationError):
            normalizer.normalize(account, ["PRLV EDF"])
