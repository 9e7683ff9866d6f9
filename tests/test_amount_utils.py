"""Tests for amount, date and text helpers."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bank_sync.models.raw import NormalizationError
from bank_sync.utils.amount_utils import ZERO, format_amount, normalize_amount, parse_amount
from bank_sync.utils.date_utils import day_key, parse_date, parse_datetime, to_iso, to_utc_iso
from bank_sync.utils.text_utils import normalize_label, replace_all


class TestParseAmount:
    """Tests for parse_amount."""

    def test_plain_strings(self) -> None:
        """Test plain decimal strings keep their sign and precision."""
        assert parse_amount("999.00") == Decimal("999.00")
        assert parse_amount("-45.50") == Decimal("-45.50")
        assert parse_amount("+12") == Decimal("12")

    def test_numbers(self) -> None:
        """Test numeric input."""
        assert parse_amount(42) == Decimal("42")
        assert parse_amount(-89.0) == Decimal("-89.0")
        assert parse_amount(Decimal("12.30")) == Decimal("12.30")

    def test_european_formats(self) -> None:
        """Test comma decimals and space or dot grouping."""
        assert parse_amount("-89,00 €") == Decimal("-89.00")
        assert parse_amount("1 234,56") == Decimal("1234.56")
        assert parse_amount("1.234,56") == Decimal("1234.56")
        assert parse_amount("1\u00a0234,56") == Decimal("1234.56")

    def test_us_grouping(self) -> None:
        """Test comma grouping with a dot decimal."""
        assert parse_amount("1,234.56") == Decimal("1234.56")
        assert parse_amount("EUR 12.00") == Decimal("12.00")

    def test_ambiguous_comma_uses_locale(self) -> None:
        """Test that a lone comma group is read with the locale hint."""
        assert parse_amount("1,234") == Decimal("1.234")
        assert parse_amount("1,234", locale="US") == Decimal("1234")

    @pytest.mark.parametrize("raw", [None, True, "", "abc", "12abc", "NaN", "€", [1]])
    def test_unparsable_raises(self, raw: object) -> None:
        """Test that unusable input raises NormalizationError."""
        with pytest.raises(NormalizationError) as exc_info:
            parse_amount(raw)
        assert exc_info.value.field == "amount"


class TestNormalizeAmount:
    """Tests for the zero-default policy."""

    def test_valid_amount_passes_through(self) -> None:
        """Test that parsable amounts are returned unchanged."""
        assert normalize_amount("-89.00") == Decimal("-89.00")

    def test_lenient_defaults_to_zero(self) -> None:
        """Test that unparsable amounts become zero in lenient mode."""
        assert normalize_amount("garbage") == ZERO
        assert normalize_amount(None, default=Decimal("1")) == Decimal("1")

    def test_strict_raises(self) -> None:
        """Test that strict mode re-raises."""
        with pytest.raises(NormalizationError):
            normalize_amount("garbage", strict=True)

    def test_format_amount(self) -> None:
        """Test rendering for store documents."""
        assert format_amount(Decimal("999.00")) == 999.0
        assert format_amount(Decimal("-45.50")) == -45.5


class TestDateUtils:
    """Tests for date parsing and formatting."""

    def test_parse_date_formats(self) -> None:
        """Test ISO and day-first formats."""
        assert parse_date("2020-04-02") == date(2020, 4, 2)
        assert parse_date("02/04/2020") == date(2020, 4, 2)
        assert parse_date("02.04.2020") == date(2020, 4, 2)
        assert parse_date("20200402") == date(2020, 4, 2)

    def test_parse_date_invalid(self) -> None:
        """Test that invalid dates raise ValueError."""
        with pytest.raises(ValueError):
            parse_date("")
        with pytest.raises(ValueError):
            parse_date("31/02/2020")
        with pytest.raises(ValueError):
            parse_date("yesterday")

    def test_parse_datetime_keeps_offset(self) -> None:
        """Test that explicit offsets are kept."""
        parsed = parse_datetime("2020-04-02T10:00:00+02:00")
        assert parsed.utcoffset() == timedelta(hours=2)
        assert to_iso(parsed) == "2020-04-02T10:00:00+02:00"

    def test_parse_datetime_zulu(self) -> None:
        """Test a trailing Z is read as UTC."""
        parsed = parse_datetime("2020-04-02T10:00:00Z")
        assert parsed == datetime(2020, 4, 2, 10, tzinfo=timezone.utc)

    def test_parse_datetime_naive_uses_tz(self) -> None:
        """Test that naive values are interpreted in the given timezone."""
        parsed = parse_datetime("2020-04-02", tz=timezone.utc)
        assert to_iso(parsed) == "2020-04-02T00:00:00+00:00"

    def test_parse_datetime_naive_local_keeps_day(self) -> None:
        """Test that local-time interpretation keeps the calendar day."""
        parsed = parse_datetime("02/04/2020")
        assert parsed.tzinfo is not None
        assert day_key(to_iso(parsed)) == "2020-04-02"

    def test_parse_datetime_invalid(self) -> None:
        """Test that unusable values raise ValueError."""
        for raw in (None, "", "not a date", 12):
            with pytest.raises(ValueError):
                parse_datetime(raw)

    def test_to_utc_iso(self) -> None:
        """Test UTC rendering with milliseconds."""
        value = datetime(2019, 4, 17, 12, 7, 30, 553999, tzinfo=timezone(timedelta(hours=2)))
        assert to_utc_iso(value) == "2019-04-17T10:07:30.553Z"
        assert to_utc_iso(datetime(2019, 4, 17)) == "2019-04-17T00:00:00.000Z"


class TestTextUtils:
    """Tests for label helpers."""

    def test_replace_all(self) -> None:
        """Test that every occurrence is replaced without touching str."""
        assert replace_all("a b  c", r"\s+", "") == "abc"

    def test_normalize_label(self) -> None:
        """Test upper-casing and whitespace collapsing."""
        assert normalize_label("  vir   sepa\tbox ") == "VIR SEPA BOX"
        assert normalize_label(None) == ""
