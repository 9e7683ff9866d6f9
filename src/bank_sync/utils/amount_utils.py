"""Amount normalization for upstream balances and transaction amounts.

All monetary values are carried as Decimal. Documents handed to the store
render them as floats, the representation the banking doctypes expect.

Unparsable input is handled one way everywhere: ``parse_amount`` raises
``NormalizationError``; ``normalize_amount`` returns the default (zero)
unless strict mode is requested, in which case it re-raises.
"""

import re
from decimal import Decimal, InvalidOperation

from bank_sync.models.raw import NormalizationError
from bank_sync.utils.text_utils import replace_all

ZERO = Decimal("0")

CURRENCY_SYMBOLS = ("€", "$", "£", "EUR", "USD", "GBP", "CHF")

# Unicode \s also covers the non-breaking spaces used as thousand separators
_SPACES_PATTERN = r"\s"

_DECIMAL_COMMA = re.compile(r",\d{1,2}$")
_THOUSANDS_COMMA = re.compile(r"^\d{1,3}(,\d{3})+$")


def parse_amount(raw: object, locale: str = "EU") -> Decimal:
    """Parse a raw amount into a signed Decimal.

    Handles:
    - Numbers: 42, -89.0, Decimal("12.30")
    - Plain strings: "999.00", "-45.50", "+12"
    - Grouped strings: "1 234,56", "1.234,56", "1,234.56"
    - Currency decorations: "-89,00 €", "EUR 12.00"

    A string holding only a comma is read with the locale hint: "1,234" is
    1.234 for "EU" (the upstream bank's locale) and 1234 for "US".

    Args:
        raw: String or numeric amount.
        locale: "EU" or "US", used only for ambiguous comma-only strings.

    Returns:
        The signed amount. The sign of the input is never changed.

    Raises:
        NormalizationError: If the value is missing, non-numeric or not finite.
    """
    if raw is None or isinstance(raw, bool):
        raise NormalizationError(f"Cannot parse amount {raw!r}", field="amount")

    if isinstance(raw, Decimal):
        amount = raw
    elif isinstance(raw, (int, float)):
        amount = Decimal(str(raw))
    elif isinstance(raw, str):
        amount = _parse_amount_string(raw, locale)
    else:
        raise NormalizationError(
            f"Cannot parse amount of type {type(raw).__name__}", field="amount"
        )

    if not amount.is_finite():
        raise NormalizationError(f"Amount is not finite: {raw!r}", field="amount")
    return amount


def _parse_amount_string(raw: str, locale: str) -> Decimal:
    amount_str = replace_all(raw, _SPACES_PATTERN, "")
    for symbol in CURRENCY_SYMBOLS:
        amount_str = amount_str.replace(symbol, "")

    if not amount_str:
        raise NormalizationError(f"Cannot parse amount {raw!r}", field="amount")

    sign = ""
    if amount_str[0] in "+-":
        sign = "-" if amount_str[0] == "-" else ""
        amount_str = amount_str[1:]

    if "," in amount_str and "." in amount_str:
        if amount_str.rfind(",") > amount_str.rfind("."):
            # 1.234,56
            amount_str = amount_str.replace(".", "").replace(",", ".")
        else:
            # 1,234.56
            amount_str = amount_str.replace(",", "")
    elif "," in amount_str:
        if _DECIMAL_COMMA.search(amount_str):
            amount_str = amount_str.replace(",", ".")
        elif locale == "US" and _THOUSANDS_COMMA.match(amount_str):
            amount_str = amount_str.replace(",", "")
        else:
            amount_str = amount_str.replace(",", ".")

    try:
        return Decimal(sign + amount_str)
    except InvalidOperation as e:
        raise NormalizationError(f"Cannot parse amount {raw!r}", field="amount") from e


def normalize_amount(
    raw: object,
    default: Decimal = ZERO,
    strict: bool = False,
    locale: str = "EU",
) -> Decimal:
    """Normalize a raw amount, applying the zero-default policy.

    Args:
        raw: String or numeric amount.
        default: Value returned for unparsable input in lenient mode.
        strict: Raise instead of returning the default.
        locale: Locale hint forwarded to parse_amount.

    Returns:
        The signed amount, or the default.

    Raises:
        NormalizationError: Only in strict mode.
    """
    try:
        return parse_amount(raw, locale=locale)
    except NormalizationError:
        if strict:
            raise
        return default


def format_amount(amount: Decimal) -> float:
    """Render a Decimal amount for a store document."""
    return float(amount)
