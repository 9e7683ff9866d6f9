"""Date parsing and formatting for upstream records."""

import re
from datetime import date, datetime, timezone, tzinfo
from typing import Callable

# Date-only formats accepted besides ISO 8601. Slash-separated dates are
# read day-first, the upstream bank's convention.
DATE_PATTERNS = [
    (r"^(\d{4})-(\d{1,2})-(\d{1,2})$", "%Y-%m-%d"),
    (r"^(\d{1,2})/(\d{1,2})/(\d{4})$", "%d/%m/%Y"),
    (r"^(\d{1,2})/(\d{1,2})/(\d{2})$", "%d/%m/%y"),
    (r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$", "%d.%m.%Y"),
    (r"^(\d{8})$", "%Y%m%d"),
]

COMPILED_PATTERNS = [(re.compile(pattern), fmt) for pattern, fmt in DATE_PATTERNS]

# Returns the current time; injected so runs can be pinned to a fixed instant
Clock = Callable[[], datetime]


def parse_date(raw_date: str) -> date:
    """Parse a date-only string.

    Args:
        raw_date: The raw date string to parse.

    Returns:
        Parsed date.

    Raises:
        ValueError: If the date cannot be parsed.
    """
    if not raw_date:
        raise ValueError("Empty date string")

    date_str = raw_date.strip()
    for pattern, fmt in COMPILED_PATTERNS:
        if pattern.match(date_str):
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                continue

    raise ValueError(f"Cannot parse date: '{raw_date}'")


def parse_datetime(raw: object, tz: tzinfo | None = None) -> datetime:
    """Parse an upstream date or timestamp into an aware datetime.

    Accepts datetime and date objects, ISO 8601 timestamps (with or without
    offset, "T" or space separated) and the formats of ``parse_date``.
    Naive values are interpreted in ``tz``, or the local timezone when
    ``tz`` is None.

    Args:
        raw: Date value from an upstream record.
        tz: Timezone for naive values.

    Returns:
        Timezone-aware datetime.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, date):
        parsed = datetime(raw.year, raw.month, raw.day)
    elif isinstance(raw, str) and raw.strip():
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            d = parse_date(text)
            parsed = datetime(d.year, d.month, d.day)
    else:
        raise ValueError(f"Cannot parse date: {raw!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz) if tz is not None else parsed.astimezone()
    return parsed


def to_iso(value: datetime) -> str:
    """Format an aware datetime as ISO 8601 with offset, second precision."""
    return value.isoformat(timespec="seconds")


def to_utc_iso(value: datetime) -> str:
    """Format a datetime as a UTC ISO 8601 string with milliseconds and "Z".

    Args:
        value: Datetime to format (naive values are taken as UTC).

    Returns:
        String like "2019-04-17T10:07:30.553Z".
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def day_key(iso_value: str) -> str:
    """Return the calendar-day portion (YYYY-MM-DD) of an ISO string."""
    return iso_value[:10]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime (the default pipeline clock)."""
    return datetime.now(timezone.utc)
