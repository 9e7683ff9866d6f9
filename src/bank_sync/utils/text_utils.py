"""Plain string helpers."""

import re

_WHITESPACE_PATTERN = re.compile(r"\s+")


def replace_all(text: str, pattern: str, replacement: str) -> str:
    """Replace every match of a regex pattern in text.

    Args:
        text: Input string.
        pattern: Regular expression to search for.
        replacement: Replacement string.

    Returns:
        The string with all matches replaced.
    """
    return re.sub(pattern, replacement, text)


def normalize_label(label: str | None) -> str:
    """Upper-case a label and collapse runs of whitespace.

    Args:
        label: Raw label, possibly None.

    Returns:
        Normalized label ("" for None).
    """
    if not label:
        return ""
    return _WHITESPACE_PATTERN.sub(" ", label).strip().upper()
