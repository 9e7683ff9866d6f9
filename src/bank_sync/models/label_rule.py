"""Label classification rule model."""

import re
from dataclasses import dataclass, field
from enum import Enum

from bank_sync.utils.text_utils import normalize_label

MAX_PATTERN_LENGTH = 200

# Group with an inner quantifier followed by an outer one: (a+)+, (\w*){2,}
_NESTED_QUANTIFIER_PATTERN = re.compile(
    r"\([^)]*[+*?][^)]*\)[+*?]|"
    r"\([^)]*[+*?][^)]*\)\{[0-9,]+\}"
)


def _is_safe_pattern(pattern: str) -> tuple[bool, str]:
    """Check that a regex pattern cannot backtrack catastrophically.

    Args:
        pattern: Regex pattern string to validate.

    Returns:
        Tuple of (is_safe, reason if unsafe).
    """
    if len(pattern) > MAX_PATTERN_LENGTH:
        return False, f"Pattern exceeds {MAX_PATTERN_LENGTH} character limit"
    if _NESTED_QUANTIFIER_PATTERN.search(pattern):
        return False, "Pattern contains nested quantifier"
    return True, ""


class MatchMode(Enum):
    """How rule keywords are matched against a label."""

    SUBSTRING = "substring"  # "LIVRET" matches "LIVRETA"
    WORD_BOUNDARY = "word"  # "CB" matches "CB CARREFOUR", not "CBD"


@dataclass
class LabelRule:
    """Maps labels containing any of its keywords (or matching its pattern) to a tag.

    Keywords are compared against the upper-cased, whitespace-collapsed label.

    Attributes:
        tag: Tag assigned when the rule matches.
        keywords: Keywords, any of which makes the rule match.
        match_mode: Keyword matching mode.
        pattern: Optional regex, searched case-insensitively.
    """

    tag: str
    keywords: list[str] = field(default_factory=list)
    match_mode: MatchMode = MatchMode.SUBSTRING
    pattern: str | None = None

    _keyword_patterns: list[re.Pattern[str]] = field(
        default_factory=list, repr=False, compare=False
    )
    _compiled_pattern: re.Pattern[str] | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.keywords = [normalize_label(k) for k in self.keywords if normalize_label(k)]
        if self.match_mode == MatchMode.WORD_BOUNDARY:
            self._keyword_patterns = [
                re.compile(r"\b" + re.escape(k) + r"\b") for k in self.keywords
            ]

        self._compiled_pattern = None
        if self.pattern:
            is_safe, reason = _is_safe_pattern(self.pattern)
            if not is_safe:
                raise ValueError(f"Unsafe pattern '{self.pattern}' for tag '{self.tag}': {reason}")
            try:
                self._compiled_pattern = re.compile(self.pattern, re.IGNORECASE)
            except re.error as e:
                raise ValueError(f"Invalid pattern '{self.pattern}' for tag '{self.tag}': {e}") from e

    def matches(self, label: str) -> bool:
        """Check whether a normalized label matches this rule.

        Args:
            label: Label already passed through normalize_label.

        Returns:
            True if a keyword or the pattern matches.
        """
        if not label:
            return False

        if self.match_mode == MatchMode.WORD_BOUNDARY:
            if any(p.search(label) for p in self._keyword_patterns):
                return True
        elif any(k in label for k in self.keywords):
            return True

        return bool(self._compiled_pattern and self._compiled_pattern.search(label))

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LabelRule":
        """Create a LabelRule from a dictionary (e.g., from YAML config).

        Raises:
            ValueError: If the tag is missing, the match mode is unknown or
                the pattern is unsafe or invalid.
        """
        tag = data.get("tag")
        if not tag:
            raise ValueError("Label rule requires a 'tag'")

        keywords = data.get("keywords") or []
        if isinstance(keywords, str):
            keywords = [keywords]

        try:
            match_mode = MatchMode(str(data.get("match", MatchMode.SUBSTRING.value)))
        except ValueError as e:
            raise ValueError(f"Unknown match mode for tag '{tag}': {data.get('match')}") from e

        pattern = data.get("pattern")
        if not keywords and not pattern:
            raise ValueError(f"Label rule for tag '{tag}' has no keywords or pattern")

        return cls(
            tag=str(tag),
            keywords=[str(k) for k in keywords],  # type: ignore[union-attr]
            match_mode=match_mode,
            pattern=str(pattern) if pattern else None,
        )
