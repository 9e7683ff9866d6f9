"""Label classification for accounts and transactions."""

from typing import Optional, Sequence

from bank_sync.config import DEFAULT_ACCOUNT_RULES, DEFAULT_TRANSACTION_RULES
from bank_sync.models.account import AccountType
from bank_sync.models.label_rule import LabelRule
from bank_sync.models.transaction import DEFAULT_TRANSACTION_TYPE
from bank_sync.utils.text_utils import normalize_label


class LabelClassifier:
    """Assigns a tag to a free-text label from an ordered rule table.

    Rules are evaluated in order and the first match wins. A label matching
    no rule, or an empty label, gets the default tag; classification never
    raises.
    """

    def __init__(self, rules: Sequence[LabelRule], default_tag: str):
        """Initialize classifier.

        Args:
            rules: Ordered rules.
            default_tag: Tag for unmatched labels.
        """
        self.rules = list(rules)
        self.default_tag = default_tag

    def find_rule(self, label: Optional[str]) -> Optional[LabelRule]:
        """Return the first rule matching a label, or None."""
        normalized = normalize_label(label)
        if not normalized:
            return None
        for rule in self.rules:
            if rule.matches(normalized):
                return rule
        return None

    def classify(self, label: Optional[str]) -> str:
        """Return the tag for a label."""
        rule = self.find_rule(label)
        return rule.tag if rule is not None else self.default_tag


_account_classifier = LabelClassifier(DEFAULT_ACCOUNT_RULES, AccountType.UNKNOWN.value)
_transaction_classifier = LabelClassifier(DEFAULT_TRANSACTION_RULES, DEFAULT_TRANSACTION_TYPE)


def classify_account_label(label: Optional[str]) -> str:
    """Classify an account label with the default rules.

    Args:
        label: Account display name, e.g. "LIVRET A".

    Returns:
        Account type tag, "unknown" when no rule matches.
    """
    return _account_classifier.classify(label)


def classify_transaction_label(label: Optional[str]) -> str:
    """Classify a transaction label with the default rules.

    Args:
        label: Operation description, e.g. "PRLV EDF".

    Returns:
        Operation type tag, "none" when no rule matches.
    """
    return _transaction_classifier.classify(label)
