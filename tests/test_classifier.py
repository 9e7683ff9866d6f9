"""Tests for label rules and classification."""

import pytest

from bank_sync.models.label_rule import LabelRule, MatchMode
from bank_sync.processing.classifier import (
    LabelClassifier,
    classify_account_label,
    classify_transaction_label,
)


class TestAccountClassification:
    """Tests for the default account rules."""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("LIVRET A", "Savings"),
            ("Livret Bleu", "Savings"),
            ("LDD", "Savings"),
            ("PEL FAMILLE", "Savings"),
            ("PEA", "Investment"),
            ("ASSURANCE VIE", "Investment"),
            ("PRET IMMOBILIER", "Loan"),
            ("CARTE VISA PREMIER", "CreditCard"),
            ("COMPTE COURANT", "Checking"),
            ("EUROCOMPTE DUO", "Checking"),
        ],
    )
    def test_known_labels(self, label: str, expected: str) -> None:
        """Test that known account labels get their type."""
        assert classify_account_label(label) == expected

    def test_short_keywords_need_word_boundary(self) -> None:
        """Test that short keywords do not match inside words."""
        assert classify_account_label("PELICAN") == "unknown"

    @pytest.mark.parametrize("label", ["", None, "   ", "MYSTERY"])
    def test_unmatched_defaults_to_unknown(self, label: str | None) -> None:
        """Test the default tag for empty and unmatched labels."""
        assert classify_account_label(label) == "unknown"


class TestTransactionClassification:
    """Tests for the default transaction rules."""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("VIR SEPA LOCATION BOX", "transfer"),
            ("PRLV EDF", "direct debit"),
            ("prlv sepa free mobile", "direct debit"),
            ("CB CARREFOUR 12/03", "credit card"),
            ("RETRAIT DAB 14/03", "cash"),
            ("CHQ 1234567", "check"),
            ("ECH PRET 0012345", "loan payment"),
            ("REMISE CHEQUES", "deposit"),
            ("FRAIS TENUE DE COMPTE", "bank"),
        ],
    )
    def test_known_labels(self, label: str, expected: str) -> None:
        """Test that known operation labels get their type."""
        assert classify_transaction_label(label) == expected

    def test_word_boundary(self) -> None:
        """Test that "CB" does not match inside a longer word."""
        assert classify_transaction_label("CBD SHOP") == "none"

    def test_unmatched_defaults_to_none(self) -> None:
        """Test the default tag."""
        assert classify_transaction_label("SOMETHING ELSE") == "none"
        assert classify_transaction_label(None) == "none"


class TestLabelClassifier:
    """Tests for LabelClassifier with custom rules."""

    def test_first_match_wins(self) -> None:
        """Test that rules are evaluated in order."""
        classifier = LabelClassifier(
            [LabelRule("first", ["FOO"]), LabelRule("second", ["FOO BAR"])],
            default_tag="other",
        )
        assert classifier.classify("foo bar") == "first"
        assert classifier.find_rule("foo bar") is classifier.rules[0]

    def test_no_rules(self) -> None:
        """Test that an empty table always yields the default."""
        classifier = LabelClassifier([], default_tag="other")
        assert classifier.classify("ANYTHING") == "other"
        assert classifier.find_rule("ANYTHING") is None

    def test_pattern_rule(self) -> None:
        """Test regex rules."""
        classifier = LabelClassifier([LabelRule("salary", pattern=r"^SALAIRE")], "none")
        assert classifier.classify("Salaire mars") == "salary"
        assert classifier.classify("AVANCE SALAIRE") == "none"


class TestLabelRule:
    """Tests for LabelRule."""

    def test_keywords_are_normalized(self) -> None:
        """Test that keywords are upper-cased and collapsed."""
        rule = LabelRule("transfer", ["vir  sepa", "  "])
        assert rule.keywords == ["VIR SEPA"]
        assert rule.matches("VIR SEPA LOYER")

    def test_substring_mode(self) -> None:
        """Test substring matching."""
        rule = LabelRule("savings", ["LIVRET"])
        assert rule.matches("LIVRETA")

    def test_word_mode(self) -> None:
        """Test word-boundary matching."""
        rule = LabelRule("card", ["CB"], MatchMode.WORD_BOUNDARY)
        assert rule.matches("PAIEMENT CB")
        assert not rule.matches("CBD")

    def test_unsafe_pattern_is_rejected(self) -> None:
        """Test that a catastrophic-backtracking pattern raises ValueError."""
        with pytest.raises(ValueError, match="Unsafe pattern"):
            LabelRule("bad", pattern=r"(a+)+$")

    def test_invalid_pattern_is_rejected(self) -> None:
        """Test that an invalid regex raises ValueError."""
        with pytest.raises(ValueError, match="Invalid pattern"):
            LabelRule.from_dict({"tag": "bad", "pattern": r"[unclosed"})

    def test_from_dict(self) -> None:
        """Test building a rule from YAML data."""
        rule = LabelRule.from_dict({"tag": "cash", "keywords": "retrait", "match": "word"})
        assert rule.tag == "cash"
        assert rule.keywords == ["RETRAIT"]
        assert rule.match_mode == MatchMode.WORD_BOUNDARY

    @pytest.mark.parametrize(
        "data,message",
        [
            ({"keywords": ["X"]}, "requires a 'tag'"),
            ({"tag": "x", "keywords": ["X"], "match": "fuzzy"}, "Unknown match mode"),
            ({"tag": "x"}, "no keywords or pattern"),
        ],
    )
    def test_from_dict_invalid(self, data: dict, message: str) -> None:
        """Test that malformed rules raise ValueError."""
        with pytest.raises(ValueError, match=message):
            LabelRule.from_dict(data)
