"""Account normalizer for converting upstream account records."""

from typing import Iterable

from bank_sync.config import Config
from bank_sync.models.account import Account
from bank_sync.models.raw import NormalizationError, RawAccountRecord
from bank_sync.processing.classifier import LabelClassifier
from bank_sync.utils.amount_utils import ZERO, parse_amount
from bank_sync.utils.logging_config import get_logger

logger = get_logger(__name__)


class AccountNormalizer:
    """Normalizes upstream account records into Account entities.

    The normalizer:
    - Stamps the configured institution label
    - Classifies the account type from its label
    - Parses the balance (zero with a warning when unparsable, unless strict)
    - Uses the upstream number as number, vendor_id and raw_number
    """

    def __init__(self, config: Config):
        """Initialize normalizer with configuration.

        Args:
            config: Application configuration.
        """
        self.config = config
        self.classifier = LabelClassifier(config.account_rules, config.default_account_type)
        self.warnings: list[str] = []

    def normalize(self, data: object) -> Account:
        """Normalize one upstream account record.

        Args:
            data: Decoded JSON object or an already built RawAccountRecord.

        Returns:
            The canonical Account.

        Raises:
            NormalizationError: If the record has no identifier, or in strict
                mode if the balance cannot be parsed.
        """
        raw = data if isinstance(data, RawAccountRecord) else RawAccountRecord.from_dict(data)

        try:
            balance = parse_amount(raw.balance)
        except NormalizationError:
            if self.config.sync.strict:
                raise
            balance = ZERO
            message = f"Account {raw.number}: unparsable balance {raw.balance!r}, using 0"
            self.warnings.append(message)
            logger.warning(message)

        return Account(
            institution_label=self.config.institution_label,
            label=raw.label,
            type=self.classifier.classify(raw.label),
            balance=balance,
            number=raw.number,
            vendor_id=raw.number,
            raw_number=raw.number,
            currency=raw.currency,
        )

    def normalize_all(self, records: Iterable[object]) -> list[Account]:
        """Normalize an upstream account list, keeping its order.

        Args:
            records: Upstream account records.

        Returns:
            One Account per record.
        """
        accounts = [self.normalize(record) for record in records]
        logger.info(f"Normalized {len(accounts)} accounts")
        return accounts


def normalize_accounts(records: Iterable[object], config: Config) -> list[Account]:
    """Convenience function to normalize an upstream account list.

    Args:
        records: Upstream account records.
        config: Application configuration.

    Returns:
        One Account per record.
    """
    return AccountNormalizer(config).normalize_all(records)
