"""Configuration loading and validation for bank-sync."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from bank_sync.models.account import AccountType
from bank_sync.models.label_rule import LabelRule, MatchMode
from bank_sync.models.transaction import DEFAULT_TRANSACTION_TYPE
from bank_sync.utils.logging_config import get_logger

logger = get_logger(__name__)

ENV_LOGIN = "BANK_SYNC_LOGIN"
ENV_PASSWORD = "BANK_SYNC_PASSWORD"
ENV_BASE_URL = "BANK_SYNC_BASE_URL"

DEFAULT_BASE_URL = "http://localhost:5002/"
DEFAULT_BACKEND = "creditmutuel"
DEFAULT_INSTITUTION_LABEL = "CreditMutuel"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


# Evaluated in order, first match wins
DEFAULT_ACCOUNT_RULES = [
    LabelRule(AccountType.SAVINGS.value, ["LIVRET", "EPARGNE"]),
    LabelRule(AccountType.SAVINGS.value, ["LEP", "LDD", "PEL", "CEL"], MatchMode.WORD_BOUNDARY),
    LabelRule(AccountType.INVESTMENT.value, ["PEA", "TITRES", "ASSURANCE VIE"], MatchMode.WORD_BOUNDARY),
    LabelRule(AccountType.LOAN.value, ["PRET", "CREDIT"], MatchMode.WORD_BOUNDARY),
    LabelRule(AccountType.CREDIT_CARD.value, ["CARTE", "VISA", "MASTERCARD"]),
    LabelRule(
        AccountType.CHECKING.value,
        ["COMPTE COURANT", "CHEQUE", "C/C", "CCP", "EUROCOMPTE"],
    ),
]

DEFAULT_TRANSACTION_RULES = [
    LabelRule("direct debit", ["PRLV", "PRELEVEMENT"], MatchMode.WORD_BOUNDARY),
    LabelRule("transfer", ["VIR", "VIREMENT"], MatchMode.WORD_BOUNDARY),
    LabelRule("loan payment", ["ECH PRET", "ECHEANCE"], MatchMode.WORD_BOUNDARY),
    LabelRule("cash", ["RETRAIT", "DAB"], MatchMode.WORD_BOUNDARY),
    LabelRule("check", ["CHQ", "CHEQUE"], MatchMode.WORD_BOUNDARY),
    LabelRule("credit card", ["CB", "CARTE", "PAIEMENT PSC"], MatchMode.WORD_BOUNDARY),
    LabelRule("deposit", ["REMISE", "DEPOT"], MatchMode.WORD_BOUNDARY),
    LabelRule("bank", ["FRAIS", "COTIS", "COMMISSION", "INTERETS"], MatchMode.WORD_BOUNDARY),
]


def _bool(value: object, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false, got {value!r}")
    return value


@dataclass
class UpstreamConfig:
    """Connection settings for the upstream banking API.

    Attributes:
        base_url: Root URL of the API ("auth" and "cap" are resolved against it).
        backend: Backend name appended to account ids ("<number>@<backend>").
        login: Login for the upstream bank.
        password: Password for the upstream bank.
        timeout: Request timeout in seconds.
        max_retries: Transport-level retries for transient failures.
    """

    base_url: str = DEFAULT_BASE_URL
    backend: str = DEFAULT_BACKEND
    login: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 30.0
    max_retries: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "UpstreamConfig":
        """Create from dictionary."""
        return cls(
            base_url=str(data.get("base_url", DEFAULT_BASE_URL)),
            backend=str(data.get("backend", DEFAULT_BACKEND)),
            login=str(data["login"]) if data.get("login") else None,
            password=str(data["password"]) if data.get("password") else None,
            timeout=float(data.get("timeout", 30.0)),  # type: ignore[arg-type]
            max_retries=int(data.get("max_retries", 0)),  # type: ignore[arg-type]
        )

    def __repr__(self) -> str:
        return f"UpstreamConfig(base_url={self.base_url!r}, backend={self.backend!r})"


@dataclass
class StoreConfig:
    """Persistent store settings.

    Attributes:
        path: SQLite database file.
    """

    path: Path = field(default_factory=lambda: Path("bank_sync.db"))

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "StoreConfig":
        """Create from dictionary."""
        return cls(path=Path(str(data.get("path", "bank_sync.db"))))


@dataclass
class SyncConfig:
    """Pipeline behaviour.

    Attributes:
        max_workers: Maximum concurrent per-account fetches.
        strict: Fail on unparsable amounts and dates instead of defaulting them.
        timezone: IANA zone for naive upstream dates (None = local time).
    """

    max_workers: int = 8
    strict: bool = False
    timezone: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "SyncConfig":
        """Create from dictionary."""
        return cls(
            max_workers=int(data.get("max_workers", 8)),  # type: ignore[arg-type]
            strict=_bool(data.get("strict", False), "sync.strict"),
            timezone=str(data["timezone"]) if data.get("timezone") else None,
        )


@dataclass
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Path to log file.
    """

    level: str = "INFO"
    file: str = "bank_sync.log"

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LoggingConfig":
        """Create from dictionary."""
        level = str(data.get("level", "INFO")).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {level!r}")
        return cls(
            level=level,
            file=str(data.get("file", "bank_sync.log")),
        )


@dataclass
class Config:
    """Main configuration container, built once per run and passed down.

    Attributes:
        institution_label: Institution name stamped on every account.
        upstream: Upstream API settings.
        store: Persistent store settings.
        sync: Pipeline behaviour.
        logging: Logging configuration.
        account_rules: Ordered account label rules.
        transaction_rules: Ordered transaction label rules.
        default_account_type: Tag for account labels matching no rule.
        default_transaction_type: Tag for transaction labels matching no rule.
    """

    institution_label: str = DEFAULT_INSTITUTION_LABEL
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    account_rules: list[LabelRule] = field(default_factory=lambda: list(DEFAULT_ACCOUNT_RULES))
    transaction_rules: list[LabelRule] = field(
        default_factory=lambda: list(DEFAULT_TRANSACTION_RULES)
    )
    default_account_type: str = AccountType.UNKNOWN.value
    default_transaction_type: str = DEFAULT_TRANSACTION_TYPE

    @property
    def tzinfo(self) -> Optional[ZoneInfo]:
        """Timezone for naive upstream dates, None for local time.

        Raises:
            ConfigError: If the configured zone does not exist.
        """
        if not self.sync.timezone:
            return None
        try:
            return ZoneInfo(self.sync.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"Unknown timezone: {self.sync.timezone}") from e

    def validate(self) -> None:
        """Check values that cannot be checked field by field.

        Raises:
            ConfigError: If the configuration is unusable.
        """
        if not self.upstream.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"Invalid upstream base_url: {self.upstream.base_url!r}")
        if self.sync.max_workers < 1:
            raise ConfigError(f"sync.max_workers must be >= 1, got {self.sync.max_workers}")
        if not self.institution_label:
            raise ConfigError("institution_label must not be empty")
        _ = self.tzinfo


def load_yaml_file(path: Path) -> dict[str, object]:
    """Load a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(content).__name__}")
    return content


def _section(data: dict[str, object], name: str) -> dict[str, object]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def load_settings(path: Path) -> Config:
    """Load settings.yaml into a Config with default label rules.

    Raises:
        ConfigError: If a section has the wrong shape or a bad value.
    """
    data = load_yaml_file(path)

    try:
        config = Config(
            institution_label=str(data.get("institution_label", DEFAULT_INSTITUTION_LABEL)),
            upstream=UpstreamConfig.from_dict(_section(data, "upstream")),
            store=StoreConfig.from_dict(_section(data, "store")),
            sync=SyncConfig.from_dict(_section(data, "sync")),
            logging=LoggingConfig.from_dict(_section(data, "logging")),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value in {path}: {e}") from e

    return config


def _load_rule_list(data: dict[str, object], key: str, path: Path) -> Optional[list[LabelRule]]:
    if data.get(key) is None:
        return None

    rule_list = data[key]
    if not isinstance(rule_list, list):
        raise ConfigError(f"'{key}' must be a list, got {type(rule_list).__name__}")

    rules: list[LabelRule] = []
    for i, rule_data in enumerate(rule_list):
        if not isinstance(rule_data, dict):
            raise ConfigError(f"{path}: {key}[{i}] must be a mapping")
        try:
            rules.append(LabelRule.from_dict(rule_data))
        except ValueError as e:
            raise ConfigError(f"{path}: {key}[{i}]: {e}") from e
    return rules


def load_label_rules(path: Path, config: Config) -> None:
    """Replace the label rule tables with those of labels.yaml.

    Tables absent from the file keep their defaults.

    Args:
        path: Path to labels.yaml.
        config: Config to update in place.
    """
    data = load_yaml_file(path)

    account_rules = _load_rule_list(data, "account_rules", path)
    if account_rules is not None:
        config.account_rules = account_rules
    transaction_rules = _load_rule_list(data, "transaction_rules", path)
    if transaction_rules is not None:
        config.transaction_rules = transaction_rules

    if data.get("default_account_type"):
        config.default_account_type = str(data["default_account_type"])
    if data.get("default_transaction_type"):
        config.default_transaction_type = str(data["default_transaction_type"])


def apply_environment(config: Config, environ: Optional[dict[str, str]] = None) -> None:
    """Fill credentials and base URL from environment variables.

    Args:
        config: Config to update in place.
        environ: Environment mapping (default: os.environ).
    """
    env = os.environ if environ is None else environ

    if env.get(ENV_LOGIN):
        config.upstream.login = env[ENV_LOGIN]
    if env.get(ENV_PASSWORD):
        config.upstream.password = env[ENV_PASSWORD]
    if env.get(ENV_BASE_URL):
        config.upstream.base_url = env[ENV_BASE_URL]


def load_config(
    settings_path: Optional[Path] = None,
    labels_path: Optional[Path] = None,
    config_dir: Optional[Path] = None,
    environ: Optional[dict[str, str]] = None,
) -> Config:
    """Load complete configuration from config files and the environment.

    Files under config_dir are optional; missing ones leave defaults in place.
    Files given explicitly must exist.

    Args:
        settings_path: Path to settings.yaml (or None to use default).
        labels_path: Path to labels.yaml (or None to use default).
        config_dir: Base config directory (default: ./config).
        environ: Environment mapping (default: os.environ).

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If an explicitly given file does not exist.
        ConfigError: If a file is invalid or the result fails validation.
    """
    if config_dir is None:
        config_dir = Path("config")

    for explicit in (settings_path, labels_path):
        if explicit is not None and not explicit.exists():
            raise FileNotFoundError(f"Config file not found: {explicit}")

    if settings_path is None:
        settings_path = config_dir / "settings.yaml"
    if labels_path is None:
        labels_path = config_dir / "labels.yaml"

    if settings_path.exists():
        config = load_settings(settings_path)
        logger.info(f"Loaded settings from {settings_path}")
    else:
        config = Config()
        logger.warning(f"Settings file not found: {settings_path}, using defaults")

    if labels_path.exists():
        load_label_rules(labels_path, config)
        logger.info(
            f"Loaded {len(config.account_rules)} account rules and "
            f"{len(config.transaction_rules)} transaction rules from {labels_path}"
        )

    apply_environment(config, environ)
    config.validate()

    return config
