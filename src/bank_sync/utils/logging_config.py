"""Logging configuration for bank-sync.

Credentials and account numbers travel through most sync operations, so
context passed to LogContext is masked before it is written out.
"""

import logging
import sys
import time
from pathlib import Path

DEFAULT_LOG_FILE = "bank_sync.log"

# Upstream credentials and session material, never logged
CREDENTIAL_FIELDS = {"password", "login", "username", "token", "cookie", "session", "secret"}

# Bank account identifiers, logged with only their last digits
ACCOUNT_NUMBER_FIELDS = {"account_number", "raw_number", "number", "iban"}

VISIBLE_ACCOUNT_DIGITS = 4

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def mask_account_number(value: object) -> str:
    """Mask a bank account number, keeping its last digits.

    Args:
        value: Account number as sent by the upstream.

    Returns:
        The number with all but the last VISIBLE_ACCOUNT_DIGITS characters
        replaced, e.g. "****6789".
    """
    text = str(value or "").replace(" ", "")
    if len(text) <= VISIBLE_ACCOUNT_DIGITS:
        return "*" * len(text)
    return "*" * 4 + text[-VISIBLE_ACCOUNT_DIGITS:]


def _sanitize_context(context: dict[str, object]) -> dict[str, object]:
    """Mask credentials and account numbers in a context dict.

    Args:
        context: Dictionary of context values.

    Returns:
        Dictionary safe to write to the sync log.
    """
    sanitized: dict[str, object] = {}
    for key, value in context.items():
        lowered = key.lower()
        if lowered in CREDENTIAL_FIELDS:
            sanitized[key] = "***"
        elif lowered in ACCOUNT_NUMBER_FIELDS:
            sanitized[key] = mask_account_number(value)
        else:
            sanitized[key] = value
    return sanitized


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
) -> logging.Logger:
    """Configure the bank_sync logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Sync log path. If None, uses DEFAULT_LOG_FILE.
        console_output: Whether to also output to stderr.

    Returns:
        The package logger.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("bank_sync")
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler = logging.FileHandler(Path(log_file or DEFAULT_LOG_FILE), encoding="utf-8")
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the bank_sync hierarchy.

    Args:
        name: Module name (typically __name__).
    """
    if name == "bank_sync" or name.startswith("bank_sync."):
        return logging.getLogger(name)
    return logging.getLogger(f"bank_sync.{name}")


class LogContext:
    """Logs the start and outcome of one sync step."""

    def __init__(self, logger: logging.Logger, step: str, **context: object):
        """Initialize log context.

        Args:
            logger: Logger instance to use.
            step: Sync step being performed, e.g. "authenticate".
            **context: Values identifying the step (masked before logging).
        """
        self.logger = logger
        self.step = step
        self.context = _sanitize_context(context)
        self._started = 0.0

    def _describe(self) -> str:
        if not self.context:
            return self.step
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.step} ({details})"

    def __enter__(self) -> "LogContext":
        self.logger.debug(f"Sync step started: {self._describe()}")
        self._started = time.monotonic()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> bool:
        elapsed = time.monotonic() - self._started
        if exc_type is not None:
            self.logger.error(
                f"Sync step failed after {elapsed:.2f}s: {self._describe()}: "
                f"{exc_type.__name__}: {exc_val}",
                exc_info=True,
            )
        else:
            self.logger.debug(f"Sync step done in {elapsed:.2f}s: {self._describe()}")
        return False
