"""Abstract base class for upstream banking sources."""

from abc import ABC, abstractmethod
from typing import Optional


class UpstreamError(Exception):
    """Exception raised when the upstream source fails or sends unusable data."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """Initialize UpstreamError.

        Args:
            message: Error message.
            status_code: HTTP status of the failed response, if any.
        """
        self.status_code = status_code
        super().__init__(message)


class LoginFailedError(UpstreamError):
    """The upstream rejected the credentials. Retrying will not help."""

    pass


class VendorDownError(UpstreamError):
    """The upstream is unreachable or failing server-side. Try again later."""

    pass


class BaseUpstream(ABC):
    """Source of raw account and operation records.

    Subclasses must implement:
    - authenticate(): Open a session with the configured credentials
    - list_accounts(): Return raw account records
    - list_transactions(): Return raw operation records for one account
    """

    @abstractmethod
    def authenticate(self) -> None:
        """Open an authenticated session.

        Raises:
            LoginFailedError: If the credentials are rejected.
            VendorDownError: If the upstream is down.
        """
        pass

    @abstractmethod
    def list_accounts(self) -> list[dict]:
        """Return the raw account records of the authenticated user.

        Raises:
            UpstreamError: If the upstream fails or the response is unusable.
        """
        pass

    @abstractmethod
    def list_transactions(self, account_number: str) -> list[dict]:
        """Return the raw operation records of one account, in upstream order.

        Args:
            account_number: Upstream account number.

        Raises:
            UpstreamError: If the upstream fails or the response is unusable.
        """
        pass

    @property
    def name(self) -> str:
        """Return source name for logging."""
        return self.__class__.__name__
