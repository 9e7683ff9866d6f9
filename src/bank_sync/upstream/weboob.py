"""
Client for the weboob banking API.

The API exposes:
- POST /auth: open a session (cookie based)
- POST /cap: run a capability command ("bank list", "bank history <id>")
"""

import json
from typing import Any, Optional
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from bank_sync.config import UpstreamConfig
from bank_sync.upstream.base import BaseUpstream, LoginFailedError, UpstreamError, VendorDownError
from bank_sync.utils.logging_config import get_logger, mask_account_number

logger = get_logger(__name__)


class WeboobClient(BaseUpstream):
    """
    Client for the weboob banking API.

    The session, and with it the authentication cookie, belongs to the
    client instance; nothing is shared between clients.
    """

    def __init__(self, config: UpstreamConfig, session: Optional[requests.Session] = None):
        """
        Initialize client.

        Args:
            config: Upstream settings (base URL, backend, credentials, timeout)
            session: Session to use instead of a new one
        """
        self.config = config
        self.base_url = config.base_url if config.base_url.endswith("/") else config.base_url + "/"
        self.timeout = config.timeout

        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

        if config.max_retries > 0:
            retry_strategy = Retry(
                total=config.max_retries,
                backoff_factor=0.5,
                status_forcelist=[502, 503, 504],
                allowed_methods=["POST"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    def _post(self, endpoint: str, payload: dict) -> requests.Response:
        """POST a JSON payload, mapping transport failures to VendorDownError."""
        url = urljoin(self.base_url, endpoint)
        try:
            return self.session.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.ConnectionError as e:
            raise VendorDownError(f"Failed to connect to {self.base_url}: {e}") from e
        except requests.exceptions.Timeout as e:
            raise VendorDownError(f"Request to {url} timed out: {e}") from e
        except requests.exceptions.RetryError as e:
            # retries on 502/503/504 exhausted
            raise VendorDownError(f"Upstream kept failing on {url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"Request to {url} failed: {e}") from e

    def authenticate(self) -> None:
        if not self.config.login or not self.config.password:
            raise LoginFailedError("No upstream credentials configured")

        response = self._post(
            "auth", {"username": self.config.login, "password": self.config.password}
        )

        if response.status_code >= 500:
            raise VendorDownError(
                f"Upstream unavailable during login: {response.status_code} {response.reason}",
                status_code=response.status_code,
            )
        if not response.ok:
            logger.error(f"Login rejected with status {response.status_code}")
            raise LoginFailedError("Login failed", status_code=response.status_code)

        logger.info("Authenticated against upstream")

    def _command(self, command: str, args: Optional[str] = None) -> Any:
        """Run a bank capability command and return the decoded body."""
        payload: dict[str, str] = {"capability": "bank", "command": command}
        if args is not None:
            payload["args"] = args

        response = self._post("cap", payload)
        if response.status_code >= 500:
            raise VendorDownError(
                f"Upstream failed on '{command}': {response.status_code} {response.reason}",
                status_code=response.status_code,
            )
        if response.status_code in (401, 403):
            raise LoginFailedError(
                f"Session rejected on '{command}'", status_code=response.status_code
            )
        if not response.ok:
            raise UpstreamError(
                f"Upstream error on '{command}': {response.status_code} {response.reason}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
            # history bodies arrive as a JSON document inside a JSON string
            if isinstance(body, str):
                body = json.loads(body)
        except ValueError as e:
            logger.error(f"Non-JSON body for '{command}': {response.text[:200]}")
            raise UpstreamError(f"Upstream sent non-JSON data for '{command}'") from e

        return body

    def _record_list(self, body: Any, command: str) -> list[dict]:
        if not isinstance(body, list):
            raise UpstreamError(
                f"Expected a list from '{command}', got {type(body).__name__}"
            )
        return body

    def list_accounts(self) -> list[dict]:
        accounts = self._record_list(self._command("list"), "list")
        logger.info(f"Upstream returned {len(accounts)} accounts")
        return accounts

    def list_transactions(self, account_number: str) -> list[dict]:
        full_id = f"{account_number}@{self.config.backend}"
        operations = self._record_list(self._command("history", full_id), "history")
        logger.debug(
            f"Upstream returned {len(operations)} operations for {mask_account_number(account_number)}"
        )
        return operations
