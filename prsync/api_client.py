"""Portfolio Report REST API client.

Typed list/upsert/delete operations for the entity collections kept under a
remote portfolio, plus portfolio-level listing and creation.
"""

import logging
from typing import Any

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from prsync.exceptions import (
    APIError,
    AuthenticationError,
    ClientError,
    MalformedRemoteRecord,
    NetworkError,
    RemoteUnavailable,
)
from prsync.remote import (
    EntityKind,
    RemotePortfolio,
    normalize_listing,
    portfolio_from_wire,
    portfolio_to_wire,
)

logger = logging.getLogger(__name__)

__all__ = [
    "APIError",
    "AuthenticationError",
    "ClientError",
    "MalformedRemoteRecord",
    "NetworkError",
    "PortfolioReportClient",
    "RemoteUnavailable",
]

DEFAULT_BASE_URL = "https://api.portfolio-report.net"


class PortfolioReportClient:
    """Client for the Portfolio Report API.

    Idempotent calls (GET, PUT, DELETE) are retried on transient failures
    (connection errors, 429, 5xx). Portfolio creation is a POST and is sent
    exactly once. Callers see every failure as a ``RemoteUnavailable``.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 30,
        max_attempts: int = 3,
    ):
        """Initialize API client.

        Args:
            api_key: Portfolio Report API key, sent as bearer token
            base_url: Base URL for API (default: https://api.portfolio-report.net)
            timeout: Request timeout in seconds (default: 30)
            max_attempts: Attempts per idempotent request, including the
                first (default: 3)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts

        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def check_connection(self, timeout: int = 5) -> list[RemotePortfolio]:
        """Quick connection and credentials check without retries.

        Args:
            timeout: Request timeout in seconds (default: 5 for quick check)

        Returns:
            Portfolios visible with the configured API key

        Raises:
            RemoteUnavailable: On any failure
        """
        response = self._send("GET", "/portfolios/", timeout=timeout)
        return self._parse_portfolios(response)

    def list_portfolios(self) -> list[RemotePortfolio]:
        """List remote portfolios of the authenticated user."""
        return self._parse_portfolios(self._request("GET", "/portfolios/"))

    def create_portfolio(self, portfolio: RemotePortfolio) -> RemotePortfolio:
        """Create a remote portfolio container.

        Not retried: a repeated POST would create a second portfolio.

        Returns:
            The created portfolio including its assigned id
        """
        logger.info(f"Creating remote portfolio '{portfolio.name}'")
        response = self._send("POST", "/portfolios/", json_data=portfolio_to_wire(portfolio))
        return portfolio_from_wire(response)

    def list_entities(self, kind: EntityKind, portfolio_id: int) -> list:
        """Return the full current remote state of one collection.

        Raises:
            MalformedRemoteRecord: If the listing has an unexpected shape
            RemoteUnavailable: On transport failure
        """
        response = self._request("GET", f"/portfolios/{portfolio_id}/{kind.value}/")
        return normalize_listing(kind, response)

    def upsert_entity(self, kind: EntityKind, portfolio_id: int, entity):
        """Create or replace an entity keyed by its uuid.

        Returns:
            The stored record as returned by the service
        """
        endpoint = f"/portfolios/{portfolio_id}/{kind.value}/{entity.uuid}"
        response = self._request("PUT", endpoint, json_data=kind.to_wire(entity))
        return kind.from_wire(response)

    def delete_entity(self, kind: EntityKind, portfolio_id: int, entity) -> None:
        endpoint = f"/portfolios/{portfolio_id}/{kind.value}/{entity.uuid}"
        self._request("DELETE", endpoint)

    def _parse_portfolios(self, response: Any) -> list[RemotePortfolio]:
        if not isinstance(response, list):
            raise MalformedRemoteRecord(
                f"Expected list of portfolios, got {type(response).__name__}"
            )
        return [portfolio_from_wire(item) for item in response]

    def _request(
        self, method: str, endpoint: str, json_data: dict[str, Any] | None = None
    ) -> Any:
        """Send an idempotent request, retrying transient failures.

        Raises:
            AuthenticationError: If the API key is rejected (401/403)
            NetworkError: If the service is not reachable after all attempts
            ClientError: For client errors (400, 404, etc.)
            APIError: For 429/5xx after all attempts
        """
        retrying = Retrying(
            retry=retry_if_exception_type((NetworkError, APIError)),
            # Note: ClientError and AuthenticationError are NOT retried
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=30),
            reraise=True,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        return retrying(self._send, method, endpoint, json_data=json_data)

    def _send(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
        timeout: int | None = None,
    ) -> Any:
        """Send a single request and map the outcome to data or an exception.

        Returns:
            Response JSON data, or None for empty responses
        """
        url = f"{self.base_url}{endpoint}"
        request_timeout = timeout if timeout is not None else self.timeout

        logger.debug(f"API request: {method} {endpoint}")
        try:
            response = self.session.request(
                method, url, json=json_data, timeout=request_timeout
            )
        except requests.exceptions.SSLError as e:
            # SSLError must be caught before ConnectionError (it's a subclass)
            raise NetworkError(f"SSL error for {endpoint}: {e}") from e
        except requests.exceptions.Timeout as e:
            raise NetworkError(
                f"Request timeout for {endpoint} after {request_timeout}s"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise NetworkError(f"Service not reachable at {self.base_url}") from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Network error for {endpoint}: {str(e)}") from e

        logger.debug(f"Response status: {response.status_code} for {endpoint}")

        if response.status_code == 401:
            raise AuthenticationError(
                "API key rejected. Check PORTFOLIO_REPORT_API_KEY and retry."
            )
        elif response.status_code == 403:
            raise AuthenticationError(f"Insufficient permissions for {endpoint}")
        elif response.status_code == 404:
            raise ClientError(f"Not found: {method} {endpoint}")
        elif response.status_code == 429:
            raise APIError(f"Rate limit exceeded for {endpoint}")
        elif response.status_code >= 500:
            raise APIError(f"Server error {response.status_code} for {endpoint}")
        elif response.status_code >= 400:
            raise ClientError(
                f"Client error {response.status_code} for {endpoint}: "
                f"{response.text[:200]}"
            )

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON response from {endpoint}: {str(e)}")
            raise ClientError(f"Invalid JSON response from {endpoint}: {str(e)}") from e
