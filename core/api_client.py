"""
HTTP client for the remote inventory API.

Wraps the three endpoints the dispatch console needs:

    GET  /api/factory-inverter-stock   -> factory stock snapshot
    GET  /api/dealer-inverter-stock    -> dealer stock snapshot
    POST /api/inverter-dispatches      -> create a dispatch

THREAD SAFETY:
    requests.Session is not guaranteed thread-safe. The stock refresh thread
    and request handlers each create their own InventoryAPIClient, the same
    way they would each open their own connection.

Usage:
    api_client = InventoryAPIClient(
        base_url="http://localhost:5000",
        token=os.environ.get("DISPATCH_API_TOKEN"),
        timeout_seconds=15,
    )

    snapshot = api_client.get_factory_stock()
    receipt = api_client.create_dispatch(draft)
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Any, Optional

import requests

from models.dispatch import DispatchDraft, DispatchReceipt
from models.stock import StockSnapshot
from .exceptions import ApiRequestError, DispatchSubmissionError, ServiceUnavailableError


FACTORY_STOCK_PATH = "/api/factory-inverter-stock"
DEALER_STOCK_PATH = "/api/dealer-inverter-stock"
DISPATCHES_PATH = "/api/inverter-dispatches"

GENERIC_SUBMISSION_FAILURE = "Failed to create dispatch"


class InventoryAPIClient:
    """
    Client for the inventory API.

    Stock reads raise ServiceUnavailableError / ApiRequestError; the
    create-dispatch call raises DispatchSubmissionError for every failure so
    the submission coordinator has a single error to surface.

    Attributes:
        base_url: API root without trailing slash
        thread_id: ID of the thread that created this client
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_seconds: float = 15.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. "http://localhost:5000"
            token: Bearer token for the factory admin account (optional)
            timeout_seconds: Per-request timeout
            session: Pre-built requests.Session (tests inject one)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required - set DISPATCH_API_BASE_URL")

        self.base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._logger = logger or logging.getLogger("core.api_client")
        self._thread_id = threading.get_ident()

        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    @property
    def thread_id(self) -> int:
        """ID of the thread that owns this client."""
        return self._thread_id

    def close(self) -> None:
        self._session.close()

    # -------------------------------------------------------------------------
    # Stock reads
    # -------------------------------------------------------------------------

    def get_factory_stock(self) -> StockSnapshot:
        """
        Fetch units still at the factory (available for dispatch).

        Returns:
            StockSnapshot for the 'factory' view

        Raises:
            ServiceUnavailableError: API unreachable or timed out
            ApiRequestError: Error status or unusable body
        """
        body = self._get_json(FACTORY_STOCK_PATH)
        snapshot = StockSnapshot.from_api_response(body, view="factory")
        self._logger.debug(f"Factory stock fetched: {len(snapshot)} units")
        return snapshot

    def get_dealer_stock(self, dealer: Optional[str] = None) -> StockSnapshot:
        """
        Fetch units held by dealers.

        Args:
            dealer: Restrict to one dealer (None = every dealer)

        Returns:
            StockSnapshot for the 'dealer' view
        """
        params = {"dealer": dealer} if dealer else None
        body = self._get_json(DEALER_STOCK_PATH, params=params)
        snapshot = StockSnapshot.from_api_response(body, view="dealer")
        self._logger.debug(f"Dealer stock fetched: {len(snapshot)} units")
        return snapshot

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.Timeout:
            self._logger.error(f"[Thread {self._thread_id}] GET {path} timed out after {self._timeout}s")
            raise ServiceUnavailableError(
                f"Inventory API timed out after {self._timeout:.1f}s", url=url
            )
        except requests.ConnectionError as e:
            self._logger.error(f"[Thread {self._thread_id}] GET {path} failed: {e}")
            raise ServiceUnavailableError(url=url)
        except requests.RequestException as e:
            raise ApiRequestError(f"GET {path} failed: {e}", url=url)

        if not response.ok:
            message = _server_message(response) or f"GET {path} failed"
            raise ApiRequestError(message, status_code=response.status_code, url=url)

        try:
            body = response.json()
        except ValueError as e:
            raise ApiRequestError(f"Invalid JSON from {path}: {e}", status_code=response.status_code, url=url)

        if not isinstance(body, dict):
            raise ApiRequestError(f"Unexpected response shape from {path}", url=url)
        return body

    # -------------------------------------------------------------------------
    # Dispatch creation
    # -------------------------------------------------------------------------

    def create_dispatch(self, draft: DispatchDraft) -> DispatchReceipt:
        """
        Create a factory -> dealer dispatch.

        The API accepts the dispatch only if every serial exists, is unsold
        and not already dispatched; otherwise nothing is created.

        Args:
            draft: Frozen dispatch request

        Returns:
            DispatchReceipt

        Raises:
            DispatchSubmissionError: Any failure, with the server's message
                when it sent one
        """
        url = f"{self.base_url}{DISPATCHES_PATH}"
        self._logger.info(
            f"[Thread {self._thread_id}] Creating dispatch {draft.dispatch_number} "
            f"({len(draft.serial_numbers)} units -> {draft.dealer})"
        )

        try:
            response = self._session.post(url, json=draft.to_payload(), timeout=self._timeout)
        except requests.Timeout:
            raise DispatchSubmissionError(
                f"Dispatch request timed out after {self._timeout:.1f}s",
                dispatch_number=draft.dispatch_number,
            )
        except requests.RequestException as e:
            self._logger.error(f"[Thread {self._thread_id}] POST {DISPATCHES_PATH} failed: {e}")
            raise DispatchSubmissionError(
                "Inventory API is not available",
                dispatch_number=draft.dispatch_number,
            )

        body = _json_or_empty(response)

        if not response.ok:
            raise DispatchSubmissionError(
                body.get("message") or GENERIC_SUBMISSION_FAILURE,
                status_code=response.status_code,
                reason=body.get("reason"),
                serial_number=body.get("serialNumber"),
                dispatch_number=draft.dispatch_number,
            )

        receipt = DispatchReceipt.from_api_response(body, draft)
        self._logger.info(
            f"[Thread {self._thread_id}] Dispatch {receipt.dispatch_number} created "
            f"({receipt.dispatched_count} units)"
        )
        return receipt


def _json_or_empty(response: requests.Response) -> Dict[str, Any]:
    """Decoded JSON object body, or {} for anything else."""
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _server_message(response: requests.Response) -> str:
    return _json_or_empty(response).get("message") or ""
