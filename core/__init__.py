"""
Core module for the Dispatch Console.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- api_client: HTTP client for the remote inventory API
"""

from .exceptions import (
    DispatchConsoleError,
    ServiceUnavailableError,
    ApiRequestError,
    StockNotReadyError,
    DispatchValidationError,
    EmptySelectionError,
    BulkImportError,
    DispatchSubmissionError,
    SubmissionInProgressError,
)
from .api_client import InventoryAPIClient

__all__ = [
    "DispatchConsoleError",
    "ServiceUnavailableError",
    "ApiRequestError",
    "StockNotReadyError",
    "DispatchValidationError",
    "EmptySelectionError",
    "BulkImportError",
    "DispatchSubmissionError",
    "SubmissionInProgressError",
    "InventoryAPIClient",
]
