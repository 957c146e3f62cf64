"""
Custom exceptions for the Dispatch Console.

Exception Hierarchy:
    DispatchConsoleError (base)
    ├── ServiceUnavailableError      - Remote inventory API unreachable
    ├── ApiRequestError              - Remote API answered with an error
    ├── StockNotReadyError           - No stock snapshot fetched yet (runtime, graceful)
    ├── DispatchValidationError      - Local validation failed before any remote call
    │   └── EmptySelectionError      - No units selected for the dispatch
    ├── BulkImportError              - Bulk import produced nothing usable
    └── DispatchSubmissionError      - create-dispatch call failed (runtime, graceful)
        └── SubmissionInProgressError - A submission is already outstanding

Usage:
    None of these are fatal to an operator session. Routes translate them
    into JSON error responses and the operator corrects input or retries.
"""

from typing import Optional, Dict, Any


class DispatchConsoleError(Exception):
    """
    Base exception for all Dispatch Console errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# REMOTE API ERRORS
# =============================================================================

class ServiceUnavailableError(DispatchConsoleError):
    """
    The remote inventory API is not reachable.

    Typical causes:
    - API server down or restarting
    - Wrong DISPATCH_API_BASE_URL in .env
    - Network connectivity issues
    """

    def __init__(self, message: str = "Inventory API is not available", url: str = ""):
        details = {
            "resolution": "Check DISPATCH_API_BASE_URL and that the inventory API is running"
        }
        if url:
            details["url"] = url
        super().__init__(message, details)
        self.url = url


class ApiRequestError(DispatchConsoleError):
    """The remote API answered, but with an error status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: str = ""):
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if url:
            details["url"] = url
        super().__init__(message, details)
        self.status_code = status_code
        self.url = url


class StockNotReadyError(DispatchConsoleError):
    """
    Stock data has not yet been loaded from the inventory API.

    This can occur when:
    - App just started and first refresh hasn't completed
    - Inventory API became unavailable after startup
    """

    def __init__(self, message: str = "Stock not yet loaded", view: str = ""):
        details = {
            "resolution": "Wait for stock refresh or check inventory API connectivity"
        }
        if view:
            details["view"] = view
        super().__init__(message, details)
        self.view = view


# =============================================================================
# LOCAL ERRORS - Rejected before any remote call
# =============================================================================

class DispatchValidationError(DispatchConsoleError):
    """
    Dispatch input failed local validation.

    Raised before the create-dispatch call is made, so nothing has been sent.
    The operator corrects the field and submits again.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, details)
        self.field = field


class EmptySelectionError(DispatchValidationError):
    """No units are selected for the dispatch."""

    def __init__(self, message: str = "Select at least one unit to dispatch"):
        super().__init__(message, field="serialNumbers")


class BulkImportError(DispatchConsoleError):
    """
    A bulk import produced no usable serial numbers.

    The selection is left exactly as it was before the import.
    """

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        candidates: int = 0,
    ):
        details: Dict[str, Any] = {"candidates": candidates}
        if filename:
            details["filename"] = filename
        super().__init__(message, details)
        self.filename = filename
        self.candidates = candidates


# =============================================================================
# SUBMISSION ERRORS - Selection and form are preserved for retry
# =============================================================================

class DispatchSubmissionError(DispatchConsoleError):
    """
    The create-dispatch call failed.

    Carries the server's reason when the API provided one. The session keeps
    its selection and form fields so the operator can retry as-is.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        serial_number: Optional[str] = None,
        dispatch_number: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if reason:
            details["reason"] = reason
        if serial_number:
            details["serial_number"] = serial_number
        if dispatch_number:
            details["dispatch_number"] = dispatch_number
        super().__init__(message, details)
        self.status_code = status_code
        self.reason = reason
        self.serial_number = serial_number
        self.dispatch_number = dispatch_number


class SubmissionInProgressError(DispatchSubmissionError):
    """
    A submission for this session is still waiting on the API.

    Refused locally so the same dispatch is never created twice.
    """

    def __init__(self, dispatch_number: Optional[str] = None):
        super().__init__(
            "A dispatch submission is already in progress",
            dispatch_number=dispatch_number,
        )
