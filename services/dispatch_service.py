"""
Dispatch composition sessions and submission.

Each operator session owns ONE DispatchSession. The session is the single
owner of the selection; the three input channels write into it through
typed entry points instead of keeping copies:

    toggle()       - manual pick/unpick from the available-stock list
    scan()         - barcode scanner channel (must be armed)
    import_file()  - bulk import from CSV/TXT/XLSX (or import_text())

submit() turns the selection and the form into a DispatchDraft and sends it
to the inventory API.

Single-flight:
    While a create-dispatch call is outstanding, a second submit() on the
    same session is refused with SubmissionInProgressError. There is no
    cancellation; the caller waits for success or failure.

Flow:
    1. Route looks up the session via DispatchService.session(session_id)
    2. Operator scans / toggles / imports; preview() is re-derived each time
    3. submit() validates locally, builds the draft and calls the API
    4. Success: selection, scanner and form are reset and the factory and
       dealer stock views are invalidated
    5. Failure: nothing local changes; the error is surfaced for retry

Usage:
    dispatch_service = DispatchService(stock_service, client_factory)

    session = dispatch_service.session(session_id, operator_name="Qaiser Javed")
    session.scanner.arm()
    session.scan("SLI6K-0001")
    session.form.update({"dealer": "Punjab Solar Traders"})
    receipt = session.submit()
"""

from __future__ import annotations

import re
import threading
import time
from datetime import datetime
from typing import Callable, Dict, Optional

from core.api_client import InventoryAPIClient
from core.exceptions import (
    DispatchSubmissionError,
    DispatchValidationError,
    EmptySelectionError,
    SubmissionInProgressError,
)
from models.dispatch import (
    DispatchDraft,
    DispatchForm,
    DispatchReceipt,
    ImportResult,
    ScanOutcome,
    today_iso,
)
from models.stock import StockSnapshot
from modules.bulk_import import BulkImportParser
from modules.dispatch_number import derive, operator_prefix
from modules.scanner import ScannerChannel
from modules.selection import SelectionSet
from services.stock_service import DEALER_VIEW, FACTORY_VIEW, StockService
from logging_config import get_logger, get_session_logger


# Module logger
logger = get_logger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Seconds between idle-session sweeps
SESSION_SWEEP_INTERVAL = 60.0


class DispatchSession:
    """
    Composition state for one pending dispatch.

    Attributes:
        session_id: Id of the operator session that owns this dispatch
        selection: Selected serials (the only copy)
        scanner: Barcode scanner channel writing into selection
        form: Dealer / date / remarks / number override
        last_import: Result of the most recent successful import
        last_receipt: Receipt of the most recent successful dispatch
    """

    def __init__(
        self,
        session_id: str,
        snapshot_provider: Callable[[], StockSnapshot],
        client_factory: Callable[[], InventoryAPIClient],
        operator_name: str = "",
        on_dispatched: Optional[Callable[[DispatchReceipt], None]] = None,
    ):
        """
        Initialize an empty dispatch session.

        Args:
            session_id: Owning session id (used for logging)
            snapshot_provider: Returns the current factory stock snapshot
            client_factory: Returns a new InventoryAPIClient per call
            operator_name: Display name used for the dispatch number prefix
            on_dispatched: Called after a dispatch is created
        """
        self.session_id = session_id
        self.operator_name = operator_name
        self._snapshot_provider = snapshot_provider
        self._client_factory = client_factory
        self._on_dispatched = on_dispatched
        self._logger = get_session_logger(session_id)

        self.selection = SelectionSet()
        self.scanner = ScannerChannel(self.selection, snapshot_provider, logger=self._logger)
        self._importer = BulkImportParser(snapshot_provider, logger=self._logger)
        self.form = DispatchForm()

        self.last_import: Optional[ImportResult] = None
        self.last_receipt: Optional[DispatchReceipt] = None

        self._submit_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Input channels
    # -------------------------------------------------------------------------

    def toggle(self, serial: str) -> ScanOutcome:
        """
        Manual pick/unpick of one serial.

        Unpicking always works; picking requires the serial to be in the
        current stock snapshot.
        """
        serial = (serial or "").strip()
        if self.selection.remove(serial):
            return ScanOutcome.removed(serial)

        if serial not in self._snapshot_provider():
            return ScanOutcome.rejected(serial)

        self.selection.add(serial)
        return ScanOutcome.accepted(serial)

    def scan(self, token: str) -> Optional[ScanOutcome]:
        """Scanner channel: validate one token (None if ignored)."""
        return self.scanner.scan(token)

    def import_file(self, filename: str, data: bytes) -> ImportResult:
        """
        Bulk import from an uploaded file.

        Raises:
            BulkImportError: Nothing usable in the file (selection unchanged)
        """
        self.last_import = self._importer.import_file(self.selection, filename, data)
        return self.last_import

    def import_text(self, text: str) -> ImportResult:
        """
        Bulk import from pasted text, one serial per line.

        Raises:
            BulkImportError: Nothing usable in the text (selection unchanged)
        """
        self.last_import = self._importer.import_text(self.selection, text)
        return self.last_import

    # -------------------------------------------------------------------------
    # Dispatch number
    # -------------------------------------------------------------------------

    @property
    def prefix(self) -> str:
        return operator_prefix(self.operator_name)

    def preview(self) -> str:
        """Derived dispatch number for the current selection and date."""
        dispatch_date = self.form.dispatch_date or today_iso()
        return derive(self.selection.values(), dispatch_date, self.prefix)

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def build_draft(self) -> DispatchDraft:
        """
        Validate locally and freeze the pending dispatch.

        Raises:
            EmptySelectionError: Nothing selected
            DispatchValidationError: Missing dealer, missing or malformed date
        """
        if not self.selection:
            raise EmptySelectionError()

        dealer = self.form.dealer.strip()
        if not dealer:
            raise DispatchValidationError("Dealer name is required", field="dealer")

        dispatch_date = self.form.dispatch_date.strip()
        if not dispatch_date:
            raise DispatchValidationError("Dispatch date is required", field="dispatchDate")
        if not DATE_PATTERN.match(dispatch_date):
            raise DispatchValidationError(
                "Dispatch date must be in YYYY-MM-DD format", field="dispatchDate"
            )
        try:
            datetime.strptime(dispatch_date, "%Y-%m-%d")
        except ValueError:
            raise DispatchValidationError(
                f"{dispatch_date} is not a valid date", field="dispatchDate"
            )

        dispatch_number = self.form.dispatch_number.strip() or self.preview()
        remarks = self.form.remarks.strip() or None

        return DispatchDraft(
            dispatch_number=dispatch_number,
            dealer=dealer,
            dispatch_date=dispatch_date,
            serial_numbers=tuple(self.selection.values()),
            remarks=remarks,
        )

    @property
    def is_submitting(self) -> bool:
        return self._submit_lock.locked()

    def submit(self) -> DispatchReceipt:
        """
        Create the dispatch.

        Returns:
            DispatchReceipt from the API

        Raises:
            SubmissionInProgressError: Another submit() is still running
            DispatchValidationError: Local validation failed (no API call)
            DispatchSubmissionError: API rejected or unreachable; selection
                and form are unchanged
        """
        if not self._submit_lock.acquire(blocking=False):
            raise SubmissionInProgressError(self.form.dispatch_number or None)

        try:
            draft = self.build_draft()

            self._logger.info(
                f"Submitting dispatch {draft.dispatch_number}: "
                f"{len(draft.serial_numbers)} unit(s) -> {draft.dealer}"
            )

            api_client = self._client_factory()
            try:
                receipt = api_client.create_dispatch(draft)
            finally:
                api_client.close()

            # Reset under the lock so a repeat submit cannot reuse this selection
            self._complete(receipt)

        except DispatchSubmissionError as e:
            self._logger.warning(f"Dispatch submission failed: {e}")
            raise

        finally:
            self._submit_lock.release()

        return receipt

    def _complete(self, receipt: DispatchReceipt) -> None:
        """Reset local state after a created dispatch and signal stale stock."""
        self.last_receipt = receipt
        self.reset()

        self._logger.info(
            f"Dispatch {receipt.dispatch_number} created "
            f"({receipt.dispatched_count} unit(s) -> {receipt.dealer})"
        )

        if self._on_dispatched is not None:
            self._on_dispatched(receipt)

    def reset(self) -> None:
        """Clear selection, scanner, last import and form."""
        self.selection.clear()
        self.scanner.reset()
        self.last_import = None
        self.form.reset()

    def to_dict(self) -> Dict:
        """Session state for the console."""
        return {
            "selection": self.selection.values(),
            "count": len(self.selection),
            "scanner": self.scanner.to_dict(),
            "form": self.form.to_dict(),
            "preview": self.preview(),
            "prefix": self.prefix,
            "submitting": self.is_submitting,
            "lastImport": self.last_import.to_dict() if self.last_import else None,
            "lastReceipt": self.last_receipt.to_dict() if self.last_receipt else None,
        }


class DispatchSessionStore:
    """
    Thread-safe map of session id -> DispatchSession.

    Flask serves requests on several threads, so lookups and creation go
    through a lock. The sessions themselves are used by one operator at a
    time.

    Every lookup stamps the session as used; evict_idle() drops sessions
    nobody has touched for a while. A session with a submission in flight
    is never evicted.
    """

    def __init__(
        self,
        session_factory: Callable[[str], DispatchSession],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = session_factory
        self._clock = clock
        self._sessions: Dict[str, DispatchSession] = {}
        self._last_used: Dict[str, float] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[DispatchSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._last_used[session_id] = self._clock()
            return session

    def get_or_create(self, session_id: str) -> DispatchSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = self._factory(session_id)
                self._sessions[session_id] = session
                logger.debug(f"Created dispatch session {session_id[:8]}")
            self._last_used[session_id] = self._clock()
            return session

    def discard(self, session_id: str) -> bool:
        with self._lock:
            self._last_used.pop(session_id, None)
            return self._sessions.pop(session_id, None) is not None

    def evict_idle(self, max_idle_seconds: float) -> int:
        """
        Remove sessions unused for longer than max_idle_seconds.

        Returns:
            Number of sessions removed
        """
        with self._lock:
            now = self._clock()
            idle = [
                session_id
                for session_id, last_used in self._last_used.items()
                if now - last_used > max_idle_seconds
                and not self._sessions[session_id].is_submitting
            ]
            for session_id in idle:
                del self._sessions[session_id]
                del self._last_used[session_id]

        if idle:
            logger.info(f"Evicted {len(idle)} idle dispatch sessions")
        return len(idle)

    def clear(self) -> int:
        """
        Remove all sessions.

        Returns:
            Number of sessions removed
        """
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            self._last_used.clear()
            logger.info(f"Cleared {count} dispatch sessions")
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class DispatchService:
    """
    Entry point for the routes: builds sessions wired to the stock service.

    After any session creates a dispatch, the factory and dealer stock views
    are invalidated so dispatched units drop out of the available list.
    Idle sessions are swept out at most once per SESSION_SWEEP_INTERVAL.
    """

    def __init__(
        self,
        stock_service: StockService,
        client_factory: Callable[[], InventoryAPIClient],
        default_operator_name: str = "",
        session_idle_seconds: float = 8 * 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._stock_service = stock_service
        self._client_factory = client_factory
        self._default_operator_name = default_operator_name
        self._session_idle_seconds = session_idle_seconds
        self._clock = clock
        self._sessions = DispatchSessionStore(self._create_session, clock=clock)
        self._last_sweep = clock()

        logger.info("DispatchService initialized")

    @property
    def sessions(self) -> DispatchSessionStore:
        return self._sessions

    def session(self, session_id: str, operator_name: Optional[str] = None) -> DispatchSession:
        """
        Get (or open) the dispatch session for an operator session.

        Args:
            session_id: Operator session id
            operator_name: Updates the session's operator name when given
        """
        self._sweep_idle_sessions()

        session = self._sessions.get_or_create(session_id)
        if operator_name:
            session.operator_name = operator_name
        return session

    def _sweep_idle_sessions(self) -> None:
        now = self._clock()
        if now - self._last_sweep < SESSION_SWEEP_INTERVAL:
            return
        self._last_sweep = now
        self._sessions.evict_idle(self._session_idle_seconds)

    def factory_snapshot(self) -> StockSnapshot:
        return self._stock_service.get_snapshot_or_raise(FACTORY_VIEW)

    def _create_session(self, session_id: str) -> DispatchSession:
        return DispatchSession(
            session_id=session_id,
            snapshot_provider=self.factory_snapshot,
            client_factory=self._client_factory,
            operator_name=self._default_operator_name,
            on_dispatched=self._on_dispatched,
        )

    def _on_dispatched(self, receipt: DispatchReceipt) -> None:
        self._stock_service.invalidate(FACTORY_VIEW, DEALER_VIEW)
