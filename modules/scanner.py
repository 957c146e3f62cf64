"""
Barcode scanner channel.

A handheld scanner types the serial and ends it with Enter. The channel is a
two-state machine:

    DISARMED --arm()--> ARMED --submit()--> ARMED --disarm()--> DISARMED

Only an ARMED channel validates tokens. Each token is looked up in the
latest stock snapshot and merged into the selection; the channel never
keeps its own copy of either.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from models.dispatch import ScanOutcome
from models.stock import ProductCategory, StockSnapshot
from modules.selection import SelectionSet


SnapshotProvider = Callable[[], StockSnapshot]


class ScannerMode(Enum):
    DISARMED = "disarmed"
    ARMED = "armed"


class ScannerChannel:
    """Validates scanned serials one at a time and adds them to a selection."""

    def __init__(
        self,
        selection: SelectionSet,
        snapshot_provider: SnapshotProvider,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._selection = selection
        self._snapshot_provider = snapshot_provider
        self._logger = logger or logging.getLogger(__name__)

        self._mode = ScannerMode.DISARMED
        self._pending = ""

        # Category/model pickers narrow what a scan may match
        self.category: Optional[ProductCategory] = None
        self.model_id: Optional[str] = None

    @property
    def mode(self) -> ScannerMode:
        return self._mode

    @property
    def armed(self) -> bool:
        return self._mode is ScannerMode.ARMED

    @property
    def pending_token(self) -> str:
        return self._pending

    def arm(self) -> None:
        """Switch scanner mode on. Arming an armed channel changes nothing."""
        if self._mode is ScannerMode.DISARMED:
            self._logger.debug("Scanner armed")
        self._mode = ScannerMode.ARMED

    def disarm(self) -> None:
        """Switch scanner mode off, dropping any half-typed token."""
        if self._mode is ScannerMode.ARMED:
            self._logger.debug("Scanner disarmed")
        self._mode = ScannerMode.DISARMED
        self._pending = ""

    def reset(self) -> None:
        """Disarm and clear the filters (used after a successful dispatch)."""
        self.disarm()
        self.category = None
        self.model_id = None

    def feed(self, text: str) -> None:
        """Append keystrokes to the pending token. Ignored while disarmed."""
        if self._mode is ScannerMode.ARMED:
            self._pending += text

    def submit(self, raw_token: Optional[str] = None) -> Optional[ScanOutcome]:
        """
        End-of-token signal (Enter).

        Validates raw_token if given, else the pending buffer. The buffer is
        always cleared afterwards and the channel stays armed.

        Returns:
            ScanOutcome, or None when disarmed or the token is blank
        """
        if self._mode is not ScannerMode.ARMED:
            return None

        token = (self._pending if raw_token is None else raw_token).strip()
        self._pending = ""

        if not token:
            return None

        return self._accept(token)

    def scan(self, raw_token: str) -> Optional[ScanOutcome]:
        """One complete scan: the token followed by Enter."""
        return self.submit(raw_token)

    def _accept(self, serial: str) -> ScanOutcome:
        snapshot = self._snapshot_provider().filter(self.category, self.model_id)

        if serial not in snapshot:
            self._logger.info(f"Scan rejected: {serial} not in stock")
            return ScanOutcome.rejected(serial)

        if not self._selection.add(serial):
            return ScanOutcome.already_selected(serial)

        self._logger.info(f"Scan accepted: {serial} ({len(self._selection)} selected)")
        return ScanOutcome.accepted(serial)

    def to_dict(self) -> dict:
        return {
            "armed": self.armed,
            "pendingToken": self._pending,
            "category": self.category.value if self.category else None,
            "modelId": self.model_id,
        }
