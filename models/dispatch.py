"""
Dispatch data models.

These models carry a dispatch from composition to the create-dispatch call:

- DispatchForm: operator-entered fields, kept across failed submissions
- DispatchDraft: frozen request built at submission time
- DispatchReceipt: what the API confirmed
- ScanOutcome / ImportResult: notifications from the input channels
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional


def today_iso() -> str:
    """Today's date as YYYY-MM-DD (the default dispatch date)."""
    return date.today().isoformat()


@dataclass
class DispatchForm:
    """
    Form fields for the pending dispatch.

    Mutable, one per session. Left untouched when a submission fails so the
    operator can retry without re-entering anything.
    """

    dealer: str = ""
    """Receiving dealer's name."""

    dispatch_date: str = field(default_factory=today_iso)
    """Dispatch date as YYYY-MM-DD."""

    remarks: str = ""
    """Optional notes (truck number, batch info, ...)."""

    dispatch_number: str = ""
    """Operator override for the derived dispatch number ('' = use derived)."""

    def update(self, data: Dict[str, Any]) -> None:
        """Apply the fields present in an API-shaped dict."""
        if "dealer" in data:
            self.dealer = data["dealer"] or ""
        if "dispatchDate" in data:
            self.dispatch_date = data["dispatchDate"] or ""
        if "remarks" in data:
            self.remarks = data["remarks"] or ""
        if "dispatchNumber" in data:
            self.dispatch_number = data["dispatchNumber"] or ""

    def reset(self) -> None:
        """Back to a blank form dated today."""
        self.dealer = ""
        self.dispatch_date = today_iso()
        self.remarks = ""
        self.dispatch_number = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dealer": self.dealer,
            "dispatchDate": self.dispatch_date,
            "remarks": self.remarks,
            "dispatchNumber": self.dispatch_number,
        }


@dataclass(frozen=True)
class DispatchDraft:
    """
    Immutable dispatch request.

    Built only at submission time from the selection and the form, then
    handed to the create-dispatch call. Never stored locally.
    """

    dispatch_number: str
    dealer: str
    dispatch_date: str
    serial_numbers: tuple[str, ...]
    remarks: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """
        Request body for POST /api/inverter-dispatches.

        remarks is omitted when empty.
        """
        payload: Dict[str, Any] = {
            "dispatchNumber": self.dispatch_number,
            "dealer": self.dealer,
            "dispatchDate": self.dispatch_date,
            "serialNumbers": list(self.serial_numbers),
        }
        if self.remarks:
            payload["remarks"] = self.remarks
        return payload


@dataclass
class DispatchReceipt:
    """Confirmation of a created dispatch."""

    dispatch_number: str
    dealer: str
    dispatched_count: int
    message: str = ""
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dispatchNumber": self.dispatch_number,
            "dealer": self.dealer,
            "dispatchedCount": self.dispatched_count,
            "message": self.message,
            "submittedAt": self.submitted_at.isoformat(),
        }

    @classmethod
    def from_api_response(cls, data: Dict[str, Any], draft: DispatchDraft) -> "DispatchReceipt":
        """
        Create from the create-dispatch response body.

        The API has answered both flat ({dispatchNumber, dealer,
        dispatchedCount}) and nested ({dispatch: {...}}) bodies; anything it
        leaves out is taken from the draft that was sent.
        """
        nested = data.get("dispatch") if isinstance(data.get("dispatch"), dict) else {}
        units = nested.get("inverterUnits")
        count = data.get("dispatchedCount")
        if count is None:
            count = len(units) if isinstance(units, list) else len(draft.serial_numbers)
        try:
            count = int(count)
        except (TypeError, ValueError):
            # The dispatch exists either way; count what was sent
            count = len(draft.serial_numbers)

        return cls(
            dispatch_number=(
                data.get("dispatchNumber") or nested.get("dispatchNumber") or draft.dispatch_number
            ),
            dealer=data.get("dealer") or nested.get("dealer") or draft.dealer,
            dispatched_count=count,
            message=data.get("message", ""),
        )


class ScanStatus(Enum):
    """
    Result of one scanned token.

    None of these are errors; a rejected scan changes nothing.
    """

    ACCEPTED = "accepted"
    """Serial found in stock and added to the selection."""

    ALREADY_SELECTED = "already_selected"
    """Serial found in stock but already in the selection."""

    REJECTED = "rejected"
    """Serial not found in (the filtered) stock."""

    REMOVED = "removed"
    """Serial toggled off by the operator."""


@dataclass(frozen=True)
class ScanOutcome:
    """Notification emitted for one scanned token."""

    status: ScanStatus
    serial: str
    message: str

    @property
    def level(self) -> str:
        """Notification level for the UI toast."""
        return {
            ScanStatus.ACCEPTED: "success",
            ScanStatus.ALREADY_SELECTED: "info",
            ScanStatus.REJECTED: "error",
            ScanStatus.REMOVED: "info",
        }[self.status]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "serial": self.serial,
            "message": self.message,
            "level": self.level,
        }

    @classmethod
    def accepted(cls, serial: str) -> "ScanOutcome":
        return cls(ScanStatus.ACCEPTED, serial, f"Added {serial} to dispatch")

    @classmethod
    def already_selected(cls, serial: str) -> "ScanOutcome":
        return cls(ScanStatus.ALREADY_SELECTED, serial, f"{serial} is already selected")

    @classmethod
    def rejected(cls, serial: str) -> "ScanOutcome":
        return cls(
            ScanStatus.REJECTED,
            serial,
            f"Serial number {serial} not found in available stock",
        )

    @classmethod
    def removed(cls, serial: str) -> "ScanOutcome":
        return cls(ScanStatus.REMOVED, serial, f"Removed {serial} from dispatch")


@dataclass(frozen=True)
class ImportResult:
    """
    Outcome of a successful bulk import.

    Failed imports raise BulkImportError instead.
    """

    accepted: tuple[str, ...]
    """Valid candidates in file order (may repeat serials already selected)."""

    added: int
    """How many of them were new to the selection."""

    rejected: int
    """Candidates dropped because they are not in stock."""

    source: str = ""
    """Filename, or 'pasted' for text typed into the console."""

    @property
    def message(self) -> str:
        valid = len(self.accepted)
        if self.rejected:
            return f"Added {valid} serial(s). {self.rejected} rejected (not in stock)."
        return f"Added {valid} serial numbers from file"

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["accepted"] = list(self.accepted)
        result["message"] = self.message
        return result


@dataclass
class CandidateBatch:
    """Serial candidates read from one import source, before validation."""

    candidates: List[str]
    source: str = ""

    def __len__(self) -> int:
        return len(self.candidates)
