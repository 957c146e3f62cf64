"""
Data models for the Dispatch Console.

This module contains dataclasses for:
- StockSnapshot: Point-in-time list of units available for dispatch
- DispatchForm / DispatchDraft: Pending dispatch and the frozen request
- DispatchReceipt: Confirmation from the create-dispatch call
- ScanOutcome / ImportResult: Notifications from the input channels

Thread Safety:
- StockSnapshot is frozen for thread-safe cache reads
- DispatchDraft is frozen so the request cannot change once built
"""

from .stock import (
    ProductCategory,
    UnitModel,
    StockUnit,
    StockSnapshot,
    categorize_model,
)
from .dispatch import (
    DispatchForm,
    DispatchDraft,
    DispatchReceipt,
    ScanStatus,
    ScanOutcome,
    ImportResult,
    CandidateBatch,
)

__all__ = [
    # Stock models
    "ProductCategory",
    "UnitModel",
    "StockUnit",
    "StockSnapshot",
    "categorize_model",
    # Dispatch models
    "DispatchForm",
    "DispatchDraft",
    "DispatchReceipt",
    "ScanStatus",
    "ScanOutcome",
    "ImportResult",
    "CandidateBatch",
]
