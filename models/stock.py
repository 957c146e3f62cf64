"""
Stock data models.

These models represent point-in-time snapshots of the units available for
dispatch. Used by the stock service for caching and by the dispatch engine
for membership checks.

Thread Safety:
    - StockSnapshot is a frozen dataclass (immutable)
    - Safe to read from any thread without locks
    - New snapshots replace old ones atomically
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Iterable, List, Optional


class ProductCategory(Enum):
    """Product family a model belongs to."""

    INVERTER = "inverter"
    BATTERY = "battery"
    VFD = "vfd"


# Text markers that identify a battery model anywhere in its description
_BATTERY_MARKERS = ("battery", "lithium", "51.2v", "48100", "48314", "100ah")


@dataclass(frozen=True)
class UnitModel:
    """
    Model metadata attached to a stock unit.

    Only brand and model_code are guaranteed; the rest is whatever the
    inventory API returned for the model.
    """

    brand: str
    """Manufacturer brand (e.g., 'SolarMax')."""

    model_code: str
    """Model code printed on the unit (e.g., 'SLI6K')."""

    model_id: str = ""
    """Inventory API id of the model."""

    product_line: str = ""
    """Product line name."""

    variant: str = ""
    """Variant label (power rating, cell chemistry, ...)."""

    @property
    def category(self) -> ProductCategory:
        """Product family derived from the model's text fields."""
        return categorize_model(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API-shaped dictionary."""
        return {
            "_id": self.model_id,
            "brand": self.brand,
            "modelCode": self.model_code,
            "productLine": self.product_line,
            "variant": self.variant,
        }

    @classmethod
    def from_api_data(cls, data: Optional[Dict[str, Any]]) -> "UnitModel":
        """Create from the inverterModel object returned by the API."""
        data = data or {}
        return cls(
            brand=data.get("brand") or "",
            model_code=data.get("modelCode") or "",
            model_id=str(data.get("_id") or data.get("id") or ""),
            product_line=data.get("productLine") or "",
            variant=data.get("variant") or "",
        )


def categorize_model(model: Optional[UnitModel]) -> ProductCategory:
    """
    Classify a model as inverter, battery or VFD.

    The inventory API has no category field, so the family is read off the
    model's descriptive text. Anything unrecognised is an inverter.

    Args:
        model: Unit model, or None for units without model data

    Returns:
        ProductCategory for the model
    """
    if model is None:
        return ProductCategory.INVERTER

    product_line = model.product_line.lower()
    brand = model.brand.lower()
    variant = model.variant.lower()
    model_code = model.model_code.lower()
    full_name = f"{brand} {product_line} {variant} {model_code}"

    fields = (product_line, brand, variant, model_code, full_name)

    if any("vfd" in text for text in fields) or "gd170" in model_code:
        return ProductCategory.VFD

    if "batt" in product_line:
        return ProductCategory.BATTERY
    for marker in _BATTERY_MARKERS:
        if any(marker in text for text in fields):
            return ProductCategory.BATTERY

    return ProductCategory.INVERTER


@dataclass(frozen=True)
class StockUnit:
    """
    A single serialized unit available for dispatch.

    Immutable snapshot of one unit as reported by the inventory API.
    """

    serial_number: str
    """Serial number (unique within a snapshot)."""

    model: Optional[UnitModel] = None
    """Model metadata (None when the API returned no model)."""

    dispatch_number: str = ""
    """Dispatch the unit arrived with (dealer stock only)."""

    dispatched_at: str = ""
    """ISO timestamp of that dispatch (dealer stock only)."""

    registration_date: str = ""
    """ISO timestamp when the unit was registered at the factory."""

    @property
    def category(self) -> ProductCategory:
        """Product family of this unit."""
        return categorize_model(self.model)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API-shaped dictionary."""
        result: Dict[str, Any] = {
            "serialNumber": self.serial_number,
            "inverterModel": self.model.to_dict() if self.model else None,
            "category": self.category.value,
        }
        if self.dispatch_number:
            result["dispatchNumber"] = self.dispatch_number
        if self.dispatched_at:
            result["dispatchedAt"] = self.dispatched_at
        if self.registration_date:
            result["registrationDate"] = self.registration_date
        return result

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "StockUnit":
        """Create from one stock item returned by the API."""
        raw_model = data.get("inverterModel")
        model = UnitModel.from_api_data(raw_model) if isinstance(raw_model, dict) else None
        return cls(
            serial_number=str(data.get("serialNumber") or "").strip(),
            model=model,
            dispatch_number=data.get("dispatchNumber") or "",
            dispatched_at=data.get("dispatchedAt") or "",
            registration_date=data.get("registrationDate") or "",
        )


@dataclass(frozen=True)
class StockSnapshot:
    """
    Point-in-time snapshot of available units.

    This is a FROZEN dataclass - completely immutable after creation.
    The stock service creates a new snapshot on each refresh; the dispatch
    engine always reads the latest one and never keeps its own copy.

    Usage:
        snapshot = StockSnapshot.from_api_response(response_json)

        if "SLI6K-0001" in snapshot:
            unit = snapshot.find("SLI6K-0001")
    """

    fetched_at: datetime
    """When this snapshot was fetched from the inventory API."""

    units: tuple[StockUnit, ...]
    """Units in API order (tuple for frozen dataclass)."""

    view: str = "factory"
    """Which stock view this snapshot belongs to ('factory' or 'dealer')."""

    _index: Dict[str, StockUnit] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        # First occurrence wins if the API ever repeats a serial
        index: Dict[str, StockUnit] = {}
        for unit in self.units:
            if unit.serial_number and unit.serial_number not in index:
                index[unit.serial_number] = unit
        object.__setattr__(self, "_index", index)

    def __contains__(self, serial: object) -> bool:
        return isinstance(serial, str) and serial in self._index

    def __len__(self) -> int:
        return len(self.units)

    @property
    def age_seconds(self) -> float:
        """How old this snapshot is in seconds."""
        now = datetime.now(timezone.utc)
        return (now - self.fetched_at).total_seconds()

    @property
    def is_stale(self) -> bool:
        """Whether this snapshot is older than 60 seconds."""
        return self.age_seconds > 60.0

    @property
    def is_empty(self) -> bool:
        return not self.units

    def find(self, serial: str) -> Optional[StockUnit]:
        """
        Find a unit by exact serial number.

        Args:
            serial: Serial number (case-sensitive, no trimming)

        Returns:
            StockUnit if present, None otherwise
        """
        return self._index.get(serial)

    def serial_numbers(self) -> List[str]:
        """Serial numbers in snapshot order."""
        return list(self._index)

    def filter(
        self,
        category: Optional[ProductCategory] = None,
        model_id: Optional[str] = None,
    ) -> "StockSnapshot":
        """
        Narrow the snapshot to one product category and/or model.

        The result keeps this snapshot's timestamp and view.

        Args:
            category: Keep only units of this family (None keeps all)
            model_id: Keep only units of this model id (None/'' keeps all)

        Returns:
            New StockSnapshot with the matching units
        """
        if category is None and not model_id:
            return self

        def matches(unit: StockUnit) -> bool:
            if category is not None and unit.category != category:
                return False
            if model_id and (unit.model is None or unit.model.model_id != model_id):
                return False
            return True

        return StockSnapshot(
            fetched_at=self.fetched_at,
            units=tuple(u for u in self.units if matches(u)),
            view=self.view,
        )

    def count_by_category(self) -> Dict[str, int]:
        """Unit counts per product category (for the stock summary)."""
        counts = {c.value: 0 for c in ProductCategory}
        for unit in self.units:
            counts[unit.category.value] += 1
        return counts

    def to_dict(self, include_units: bool = False) -> Dict[str, Any]:
        """
        Convert to dictionary for API responses.

        Note: units are excluded by default (can be thousands).
        """
        result: Dict[str, Any] = {
            "view": self.view,
            "fetched_at": self.fetched_at.isoformat(),
            "count": len(self.units),
            "by_category": self.count_by_category(),
            "age_seconds": self.age_seconds,
            "is_stale": self.is_stale,
        }
        if include_units:
            result["units"] = [u.to_dict() for u in self.units]
        return result

    @classmethod
    def from_units(cls, units: Iterable[StockUnit], view: str = "factory") -> "StockSnapshot":
        """Create a fresh snapshot from already-built units."""
        return cls(
            fetched_at=datetime.now(timezone.utc),
            units=tuple(units),
            view=view,
        )

    @classmethod
    def from_api_response(cls, payload: Dict[str, Any], view: str = "factory") -> "StockSnapshot":
        """
        Create snapshot from a stock endpoint response.

        The factory endpoint returns {count, stock: [...]}, the dealer
        endpoint returns {dealer, count, availableInverters: [...]}.
        Items without a serial number are skipped.

        Args:
            payload: Decoded JSON body
            view: 'factory' or 'dealer'

        Returns:
            StockSnapshot with parsed units
        """
        items = payload.get("stock")
        if items is None:
            items = payload.get("availableInverters")
        if not isinstance(items, list):
            items = []

        units = []
        for item in items:
            if not isinstance(item, dict):
                continue
            unit = StockUnit.from_api_data(item)
            if unit.serial_number:
                units.append(unit)

        return cls.from_units(units, view=view)

    @classmethod
    def create_empty(cls, view: str = "factory") -> "StockSnapshot":
        """
        Create an empty snapshot (for initialization before first fetch).

        This is marked as stale immediately so routes know data isn't ready.
        """
        old_time = datetime(2000, 1, 1, tzinfo=timezone.utc)
        return cls(fetched_at=old_time, units=(), view=view)
