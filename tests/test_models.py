"""
Unit tests for stock and dispatch data models.

Tests API response parsing for both stock views, category classification
and the dispatch request/receipt shapes.
"""

from datetime import date

import pytest

from models.dispatch import (
    DispatchDraft,
    DispatchForm,
    DispatchReceipt,
    ImportResult,
    ScanOutcome,
    ScanStatus,
)
from models.stock import (
    ProductCategory,
    StockSnapshot,
    StockUnit,
    UnitModel,
    categorize_model,
)


# Fixtures

@pytest.fixture
def factory_response():
    """Response body of GET /api/factory-inverter-stock."""
    return {
        "count": 3,
        "stock": [
            {
                "serialNumber": "SLI6K-0001",
                "inverterModel": {
                    "_id": "665f1c",
                    "brand": "SolarMax",
                    "productLine": "Hybrid",
                    "variant": "6kW",
                    "modelCode": "SLI6K",
                },
                "registrationDate": "2024-05-01T09:00:00Z",
            },
            {"serialNumber": "  LFP-0002  ", "inverterModel": {"brand": "SolarMax", "modelCode": "LFP51.2V"}},
            {"serialNumber": "", "inverterModel": None},
        ],
    }


@pytest.fixture
def dealer_response():
    """Response body of GET /api/dealer-inverter-stock."""
    return {
        "dealer": "Punjab Solar Traders",
        "count": 1,
        "availableInverters": [
            {
                "serialNumber": "SLI6K-0009",
                "inverterModel": {"brand": "SolarMax", "modelCode": "SLI6K"},
                "dispatchNumber": "QJ0305240009",
                "dispatchedAt": "2024-05-03T10:00:00Z",
            }
        ],
    }


@pytest.fixture
def draft():
    return DispatchDraft(
        dispatch_number="QJ030524ABC999",
        dealer="Punjab Solar Traders",
        dispatch_date="2024-05-03",
        serial_numbers=("ABC123", "XYZ999"),
    )


class TestCategorizeModel:
    """Test product family classification."""

    def test_missing_model_is_inverter(self):
        assert categorize_model(None) is ProductCategory.INVERTER

    def test_plain_inverter(self):
        model = UnitModel(brand="SolarMax", model_code="SLI6K", product_line="Hybrid")
        assert categorize_model(model) is ProductCategory.INVERTER

    @pytest.mark.parametrize("model", [
        UnitModel(brand="INVT", model_code="GD170-004"),
        UnitModel(brand="SolarMax", model_code="X1", product_line="Solar VFD"),
    ])
    def test_vfd(self, model):
        assert categorize_model(model) is ProductCategory.VFD

    @pytest.mark.parametrize("model", [
        UnitModel(brand="SolarMax", model_code="X", product_line="Batteries"),
        UnitModel(brand="SolarMax", model_code="LFP-48100"),
        UnitModel(brand="SolarMax", model_code="X", variant="51.2V 100Ah"),
        UnitModel(brand="Lithium Co", model_code="X"),
    ])
    def test_battery(self, model):
        assert categorize_model(model) is ProductCategory.BATTERY

    def test_vfd_wins_over_battery_markers(self):
        model = UnitModel(brand="SolarMax", model_code="GD170", variant="battery backup")
        assert categorize_model(model) is ProductCategory.VFD


class TestStockSnapshot:
    """Test snapshot parsing and lookups."""

    def test_factory_response(self, factory_response):
        snapshot = StockSnapshot.from_api_response(factory_response, view="factory")

        assert len(snapshot) == 2
        assert snapshot.view == "factory"
        assert "SLI6K-0001" in snapshot
        assert "LFP-0002" in snapshot
        unit = snapshot.find("SLI6K-0001")
        assert unit.model.model_id == "665f1c"
        assert unit.category is ProductCategory.INVERTER

    def test_dealer_response(self, dealer_response):
        snapshot = StockSnapshot.from_api_response(dealer_response, view="dealer")

        unit = snapshot.find("SLI6K-0009")
        assert unit.dispatch_number == "QJ0305240009"
        assert snapshot.view == "dealer"

    def test_membership_is_exact(self, factory_response):
        snapshot = StockSnapshot.from_api_response(factory_response)
        assert "sli6k-0001" not in snapshot
        assert " SLI6K-0001" not in snapshot
        assert None not in snapshot

    def test_garbage_body_gives_empty_snapshot(self):
        snapshot = StockSnapshot.from_api_response({"stock": "oops"})
        assert snapshot.is_empty

    def test_filter_by_category(self, factory_response):
        snapshot = StockSnapshot.from_api_response(factory_response)

        batteries = snapshot.filter(category=ProductCategory.BATTERY)

        assert batteries.serial_numbers() == ["LFP-0002"]
        assert batteries.fetched_at == snapshot.fetched_at

    def test_filter_without_criteria_returns_same_snapshot(self, factory_response):
        snapshot = StockSnapshot.from_api_response(factory_response)
        assert snapshot.filter() is snapshot

    def test_count_by_category(self, factory_response):
        snapshot = StockSnapshot.from_api_response(factory_response)
        assert snapshot.count_by_category() == {"inverter": 1, "battery": 1, "vfd": 0}

    def test_empty_snapshot_is_stale(self):
        snapshot = StockSnapshot.create_empty("dealer")
        assert snapshot.is_empty
        assert snapshot.is_stale
        assert snapshot.view == "dealer"

    def test_to_dict_excludes_units_by_default(self, factory_response):
        snapshot = StockSnapshot.from_api_response(factory_response)
        assert "units" not in snapshot.to_dict()
        units = snapshot.to_dict(include_units=True)["units"]
        assert units[0]["serialNumber"] == "SLI6K-0001"
        assert units[0]["category"] == "inverter"

    def test_first_duplicate_wins(self):
        first = StockUnit("SN1", UnitModel(brand="A", model_code="1"))
        second = StockUnit("SN1", UnitModel(brand="B", model_code="2"))
        snapshot = StockSnapshot.from_units([first, second])
        assert snapshot.find("SN1") is first


class TestDispatchForm:
    """Test the mutable form."""

    def test_defaults_to_today(self):
        assert DispatchForm().dispatch_date == date.today().isoformat()

    def test_update_applies_present_fields_only(self):
        form = DispatchForm(dealer="Old Dealer", remarks="keep")
        form.update({"dealer": "New Dealer", "dispatchNumber": None})
        assert form.dealer == "New Dealer"
        assert form.remarks == "keep"
        assert form.dispatch_number == ""

    def test_reset(self):
        form = DispatchForm(dealer="D", dispatch_date="2020-01-01", remarks="R", dispatch_number="N")
        form.reset()
        assert form.to_dict() == {
            "dealer": "",
            "dispatchDate": date.today().isoformat(),
            "remarks": "",
            "dispatchNumber": "",
        }


class TestDispatchDraft:
    """Test the create-dispatch request body."""

    def test_payload_without_remarks(self, draft):
        assert draft.to_payload() == {
            "dispatchNumber": "QJ030524ABC999",
            "dealer": "Punjab Solar Traders",
            "dispatchDate": "2024-05-03",
            "serialNumbers": ["ABC123", "XYZ999"],
        }

    def test_payload_with_remarks(self, draft):
        with_remarks = DispatchDraft(
            dispatch_number=draft.dispatch_number,
            dealer=draft.dealer,
            dispatch_date=draft.dispatch_date,
            serial_numbers=draft.serial_numbers,
            remarks="Truck LES-1234",
        )
        assert with_remarks.to_payload()["remarks"] == "Truck LES-1234"


class TestDispatchReceipt:
    """Test parsing of the create-dispatch response."""

    def test_flat_body(self, draft):
        receipt = DispatchReceipt.from_api_response(
            {"dispatchNumber": "SRV-1", "dealer": "Server Dealer", "dispatchedCount": 5, "message": "ok"},
            draft,
        )
        assert receipt.dispatch_number == "SRV-1"
        assert receipt.dealer == "Server Dealer"
        assert receipt.dispatched_count == 5
        assert receipt.message == "ok"

    def test_nested_body(self, draft):
        receipt = DispatchReceipt.from_api_response(
            {"dispatch": {"dispatchNumber": "SRV-2", "inverterUnits": ["a", "b", "c"]}},
            draft,
        )
        assert receipt.dispatch_number == "SRV-2"
        assert receipt.dispatched_count == 3
        assert receipt.dealer == "Punjab Solar Traders"

    def test_empty_body_falls_back_to_draft(self, draft):
        receipt = DispatchReceipt.from_api_response({}, draft)
        assert receipt.dispatch_number == "QJ030524ABC999"
        assert receipt.dispatched_count == 2

    @pytest.mark.parametrize("count", ["many", [1, 2], {"units": 3}])
    def test_malformed_count_falls_back_to_draft(self, draft, count):
        receipt = DispatchReceipt.from_api_response(
            {"dispatchNumber": "SRV-3", "dispatchedCount": count},
            draft,
        )
        assert receipt.dispatch_number == "SRV-3"
        assert receipt.dispatched_count == 2


class TestNotifications:
    """Test scan and import notifications."""

    def test_scan_outcome_levels(self):
        assert ScanOutcome.accepted("S").level == "success"
        assert ScanOutcome.already_selected("S").level == "info"
        assert ScanOutcome.rejected("S").level == "error"
        assert ScanOutcome.removed("S").status is ScanStatus.REMOVED

    def test_import_result_to_dict(self):
        result = ImportResult(accepted=("A", "B"), added=1, rejected=0, source="x.csv")
        assert result.to_dict() == {
            "accepted": ["A", "B"],
            "added": 1,
            "rejected": 0,
            "source": "x.csv",
            "message": "Added 2 serial numbers from file",
        }
