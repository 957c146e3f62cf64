"""
Unit tests for the barcode scanner channel.

The channel reads stock through a provider callable, so tests swap the
snapshot between scans to simulate a background refresh.
"""

import pytest

from models.dispatch import ScanStatus
from models.stock import ProductCategory, StockSnapshot, StockUnit, UnitModel
from modules.scanner import ScannerChannel, ScannerMode
from modules.selection import SelectionSet


INVERTER = UnitModel(brand="SolarMax", model_code="SLI6K", model_id="m-inv", product_line="Hybrid")
BATTERY = UnitModel(brand="SolarMax", model_code="LFP-48100", model_id="m-bat", product_line="Storage")


def make_snapshot(*units):
    return StockSnapshot.from_units(units)


# Fixtures

@pytest.fixture
def stock():
    """Mutable holder so tests can replace the current snapshot."""
    return {
        "snapshot": make_snapshot(
            StockUnit("INV-001", INVERTER),
            StockUnit("INV-002", INVERTER),
            StockUnit("BAT-001", BATTERY),
        )
    }


@pytest.fixture
def selection():
    return SelectionSet()


@pytest.fixture
def scanner(selection, stock):
    return ScannerChannel(selection, lambda: stock["snapshot"])


class TestScannerModes:
    """Test arming and disarming."""

    def test_starts_disarmed(self, scanner):
        assert scanner.mode is ScannerMode.DISARMED
        assert not scanner.armed

    def test_disarmed_scan_is_ignored(self, scanner, selection):
        assert scanner.scan("INV-001") is None
        assert len(selection) == 0

    def test_arm_is_idempotent(self, scanner):
        scanner.arm()
        scanner.arm()
        assert scanner.armed

    def test_disarm_drops_pending_token(self, scanner):
        scanner.arm()
        scanner.feed("INV-0")
        scanner.disarm()
        assert scanner.pending_token == ""
        assert not scanner.armed

    def test_feed_ignored_while_disarmed(self, scanner):
        scanner.feed("INV-001")
        assert scanner.pending_token == ""

    def test_reset_disarms_and_clears_filters(self, scanner):
        scanner.arm()
        scanner.category = ProductCategory.BATTERY
        scanner.model_id = "m-bat"
        scanner.reset()
        assert not scanner.armed
        assert scanner.category is None
        assert scanner.model_id is None


class TestScanning:
    """Test token validation against the stock snapshot."""

    def test_scan_in_stock_serial_is_accepted(self, scanner, selection):
        scanner.arm()
        outcome = scanner.scan("INV-001")
        assert outcome.status is ScanStatus.ACCEPTED
        assert outcome.message == "Added INV-001 to dispatch"
        assert selection.values() == ["INV-001"]

    def test_double_scan_reports_already_selected(self, scanner, selection):
        scanner.arm()
        scanner.scan("INV-001")
        outcome = scanner.scan("INV-001")
        assert outcome.status is ScanStatus.ALREADY_SELECTED
        assert outcome.level == "info"
        assert len(selection) == 1

    def test_unknown_serial_is_rejected(self, scanner, selection):
        scanner.arm()
        outcome = scanner.scan("NOPE-1")
        assert outcome.status is ScanStatus.REJECTED
        assert outcome.message == "Serial number NOPE-1 not found in available stock"
        assert outcome.level == "error"
        assert len(selection) == 0

    def test_scanner_stays_armed_after_reject(self, scanner):
        scanner.arm()
        scanner.scan("NOPE-1")
        assert scanner.armed

    def test_token_is_trimmed(self, scanner, selection):
        scanner.arm()
        outcome = scanner.scan("  INV-002\r\n")
        assert outcome.serial == "INV-002"
        assert selection.values() == ["INV-002"]

    def test_blank_token_is_ignored(self, scanner):
        scanner.arm()
        assert scanner.scan("   ") is None

    def test_match_is_case_sensitive(self, scanner):
        scanner.arm()
        assert scanner.scan("inv-001").status is ScanStatus.REJECTED

    def test_keystrokes_then_enter(self, scanner, selection):
        scanner.arm()
        scanner.feed("INV-")
        scanner.feed("001")
        assert scanner.pending_token == "INV-001"

        outcome = scanner.submit()

        assert outcome.status is ScanStatus.ACCEPTED
        assert scanner.pending_token == ""
        assert "INV-001" in selection

    def test_latest_snapshot_is_used(self, scanner, selection, stock):
        scanner.arm()
        stock["snapshot"] = make_snapshot(StockUnit("INV-002", INVERTER))

        assert scanner.scan("INV-001").status is ScanStatus.REJECTED
        assert scanner.scan("INV-002").status is ScanStatus.ACCEPTED


class TestScanFilters:
    """Test category and model pickers."""

    def test_category_filter_rejects_other_families(self, scanner, selection):
        scanner.arm()
        scanner.category = ProductCategory.INVERTER
        assert scanner.scan("BAT-001").status is ScanStatus.REJECTED
        assert scanner.scan("INV-001").status is ScanStatus.ACCEPTED

    def test_model_filter(self, scanner):
        scanner.arm()
        scanner.model_id = "m-bat"
        assert scanner.scan("INV-001").status is ScanStatus.REJECTED
        assert scanner.scan("BAT-001").status is ScanStatus.ACCEPTED

    def test_to_dict(self, scanner):
        scanner.arm()
        scanner.category = ProductCategory.VFD
        assert scanner.to_dict() == {
            "armed": True,
            "pendingToken": "",
            "category": "vfd",
            "modelId": None,
        }
