"""
Unit tests for the StockService.

The client factory returns a MagicMock client; the background thread is
only started in TestRefreshThread.
"""

import threading
import time
from unittest.mock import MagicMock

import pytest

from core.exceptions import ServiceUnavailableError, StockNotReadyError
from models.stock import StockSnapshot, StockUnit
from services.stock_service import DEALER_VIEW, FACTORY_VIEW, StockService


def make_snapshot(view, *serials):
    return StockSnapshot.from_units([StockUnit(s) for s in serials], view=view)


def wait_until(predicate, timeout=2.0):
    """Poll until predicate() is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


# Fixtures

@pytest.fixture
def api_client():
    client = MagicMock()
    client.get_factory_stock.return_value = make_snapshot(FACTORY_VIEW, "SN1", "SN2")
    client.get_dealer_stock.return_value = make_snapshot(DEALER_VIEW, "SN9")
    return client


@pytest.fixture
def client_factory(api_client):
    return MagicMock(return_value=api_client)


@pytest.fixture
def service(client_factory):
    stock_service = StockService(client_factory, refresh_interval_seconds=60.0)
    yield stock_service
    stock_service.stop()


class TestSnapshots:
    """Test reads before and after a refresh."""

    def test_empty_before_first_fetch(self, service):
        snapshot = service.get_snapshot(FACTORY_VIEW)
        assert snapshot.is_empty
        assert snapshot.view == FACTORY_VIEW

    def test_get_snapshot_or_raise_before_first_fetch(self, service):
        with pytest.raises(StockNotReadyError):
            service.get_snapshot_or_raise(FACTORY_VIEW)

    def test_unknown_view(self, service):
        with pytest.raises(ValueError):
            service.get_snapshot("warehouse")

    def test_force_refresh_loads_both_views(self, service, api_client):
        assert service.force_refresh() is True

        assert service.get_snapshot_or_raise(FACTORY_VIEW).serial_numbers() == ["SN1", "SN2"]
        assert service.get_snapshot_or_raise(DEALER_VIEW).serial_numbers() == ["SN9"]
        api_client.close.assert_called_once()

    def test_force_refresh_one_view(self, service, api_client):
        service.force_refresh(FACTORY_VIEW)

        api_client.get_factory_stock.assert_called_once()
        api_client.get_dealer_stock.assert_not_called()

    def test_failed_refresh_keeps_previous_snapshot(self, service, api_client):
        service.force_refresh()
        before = service.get_snapshot(FACTORY_VIEW)

        api_client.get_factory_stock.side_effect = ServiceUnavailableError()

        assert service.force_refresh() is False
        assert service.get_snapshot(FACTORY_VIEW) is before
        assert api_client.close.call_count == 2


class TestInvalidate:
    """Test invalidation without the background thread."""

    def test_invalidate_refreshes_inline(self, service, api_client):
        service.force_refresh()
        api_client.get_factory_stock.return_value = make_snapshot(FACTORY_VIEW, "SN2")

        service.invalidate(FACTORY_VIEW, DEALER_VIEW)

        assert service.get_snapshot(FACTORY_VIEW).serial_numbers() == ["SN2"]
        assert not service.is_invalidated(FACTORY_VIEW)
        assert not service.is_invalidated(DEALER_VIEW)

    def test_failed_refetch_stays_invalidated(self, service, api_client):
        api_client.get_factory_stock.side_effect = ServiceUnavailableError()

        service.invalidate(FACTORY_VIEW)

        assert service.is_invalidated(FACTORY_VIEW)

    def test_invalidate_unknown_view(self, service):
        with pytest.raises(ValueError):
            service.invalidate("warehouse")


class TestRefreshThread:
    """Test the background thread."""

    def test_start_fetches_immediately(self, service):
        service.start()

        assert service.is_running
        assert wait_until(lambda: not service.get_snapshot(FACTORY_VIEW).is_empty)

    def test_start_twice_is_safe(self, service):
        service.start()
        service.start()
        assert service.is_running

    def test_stop(self, service):
        service.start()
        service.stop()
        assert not service.is_running

    def test_invalidate_wakes_thread(self, service, api_client):
        service.start()
        assert wait_until(lambda: not service.get_snapshot(FACTORY_VIEW).is_empty)

        fetched_after_invalidate = threading.Event()
        api_client.get_factory_stock.side_effect = lambda: (
            fetched_after_invalidate.set() or make_snapshot(FACTORY_VIEW, "SN3")
        )

        service.invalidate(FACTORY_VIEW)

        assert fetched_after_invalidate.wait(timeout=2.0)
        assert wait_until(lambda: service.get_snapshot(FACTORY_VIEW).serial_numbers() == ["SN3"])
        assert wait_until(lambda: not service.is_invalidated(FACTORY_VIEW))
