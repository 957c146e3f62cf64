"""
Stock service with background refresh thread.

Keeps the latest snapshot of two stock views:

    factory - units still at the factory, i.e. available for dispatch
    dealer  - units already dispatched to dealers

A background thread refetches both views every refresh interval. After a
dispatch is created the submission coordinator calls invalidate(), which
wakes the thread so the affected views are refetched immediately instead of
at the next tick.

Thread Safety:
    - The refresh thread builds a new immutable StockSnapshot per fetch
    - Readers get the current snapshot via an atomic reference read
    - The set of invalidated views is guarded by a lock

Usage:
    # At app startup
    stock_service = StockService(client_factory, refresh_interval_seconds=30)
    stock_service.start()

    # In the dispatch engine
    snapshot = stock_service.get_snapshot(FACTORY_VIEW)

    # After a dispatch is created
    stock_service.invalidate(FACTORY_VIEW, DEALER_VIEW)

    # At app shutdown
    stock_service.stop()
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Iterable, Optional, Set

from core.api_client import InventoryAPIClient
from core.exceptions import StockNotReadyError
from models.stock import StockSnapshot
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)

FACTORY_VIEW = "factory"
DEALER_VIEW = "dealer"
VIEWS = (FACTORY_VIEW, DEALER_VIEW)


class StockService:
    """
    Background service for stock refresh.

    This service:
    1. Creates a fresh API client for every refresh (the thread owns it)
    2. Refetches the factory and dealer views on a fixed interval
    3. Publishes each result as an immutable StockSnapshot
    4. Refetches early for views that were invalidated

    Attributes:
        refresh_interval_seconds: Time between refreshes
        is_running: Whether the background thread is active
    """

    def __init__(
        self,
        client_factory: Callable[[], InventoryAPIClient],
        refresh_interval_seconds: float = 30.0,
    ):
        """
        Initialize stock service.

        Args:
            client_factory: Returns a new InventoryAPIClient per call
            refresh_interval_seconds: Seconds between scheduled refreshes
        """
        self._client_factory = client_factory
        self._refresh_interval = refresh_interval_seconds

        # Thread control
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._is_running = False

        # Start with empty snapshots so get_snapshot() never returns None
        self._snapshots: Dict[str, StockSnapshot] = {
            view: StockSnapshot.create_empty(view) for view in VIEWS
        }
        self._loaded: Set[str] = set()

        self._stale: Set[str] = set()
        self._stale_lock = threading.Lock()

        self._consecutive_failures = 0

        logger.info(f"StockService initialized (refresh interval: {refresh_interval_seconds}s)")

    @property
    def is_running(self) -> bool:
        """Whether the background refresh thread is active."""
        return self._is_running

    @property
    def refresh_interval_seconds(self) -> float:
        return self._refresh_interval

    def start(self) -> None:
        """
        Start the background refresh thread.

        Fetches immediately, then every refresh_interval_seconds.
        Safe to call multiple times.
        """
        if self._is_running:
            logger.warning("StockService already running")
            return

        logger.info("Starting stock refresh thread...")

        self._stop_event.clear()
        self._wake_event.clear()

        self._thread = threading.Thread(
            target=self._refresh_loop,
            name="StockRefresh",
            daemon=True,
        )
        self._is_running = True
        self._thread.start()

    def stop(self) -> None:
        """Stop the background refresh thread. Safe to call multiple times."""
        if not self._is_running:
            return

        logger.info("Stopping stock refresh thread...")

        self._stop_event.set()
        self._wake_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

            if self._thread.is_alive():
                logger.warning("Stock refresh thread did not stop cleanly")

        self._is_running = False
        self._thread = None

        logger.info("Stock refresh thread stopped")

    def get_snapshot(self, view: str = FACTORY_VIEW) -> StockSnapshot:
        """
        Get the current snapshot of a view.

        Returns an empty snapshot before the first successful fetch.

        Raises:
            ValueError: Unknown view
        """
        if view not in self._snapshots:
            raise ValueError(f"Unknown stock view: {view}")
        return self._snapshots[view]

    def get_snapshot_or_raise(self, view: str = FACTORY_VIEW) -> StockSnapshot:
        """
        Get current snapshot, raising if the view was never loaded.

        Raises:
            StockNotReadyError: No fetch of this view has succeeded yet
        """
        snapshot = self.get_snapshot(view)
        if view not in self._loaded:
            raise StockNotReadyError(
                "Stock not yet loaded. Please wait for the initial fetch.", view=view
            )
        return snapshot

    def is_invalidated(self, view: str) -> bool:
        """Whether the view was invalidated and not refetched since."""
        with self._stale_lock:
            return view in self._stale

    def invalidate(self, *views: str) -> None:
        """
        Mark views as out of date and have them refetched.

        With the background thread running this only wakes it; otherwise
        the refetch happens in the calling thread.

        Args:
            views: Views to refetch (default: all)
        """
        targets = views or VIEWS
        for view in targets:
            if view not in self._snapshots:
                raise ValueError(f"Unknown stock view: {view}")

        with self._stale_lock:
            self._stale.update(targets)

        logger.info(f"Stock views invalidated: {', '.join(targets)}")

        if self._is_running:
            self._wake_event.set()
        else:
            self._do_refresh(targets)

    def force_refresh(self, view: Optional[str] = None) -> bool:
        """
        Refetch now, in the calling thread.

        Args:
            view: One view, or None for all

        Returns:
            True if every requested view refreshed
        """
        logger.info("Forcing stock refresh...")
        return self._do_refresh((view,) if view else VIEWS)

    def _refresh_loop(self) -> None:
        """
        Background thread main loop.

        Refreshes everything on each interval tick, or only the invalidated
        views when woken early.
        """
        set_thread_name("StockRefresh")
        logger.info("Stock refresh loop starting")

        self._do_refresh(VIEWS)

        while not self._stop_event.is_set():
            woken = self._wake_event.wait(timeout=self._refresh_interval)
            if self._stop_event.is_set():
                break

            if woken:
                self._wake_event.clear()
                with self._stale_lock:
                    targets = tuple(self._stale)
                if targets:
                    self._do_refresh(targets)
            else:
                self._do_refresh(VIEWS)

        logger.info("Stock refresh loop exiting")

    def _do_refresh(self, views: Iterable[str]) -> bool:
        """
        Fetch the given views and swap in the new snapshots.

        A failed fetch keeps the previous snapshot and leaves the view marked
        stale so the next pass retries it.

        Returns:
            True if every view refreshed
        """
        views = tuple(views)
        logger.debug(f"Refreshing stock views: {', '.join(views)}")

        api_client = None
        try:
            api_client = self._client_factory()

            for view in views:
                if view == FACTORY_VIEW:
                    snapshot = api_client.get_factory_stock()
                else:
                    snapshot = api_client.get_dealer_stock()

                # Atomic reference swap
                self._snapshots[view] = snapshot
                self._loaded.add(view)
                with self._stale_lock:
                    self._stale.discard(view)

                logger.debug(f"{view.title()} stock refreshed: {len(snapshot)} units")

            if self._consecutive_failures > 0:
                logger.info(
                    f"Stock refresh recovered after {self._consecutive_failures} failures"
                )
            self._consecutive_failures = 0
            return True

        except Exception as e:
            self._consecutive_failures += 1

            # Log with increasing severity based on consecutive failures
            if self._consecutive_failures == 1:
                logger.warning(f"Stock refresh failed: {e}")
            elif self._consecutive_failures <= 3:
                logger.error(f"Stock refresh failed ({self._consecutive_failures} consecutive): {e}")
            elif self._consecutive_failures % 5 == 0:
                logger.error(
                    f"Stock refresh still failing ({self._consecutive_failures} consecutive): {e}"
                )
            return False

        finally:
            if api_client is not None:
                api_client.close()
