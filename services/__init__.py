"""
Services layer for the Dispatch Console.

This module contains the business logic services:
- StockService: Background stock refresh thread (factory + dealer views)
- DispatchService: Per-session dispatch composition and submission

Thread Model:
    Main Thread (Flask request threads)
    └── DispatchSession work runs in the request thread
    StockService thread (refresh loop, woken early on invalidation)

Each refresh and each submission creates its own InventoryAPIClient.
"""

from .stock_service import StockService, FACTORY_VIEW, DEALER_VIEW
from .dispatch_service import DispatchService, DispatchSession, DispatchSessionStore

__all__ = [
    "StockService",
    "FACTORY_VIEW",
    "DEALER_VIEW",
    "DispatchService",
    "DispatchSession",
    "DispatchSessionStore",
]
