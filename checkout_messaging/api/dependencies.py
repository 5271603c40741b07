"""Dependency injection for FastAPI endpoints"""

import threading
from collections import OrderedDict
from fastapi import Request
from checkout_messaging.config import settings
from checkout_messaging.domain.storage import InMemoryStore
from checkout_messaging.infrastructure.clients.merchant_config import MerchantConfigClient


class SessionStores:
    """
    Session-scoped dismissal stores, one per shopper session.

    Holds at most `capacity` sessions; the least recently used store is
    evicted when a new session would exceed it.
    """

    def __init__(self, capacity: int | None = None):
        self.capacity = max(1, capacity or settings.session_store_capacity)
        self.stores: "OrderedDict[str, InMemoryStore]" = OrderedDict()
        self._lock = threading.Lock()

    def for_session(self, session_id: str) -> InMemoryStore:
        with self._lock:
            store = self.stores.get(session_id)
            if store is not None:
                self.stores.move_to_end(session_id)
                return store

            store = self.stores[session_id] = InMemoryStore()
            while len(self.stores) > self.capacity:
                self.stores.popitem(last=False)
            return store

    def __len__(self) -> int:
        return len(self.stores)


session_stores = SessionStores()


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_config_client() -> MerchantConfigClient:
    """Provide merchant configuration client instance"""
    return MerchantConfigClient()


def get_session_stores() -> SessionStores:
    """Provide the process-wide session store registry"""
    return session_stores
