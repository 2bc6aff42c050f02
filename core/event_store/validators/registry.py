"""
Comanda Event Store - Event Type Registry
===========================================
Only registered event types may be persisted. Engines register
their types when their service is constructed.
"""

from threading import Lock
from typing import Iterable


class EventTypeRegistry:
    """
    Thread-safe set of permitted event types.

    Usage:
        registry = EventTypeRegistry()
        registry.register("inventory.stock.adjusted.v1")
        registry.is_registered("inventory.stock.adjusted.v1")  # True
    """

    def __init__(self):
        self._registered_types: set = set()
        self._lock = Lock()

    def register(self, event_type: str) -> None:
        if not event_type or not isinstance(event_type, str):
            raise ValueError("Event type must be a non-empty string.")

        if len(event_type.strip().split(".")) < 3:
            raise ValueError(
                f"Event type '{event_type}' does not follow "
                f"engine.domain.action format."
            )

        with self._lock:
            self._registered_types.add(event_type)

    def register_many(self, event_types: Iterable[str]) -> None:
        for event_type in event_types:
            self.register(event_type)

    def is_registered(self, event_type: str) -> bool:
        with self._lock:
            return event_type in self._registered_types

    def get_all_registered(self) -> frozenset:
        with self._lock:
            return frozenset(self._registered_types)

    def __len__(self) -> int:
        with self._lock:
            return len(self._registered_types)
