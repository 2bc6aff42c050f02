"""
Comanda Core Projections - Projection Registry
================================================
Catalog of read models and the event types each one consumes.

One event may feed several projections: an order-created event
updates both the order store and the tab cache. ``apply`` hands the
event to every consumer in registration order. A failing projection
is marked unhealthy and the error propagates to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Protocol

logger = logging.getLogger("comanda.projections")


class ProjectionStoreProtocol(Protocol):
    projection_name: str

    def apply(self, event_type: str, payload: dict) -> None:
        ...

    def truncate(self, company_id: Optional[str] = None) -> None:
        ...


@dataclass(frozen=True)
class ProjectionInfo:
    projection_name: str
    event_types: FrozenSet[str]
    description: str = ""


@dataclass
class ProjectionHealth:
    events_processed: int = 0
    last_event_type: Optional[str] = None
    is_healthy: bool = True
    error_message: str = ""


class ProjectionRegistry:
    def __init__(self) -> None:
        self._stores: Dict[str, ProjectionStoreProtocol] = {}
        self._projections: Dict[str, ProjectionInfo] = {}
        self._health: Dict[str, ProjectionHealth] = {}
        self._event_index: Dict[str, List[str]] = {}

    def register(
        self,
        store: ProjectionStoreProtocol,
        event_types,
        description: str = "",
    ) -> None:
        name = store.projection_name
        if name in self._stores:
            raise ValueError(f"Projection '{name}' already registered.")

        info = ProjectionInfo(
            projection_name=name,
            event_types=frozenset(event_types),
            description=description,
        )
        self._stores[name] = store
        self._projections[name] = info
        self._health[name] = ProjectionHealth()
        for event_type in info.event_types:
            self._event_index.setdefault(event_type, []).append(name)

    def get_store(self, projection_name: str) -> Optional[ProjectionStoreProtocol]:
        return self._stores.get(projection_name)

    def get_health(self, projection_name: str) -> Optional[ProjectionHealth]:
        return self._health.get(projection_name)

    def get_projections_for_event(self, event_type: str) -> List[ProjectionInfo]:
        return [self._projections[n] for n in self._event_index.get(event_type, [])]

    def projection_names(self) -> List[str]:
        return list(self._projections)

    def list_unhealthy(self) -> List[str]:
        return [
            name for name, health in self._health.items()
            if not health.is_healthy
        ]

    def apply(self, event_type: str, payload: dict) -> int:
        """Apply one event to every consumer. Returns how many consumed it."""
        names = self._event_index.get(event_type, [])
        for name in names:
            health = self._health[name]
            try:
                self._stores[name].apply(event_type, payload)
            except Exception as exc:
                health.is_healthy = False
                health.error_message = str(exc)
                logger.error(
                    "Projection %s failed on %s", name, event_type,
                    exc_info=True,
                )
                raise
            health.events_processed += 1
            health.last_event_type = event_type
        return len(names)

    def truncate(self, company_id: Optional[str] = None) -> None:
        for name, store in self._stores.items():
            store.truncate(company_id=company_id)
            self._health[name] = ProjectionHealth()

