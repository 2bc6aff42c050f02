"""
Comanda Ledger Wiring
=======================
Constructs the four engines over one shared event store, projection
registry, lock registry and command bus.

    engines = build_engines()                       # in-memory store
    engines = build_engines(persist_event=persist)  # Django store

The engines must share the lock registry: the tab fold reads the
order store, and appointment completion writes through the orders
engine, both under the same company lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from core.commands.bus import CommandBus
from core.config.settings import LedgerSettings, load_settings
from core.context.locks import CompanyLockRegistry
from core.event_store.memory import InMemoryEventStore
from core.event_store.validators.registry import EventTypeRegistry
from core.projections.registry import ProjectionRegistry
from core.replay.projection_rebuilder import RebuildResult, rebuild_projections
from core.time.clock import Clock, SystemClock
from engines.inventory.services import InventoryService
from engines.orders.services import OrderService
from engines.scheduling.services import SchedulingService
from engines.tabs.services import TabService

logger = logging.getLogger("comanda")

_ENGINES_LOCK = threading.Lock()
_ENGINES: "LedgerEngines | None" = None


@dataclass(frozen=True)
class LedgerEngines:
    inventory: InventoryService
    orders: OrderService
    tabs: TabService
    scheduling: SchedulingService
    command_bus: CommandBus
    projections: ProjectionRegistry
    event_types: EventTypeRegistry
    locks: CompanyLockRegistry
    event_store: Any

    def rebuild(self, company_id: str, events: Optional[Iterable[dict]] = None) -> RebuildResult:
        """
        Replay one company's events into fresh projections.

        ``events`` defaults to the in-memory store's log; pass the
        Django rows (``load_events_for_company``) when running on the
        database store.
        """
        if events is None:
            events = self.event_store.load_events(company_id)
        with self.locks.hold(company_id):
            return rebuild_projections(self.projections, company_id, events)


def build_engines(
    *,
    persist_event=None,
    clock: Optional[Clock] = None,
    settings: Optional[LedgerSettings] = None,
) -> LedgerEngines:
    event_store = persist_event if persist_event is not None else InMemoryEventStore()
    shared = {
        "persist_event": event_store,
        "event_type_registry": EventTypeRegistry(),
        "projection_registry": ProjectionRegistry(),
        "lock_registry": CompanyLockRegistry(),
        "clock": clock if clock is not None else SystemClock(),
        "command_bus": CommandBus(),
        "settings": settings if settings is not None else load_settings(),
    }

    inventory = InventoryService(**shared)
    orders = OrderService(**shared)
    tabs = TabService(order_store=orders.projection_store, **shared)
    scheduling = SchedulingService(orders=orders, **shared)

    logger.debug(
        "Ledger wired: %d event types, projections=%s",
        len(shared["event_type_registry"]),
        shared["projection_registry"].projection_names(),
    )
    return LedgerEngines(
        inventory=inventory,
        orders=orders,
        tabs=tabs,
        scheduling=scheduling,
        command_bus=shared["command_bus"],
        projections=shared["projection_registry"],
        event_types=shared["event_type_registry"],
        locks=shared["lock_registry"],
        event_store=event_store,
    )


def get_engines() -> LedgerEngines:
    """
    Lazy process-wide singleton over the in-memory store.
    """
    global _ENGINES
    with _ENGINES_LOCK:
        if _ENGINES is None:
            _ENGINES = build_engines()
        return _ENGINES
