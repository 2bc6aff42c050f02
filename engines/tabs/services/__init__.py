"""
Comanda Tabs Engine - Application Service
===========================================
A tab is the running bill of one service point (table, room,
appointment). ``get_all_tabs`` is a pure fold over the company's
active orders plus the lines rung up manually on each tab, read
while holding the company lock.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from threading import Lock
from typing import Dict, List, Optional, Sequence, Tuple

from core.commands.base import Command
from core.context.company_context import ActorRef
from core.engines.service import EngineService, ExecutionResult
from core.time.clock import clock_label
from engines.orders.events import ORDERS_ORDER_CREATED_V1
from engines.orders.services import OrderProjectionStore, order_total
from engines.orders.state_machine import ITEM_PENDING, ITEM_RECEIVED, ORDER_COMPLETED
from engines.tabs.commands import (
    TABS_HISTORY_APPEND_REQUEST,
    TABS_MONITOR_CLEAR_REQUEST,
    TABS_TAB_CLEAR_REQUEST,
    HistoryItemLine,
    MonitorClearRequest,
    TabClearRequest,
    TabHistoryAppendRequest,
)
from engines.tabs.events import (
    TABS_EVENT_TYPES,
    TABS_HISTORY_APPENDED_V1,
    TABS_MONITOR_CLEARED_V1,
    TABS_TAB_CLEARED_V1,
    build_history_appended_payload,
    build_monitor_cleared_payload,
    build_tab_cleared_payload,
    register_tabs_event_types,
    tab_key,
)

TAB_AVAILABLE = "available"
TAB_OCCUPIED = "occupied"
TAB_READY_TO_PAY = "ready_to_pay"


@dataclass(frozen=True)
class TabSummary:
    target_type: str
    target_number: str
    status: str
    total: int

    def to_dict(self) -> dict:
        return {
            "type": self.target_type,
            "number": self.target_number,
            "status": self.status,
            "total": self.total,
        }


def history_status_for(item: dict, source: str) -> str:
    """Kitchen-monitor status of an order line when it lands on a tab."""
    status = item["status"]
    if status == ITEM_RECEIVED:
        return "delivered"
    if status != ITEM_PENDING:
        return status
    if item["requires_preparation"]:
        return "pending"
    return "delivered" if source == "internal" else "pending"


def history_items_for_order(payload: dict) -> List[dict]:
    return [
        {
            "history_id": f"ord-{payload['order_id']}-{index}",
            "product_name": item["name"],
            "quantity": item["quantity"],
            "unit_price": item["unit_price"],
            "ordered_at": payload["created_at"],
            "status": history_status_for(item, payload["source"]),
            "order_id": payload["order_id"],
        }
        for index, item in enumerate(payload["items"])
    ]


def history_line_total(history: Sequence[dict]) -> int:
    return sum(line["unit_price"] * line["quantity"] for line in history)


class TabProjectionStore:
    projection_name = "tabs_tab_cache"

    def __init__(self):
        self._tabs: Dict[str, dict] = {}
        self._lock = Lock()

    def apply(self, event_type: str, payload: dict) -> None:
        with self._lock:
            if event_type == ORDERS_ORDER_CREATED_V1:
                self._append(
                    payload["company_id"],
                    payload["target_type"],
                    payload["target_number"],
                    history_items_for_order(payload),
                )
            elif event_type == TABS_HISTORY_APPENDED_V1:
                self._append(
                    payload["company_id"],
                    payload["target_type"],
                    payload["target_number"],
                    payload["items"],
                )
            elif event_type == TABS_TAB_CLEARED_V1:
                self._clear(payload["tab_id"])
            elif event_type == TABS_MONITOR_CLEARED_V1:
                for tab_id in payload["tab_ids"]:
                    self._clear(tab_id)

    def _append(self, company_id, target_type, target_number, items) -> None:
        key = tab_key(company_id, target_type, target_number)
        tab = self._tabs.get(key)
        if tab is None:
            tab = self._tabs[key] = _new_tab(company_id, target_type, target_number)
        for item in items:
            line = dict(item)
            line["ordered_time"] = clock_label(line["ordered_at"])
            tab["history"].append(line)
        tab["status"] = TAB_OCCUPIED

    def _clear(self, tab_id: str) -> None:
        tab = self._tabs.get(tab_id)
        if tab is not None:
            tab["history"] = []
            tab["status"] = TAB_AVAILABLE

    # ── reads ─────────────────────────────────────────────────

    def get_tab(self, company_id, target_type: str, target_number: str) -> dict:
        with self._lock:
            tab = self._tabs.get(tab_key(company_id, target_type, target_number))
            if tab is None:
                return _new_tab(company_id, target_type, target_number)
            return copy.deepcopy(tab)

    def tabs_for_company(self, company_id: Optional[str]) -> List[dict]:
        with self._lock:
            return [
                copy.deepcopy(tab)
                for tab in self._tabs.values()
                if tab["company_id"] == company_id
            ]

    def open_tab_ids(self, company_ids) -> List[str]:
        with self._lock:
            return [
                tab["tab_id"]
                for tab in self._tabs.values()
                if tab["company_id"] in company_ids
                and (tab["history"] or tab["status"] != TAB_AVAILABLE)
            ]

    def truncate(self, company_id: Optional[str] = None) -> None:
        with self._lock:
            if company_id is None:
                self._tabs.clear()
                return
            self._tabs = {
                key: tab for key, tab in self._tabs.items()
                if tab["company_id"] != company_id
            }


def _new_tab(company_id, target_type: str, target_number: str) -> dict:
    return {
        "tab_id": tab_key(company_id, target_type, target_number),
        "company_id": company_id,
        "target_type": target_type,
        "target_number": target_number,
        "status": TAB_AVAILABLE,
        "history": [],
    }


class TabService(EngineService):
    """
    Usage:
        tabs = TabService(order_store=orders.projection_store, ...)
        tabs.get_all_tabs("c1")
        tabs.clear_all_monitor_data("c1")
    """

    engine_name = "tabs"
    command_handlers = {
        TABS_HISTORY_APPEND_REQUEST: "_handle_append",
        TABS_TAB_CLEAR_REQUEST: "_handle_clear",
        TABS_MONITOR_CLEAR_REQUEST: "_handle_monitor_clear",
    }

    def __init__(
        self,
        *,
        order_store: OrderProjectionStore,
        projection_store: Optional[TabProjectionStore] = None,
        **kwargs,
    ):
        self._order_store = order_store
        self._projection_store = (
            projection_store if projection_store is not None else TabProjectionStore()
        )
        super().__init__(**kwargs)

    def _register_event_types(self, registry) -> None:
        register_tabs_event_types(registry)

    def _register_projections(self, projection_registry) -> None:
        projection_registry.register(
            self._projection_store,
            TABS_EVENT_TYPES + (ORDERS_ORDER_CREATED_V1,),
            description="Per service point running bill (tab cache).",
        )

    def _lock_scope(self, command: Command) -> tuple:
        if command.command_type == TABS_MONITOR_CLEAR_REQUEST:
            return (None, command.company_id)
        return (command.company_id,)

    @property
    def projection_store(self) -> TabProjectionStore:
        return self._projection_store

    # ══════════════════════════════════════════════════════════
    # COMMAND HANDLERS (company lock held)
    # ══════════════════════════════════════════════════════════

    def _handle_append(self, command: Command) -> ExecutionResult:
        return self._persist_and_project(
            command, TABS_HISTORY_APPENDED_V1, build_history_appended_payload(command),
        )

    def _handle_clear(self, command: Command) -> Optional[ExecutionResult]:
        tab = self._projection_store.get_tab(
            command.company_id,
            command.payload["target_type"],
            command.payload["target_number"],
        )
        if not tab["history"] and tab["status"] == TAB_AVAILABLE:
            return None
        return self._persist_and_project(
            command, TABS_TAB_CLEARED_V1, build_tab_cleared_payload(command),
        )

    def _handle_monitor_clear(self, command: Command) -> Optional[ExecutionResult]:
        scope = {command.company_id, None}
        order_ids = self._order_store.active_order_ids(scope)
        tab_ids = self._projection_store.open_tab_ids(scope)
        if not order_ids and not tab_ids:
            return None
        return self._persist_and_project(
            command,
            TABS_MONITOR_CLEARED_V1,
            build_monitor_cleared_payload(command, order_ids=order_ids, tab_ids=tab_ids),
        )

    # ══════════════════════════════════════════════════════════
    # OPERATIONS
    # ══════════════════════════════════════════════════════════

    def add_to_tab_history(
        self,
        company_id: str,
        target_type: str,
        target_number: str,
        items: Sequence[HistoryItemLine],
        *,
        actor: Optional[ActorRef] = None,
    ) -> ExecutionResult:
        request = TabHistoryAppendRequest(
            target_type=target_type, target_number=target_number, items=tuple(items),
        )
        return self.execute(self.issue(request, company_id, actor))

    def clear_tab(
        self,
        company_id: str,
        target_type: str,
        target_number: str,
        *,
        actor: Optional[ActorRef] = None,
    ) -> Optional[ExecutionResult]:
        """Empty the tab and free the service point. None if already free."""
        request = TabClearRequest(target_type=target_type, target_number=target_number)
        return self.execute(self.issue(request, company_id, actor))

    def clear_all_monitor_data(
        self, company_id: str, *, actor: Optional[ActorRef] = None,
    ) -> Optional[ExecutionResult]:
        return self.execute(self.issue(MonitorClearRequest(), company_id, actor))

    # ══════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════

    def get_tab(self, company_id: str, target_type: str, target_number: str) -> dict:
        with self.reading(company_id):
            return self._projection_store.get_tab(company_id, target_type, target_number)

    def get_all_tabs(self, company_id: str) -> List[TabSummary]:
        """
        Fold 1: every active order of the company, grouped by service
        point. A point is ready_to_pay while all its orders are
        completed, occupied otherwise.

        Fold 2: manual lines of tabs owned by exactly this company.
        Order-derived lines are skipped here, fold 1 already counted
        them.
        """
        with self.reading(company_id):
            orders = self._order_store.list_orders(company_id)
            tabs = self._projection_store.tabs_for_company(company_id)

        folded: Dict[Tuple[str, str], dict] = {}
        for order in orders:
            key = (order["target_type"], order["target_number"])
            completed = order["status"] == ORDER_COMPLETED
            entry = folded.get(key)
            if entry is None:
                entry = folded[key] = {
                    "status": TAB_READY_TO_PAY if completed else TAB_OCCUPIED,
                    "total": 0,
                }
            elif not completed:
                entry["status"] = TAB_OCCUPIED
            entry["total"] += order_total(order)

        for tab in tabs:
            manual = [line for line in tab["history"] if line["order_id"] is None]
            if not manual:
                continue
            key = (tab["target_type"], tab["target_number"])
            entry = folded.setdefault(key, {"status": TAB_OCCUPIED, "total": 0})
            entry["total"] += history_line_total(manual)

        return [
            TabSummary(
                target_type=target_type,
                target_number=target_number,
                status=entry["status"],
                total=entry["total"],
            )
            for (target_type, target_number), entry in folded.items()
        ]
