"""
Comanda Orders Engine - Application Service
=============================================
Order store and item/order state machine. Orders are never deleted;
archiving hides them from every active view while the event log
keeps the full trail.
"""

from __future__ import annotations

import copy
import uuid
from threading import Lock
from typing import Dict, List, Optional

from core.commands.base import Command
from core.context.company_context import ActorRef
from core.engines.service import EngineService, ExecutionResult
from core.time.clock import to_iso
from engines.orders.commands import (
    ORDERS_COMPLETED_ARCHIVE_REQUEST,
    ORDERS_ITEM_STATUS_UPDATE_REQUEST,
    ORDERS_ORDER_ARCHIVE_REQUEST,
    ORDERS_ORDER_CREATE_REQUEST,
    ORDERS_RECEIPT_CONFIRM_REQUEST,
    CompletedOrdersArchiveRequest,
    OrderArchiveRequest,
    OrderCreateRequest,
    OrderItemStatusUpdateRequest,
    OrderReceiptConfirmRequest,
)
from engines.orders.events import (
    ORDERS_COMPLETED_ARCHIVED_V1,
    ORDERS_EVENT_TYPES,
    ORDERS_ITEM_STATUS_UPDATED_V1,
    ORDERS_ORDER_ARCHIVED_V1,
    ORDERS_ORDER_CREATED_V1,
    ORDERS_RECEIPT_CONFIRMED_V1,
    build_completed_archived_payload,
    build_item_status_updated_payload,
    build_order_archived_payload,
    build_order_created_payload,
    build_receipt_confirmed_payload,
    history_entry,
    register_orders_event_types,
)
from engines.orders.policies import (
    item_index_policy,
    order_must_be_active_policy,
    order_must_be_new_policy,
    order_must_exist_policy,
)
from engines.orders.state_machine import (
    ITEM_RECEIVED,
    ORDER_COMPLETED,
    derive_order_status,
    item_history_label,
    stamp_finalized_at,
)
from engines.tabs.events import TABS_MONITOR_CLEARED_V1


def order_total(order: dict) -> int:
    return sum(item["unit_price"] * item["quantity"] for item in order["items"])


class OrderProjectionStore:
    """
    Orders of every company keyed by the global order id. Guarded by
    its own lock: a write for one company may land while another
    company is reading.
    """

    projection_name = "orders_order_store"

    def __init__(self):
        self._orders: Dict[str, dict] = {}
        self._lock = Lock()

    def apply(self, event_type: str, payload: dict) -> None:
        with self._lock:
            self._apply(event_type, payload)

    def _apply(self, event_type: str, payload: dict) -> None:
        if event_type == ORDERS_ORDER_CREATED_V1:
            self._orders[payload["order_id"]] = {
                "order_id": payload["order_id"],
                "company_id": payload["company_id"],
                "user_id": payload["user_id"],
                "target_type": payload["target_type"],
                "target_number": payload["target_number"],
                "items": copy.deepcopy(payload["items"]),
                "status": payload["status"],
                "source": payload["source"],
                "customer_name": payload["customer_name"],
                "waiter_id": payload["waiter_id"],
                "created_at": payload["created_at"],
                "finalized_at": payload["finalized_at"],
                "history": copy.deepcopy(payload["history"]),
                "is_archived": False,
            }
            return

        if event_type in (ORDERS_COMPLETED_ARCHIVED_V1, TABS_MONITOR_CLEARED_V1):
            for order_id in payload["order_ids"]:
                self._archive(order_id)
            return

        order = self._orders.get(payload["order_id"])
        if order is None:
            return

        if event_type == ORDERS_ITEM_STATUS_UPDATED_V1:
            item = order["items"][payload["item_index"]]
            item["status"] = payload["status"]
            if payload["employee"] is not None:
                item["assigned_employee"] = dict(payload["employee"])
            order["status"] = payload["order_status"]
            order["finalized_at"] = payload["finalized_at"]
            order["history"].append(dict(payload["history_entry"]))

        elif event_type == ORDERS_RECEIPT_CONFIRMED_V1:
            for item in order["items"]:
                item["status"] = ITEM_RECEIVED
            order["status"] = ORDER_COMPLETED
            order["finalized_at"] = payload["finalized_at"]
            order["history"].append(dict(payload["history_entry"]))

        elif event_type == ORDERS_ORDER_ARCHIVED_V1:
            self._archive(payload["order_id"])

    def _archive(self, order_id: str) -> None:
        order = self._orders.get(order_id)
        if order is not None:
            order["is_archived"] = True

    # ── reads ─────────────────────────────────────────────────

    def get(self, order_id: str) -> Optional[dict]:
        """Live record, for policies. Callers must not mutate it."""
        with self._lock:
            return self._orders.get(order_id)

    def get_order(self, order_id: str) -> Optional[dict]:
        with self._lock:
            order = self._orders.get(order_id)
            return copy.deepcopy(order) if order is not None else None

    def list_orders(
        self,
        company_id: Optional[str],
        user_id: Optional[str] = None,
        include_archived: bool = False,
    ) -> List[dict]:
        with self._lock:
            return [
                copy.deepcopy(order)
                for order in self._orders.values()
                if order["company_id"] == company_id
                and (user_id is None or order["user_id"] == user_id)
                and (include_archived or not order["is_archived"])
            ]

    def active_order_ids(self, company_ids) -> List[str]:
        with self._lock:
            return [
                order["order_id"]
                for order in self._orders.values()
                if order["company_id"] in company_ids and not order["is_archived"]
            ]

    def truncate(self, company_id: Optional[str] = None) -> None:
        with self._lock:
            if company_id is None:
                self._orders.clear()
                return
            self._orders = {
                order_id: order for order_id, order in self._orders.items()
                if order["company_id"] != company_id
            }


class OrderService(EngineService):
    engine_name = "orders"
    command_handlers = {
        ORDERS_ORDER_CREATE_REQUEST: "_handle_create",
        ORDERS_ITEM_STATUS_UPDATE_REQUEST: "_handle_item_status",
        ORDERS_RECEIPT_CONFIRM_REQUEST: "_handle_receipt",
        ORDERS_ORDER_ARCHIVE_REQUEST: "_handle_archive",
        ORDERS_COMPLETED_ARCHIVE_REQUEST: "_handle_archive_completed",
    }

    def __init__(self, *, projection_store: Optional[OrderProjectionStore] = None, **kwargs):
        self._projection_store = (
            projection_store if projection_store is not None else OrderProjectionStore()
        )
        super().__init__(**kwargs)

    def _register_event_types(self, registry) -> None:
        register_orders_event_types(registry)

    def _register_projections(self, projection_registry) -> None:
        projection_registry.register(
            self._projection_store,
            ORDERS_EVENT_TYPES + (TABS_MONITOR_CLEARED_V1,),
            description="Orders with items, status history and archive flag.",
        )

    @property
    def projection_store(self) -> OrderProjectionStore:
        return self._projection_store

    def _existing_order(self, command: Command) -> dict:
        self._enforce(command, order_must_exist_policy(command, self._projection_store.get))
        return self._projection_store.get(command.payload["order_id"])

    # ══════════════════════════════════════════════════════════
    # COMMAND HANDLERS (company lock held)
    # ══════════════════════════════════════════════════════════

    def _handle_create(self, command: Command) -> ExecutionResult:
        self._enforce(command, order_must_be_new_policy(command, self._projection_store.get))
        return self._persist_and_project(
            command,
            ORDERS_ORDER_CREATED_V1,
            build_order_created_payload(
                command, created_note=self._settings.order_created_note,
            ),
        )

    def _handle_item_status(self, command: Command) -> ExecutionResult:
        order = self._existing_order(command)
        self._enforce(command, order_must_be_active_policy(command, order))
        self._enforce(command, item_index_policy(command, order))

        index = command.payload["item_index"]
        status = command.payload["status"]
        statuses = [item["status"] for item in order["items"]]
        statuses[index] = status

        at = to_iso(command.issued_at)
        order_status = derive_order_status(order["status"], statuses)
        employee = command.payload["employee"]
        entry = history_entry(
            item_history_label(order["items"][index]["name"], status),
            at,
            employee["name"] if employee else command.actor_name,
        )
        return self._persist_and_project(
            command,
            ORDERS_ITEM_STATUS_UPDATED_V1,
            build_item_status_updated_payload(
                command,
                item_name=order["items"][index]["name"],
                order_status=order_status,
                finalized_at=stamp_finalized_at(order["finalized_at"], order_status, at),
                history=entry,
            ),
        )

    def _handle_receipt(self, command: Command) -> ExecutionResult:
        order = self._existing_order(command)
        self._enforce(command, order_must_be_active_policy(command, order))

        at = to_iso(command.issued_at)
        return self._persist_and_project(
            command,
            ORDERS_RECEIPT_CONFIRMED_V1,
            build_receipt_confirmed_payload(
                command,
                finalized_at=stamp_finalized_at(order["finalized_at"], ORDER_COMPLETED, at),
                history=history_entry(
                    self._settings.order_received_note, at, command.actor_name,
                ),
            ),
        )

    def _handle_archive(self, command: Command) -> Optional[ExecutionResult]:
        order = self._existing_order(command)
        if order["is_archived"]:
            self._logger.debug("Order %s already archived", order["order_id"])
            return None
        return self._persist_and_project(
            command, ORDERS_ORDER_ARCHIVED_V1, build_order_archived_payload(command),
        )

    def _handle_archive_completed(self, command: Command) -> Optional[ExecutionResult]:
        order_ids = [
            order["order_id"]
            for order in self._projection_store.list_orders(command.company_id)
            if order["status"] == ORDER_COMPLETED
        ]
        if not order_ids:
            return None
        return self._persist_and_project(
            command,
            ORDERS_COMPLETED_ARCHIVED_V1,
            build_completed_archived_payload(command, order_ids=order_ids),
        )

    # ══════════════════════════════════════════════════════════
    # OPERATIONS
    # ══════════════════════════════════════════════════════════

    def create_order(
        self,
        company_id: str,
        request: OrderCreateRequest,
        *,
        actor: Optional[ActorRef] = None,
        correlation_id: Optional[uuid.UUID] = None,
    ) -> ExecutionResult:
        """
        Record a new order and fold its items into the target tab.

        Raises DuplicateOrder when the order id is already taken.
        """
        return self.execute(self.issue(request, company_id, actor, correlation_id))

    def update_order_item_status(
        self,
        company_id: str,
        order_id: str,
        item_index: int,
        status: str,
        *,
        employee: Optional[ActorRef] = None,
        actor: Optional[ActorRef] = None,
    ) -> ExecutionResult:
        request = OrderItemStatusUpdateRequest(
            order_id=order_id, item_index=item_index, status=status, employee=employee,
        )
        return self.execute(self.issue(request, company_id, actor or employee))

    def confirm_order_receipt(
        self, company_id: str, order_id: str, *, actor: Optional[ActorRef] = None,
    ) -> ExecutionResult:
        request = OrderReceiptConfirmRequest(order_id=order_id)
        return self.execute(self.issue(request, company_id, actor))

    def archive_order(
        self, company_id: str, order_id: str, *, actor: Optional[ActorRef] = None,
    ) -> Optional[ExecutionResult]:
        """Soft delete. Returns None when the order was already archived."""
        request = OrderArchiveRequest(order_id=order_id)
        return self.execute(self.issue(request, company_id, actor))

    def archive_completed_orders(
        self, company_id: str, *, actor: Optional[ActorRef] = None,
    ) -> Optional[ExecutionResult]:
        return self.execute(self.issue(CompletedOrdersArchiveRequest(), company_id, actor))

    # ══════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════

    def get_order(self, company_id: str, order_id: str) -> Optional[dict]:
        with self.reading(company_id):
            order = self._projection_store.get_order(order_id)
        if order is None or order["company_id"] != company_id:
            return None
        return order

    def get_orders(
        self,
        company_id: str,
        user_id: Optional[str] = None,
        include_archived: bool = False,
    ) -> List[dict]:
        with self.reading(company_id):
            return self._projection_store.list_orders(
                company_id, user_id=user_id, include_archived=include_archived,
            )
