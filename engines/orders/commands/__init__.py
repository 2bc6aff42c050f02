"""
Comanda Orders Engine - Request Commands
==========================================
Orders are created by the public menu, by staff at the counter, or
by the appointment bridge. Item names and prices are snapshots taken
at order time and never re-read from the catalog.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from core.commands.base import Command, command_for
from core.commands.errors import InvalidInput
from core.context.company_context import ActorRef
from engines.orders.state_machine import (
    ITEM_PENDING,
    ITEM_STATUSES,
    ORDER_PENDING,
    ORDER_STATUSES,
)


ORDERS_ORDER_CREATE_REQUEST = "orders.order.create.request"
ORDERS_ITEM_STATUS_UPDATE_REQUEST = "orders.item.update_status.request"
ORDERS_RECEIPT_CONFIRM_REQUEST = "orders.order.confirm_receipt.request"
ORDERS_ORDER_ARCHIVE_REQUEST = "orders.order.archive.request"
ORDERS_COMPLETED_ARCHIVE_REQUEST = "orders.order.archive_completed.request"

VALID_TARGET_TYPES = frozenset({"table", "room", "appointment"})
VALID_ORDER_SOURCES = frozenset({"public", "internal"})


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_text(name: str, value) -> None:
    if not value or not isinstance(value, str):
        raise InvalidInput(f"{name} must be a non-empty string.")


def validate_target(target_type: str, target_number: str) -> None:
    if target_type not in VALID_TARGET_TYPES:
        raise InvalidInput(f"target_type '{target_type}' not valid.")
    _require_text("target_number", target_number)


@dataclass(frozen=True)
class OrderItemLine:
    product_id: str
    name: str
    unit_price: int
    quantity: int = 1
    status: str = ITEM_PENDING
    requires_preparation: bool = False
    assigned_employee: Optional[ActorRef] = None

    def __post_init__(self):
        _require_text("product_id", self.product_id)
        _require_text("name", self.name)
        if not _is_int(self.unit_price) or self.unit_price < 0:
            raise InvalidInput("unit_price must be a non-negative integer.")
        if not _is_int(self.quantity) or self.quantity <= 0:
            raise InvalidInput("quantity must be a positive integer.")
        if self.status not in ITEM_STATUSES:
            raise InvalidInput(f"item status '{self.status}' not valid.")
        if not isinstance(self.requires_preparation, bool):
            raise InvalidInput("requires_preparation must be a bool.")
        if self.assigned_employee is not None and not isinstance(self.assigned_employee, ActorRef):
            raise InvalidInput("assigned_employee must be an ActorRef.")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "status": self.status,
            "requires_preparation": self.requires_preparation,
            "assigned_employee": (
                self.assigned_employee.to_dict()
                if self.assigned_employee is not None else None
            ),
        }


@dataclass(frozen=True)
class OrderCreateRequest:
    """
    A new order for one service point.

    ``history`` lets importers carry an existing status trail; when
    empty, a single "created" entry is written.
    """
    order_id: str
    target_type: str
    target_number: str
    items: Tuple[OrderItemLine, ...]
    source: str = "public"
    status: str = ORDER_PENDING
    user_id: Optional[str] = None
    customer_name: Optional[str] = None
    waiter_id: Optional[str] = None
    history: Tuple[dict, ...] = ()

    def __post_init__(self):
        _require_text("order_id", self.order_id)
        validate_target(self.target_type, self.target_number)
        if not isinstance(self.items, (tuple, list)) or not self.items:
            raise InvalidInput("An order needs at least one item.")
        for item in self.items:
            if not isinstance(item, OrderItemLine):
                raise InvalidInput("items must be OrderItemLine instances.")
        if self.source not in VALID_ORDER_SOURCES:
            raise InvalidInput(f"source '{self.source}' not valid.")
        if self.status not in ORDER_STATUSES:
            raise InvalidInput(f"order status '{self.status}' not valid.")
        for entry in self.history:
            if not isinstance(entry, dict) or "status" not in entry or "timestamp" not in entry:
                raise InvalidInput("history entries need 'status' and 'timestamp'.")

    def to_command(self, **envelope) -> Command:
        return command_for(
            ORDERS_ORDER_CREATE_REQUEST,
            {
                "order_id": self.order_id,
                "target_type": self.target_type,
                "target_number": self.target_number,
                "items": [item.to_dict() for item in self.items],
                "source": self.source,
                "status": self.status,
                "user_id": self.user_id,
                "customer_name": self.customer_name,
                "waiter_id": self.waiter_id,
                "history": [dict(entry) for entry in self.history],
            },
            **envelope,
        )


@dataclass(frozen=True)
class OrderItemStatusUpdateRequest:
    order_id: str
    item_index: int
    status: str
    employee: Optional[ActorRef] = None

    def __post_init__(self):
        _require_text("order_id", self.order_id)
        if not _is_int(self.item_index) or self.item_index < 0:
            raise InvalidInput("item_index must be a non-negative integer.")
        if self.status not in ITEM_STATUSES:
            raise InvalidInput(f"item status '{self.status}' not valid.")

    def to_command(self, **envelope) -> Command:
        return command_for(
            ORDERS_ITEM_STATUS_UPDATE_REQUEST,
            {
                "order_id": self.order_id,
                "item_index": self.item_index,
                "status": self.status,
                "employee": self.employee.to_dict() if self.employee else None,
            },
            **envelope,
        )


@dataclass(frozen=True)
class OrderReceiptConfirmRequest:
    """The customer confirms everything arrived."""
    order_id: str

    def __post_init__(self):
        _require_text("order_id", self.order_id)

    def to_command(self, **envelope) -> Command:
        return command_for(
            ORDERS_RECEIPT_CONFIRM_REQUEST, {"order_id": self.order_id}, **envelope,
        )


@dataclass(frozen=True)
class OrderArchiveRequest:
    order_id: str

    def __post_init__(self):
        _require_text("order_id", self.order_id)

    def to_command(self, **envelope) -> Command:
        return command_for(
            ORDERS_ORDER_ARCHIVE_REQUEST, {"order_id": self.order_id}, **envelope,
        )


@dataclass(frozen=True)
class CompletedOrdersArchiveRequest:
    """Archive every completed order of the company."""

    def to_command(self, **envelope) -> Command:
        return command_for(ORDERS_COMPLETED_ARCHIVE_REQUEST, {}, **envelope)
