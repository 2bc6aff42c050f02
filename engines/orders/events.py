"""
Comanda Orders Engine - Event Types and Payload Builders
==========================================================
Status-changing payloads record their outcome (the derived order
status and finalized_at), so projections apply facts and never
re-run the state machine on replay.
"""

from __future__ import annotations

from typing import List, Optional

from core.commands.base import Command
from core.time.clock import to_iso
from engines.orders.state_machine import ORDER_COMPLETED


ORDERS_ORDER_CREATED_V1 = "orders.order.created.v1"
ORDERS_ITEM_STATUS_UPDATED_V1 = "orders.item.status_updated.v1"
ORDERS_RECEIPT_CONFIRMED_V1 = "orders.order.receipt_confirmed.v1"
ORDERS_ORDER_ARCHIVED_V1 = "orders.order.archived.v1"
ORDERS_COMPLETED_ARCHIVED_V1 = "orders.order.completed_archived.v1"

ORDERS_EVENT_TYPES = (
    ORDERS_ORDER_CREATED_V1,
    ORDERS_ITEM_STATUS_UPDATED_V1,
    ORDERS_RECEIPT_CONFIRMED_V1,
    ORDERS_ORDER_ARCHIVED_V1,
    ORDERS_COMPLETED_ARCHIVED_V1,
)


def register_orders_event_types(event_type_registry) -> None:
    for event_type in sorted(ORDERS_EVENT_TYPES):
        event_type_registry.register(event_type)


def history_entry(
    status: str,
    timestamp: str,
    employee_name: Optional[str] = None,
    note: Optional[str] = None,
) -> dict:
    return {
        "status": status,
        "timestamp": timestamp,
        "employee_name": employee_name,
        "note": note,
    }


# ══════════════════════════════════════════════════════════════
# PAYLOAD BUILDERS
# ══════════════════════════════════════════════════════════════

def _base_payload(command: Command) -> dict:
    return {
        "company_id": command.company_id,
        "actor_id": command.actor_id,
        "actor_type": command.actor_type,
        "actor_name": command.actor_name,
        "correlation_id": str(command.correlation_id),
        "command_id": str(command.command_id),
    }


def build_order_created_payload(command: Command, *, created_note: str) -> dict:
    data = command.payload
    created_at = to_iso(command.issued_at)
    history = [dict(entry) for entry in data["history"]] or [
        history_entry(created_note, created_at, command.actor_name)
    ]
    payload = _base_payload(command)
    payload.update({
        "order_id": data["order_id"],
        "user_id": data["user_id"],
        "target_type": data["target_type"],
        "target_number": data["target_number"],
        "items": [dict(item) for item in data["items"]],
        "status": data["status"],
        "source": data["source"],
        "customer_name": data["customer_name"],
        "waiter_id": data["waiter_id"],
        "created_at": created_at,
        "finalized_at": created_at if data["status"] == ORDER_COMPLETED else None,
        "history": history,
    })
    return payload


def build_item_status_updated_payload(
    command: Command,
    *,
    item_name: str,
    order_status: str,
    finalized_at: Optional[str],
    history: dict,
) -> dict:
    data = command.payload
    payload = _base_payload(command)
    payload.update({
        "order_id": data["order_id"],
        "item_index": data["item_index"],
        "item_name": item_name,
        "status": data["status"],
        "employee": data["employee"],
        "order_status": order_status,
        "finalized_at": finalized_at,
        "history_entry": history,
        "updated_at": to_iso(command.issued_at),
    })
    return payload


def build_receipt_confirmed_payload(
    command: Command, *, finalized_at: str, history: dict,
) -> dict:
    payload = _base_payload(command)
    payload.update({
        "order_id": command.payload["order_id"],
        "finalized_at": finalized_at,
        "history_entry": history,
        "confirmed_at": to_iso(command.issued_at),
    })
    return payload


def build_order_archived_payload(command: Command) -> dict:
    payload = _base_payload(command)
    payload.update({
        "order_id": command.payload["order_id"],
        "archived_at": to_iso(command.issued_at),
    })
    return payload


def build_completed_archived_payload(command: Command, *, order_ids: List[str]) -> dict:
    payload = _base_payload(command)
    payload.update({
        "order_ids": list(order_ids),
        "archived_at": to_iso(command.issued_at),
    })
    return payload
