"""
Comanda Scheduling - Appointment to Order Bridge
==================================================
Deterministic translation of an appointment into the one order that
bills it. The order id is derived from the appointment id, so the
order store's duplicate check makes the bridge one-shot.
"""

from __future__ import annotations

from core.context.company_context import ActorRef
from engines.orders.commands import OrderCreateRequest, OrderItemLine
from engines.orders.state_machine import ITEM_DELIVERED, ORDER_COMPLETED

APPOINTMENT_TARGET = "appointment"


def pos_order_id(appointment_id: str) -> str:
    return f"app-ord-{appointment_id}"


def build_pos_order_request(appointment: dict) -> OrderCreateRequest:
    items = tuple(
        OrderItemLine(
            product_id=service["service_id"],
            name=service["service_name"],
            unit_price=service["price"],
            quantity=1,
            status=ITEM_DELIVERED,
            assigned_employee=ActorRef(
                actor_id=service["employee_id"], name=service["employee_name"],
            ),
        )
        for service in appointment["services"]
    )
    return OrderCreateRequest(
        order_id=pos_order_id(appointment["appointment_id"]),
        target_type=APPOINTMENT_TARGET,
        target_number=appointment["appointment_id"],
        items=items,
        source="internal",
        status=ORDER_COMPLETED,
        user_id=appointment["client_id"],
        customer_name=appointment["client_name"],
    )
