"""
Comanda Inventory Engine - Event Types and Payload Builders
=============================================================
Inventory builds payloads only. Envelope and hash chain are the
event store's job.

Every stock change carries exactly one movement record. The product
name is snapshotted into the movement so later renames leave the
audit trail untouched.
"""

from __future__ import annotations

from core.commands.base import Command
from core.time.clock import to_iso


INVENTORY_PRODUCT_REGISTERED_V1 = "inventory.product.registered.v1"
INVENTORY_PRODUCT_UPDATED_V1 = "inventory.product.updated.v1"
INVENTORY_STOCK_ADJUSTED_V1 = "inventory.stock.adjusted.v1"

INVENTORY_EVENT_TYPES = (
    INVENTORY_PRODUCT_REGISTERED_V1,
    INVENTORY_PRODUCT_UPDATED_V1,
    INVENTORY_STOCK_ADJUSTED_V1,
)

OPENING_STOCK_REASON = "initial stock"


def register_inventory_event_types(event_type_registry) -> None:
    for event_type in sorted(INVENTORY_EVENT_TYPES):
        event_type_registry.register(event_type)


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


def _movement(
    command: Command, *, product_id: str, product_name: str, delta: int, reason: str,
) -> dict:
    return {
        "movement_id": f"mov-{command.command_id.hex}",
        "company_id": command.company_id,
        "product_id": product_id,
        "product_name": product_name,
        "type": "in" if delta > 0 else "out",
        "quantity": abs(delta),
        "reason": reason,
        "occurred_at": to_iso(command.issued_at),
        "actor_id": command.actor_id,
    }


def build_product_registered_payload(command: Command) -> dict:
    data = command.payload
    payload = _base_payload(command)
    payload.update({
        "product_id": data["product_id"],
        "name": data["name"],
        "price": data["price"],
        "kind": data["kind"],
        "stock": data["stock"],
        "min_stock": data["min_stock"],
        "requires_preparation": data["requires_preparation"],
        "registered_at": to_iso(command.issued_at),
        "opening_movement": None,
    })
    if data["stock"]:
        payload["opening_movement"] = _movement(
            command,
            product_id=data["product_id"],
            product_name=data["name"],
            delta=data["stock"],
            reason=OPENING_STOCK_REASON,
        )
    return payload


def build_product_updated_payload(command: Command) -> dict:
    payload = _base_payload(command)
    payload.update({
        "product_id": command.payload["product_id"],
        "changes": dict(command.payload["changes"]),
        "updated_at": to_iso(command.issued_at),
    })
    return payload


def build_stock_adjusted_payload(
    command: Command, *, product_name: str, stock_before: int,
) -> dict:
    data = command.payload
    payload = _base_payload(command)
    payload.update({
        "product_id": data["product_id"],
        "delta": data["delta"],
        "stock_before": stock_before,
        "stock_after": stock_before + data["delta"],
        "movement": _movement(
            command,
            product_id=data["product_id"],
            product_name=product_name,
            delta=data["delta"],
            reason=data["reason"],
        ),
    })
    return payload
