"""
Comanda Orders Engine - Policies
==================================
``order_lookup(order_id)`` returns the projection record or None.
An order owned by another company is reported as not found.
"""

from __future__ import annotations

from typing import Optional

from core.commands.base import Command
from core.commands.rejection import ReasonCode, RejectionReason


def order_must_exist_policy(
    command: Command,
    order_lookup,
) -> Optional[RejectionReason]:
    order_id = command.payload["order_id"]
    order = order_lookup(order_id)
    if order is None or order["company_id"] != command.company_id:
        return RejectionReason(
            code=ReasonCode.ORDER_NOT_FOUND,
            message=f"Order {order_id} not found for company {command.company_id}.",
            policy_name="order_must_exist_policy",
        )
    return None


def order_must_be_new_policy(
    command: Command,
    order_lookup,
) -> Optional[RejectionReason]:
    order_id = command.payload["order_id"]
    if order_lookup(order_id) is not None:
        return RejectionReason(
            code=ReasonCode.DUPLICATE_ORDER,
            message=f"Order {order_id} already exists.",
            policy_name="order_must_be_new_policy",
        )
    return None


def order_must_be_active_policy(
    command: Command,
    order: dict,
) -> Optional[RejectionReason]:
    if order["is_archived"]:
        return RejectionReason(
            code=ReasonCode.ORDER_ARCHIVED,
            message=f"Order {order['order_id']} is archived.",
            policy_name="order_must_be_active_policy",
        )
    return None


def item_index_policy(
    command: Command,
    order: dict,
) -> Optional[RejectionReason]:
    index = command.payload["item_index"]
    if index >= len(order["items"]):
        return RejectionReason(
            code=ReasonCode.ITEM_INDEX_OUT_OF_RANGE,
            message=(
                f"Item index {index} out of range for order "
                f"{order['order_id']} ({len(order['items'])} items)."
            ),
            policy_name="item_index_policy",
        )
    return None
