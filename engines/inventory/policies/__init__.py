"""
Comanda Inventory Engine - Policies
=====================================
Each policy returns a RejectionReason, or None to let the command
through. ``product_lookup(company_id, product_id)`` reads the
projection.
"""

from __future__ import annotations

from typing import Optional

from core.commands.base import Command
from core.commands.rejection import ReasonCode, RejectionReason


def product_must_exist_policy(
    command: Command,
    product_lookup,
) -> Optional[RejectionReason]:
    product_id = command.payload["product_id"]
    if product_lookup(command.company_id, product_id) is None:
        return RejectionReason(
            code=ReasonCode.PRODUCT_NOT_FOUND,
            message=(
                f"Product {product_id} not found for company "
                f"{command.company_id}."
            ),
            policy_name="product_must_exist_policy",
        )
    return None


def product_must_be_new_policy(
    command: Command,
    product_lookup,
) -> Optional[RejectionReason]:
    product_id = command.payload["product_id"]
    if product_lookup(command.company_id, product_id) is not None:
        return RejectionReason(
            code=ReasonCode.DUPLICATE_PRODUCT,
            message=f"Product {product_id} is already registered.",
            policy_name="product_must_be_new_policy",
        )
    return None


def negative_stock_policy(
    command: Command,
    stock_lookup,
    allow_negative_stock: bool,
) -> Optional[RejectionReason]:
    """
    Reject an outbound adjustment that would drive stock below zero.
    Inactive when the company allows negative stock (the default).
    """
    if allow_negative_stock:
        return None

    delta = command.payload["delta"]
    if delta > 0:
        return None

    product_id = command.payload["product_id"]
    current = stock_lookup(command.company_id, product_id)
    if current + delta < 0:
        return RejectionReason(
            code=ReasonCode.INSUFFICIENT_STOCK,
            message=(
                f"Insufficient stock: {current} available, "
                f"{-delta} requested for product {product_id}."
            ),
            policy_name="negative_stock_policy",
        )
    return None
