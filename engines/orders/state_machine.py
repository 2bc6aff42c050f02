"""
Comanda Orders Engine - Order State Machine
=============================================
Item states:   pending -> preparing -> ready -> delivered | received
Order states:  pending -> accepted -> completed

After every item transition the order status is re-derived:

    every item delivered/received  -> completed (finalized_at stamped)
    any item preparing/ready       -> accepted
    otherwise                      -> unchanged

The order status only moves forward. A completed order stays
completed, and finalized_at is stamped once and never overwritten.
"""

from __future__ import annotations

from typing import Iterable, Optional

ITEM_PENDING = "pending"
ITEM_PREPARING = "preparing"
ITEM_READY = "ready"
ITEM_DELIVERED = "delivered"
ITEM_RECEIVED = "received"

ITEM_STATUSES = (
    ITEM_PENDING, ITEM_PREPARING, ITEM_READY, ITEM_DELIVERED, ITEM_RECEIVED,
)
ITEM_TERMINAL_STATUSES = frozenset({ITEM_DELIVERED, ITEM_RECEIVED})
ITEM_IN_PROGRESS_STATUSES = frozenset({ITEM_PREPARING, ITEM_READY})

ORDER_PENDING = "pending"
ORDER_ACCEPTED = "accepted"
ORDER_COMPLETED = "completed"

ORDER_STATUSES = (ORDER_PENDING, ORDER_ACCEPTED, ORDER_COMPLETED)

_ORDER_RANK = {status: rank for rank, status in enumerate(ORDER_STATUSES)}


def derive_order_status(current: str, item_statuses: Iterable[str]) -> str:
    statuses = list(item_statuses)

    if statuses and all(s in ITEM_TERMINAL_STATUSES for s in statuses):
        candidate = ORDER_COMPLETED
    elif any(s in ITEM_IN_PROGRESS_STATUSES for s in statuses):
        candidate = ORDER_ACCEPTED
    else:
        candidate = current

    if _ORDER_RANK[candidate] < _ORDER_RANK[current]:
        return current
    return candidate


def stamp_finalized_at(
    finalized_at: Optional[str], status: str, at: str,
) -> Optional[str]:
    if finalized_at is not None:
        return finalized_at
    if status == ORDER_COMPLETED:
        return at
    return None


def item_history_label(item_name: str, status: str) -> str:
    return f"{item_name}: {status}"
