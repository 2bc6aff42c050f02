"""
Comanda Tabs Engine - Event Types and Payload Builders
========================================================
The tab cache is fed by two streams:

- its own events (manual history, clearing, monitor sweeps)
- ``orders.order.created.v1``, folded into the target tab by the
  same projection apply that records the order

A monitor sweep is one event listing every order it archives and
every tab it clears, so the order store and the tab cache change
together.
"""

from __future__ import annotations

from typing import List, Optional

from core.commands.base import Command
from core.time.clock import to_iso


TABS_HISTORY_APPENDED_V1 = "tabs.history.appended.v1"
TABS_TAB_CLEARED_V1 = "tabs.tab.cleared.v1"
TABS_MONITOR_CLEARED_V1 = "tabs.monitor.cleared.v1"

TABS_EVENT_TYPES = (
    TABS_HISTORY_APPENDED_V1,
    TABS_TAB_CLEARED_V1,
    TABS_MONITOR_CLEARED_V1,
)

ORPHAN_SCOPE = "-"


def tab_key(company_id: Optional[str], target_type: str, target_number: str) -> str:
    """Tabs are keyed per company; legacy records without one share a scope."""
    return f"{company_id or ORPHAN_SCOPE}:{target_type}-{target_number}"


def register_tabs_event_types(event_type_registry) -> None:
    for event_type in sorted(TABS_EVENT_TYPES):
        event_type_registry.register(event_type)


def _base_payload(command: Command) -> dict:
    return {
        "company_id": command.company_id,
        "actor_id": command.actor_id,
        "actor_type": command.actor_type,
        "actor_name": command.actor_name,
        "correlation_id": str(command.correlation_id),
        "command_id": str(command.command_id),
    }


def build_history_appended_payload(command: Command) -> dict:
    data = command.payload
    ordered_at = to_iso(command.issued_at)
    items = []
    for index, item in enumerate(data["items"]):
        items.append({
            "history_id": item["history_id"] or f"tab-{command.command_id.hex}-{index}",
            "product_name": item["product_name"],
            "quantity": item["quantity"],
            "unit_price": item["unit_price"],
            "ordered_at": ordered_at,
            "status": item["status"],
            "order_id": None,
        })

    payload = _base_payload(command)
    payload.update({
        "tab_id": tab_key(command.company_id, data["target_type"], data["target_number"]),
        "target_type": data["target_type"],
        "target_number": data["target_number"],
        "items": items,
        "appended_at": ordered_at,
    })
    return payload


def build_tab_cleared_payload(command: Command) -> dict:
    data = command.payload
    payload = _base_payload(command)
    payload.update({
        "tab_id": tab_key(command.company_id, data["target_type"], data["target_number"]),
        "target_type": data["target_type"],
        "target_number": data["target_number"],
        "cleared_at": to_iso(command.issued_at),
    })
    return payload


def build_monitor_cleared_payload(
    command: Command, *, order_ids: List[str], tab_ids: List[str],
) -> dict:
    payload = _base_payload(command)
    payload.update({
        "order_ids": list(order_ids),
        "tab_ids": list(tab_ids),
        "cleared_at": to_iso(command.issued_at),
    })
    return payload
