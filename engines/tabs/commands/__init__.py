"""
Comanda Tabs Engine - Request Commands
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from core.commands.base import Command, command_for
from core.commands.errors import InvalidInput
from engines.orders.commands import validate_target


TABS_HISTORY_APPEND_REQUEST = "tabs.history.append.request"
TABS_TAB_CLEAR_REQUEST = "tabs.tab.clear.request"
TABS_MONITOR_CLEAR_REQUEST = "tabs.monitor.clear.request"

HISTORY_ITEM_STATUSES = frozenset({"pending", "preparing", "ready", "delivered"})


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class HistoryItemLine:
    """A line rung up directly at the register, outside any order."""
    product_name: str
    quantity: int
    unit_price: int
    status: str = "delivered"
    history_id: Optional[str] = None

    def __post_init__(self):
        if not self.product_name or not isinstance(self.product_name, str):
            raise InvalidInput("product_name must be a non-empty string.")
        if not _is_int(self.quantity) or self.quantity <= 0:
            raise InvalidInput("quantity must be a positive integer.")
        if not _is_int(self.unit_price) or self.unit_price < 0:
            raise InvalidInput("unit_price must be a non-negative integer.")
        if self.status not in HISTORY_ITEM_STATUSES:
            raise InvalidInput(f"history status '{self.status}' not valid.")

    def to_dict(self) -> dict:
        return {
            "history_id": self.history_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "status": self.status,
        }


@dataclass(frozen=True)
class TabHistoryAppendRequest:
    target_type: str
    target_number: str
    items: Tuple[HistoryItemLine, ...]

    def __post_init__(self):
        validate_target(self.target_type, self.target_number)
        if not isinstance(self.items, (tuple, list)) or not self.items:
            raise InvalidInput("At least one history item is required.")
        for item in self.items:
            if not isinstance(item, HistoryItemLine):
                raise InvalidInput("items must be HistoryItemLine instances.")

    def to_command(self, **envelope) -> Command:
        return command_for(
            TABS_HISTORY_APPEND_REQUEST,
            {
                "target_type": self.target_type,
                "target_number": self.target_number,
                "items": [item.to_dict() for item in self.items],
            },
            **envelope,
        )


@dataclass(frozen=True)
class TabClearRequest:
    target_type: str
    target_number: str

    def __post_init__(self):
        validate_target(self.target_type, self.target_number)

    def to_command(self, **envelope) -> Command:
        return command_for(
            TABS_TAB_CLEAR_REQUEST,
            {"target_type": self.target_type, "target_number": self.target_number},
            **envelope,
        )


@dataclass(frozen=True)
class MonitorClearRequest:
    """
    Reset the order monitor: archive every active order and clear
    every tab of the company, legacy records with no company included.
    """

    def to_command(self, **envelope) -> Command:
        return command_for(TABS_MONITOR_CLEAR_REQUEST, {}, **envelope)
