"""
Comanda Core Config - Ledger Settings
=======================================
Runtime switches for the engines, read from the Django setting
``COMANDA`` when Django is configured:

    COMANDA = {
        "ALLOW_NEGATIVE_STOCK": True,
        "ORDER_CREATED_NOTE": "Order created",
        "ORDER_RECEIVED_NOTE": "Order received and finalized by customer",
    }

Without Django settings the defaults apply.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

_KEYS = {
    "ALLOW_NEGATIVE_STOCK": "allow_negative_stock",
    "ORDER_CREATED_NOTE": "order_created_note",
    "ORDER_RECEIVED_NOTE": "order_received_note",
}


@dataclass(frozen=True)
class LedgerSettings:
    allow_negative_stock: bool = True
    order_created_note: str = "Order created"
    order_received_note: str = "Order received and finalized by customer"

    def __post_init__(self):
        if not isinstance(self.allow_negative_stock, bool):
            raise ValueError("allow_negative_stock must be a bool.")

        for note in ("order_created_note", "order_received_note"):
            value = getattr(self, note)
            if not value or not isinstance(value, str):
                raise ValueError(f"{note} must be a non-empty string.")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "LedgerSettings":
        if not data:
            return cls()

        unknown = set(data) - set(_KEYS)
        if unknown:
            raise ValueError(
                f"Unknown COMANDA settings: {sorted(unknown)}"
            )

        return cls(**{_KEYS[key]: value for key, value in data.items()})


def load_settings() -> LedgerSettings:
    """Build LedgerSettings from django.conf.settings.COMANDA if available."""
    from django.conf import ENVIRONMENT_VARIABLE, settings as django_settings

    if not (django_settings.configured or os.environ.get(ENVIRONMENT_VARIABLE)):
        return LedgerSettings()

    return LedgerSettings.from_mapping(
        getattr(django_settings, "COMANDA", None)
    )
