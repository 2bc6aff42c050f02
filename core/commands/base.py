"""
Comanda Command Layer - Command Base Contract
===============================================
Every mutation of the ledger begins as a Command.

A Command is a frozen declaration of intent made by one actor on
behalf of one company. It carries identity, tenancy and payload.

Rules:
- Immutable once created (frozen dataclass)
- No business logic inside
- command_type follows engine.domain.action.request format
- issued_at is timezone-aware; engines never read the wall clock
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


# ══════════════════════════════════════════════════════════════
# ACTOR TYPES (mirrors the event store, no Django import)
# ══════════════════════════════════════════════════════════════

VALID_ACTOR_TYPES = frozenset({"HUMAN", "SYSTEM", "DEVICE"})


# ══════════════════════════════════════════════════════════════
# CANONICAL COMMAND
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Command:
    """
    Canonical Comanda Command.

    Fields:
        command_id:     Unique identifier (UUID). Reused as the event id.
        command_type:   Namespaced type ending in '.request'
                        (e.g. 'inventory.stock.adjust.request').
        company_id:     Tenant boundary.
        actor_type:     HUMAN | SYSTEM | DEVICE.
        actor_id:       Identity of the actor.
        payload:        Intent data (dict, JSON-native values only).
        issued_at:      When the command was issued (aware datetime).
        correlation_id: Groups related commands (e.g. appointment
                        completion and the order it produces).
        source_engine:  Engine that owns this command.
        actor_name:     Display name, snapshotted into history entries.
    """

    command_id: uuid.UUID
    command_type: str
    company_id: str
    actor_type: str
    actor_id: str
    payload: dict
    issued_at: datetime
    correlation_id: uuid.UUID
    source_engine: str
    actor_name: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.command_id, uuid.UUID):
            raise ValueError(
                f"command_id must be UUID, got {type(self.command_id).__name__}"
            )

        if not self.command_type or not isinstance(self.command_type, str):
            raise ValueError("command_type must be a non-empty string.")

        if not self.command_type.endswith(".request"):
            raise ValueError(
                f"command_type '{self.command_type}' must end with '.request'."
            )

        parts = self.command_type.split(".")
        if len(parts) < 4:
            raise ValueError(
                f"command_type '{self.command_type}' must follow "
                f"engine.domain.action.request format (minimum 4 segments)."
            )

        if parts[0] != self.source_engine:
            raise ValueError(
                f"command_type namespace '{parts[0]}' does not match "
                f"source_engine '{self.source_engine}'."
            )

        if not self.company_id or not isinstance(self.company_id, str):
            raise ValueError("company_id must be a non-empty string.")

        if self.actor_type not in VALID_ACTOR_TYPES:
            raise ValueError(
                f"actor_type '{self.actor_type}' not valid. "
                f"Must be one of: {sorted(VALID_ACTOR_TYPES)}"
            )

        if not self.actor_id or not isinstance(self.actor_id, str):
            raise ValueError("actor_id must be a non-empty string.")

        if not isinstance(self.payload, dict):
            raise TypeError("payload must be a dict.")

        if not isinstance(self.correlation_id, uuid.UUID):
            raise ValueError("correlation_id must be UUID.")

        if not isinstance(self.issued_at, datetime):
            raise TypeError("issued_at must be a datetime.")

        if self.issued_at.tzinfo is None:
            raise ValueError("issued_at must be timezone-aware.")

    @property
    def engine(self) -> str:
        return self.command_type.split(".")[0]


def command_for(command_type: str, payload: dict, **envelope) -> Command:
    """
    Build a Command owned by the engine named in its type.

    ``envelope`` carries company_id, actor_type, actor_id, actor_name,
    command_id, correlation_id and issued_at.
    """
    return Command(
        command_type=command_type,
        payload=payload,
        source_engine=command_type.split(".")[0],
        **envelope,
    )
