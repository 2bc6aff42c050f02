"""
Comanda Event Store - Event Factory
=====================================
Builds the envelope for the single event a command produces.
The command id doubles as the event id, so a command replayed
through the bus is rejected as a duplicate instead of applied twice.
"""

from __future__ import annotations

from core.commands.base import Command


def build_event_data(
    command: Command,
    event_type: str,
    payload: dict,
    *,
    event_version: int = 1,
) -> dict:
    return {
        "event_id": command.command_id,
        "event_type": event_type,
        "event_version": event_version,
        "company_id": command.company_id,
        "source_engine": command.source_engine,
        "actor_type": command.actor_type,
        "actor_id": command.actor_id,
        "correlation_id": command.correlation_id,
        "payload": payload,
        "created_at": command.issued_at,
    }
