"""
Comanda Scheduling Engine - Event Types and Payload Builders
"""

from __future__ import annotations

from typing import Optional

from core.commands.base import Command
from core.time.clock import to_iso


SCHEDULING_APPOINTMENT_SCHEDULED_V1 = "scheduling.appointment.scheduled.v1"
SCHEDULING_STATUS_CHANGED_V1 = "scheduling.appointment.status_changed.v1"
SCHEDULING_APPOINTMENT_NOTIFIED_V1 = "scheduling.appointment.notified.v1"
SCHEDULING_APPOINTMENT_DELETED_V1 = "scheduling.appointment.deleted.v1"

SCHEDULING_EVENT_TYPES = (
    SCHEDULING_APPOINTMENT_SCHEDULED_V1,
    SCHEDULING_STATUS_CHANGED_V1,
    SCHEDULING_APPOINTMENT_NOTIFIED_V1,
    SCHEDULING_APPOINTMENT_DELETED_V1,
)


def register_scheduling_event_types(event_type_registry) -> None:
    for event_type in sorted(SCHEDULING_EVENT_TYPES):
        event_type_registry.register(event_type)


def _base_payload(command: Command) -> dict:
    return {
        "company_id": command.company_id,
        "appointment_id": command.payload["appointment_id"],
        "actor_id": command.actor_id,
        "actor_type": command.actor_type,
        "actor_name": command.actor_name,
        "correlation_id": str(command.correlation_id),
        "command_id": str(command.command_id),
    }


def build_appointment_scheduled_payload(command: Command) -> dict:
    data = command.payload
    payload = _base_payload(command)
    payload.update({
        "client_id": data["client_id"],
        "client_name": data["client_name"],
        "date": data["date"],
        "services": [dict(service) for service in data["services"]],
        "total_value": data["total_value"],
        "is_forced_fit": data["is_forced_fit"],
        "status": "scheduled",
        "notified": False,
        "scheduled_at": to_iso(command.issued_at),
    })
    return payload


def build_status_changed_payload(
    command: Command, *, previous_status: str, pos_order_id: Optional[str] = None,
) -> dict:
    payload = _base_payload(command)
    payload.update({
        "previous_status": previous_status,
        "status": command.payload["status"],
        "pos_order_id": pos_order_id,
        "changed_at": to_iso(command.issued_at),
    })
    return payload


def build_appointment_notified_payload(command: Command) -> dict:
    payload = _base_payload(command)
    payload["notified_at"] = to_iso(command.issued_at)
    return payload


def build_appointment_deleted_payload(command: Command) -> dict:
    payload = _base_payload(command)
    payload["deleted_at"] = to_iso(command.issued_at)
    return payload
