"""
Comanda Scheduling Engine - Request Commands
==============================================
An appointment books one client for one or more services, each with
its own employee and time window on the same date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date as date_type
from typing import Tuple

from core.commands.base import Command, command_for
from core.commands.errors import InvalidInput
from engines.scheduling.timeslots import compute_end_time, parse_hhmm


SCHEDULING_APPOINTMENT_SCHEDULE_REQUEST = "scheduling.appointment.schedule.request"
SCHEDULING_STATUS_CHANGE_REQUEST = "scheduling.appointment.change_status.request"
SCHEDULING_MARK_NOTIFIED_REQUEST = "scheduling.appointment.mark_notified.request"
SCHEDULING_APPOINTMENT_DELETE_REQUEST = "scheduling.appointment.delete.request"
SCHEDULING_SEND_TO_POS_REQUEST = "scheduling.appointment.send_to_pos.request"

APPOINTMENT_SCHEDULED = "scheduled"
APPOINTMENT_IN_PROGRESS = "inprogress"
APPOINTMENT_COMPLETED = "completed"
APPOINTMENT_CANCELLED = "cancelled"

APPOINTMENT_STATUSES = frozenset({
    APPOINTMENT_SCHEDULED,
    APPOINTMENT_IN_PROGRESS,
    APPOINTMENT_COMPLETED,
    APPOINTMENT_CANCELLED,
})


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_text(name: str, value) -> None:
    if not value or not isinstance(value, str):
        raise InvalidInput(f"{name} must be a non-empty string.")


def _require_appointment_id(appointment_id) -> None:
    _require_text("appointment_id", appointment_id)


@dataclass(frozen=True)
class ScheduledServiceLine:
    service_id: str
    service_name: str
    employee_id: str
    employee_name: str
    start_time: str
    duration: int
    price: int

    def __post_init__(self):
        _require_text("service_id", self.service_id)
        _require_text("service_name", self.service_name)
        _require_text("employee_id", self.employee_id)
        _require_text("employee_name", self.employee_name)
        try:
            parse_hhmm(self.start_time)
        except ValueError as exc:
            raise InvalidInput(str(exc)) from exc
        if not _is_int(self.duration) or self.duration <= 0:
            raise InvalidInput("duration must be a positive number of minutes.")
        if not _is_int(self.price) or self.price < 0:
            raise InvalidInput("price must be a non-negative integer.")

    @property
    def end_time(self) -> str:
        return compute_end_time(self.start_time, self.duration)

    def to_dict(self) -> dict:
        return {
            "service_id": self.service_id,
            "service_name": self.service_name,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "start_time": self.start_time,
            "duration": self.duration,
            "end_time": self.end_time,
            "price": self.price,
        }


@dataclass(frozen=True)
class AppointmentScheduleRequest:
    """
    Book an appointment.

    ``is_forced_fit`` marks a deliberate squeeze-in ("encaixe"): the
    slot conflict check is skipped for it.
    """
    appointment_id: str
    client_id: str
    client_name: str
    date: str
    services: Tuple[ScheduledServiceLine, ...]
    is_forced_fit: bool = False

    def __post_init__(self):
        _require_appointment_id(self.appointment_id)
        _require_text("client_id", self.client_id)
        _require_text("client_name", self.client_name)
        if not isinstance(self.date, str):
            raise InvalidInput("date must be a YYYY-MM-DD string.")
        try:
            date_type.fromisoformat(self.date)
        except ValueError as exc:
            raise InvalidInput(f"date '{self.date}' is not YYYY-MM-DD.") from exc
        if not isinstance(self.services, (tuple, list)) or not self.services:
            raise InvalidInput("An appointment needs at least one service.")
        for service in self.services:
            if not isinstance(service, ScheduledServiceLine):
                raise InvalidInput("services must be ScheduledServiceLine instances.")
        if not isinstance(self.is_forced_fit, bool):
            raise InvalidInput("is_forced_fit must be a bool.")

    @property
    def total_value(self) -> int:
        return sum(service.price for service in self.services)

    def to_command(self, **envelope) -> Command:
        return command_for(
            SCHEDULING_APPOINTMENT_SCHEDULE_REQUEST,
            {
                "appointment_id": self.appointment_id,
                "client_id": self.client_id,
                "client_name": self.client_name,
                "date": self.date,
                "services": [service.to_dict() for service in self.services],
                "total_value": self.total_value,
                "is_forced_fit": self.is_forced_fit,
            },
            **envelope,
        )


@dataclass(frozen=True)
class AppointmentStatusChangeRequest:
    appointment_id: str
    status: str

    def __post_init__(self):
        _require_appointment_id(self.appointment_id)
        if self.status not in APPOINTMENT_STATUSES:
            raise InvalidInput(f"appointment status '{self.status}' not valid.")

    def to_command(self, **envelope) -> Command:
        return command_for(
            SCHEDULING_STATUS_CHANGE_REQUEST,
            {"appointment_id": self.appointment_id, "status": self.status},
            **envelope,
        )


@dataclass(frozen=True)
class AppointmentNotifiedRequest:
    appointment_id: str

    def __post_init__(self):
        _require_appointment_id(self.appointment_id)

    def to_command(self, **envelope) -> Command:
        return command_for(
            SCHEDULING_MARK_NOTIFIED_REQUEST,
            {"appointment_id": self.appointment_id},
            **envelope,
        )


@dataclass(frozen=True)
class AppointmentDeleteRequest:
    appointment_id: str

    def __post_init__(self):
        _require_appointment_id(self.appointment_id)

    def to_command(self, **envelope) -> Command:
        return command_for(
            SCHEDULING_APPOINTMENT_DELETE_REQUEST,
            {"appointment_id": self.appointment_id},
            **envelope,
        )


@dataclass(frozen=True)
class AppointmentSendToPosRequest:
    """Bill the appointment at the register. Emits an orders event only."""
    appointment_id: str

    def __post_init__(self):
        _require_appointment_id(self.appointment_id)

    def to_command(self, **envelope) -> Command:
        return command_for(
            SCHEDULING_SEND_TO_POS_REQUEST,
            {"appointment_id": self.appointment_id},
            **envelope,
        )
