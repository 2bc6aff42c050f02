"""
Comanda Scheduling Engine - Policies
======================================
``appointment_lookup(appointment_id)`` returns the projection record
or None. Appointments of another company, and deleted ones, are
reported as not found. A deleted appointment keeps its id reserved.
"""

from __future__ import annotations

from typing import Iterable, Optional

from core.commands.base import Command
from core.commands.rejection import ReasonCode, RejectionReason
from engines.scheduling.commands import (
    APPOINTMENT_CANCELLED,
    APPOINTMENT_COMPLETED,
    APPOINTMENT_IN_PROGRESS,
    APPOINTMENT_SCHEDULED,
)
from engines.scheduling.timeslots import slot_window, windows_overlap


ALLOWED_TRANSITIONS = {
    APPOINTMENT_SCHEDULED: frozenset({
        APPOINTMENT_IN_PROGRESS, APPOINTMENT_COMPLETED, APPOINTMENT_CANCELLED,
    }),
    APPOINTMENT_IN_PROGRESS: frozenset({APPOINTMENT_COMPLETED, APPOINTMENT_CANCELLED}),
    APPOINTMENT_COMPLETED: frozenset(),
    APPOINTMENT_CANCELLED: frozenset(),
}

BILLABLE_STATUSES = frozenset({APPOINTMENT_IN_PROGRESS, APPOINTMENT_COMPLETED})


def appointment_must_exist_policy(
    command: Command,
    appointment_lookup,
) -> Optional[RejectionReason]:
    appointment_id = command.payload["appointment_id"]
    appointment = appointment_lookup(appointment_id)
    if (
        appointment is None
        or appointment["deleted"]
        or appointment["company_id"] != command.company_id
    ):
        return RejectionReason(
            code=ReasonCode.APPOINTMENT_NOT_FOUND,
            message=(
                f"Appointment {appointment_id} not found for company "
                f"{command.company_id}."
            ),
            policy_name="appointment_must_exist_policy",
        )
    return None


def appointment_must_be_new_policy(
    command: Command,
    appointment_lookup,
) -> Optional[RejectionReason]:
    appointment_id = command.payload["appointment_id"]
    existing = appointment_lookup(appointment_id)
    if existing is None:
        return None
    if existing["deleted"]:
        message = f"Appointment id {appointment_id} belonged to a deleted appointment."
    else:
        message = f"Appointment {appointment_id} already exists."
    return RejectionReason(
        code=ReasonCode.DUPLICATE_APPOINTMENT,
        message=message,
        policy_name="appointment_must_be_new_policy",
    )


def status_transition_policy(
    command: Command,
    appointment: dict,
) -> Optional[RejectionReason]:
    current = appointment["status"]
    target = command.payload["status"]
    if target not in ALLOWED_TRANSITIONS[current]:
        return RejectionReason(
            code=ReasonCode.INVALID_STATUS_TRANSITION,
            message=(
                f"Appointment {appointment['appointment_id']} cannot move "
                f"from '{current}' to '{target}'."
            ),
            policy_name="status_transition_policy",
        )
    return None


def appointment_billable_policy(
    command: Command,
    appointment: dict,
) -> Optional[RejectionReason]:
    """Only a service under way or finished can be billed."""
    status = appointment["status"]
    if status in BILLABLE_STATUSES:
        return None
    if status == APPOINTMENT_CANCELLED:
        return RejectionReason(
            code=ReasonCode.APPOINTMENT_CANCELLED,
            message=f"Appointment {appointment['appointment_id']} is cancelled.",
            policy_name="appointment_billable_policy",
        )
    return RejectionReason(
        code=ReasonCode.APPOINTMENT_NOT_STARTED,
        message=(
            f"Appointment {appointment['appointment_id']} is {status}; "
            "start or complete it before billing."
        ),
        policy_name="appointment_billable_policy",
    )


def slot_conflict_policy(
    command: Command,
    same_day_appointments: Iterable[dict],
) -> Optional[RejectionReason]:
    """
    One employee serves one client at a time. Checked against the
    other live appointments of the date and within the request
    itself. Forced fits skip the check.
    """
    data = command.payload
    if data["is_forced_fit"]:
        return None

    booked = []
    for appointment in same_day_appointments:
        if appointment["status"] == APPOINTMENT_CANCELLED:
            continue
        for service in appointment["services"]:
            booked.append((appointment["appointment_id"], service))

    for service in data["services"]:
        window = slot_window(service["start_time"], service["duration"])
        for owner, other in booked:
            if other["employee_id"] != service["employee_id"]:
                continue
            if windows_overlap(window, slot_window(other["start_time"], other["duration"])):
                return RejectionReason(
                    code=ReasonCode.SLOT_CONFLICT,
                    message=(
                        f"{service['employee_name']} is already booked "
                        f"{other['start_time']}-{other['end_time']} on "
                        f"{data['date']} (appointment {owner})."
                    ),
                    policy_name="slot_conflict_policy",
                )
        booked.append((data["appointment_id"], service))
    return None
