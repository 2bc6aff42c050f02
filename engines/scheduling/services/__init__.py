"""
Comanda Scheduling Engine - Application Service
=================================================
Appointment book plus the bridge to the register.

Completing an appointment bills it: the synthetic order is created
through ``OrderService.create_order`` and the status event records
its id. Both run under the same company lock and share one
correlation id.
"""

from __future__ import annotations

import copy
from threading import Lock
from typing import Dict, List, Optional

from core.commands.base import Command
from core.context.company_context import ActorRef
from core.engines.service import EngineService, ExecutionResult
from engines.orders.services import OrderService
from engines.scheduling.bridge import (
    APPOINTMENT_TARGET,
    build_pos_order_request,
    pos_order_id,
)
from engines.scheduling.commands import (
    APPOINTMENT_COMPLETED,
    SCHEDULING_APPOINTMENT_DELETE_REQUEST,
    SCHEDULING_APPOINTMENT_SCHEDULE_REQUEST,
    SCHEDULING_MARK_NOTIFIED_REQUEST,
    SCHEDULING_SEND_TO_POS_REQUEST,
    SCHEDULING_STATUS_CHANGE_REQUEST,
    AppointmentDeleteRequest,
    AppointmentNotifiedRequest,
    AppointmentScheduleRequest,
    AppointmentSendToPosRequest,
    AppointmentStatusChangeRequest,
)
from engines.scheduling.events import (
    SCHEDULING_APPOINTMENT_DELETED_V1,
    SCHEDULING_APPOINTMENT_NOTIFIED_V1,
    SCHEDULING_APPOINTMENT_SCHEDULED_V1,
    SCHEDULING_EVENT_TYPES,
    SCHEDULING_STATUS_CHANGED_V1,
    build_appointment_deleted_payload,
    build_appointment_notified_payload,
    build_appointment_scheduled_payload,
    build_status_changed_payload,
    register_scheduling_event_types,
)
from engines.scheduling.policies import (
    appointment_billable_policy,
    appointment_must_be_new_policy,
    appointment_must_exist_policy,
    slot_conflict_policy,
    status_transition_policy,
)


def _first_start(appointment: dict) -> str:
    return min(service["start_time"] for service in appointment["services"])


class AppointmentProjectionStore:
    """
    Appointment book of every company, guarded by its own lock.

    Deleting an appointment leaves a tombstone: the record is hidden
    from reads but its id stays taken, so a later booking can never
    inherit the order ``app-ord-{id}`` billed for the deleted one.
    """

    projection_name = "scheduling_appointment_book"

    def __init__(self):
        self._appointments: Dict[str, dict] = {}
        self._lock = Lock()

    def apply(self, event_type: str, payload: dict) -> None:
        with self._lock:
            if event_type == SCHEDULING_APPOINTMENT_SCHEDULED_V1:
                self._appointments[payload["appointment_id"]] = {
                    "appointment_id": payload["appointment_id"],
                    "company_id": payload["company_id"],
                    "client_id": payload["client_id"],
                    "client_name": payload["client_name"],
                    "date": payload["date"],
                    "services": copy.deepcopy(payload["services"]),
                    "total_value": payload["total_value"],
                    "status": payload["status"],
                    "is_forced_fit": payload["is_forced_fit"],
                    "notified": payload["notified"],
                    "pos_order_id": None,
                    "deleted": False,
                }
                return

            appointment = self._appointments.get(payload["appointment_id"])
            if appointment is None:
                return

            if event_type == SCHEDULING_APPOINTMENT_DELETED_V1:
                appointment["deleted"] = True
            elif event_type == SCHEDULING_STATUS_CHANGED_V1:
                appointment["status"] = payload["status"]
                if payload["pos_order_id"] is not None:
                    appointment["pos_order_id"] = payload["pos_order_id"]
            elif event_type == SCHEDULING_APPOINTMENT_NOTIFIED_V1:
                appointment["notified"] = True

    # ── reads ─────────────────────────────────────────────────

    def get(self, appointment_id: str) -> Optional[dict]:
        """Live record, tombstones included. For policies only."""
        with self._lock:
            return self._appointments.get(appointment_id)

    def get_appointment(self, appointment_id: str) -> Optional[dict]:
        with self._lock:
            appointment = self._appointments.get(appointment_id)
            if appointment is None or appointment["deleted"]:
                return None
            return _public(appointment)

    def list_appointments(self, company_id: str, date: Optional[str] = None) -> List[dict]:
        with self._lock:
            found = [
                _public(appointment)
                for appointment in self._appointments.values()
                if appointment["company_id"] == company_id
                and not appointment["deleted"]
                and (date is None or appointment["date"] == date)
            ]
        return sorted(found, key=lambda a: (a["date"], _first_start(a)))

    def truncate(self, company_id: Optional[str] = None) -> None:
        with self._lock:
            if company_id is None:
                self._appointments.clear()
                return
            self._appointments = {
                appointment_id: appointment
                for appointment_id, appointment in self._appointments.items()
                if appointment["company_id"] != company_id
            }


def _public(appointment: dict) -> dict:
    record = copy.deepcopy(appointment)
    del record["deleted"]
    return record


class SchedulingService(EngineService):
    engine_name = "scheduling"
    command_handlers = {
        SCHEDULING_APPOINTMENT_SCHEDULE_REQUEST: "_handle_schedule",
        SCHEDULING_STATUS_CHANGE_REQUEST: "_handle_status_change",
        SCHEDULING_MARK_NOTIFIED_REQUEST: "_handle_notified",
        SCHEDULING_APPOINTMENT_DELETE_REQUEST: "_handle_delete",
        SCHEDULING_SEND_TO_POS_REQUEST: "_handle_send_to_pos",
    }

    def __init__(
        self,
        *,
        orders: OrderService,
        projection_store: Optional[AppointmentProjectionStore] = None,
        **kwargs,
    ):
        self._orders = orders
        self._projection_store = (
            projection_store if projection_store is not None else AppointmentProjectionStore()
        )
        super().__init__(**kwargs)

    def _register_event_types(self, registry) -> None:
        register_scheduling_event_types(registry)

    def _register_projections(self, projection_registry) -> None:
        projection_registry.register(
            self._projection_store,
            SCHEDULING_EVENT_TYPES,
            description="Appointment book with status, notification flag and billed order.",
        )

    @property
    def projection_store(self) -> AppointmentProjectionStore:
        return self._projection_store

    def _existing_appointment(self, command: Command) -> dict:
        self._enforce(
            command,
            appointment_must_exist_policy(command, self._projection_store.get),
        )
        return self._projection_store.get(command.payload["appointment_id"])

    def _billed_order(self, command: Command, appointment: dict) -> Optional[dict]:
        """The order already billing this appointment, if it was sent earlier."""
        order = self._orders.get_order(
            command.company_id, pos_order_id(appointment["appointment_id"]),
        )
        if order is None:
            return None
        if (order["target_type"], order["target_number"]) != (
            APPOINTMENT_TARGET, appointment["appointment_id"],
        ):
            return None
        return order

    def _bill(self, command: Command, appointment: dict) -> ExecutionResult:
        actor = ActorRef(
            actor_id=command.actor_id,
            actor_type=command.actor_type,
            name=command.actor_name,
        )
        return self._orders.create_order(
            command.company_id,
            build_pos_order_request(appointment),
            actor=actor,
            correlation_id=command.correlation_id,
        )

    # ══════════════════════════════════════════════════════════
    # COMMAND HANDLERS (company lock held)
    # ══════════════════════════════════════════════════════════

    def _handle_schedule(self, command: Command) -> ExecutionResult:
        self._enforce(
            command,
            appointment_must_be_new_policy(command, self._projection_store.get),
        )
        self._enforce(
            command,
            slot_conflict_policy(
                command,
                self._projection_store.list_appointments(
                    command.company_id, date=command.payload["date"],
                ),
            ),
        )
        return self._persist_and_project(
            command,
            SCHEDULING_APPOINTMENT_SCHEDULED_V1,
            build_appointment_scheduled_payload(command),
        )

    def _handle_status_change(self, command: Command) -> ExecutionResult:
        appointment = self._existing_appointment(command)
        self._enforce(command, status_transition_policy(command, appointment))

        order_id = None
        if command.payload["status"] == APPOINTMENT_COMPLETED:
            order_id = pos_order_id(appointment["appointment_id"])
            if self._billed_order(command, appointment) is None:
                self._bill(command, appointment)
            else:
                self._logger.info(
                    "Appointment %s already billed as %s",
                    appointment["appointment_id"], order_id,
                )

        return self._persist_and_project(
            command,
            SCHEDULING_STATUS_CHANGED_V1,
            build_status_changed_payload(
                command,
                previous_status=appointment["status"],
                pos_order_id=order_id,
            ),
        )

    def _handle_notified(self, command: Command) -> Optional[ExecutionResult]:
        appointment = self._existing_appointment(command)
        if appointment["notified"]:
            return None
        return self._persist_and_project(
            command,
            SCHEDULING_APPOINTMENT_NOTIFIED_V1,
            build_appointment_notified_payload(command),
        )

    def _handle_delete(self, command: Command) -> ExecutionResult:
        self._existing_appointment(command)
        return self._persist_and_project(
            command,
            SCHEDULING_APPOINTMENT_DELETED_V1,
            build_appointment_deleted_payload(command),
        )

    def _handle_send_to_pos(self, command: Command) -> ExecutionResult:
        appointment = self._existing_appointment(command)
        self._enforce(command, appointment_billable_policy(command, appointment))
        return self._bill(command, appointment)

    # ══════════════════════════════════════════════════════════
    # OPERATIONS
    # ══════════════════════════════════════════════════════════

    def schedule_appointment(
        self,
        company_id: str,
        request: AppointmentScheduleRequest,
        *,
        actor: Optional[ActorRef] = None,
    ) -> ExecutionResult:
        return self.execute(self.issue(request, company_id, actor))

    def change_appointment_status(
        self,
        company_id: str,
        appointment_id: str,
        status: str,
        *,
        actor: Optional[ActorRef] = None,
    ) -> ExecutionResult:
        """
        Move an appointment along its lifecycle.

        Completing it bills it first. If the bill cannot be created
        the status does not change.
        """
        request = AppointmentStatusChangeRequest(appointment_id=appointment_id, status=status)
        return self.execute(self.issue(request, company_id, actor))

    def send_appointment_to_pos(
        self,
        company_id: str,
        appointment_id: str,
        *,
        actor: Optional[ActorRef] = None,
    ) -> ExecutionResult:
        """
        Create the order ``app-ord-{appointment_id}`` for an appointment
        that is in progress. Completion then reuses that order.

        Scheduled or cancelled appointments raise InvalidInput. A second
        call, or a call after completion, raises DuplicateOrder.
        """
        request = AppointmentSendToPosRequest(appointment_id=appointment_id)
        return self.execute(self.issue(request, company_id, actor))

    def mark_appointment_notified(
        self, company_id: str, appointment_id: str, *, actor: Optional[ActorRef] = None,
    ) -> Optional[ExecutionResult]:
        request = AppointmentNotifiedRequest(appointment_id=appointment_id)
        return self.execute(self.issue(request, company_id, actor))

    def delete_appointment(
        self, company_id: str, appointment_id: str, *, actor: Optional[ActorRef] = None,
    ) -> ExecutionResult:
        """Hide the appointment. Its id stays taken and any order it billed stays."""
        request = AppointmentDeleteRequest(appointment_id=appointment_id)
        return self.execute(self.issue(request, company_id, actor))

    # ══════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════

    def get_appointment(self, company_id: str, appointment_id: str) -> Optional[dict]:
        with self.reading(company_id):
            appointment = self._projection_store.get_appointment(appointment_id)
        if appointment is None or appointment["company_id"] != company_id:
            return None
        return appointment

    def list_appointments(self, company_id: str, date: Optional[str] = None) -> List[dict]:
        with self.reading(company_id):
            return self._projection_store.list_appointments(company_id, date=date)
