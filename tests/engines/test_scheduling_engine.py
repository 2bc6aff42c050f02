"""
Comanda — Scheduling Engine Tests
===================================
Time slots, the appointment lifecycle and the bridge that bills an
appointment at the register.
"""

import uuid
from datetime import datetime, timezone

import pytest

NOW = datetime(2026, 2, 19, 14, 0, tzinfo=timezone.utc)


def make_engines():
    from adapters.ledger.wiring import build_engines
    from core.config.settings import LedgerSettings
    from core.time.clock import FixedClock
    return build_engines(clock=FixedClock(NOW), settings=LedgerSettings())


def service(service_id="s1", start="10:00", duration=30, price=4000, employee="e1", **overrides):
    from engines.scheduling.commands import ScheduledServiceLine
    fields = dict(
        service_id=service_id,
        service_name=f"Service {service_id}",
        employee_id=employee,
        employee_name=f"Employee {employee}",
        start_time=start,
        duration=duration,
        price=price,
    )
    fields.update(overrides)
    return ScheduledServiceLine(**fields)


def appointment(appointment_id="a1", services=None, date="2026-02-20", **overrides):
    from engines.scheduling.commands import AppointmentScheduleRequest
    return AppointmentScheduleRequest(
        appointment_id=appointment_id,
        client_id=overrides.pop("client_id", "cl-1"),
        client_name=overrides.pop("client_name", "Carla"),
        date=date,
        services=tuple(services or (service(),)),
        **overrides,
    )


def two_service_appointment(appointment_id="a1"):
    return appointment(appointment_id, services=(
        service("s1", "09:00", 45, 7000, "e1"),
        service("s2", "09:45", 30, 5000, "e2"),
    ))


# ══════════════════════════════════════════════════════════════
# TIME SLOTS
# ══════════════════════════════════════════════════════════════

class TestTimeSlots:

    def test_end_time(self):
        from engines.scheduling.timeslots import compute_end_time
        assert compute_end_time("09:30", 45) == "10:15"
        assert compute_end_time("23:30", 60) == "00:30"

    def test_bad_clock_value(self):
        from engines.scheduling.timeslots import parse_hhmm
        with pytest.raises(ValueError):
            parse_hhmm("25:00")
        with pytest.raises(ValueError):
            parse_hhmm("9h30")

    def test_windows_are_half_open(self):
        from engines.scheduling.timeslots import slot_window, windows_overlap
        assert not windows_overlap(slot_window("09:00", 30), slot_window("09:30", 30))
        assert windows_overlap(slot_window("09:00", 31), slot_window("09:30", 30))

    def test_service_line_end_time(self):
        assert service(start="23:45", duration=30).to_dict()["end_time"] == "00:15"

    def test_invalid_service_line(self):
        from core.commands.errors import InvalidInput
        with pytest.raises(InvalidInput):
            service(start="7pm")
        with pytest.raises(InvalidInput):
            service(duration=0)

    def test_invalid_date(self):
        from core.commands.errors import InvalidInput
        with pytest.raises(InvalidInput):
            appointment(date="20/02/2026")

    def test_total_value(self):
        assert two_service_appointment().total_value == 12000


# ══════════════════════════════════════════════════════════════
# BOOKING
# ══════════════════════════════════════════════════════════════

class TestScheduleAppointment:

    def test_booking_recorded(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", two_service_appointment())

        booked = engines.scheduling.get_appointment("c1", "a1")
        assert booked["status"] == "scheduled"
        assert booked["total_value"] == 12000
        assert booked["notified"] is False
        assert booked["pos_order_id"] is None
        assert [s["end_time"] for s in booked["services"]] == ["09:45", "10:15"]

    def test_duplicate_id_rejected(self):
        from core.commands.errors import InvalidInput
        from core.commands.rejection import ReasonCode
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment("a1"))
        with pytest.raises(InvalidInput) as exc:
            engines.scheduling.schedule_appointment("c1", appointment("a1", date="2026-02-21"))
        assert exc.value.code == ReasonCode.DUPLICATE_APPOINTMENT

    def test_employee_double_booking_rejected(self):
        from core.commands.errors import InvalidInput
        from core.commands.rejection import ReasonCode
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment("a1"))
        with pytest.raises(InvalidInput) as exc:
            engines.scheduling.schedule_appointment(
                "c1", appointment("a2", services=(service(start="10:15"),)),
            )
        assert exc.value.code == ReasonCode.SLOT_CONFLICT
        assert engines.scheduling.get_appointment("c1", "a2") is None

    def test_overlap_within_one_request_rejected(self):
        from core.commands.errors import InvalidInput
        engines = make_engines()
        with pytest.raises(InvalidInput):
            engines.scheduling.schedule_appointment("c1", appointment("a1", services=(
                service("s1", "10:00", 60),
                service("s2", "10:30", 30),
            )))

    def test_back_to_back_and_other_employee_allowed(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment("a1"))
        engines.scheduling.schedule_appointment(
            "c1", appointment("a2", services=(service(start="10:30"),)),
        )
        engines.scheduling.schedule_appointment(
            "c1", appointment("a3", services=(service(start="10:00", employee="e2"),)),
        )
        engines.scheduling.schedule_appointment(
            "c1", appointment("a4", date="2026-02-21"),
        )
        assert len(engines.scheduling.list_appointments("c1")) == 4

    def test_forced_fit_skips_conflict_check(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment("a1"))
        engines.scheduling.schedule_appointment(
            "c1", appointment("a2", services=(service(start="10:10"),), is_forced_fit=True),
        )
        assert engines.scheduling.get_appointment("c1", "a2")["is_forced_fit"] is True

    def test_cancelled_slot_can_be_rebooked(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment("a1"))
        engines.scheduling.change_appointment_status("c1", "a1", "cancelled")
        engines.scheduling.schedule_appointment("c1", appointment("a2"))
        assert engines.scheduling.get_appointment("c1", "a2")["status"] == "scheduled"

    def test_other_company_calendar_is_separate(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment("a1"))
        engines.scheduling.schedule_appointment("c2", appointment("b1"))
        assert [a["appointment_id"] for a in engines.scheduling.list_appointments("c2")] == ["b1"]

    def test_list_sorted_and_filtered_by_date(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment(
            "c1", appointment("late", services=(service(start="16:00"),)),
        )
        engines.scheduling.schedule_appointment(
            "c1", appointment("early", services=(service(start="08:00"),)),
        )
        engines.scheduling.schedule_appointment("c1", appointment("tomorrow", date="2026-02-21"))

        assert [a["appointment_id"] for a in engines.scheduling.list_appointments("c1")] == [
            "early", "late", "tomorrow",
        ]
        assert [
            a["appointment_id"]
            for a in engines.scheduling.list_appointments("c1", date="2026-02-21")
        ] == ["tomorrow"]


# ══════════════════════════════════════════════════════════════
# LIFECYCLE
# ══════════════════════════════════════════════════════════════

class TestAppointmentLifecycle:

    def test_transition_table(self):
        from engines.scheduling.policies import ALLOWED_TRANSITIONS
        assert ALLOWED_TRANSITIONS["scheduled"] == {"inprogress", "completed", "cancelled"}
        assert ALLOWED_TRANSITIONS["inprogress"] == {"completed", "cancelled"}
        assert ALLOWED_TRANSITIONS["completed"] == set()
        assert ALLOWED_TRANSITIONS["cancelled"] == set()

    def test_start_then_complete(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        result = engines.scheduling.change_appointment_status("c1", "a1", "inprogress")
        assert result.payload["previous_status"] == "scheduled"
        assert result.payload["pos_order_id"] is None
        engines.scheduling.change_appointment_status("c1", "a1", "completed")
        assert engines.scheduling.get_appointment("c1", "a1")["status"] == "completed"

    def test_terminal_states_are_final(self):
        from core.commands.errors import InvalidInput
        from core.commands.rejection import ReasonCode
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        engines.scheduling.change_appointment_status("c1", "a1", "cancelled")
        with pytest.raises(InvalidInput) as exc:
            engines.scheduling.change_appointment_status("c1", "a1", "inprogress")
        assert exc.value.code == ReasonCode.INVALID_STATUS_TRANSITION

    def test_cannot_go_back_to_scheduled(self):
        from core.commands.errors import InvalidInput
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        engines.scheduling.change_appointment_status("c1", "a1", "inprogress")
        with pytest.raises(InvalidInput):
            engines.scheduling.change_appointment_status("c1", "a1", "scheduled")

    def test_unknown_status_rejected(self):
        from core.commands.errors import InvalidInput
        engines = make_engines()
        with pytest.raises(InvalidInput):
            engines.scheduling.change_appointment_status("c1", "a1", "done")

    def test_unknown_appointment_not_found(self):
        from core.commands.errors import NotFound
        engines = make_engines()
        with pytest.raises(NotFound):
            engines.scheduling.change_appointment_status("c1", "ghost", "completed")
        with pytest.raises(NotFound):
            engines.scheduling.delete_appointment("c1", "ghost")

    def test_other_company_appointment_not_found(self):
        from core.commands.errors import NotFound
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        with pytest.raises(NotFound):
            engines.scheduling.change_appointment_status("c2", "a1", "cancelled")
        with pytest.raises(NotFound):
            engines.scheduling.send_appointment_to_pos("c2", "a1")
        assert engines.scheduling.get_appointment("c2", "a1") is None
        assert engines.scheduling.get_appointment("c1", "a1")["status"] == "scheduled"

    def test_mark_notified_once(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        assert engines.scheduling.mark_appointment_notified("c1", "a1") is not None
        assert engines.scheduling.mark_appointment_notified("c1", "a1") is None
        assert engines.scheduling.get_appointment("c1", "a1")["notified"] is True

    def test_delete_removes_from_book(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        engines.scheduling.delete_appointment("c1", "a1")
        assert engines.scheduling.get_appointment("c1", "a1") is None
        assert engines.scheduling.list_appointments("c1") == []


# ══════════════════════════════════════════════════════════════
# REGISTER BRIDGE
# ══════════════════════════════════════════════════════════════

class TestAppointmentBilling:

    def test_completed_appointment_reaches_the_tabs(self):
        """Two services totalling 120.00 land on appointment/a1, ready to pay."""
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", two_service_appointment())

        result = engines.scheduling.change_appointment_status("c1", "a1", "completed")

        assert result.payload["pos_order_id"] == "app-ord-a1"
        order = engines.orders.get_order("c1", "app-ord-a1")
        assert order["status"] == "completed"
        assert order["finalized_at"] == "2026-02-19T14:00:00+00:00"
        assert order["target_type"] == "appointment"
        assert order["target_number"] == "a1"
        assert order["source"] == "internal"
        assert order["user_id"] == "cl-1"
        assert order["customer_name"] == "Carla"
        assert [(i["name"], i["quantity"], i["status"]) for i in order["items"]] == [
            ("Service s1", 1, "delivered"),
            ("Service s2", 1, "delivered"),
        ]
        assert order["items"][1]["assigned_employee"] == {"id": "e2", "name": "Employee e2"}

        [tab] = engines.tabs.get_all_tabs("c1")
        assert tab.to_dict() == {
            "type": "appointment", "number": "a1", "status": "ready_to_pay", "total": 12000,
        }
        assert engines.scheduling.get_appointment("c1", "a1")["pos_order_id"] == "app-ord-a1"

    def test_send_to_pos_creates_bridge_order(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", two_service_appointment())
        engines.scheduling.change_appointment_status("c1", "a1", "inprogress")

        result = engines.scheduling.send_appointment_to_pos("c1", "a1")

        assert result.event_type == "orders.order.created.v1"
        assert result.payload["order_id"] == "app-ord-a1"
        assert engines.tabs.get_all_tabs("c1")[0].total == 12000
        assert engines.scheduling.get_appointment("c1", "a1")["status"] == "inprogress"

    def test_scheduled_appointment_cannot_be_sent(self):
        from core.commands.errors import InvalidInput
        from core.commands.rejection import ReasonCode
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", two_service_appointment())

        with pytest.raises(InvalidInput) as exc:
            engines.scheduling.send_appointment_to_pos("c1", "a1")
        assert exc.value.code == ReasonCode.APPOINTMENT_NOT_STARTED

        engines.scheduling.change_appointment_status("c1", "a1", "cancelled")
        assert engines.orders.get_orders("c1") == []
        assert engines.tabs.get_all_tabs("c1") == []

    def test_completion_refuses_unrelated_order_with_same_id(self):
        from core.commands.errors import DuplicateOrder
        from engines.orders.commands import OrderCreateRequest, OrderItemLine
        engines = make_engines()
        engines.orders.create_order("c1", OrderCreateRequest(
            order_id="app-ord-a1",
            target_type="table",
            target_number="5",
            items=(OrderItemLine(product_id="p1", name="Coffee", unit_price=500, quantity=1),),
        ))
        engines.scheduling.schedule_appointment("c1", appointment())

        with pytest.raises(DuplicateOrder):
            engines.scheduling.change_appointment_status("c1", "a1", "completed")
        booked = engines.scheduling.get_appointment("c1", "a1")
        assert (booked["status"], booked["pos_order_id"]) == ("scheduled", None)

    def test_second_send_is_duplicate(self):
        from core.commands.errors import DuplicateOrder
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        engines.scheduling.change_appointment_status("c1", "a1", "inprogress")
        engines.scheduling.send_appointment_to_pos("c1", "a1")
        with pytest.raises(DuplicateOrder):
            engines.scheduling.send_appointment_to_pos("c1", "a1")
        assert len(engines.orders.get_orders("c1")) == 1

    def test_completion_after_send_reuses_order(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        engines.scheduling.change_appointment_status("c1", "a1", "inprogress")
        engines.scheduling.send_appointment_to_pos("c1", "a1")

        result = engines.scheduling.change_appointment_status("c1", "a1", "completed")

        assert result.payload["pos_order_id"] == "app-ord-a1"
        assert len(engines.orders.get_orders("c1")) == 1
        assert engines.tabs.get_all_tabs("c1")[0].total == 4000

    def test_send_after_completion_is_duplicate(self):
        from core.commands.errors import DuplicateOrder
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        engines.scheduling.change_appointment_status("c1", "a1", "completed")
        with pytest.raises(DuplicateOrder):
            engines.scheduling.send_appointment_to_pos("c1", "a1")

    def test_cancelled_appointment_cannot_be_sent(self):
        from core.commands.errors import InvalidInput
        from core.commands.rejection import ReasonCode
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        engines.scheduling.change_appointment_status("c1", "a1", "cancelled")
        with pytest.raises(InvalidInput) as exc:
            engines.scheduling.send_appointment_to_pos("c1", "a1")
        assert exc.value.code == ReasonCode.APPOINTMENT_CANCELLED
        assert engines.orders.get_orders("c1") == []

    def test_billing_shares_correlation(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        engines.scheduling.change_appointment_status("c1", "a1", "completed")

        created, changed = [
            e for e in engines.event_store.load_events("c1")
            if e["event_type"] in (
                "orders.order.created.v1", "scheduling.appointment.status_changed.v1",
            )
        ]
        assert created["event_type"] == "orders.order.created.v1"
        assert created["correlation_id"] == changed["correlation_id"]
        assert created["source_engine"] == "orders"
        assert changed["source_engine"] == "scheduling"

    def test_billing_keeps_actor(self):
        from core.context import ActorRef
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment())
        cashier = ActorRef("cashier-1", name="Joana")
        engines.scheduling.change_appointment_status("c1", "a1", "inprogress")
        engines.scheduling.send_appointment_to_pos("c1", "a1", actor=cashier)

        [created] = [
            e for e in engines.event_store.load_events("c1")
            if e["event_type"] == "orders.order.created.v1"
        ]
        assert created["actor_id"] == "cashier-1"
        assert created["payload"]["actor_name"] == "Joana"

    def test_delete_and_cancel_leave_order_alone(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment("a1"))
        engines.scheduling.schedule_appointment(
            "c1", appointment("a2", services=(service(start="15:00"),)),
        )
        engines.scheduling.change_appointment_status("c1", "a1", "inprogress")
        engines.scheduling.change_appointment_status("c1", "a2", "inprogress")
        engines.scheduling.send_appointment_to_pos("c1", "a1")
        engines.scheduling.send_appointment_to_pos("c1", "a2")

        engines.scheduling.delete_appointment("c1", "a1")
        engines.scheduling.change_appointment_status("c1", "a2", "cancelled")

        assert {o["order_id"] for o in engines.orders.get_orders("c1")} == {
            "app-ord-a1", "app-ord-a2",
        }

    def test_bridge_request_is_deterministic(self):
        from engines.scheduling.bridge import build_pos_order_request
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", two_service_appointment())
        booked = engines.scheduling.get_appointment("c1", "a1")
        assert build_pos_order_request(booked) == build_pos_order_request(booked)
        assert build_pos_order_request(booked).order_id == "app-ord-a1"


def test_bridged_order_survives_rebuild():
    engines = make_engines()
    engines.scheduling.schedule_appointment("c1", two_service_appointment())
    engines.scheduling.change_appointment_status("c1", "a1", "completed")
    before = engines.orders.get_order("c1", "app-ord-a1")

    engines.rebuild("c1")

    assert engines.orders.get_order("c1", "app-ord-a1") == before
    assert engines.scheduling.get_appointment("c1", "a1")["pos_order_id"] == "app-ord-a1"


def test_correlation_id_is_uuid():
    engines = make_engines()
    engines.scheduling.schedule_appointment("c1", appointment())
    [event] = engines.event_store.load_events("c1")
    assert isinstance(event["correlation_id"], uuid.UUID)


# ══════════════════════════════════════════════════════════════
# DELETED APPOINTMENTS
# ══════════════════════════════════════════════════════════════

class TestDeletedAppointmentIds:

    def _billed_then_deleted(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", two_service_appointment())
        engines.scheduling.change_appointment_status("c1", "a1", "completed")
        engines.scheduling.delete_appointment("c1", "a1")
        return engines

    def test_id_stays_reserved_after_delete(self):
        from core.commands.errors import InvalidInput
        from core.commands.rejection import ReasonCode
        engines = self._billed_then_deleted()

        with pytest.raises(InvalidInput) as exc:
            engines.scheduling.schedule_appointment("c1", appointment("a1", services=(
                service("s9", "11:00", 60, 9900),
            )))
        assert exc.value.code == ReasonCode.DUPLICATE_APPOINTMENT

        [order] = engines.orders.get_orders("c1")
        assert [i["unit_price"] for i in order["items"]] == [7000, 5000]
        assert engines.tabs.get_all_tabs("c1")[0].total == 12000

    def test_id_reserved_for_other_companies_too(self):
        from core.commands.errors import InvalidInput
        engines = self._billed_then_deleted()
        with pytest.raises(InvalidInput):
            engines.scheduling.schedule_appointment("c2", appointment("a1"))
        assert engines.orders.get_orders("c2") == []

    def test_deleted_appointment_is_not_found(self):
        from core.commands.errors import NotFound
        engines = self._billed_then_deleted()
        with pytest.raises(NotFound):
            engines.scheduling.mark_appointment_notified("c1", "a1")
        with pytest.raises(NotFound):
            engines.scheduling.delete_appointment("c1", "a1")
        assert engines.scheduling.get_appointment("c1", "a1") is None
        assert engines.scheduling.list_appointments("c1") == []

    def test_deleted_slot_can_be_rebooked(self):
        engines = make_engines()
        engines.scheduling.schedule_appointment("c1", appointment("a1"))
        engines.scheduling.delete_appointment("c1", "a1")
        engines.scheduling.schedule_appointment("c1", appointment("a2"))
        assert engines.scheduling.get_appointment("c1", "a2")["status"] == "scheduled"

    def test_reservation_survives_rebuild(self):
        from core.commands.errors import InvalidInput
        engines = self._billed_then_deleted()
        engines.rebuild("c1")
        with pytest.raises(InvalidInput):
            engines.scheduling.schedule_appointment("c1", appointment("a1"))
