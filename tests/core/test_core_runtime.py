"""
Comanda — Runtime Plumbing Tests
==================================
Ledger settings, clocks and per-company locks.
"""

import threading
from datetime import datetime, timezone

import pytest

NOW = datetime(2026, 2, 19, 14, 0, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════
# SETTINGS
# ══════════════════════════════════════════════════════════════

class TestLedgerSettings:

    def test_defaults(self):
        from core.config import LedgerSettings
        settings = LedgerSettings()
        assert settings.allow_negative_stock is True
        assert settings.order_created_note == "Order created"

    def test_from_mapping(self):
        from core.config import LedgerSettings
        settings = LedgerSettings.from_mapping({
            "ALLOW_NEGATIVE_STOCK": False,
            "ORDER_CREATED_NOTE": "Pedido criado",
        })
        assert settings.allow_negative_stock is False
        assert settings.order_created_note == "Pedido criado"
        assert settings.order_received_note == LedgerSettings().order_received_note

    def test_unknown_key_rejected(self):
        from core.config import LedgerSettings
        with pytest.raises(ValueError, match="Unknown COMANDA settings"):
            LedgerSettings.from_mapping({"ALLOW_NEGATIVE": False})

    def test_invalid_values_rejected(self):
        from core.config import LedgerSettings
        with pytest.raises(ValueError):
            LedgerSettings(allow_negative_stock="yes")
        with pytest.raises(ValueError):
            LedgerSettings(order_created_note="")

    def test_load_settings_reads_django_setting(self, settings):
        from core.config import load_settings
        settings.COMANDA = {"ALLOW_NEGATIVE_STOCK": False}
        assert load_settings().allow_negative_stock is False

    def test_load_settings_without_block(self, settings):
        from core.config import LedgerSettings, load_settings
        del settings.COMANDA
        assert load_settings() == LedgerSettings()


# ══════════════════════════════════════════════════════════════
# CLOCK
# ══════════════════════════════════════════════════════════════

class TestClock:

    def test_fixed_clock_advances(self):
        from core.time import FixedClock
        clock = FixedClock(NOW)
        clock.advance(minutes=5)
        assert clock.now_utc() == datetime(2026, 2, 19, 14, 5, tzinfo=timezone.utc)

    def test_fixed_clock_requires_aware_datetime(self):
        from core.time import FixedClock
        with pytest.raises(ValueError):
            FixedClock(datetime(2026, 2, 19, 14, 0))

    def test_system_clock_is_utc(self):
        from core.time import SystemClock
        assert SystemClock().now_utc().tzinfo is timezone.utc

    def test_to_iso_and_label(self):
        from core.time import clock_label, to_iso
        stamp = to_iso(NOW)
        assert stamp == "2026-02-19T14:00:00+00:00"
        assert clock_label(stamp) == "14:00"

    def test_to_iso_refuses_naive(self):
        from core.time import to_iso
        with pytest.raises(ValueError):
            to_iso(datetime(2026, 2, 19, 14, 0))


# ══════════════════════════════════════════════════════════════
# COMPANY LOCKS
# ══════════════════════════════════════════════════════════════

class TestCompanyLocks:

    def test_one_lock_per_company(self):
        from core.context import CompanyLockRegistry
        locks = CompanyLockRegistry()
        assert locks.lock_for("c1") is locks.lock_for("c1")
        assert locks.lock_for("c1") is not locks.lock_for("c2")
        assert len(locks) == 2

    def test_hold_is_reentrant(self):
        from core.context import CompanyLockRegistry
        locks = CompanyLockRegistry()
        with locks.hold("c1"):
            with locks.hold(None, "c1"):
                pass

    def test_hold_blocks_other_threads(self):
        from core.context import CompanyLockRegistry
        locks = CompanyLockRegistry()
        acquired = []

        def contender():
            acquired.append(locks.lock_for("c1").acquire(timeout=0.05))

        with locks.hold("c1"):
            thread = threading.Thread(target=contender)
            thread.start()
            thread.join()

        assert acquired == [False]

    def test_other_company_not_blocked(self):
        from core.context import CompanyLockRegistry
        locks = CompanyLockRegistry()
        acquired = []

        def contender():
            lock = locks.lock_for("c2")
            acquired.append(lock.acquire(timeout=0.05))
            lock.release()

        with locks.hold("c1"):
            thread = threading.Thread(target=contender)
            thread.start()
            thread.join()

        assert acquired == [True]


class TestActorRef:

    def test_to_dict(self):
        from core.context import ActorRef
        assert ActorRef("e1", name="Rita").to_dict() == {"id": "e1", "name": "Rita"}

    def test_invalid_actor_type(self):
        from core.context import ActorRef
        with pytest.raises(ValueError):
            ActorRef("e1", actor_type="ROBOT")
