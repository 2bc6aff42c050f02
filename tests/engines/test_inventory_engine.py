"""
Comanda — Inventory Engine Tests
==================================
Stock ledger: every stock change appends exactly one movement, and
a product's stock always equals the signed sum of its movements.
"""

import uuid
from datetime import datetime, timezone

import pytest

NOW = datetime(2026, 2, 19, 14, 0, tzinfo=timezone.utc)


def make_engines(**settings):
    from adapters.ledger.wiring import build_engines
    from core.config.settings import LedgerSettings
    from core.time.clock import FixedClock
    clock = FixedClock(NOW)
    return build_engines(clock=clock, settings=LedgerSettings(**settings)), clock


def make_command_args():
    return dict(
        company_id="c1",
        actor_type="HUMAN",
        actor_id="manager-1",
        command_id=uuid.uuid4(),
        correlation_id=uuid.uuid4(),
        issued_at=NOW,
    )


# ══════════════════════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════════════════════

class TestInventoryCommands:

    def test_register_defaults_product_stock_to_zero(self):
        from engines.inventory.commands import ProductRegisterRequest
        cmd = ProductRegisterRequest(product_id="p1", name="Coffee").to_command(**make_command_args())
        assert cmd.payload["stock"] == 0

    def test_register_service_keeps_stock_undefined(self):
        from engines.inventory.commands import ProductRegisterRequest
        cmd = ProductRegisterRequest(
            product_id="s1", name="Haircut", kind="service",
        ).to_command(**make_command_args())
        assert cmd.payload["stock"] is None

    def test_zero_delta_rejected(self):
        from core.commands.errors import InvalidInput
        from engines.inventory.commands import StockAdjustRequest
        with pytest.raises(InvalidInput):
            StockAdjustRequest(product_id="p1", delta=0, reason="sale")

    def test_blank_reason_rejected(self):
        from core.commands.errors import InvalidInput
        from engines.inventory.commands import StockAdjustRequest
        with pytest.raises(InvalidInput):
            StockAdjustRequest(product_id="p1", delta=3, reason="   ")

    def test_stock_not_editable_through_update(self):
        from core.commands.errors import InvalidInput
        from core.commands.rejection import ReasonCode
        from engines.inventory.commands import ProductUpdateRequest
        with pytest.raises(InvalidInput) as exc:
            ProductUpdateRequest(product_id="p1", changes={"stock": 50})
        assert exc.value.code == ReasonCode.STOCK_NOT_EDITABLE


# ══════════════════════════════════════════════════════════════
# STOCK LEDGER
# ══════════════════════════════════════════════════════════════

class TestStockLedger:

    def test_outbound_adjustment_records_movement(self):
        """Product at 10, adjust by -3 "sale": stock 7, one out movement."""
        engines, _ = make_engines()
        inventory = engines.inventory
        inventory.register_product("c1", "p1", "Coffee", price=500, stock=10)

        inventory.adjust_stock("c1", "p1", -3, "sale")

        assert inventory.get_product("c1", "p1")["stock"] == 7
        latest = inventory.get_stock_movements("c1", "p1")[0]
        assert latest["type"] == "out"
        assert latest["quantity"] == 3
        assert latest["reason"] == "sale"
        assert latest["product_name"] == "Coffee"
        assert latest["occurred_at"] == "2026-02-19T14:00:00+00:00"

    def test_opening_stock_is_a_movement(self):
        engines, _ = make_engines()
        inventory = engines.inventory
        inventory.register_product("c1", "p1", "Coffee", stock=10)

        [opening] = inventory.get_stock_movements("c1", "p1")
        assert opening["type"] == "in"
        assert opening["quantity"] == 10
        assert opening["reason"] == "initial stock"

    def test_zero_opening_stock_has_no_movement(self):
        engines, _ = make_engines()
        engines.inventory.register_product("c1", "p1", "Coffee")
        assert engines.inventory.get_stock_movements("c1", "p1") == []

    def test_ledger_sum_invariant(self):
        engines, clock = make_engines()
        inventory = engines.inventory
        inventory.register_product("c1", "p1", "Coffee", stock=12)
        for delta, reason in [(-3, "sale"), (20, "restock"), (-1, "loss"), (-40, "sale")]:
            clock.advance(minutes=1)
            inventory.adjust_stock("c1", "p1", delta, reason)

        product = inventory.get_product("c1", "p1")
        assert product["stock"] == 12 - 3 + 20 - 1 - 40
        assert inventory.ledger_balance("c1", "p1") == product["stock"]

    def test_movements_listed_newest_first(self):
        engines, clock = make_engines()
        inventory = engines.inventory
        inventory.register_product("c1", "p1", "Coffee", stock=5)
        clock.advance(minutes=1)
        inventory.adjust_stock("c1", "p1", 2, "restock")
        clock.advance(minutes=1)
        inventory.adjust_stock("c1", "p1", -1, "sale")

        reasons = [m["reason"] for m in inventory.get_stock_movements("c1", "p1")]
        assert reasons == ["sale", "restock", "initial stock"]

    def test_movement_ids_are_unique(self):
        engines, _ = make_engines()
        inventory = engines.inventory
        inventory.register_product("c1", "p1", "Coffee", stock=5)
        inventory.adjust_stock("c1", "p1", -1, "sale")
        inventory.adjust_stock("c1", "p1", -1, "sale")
        ids = [m["movement_id"] for m in inventory.get_stock_movements("c1")]
        assert len(ids) == len(set(ids)) == 3

    def test_rename_keeps_movement_snapshot(self):
        engines, _ = make_engines()
        inventory = engines.inventory
        inventory.register_product("c1", "p1", "Coffee", stock=5)
        inventory.adjust_stock("c1", "p1", -1, "sale")

        inventory.update_product("c1", "p1", name="Espresso", price=650)

        assert inventory.get_product("c1", "p1")["name"] == "Espresso"
        assert inventory.get_product("c1", "p1")["price"] == 650
        assert {m["product_name"] for m in inventory.get_stock_movements("c1", "p1")} == {"Coffee"}

    def test_adjusted_payload_carries_before_and_after(self):
        engines, _ = make_engines()
        engines.inventory.register_product("c1", "p1", "Coffee", stock=5)
        result = engines.inventory.adjust_stock("c1", "p1", -2, "sale")
        assert result.payload["stock_before"] == 5
        assert result.payload["stock_after"] == 3
        assert result.payload["movement"]["movement_id"] == f"mov-{result.event_data['event_id'].hex}"

    def test_service_stock_starts_from_zero_on_adjust(self):
        engines, _ = make_engines()
        engines.inventory.register_product("c1", "s1", "Kit", kind="service")
        engines.inventory.adjust_stock("c1", "s1", 4, "restock")
        assert engines.inventory.get_product("c1", "s1")["stock"] == 4
        assert engines.inventory.ledger_balance("c1", "s1") == 4


# ══════════════════════════════════════════════════════════════
# POLICIES
# ══════════════════════════════════════════════════════════════

class TestInventoryPolicies:

    def test_unknown_product_is_not_found(self):
        from core.commands.errors import NotFound
        engines, _ = make_engines()
        with pytest.raises(NotFound):
            engines.inventory.adjust_stock("c1", "ghost", -1, "sale")
        assert engines.inventory.get_stock_movements("c1") == []
        assert len(engines.event_store) == 0

    def test_duplicate_product_rejected(self):
        from core.commands.errors import InvalidInput
        from core.commands.rejection import ReasonCode
        engines, _ = make_engines()
        engines.inventory.register_product("c1", "p1", "Coffee")
        with pytest.raises(InvalidInput) as exc:
            engines.inventory.register_product("c1", "p1", "Tea")
        assert exc.value.code == ReasonCode.DUPLICATE_PRODUCT

    def test_negative_stock_allowed_by_default(self):
        engines, _ = make_engines()
        engines.inventory.register_product("c1", "p1", "Coffee", stock=1)
        engines.inventory.adjust_stock("c1", "p1", -3, "sale")
        assert engines.inventory.get_product("c1", "p1")["stock"] == -2

    def test_negative_stock_can_be_forbidden(self):
        from core.commands.errors import InvalidInput
        from core.commands.rejection import ReasonCode
        engines, _ = make_engines(allow_negative_stock=False)
        engines.inventory.register_product("c1", "p1", "Coffee", stock=1)
        with pytest.raises(InvalidInput) as exc:
            engines.inventory.adjust_stock("c1", "p1", -3, "sale")
        assert exc.value.code == ReasonCode.INSUFFICIENT_STOCK
        assert engines.inventory.get_product("c1", "p1")["stock"] == 1

    def test_products_are_per_company(self):
        from core.commands.errors import NotFound
        engines, _ = make_engines()
        engines.inventory.register_product("c1", "p1", "Coffee", stock=3)
        with pytest.raises(NotFound):
            engines.inventory.adjust_stock("c2", "p1", -1, "sale")
        engines.inventory.register_product("c2", "p1", "Tea", stock=9)
        assert engines.inventory.get_product("c1", "p1")["name"] == "Coffee"
        assert engines.inventory.get_stock_movements("c2")[0]["product_name"] == "Tea"

    def test_low_stock_products(self):
        engines, _ = make_engines()
        inventory = engines.inventory
        inventory.register_product("c1", "p1", "Coffee", stock=2, min_stock=5)
        inventory.register_product("c1", "p2", "Tea", stock=20, min_stock=5)
        inventory.register_product("c1", "s1", "Haircut", kind="service")
        assert [p["product_id"] for p in inventory.low_stock_products("c1")] == ["p1"]


class TestInventoryReads:

    def test_reads_return_copies(self):
        engines, _ = make_engines()
        engines.inventory.register_product("c1", "p1", "Coffee", stock=3)
        product = engines.inventory.get_product("c1", "p1")
        product["stock"] = 999
        engines.inventory.get_stock_movements("c1")[0]["quantity"] = 999
        assert engines.inventory.get_product("c1", "p1")["stock"] == 3
        assert engines.inventory.get_stock_movements("c1")[0]["quantity"] == 3
