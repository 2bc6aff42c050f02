"""
Comanda Inventory Engine - Application Service
================================================
The stock ledger. Product stock is a cached balance; the movement
list is the audit trail. Both change together, from one event.
"""

from __future__ import annotations

import copy
from threading import Lock
from typing import Dict, List, Optional, Tuple

from core.commands.base import Command
from core.context.company_context import ActorRef
from core.engines.service import EngineService, ExecutionResult
from engines.inventory.commands import (
    INVENTORY_PRODUCT_REGISTER_REQUEST,
    INVENTORY_PRODUCT_UPDATE_REQUEST,
    INVENTORY_STOCK_ADJUST_REQUEST,
    ProductRegisterRequest,
    ProductUpdateRequest,
    StockAdjustRequest,
)
from engines.inventory.events import (
    INVENTORY_EVENT_TYPES,
    INVENTORY_PRODUCT_REGISTERED_V1,
    INVENTORY_PRODUCT_UPDATED_V1,
    INVENTORY_STOCK_ADJUSTED_V1,
    build_product_registered_payload,
    build_product_updated_payload,
    build_stock_adjusted_payload,
    register_inventory_event_types,
)
from engines.inventory.policies import (
    negative_stock_policy,
    product_must_be_new_policy,
    product_must_exist_policy,
)


def movement_sign(movement: dict) -> int:
    return movement["quantity"] if movement["type"] == "in" else -movement["quantity"]


class InventoryProjectionStore:
    """
    Products and movements of every company. Writers hold only their
    own company lock, so the store guards its dicts with a lock of
    its own.
    """

    projection_name = "inventory_stock_ledger"

    def __init__(self):
        self._products: Dict[Tuple[str, str], dict] = {}
        self._movements: Dict[str, List[dict]] = {}
        self._lock = Lock()

    def apply(self, event_type: str, payload: dict) -> None:
        company_id = payload["company_id"]
        key = (company_id, payload["product_id"])

        with self._lock:
            if event_type == INVENTORY_PRODUCT_REGISTERED_V1:
                self._products[key] = {
                    "product_id": payload["product_id"],
                    "company_id": company_id,
                    "name": payload["name"],
                    "price": payload["price"],
                    "kind": payload["kind"],
                    "stock": payload["stock"],
                    "min_stock": payload["min_stock"],
                    "requires_preparation": payload["requires_preparation"],
                }
                if payload["opening_movement"] is not None:
                    self._record(company_id, payload["opening_movement"])

            elif event_type == INVENTORY_PRODUCT_UPDATED_V1:
                product = self._products.get(key)
                if product is not None:
                    product.update(payload["changes"])

            elif event_type == INVENTORY_STOCK_ADJUSTED_V1:
                product = self._products.get(key)
                if product is not None:
                    product["stock"] = (product["stock"] or 0) + payload["delta"]
                self._record(company_id, payload["movement"])

    def _record(self, company_id: str, movement: dict) -> None:
        self._movements.setdefault(company_id, []).append(dict(movement))

    # ── reads ─────────────────────────────────────────────────

    def get_product(self, company_id: str, product_id: str) -> Optional[dict]:
        with self._lock:
            product = self._products.get((company_id, product_id))
            return copy.deepcopy(product) if product is not None else None

    def get_stock(self, company_id: str, product_id: str) -> int:
        with self._lock:
            product = self._products.get((company_id, product_id))
            if product is None:
                return 0
            return product["stock"] or 0

    def list_products(self, company_id: str) -> List[dict]:
        with self._lock:
            return [
                copy.deepcopy(product)
                for (owner, _), product in self._products.items()
                if owner == company_id
            ]

    def get_movements(self, company_id: str, product_id: Optional[str] = None) -> List[dict]:
        """Most recent first."""
        with self._lock:
            movements = self._movements.get(company_id, [])
            return [
                dict(movement)
                for movement in reversed(movements)
                if product_id is None or movement["product_id"] == product_id
            ]

    def ledger_balance(self, company_id: str, product_id: str) -> int:
        with self._lock:
            return sum(
                movement_sign(movement)
                for movement in self._movements.get(company_id, [])
                if movement["product_id"] == product_id
            )

    def truncate(self, company_id: Optional[str] = None) -> None:
        with self._lock:
            if company_id is None:
                self._products.clear()
                self._movements.clear()
                return
            self._products = {
                key: product for key, product in self._products.items()
                if key[0] != company_id
            }
            self._movements.pop(company_id, None)


class InventoryService(EngineService):
    """
    Usage:
        inventory.register_product("c1", "prod-1", "Coffee", price=500, stock=50)
        inventory.adjust_stock("c1", "prod-1", -5, "sale")
        inventory.get_stock_movements("c1", "prod-1")
    """

    engine_name = "inventory"
    command_handlers = {
        INVENTORY_PRODUCT_REGISTER_REQUEST: "_handle_register",
        INVENTORY_PRODUCT_UPDATE_REQUEST: "_handle_update",
        INVENTORY_STOCK_ADJUST_REQUEST: "_handle_adjust",
    }

    def __init__(self, *, projection_store: Optional[InventoryProjectionStore] = None, **kwargs):
        self._projection_store = (
            projection_store if projection_store is not None else InventoryProjectionStore()
        )
        super().__init__(**kwargs)

    def _register_event_types(self, registry) -> None:
        register_inventory_event_types(registry)

    def _register_projections(self, projection_registry) -> None:
        projection_registry.register(
            self._projection_store,
            INVENTORY_EVENT_TYPES,
            description="Products, cached stock and stock movements.",
        )

    @property
    def projection_store(self) -> InventoryProjectionStore:
        return self._projection_store

    # ══════════════════════════════════════════════════════════
    # COMMAND HANDLERS (company lock held)
    # ══════════════════════════════════════════════════════════

    def _handle_register(self, command: Command) -> ExecutionResult:
        self._enforce(command, product_must_be_new_policy(
            command, self._projection_store.get_product,
        ))
        return self._persist_and_project(
            command,
            INVENTORY_PRODUCT_REGISTERED_V1,
            build_product_registered_payload(command),
        )

    def _handle_update(self, command: Command) -> ExecutionResult:
        self._enforce(command, product_must_exist_policy(
            command, self._projection_store.get_product,
        ))
        return self._persist_and_project(
            command,
            INVENTORY_PRODUCT_UPDATED_V1,
            build_product_updated_payload(command),
        )

    def _handle_adjust(self, command: Command) -> ExecutionResult:
        store = self._projection_store
        self._enforce(command, product_must_exist_policy(command, store.get_product))
        self._enforce(command, negative_stock_policy(
            command, store.get_stock, self._settings.allow_negative_stock,
        ))

        product = store.get_product(command.company_id, command.payload["product_id"])
        return self._persist_and_project(
            command,
            INVENTORY_STOCK_ADJUSTED_V1,
            build_stock_adjusted_payload(
                command,
                product_name=product["name"],
                stock_before=product["stock"] or 0,
            ),
        )

    # ══════════════════════════════════════════════════════════
    # OPERATIONS
    # ══════════════════════════════════════════════════════════

    def register_product(
        self,
        company_id: str,
        product_id: str,
        name: str,
        *,
        price: int = 0,
        kind: str = "product",
        stock: Optional[int] = None,
        min_stock: Optional[int] = None,
        requires_preparation: bool = False,
        actor: Optional[ActorRef] = None,
    ) -> ExecutionResult:
        request = ProductRegisterRequest(
            product_id=product_id,
            name=name,
            price=price,
            kind=kind,
            stock=stock,
            min_stock=min_stock,
            requires_preparation=requires_preparation,
        )
        return self.execute(self.issue(request, company_id, actor))

    def update_product(
        self, company_id: str, product_id: str, *, actor: Optional[ActorRef] = None, **changes,
    ) -> ExecutionResult:
        request = ProductUpdateRequest(product_id=product_id, changes=changes)
        return self.execute(self.issue(request, company_id, actor))

    def adjust_stock(
        self,
        company_id: str,
        product_id: str,
        delta: int,
        reason: str,
        *,
        actor: Optional[ActorRef] = None,
    ) -> ExecutionResult:
        """
        Apply a signed delta to a product's stock and append exactly
        one movement (in for positive, out for negative deltas).

        Raises NotFound for an unknown product and InvalidInput for a
        zero delta, an empty reason, or (when negative stock is not
        allowed) an outbound delta larger than the stock on hand.
        """
        request = StockAdjustRequest(product_id=product_id, delta=delta, reason=reason)
        return self.execute(self.issue(request, company_id, actor))

    # ══════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════

    def get_product(self, company_id: str, product_id: str) -> Optional[dict]:
        with self.reading(company_id):
            return self._projection_store.get_product(company_id, product_id)

    def list_products(self, company_id: str) -> List[dict]:
        with self.reading(company_id):
            return self._projection_store.list_products(company_id)

    def get_stock_movements(self, company_id: str, product_id: Optional[str] = None) -> List[dict]:
        with self.reading(company_id):
            return self._projection_store.get_movements(company_id, product_id)

    def ledger_balance(self, company_id: str, product_id: str) -> int:
        with self.reading(company_id):
            return self._projection_store.ledger_balance(company_id, product_id)

    def low_stock_products(self, company_id: str) -> List[dict]:
        with self.reading(company_id):
            return [
                product
                for product in self._projection_store.list_products(company_id)
                if product["stock"] is not None
                and product["min_stock"] is not None
                and product["stock"] <= product["min_stock"]
            ]
