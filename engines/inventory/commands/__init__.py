"""
Comanda Inventory Engine - Request Commands
=============================================
Typed product and stock requests that convert into canonical
Command objects. Stock is never set directly: it moves only through
StockAdjustRequest (and the opening balance of a registration).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from core.commands.base import Command, command_for
from core.commands.errors import InvalidInput
from core.commands.rejection import ReasonCode


INVENTORY_PRODUCT_REGISTER_REQUEST = "inventory.product.register.request"
INVENTORY_PRODUCT_UPDATE_REQUEST = "inventory.product.update.request"
INVENTORY_STOCK_ADJUST_REQUEST = "inventory.stock.adjust.request"

VALID_PRODUCT_KINDS = frozenset({"product", "service"})
UPDATABLE_PRODUCT_FIELDS = frozenset({
    "name", "price", "min_stock", "requires_preparation",
})


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_price(value) -> None:
    if not _is_int(value) or value < 0:
        raise InvalidInput("price must be a non-negative integer (minor units).")


def _check_optional_level(name: str, value) -> None:
    if value is not None and (not _is_int(value) or value < 0):
        raise InvalidInput(f"{name} must be a non-negative integer or None.")


@dataclass(frozen=True)
class ProductRegisterRequest:
    """Mirror a catalog product or service into the stock ledger."""
    product_id: str
    name: str
    price: int = 0
    kind: str = "product"
    stock: Optional[int] = None
    min_stock: Optional[int] = None
    requires_preparation: bool = False

    def __post_init__(self):
        if not self.product_id or not isinstance(self.product_id, str):
            raise InvalidInput("product_id must be a non-empty string.")
        if not self.name or not isinstance(self.name, str):
            raise InvalidInput("name must be a non-empty string.")
        _check_price(self.price)
        if self.kind not in VALID_PRODUCT_KINDS:
            raise InvalidInput(f"kind '{self.kind}' not valid.")
        _check_optional_level("stock", self.stock)
        _check_optional_level("min_stock", self.min_stock)
        if not isinstance(self.requires_preparation, bool):
            raise InvalidInput("requires_preparation must be a bool.")

    def to_command(self, **envelope) -> Command:
        stock = self.stock
        if stock is None and self.kind == "product":
            stock = 0
        return command_for(
            INVENTORY_PRODUCT_REGISTER_REQUEST,
            {
                "product_id": self.product_id,
                "name": self.name,
                "price": self.price,
                "kind": self.kind,
                "stock": stock,
                "min_stock": self.min_stock,
                "requires_preparation": self.requires_preparation,
            },
            **envelope,
        )


@dataclass(frozen=True)
class ProductUpdateRequest:
    """Catalog edit. Renames never touch recorded movements or orders."""
    product_id: str
    changes: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.product_id or not isinstance(self.product_id, str):
            raise InvalidInput("product_id must be a non-empty string.")
        if not self.changes:
            raise InvalidInput("changes must not be empty.")
        if "stock" in self.changes:
            raise InvalidInput(
                "stock changes only through stock adjustments.",
                code=ReasonCode.STOCK_NOT_EDITABLE,
            )
        unknown = set(self.changes) - UPDATABLE_PRODUCT_FIELDS
        if unknown:
            raise InvalidInput(f"Unknown product fields: {sorted(unknown)}")

        if "name" in self.changes:
            name = self.changes["name"]
            if not name or not isinstance(name, str):
                raise InvalidInput("name must be a non-empty string.")
        if "price" in self.changes:
            _check_price(self.changes["price"])
        if "min_stock" in self.changes:
            _check_optional_level("min_stock", self.changes["min_stock"])
        if "requires_preparation" in self.changes:
            if not isinstance(self.changes["requires_preparation"], bool):
                raise InvalidInput("requires_preparation must be a bool.")

    def to_command(self, **envelope) -> Command:
        return command_for(
            INVENTORY_PRODUCT_UPDATE_REQUEST,
            {"product_id": self.product_id, "changes": dict(self.changes)},
            **envelope,
        )


@dataclass(frozen=True)
class StockAdjustRequest:
    """Signed stock delta with a mandatory reason (sale, loss, restock...)."""
    product_id: str
    delta: int
    reason: str

    def __post_init__(self):
        if not self.product_id or not isinstance(self.product_id, str):
            raise InvalidInput("product_id must be a non-empty string.")
        if not _is_int(self.delta) or self.delta == 0:
            raise InvalidInput("delta must be a nonzero integer.")
        if not isinstance(self.reason, str) or not self.reason.strip():
            raise InvalidInput("reason must be a non-empty string.")

    def to_command(self, **envelope) -> Command:
        return command_for(
            INVENTORY_STOCK_ADJUST_REQUEST,
            {
                "product_id": self.product_id,
                "delta": self.delta,
                "reason": self.reason.strip(),
            },
            **envelope,
        )
