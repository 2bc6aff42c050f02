"""
Comanda Command Layer - Rejection Model
=========================================
Structured reasons produced by engine policies.

A policy returns a RejectionReason (or None when the command may
proceed). Services translate the first rejection into a typed
CommandError, see core.commands.errors.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for command rejection.

    Fields:
        code:        Machine-readable code (e.g. 'ORDER_NOT_FOUND').
        message:     Human-readable explanation.
        policy_name: Name of the policy that rejected the command.
    """

    code: str
    message: str
    policy_name: str

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
        }


# ══════════════════════════════════════════════════════════════
# STANDARD REJECTION CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known rejection codes.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Missing references ────────────────────────────────────
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    APPOINTMENT_NOT_FOUND = "APPOINTMENT_NOT_FOUND"

    # ── Invalid input ─────────────────────────────────────────
    DUPLICATE_PRODUCT = "DUPLICATE_PRODUCT"
    DUPLICATE_APPOINTMENT = "DUPLICATE_APPOINTMENT"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    STOCK_NOT_EDITABLE = "STOCK_NOT_EDITABLE"
    ITEM_INDEX_OUT_OF_RANGE = "ITEM_INDEX_OUT_OF_RANGE"
    ORDER_ARCHIVED = "ORDER_ARCHIVED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    SLOT_CONFLICT = "SLOT_CONFLICT"
    APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"
    APPOINTMENT_NOT_STARTED = "APPOINTMENT_NOT_STARTED"

    # ── Conflicts ─────────────────────────────────────────────
    DUPLICATE_ORDER = "DUPLICATE_ORDER"

    # ── Event store ───────────────────────────────────────────
    EVENT_REJECTED = "EVENT_REJECTED"
