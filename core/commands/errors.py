"""
Comanda Command Layer - Typed Errors
======================================
Explicit result types for rejected commands. A missing reference or
a malformed request never degrades into a silent no-op.

    CommandError
    ├── NotFound          product / order / appointment missing
    ├── InvalidInput      malformed or disallowed request (also ValueError)
    ├── DuplicateOrder    order id already present
    └── EventRejected     the event store refused the event
"""

from __future__ import annotations

from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason


class CommandError(Exception):
    """Base error for every rejected command."""

    default_code = "COMMAND_REJECTED"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        policy_name: Optional[str] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.policy_name = policy_name
        super().__init__(message)

    @classmethod
    def from_rejection(cls, rejection: RejectionReason) -> "CommandError":
        return cls(
            rejection.message,
            code=rejection.code,
            policy_name=rejection.policy_name,
        )


class NotFound(CommandError):
    default_code = "NOT_FOUND"


class InvalidInput(CommandError, ValueError):
    default_code = "INVALID_INPUT"


class DuplicateOrder(CommandError):
    default_code = ReasonCode.DUPLICATE_ORDER


class EventRejected(CommandError):
    default_code = ReasonCode.EVENT_REJECTED


_ERROR_BY_CODE = {
    ReasonCode.PRODUCT_NOT_FOUND: NotFound,
    ReasonCode.ORDER_NOT_FOUND: NotFound,
    ReasonCode.APPOINTMENT_NOT_FOUND: NotFound,
    ReasonCode.DUPLICATE_ORDER: DuplicateOrder,
    ReasonCode.EVENT_REJECTED: EventRejected,
}


def error_for_rejection(rejection: RejectionReason) -> CommandError:
    """Map a policy rejection to its typed error (InvalidInput by default)."""
    error_cls = _ERROR_BY_CODE.get(rejection.code, InvalidInput)
    return error_cls.from_rejection(rejection)


def raise_for_rejection(rejection: Optional[RejectionReason]) -> None:
    if rejection is not None:
        raise error_for_rejection(rejection)
