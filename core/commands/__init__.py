"""
Comanda Command Layer
=======================
Every mutation begins as a Command and produces exactly one event,
or a typed CommandError.
"""

from core.commands.base import Command, VALID_ACTOR_TYPES, command_for
from core.commands.bus import (
    CommandBus,
    CommandBusError,
    NoHandlerRegistered,
)
from core.commands.errors import (
    CommandError,
    DuplicateOrder,
    EventRejected,
    InvalidInput,
    NotFound,
    error_for_rejection,
    raise_for_rejection,
)
from core.commands.rejection import ReasonCode, RejectionReason

__all__ = [
    "Command",
    "VALID_ACTOR_TYPES",
    "command_for",
    "CommandBus",
    "CommandBusError",
    "NoHandlerRegistered",
    "CommandError",
    "DuplicateOrder",
    "EventRejected",
    "InvalidInput",
    "NotFound",
    "error_for_rejection",
    "raise_for_rejection",
    "ReasonCode",
    "RejectionReason",
]
