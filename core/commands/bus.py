"""
Comanda Command Layer - Command Bus
=====================================
Routes a Command to the engine service registered for its type.

The bus orchestrates, it does not decide:
- Policies run inside the engine service
- The engine service persists its own event and updates projections
- Typed CommandErrors raised by the service propagate to the caller
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol

from core.commands.base import Command
from core.commands.errors import CommandError

logger = logging.getLogger("comanda.commands")


class EngineServiceProtocol(Protocol):
    """Anything with an ``execute(command)`` method."""

    def execute(self, command: Command) -> Any:
        ...


class CommandBusError(Exception):
    """Base error for command bus wiring problems."""


class NoHandlerRegistered(CommandBusError):
    """No engine service handler registered for command type."""

    def __init__(self, command_type: str):
        self.command_type = command_type
        super().__init__(
            f"No engine service handler registered for "
            f"command type '{command_type}'."
        )


class CommandBus:
    """
    Usage:
        bus = CommandBus()
        bus.register_handler("inventory.stock.adjust.request", inventory)
        result = bus.handle(command)
    """

    def __init__(self):
        self._handlers: Dict[str, EngineServiceProtocol] = {}

    def register_handler(self, command_type: str, handler: Any) -> None:
        if not command_type.endswith(".request"):
            raise ValueError(
                f"command_type '{command_type}' must end with '.request'."
            )

        if not hasattr(handler, "execute") or not callable(handler.execute):
            raise TypeError("Handler must have callable .execute() method.")

        if command_type in self._handlers:
            raise CommandBusError(
                f"Handler already registered for '{command_type}'."
            )

        self._handlers[command_type] = handler
        logger.debug("Handler registered: %s", command_type)

    def has_handler(self, command_type: str) -> bool:
        return command_type in self._handlers

    @property
    def registered_command_types(self) -> frozenset:
        return frozenset(self._handlers)

    def handle(self, command: Command) -> Any:
        handler = self._handlers.get(command.command_type)
        if handler is None:
            raise NoHandlerRegistered(command.command_type)

        try:
            return handler.execute(command)
        except CommandError as exc:
            logger.info(
                "Command rejected: %s [%s] company=%s",
                command.command_type, exc.code, command.company_id,
            )
            raise
