"""
Comanda Core Engines - Application Service Base
=================================================
Shared execution path of every engine:

    request ──to_command──▶ Command
    Command ──policies──▶ RejectionReason? ──▶ typed CommandError
    Command ──payload builder──▶ one event
    event ──persist──▶ event store (hash chained, per company)
    event ──apply──▶ every projection consuming its type

All of it runs while holding the company lock, so a reader never
sees the event store and the projections disagree.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from core.commands.base import Command
from core.commands.errors import EventRejected, InvalidInput, error_for_rejection
from core.config.settings import LedgerSettings
from core.context.company_context import SYSTEM_ACTOR, ActorRef, CompanyContext
from core.context.locks import CompanyLockRegistry
from core.event_store.factory import build_event_data
from core.time.clock import Clock, SystemClock


class PersistEventProtocol(Protocol):
    def __call__(self, *, event_data: dict, context: Any, registry: Any, **kw) -> Any: ...


@dataclass(frozen=True)
class ExecutionResult:
    event_type: str
    event_data: dict
    persist_result: Any
    projection_applied: bool

    @property
    def payload(self) -> dict:
        return self.event_data["payload"]


class _EngineCommandHandler:
    def __init__(self, service: "EngineService"):
        self._service = service

    def execute(self, command: Command) -> Optional[ExecutionResult]:
        return self._service.execute(command)


class EngineService:
    """
    Subclasses set ``engine_name`` and ``command_handlers`` (command
    type -> method name) and implement ``_register_event_types`` and
    ``_register_projections``.
    """

    engine_name: str = ""
    command_handlers: Dict[str, str] = {}

    def __init__(
        self,
        *,
        persist_event: PersistEventProtocol,
        event_type_registry,
        projection_registry,
        lock_registry: Optional[CompanyLockRegistry] = None,
        clock: Optional[Clock] = None,
        command_bus=None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._persist_event = persist_event
        self._event_type_registry = event_type_registry
        self._projections = projection_registry
        self._locks = lock_registry if lock_registry is not None else CompanyLockRegistry()
        self._clock = clock if clock is not None else SystemClock()
        self._settings = settings if settings is not None else LedgerSettings()
        self._logger = logging.getLogger(f"comanda.{self.engine_name}")

        self._register_event_types(event_type_registry)
        self._register_projections(projection_registry)

        if command_bus is not None:
            handler = _EngineCommandHandler(self)
            for command_type in sorted(self.command_handlers):
                command_bus.register_handler(command_type, handler)

    # ══════════════════════════════════════════════════════════
    # HOOKS
    # ══════════════════════════════════════════════════════════

    def _register_event_types(self, registry) -> None:
        raise NotImplementedError

    def _register_projections(self, projection_registry) -> None:
        raise NotImplementedError

    def _lock_scope(self, command: Command) -> tuple:
        return (command.company_id,)

    # ══════════════════════════════════════════════════════════
    # EXECUTION
    # ══════════════════════════════════════════════════════════

    def issue(
        self,
        request,
        company_id: str,
        actor: Optional[ActorRef] = None,
        correlation_id: Optional[uuid.UUID] = None,
    ) -> Command:
        """Turn a request dataclass into a Command stamped by this clock."""
        actor = actor or SYSTEM_ACTOR
        return request.to_command(
            company_id=company_id,
            actor_type=actor.actor_type,
            actor_id=actor.actor_id,
            actor_name=actor.name,
            command_id=uuid.uuid4(),
            correlation_id=correlation_id or uuid.uuid4(),
            issued_at=self._clock.now_utc(),
        )

    def execute(self, command: Command) -> Optional[ExecutionResult]:
        method_name = self.command_handlers.get(command.command_type)
        if method_name is None:
            raise InvalidInput(
                f"Unsupported command type: {command.command_type}",
                code="UNSUPPORTED_COMMAND",
            )
        with self._locks.hold(*self._lock_scope(command)):
            return getattr(self, method_name)(command)

    def _persist_and_project(
        self, command: Command, event_type: str, payload: dict,
    ) -> ExecutionResult:
        """
        Append the event, then fold it into every consuming projection.

        The event log is the source of truth. If a projection raises
        after the append, the event stays recorded, the projection is
        marked unhealthy and the error reaches the caller. Projections
        fed by the same event may then disagree until
        ``rebuild_projections`` replays the company, which also clears
        the unhealthy mark.
        """
        event_data = build_event_data(command, event_type, payload)
        persist_result = self._persist_event(
            event_data=event_data,
            context=CompanyContext(command.company_id),
            registry=self._event_type_registry,
        )
        if not persist_result.accepted:
            rejection = persist_result.rejection
            self._logger.warning(
                "Event rejected by store: %s [%s] %s",
                event_type, rejection.code, rejection.message,
            )
            raise EventRejected(
                rejection.message,
                code=rejection.code,
                policy_name=rejection.violated_rule,
            )

        self._projections.apply(event_type, payload)
        self._logger.info(
            "%s accepted: company=%s actor=%s",
            event_type, command.company_id, command.actor_id,
        )
        return ExecutionResult(
            event_type=event_type,
            event_data=event_data,
            persist_result=persist_result,
            projection_applied=True,
        )

    def _enforce(self, command: Command, rejection) -> None:
        """Raise the typed error for a policy rejection, if any."""
        if rejection is None:
            return
        self._logger.info(
            "%s rejected: company=%s [%s] %s",
            command.command_type, command.company_id,
            rejection.code, rejection.message,
        )
        raise error_for_rejection(rejection)

    def reading(self, company_id: Optional[str]):
        """Hold the company lock for a consistent read."""
        return self._locks.hold(company_id)
