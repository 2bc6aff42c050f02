"""
Comanda Event Store - In-Memory Store
=======================================
Process-local event log with the same write contract as the Django
``persist_event``. Default store for the engines and for tests.

    store = InMemoryEventStore()
    result = store(event_data, context, registry)
    store.load_events("c1")
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Dict, List, Optional, Tuple

from core.event_store.hashing import GENESIS_HASH, seal_event
from core.event_store.validators.errors import (
    RejectionCode,
    ValidationResult,
    ViolatedRule,
)
from core.event_store.validators.event_validator import validate_event

logger = logging.getLogger("comanda.events")


class InMemoryEventStore:
    def __init__(self) -> None:
        self._events: List[dict] = []
        self._event_ids: set = set()
        self._heads: Dict[str, Tuple[int, str]] = {}
        self._lock = threading.Lock()

    def __call__(self, event_data: dict, context, registry, **kwargs) -> ValidationResult:
        return self.persist(event_data, context, registry)

    def persist(self, event_data: dict, context, registry) -> ValidationResult:
        from core.replay.context import is_replay_active
        from core.replay.errors import ReplayIsolationError

        if is_replay_active():
            raise ReplayIsolationError("Persistence forbidden during replay mode.")

        result = validate_event(event_data, context, registry)
        if not result.accepted:
            return result

        with self._lock:
            if event_data["event_id"] in self._event_ids:
                return ValidationResult.rejected(
                    RejectionCode.DUPLICATE_EVENT_ID,
                    f"Event {event_data['event_id']} already persisted.",
                    ViolatedRule.IDEMPOTENCY,
                )

            company_id = event_data["company_id"]
            sequence, head = self._heads.get(company_id, (0, GENESIS_HASH))
            seal_event(event_data, sequence=sequence + 1, previous_event_hash=head)

            self._events.append(copy.deepcopy(event_data))
            self._event_ids.add(event_data["event_id"])
            self._heads[company_id] = (event_data["sequence"], event_data["event_hash"])

        logger.debug(
            "Event stored: %s %s#%d",
            event_data["event_type"], company_id, event_data["sequence"],
        )
        return result

    def load_events(self, company_id: Optional[str] = None) -> Tuple[dict, ...]:
        """Envelopes in append order, optionally for one company."""
        with self._lock:
            return tuple(
                copy.deepcopy(event)
                for event in self._events
                if company_id is None or event["company_id"] == company_id
            )

    def company_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._heads)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
