"""
Comanda Event Store - Persistence Service
===========================================
The Django write path for events:

    persist_event(event_data, context, registry)

Write flow:
    1. Refuse during replay
    2. Validate the envelope
    3. Idempotency check
    4. Inside transaction.atomic(): re-check idempotency, lock the
       company's chain head, seal sequence + hashes, insert
    5. Return accepted, or an explicit rejection

Unique constraints on (company_id, sequence) and
(company_id, previous_event_hash) turn a lost race into a
HASH_CHAIN_BROKEN rejection instead of a forked chain.
"""

from __future__ import annotations

import logging

from django.db import DatabaseError, IntegrityError, transaction

from core.event_store.hashing import GENESIS_HASH, seal_event
from core.event_store.persistence.repository import (
    event_exists,
    get_chain_head,
    save_event,
)
from core.event_store.validators.errors import (
    RejectionCode,
    ValidationResult,
    ViolatedRule,
)
from core.event_store.validators.event_validator import validate_event
from core.event_store.validators.registry import EventTypeRegistry

logger = logging.getLogger("comanda.events")


def _duplicate(event_id) -> ValidationResult:
    return ValidationResult.rejected(
        RejectionCode.DUPLICATE_EVENT_ID,
        f"Event {event_id} already persisted.",
        ViolatedRule.IDEMPOTENCY,
    )


# PostgreSQL reports the constraint name, SQLite the column list.
_CHAIN_CONFLICT_MARKERS = (
    "uq_evt_company_prev_hash",
    "uq_evt_company_sequence",
    "comanda_event_store.company_id",
)


def _is_chain_conflict(exc: IntegrityError) -> bool:
    message = str(exc)
    return any(marker in message for marker in _CHAIN_CONFLICT_MARKERS)


def persist_event(
    event_data: dict,
    context,
    registry: EventTypeRegistry,
    **kwargs,
) -> ValidationResult:
    from core.replay.context import is_replay_active
    from core.replay.errors import ReplayIsolationError

    if is_replay_active():
        raise ReplayIsolationError("Persistence forbidden during replay mode.")

    validation_result = validate_event(event_data, context, registry)
    if not validation_result.accepted:
        return validation_result

    if event_exists(event_data["event_id"]):
        return _duplicate(event_data["event_id"])

    try:
        with transaction.atomic():
            if event_exists(event_data["event_id"]):
                return _duplicate(event_data["event_id"])

            head = get_chain_head(event_data["company_id"], lock=True)
            if head is None:
                seal_event(event_data, sequence=1, previous_event_hash=GENESIS_HASH)
            else:
                seal_event(
                    event_data,
                    sequence=head.sequence + 1,
                    previous_event_hash=head.event_hash,
                )

            save_event(event_data)

    except IntegrityError as exc:
        if _is_chain_conflict(exc):
            return ValidationResult.rejected(
                RejectionCode.HASH_CHAIN_BROKEN,
                "Concurrent append conflict: chain head moved for company "
                f"{event_data['company_id']}.",
                ViolatedRule.EVENT_HASH_CHAIN,
            )
        if event_exists(event_data["event_id"]):
            return _duplicate(event_data["event_id"])
        return ValidationResult.rejected(
            RejectionCode.TRANSACTION_ABORTED,
            f"Integrity error: {exc}",
            ViolatedRule.ATOMIC_PERSISTENCE,
        )

    except DatabaseError as exc:
        logger.error("Event persistence aborted", exc_info=True)
        return ValidationResult.rejected(
            RejectionCode.TRANSACTION_ABORTED,
            f"Transaction aborted: {exc}",
            ViolatedRule.ATOMIC_PERSISTENCE,
        )

    logger.debug(
        "Event persisted: %s %s#%d",
        event_data["event_type"], event_data["company_id"], event_data["sequence"],
    )
    return validation_result
