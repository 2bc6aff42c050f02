"""
Comanda Event Store - Event Validator
=======================================
Pure function: envelope in, ValidationResult out.

Checks, in order:
- mandatory fields present
- actor type and id
- company context matches the envelope
- event type registered
- payload is JSON-native (survives a round trip through the DB)

Does NOT check idempotency or the hash chain; the stores do that
while holding their write lock.
"""

import json
from typing import Any, Optional

from core.event_store.validators.errors import (
    Rejection,
    RejectionCode,
    ValidationResult,
    ViolatedRule,
)
from core.event_store.validators.registry import EventTypeRegistry

MANDATORY_FIELDS = (
    "event_id",
    "event_type",
    "event_version",
    "company_id",
    "source_engine",
    "actor_type",
    "actor_id",
    "correlation_id",
    "payload",
    "created_at",
)

VALID_ACTOR_TYPES = frozenset({"HUMAN", "SYSTEM", "DEVICE"})


def _validate_schema_presence(event_data: dict) -> Optional[Rejection]:
    for field in MANDATORY_FIELDS:
        if event_data.get(field) is None:
            return Rejection(
                code=RejectionCode.MISSING_FIELD,
                message=f"Mandatory field '{field}' is missing or None.",
                violated_rule=ViolatedRule.SCHEMA_PRESENCE,
            )
    return None


def _validate_actor(event_data: dict) -> Optional[Rejection]:
    actor_type = event_data.get("actor_type")
    if actor_type not in VALID_ACTOR_TYPES:
        return Rejection(
            code=RejectionCode.INVALID_ACTOR_TYPE,
            message=(
                f"actor_type '{actor_type}' is not valid. "
                f"Must be one of: {', '.join(sorted(VALID_ACTOR_TYPES))}."
            ),
            violated_rule=ViolatedRule.ACTOR_VALIDITY,
        )

    actor_id = event_data.get("actor_id", "")
    if not isinstance(actor_id, str) or not actor_id.strip():
        return Rejection(
            code=RejectionCode.EMPTY_ACTOR_ID,
            message="actor_id must be a non-empty string.",
            violated_rule=ViolatedRule.ACTOR_VALIDITY,
        )

    return None


def _validate_company_context(event_data: dict, context: Any) -> Optional[Rejection]:
    if context is None or not context.has_active_context():
        return Rejection(
            code=RejectionCode.NO_ACTIVE_CONTEXT,
            message="No active company context. Events require context.",
            violated_rule=ViolatedRule.COMPANY_CONTEXT,
        )

    active_company_id = context.get_active_company_id()
    event_company_id = event_data.get("company_id")
    if event_company_id != active_company_id:
        return Rejection(
            code=RejectionCode.COMPANY_ID_MISMATCH,
            message=(
                f"Event company_id ({event_company_id}) does not match "
                f"active context company_id ({active_company_id})."
            ),
            violated_rule=ViolatedRule.COMPANY_CONTEXT,
        )

    return None


def _validate_event_type(event_data: dict, registry: EventTypeRegistry) -> Optional[Rejection]:
    event_type = event_data.get("event_type", "")
    if not registry.is_registered(event_type):
        return Rejection(
            code=RejectionCode.EVENT_TYPE_UNKNOWN,
            message=f"Event type '{event_type}' is not registered.",
            violated_rule=ViolatedRule.EVENT_TYPE_REGISTRY,
        )
    return None


def _validate_payload(event_data: dict) -> Optional[Rejection]:
    payload = event_data["payload"]
    if not isinstance(payload, dict):
        return Rejection(
            code=RejectionCode.PAYLOAD_NOT_JSON,
            message="payload must be a dict.",
            violated_rule=ViolatedRule.PAYLOAD_FORMAT,
        )
    try:
        json.dumps(payload, allow_nan=False)
    except (TypeError, ValueError) as exc:
        return Rejection(
            code=RejectionCode.PAYLOAD_NOT_JSON,
            message=f"payload is not JSON-native: {exc}",
            violated_rule=ViolatedRule.PAYLOAD_FORMAT,
        )
    return None


def validate_event(
    event_data: dict,
    context: Any,
    registry: EventTypeRegistry,
) -> ValidationResult:
    rejection = _validate_schema_presence(event_data)
    if rejection is None:
        rejection = (
            _validate_actor(event_data)
            or _validate_company_context(event_data, context)
            or _validate_event_type(event_data, registry)
            or _validate_payload(event_data)
        )

    if rejection is not None:
        return ValidationResult(accepted=False, rejection=rejection)
    return ValidationResult.ok()
