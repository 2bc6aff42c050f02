"""
Comanda Event Store - Validation Results
==========================================
Every refusal by the event store is explicit and carries the rule
that was violated.
"""

from dataclasses import dataclass
from typing import Optional


class RejectionCode:
    # ── Schema Presence ───────────────────────────────────────
    MISSING_FIELD = "MISSING_FIELD"

    # ── Actor ─────────────────────────────────────────────────
    INVALID_ACTOR_TYPE = "INVALID_ACTOR_TYPE"
    EMPTY_ACTOR_ID = "EMPTY_ACTOR_ID"

    # ── Company Context ───────────────────────────────────────
    NO_ACTIVE_CONTEXT = "NO_ACTIVE_CONTEXT"
    COMPANY_ID_MISMATCH = "COMPANY_ID_MISMATCH"

    # ── Event Type Registry ───────────────────────────────────
    EVENT_TYPE_UNKNOWN = "EVENT_TYPE_UNKNOWN"

    # ── Payload ───────────────────────────────────────────────
    PAYLOAD_NOT_JSON = "PAYLOAD_NOT_JSON"

    # ── Idempotency ───────────────────────────────────────────
    DUPLICATE_EVENT_ID = "DUPLICATE_EVENT_ID"

    # ── Hash Chain / Persistence ──────────────────────────────
    HASH_CHAIN_BROKEN = "HASH_CHAIN_BROKEN"
    TRANSACTION_ABORTED = "TRANSACTION_ABORTED"


class ViolatedRule:
    SCHEMA_PRESENCE = "SCHEMA_PRESENCE"
    ACTOR_VALIDITY = "ACTOR_VALIDITY"
    COMPANY_CONTEXT = "COMPANY_CONTEXT"
    EVENT_TYPE_REGISTRY = "EVENT_TYPE_REGISTRY"
    PAYLOAD_FORMAT = "PAYLOAD_FORMAT"
    IDEMPOTENCY = "IDEMPOTENCY"
    EVENT_HASH_CHAIN = "EVENT_HASH_CHAIN"
    ATOMIC_PERSISTENCE = "ATOMIC_PERSISTENCE"


@dataclass(frozen=True)
class Rejection:
    code: str
    message: str
    violated_rule: str


@dataclass(frozen=True)
class ValidationResult:
    """
    accepted=True  -> rejection is None
    accepted=False -> rejection explains why
    """

    accepted: bool
    rejection: Optional[Rejection] = None

    def __post_init__(self):
        if self.accepted and self.rejection is not None:
            raise ValueError("An accepted result cannot carry a rejection.")
        if not self.accepted and self.rejection is None:
            raise ValueError("A rejected result must carry a rejection.")

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, code: str, message: str, violated_rule: str) -> "ValidationResult":
        return cls(
            accepted=False,
            rejection=Rejection(
                code=code, message=message, violated_rule=violated_rule,
            ),
        )
