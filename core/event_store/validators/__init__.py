from core.event_store.validators.errors import (
    Rejection,
    RejectionCode,
    ValidationResult,
    ViolatedRule,
)
from core.event_store.validators.event_validator import validate_event
from core.event_store.validators.registry import EventTypeRegistry

__all__ = [
    "EventTypeRegistry",
    "Rejection",
    "RejectionCode",
    "ValidationResult",
    "ViolatedRule",
    "validate_event",
]
