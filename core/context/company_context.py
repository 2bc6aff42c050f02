"""
Comanda Context - Company and Actor
=====================================
Immutable tenancy and identity values handed to the event store
and snapshotted into commands.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.commands.base import VALID_ACTOR_TYPES


@dataclass(frozen=True)
class CompanyContext:
    """
    Active tenant for one event-store write.

    The event validator rejects any event whose company_id differs
    from the context's.
    """

    company_id: str

    def __post_init__(self):
        if not self.company_id or not isinstance(self.company_id, str):
            raise ValueError("company_id must be a non-empty string.")

    def has_active_context(self) -> bool:
        return True

    def get_active_company_id(self) -> str:
        return self.company_id


@dataclass(frozen=True)
class ActorRef:
    """Who is acting: an employee at the counter, a device, the system."""

    actor_id: str
    actor_type: str = "HUMAN"
    name: Optional[str] = None

    def __post_init__(self):
        if not self.actor_id or not isinstance(self.actor_id, str):
            raise ValueError("actor_id must be a non-empty string.")

        if self.actor_type not in VALID_ACTOR_TYPES:
            raise ValueError(
                f"actor_type '{self.actor_type}' not valid. "
                f"Must be one of: {sorted(VALID_ACTOR_TYPES)}"
            )

    def to_dict(self) -> dict:
        return {"id": self.actor_id, "name": self.name}


SYSTEM_ACTOR = ActorRef(actor_id="system", actor_type="SYSTEM", name="System")
