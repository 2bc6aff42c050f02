"""
Comanda Event Store - Persistence Repository
==============================================
Low-level ORM helpers used by the persistence service.
"""

from __future__ import annotations

from typing import Optional

from core.event_store.models import Event

ENVELOPE_FIELDS = (
    "event_id",
    "event_type",
    "event_version",
    "company_id",
    "sequence",
    "source_engine",
    "actor_type",
    "actor_id",
    "correlation_id",
    "payload",
    "created_at",
    "previous_event_hash",
    "event_hash",
)


def save_event(event_data: dict) -> Event:
    return Event.objects.create(
        **{field: event_data[field] for field in ENVELOPE_FIELDS}
    )


def event_exists(event_id) -> bool:
    return Event.objects.filter(event_id=event_id).exists()


def get_chain_head(company_id: str, *, lock: bool = False) -> Optional[Event]:
    """Latest event of a company. lock=True selects it FOR UPDATE."""
    query = Event.objects.filter(company_id=company_id).order_by("-sequence")
    if lock:
        query = query.select_for_update()
    return query.first()


def load_events_for_company(company_id: str) -> tuple:
    """Event envelopes of one company in replay (sequence) order."""
    rows = (
        Event.objects.filter(company_id=company_id)
        .order_by("sequence")
        .values(*ENVELOPE_FIELDS)
    )
    return tuple(dict(row) for row in rows)


def company_ids_with_events() -> list:
    return list(
        Event.objects.order_by("company_id")
        .values_list("company_id", flat=True)
        .distinct()
    )
