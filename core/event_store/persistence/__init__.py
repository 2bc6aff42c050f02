"""
Comanda Event Store - Django persistence. Importing this package
requires configured Django settings.
"""

from core.event_store.persistence.repository import (
    company_ids_with_events,
    load_events_for_company,
)
from core.event_store.persistence.service import persist_event

__all__ = [
    "company_ids_with_events",
    "load_events_for_company",
    "persist_event",
]
