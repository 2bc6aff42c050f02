"""
Comanda Event Store
=====================
Append-only, per-company hash-chained event log.

Two writers share one validation pipeline and one call signature,
``persist(event_data, context, registry) -> ValidationResult``:

    core.event_store.memory.InMemoryEventStore
    core.event_store.persistence.persist_event      (Django ORM)

Import the Django writer explicitly; this package does not touch
the ORM on import.
"""
