"""
Comanda Event Store - Event Model
===================================
The only writable table. Every row is one immutable event.

RULES:
- Insert only. No updates, no deletes.
- Every event belongs to exactly one company.
- Per-company hash chain: previous_event_hash -> event_hash.
- Per-company sequence gives the replay order.
"""

import uuid

from django.db import models


class ActorType(models.TextChoices):
    HUMAN = "HUMAN", "Human"
    SYSTEM = "SYSTEM", "System"
    DEVICE = "DEVICE", "Device"


class Event(models.Model):
    """
    Field groups:
        Identity & Classification
        Tenant Scope
        Engine & Actor
        Payload
        Temporal
        Integrity (Hash-Chain)
    """

    # ── Identity & Classification ─────────────────────────────
    event_id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique event identifier. Enforces idempotency.",
    )

    event_type = models.CharField(
        max_length=255,
        help_text="Registered event type (engine.domain.action.vN).",
    )

    event_version = models.PositiveSmallIntegerField()

    # ── Tenant Scope ──────────────────────────────────────────
    company_id = models.CharField(
        max_length=64,
        help_text="Company (tenant) that owns this event.",
    )

    sequence = models.PositiveBigIntegerField(
        help_text="Position in the company's stream, starting at 1.",
    )

    # ── Engine & Actor ────────────────────────────────────────
    source_engine = models.CharField(max_length=100)

    actor_type = models.CharField(
        max_length=20,
        choices=ActorType.choices,
    )

    actor_id = models.CharField(max_length=255)

    correlation_id = models.UUIDField()

    # ── Payload ───────────────────────────────────────────────
    payload = models.JSONField()

    # ── Temporal ──────────────────────────────────────────────
    created_at = models.DateTimeField(
        help_text="When the originating command was issued.",
    )

    received_at = models.DateTimeField(auto_now_add=True)

    # ── Integrity (Hash-Chain) ────────────────────────────────
    previous_event_hash = models.CharField(max_length=64)

    event_hash = models.CharField(max_length=64)

    class Meta:
        db_table = "comanda_event_store"
        ordering = ["company_id", "sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["company_id", "sequence"],
                name="uq_evt_company_sequence",
            ),
            models.UniqueConstraint(
                fields=["company_id", "previous_event_hash"],
                name="uq_evt_company_prev_hash",
            ),
        ]
        indexes = [
            models.Index(
                fields=["event_type"],
                name="idx_evt_type",
            ),
            models.Index(
                fields=["correlation_id"],
                name="idx_evt_correlation",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionError(
                "Events are immutable. Cannot update a persisted event."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Events are never deleted.")

    def __str__(self):
        return f"[{self.event_type}] {self.company_id}#{self.sequence}"
