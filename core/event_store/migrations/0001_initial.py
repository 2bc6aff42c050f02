import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                (
                    "event_id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique event identifier. Enforces idempotency.",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        help_text="Registered event type (engine.domain.action.vN).",
                        max_length=255,
                    ),
                ),
                ("event_version", models.PositiveSmallIntegerField()),
                (
                    "company_id",
                    models.CharField(
                        help_text="Company (tenant) that owns this event.",
                        max_length=64,
                    ),
                ),
                (
                    "sequence",
                    models.PositiveBigIntegerField(
                        help_text="Position in the company's stream, starting at 1.",
                    ),
                ),
                ("source_engine", models.CharField(max_length=100)),
                (
                    "actor_type",
                    models.CharField(
                        choices=[
                            ("HUMAN", "Human"),
                            ("SYSTEM", "System"),
                            ("DEVICE", "Device"),
                        ],
                        max_length=20,
                    ),
                ),
                ("actor_id", models.CharField(max_length=255)),
                ("correlation_id", models.UUIDField()),
                ("payload", models.JSONField()),
                (
                    "created_at",
                    models.DateTimeField(
                        help_text="When the originating command was issued.",
                    ),
                ),
                ("received_at", models.DateTimeField(auto_now_add=True)),
                ("previous_event_hash", models.CharField(max_length=64)),
                ("event_hash", models.CharField(max_length=64)),
            ],
            options={
                "db_table": "comanda_event_store",
                "ordering": ["company_id", "sequence"],
            },
        ),
        migrations.AddConstraint(
            model_name="event",
            constraint=models.UniqueConstraint(
                fields=("company_id", "sequence"),
                name="uq_evt_company_sequence",
            ),
        ),
        migrations.AddConstraint(
            model_name="event",
            constraint=models.UniqueConstraint(
                fields=("company_id", "previous_event_hash"),
                name="uq_evt_company_prev_hash",
            ),
        ),
        migrations.AddIndex(
            model_name="event",
            index=models.Index(fields=["event_type"], name="idx_evt_type"),
        ),
        migrations.AddIndex(
            model_name="event",
            index=models.Index(
                fields=["correlation_id"], name="idx_evt_correlation",
            ),
        ),
    ]
