"""
Comanda Core - Event Store App Configuration
==============================================
The append-only record of every ledger, order, tab and appointment
change. Products, orders, tabs and appointments are projections
rebuilt from it.
"""

from django.apps import AppConfig


class EventStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.event_store"
    label = "event_store"
    verbose_name = "Comanda Event Store"
