# inventory/apps.py

"""
INVENTORY APP CONFIG

FIFO lot store and cost consumption engine.
"""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
    verbose_name = "Inventory (FIFO Costing)"
