# inventory/models/__init__.py

"""
INVENTORY MODELS PACKAGE EXPORTS

Keep this file imports-only. Models never import services.
"""

from inventory.models.product import Product
from inventory.models.lot import InventoryLot
from inventory.models.consumption import CostConsumption

__all__ = [
    "Product",
    "InventoryLot",
    "CostConsumption",
]
