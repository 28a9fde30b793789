# sales/models/__init__.py

"""
SALES MODELS PACKAGE EXPORTS

Purpose:
- Central export surface for sales app models.
"""

from .cash_shift import CashShift
from .sale import Sale
from .sale_item import SaleItem
from .sale_return import SaleReturn, SaleReturnItem

__all__ = [
    "CashShift",
    "Sale",
    "SaleItem",
    "SaleReturn",
    "SaleReturnItem",
]
