# sales/models/sale_item.py

"""
SALE ITEM (SNAPSHOT)

Represents a snapshot of a sold line: price, tax split and FIFO cost.

Notes:
- Price/tax fields are fixed at checkout
- cost_total / unallocated_quantity / unallocated_cost are written once,
  right after the FIFO consumption for the line
- unallocated_cost values the uncovered units at the product fallback cost
- returned_quantity only grows (bounded by quantity)
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from .sale import Sale


class SaleItem(models.Model):
    sale = models.ForeignKey(
        Sale,
        on_delete=models.PROTECT,
        related_name="items",
    )

    product = models.ForeignKey(
        "inventory.Product",
        on_delete=models.PROTECT,
        related_name="sale_items",
    )

    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    tax_rate = models.DecimalField(max_digits=5, decimal_places=4)
    price_includes_tax = models.BooleanField(default=True)

    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    itbis = models.DecimalField(max_digits=14, decimal_places=2)
    total = models.DecimalField(max_digits=14, decimal_places=2)

    cost_total = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="FIFO cost of the allocated units.",
    )
    unallocated_quantity = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal("0"),
        help_text="Units sold without lot coverage (partial FIFO allocation).",
    )
    unallocated_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="unallocated_quantity x product fallback cost, booked as COGS.",
    )
    returned_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0"))

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name="chk_sale_item_qty_pos"),
            models.CheckConstraint(
                condition=Q(returned_quantity__gte=0) & Q(returned_quantity__lte=F("quantity")),
                name="chk_sale_item_returned_bounds",
            ),
        ]

    @property
    def returnable_quantity(self) -> Decimal:
        return self.quantity - self.returned_quantity

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError("Quantity must be > 0")
        if self.returned_quantity < 0 or self.returned_quantity > self.quantity:
            raise ValidationError("returned_quantity must be within 0..quantity")
        if self.subtotal + self.itbis != self.total:
            raise ValidationError("subtotal + itbis must equal total")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Sale items cannot be deleted")

    def __str__(self):
        return f"{self.product} x {self.quantity}"
