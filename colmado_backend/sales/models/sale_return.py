# sales/models/sale_return.py

"""
SALE RETURN (CUSTOMER DEVOLUCIÓN)

Header + items for a full or partial return of a finalized sale.
Amounts are proportional to the original line (quantity share of the
line's subtotal/itbis/total); cost_total is what the FIFO reversal put back
into the original lots.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .sale import Sale
from .sale_item import SaleItem


class SaleReturn(models.Model):
    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    sale = models.ForeignKey(Sale, on_delete=models.PROTECT, related_name="returns")
    return_date = models.DateField(default=timezone.localdate)

    shift = models.ForeignKey(
        "sales.CashShift",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="returns",
    )

    refund_method = models.CharField(max_length=16, choices=Sale.PAYMENT_CHOICES)
    reason = models.CharField(max_length=255, blank=True, default="")

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    itbis_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    cost_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    created_by = models.CharField(max_length=150, default="system")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-return_date", "-id"]
        indexes = [models.Index(fields=["return_date"], name="sale_return_date_idx")]

    def clean(self):
        if self.subtotal + self.itbis_total != self.total:
            raise ValidationError("subtotal + itbis_total must equal total")
        if self.return_date and self.sale_id and self.return_date < self.sale.sale_date:
            raise ValidationError("A return cannot predate its sale")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Returns cannot be deleted")

    def __str__(self):
        return f"Return of {self.sale.receipt_number} ({self.total})"


class SaleReturnItem(models.Model):
    sale_return = models.ForeignKey(SaleReturn, on_delete=models.PROTECT, related_name="items")
    sale_item = models.ForeignKey(SaleItem, on_delete=models.PROTECT, related_name="return_items")

    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    itbis = models.DecimalField(max_digits=14, decimal_places=2)
    total = models.DecimalField(max_digits=14, decimal_places=2)
    cost_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError("Return quantity must be > 0")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("Return items are immutable")
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Return items cannot be deleted")
