# inventory/models/lot.py

"""
INVENTORY LOT (FIFO COST LAYER)

Represents ONE purchase batch of ONE product.

CANONICAL MODEL:
- original_quantity, unit_cost, tax_rate, purchase_date, product are
  immutable after creation
- remaining_quantity is mutated ONLY by lot_store.adjust_remaining(), which
  issues a single conditional UPDATE (compare-and-decrement) and bumps version
- status follows remaining_quantity (active <-> depleted); expired and
  returned are terminal operator-set statuses excluded from FIFO
- Never deleted
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from inventory.models.product import Product


class InventoryLot(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_DEPLETED = "depleted"
    STATUS_EXPIRED = "expired"
    STATUS_RETURNED = "returned"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_DEPLETED, "Depleted"),
        (STATUS_EXPIRED, "Expired"),
        (STATUS_RETURNED, "Returned to supplier"),
    ]

    TERMINAL_STATUSES = (STATUS_EXPIRED, STATUS_RETURNED)

    IMMUTABLE_FIELDS = (
        "product_id",
        "purchase_date",
        "original_quantity",
        "unit_cost",
        "tax_rate",
    )

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="lots",
    )
    purchase_invoice = models.ForeignKey(
        "purchases.PurchaseInvoice",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="lots",
    )

    lot_number = models.CharField(max_length=64, blank=True, default="")
    purchase_date = models.DateField()
    expiration_date = models.DateField(null=True, blank=True)

    original_quantity = models.DecimalField(max_digits=14, decimal_places=3)
    remaining_quantity = models.DecimalField(max_digits=14, decimal_places=3)

    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        help_text="Tax-exclusive unit cost (COGS basis)",
    )
    unit_cost_inc_tax = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        help_text="unit_cost * (1 + tax_rate)",
    )
    tax_rate = models.DecimalField(
        max_digits=5, decimal_places=4, default=Decimal("0.18")
    )

    status = models.CharField(
        max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE
    )
    version = models.PositiveIntegerField(default=0)

    depleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["purchase_date", "id"]
        indexes = [
            models.Index(fields=["product", "status", "purchase_date"], name="lot_fifo_idx"),
            models.Index(fields=["expiration_date"], name="lot_expiration_idx"),
            models.Index(fields=["purchase_date"], name="lot_purchase_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(original_quantity__gt=0),
                name="chk_lot_original_qty_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(remaining_quantity__gte=0),
                name="chk_lot_remaining_gte_zero",
            ),
            models.CheckConstraint(
                condition=Q(remaining_quantity__lte=F("original_quantity")),
                name="chk_lot_remaining_lte_original",
            ),
            models.CheckConstraint(
                condition=Q(unit_cost__gt=0),
                name="chk_lot_unit_cost_gt_zero",
            ),
        ]

    def __str__(self):
        label = self.lot_number or str(self.uuid)[:8]
        return f"{self.product.sku} lot {label} ({self.remaining_quantity}/{self.original_quantity})"

    @property
    def is_available(self) -> bool:
        return self.status == self.STATUS_ACTIVE and self.remaining_quantity > 0

    def clean(self):
        if self.original_quantity is None or self.original_quantity <= 0:
            raise ValidationError("original_quantity must be > 0")
        if self.unit_cost is None or self.unit_cost <= 0:
            raise ValidationError("unit_cost must be > 0")
        if self.remaining_quantity < 0 or self.remaining_quantity > self.original_quantity:
            raise ValidationError("remaining_quantity must be within [0, original_quantity]")
        if self.expiration_date and self.purchase_date and self.expiration_date < self.purchase_date:
            raise ValidationError("expiration_date cannot be before purchase_date")

    def save(self, *args, **kwargs):
        if self.pk:
            previous = (
                InventoryLot.objects.filter(pk=self.pk)
                .values(*self.IMMUTABLE_FIELDS)
                .first()
            )
            if previous:
                for field in self.IMMUTABLE_FIELDS:
                    if previous[field] != getattr(self, field):
                        raise ValidationError(f"{field} is immutable once the lot exists")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Inventory lots are never deleted; transition their status instead")
