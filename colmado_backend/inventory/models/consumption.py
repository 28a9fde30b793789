# inventory/models/consumption.py

"""
COST CONSUMPTION (APPEND-ONLY)

One allocation of quantity from one lot to one outbound transaction.

Rules:
- Created only by inventory.services.fifo, in the same transaction as the
  lot adjustment it records
- Immutable: a return is a NEW row of type "return" pointing at the row it
  compensates via `reverses`
- unit_cost is the lot's cost at allocation time; total_cost is
  quantity * unit_cost rounded half-up to cents
"""

import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from inventory.models.lot import InventoryLot
from inventory.models.product import Product


class CostConsumption(models.Model):
    TYPE_SALE = "sale"
    TYPE_RETURN = "return"
    TYPE_ADJUSTMENT = "adjustment"
    TYPE_LOSS = "loss"

    TYPE_CHOICES = [
        (TYPE_SALE, "Sale"),
        (TYPE_RETURN, "Return"),
        (TYPE_ADJUSTMENT, "Adjustment"),
        (TYPE_LOSS, "Loss"),
    ]

    OUTBOUND_TYPES = (TYPE_SALE, TYPE_ADJUSTMENT, TYPE_LOSS)

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    lot = models.ForeignKey(
        InventoryLot,
        on_delete=models.PROTECT,
        related_name="consumptions",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="consumptions",
    )

    consumption_type = models.CharField(max_length=12, choices=TYPE_CHOICES)

    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="cost_consumptions",
    )
    sale_item = models.ForeignKey(
        "sales.SaleItem",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="cost_consumptions",
    )
    sale_return = models.ForeignKey(
        "sales.SaleReturn",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="cost_consumptions",
    )
    reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Free-text source reference for adjustments and losses",
    )

    reverses = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversals",
    )

    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    unit_cost = models.DecimalField(max_digits=12, decimal_places=4)
    total_cost = models.DecimalField(max_digits=14, decimal_places=2)

    date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["product", "consumption_type"], name="consumption_product_type_idx"),
            models.Index(fields=["lot"], name="consumption_lot_idx"),
            models.Index(fields=["sale"], name="consumption_sale_idx"),
            models.Index(fields=["date"], name="consumption_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_consumption_qty_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(total_cost__gte=0),
                name="chk_consumption_total_cost_gte_zero",
            ),
            models.CheckConstraint(
                condition=~Q(consumption_type="return") | Q(reverses__isnull=False),
                name="chk_return_consumption_has_origin",
            ),
        ]

    def __str__(self):
        return f"{self.consumption_type} {self.quantity} @ {self.unit_cost} from lot {self.lot_id}"

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError("Consumption quantity must be > 0")
        if self.lot_id and self.product_id and self.lot.product_id != self.product_id:
            raise ValidationError("Consumption product must match the lot's product")
        if self.consumption_type == self.TYPE_RETURN and not self.reverses_id:
            raise ValidationError("Return consumptions must reference the consumption they reverse")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("Cost consumptions are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Cost consumptions cannot be deleted")
