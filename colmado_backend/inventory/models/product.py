# inventory/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class Product(models.Model):
    """
    Sellable item.

    Stock is NOT stored here: on-hand quantity is always the sum of the
    remaining quantity of the product's lots.
    """

    TAX_RATE_18 = Decimal("0.18")
    TAX_RATE_16 = Decimal("0.16")
    TAX_EXEMPT = Decimal("0.00")

    TAX_RATE_CHOICES = [
        (TAX_RATE_18, "ITBIS 18%"),
        (TAX_RATE_16, "ITBIS 16%"),
        (TAX_EXEMPT, "Exento"),
    ]

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=200)

    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        choices=TAX_RATE_CHOICES,
        default=TAX_RATE_18,
    )
    price_includes_tax = models.BooleanField(
        default=True,
        help_text="Shelf prices in DR retail are usually ITBIS-inclusive",
    )
    sale_price = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    fallback_unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Tax-exclusive cost used to value stock that has no lot",
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="product_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(tax_rate__gte=0) & Q(tax_rate__lt=1),
                name="chk_product_tax_rate_range",
            ),
        ]

    def __str__(self):
        return f"{self.sku} – {self.name}"

    def clean(self):
        self.sku = (self.sku or "").strip()
        self.name = (self.name or "").strip()
        if not self.sku:
            raise ValidationError("Product SKU is required")
        if not self.name:
            raise ValidationError("Product name is required")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
