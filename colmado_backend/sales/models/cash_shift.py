# sales/models/cash_shift.py

"""
CASH SHIFT (TURNO DE CAJA)

One cashier drawer session. Totals are aggregated at close
(accounting.services.closing_service.close_shift); a closed shift is
terminal.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

_MONEY = {"max_digits": 14, "decimal_places": 2, "default": Decimal("0.00")}


class CashShift(models.Model):
    STATUS_OPEN = "open"
    STATUS_CLOSED = "closed"

    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_CLOSED, "Closed"),
    ]

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    shift_number = models.CharField(max_length=32, unique=True, blank=True)

    opened_at = models.DateTimeField(default=timezone.now)
    opened_by = models.CharField(max_length=150)
    opening_cash = models.DecimalField(**_MONEY)

    cash_in = models.DecimalField(**_MONEY, help_text="Cash added to the drawer")
    cash_out = models.DecimalField(**_MONEY, help_text="Cash removed (payouts)")

    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default=STATUS_OPEN)
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.CharField(max_length=150, blank=True, default="")

    counted_cash = models.DecimalField(**_MONEY)
    expected_cash = models.DecimalField(**_MONEY)
    cash_difference = models.DecimalField(**_MONEY)

    sales_count = models.PositiveIntegerField(default=0)
    total_sales = models.DecimalField(**_MONEY)
    cash_sales = models.DecimalField(**_MONEY)
    card_sales = models.DecimalField(**_MONEY)
    transfer_sales = models.DecimalField(**_MONEY)
    credit_sales = models.DecimalField(**_MONEY)
    returns_total = models.DecimalField(**_MONEY)
    cash_refunds = models.DecimalField(**_MONEY)
    cogs_total = models.DecimalField(**_MONEY)

    notes = models.TextField(blank=True, default="")

    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        ordering = ["-opened_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["opened_by"],
                condition=Q(status="open"),
                name="uniq_open_shift_per_cashier",
            ),
        ]

    def __str__(self):
        return f"Turno {self.shift_number} ({self.status})"

    @property
    def is_open(self) -> bool:
        return self.status == self.STATUS_OPEN

    def clean(self):
        if self.opening_cash < 0 or self.cash_in < 0 or self.cash_out < 0:
            raise ValidationError("Cash amounts cannot be negative")

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            previous = CashShift.objects.filter(pk=self.pk).values_list("status", flat=True).first()
            if previous == self.STATUS_CLOSED:
                raise ValidationError("Closed shifts are immutable")

        if not self.shift_number:
            prefix = timezone.now().strftime("T%Y%m%d")
            self.shift_number = f"{prefix}-{uuid.uuid4().hex[:6].upper()}"

        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Cash shifts cannot be deleted")
