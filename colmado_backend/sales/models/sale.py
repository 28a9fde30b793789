# sales/models/sale.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class Sale(models.Model):
    """
    Represents a finalized POS transaction.

    GUARANTEES:
    - Amounts, payment method and date are immutable once created
    - Stock is mutated ONLY via the FIFO engine
    - cost_total = sum of this sale's FIFO consumptions at checkout, plus
      the fallback cost of any units no lot covered
    - Safe for accounting, ITBIS aggregation and audits

    Mutable after creation:
    - cost_total / ncf / journal_entry (written once inside checkout)
    - status (completed -> partially_returned -> returned)
    """

    STATUS_COMPLETED = "completed"
    STATUS_PARTIALLY_RETURNED = "partially_returned"
    STATUS_RETURNED = "returned"

    STATUS_CHOICES = [
        (STATUS_COMPLETED, "Completed"),
        (STATUS_PARTIALLY_RETURNED, "Partially returned"),
        (STATUS_RETURNED, "Returned"),
    ]

    PAYMENT_CASH = "cash"
    PAYMENT_CARD = "card"
    PAYMENT_TRANSFER = "transfer"
    PAYMENT_CREDIT = "credit"

    PAYMENT_CHOICES = [
        (PAYMENT_CASH, "Efectivo"),
        (PAYMENT_CARD, "Tarjeta"),
        (PAYMENT_TRANSFER, "Transferencia"),
        (PAYMENT_CREDIT, "Crédito (fiao)"),
    ]

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    receipt_number = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        help_text="System-generated receipt number",
    )

    sale_date = models.DateField(default=timezone.localdate)

    shift = models.ForeignKey(
        "sales.CashShift",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sales",
    )

    payment_method = models.CharField(max_length=16, choices=PAYMENT_CHOICES)

    customer_name = models.CharField(max_length=150, blank=True, default="")
    customer_rnc = models.CharField(max_length=11, blank=True, default="")
    ncf = models.CharField(max_length=13, blank=True, default="")

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_COMPLETED,
    )

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    itbis_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    cost_total = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Cost of goods sold for this sale (FIFO-derived).",
    )

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
        ordering = ["-sale_date", "-id"]
        indexes = [
            models.Index(fields=["sale_date"], name="sale_date_idx"),
            models.Index(fields=["status"], name="sale_status_idx"),
            models.Index(fields=["payment_method"], name="sale_payment_method_idx"),
        ]

    _IMMUTABLE_FIELDS = (
        "sale_date",
        "payment_method",
        "subtotal",
        "itbis_total",
        "total",
        "shift_id",
    )

    @property
    def gross_profit(self) -> Decimal:
        return self.subtotal - self.cost_total

    def _validate_immutable(self, previous: "Sale"):
        for field in self._IMMUTABLE_FIELDS:
            if getattr(self, field) != getattr(previous, field):
                raise ValidationError(f"Sale field '{field}' cannot be changed after checkout.")

    def clean(self):
        if self.subtotal + self.itbis_total != self.total:
            raise ValidationError("subtotal + itbis_total must equal total")

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            previous = Sale.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_immutable(previous)

        if not self.receipt_number:
            prefix = timezone.now().strftime("V%Y%m%d")
            self.receipt_number = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"

        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Sales cannot be deleted; process a return instead")

    def __str__(self):
        return f"{self.receipt_number} | {self.total}"
