# accounting/models/settlement.py

"""
CARD SETTLEMENT

One batch deposit from a card processor (Azul, CardNET, ...).

Money:
- gross_amount      card sales covered by the batch
- commission        processor fee
- tax_on_commission ITBIS the processor charges on its fee (creditable)
- itbis_retained    ITBIS withheld by the processor (Norma 08-04)
- net_amount        what actually lands in the bank:
                    gross - commission - tax_on_commission - itbis_retained
                    With ITBIS["CARD_RETENTION_RATE"] = 0 (env ITBIS_CARD_RETENTION_RATE)
                    this is the plain gross - commission - tax_on_commission;
                    the 2% retention default makes itbis_retained non-zero.

Lifecycle: pending -> reconciled (posts the journal entry) | disputed
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class CardSettlement(models.Model):
    STATUS_PENDING = "pending"
    STATUS_RECONCILED = "reconciled"
    STATUS_DISPUTED = "disputed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_RECONCILED, "Reconciled"),
        (STATUS_DISPUTED, "Disputed"),
    ]

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    settlement_date = models.DateField()
    processor = models.CharField(max_length=80)
    reference = models.CharField(max_length=100, blank=True, default="")

    gross_amount = models.DecimalField(max_digits=14, decimal_places=2)
    commission = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_on_commission = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    itbis_retained = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    net_amount = models.DecimalField(max_digits=14, decimal_places=2)

    sales = models.ManyToManyField(
        "sales.Sale",
        blank=True,
        related_name="card_settlements",
    )

    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_PENDING)
    journal_entry = models.OneToOneField(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="card_settlement",
    )
    dispute_reason = models.CharField(max_length=255, blank=True, default="")

    created_by = models.CharField(max_length=150, default="system")
    created_at = models.DateTimeField(auto_now_add=True)
    reconciled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-settlement_date", "-id"]
        indexes = [
            models.Index(fields=["settlement_date", "status"], name="settlement_date_status_idx"),
        ]

    def __str__(self):
        return f"{self.processor} {self.settlement_date} {self.gross_amount} ({self.status})"

    @property
    def expected_net(self) -> Decimal:
        return self.gross_amount - self.commission - self.tax_on_commission - self.itbis_retained

    def clean(self):
        if self.gross_amount is None or self.gross_amount <= 0:
            raise ValidationError("gross_amount must be > 0")
        for name in ("commission", "tax_on_commission", "itbis_retained"):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} cannot be negative")
        if self.net_amount != self.expected_net:
            raise ValidationError(
                "net_amount must equal gross - commission - tax_on_commission - itbis_retained"
            )
        if self.net_amount < 0:
            raise ValidationError("Deductions exceed the gross amount")

        if self.status == self.STATUS_RECONCILED:
            je = self.journal_entry
            if je is None or je.status != je.STATUS_POSTED:
                raise ValidationError("Reconciled settlements must reference a posted journal entry")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Card settlements cannot be deleted")
