# taxes/models/itbis_period.py

"""
======================================================
PATH: taxes/models/itbis_period.py
======================================================
ITBIS PERIOD SUMMARY (MONTHLY)

One row per YYYY-MM. Amounts are always RE-DERIVED from the contributing
transactions by taxes.services.itbis.accumulate_period(); nothing
increments them in place.

Status:
- open    -> postings allowed
- closed  -> postings dated in the period are rejected (PeriodClosedError)
- filed   -> declared to DGII; same lock as closed
Reopening is explicit and audited.
"""

from __future__ import annotations

import re
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

_MONEY = dict(max_digits=14, decimal_places=2, default=Decimal("0.00"))


class ITBISPeriodSummary(models.Model):
    STATUS_OPEN = "open"
    STATUS_CLOSED = "closed"
    STATUS_FILED = "filed"

    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_CLOSED, "Closed"),
        (STATUS_FILED, "Filed"),
    ]

    AMOUNT_FIELDS = (
        "itbis_18_collected",
        "itbis_16_collected",
        "sales_exempt",
        "itbis_18_paid",
        "itbis_16_paid",
        "purchases_exempt",
        "retained_by_cards",
        "other_retentions",
        "total_collected",
        "total_paid",
        "total_retained",
        "net_due",
    )
    COUNT_FIELDS = (
        "sales_count",
        "returns_count",
        "purchases_count",
        "settlements_count",
    )

    period = models.CharField(max_length=7, unique=True, help_text="YYYY-MM")

    # Collected (sales, net of returns)
    itbis_18_collected = models.DecimalField(**_MONEY)
    itbis_16_collected = models.DecimalField(**_MONEY)
    sales_exempt = models.DecimalField(**_MONEY, help_text="Exempt sales base")

    # Paid (purchases)
    itbis_18_paid = models.DecimalField(**_MONEY)
    itbis_16_paid = models.DecimalField(**_MONEY)
    purchases_exempt = models.DecimalField(**_MONEY, help_text="Exempt purchases base")

    # Retained by third parties
    retained_by_cards = models.DecimalField(**_MONEY)
    other_retentions = models.DecimalField(**_MONEY)

    total_collected = models.DecimalField(**_MONEY)
    total_paid = models.DecimalField(**_MONEY)
    total_retained = models.DecimalField(**_MONEY)
    net_due = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Negative means a credit carried forward",
    )

    sales_count = models.PositiveIntegerField(default=0)
    returns_count = models.PositiveIntegerField(default=0)
    purchases_count = models.PositiveIntegerField(default=0)
    settlements_count = models.PositiveIntegerField(default=0)

    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default=STATUS_OPEN)

    recalculated_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.CharField(max_length=150, blank=True, default="")
    filed_at = models.DateTimeField(null=True, blank=True)
    dgii_confirmation = models.CharField(max_length=64, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-period"]
        verbose_name = "ITBIS Period Summary"
        verbose_name_plural = "ITBIS Period Summaries"

    def __str__(self):
        return f"ITBIS {self.period} ({self.status})"

    @property
    def is_locked(self) -> bool:
        return self.status in (self.STATUS_CLOSED, self.STATUS_FILED)

    def clean(self):
        self.period = (self.period or "").strip()
        if not PERIOD_RE.match(self.period):
            raise ValidationError("period must be YYYY-MM")

        expected = self.total_collected - self.total_paid - self.total_retained
        if self.net_due != expected:
            raise ValidationError(
                f"net_due must equal collected - paid - retained ({expected})"
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("ITBIS period summaries cannot be deleted")


class ITBISRetention(models.Model):
    """
    ITBIS withheld by a customer (government bodies, large taxpayers) on
    our sales. Card processor retentions live on CardSettlement.
    """

    date = models.DateField()
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    retained_by = models.CharField(max_length=200)
    retained_by_rnc = models.CharField(max_length=11, blank=True, default="")
    reference = models.CharField(max_length=100, blank=True, default="")

    created_by = models.CharField(max_length=150, default="system")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_itbis_retention_amount_gt_zero",
            ),
        ]

    def __str__(self):
        return f"Retención {self.amount} ({self.retained_by}, {self.date})"
