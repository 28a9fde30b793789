# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Represents a single accounting transaction (journal header).

Guarantees:
- Lines and amounts are immutable once created
- Only the lifecycle fields may change: pending -> posted -> voided
- A posted entry always has total_debit == total_credit (DB check too)
- One live (non-voided) entry per (source_type, source_id)
- Never deleted; a voided entry keeps its lines for audit
- entry_date is the accounting effective date (period locks, reports)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q


class JournalEntry(models.Model):
    STATUS_PENDING = "pending"
    STATUS_POSTED = "posted"
    STATUS_VOIDED = "voided"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_POSTED, "Posted"),
        (STATUS_VOIDED, "Voided"),
    ]

    SOURCE_SALE = "sale"
    SOURCE_PURCHASE = "purchase"
    SOURCE_RETURN = "return"
    SOURCE_ADJUSTMENT = "adjustment"
    SOURCE_SETTLEMENT = "settlement"
    SOURCE_SHIFT_CLOSE = "shift_close"
    SOURCE_SUPPLIER_PAYMENT = "supplier_payment"
    SOURCE_MANUAL = "manual"

    SOURCE_CHOICES = [
        (SOURCE_SALE, "Sale"),
        (SOURCE_PURCHASE, "Purchase"),
        (SOURCE_RETURN, "Return"),
        (SOURCE_ADJUSTMENT, "Inventory adjustment"),
        (SOURCE_SETTLEMENT, "Card settlement"),
        (SOURCE_SHIFT_CLOSE, "Shift close"),
        (SOURCE_SUPPLIER_PAYMENT, "Supplier payment"),
        (SOURCE_MANUAL, "Manual"),
    ]

    LIFECYCLE_FIELDS = frozenset(
        {"status", "posted_at", "voided_at", "voided_by", "void_reason"}
    )

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    entry_number = models.CharField(max_length=32, unique=True)
    entry_date = models.DateField()
    description = models.TextField()

    source_type = models.CharField(max_length=20, choices=SOURCE_CHOICES)
    source_id = models.CharField(max_length=64, blank=True, default="")

    status = models.CharField(
        max_length=8, choices=STATUS_CHOICES, default=STATUS_PENDING
    )

    total_debit = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    total_credit = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    created_by = models.CharField(max_length=150, default="system")
    created_at = models.DateTimeField(auto_now_add=True)
    posted_at = models.DateTimeField(null=True, blank=True)

    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.CharField(max_length=150, blank=True, default="")
    void_reason = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-entry_date", "-id"]
        indexes = [
            models.Index(fields=["entry_date"], name="je_entry_date_idx"),
            models.Index(fields=["status", "entry_date"], name="je_status_date_idx"),
            models.Index(fields=["source_type", "source_id"], name="je_source_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["source_type", "source_id"],
                condition=~Q(source_id="") & ~Q(status="voided"),
                name="uniq_live_journal_per_source",
            ),
            models.CheckConstraint(
                condition=~Q(status="posted") | Q(total_debit=F("total_credit")),
                name="chk_posted_journal_balanced",
            ),
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"{self.entry_number} – {self.entry_date} ({self.status})"

    @property
    def is_posted(self) -> bool:
        return self.status == self.STATUS_POSTED

    def clean(self):
        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Journal entry description is required")

        if self.status == self.STATUS_POSTED and self.total_debit != self.total_credit:
            raise ValidationError("Posted journal entries must balance")

        if self.status == self.STATUS_VOIDED and not (self.void_reason or "").strip():
            raise ValidationError("Voided journal entries require a void reason")

    def save(self, *args, **kwargs):
        if self.pk:
            update_fields = kwargs.get("update_fields")
            if not update_fields or not set(update_fields) <= self.LIFECYCLE_FIELDS:
                raise ValidationError(
                    "JournalEntry amounts and lines are immutable; only lifecycle fields may change"
                )

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalEntry records are immutable and cannot be deleted")
