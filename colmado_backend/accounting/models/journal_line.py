# accounting/models/journal_line.py

"""
======================================================
PATH: accounting/models/journal_line.py
======================================================
JOURNAL LINE MODEL

One (account, debit, credit) line of a journal entry.

Guarantees:
- Immutable once created (no updates, no deletes)
- Exactly one side is positive; the other is zero
- Reporting uses journal_entry.entry_date and journal_entry.status
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.account import Account
from accounting.models.journal import JournalEntry


class JournalLine(models.Model):
    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.PROTECT,
        related_name="lines",
    )
    line_no = models.PositiveSmallIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

    debit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    credit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    memo = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        verbose_name = "Journal Line"
        verbose_name_plural = "Journal Lines"
        ordering = ["journal_entry_id", "line_no"]
        indexes = [
            models.Index(fields=["account"], name="jl_account_idx"),
            models.Index(fields=["journal_entry"], name="jl_entry_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["journal_entry", "line_no"],
                name="uniq_journal_line_no",
            ),
            models.CheckConstraint(
                condition=(Q(debit__gt=0) & Q(credit=0)) | (Q(debit=0) & Q(credit__gt=0)),
                name="chk_journal_line_one_side",
            ),
        ]

    def __str__(self):
        side = f"Dr {self.debit}" if self.debit else f"Cr {self.credit}"
        return f"{side} → {self.account}"

    @property
    def signed_amount(self) -> Decimal:
        return self.debit - self.credit

    def clean(self):
        if self.debit < 0 or self.credit < 0:
            raise ValidationError("Debit or credit cannot be negative")
        if (self.debit > 0) == (self.credit > 0):
            raise ValidationError("A journal line must have exactly one of debit or credit")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalLine records are immutable and cannot be modified")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalLine records are immutable and cannot be deleted")
