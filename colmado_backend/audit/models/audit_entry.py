# audit/models/audit_entry.py

"""
======================================================
PATH: audit/models/audit_entry.py
======================================================
AUDIT LOG ENTRY

One durable, append-only record of a sensitive action.

Guarantees:
- Immutable once created (no updates, no deletes)
- Carries before/after snapshots where the action mutates state
- actor is a plain string so entries survive user deletion and can be
  written by devices that only know a display name
"""

from __future__ import annotations

import uuid

from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone


class AuditLogEntry(models.Model):
    class Action(models.TextChoices):
        FIFO_LOT_CREATED = "fifo_lot_created", "FIFO lot created"
        FIFO_LOT_EXPIRED = "fifo_lot_expired", "FIFO lot expired"
        FIFO_LOT_RETURNED = "fifo_lot_returned", "FIFO lot returned to supplier"
        FIFO_CONSUMPTION = "fifo_consumption", "FIFO consumption"
        FIFO_CONSUMPTION_REVERSED = "fifo_consumption_reversed", "FIFO consumption reversed"
        JOURNAL_ENTRY_CREATED = "journal_entry_created", "Journal entry created"
        JOURNAL_ENTRY_VOIDED = "journal_entry_voided", "Journal entry voided"
        ITBIS_RECALCULATED = "itbis_recalculated", "ITBIS recalculated"
        PERIOD_CLOSED = "period_closed", "Period closed"
        PERIOD_FILED = "period_filed", "Period filed"
        PERIOD_REOPENED = "period_reopened", "Period reopened"
        NCF_ISSUED = "ncf_issued", "NCF issued"
        NCF_VOIDED = "ncf_voided", "NCF voided"
        SHIFT_CLOSED = "shift_closed", "Shift closed"
        SETTLEMENT_RECONCILED = "settlement_reconciled", "Settlement reconciled"
        SETTLEMENT_DISPUTED = "settlement_disputed", "Settlement disputed"
        PURCHASE_VOIDED = "purchase_voided", "Purchase invoice voided"
        INVENTORY_LOSS = "inventory_loss", "Inventory loss recorded"

    class EntityType(models.TextChoices):
        FIFO_LOT = "fifo_lot", "FIFO lot"
        JOURNAL_ENTRY = "journal_entry", "Journal entry"
        ITBIS_PERIOD = "itbis_period", "ITBIS period"
        NCF = "ncf", "NCF"
        CASH_SHIFT = "cash_shift", "Cash shift"
        CARD_SETTLEMENT = "card_settlement", "Card settlement"
        PURCHASE_INVOICE = "purchase_invoice", "Purchase invoice"
        PRODUCT = "product", "Product"

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    action = models.CharField(max_length=40, choices=Action.choices)
    entity_type = models.CharField(max_length=30, choices=EntityType.choices)
    entity_id = models.CharField(max_length=64)

    actor = models.CharField(max_length=150, default="system")
    timestamp = models.DateTimeField(default=timezone.now)

    before = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    after = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    details = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    class Meta:
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["action", "timestamp"], name="audit_action_ts_idx"),
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
            models.Index(fields=["timestamp"], name="audit_timestamp_idx"),
        ]
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log Entries"

    def __str__(self):
        return f"{self.action} {self.entity_type}:{self.entity_id} by {self.actor}"

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("Audit log entries are append-only")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Audit log entries cannot be deleted")
