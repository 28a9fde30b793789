"""
======================================================
PATH: audit/migrations/0001_initial.py
======================================================
MIGRATION: CREATE AuditLogEntry (APPEND-ONLY AUDIT TRAIL)
"""

from __future__ import annotations

import uuid

import django.core.serializers.json
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                (
                    "action",
                    models.CharField(
                        max_length=40,
                        choices=[
                            ("fifo_lot_created", "FIFO lot created"),
                            ("fifo_lot_expired", "FIFO lot expired"),
                            ("fifo_lot_returned", "FIFO lot returned to supplier"),
                            ("fifo_consumption", "FIFO consumption"),
                            ("fifo_consumption_reversed", "FIFO consumption reversed"),
                            ("journal_entry_created", "Journal entry created"),
                            ("journal_entry_voided", "Journal entry voided"),
                            ("itbis_recalculated", "ITBIS recalculated"),
                            ("period_closed", "Period closed"),
                            ("period_filed", "Period filed"),
                            ("period_reopened", "Period reopened"),
                            ("ncf_issued", "NCF issued"),
                            ("ncf_voided", "NCF voided"),
                            ("shift_closed", "Shift closed"),
                            ("settlement_reconciled", "Settlement reconciled"),
                            ("settlement_disputed", "Settlement disputed"),
                            ("purchase_voided", "Purchase invoice voided"),
                            ("inventory_loss", "Inventory loss recorded"),
                        ],
                    ),
                ),
                (
                    "entity_type",
                    models.CharField(
                        max_length=30,
                        choices=[
                            ("fifo_lot", "FIFO lot"),
                            ("journal_entry", "Journal entry"),
                            ("itbis_period", "ITBIS period"),
                            ("ncf", "NCF"),
                            ("cash_shift", "Cash shift"),
                            ("card_settlement", "Card settlement"),
                            ("purchase_invoice", "Purchase invoice"),
                            ("product", "Product"),
                        ],
                    ),
                ),
                ("entity_id", models.CharField(max_length=64)),
                ("actor", models.CharField(default="system", max_length=150)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "before",
                    models.JSONField(blank=True, null=True, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                (
                    "after",
                    models.JSONField(blank=True, null=True, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                (
                    "details",
                    models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log Entries",
                "ordering": ["-timestamp", "-id"],
                "indexes": [
                    models.Index(fields=["action", "timestamp"], name="audit_action_ts_idx"),
                    models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
                    models.Index(fields=["timestamp"], name="audit_timestamp_idx"),
                ],
            },
        ),
    ]
