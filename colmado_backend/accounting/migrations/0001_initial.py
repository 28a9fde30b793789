"""
======================================================
PATH: accounting/migrations/0001_initial.py
======================================================
MIGRATION: CREATE LEDGER TABLES

Account, JournalEntry, JournalLine, EntrySequence, CardSettlement.
CardSettlement.sales (M2M to sales.Sale) is added in 0002 because the
sales tables reference the journal first.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=10, unique=True)),
                ("name", models.CharField(max_length=150)),
                (
                    "account_type",
                    models.CharField(
                        max_length=20,
                        choices=[
                            ("ASSET", "Activo"),
                            ("LIABILITY", "Pasivo"),
                            ("EQUITY", "Capital"),
                            ("REVENUE", "Ingreso"),
                            ("EXPENSE", "Gasto / Costo"),
                        ],
                    ),
                ),
                (
                    "is_system",
                    models.BooleanField(
                        default=False,
                        help_text="Seeded from the DR chart and referenced by posting rules",
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["code"],
                "indexes": [models.Index(fields=["account_type"], name="acct_type_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(code__regex="^[0-9]{4,10}$"),
                        name="chk_account_code_numeric",
                    ),
                    models.CheckConstraint(
                        condition=~models.Q(name=""),
                        name="chk_account_name_not_blank",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(is_active=True) | models.Q(is_system=False),
                        name="chk_system_account_active",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="EntrySequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=32, unique=True)),
                ("last_number", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Entry Sequence",
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("entry_number", models.CharField(max_length=32, unique=True)),
                ("entry_date", models.DateField()),
                ("description", models.TextField()),
                (
                    "source_type",
                    models.CharField(
                        max_length=20,
                        choices=[
                            ("sale", "Sale"),
                            ("purchase", "Purchase"),
                            ("return", "Return"),
                            ("adjustment", "Inventory adjustment"),
                            ("settlement", "Card settlement"),
                            ("shift_close", "Shift close"),
                            ("supplier_payment", "Supplier payment"),
                            ("manual", "Manual"),
                        ],
                    ),
                ),
                ("source_id", models.CharField(blank=True, default="", max_length=64)),
                (
                    "status",
                    models.CharField(
                        max_length=8,
                        choices=[("pending", "Pending"), ("posted", "Posted"), ("voided", "Voided")],
                        default="pending",
                    ),
                ),
                ("total_debit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("total_credit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("created_by", models.CharField(default="system", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("voided_by", models.CharField(blank=True, default="", max_length=150)),
                ("void_reason", models.CharField(blank=True, default="", max_length=255)),
            ],
            options={
                "verbose_name": "Journal Entry",
                "verbose_name_plural": "Journal Entries",
                "ordering": ["-entry_date", "-id"],
                "indexes": [
                    models.Index(fields=["entry_date"], name="je_entry_date_idx"),
                    models.Index(fields=["status", "entry_date"], name="je_status_date_idx"),
                    models.Index(fields=["source_type", "source_id"], name="je_source_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["source_type", "source_id"],
                        condition=~models.Q(source_id="") & ~models.Q(status="voided"),
                        name="uniq_live_journal_per_source",
                    ),
                    models.CheckConstraint(
                        condition=~models.Q(status="posted") | models.Q(total_debit=models.F("total_credit")),
                        name="chk_posted_journal_balanced",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveSmallIntegerField()),
                ("debit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("credit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("memo", models.CharField(blank=True, default="", max_length=255)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="journal_lines",
                        to="accounting.account",
                    ),
                ),
                (
                    "journal_entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lines",
                        to="accounting.journalentry",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Line",
                "verbose_name_plural": "Journal Lines",
                "ordering": ["journal_entry_id", "line_no"],
                "indexes": [
                    models.Index(fields=["account"], name="jl_account_idx"),
                    models.Index(fields=["journal_entry"], name="jl_entry_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=["journal_entry", "line_no"], name="uniq_journal_line_no"),
                    models.CheckConstraint(
                        condition=(models.Q(debit__gt=0) & models.Q(credit=0))
                        | (models.Q(debit=0) & models.Q(credit__gt=0)),
                        name="chk_journal_line_one_side",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CardSettlement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("settlement_date", models.DateField()),
                ("processor", models.CharField(max_length=80)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("gross_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("commission", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("tax_on_commission", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("itbis_retained", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("net_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "status",
                    models.CharField(
                        max_length=12,
                        choices=[("pending", "Pending"), ("reconciled", "Reconciled"), ("disputed", "Disputed")],
                        default="pending",
                    ),
                ),
                ("dispute_reason", models.CharField(blank=True, default="", max_length=255)),
                ("created_by", models.CharField(default="system", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("reconciled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "journal_entry",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="card_settlement",
                        to="accounting.journalentry",
                    ),
                ),
            ],
            options={
                "ordering": ["-settlement_date", "-id"],
                "indexes": [
                    models.Index(fields=["settlement_date", "status"], name="settlement_date_status_idx"),
                ],
            },
        ),
    ]
