"""
======================================================
PATH: taxes/migrations/0001_initial.py
======================================================
MIGRATION: CREATE ITBIS PERIODS, RETENTIONS AND NCF TABLES

NCFUsage.sale is added in 0002 once sales.Sale exists.
"""

from __future__ import annotations

from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


def _money(**extra):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, **extra)


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ITBISPeriodSummary",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("period", models.CharField(help_text="YYYY-MM", max_length=7, unique=True)),
                ("itbis_18_collected", _money()),
                ("itbis_16_collected", _money()),
                ("sales_exempt", _money(help_text="Exempt sales base")),
                ("itbis_18_paid", _money()),
                ("itbis_16_paid", _money()),
                ("purchases_exempt", _money(help_text="Exempt purchases base")),
                ("retained_by_cards", _money()),
                ("other_retentions", _money()),
                ("total_collected", _money()),
                ("total_paid", _money()),
                ("total_retained", _money()),
                ("net_due", _money(help_text="Negative means a credit carried forward")),
                ("sales_count", models.PositiveIntegerField(default=0)),
                ("returns_count", models.PositiveIntegerField(default=0)),
                ("purchases_count", models.PositiveIntegerField(default=0)),
                ("settlements_count", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[("open", "Open"), ("closed", "Closed"), ("filed", "Filed")],
                        default="open",
                        max_length=8,
                    ),
                ),
                ("recalculated_at", models.DateTimeField(blank=True, null=True)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("closed_by", models.CharField(blank=True, default="", max_length=150)),
                ("filed_at", models.DateTimeField(blank=True, null=True)),
                ("dgii_confirmation", models.CharField(blank=True, default="", max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "ITBIS Period Summary",
                "verbose_name_plural": "ITBIS Period Summaries",
                "ordering": ["-period"],
            },
        ),
        migrations.CreateModel(
            name="ITBISRetention",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("retained_by", models.CharField(max_length=200)),
                ("retained_by_rnc", models.CharField(blank=True, default="", max_length=11)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("created_by", models.CharField(default="system", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-date", "-id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount__gt=0),
                        name="chk_itbis_retention_amount_gt_zero",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="NCFRange",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "ncf_type",
                    models.CharField(
                        choices=[
                            ("B01", "Crédito Fiscal"),
                            ("B02", "Consumidor Final"),
                            ("B04", "Nota de Crédito"),
                            ("B14", "Régimen Especial"),
                            ("B15", "Gubernamental"),
                            ("E31", "e-CF Crédito Fiscal"),
                            ("E32", "e-CF Consumo"),
                        ],
                        max_length=3,
                    ),
                ),
                ("start_number", models.PositiveBigIntegerField(default=1)),
                ("end_number", models.PositiveBigIntegerField()),
                (
                    "current_number",
                    models.PositiveBigIntegerField(default=0, help_text="Last number issued from this range"),
                ),
                ("expiration_date", models.DateField(blank=True, null=True)),
                ("authorization", models.CharField(blank=True, default="", max_length=64)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "NCF Range",
                "ordering": ["ncf_type", "start_number"],
                "indexes": [models.Index(fields=["ncf_type", "is_active"], name="ncf_range_type_active_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(end_number__gte=models.F("start_number")),
                        name="chk_ncf_range_bounds",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(current_number__lte=models.F("end_number")),
                        name="chk_ncf_current_within_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="NCFUsage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ncf", models.CharField(max_length=13, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("issued", "Issued"), ("voided", "Voided")],
                        default="issued",
                        max_length=8,
                    ),
                ),
                ("issued_at", models.DateTimeField(auto_now_add=True)),
                ("issued_by", models.CharField(default="system", max_length=150)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("voided_by", models.CharField(blank=True, default="", max_length=150)),
                ("void_reason", models.CharField(blank=True, default="", max_length=255)),
                (
                    "ncf_range",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="usages",
                        to="taxes.ncfrange",
                    ),
                ),
            ],
            options={
                "verbose_name": "NCF Usage",
                "ordering": ["-issued_at", "-id"],
            },
        ),
    ]
