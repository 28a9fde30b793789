"""
======================================================
PATH: sales/migrations/0001_initial.py
======================================================
MIGRATION: CREATE CashShift, Sale, SaleItem, SaleReturn, SaleReturnItem
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

PAYMENT_CHOICES = [
    ("cash", "Efectivo"),
    ("card", "Tarjeta"),
    ("transfer", "Transferencia"),
    ("credit", "Crédito (fiao)"),
]


def _money(**extra):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, **extra)


def _journal_fk():
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.PROTECT,
        related_name="+",
        to="accounting.journalentry",
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("accounting", "0001_initial"),
        ("inventory", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CashShift",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("shift_number", models.CharField(blank=True, max_length=32, unique=True)),
                ("opened_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("opened_by", models.CharField(max_length=150)),
                ("opening_cash", _money()),
                ("cash_in", _money(help_text="Cash added to the drawer")),
                ("cash_out", _money(help_text="Cash removed (payouts)")),
                (
                    "status",
                    models.CharField(
                        choices=[("open", "Open"), ("closed", "Closed")], default="open", max_length=8
                    ),
                ),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("closed_by", models.CharField(blank=True, default="", max_length=150)),
                ("counted_cash", _money()),
                ("expected_cash", _money()),
                ("cash_difference", _money()),
                ("sales_count", models.PositiveIntegerField(default=0)),
                ("total_sales", _money()),
                ("cash_sales", _money()),
                ("card_sales", _money()),
                ("transfer_sales", _money()),
                ("credit_sales", _money()),
                ("returns_total", _money()),
                ("cash_refunds", _money()),
                ("cogs_total", _money()),
                ("notes", models.TextField(blank=True, default="")),
                ("journal_entry", _journal_fk()),
            ],
            options={
                "ordering": ["-opened_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(status="open"),
                        fields=["opened_by"],
                        name="uniq_open_shift_per_cashier",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                (
                    "receipt_number",
                    models.CharField(
                        blank=True, help_text="System-generated receipt number", max_length=64, unique=True
                    ),
                ),
                ("sale_date", models.DateField(default=django.utils.timezone.localdate)),
                ("payment_method", models.CharField(choices=PAYMENT_CHOICES, max_length=16)),
                ("customer_name", models.CharField(blank=True, default="", max_length=150)),
                ("customer_rnc", models.CharField(blank=True, default="", max_length=11)),
                ("ncf", models.CharField(blank=True, default="", max_length=13)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("completed", "Completed"),
                            ("partially_returned", "Partially returned"),
                            ("returned", "Returned"),
                        ],
                        default="completed",
                        max_length=20,
                    ),
                ),
                ("subtotal", _money()),
                ("itbis_total", _money()),
                ("total", _money()),
                ("cost_total", _money(help_text="Cost of goods sold for this sale (FIFO-derived).")),
                ("created_by", models.CharField(default="system", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("journal_entry", _journal_fk()),
                (
                    "shift",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="sales.cashshift",
                    ),
                ),
            ],
            options={
                "ordering": ["-sale_date", "-id"],
                "indexes": [
                    models.Index(fields=["sale_date"], name="sale_date_idx"),
                    models.Index(fields=["status"], name="sale_status_idx"),
                    models.Index(fields=["payment_method"], name="sale_payment_method_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("tax_rate", models.DecimalField(decimal_places=4, max_digits=5)),
                ("price_includes_tax", models.BooleanField(default=True)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=14)),
                ("itbis", models.DecimalField(decimal_places=2, max_digits=14)),
                ("total", models.DecimalField(decimal_places=2, max_digits=14)),
                ("cost_total", _money(help_text="FIFO cost of the allocated units.")),
                (
                    "unallocated_quantity",
                    models.DecimalField(
                        decimal_places=3,
                        default=Decimal("0"),
                        help_text="Units sold without lot coverage (partial FIFO allocation).",
                        max_digits=14,
                    ),
                ),
                (
                    "unallocated_cost",
                    _money(help_text="unallocated_quantity x product fallback cost, booked as COGS."),
                ),
                ("returned_quantity", models.DecimalField(decimal_places=3, default=Decimal("0"), max_digits=14)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_items",
                        to="inventory.product",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="items",
                        to="sales.sale",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(quantity__gt=0), name="chk_sale_item_qty_pos"),
                    models.CheckConstraint(
                        condition=models.Q(returned_quantity__gte=0)
                        & models.Q(returned_quantity__lte=models.F("quantity")),
                        name="chk_sale_item_returned_bounds",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleReturn",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("return_date", models.DateField(default=django.utils.timezone.localdate)),
                ("refund_method", models.CharField(choices=PAYMENT_CHOICES, max_length=16)),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                ("subtotal", _money()),
                ("itbis_total", _money()),
                ("total", _money()),
                ("cost_total", _money()),
                ("created_by", models.CharField(default="system", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("journal_entry", _journal_fk()),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="returns",
                        to="sales.sale",
                    ),
                ),
                (
                    "shift",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="returns",
                        to="sales.cashshift",
                    ),
                ),
            ],
            options={
                "ordering": ["-return_date", "-id"],
                "indexes": [models.Index(fields=["return_date"], name="sale_return_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="SaleReturnItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=14)),
                ("itbis", models.DecimalField(decimal_places=2, max_digits=14)),
                ("total", models.DecimalField(decimal_places=2, max_digits=14)),
                ("cost_total", _money()),
                (
                    "sale_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="return_items",
                        to="sales.saleitem",
                    ),
                ),
                (
                    "sale_return",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="items",
                        to="sales.salereturn",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
            },
        ),
    ]
