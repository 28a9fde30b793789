"""
======================================================
PATH: purchases/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Supplier, PurchaseInvoice, PurchaseInvoiceItem, SupplierPayment
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


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
            name="Supplier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("name", models.CharField(max_length=200)),
                ("rnc", models.CharField(blank=True, default="", help_text="RNC or cédula", max_length=11)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["name"], name="supplier_name_idx"),
                    models.Index(fields=["rnc"], name="supplier_rnc_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseInvoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("invoice_number", models.CharField(max_length=64)),
                ("supplier_ncf", models.CharField(blank=True, default="", max_length=13)),
                ("issue_date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("inventory", "Mercancía"),
                            ("utilities", "Servicios públicos"),
                            ("maintenance", "Mantenimiento"),
                            ("payroll", "Nómina"),
                            ("other", "Otros"),
                        ],
                        default="inventory",
                        max_length=16,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("recorded", "Recorded"), ("voided", "Voided")],
                        default="recorded",
                        max_length=12,
                    ),
                ),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("itbis_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("amount_paid", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("void_reason", models.CharField(blank=True, default="", max_length=255)),
                ("created_by", models.CharField(default="system", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("journal_entry", _journal_fk()),
                (
                    "supplier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="purchases.supplier",
                    ),
                ),
            ],
            options={
                "ordering": ["-issue_date", "-id"],
                "indexes": [models.Index(fields=["issue_date", "status"], name="purchase_date_status_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["supplier", "invoice_number"],
                        name="uniq_supplier_invoice_number",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(total__gte=Decimal("0.00")),
                        name="purchase_invoice_total_nonnegative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(amount_paid__gte=Decimal("0.00")),
                        name="purchase_invoice_paid_nonnegative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseInvoiceItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.CharField(blank=True, default="", max_length=200)),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("unit_cost", models.DecimalField(decimal_places=4, help_text="Tax-exclusive", max_digits=12)),
                ("tax_rate", models.DecimalField(decimal_places=4, max_digits=5)),
                ("cost_includes_tax", models.BooleanField(default=False)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=14)),
                ("itbis", models.DecimalField(decimal_places=2, max_digits=14)),
                ("total", models.DecimalField(decimal_places=2, max_digits=14)),
                ("expiration_date", models.DateField(blank=True, null=True)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="items",
                        to="purchases.purchaseinvoice",
                    ),
                ),
                (
                    "lot",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoice_item",
                        to="inventory.inventorylot",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchase_items",
                        to="inventory.product",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="SupplierPayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("cash", "Efectivo"), ("transfer", "Transferencia")], max_length=12
                    ),
                ),
                ("payment_date", models.DateField(default=django.utils.timezone.localdate)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("created_by", models.CharField(default="system", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("journal_entry", _journal_fk()),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="purchases.purchaseinvoice",
                    ),
                ),
            ],
            options={
                "ordering": ["-payment_date", "-id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount__gt=Decimal("0.00")),
                        name="supplier_payment_amount_positive",
                    ),
                ],
            },
        ),
    ]
