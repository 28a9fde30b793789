"""
======================================================
PATH: inventory/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Product, InventoryLot, CostConsumption (FIFO LAYERS)

Links to purchases and sales documents are added in 0002 once those
tables exist.
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
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("sku", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=200)),
                (
                    "tax_rate",
                    models.DecimalField(
                        choices=[
                            (Decimal("0.18"), "ITBIS 18%"),
                            (Decimal("0.16"), "ITBIS 16%"),
                            (Decimal("0.00"), "Exento"),
                        ],
                        decimal_places=4,
                        default=Decimal("0.18"),
                        max_digits=5,
                    ),
                ),
                (
                    "price_includes_tax",
                    models.BooleanField(
                        default=True,
                        help_text="Shelf prices in DR retail are usually ITBIS-inclusive",
                    ),
                ),
                ("sale_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "fallback_unit_cost",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0.0000"),
                        help_text="Tax-exclusive cost used to value stock that has no lot",
                        max_digits=12,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["is_active"], name="product_active_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(tax_rate__gte=0) & models.Q(tax_rate__lt=1),
                        name="chk_product_tax_rate_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryLot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("lot_number", models.CharField(blank=True, default="", max_length=64)),
                ("purchase_date", models.DateField()),
                ("expiration_date", models.DateField(blank=True, null=True)),
                ("original_quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("remaining_quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                (
                    "unit_cost",
                    models.DecimalField(
                        decimal_places=4, help_text="Tax-exclusive unit cost (COGS basis)", max_digits=12
                    ),
                ),
                (
                    "unit_cost_inc_tax",
                    models.DecimalField(decimal_places=4, help_text="unit_cost * (1 + tax_rate)", max_digits=12),
                ),
                ("tax_rate", models.DecimalField(decimal_places=4, default=Decimal("0.18"), max_digits=5)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("depleted", "Depleted"),
                            ("expired", "Expired"),
                            ("returned", "Returned to supplier"),
                        ],
                        default="active",
                        max_length=10,
                    ),
                ),
                ("version", models.PositiveIntegerField(default=0)),
                ("depleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lots",
                        to="inventory.product",
                    ),
                ),
            ],
            options={
                "ordering": ["purchase_date", "id"],
                "indexes": [
                    models.Index(fields=["product", "status", "purchase_date"], name="lot_fifo_idx"),
                    models.Index(fields=["expiration_date"], name="lot_expiration_idx"),
                    models.Index(fields=["purchase_date"], name="lot_purchase_date_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(original_quantity__gt=0),
                        name="chk_lot_original_qty_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(remaining_quantity__gte=0),
                        name="chk_lot_remaining_gte_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(remaining_quantity__lte=models.F("original_quantity")),
                        name="chk_lot_remaining_lte_original",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(unit_cost__gt=0),
                        name="chk_lot_unit_cost_gt_zero",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CostConsumption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                (
                    "consumption_type",
                    models.CharField(
                        choices=[
                            ("sale", "Sale"),
                            ("return", "Return"),
                            ("adjustment", "Adjustment"),
                            ("loss", "Loss"),
                        ],
                        max_length=12,
                    ),
                ),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Free-text source reference for adjustments and losses",
                        max_length=100,
                    ),
                ),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("unit_cost", models.DecimalField(decimal_places=4, max_digits=12)),
                ("total_cost", models.DecimalField(decimal_places=2, max_digits=14)),
                ("date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "lot",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="consumptions",
                        to="inventory.inventorylot",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="consumptions",
                        to="inventory.product",
                    ),
                ),
                (
                    "reverses",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reversals",
                        to="inventory.costconsumption",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["product", "consumption_type"], name="consumption_product_type_idx"),
                    models.Index(fields=["lot"], name="consumption_lot_idx"),
                    models.Index(fields=["date"], name="consumption_date_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gt=0),
                        name="chk_consumption_qty_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(total_cost__gte=0),
                        name="chk_consumption_total_cost_gte_zero",
                    ),
                    models.CheckConstraint(
                        condition=~models.Q(consumption_type="return") | models.Q(reverses__isnull=False),
                        name="chk_return_consumption_has_origin",
                    ),
                ],
            },
        ),
    ]
