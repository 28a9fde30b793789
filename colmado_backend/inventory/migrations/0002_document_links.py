"""
======================================================
PATH: inventory/migrations/0002_document_links.py
======================================================
MIGRATION: LINK LOTS AND CONSUMPTIONS TO THEIR DOCUMENTS

- InventoryLot.purchase_invoice -> purchases.PurchaseInvoice
- CostConsumption.sale / sale_item / sale_return -> sales
"""

from __future__ import annotations

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("inventory", "0001_initial"),
        ("purchases", "0001_initial"),
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="inventorylot",
            name="purchase_invoice",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="lots",
                to="purchases.purchaseinvoice",
            ),
        ),
        migrations.AddField(
            model_name="costconsumption",
            name="sale",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="cost_consumptions",
                to="sales.sale",
            ),
        ),
        migrations.AddField(
            model_name="costconsumption",
            name="sale_item",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="cost_consumptions",
                to="sales.saleitem",
            ),
        ),
        migrations.AddField(
            model_name="costconsumption",
            name="sale_return",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="cost_consumptions",
                to="sales.salereturn",
            ),
        ),
        migrations.AddIndex(
            model_name="costconsumption",
            index=models.Index(fields=["sale"], name="consumption_sale_idx"),
        ),
    ]
