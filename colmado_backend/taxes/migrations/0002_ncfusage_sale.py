"""
======================================================
PATH: taxes/migrations/0002_ncfusage_sale.py
======================================================
MIGRATION: LINK NCFUsage -> sales.Sale
"""

from __future__ import annotations

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("taxes", "0001_initial"),
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="ncfusage",
            name="sale",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="ncf_usages",
                to="sales.sale",
            ),
        ),
    ]
