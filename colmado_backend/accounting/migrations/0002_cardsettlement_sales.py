"""
======================================================
PATH: accounting/migrations/0002_cardsettlement_sales.py
======================================================
MIGRATION: LINK CardSettlement -> sales.Sale (M2M)
"""

from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("accounting", "0001_initial"),
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="cardsettlement",
            name="sales",
            field=models.ManyToManyField(blank=True, related_name="card_settlements", to="sales.sale"),
        ),
    ]
