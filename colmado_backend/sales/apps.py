# sales/apps.py

"""
SALES APP CONFIG

Checkout, customer returns and cash shifts.
"""

from django.apps import AppConfig


class SalesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sales"
    verbose_name = "Sales (POS)"
