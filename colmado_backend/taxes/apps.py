# taxes/apps.py

"""
TAXES APP CONFIG

ITBIS (Dominican VAT) computation, monthly period summaries and DGII
fiscal receipt numbering (NCF).
"""

from django.apps import AppConfig


class TaxesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "taxes"
    verbose_name = "ITBIS & NCF"
