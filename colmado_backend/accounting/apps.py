# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Double-entry journal, Dominican chart of accounts, card settlements and
financial statements.
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting (Journal Ledger)"
