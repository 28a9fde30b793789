# audit/apps.py

"""
AUDIT APP CONFIG

Append-only audit trail for sensitive ledger actions:
- FIFO lot creation / consumption
- Journal entry creation / void
- ITBIS period close / file / reopen
- NCF issue / void
"""

from django.apps import AppConfig


class AuditConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "audit"
    verbose_name = "Audit Trail"
