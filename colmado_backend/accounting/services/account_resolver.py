# PATH: accounting/services/account_resolver.py

"""
PATH: accounting/services/account_resolver.py

ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose?"

Posting rules ask by semantic key (CASH, ITBIS_PAYABLE, ...) or by code.

Bootstrap:
- The Dominican retail chart is created on first use (idempotent).
- An account that exists but is inactive is a hard failure: we do not
  post to it and we do not silently re-activate it.
"""

from __future__ import annotations

import logging

from django.db import transaction

from accounting.models.account import Account
from accounting.services.exceptions import AccountResolutionError

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# DOMINICAN RETAIL CHART
# ------------------------------------------------------------

DEFAULT_CHART = [
    ("1101", "Caja", Account.ASSET),
    ("1102", "Bancos", Account.ASSET),
    ("1103", "Cuentas por Cobrar Clientes", Account.ASSET),
    ("1104", "ITBIS Pagado (Adelantado)", Account.ASSET),
    ("1105", "Anticipos a Proveedores", Account.ASSET),
    ("1106", "Cuentas por Cobrar Tarjetas", Account.ASSET),
    ("1201", "Inventario de Mercancía", Account.ASSET),
    ("2101", "Cuentas por Pagar Proveedores", Account.LIABILITY),
    ("2102", "ITBIS por Pagar", Account.LIABILITY),
    ("2103", "ITBIS Retenido por Terceros", Account.LIABILITY),
    ("2104", "Retenciones ISR por Pagar", Account.LIABILITY),
    ("3101", "Capital", Account.EQUITY),
    ("4101", "Ventas", Account.REVENUE),
    ("4102", "Descuentos en Ventas", Account.REVENUE),
    ("4103", "Devoluciones en Ventas", Account.REVENUE),
    ("4104", "Sobrantes de Caja", Account.REVENUE),
    ("5101", "Costo de Mercancía Vendida", Account.EXPENSE),
    ("6101", "Merma de Inventario", Account.EXPENSE),
    ("6102", "Pérdida por Vencimiento", Account.EXPENSE),
    ("6103", "Pérdida por Robo", Account.EXPENSE),
    ("6104", "Comisiones Tarjetas", Account.EXPENSE),
    ("6105", "Servicios Públicos", Account.EXPENSE),
    ("6106", "Mantenimiento", Account.EXPENSE),
    ("6107", "Nómina", Account.EXPENSE),
    ("6108", "Faltantes de Caja", Account.EXPENSE),
    ("6199", "Otros Gastos", Account.EXPENSE),
]

CHART_BY_CODE = {code: (name, account_type) for code, name, account_type in DEFAULT_CHART}

SEMANTIC_CODES = {
    "CASH": "1101",
    "BANK": "1102",
    "AR": "1103",
    "ITBIS_PAID": "1104",
    "SUPPLIER_ADVANCES": "1105",
    "CARD_RECEIVABLE": "1106",
    "INVENTORY": "1201",
    "ACCOUNTS_PAYABLE": "2101",
    "ITBIS_PAYABLE": "2102",
    "ITBIS_RETAINED": "2103",
    "ISR_RETAINED": "2104",
    "CAPITAL": "3101",
    "SALES_REVENUE": "4101",
    "SALES_DISCOUNT": "4102",
    "SALES_RETURNS": "4103",
    "CASH_OVER": "4104",
    "COGS": "5101",
    "SHRINKAGE": "6101",
    "EXPIRATION_LOSS": "6102",
    "THEFT_LOSS": "6103",
    "CARD_COMMISSIONS": "6104",
    "UTILITIES": "6105",
    "MAINTENANCE": "6106",
    "PAYROLL": "6107",
    "CASH_SHORT": "6108",
    "OTHER_EXPENSES": "6199",
}

# payment / refund method -> semantic key
PAYMENT_ACCOUNTS = {
    "cash": "CASH",
    "card": "CARD_RECEIVABLE",
    "transfer": "BANK",
    "credit": "AR",
}


def _code_for(key: str) -> str:
    raw = str(key or "").strip()
    if not raw:
        raise AccountResolutionError("Account key is required")
    upper = raw.upper()
    if upper in SEMANTIC_CODES:
        return SEMANTIC_CODES[upper]
    return raw


@transaction.atomic
def ensure_chart() -> int:
    """
    Create missing accounts of the default chart. Returns how many were created.
    """
    created = 0
    for code, name, account_type in DEFAULT_CHART:
        _, was_created = Account.objects.get_or_create(
            code=code,
            defaults={"name": name, "account_type": account_type, "is_system": True},
        )
        created += int(was_created)

    if created:
        logger.info("Chart of accounts bootstrapped", extra={"created": created})
    return created


def get_account(key: str) -> Account:
    """
    Resolve an account by semantic key or code.

    Codes from the default chart are bootstrapped on demand; unknown codes
    must already exist.
    """
    code = _code_for(key)

    account = Account.objects.filter(code=code).first()
    if account is None:
        if code not in CHART_BY_CODE:
            raise AccountResolutionError(f"Account {code} does not exist", code=code)
        name, account_type = CHART_BY_CODE[code]
        account, _ = Account.objects.get_or_create(
            code=code,
            defaults={"name": name, "account_type": account_type, "is_system": True},
        )

    if not account.is_active:
        raise AccountResolutionError(f"Account {code} is inactive", code=code)

    return account


def get_payment_account(method: str) -> Account:
    key = PAYMENT_ACCOUNTS.get(str(method or "").strip().lower())
    if key is None:
        raise AccountResolutionError(f"No account mapped for payment method {method!r}")
    return get_account(key)
