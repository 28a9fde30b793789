# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
POSTING ADAPTER

Build journal lines for business events and call create_journal_entry
(the engine).

This module should remain a thin adapter:
- It DOES NOT do workflows (orchestrators do).
- It DOES map business events -> accounting lines.
- It ALWAYS calls create_journal_entry (engine) for balance, period lock,
  numbering and idempotency.

Idempotency key: (source_type, str(source.uuid)). Re-posting the same
sale/return/invoice raises IdempotencyError unless its entry was voided.

COGS:
- Sale and return cost come from CostConsumption rows (authoritative);
  we never invent a cost for units FIFO could not allocate.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.utils import timezone

from accounting.models.journal import JournalEntry
from accounting.services.account_resolver import get_account, get_payment_account
from accounting.services.exceptions import PostingRuleError
from accounting.services.journal_entry_service import create_journal_entry

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

PURCHASE_CATEGORY_ACCOUNTS = {
    "inventory": "INVENTORY",
    "utilities": "UTILITIES",
    "maintenance": "MAINTENANCE",
    "payroll": "PAYROLL",
    "other": "OTHER_EXPENSES",
}

LOSS_REASON_ACCOUNTS = {
    "damage": "SHRINKAGE",
    "count": "SHRINKAGE",
    "expiration": "EXPIRATION_LOSS",
    "theft": "THEFT_LOSS",
}


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _dr(account, amount, memo: str = "") -> dict:
    return {"account": account, "debit": _money(amount), "credit": ZERO, "memo": memo}


def _cr(account, amount, memo: str = "") -> dict:
    return {"account": account, "debit": ZERO, "credit": _money(amount), "memo": memo}


def _nonzero(lines: list[dict]) -> list[dict]:
    return [ln for ln in lines if ln["debit"] > 0 or ln["credit"] > 0]


def _cost_of(consumptions: Iterable | None, fallback) -> Decimal:
    if consumptions is None:
        return _money(fallback)
    return _money(sum((_money(c.total_cost) for c in consumptions), ZERO))


# ------------------------------------------------------------
# SALES
# ------------------------------------------------------------


def post_sale(
    sale,
    consumptions: Iterable | None = None,
    *,
    unallocated_cost=ZERO,
    actor: str = "system",
) -> JournalEntry:
    """
    Dr payment account  total
        Cr Ventas           subtotal
        Cr ITBIS por Pagar  itbis
    Dr COGS / Cr Inventario at FIFO cost plus the fallback cost of
    unallocated units (when > 0)

    Without consumptions, sale.cost_total (which already holds both parts)
    is used as is.
    """
    total = _money(sale.total)
    subtotal = _money(sale.subtotal)
    itbis = _money(sale.itbis_total)

    if total <= 0:
        raise PostingRuleError(f"Sale {sale.receipt_number} has no amount to post")
    if subtotal + itbis != total:
        raise PostingRuleError(
            f"Sale {sale.receipt_number}: subtotal + itbis ({subtotal + itbis}) != total ({total})"
        )

    cogs = _cost_of(consumptions, sale.cost_total)
    if consumptions is not None:
        cogs += _money(unallocated_cost)

    lines = [
        _dr(get_payment_account(sale.payment_method), total, f"Cobro {sale.payment_method}"),
        _cr(get_account("SALES_REVENUE"), subtotal),
        _cr(get_account("ITBIS_PAYABLE"), itbis),
    ]
    if cogs > 0:
        lines += [
            _dr(get_account("COGS"), cogs),
            _cr(get_account("INVENTORY"), cogs),
        ]

    return create_journal_entry(
        description=f"Venta {sale.receipt_number}",
        lines=_nonzero(lines),
        source_type=JournalEntry.SOURCE_SALE,
        source_id=str(sale.uuid),
        entry_date=sale.sale_date,
        created_by=actor,
    )


def post_return(
    sale_return, reversed_consumptions: Iterable | None = None, *, actor: str = "system"
) -> JournalEntry:
    """
    Dr Devoluciones en Ventas  subtotal
    Dr ITBIS por Pagar         itbis
        Cr refund account          total
    Dr Inventario / Cr COGS at the restored lot cost
    """
    total = _money(sale_return.total)
    subtotal = _money(sale_return.subtotal)
    itbis = _money(sale_return.itbis_total)

    if total <= 0:
        raise PostingRuleError("Return has no amount to post")

    restored = _cost_of(reversed_consumptions, sale_return.cost_total)

    lines = [
        _dr(get_account("SALES_RETURNS"), subtotal),
        _dr(get_account("ITBIS_PAYABLE"), itbis),
        _cr(get_payment_account(sale_return.refund_method), total, f"Reembolso {sale_return.refund_method}"),
    ]
    if restored > 0:
        lines += [
            _dr(get_account("INVENTORY"), restored),
            _cr(get_account("COGS"), restored),
        ]

    return create_journal_entry(
        description=f"Devolución venta {sale_return.sale.receipt_number}",
        lines=_nonzero(lines),
        source_type=JournalEntry.SOURCE_RETURN,
        source_id=str(sale_return.uuid),
        entry_date=sale_return.return_date,
        created_by=actor,
    )


# ------------------------------------------------------------
# PURCHASES
# ------------------------------------------------------------


def post_purchase(invoice, lots: Iterable | None = None, *, actor: str = "system") -> JournalEntry:
    """
    Dr Inventario (or the category expense)  subtotal
    Dr ITBIS Pagado                          itbis
        Cr Cuentas por Pagar                     total

    `lots` is informational (memo); the debit is the invoice subtotal.
    """
    key = PURCHASE_CATEGORY_ACCOUNTS.get(invoice.category)
    if key is None:
        raise PostingRuleError(f"Unknown purchase category {invoice.category!r}")

    total = _money(invoice.total)
    subtotal = _money(invoice.subtotal)
    itbis = _money(invoice.itbis_total)
    if total <= 0:
        raise PostingRuleError("Purchase invoice has no amount to post")

    lot_count = len(list(lots)) if lots is not None else 0
    memo = f"{lot_count} lote(s)" if lot_count else ""

    lines = [
        _dr(get_account(key), subtotal, memo),
        _dr(get_account("ITBIS_PAID"), itbis),
        _cr(get_account("ACCOUNTS_PAYABLE"), total, invoice.supplier_name),
    ]

    return create_journal_entry(
        description=f"Compra {invoice.supplier_name} NCF {invoice.supplier_ncf or 'N/A'}",
        lines=_nonzero(lines),
        source_type=JournalEntry.SOURCE_PURCHASE,
        source_id=str(invoice.uuid),
        entry_date=invoice.issue_date,
        created_by=actor,
    )


def post_supplier_payment(payment, *, actor: str = "system") -> JournalEntry:
    """Dr Cuentas por Pagar / Cr Caja or Bancos."""
    if payment.payment_method not in ("cash", "transfer"):
        raise PostingRuleError(f"Unsupported supplier payment method {payment.payment_method!r}")

    amount = _money(payment.amount)
    lines = [
        _dr(get_account("ACCOUNTS_PAYABLE"), amount, payment.invoice.supplier_name),
        _cr(get_payment_account(payment.payment_method), amount),
    ]

    return create_journal_entry(
        description=f"Pago a proveedor {payment.invoice.supplier_name}",
        lines=lines,
        source_type=JournalEntry.SOURCE_SUPPLIER_PAYMENT,
        source_id=str(payment.uuid),
        entry_date=payment.payment_date,
        created_by=actor,
    )


# ------------------------------------------------------------
# SETTLEMENTS / SHIFTS / ADJUSTMENTS
# ------------------------------------------------------------


def post_card_settlement(settlement, *, actor: str = "system") -> JournalEntry:
    """
    Dr Bancos                 net
    Dr Comisiones Tarjetas    commission
    Dr ITBIS Pagado           tax_on_commission
    Dr ITBIS Retenido         itbis_retained
        Cr CxC Tarjetas           gross
    """
    lines = [
        _dr(get_account("BANK"), settlement.net_amount, settlement.reference),
        _dr(get_account("CARD_COMMISSIONS"), settlement.commission),
        _dr(get_account("ITBIS_PAID"), settlement.tax_on_commission),
        _dr(get_account("ITBIS_RETAINED"), settlement.itbis_retained),
        _cr(get_account("CARD_RECEIVABLE"), settlement.gross_amount),
    ]

    return create_journal_entry(
        description=f"Liquidación {settlement.processor} {settlement.settlement_date}",
        lines=_nonzero(lines),
        source_type=JournalEntry.SOURCE_SETTLEMENT,
        source_id=str(settlement.uuid),
        entry_date=settlement.settlement_date,
        created_by=actor,
    )


def post_shift_close(shift, *, actor: str = "system") -> JournalEntry | None:
    """
    Over:  Dr Caja / Cr Sobrantes de Caja
    Short: Dr Faltantes de Caja / Cr Caja
    Balanced drawer: no entry.
    """
    diff = _money(shift.cash_difference)
    if diff == 0:
        return None

    cash = get_account("CASH")
    if diff > 0:
        lines = [_dr(cash, diff), _cr(get_account("CASH_OVER"), diff)]
        label = "Sobrante"
    else:
        lines = [_dr(get_account("CASH_SHORT"), -diff), _cr(cash, -diff)]
        label = "Faltante"

    entry_date = timezone.localtime(shift.closed_at).date() if shift.closed_at else None

    return create_journal_entry(
        description=f"{label} de caja turno {shift.shift_number}",
        lines=lines,
        source_type=JournalEntry.SOURCE_SHIFT_CLOSE,
        source_id=str(shift.uuid),
        entry_date=entry_date,
        created_by=actor,
    )


def post_inventory_adjustment(
    *,
    reason: str,
    amount,
    entry_date,
    source_id: str,
    description: str = "",
    actor: str = "system",
) -> JournalEntry | None:
    """Dr loss expense by reason / Cr Inventario. Zero cost posts nothing."""
    key = LOSS_REASON_ACCOUNTS.get(reason)
    if key is None:
        raise PostingRuleError(f"Unknown inventory loss reason {reason!r}")

    cost = _money(amount)
    if cost == 0:
        return None

    return create_journal_entry(
        description=description or f"Ajuste de inventario ({reason})",
        lines=[_dr(get_account(key), cost), _cr(get_account("INVENTORY"), cost)],
        source_type=JournalEntry.SOURCE_ADJUSTMENT,
        source_id=source_id,
        entry_date=entry_date,
        created_by=actor,
    )
