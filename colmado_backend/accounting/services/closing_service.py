# PATH: accounting/services/closing_service.py

"""
PERIOD & SHIFT CLOSER

Period (ITBIS month):
- open -> closed: only when nothing dated in the month is still waiting to
  be posted; the ITBIS summary is re-derived right before the lock.
- closed -> filed: the DGII IT-1 return was submitted.
- closed/filed -> open: explicit reopen, audited with the previous state.

All three take select_for_update on the summary row; journal posting
checks the same row, so a posting and a close never interleave.

Shift:
- open -> closed (terminal): aggregates the shift, computes the drawer
  variance and posts it.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from accounting.models.journal import JournalEntry
from accounting.models.settlement import CardSettlement
from accounting.services.exceptions import (
    OpenTransactionsExistError,
    PeriodStateError,
    ShiftClosedError,
)
from accounting.services.posting import post_shift_close
from audit.models import AuditLogEntry
from audit.services.audit_log import log_action
from purchases.models import PurchaseInvoice
from sales.models import CashShift, Sale, SaleReturn
from taxes.models import ITBISPeriodSummary
from taxes.services.itbis import accumulate_period, get_period_summary, period_bounds

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _period_state(summary: ITBISPeriodSummary) -> dict:
    return {
        "status": summary.status,
        "closed_at": summary.closed_at,
        "closed_by": summary.closed_by,
        "filed_at": summary.filed_at,
        "dgii_confirmation": summary.dgii_confirmation,
        "net_due": summary.net_due,
    }


def find_open_transactions(period) -> dict:
    """
    Counts of work dated in the period that has not reached the ledger.
    """
    start, end = period_bounds(period)

    counts = {
        "pending_journal_entries": JournalEntry.objects.filter(
            entry_date__range=(start, end), status=JournalEntry.STATUS_PENDING
        ).count(),
        "unposted_sales": Sale.objects.filter(
            sale_date__range=(start, end), journal_entry__isnull=True
        ).count(),
        "unposted_returns": SaleReturn.objects.filter(
            return_date__range=(start, end), journal_entry__isnull=True
        ).count(),
        "unposted_purchases": PurchaseInvoice.objects.filter(
            issue_date__range=(start, end),
            status=PurchaseInvoice.STATUS_RECORDED,
            journal_entry__isnull=True,
        ).count(),
        "pending_settlements": CardSettlement.objects.filter(
            settlement_date__range=(start, end), status=CardSettlement.STATUS_PENDING
        ).count(),
    }
    return {k: v for k, v in counts.items() if v}


@transaction.atomic
def close_period(*, period, actor: str = "system") -> ITBISPeriodSummary:
    summary = get_period_summary(period, for_update=True)

    if summary.is_locked:
        raise PeriodStateError(f"Period {summary.period} is already {summary.status}")

    open_items = find_open_transactions(summary.period)
    if open_items:
        raise OpenTransactionsExistError(
            f"Period {summary.period} has open transactions: "
            + ", ".join(f"{k}={v}" for k, v in open_items.items()),
            **open_items,
        )

    summary = accumulate_period(summary.period, actor=actor)
    before = _period_state(summary)

    summary.status = ITBISPeriodSummary.STATUS_CLOSED
    summary.closed_at = timezone.now()
    summary.closed_by = actor or "system"
    summary.save()

    log_action(
        action=AuditLogEntry.Action.PERIOD_CLOSED,
        entity_type=AuditLogEntry.EntityType.ITBIS_PERIOD,
        entity_id=summary.period,
        actor=actor,
        before=before,
        after=_period_state(summary),
    )

    logger.info(
        "ITBIS period closed",
        extra={"period": summary.period, "net_due": str(summary.net_due), "actor": actor},
    )
    return summary


@transaction.atomic
def file_period(*, period, confirmation: str, actor: str = "system") -> ITBISPeriodSummary:
    confirmation = (confirmation or "").strip()
    if not confirmation:
        raise PeriodStateError("DGII confirmation number is required")

    summary = get_period_summary(period, for_update=True)
    if summary.status != ITBISPeriodSummary.STATUS_CLOSED:
        raise PeriodStateError(
            f"Only closed periods can be filed; {summary.period} is {summary.status}"
        )

    before = _period_state(summary)

    summary.status = ITBISPeriodSummary.STATUS_FILED
    summary.filed_at = timezone.now()
    summary.dgii_confirmation = confirmation
    summary.save()

    log_action(
        action=AuditLogEntry.Action.PERIOD_FILED,
        entity_type=AuditLogEntry.EntityType.ITBIS_PERIOD,
        entity_id=summary.period,
        actor=actor,
        before=before,
        after=_period_state(summary),
    )
    logger.info("ITBIS period filed", extra={"period": summary.period})
    return summary


@transaction.atomic
def reopen_period(*, period, actor: str = "system", reason: str = "") -> ITBISPeriodSummary:
    reason = (reason or "").strip()
    if not reason:
        raise PeriodStateError("A reason is required to reopen a period")

    summary = get_period_summary(period, for_update=True)
    if not summary.is_locked:
        raise PeriodStateError(f"Period {summary.period} is already open")

    before = _period_state(summary)

    summary.status = ITBISPeriodSummary.STATUS_OPEN
    summary.closed_at = None
    summary.closed_by = ""
    summary.save()

    log_action(
        action=AuditLogEntry.Action.PERIOD_REOPENED,
        entity_type=AuditLogEntry.EntityType.ITBIS_PERIOD,
        entity_id=summary.period,
        actor=actor,
        before=before,
        after=_period_state(summary),
        details={"reason": reason},
    )

    logger.warning(
        "ITBIS period reopened",
        extra={"period": summary.period, "previous_status": before["status"], "actor": actor},
    )
    return summary


# ------------------------------------------------------------
# Cash shifts
# ------------------------------------------------------------


def _sum(qs, field_name) -> Decimal:
    return _money(qs.aggregate(t=Sum(field_name))["t"])


def summarize_shift(shift: CashShift) -> dict:
    sales = Sale.objects.filter(shift=shift)
    returns = SaleReturn.objects.filter(shift=shift)

    by_method = {
        method: _sum(sales.filter(payment_method=method), "total")
        for method in (Sale.PAYMENT_CASH, Sale.PAYMENT_CARD, Sale.PAYMENT_TRANSFER, Sale.PAYMENT_CREDIT)
    }

    cash_refunds = _sum(returns.filter(refund_method=Sale.PAYMENT_CASH), "total")

    expected_cash = _money(
        shift.opening_cash
        + by_method[Sale.PAYMENT_CASH]
        - cash_refunds
        + shift.cash_in
        - shift.cash_out
    )

    return {
        "sales_count": sales.count(),
        "total_sales": _sum(sales, "total"),
        "cash_sales": by_method[Sale.PAYMENT_CASH],
        "card_sales": by_method[Sale.PAYMENT_CARD],
        "transfer_sales": by_method[Sale.PAYMENT_TRANSFER],
        "credit_sales": by_method[Sale.PAYMENT_CREDIT],
        "returns_total": _sum(returns, "total"),
        "cash_refunds": cash_refunds,
        "cogs_total": _money(_sum(sales, "cost_total") - _sum(returns, "cost_total")),
        "expected_cash": expected_cash,
    }


@transaction.atomic
def close_shift(*, shift: CashShift, counted_cash, actor: str = "system", notes: str = "") -> CashShift:
    shift = CashShift.objects.select_for_update().get(pk=shift.pk)
    if shift.status == CashShift.STATUS_CLOSED:
        raise ShiftClosedError(f"Shift {shift.shift_number} is already closed")

    counted = _money(counted_cash)
    if counted < 0:
        raise ShiftClosedError("Counted cash cannot be negative")

    totals = summarize_shift(shift)
    for name, value in totals.items():
        setattr(shift, name, value)

    shift.counted_cash = counted
    shift.cash_difference = _money(counted - totals["expected_cash"])
    shift.status = CashShift.STATUS_CLOSED
    shift.closed_at = timezone.now()
    shift.closed_by = actor or "system"
    if notes:
        shift.notes = notes.strip()

    shift.journal_entry = post_shift_close(shift, actor=actor)
    shift.save()

    log_action(
        action=AuditLogEntry.Action.SHIFT_CLOSED,
        entity_type=AuditLogEntry.EntityType.CASH_SHIFT,
        entity_id=shift.shift_number,
        actor=actor,
        after={
            **totals,
            "counted_cash": shift.counted_cash,
            "cash_difference": shift.cash_difference,
            "journal_entry": shift.journal_entry.entry_number if shift.journal_entry else None,
        },
    )

    log = logger.warning if shift.cash_difference else logger.info
    log(
        "Cash shift closed",
        extra={
            "shift": shift.shift_number,
            "expected_cash": str(shift.expected_cash),
            "counted_cash": str(counted),
            "difference": str(shift.cash_difference),
        },
    )
    return shift
