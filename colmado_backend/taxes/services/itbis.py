# taxes/services/itbis.py

"""
======================================================
PATH: taxes/services/itbis.py
======================================================
ITBIS CALCULATOR

Per-line tax:
- compute_line_tax(amount, rate): amount * rate, ROUND_HALF_UP to cents
  (the DGII 606/607 convention)
- extract_tax_from_total(total, rate): ITBIS embedded in a tax-inclusive
  shelf price

Period aggregation:
- accumulate_period() RE-DERIVES the month from its source rows every time
  (sales and returns by date, recorded purchase invoices, card settlements,
  other retentions). Transactions are keyed by id, so the same set always
  yields the same summary.

Buckets:
- rate >= 0.17 -> "18"
- rate >= 0.15 -> "16"
- otherwise    -> "exempt" (the exempt bucket accumulates the taxable base)
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from audit.models import AuditLogEntry
from audit.services.audit_log import log_action
from taxes.models import ITBISPeriodSummary, ITBISRetention
from taxes.models.itbis_period import PERIOD_RE
from taxes.services.exceptions import InvalidPeriodError, TaxServiceError

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")

BUCKET_18 = "18"
BUCKET_16 = "16"
BUCKET_EXEMPT = "exempt"


def _money(value) -> Decimal:
    if value is None or value == "":
        return ZERO_MONEY
    try:
        amt = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise TaxServiceError(f"Invalid money value: {value!r}") from exc
    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _rate(value) -> Decimal:
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise TaxServiceError(f"Invalid tax rate: {value!r}") from exc
    if rate < 0 or rate >= 1:
        raise TaxServiceError(f"Tax rate out of range: {rate}")
    return rate


# ------------------------------------------------------------
# Per-line computation
# ------------------------------------------------------------


def _exact(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise TaxServiceError(f"Invalid money value: {value!r}") from exc


def compute_line_tax(amount, rate) -> Decimal:
    # rounded once; the amount keeps its sub-cent digits
    return (_exact(amount) * _rate(rate)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def extract_tax_from_total(total, rate) -> Decimal:
    r = _rate(rate)
    if r == 0:
        return ZERO_MONEY
    return (_money(total) * r / (Decimal("1") + r)).quantize(
        TWOPLACES, rounding=ROUND_HALF_UP
    )


def compute_line(*, quantity, unit_price, rate, price_includes_tax: bool = True) -> dict:
    """
    Split one priced line into subtotal (tax-exclusive), itbis and total.
    """
    gross = _money(Decimal(str(quantity)) * Decimal(str(unit_price)))

    if price_includes_tax:
        itbis = extract_tax_from_total(gross, rate)
        subtotal = gross - itbis
        total = gross
    else:
        subtotal = gross
        itbis = compute_line_tax(subtotal, rate)
        total = subtotal + itbis

    return {"subtotal": subtotal, "itbis": itbis, "total": total}


def rate_bucket(rate) -> str:
    r = _rate(rate)
    if r >= Decimal("0.17"):
        return BUCKET_18
    if r >= Decimal("0.15"):
        return BUCKET_16
    return BUCKET_EXEMPT


def _field(line, name):
    return line[name] if isinstance(line, dict) else getattr(line, name)


def calculate_by_rate(lines) -> dict:
    """
    lines: iterable of objects/dicts with tax_rate, subtotal, itbis.
    Returns {"18": itbis, "16": itbis, "exempt": base}.
    """
    out = {BUCKET_18: ZERO_MONEY, BUCKET_16: ZERO_MONEY, BUCKET_EXEMPT: ZERO_MONEY}
    for line in lines:
        bucket = rate_bucket(_field(line, "tax_rate"))
        if bucket == BUCKET_EXEMPT:
            out[bucket] += _money(_field(line, "subtotal"))
        else:
            out[bucket] += _money(_field(line, "itbis"))
    return out


def card_retention_rate() -> Decimal:
    raw = getattr(settings, "ITBIS", {}).get("CARD_RETENTION_RATE", "0.02")
    return _rate(raw)


def commission_tax_rate() -> Decimal:
    raw = getattr(settings, "ITBIS", {}).get("COMMISSION_TAX_RATE", "0.18")
    return _rate(raw)


# ------------------------------------------------------------
# Periods
# ------------------------------------------------------------


def normalize_period(period) -> str:
    if isinstance(period, date):
        return period_for(period)
    value = str(period or "").strip()
    if not PERIOD_RE.match(value):
        raise InvalidPeriodError(f"Invalid period {period!r}; use YYYY-MM")
    return value


def period_for(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def period_bounds(period) -> tuple[date, date]:
    value = normalize_period(period)
    year, month = int(value[:4]), int(value[5:])
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def get_period_summary(period, *, for_update: bool = False) -> ITBISPeriodSummary:
    """
    Fetch (creating if missing) the summary row; optionally row-locked.
    """
    value = normalize_period(period)
    summary, _ = ITBISPeriodSummary.objects.get_or_create(period=value)
    if for_update:
        summary = ITBISPeriodSummary.objects.select_for_update().get(pk=summary.pk)
    return summary


# ------------------------------------------------------------
# Aggregation
# ------------------------------------------------------------


@dataclass
class PeriodTransactions:
    sales: list = field(default_factory=list)
    returns: list = field(default_factory=list)
    purchases: list = field(default_factory=list)
    settlements: list = field(default_factory=list)
    retentions: list = field(default_factory=list)


def collect_period_transactions(period) -> PeriodTransactions:
    from accounting.models import CardSettlement
    from purchases.models import PurchaseInvoice
    from sales.models import Sale, SaleReturn

    start, end = period_bounds(period)

    return PeriodTransactions(
        sales=list(
            Sale.objects.filter(sale_date__gte=start, sale_date__lte=end)
            .prefetch_related("items")
        ),
        returns=list(
            SaleReturn.objects.filter(return_date__gte=start, return_date__lte=end)
            .prefetch_related("items__sale_item")
        ),
        purchases=list(
            PurchaseInvoice.objects.filter(
                issue_date__gte=start,
                issue_date__lte=end,
                status=PurchaseInvoice.STATUS_RECORDED,
            ).prefetch_related("items")
        ),
        settlements=list(
            CardSettlement.objects.filter(
                settlement_date__gte=start, settlement_date__lte=end
            ).exclude(status=CardSettlement.STATUS_DISPUTED)
        ),
        retentions=list(
            ITBISRetention.objects.filter(date__gte=start, date__lte=end)
        ),
    )


def _unique(rows) -> list:
    seen = {}
    for row in rows:
        seen.setdefault(row.pk, row)
    return [seen[k] for k in sorted(seen)]


def summarize(transactions: PeriodTransactions) -> dict:
    """
    Pure aggregation. Duplicate rows (same pk) count once.
    """
    sales = _unique(transactions.sales)
    returns = _unique(transactions.returns)
    purchases = _unique(transactions.purchases)
    settlements = _unique(transactions.settlements)
    retentions = _unique(transactions.retentions)

    collected = calculate_by_rate(item for sale in sales for item in sale.items.all())

    returned = calculate_by_rate(
        {
            "tax_rate": ri.sale_item.tax_rate,
            "subtotal": ri.subtotal,
            "itbis": ri.itbis,
        }
        for ret in returns
        for ri in ret.items.all()
    )

    paid = calculate_by_rate(item for inv in purchases for item in inv.items.all())

    retained_by_cards = sum((_money(s.itbis_retained) for s in settlements), ZERO_MONEY)
    other_retentions = sum((_money(r.amount) for r in retentions), ZERO_MONEY)

    itbis_18_collected = collected[BUCKET_18] - returned[BUCKET_18]
    itbis_16_collected = collected[BUCKET_16] - returned[BUCKET_16]
    sales_exempt = collected[BUCKET_EXEMPT] - returned[BUCKET_EXEMPT]

    total_collected = itbis_18_collected + itbis_16_collected
    total_paid = paid[BUCKET_18] + paid[BUCKET_16]
    total_retained = retained_by_cards + other_retentions

    return {
        "itbis_18_collected": itbis_18_collected,
        "itbis_16_collected": itbis_16_collected,
        "sales_exempt": sales_exempt,
        "itbis_18_paid": paid[BUCKET_18],
        "itbis_16_paid": paid[BUCKET_16],
        "purchases_exempt": paid[BUCKET_EXEMPT],
        "retained_by_cards": retained_by_cards,
        "other_retentions": other_retentions,
        "total_collected": total_collected,
        "total_paid": total_paid,
        "total_retained": total_retained,
        "net_due": total_collected - total_paid - total_retained,
        "sales_count": len(sales),
        "returns_count": len(returns),
        "purchases_count": len(purchases),
        "settlements_count": len(settlements),
    }


@transaction.atomic
def accumulate_period(
    period,
    transactions: PeriodTransactions | None = None,
    *,
    actor: str = "system",
) -> ITBISPeriodSummary:
    """
    Re-derive and store the period summary.

    Closed/filed periods are frozen: use reopen_period() first.
    """
    from accounting.services.exceptions import PeriodClosedError

    summary = get_period_summary(period, for_update=True)
    if summary.is_locked:
        raise PeriodClosedError(
            f"ITBIS period {summary.period} is {summary.status}; reopen it before recalculating"
        )

    tx = transactions if transactions is not None else collect_period_transactions(summary.period)
    totals = summarize(tx)

    before = {f: getattr(summary, f) for f in ITBISPeriodSummary.AMOUNT_FIELDS}
    for name, value in totals.items():
        setattr(summary, name, value)
    summary.recalculated_at = timezone.now()
    summary.save()

    log_action(
        action=AuditLogEntry.Action.ITBIS_RECALCULATED,
        entity_type=AuditLogEntry.EntityType.ITBIS_PERIOD,
        entity_id=summary.period,
        actor=actor,
        before=before,
        after={f: getattr(summary, f) for f in ITBISPeriodSummary.AMOUNT_FIELDS},
    )

    logger.info(
        "ITBIS period re-derived",
        extra={
            "period": summary.period,
            "net_due": str(summary.net_due),
            "sales_count": summary.sales_count,
        },
    )
    return summary


@transaction.atomic
def record_other_retention(
    *,
    date: date,
    amount,
    retained_by: str,
    retained_by_rnc: str = "",
    reference: str = "",
    actor: str = "system",
) -> ITBISRetention:
    from accounting.services.period_lock import assert_period_open

    amt = _money(amount)
    if amt <= 0:
        raise TaxServiceError("Retention amount must be > 0")
    if not (retained_by or "").strip():
        raise TaxServiceError("retained_by is required")

    assert_period_open(date)

    return ITBISRetention.objects.create(
        date=date,
        amount=amt,
        retained_by=retained_by.strip(),
        retained_by_rnc=(retained_by_rnc or "").strip(),
        reference=(reference or "").strip(),
        created_by=actor,
    )


def get_ytd_summary(year: int) -> dict:
    rows = ITBISPeriodSummary.objects.filter(period__startswith=f"{int(year):04d}-")
    sums = rows.aggregate(**{f: Sum(f) for f in ITBISPeriodSummary.AMOUNT_FIELDS})

    return {
        "year": int(year),
        "periods": [
            {"period": r.period, "status": r.status, "net_due": str(r.net_due)}
            for r in rows.order_by("period")
        ],
        **{f: str(_money(sums[f])) for f in ITBISPeriodSummary.AMOUNT_FIELDS},
    }
