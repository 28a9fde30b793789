# accounting/services/financial_statement_service.py

"""
FINANCIAL STATEMENTS

Read-only aggregation over POSTED journal lines (entry_date timeline); the
aging reports read the purchase and sales documents instead.

- get_account_balance(): signed by normal side (debit-normal for asset and
  expense accounts, credit-normal otherwise)
- get_income_statement(): revenue - COGS - operating expenses
- generate_balance_sheet(): assets vs liabilities + equity, with unclosed
  revenue/expense activity shown as "current period earnings"
- get_cash_flow_statement(): movement of Caja + Banco by source, split into
  operating and financing (entries that touch equity)
- get_ap_aging() / get_ar_aging(): open supplier invoices and credit (fiao)
  sales in 0-30 / 31-60 / 61-90 / 90+ day buckets

Contract:
- numbers as floats (2dp) plus exact minor-unit ints, as in the trial balance
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal

from django.db.models import F, Q, Sum
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.services.account_resolver import SEMANTIC_CODES
from accounting.services.trial_balance_service import (
    _q2,
    _to_major_number,
    _to_minor_int,
    posted_lines,
)

ZERO = Decimal("0.00")


def _pair(name: str, amount: Decimal) -> dict:
    return {name: _to_major_number(amount), f"{name}_minor": _to_minor_int(amount)}


def get_account_balance(account: Account, *, start=None, end=None) -> Decimal:
    agg = posted_lines(start=start, end=end).filter(account=account).aggregate(
        debit=Sum("debit"), credit=Sum("credit")
    )
    debit, credit = _q2(agg["debit"]), _q2(agg["credit"])
    return account.signed_balance(debit, credit)


def _balances_by_type(*, start=None, end=None) -> dict:
    """
    {account_type: [(account, balance), ...]} for accounts with activity.
    """
    rows = (
        posted_lines(start=start, end=end)
        .values("account_id")
        .annotate(debit=Sum("debit"), credit=Sum("credit"))
    )
    totals = {r["account_id"]: r for r in rows}

    out: dict[str, list] = {t: [] for t, _ in Account.ACCOUNT_TYPES}
    for acc in Account.objects.filter(id__in=totals.keys()).order_by("code"):
        debit, credit = _q2(totals[acc.id]["debit"]), _q2(totals[acc.id]["credit"])
        balance = acc.signed_balance(debit, credit)
        out[acc.account_type].append((acc, balance))
    return out


def _lines(rows) -> list[dict]:
    return [
        {"account_code": acc.code, "account_name": acc.name, **_pair("balance", bal)}
        for acc, bal in rows
        if bal != 0
    ]


def get_income_statement(*, start=None, end=None) -> dict:
    by_type = _balances_by_type(start=start, end=end)
    cogs_code = SEMANTIC_CODES["COGS"]

    revenue = sum((b for _, b in by_type[Account.REVENUE]), ZERO)
    cogs = sum((b for a, b in by_type[Account.EXPENSE] if a.code == cogs_code), ZERO)
    expenses = sum((b for a, b in by_type[Account.EXPENSE] if a.code != cogs_code), ZERO)

    gross_profit = _q2(revenue - cogs)
    net_income = _q2(gross_profit - expenses)

    return {
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "revenue_accounts": _lines(by_type[Account.REVENUE]),
        "expense_accounts": _lines(by_type[Account.EXPENSE]),
        **_pair("revenue", revenue),
        **_pair("cogs", cogs),
        **_pair("gross_profit", gross_profit),
        **_pair("operating_expenses", expenses),
        **_pair("net_income", net_income),
    }


def generate_balance_sheet(*, as_of=None) -> dict:
    cutoff = as_of or timezone.localdate()
    by_type = _balances_by_type(end=cutoff)

    assets = sum((b for _, b in by_type[Account.ASSET]), ZERO)
    liabilities = sum((b for _, b in by_type[Account.LIABILITY]), ZERO)
    equity = sum((b for _, b in by_type[Account.EQUITY]), ZERO)
    earnings = sum((b for _, b in by_type[Account.REVENUE]), ZERO) - sum(
        (b for _, b in by_type[Account.EXPENSE]), ZERO
    )

    total_equity = _q2(equity + earnings)
    liabilities_plus_equity = _q2(liabilities + total_equity)

    return {
        "as_of": cutoff.isoformat(),
        "assets": _lines(by_type[Account.ASSET]),
        "liabilities": _lines(by_type[Account.LIABILITY]),
        "equity": _lines(by_type[Account.EQUITY]),
        "totals": {
            **_pair("assets", assets),
            **_pair("liabilities", liabilities),
            **_pair("current_period_earnings", earnings),
            **_pair("equity", total_equity),
            **_pair("liabilities_plus_equity", liabilities_plus_equity),
            "balanced": _to_minor_int(assets) == _to_minor_int(liabilities_plus_equity),
        },
    }


def unbalanced_posted_entries() -> list:
    """
    Posted entries whose lines do not sum to equal sides (should be none).
    """
    return list(
        JournalEntry.objects.filter(status=JournalEntry.STATUS_POSTED)
        .annotate(line_debit=Sum("lines__debit"), line_credit=Sum("lines__credit"))
        .exclude(line_debit=F("line_credit"))
        .order_by("entry_number")
    )


# ------------------------------------------------------------
# Cash flow
# ------------------------------------------------------------

CASH_KEYS = ("CASH", "BANK")


def _cash_codes() -> list[str]:
    return [SEMANTIC_CODES[k] for k in CASH_KEYS]


def _cash_balance(*, end) -> Decimal:
    agg = posted_lines(end=end).filter(account__code__in=_cash_codes()).aggregate(
        debit=Sum("debit"), credit=Sum("credit")
    )
    return _q2(_q2(agg["debit"]) - _q2(agg["credit"]))


def get_cash_flow_statement(*, start=None, end=None) -> dict:
    """
    Direct method over the cash accounts.

    Every posted entry that moves Caja/Banco lands in one section:
    financing when the entry also touches an equity account (owner
    contributions and draws), operating otherwise. The colmado chart has
    no fixed-asset accounts, so investing is always empty.
    """
    end = end or timezone.localdate()
    lines = posted_lines(start=start, end=end)

    equity_entries = set(
        lines.filter(account__account_type=Account.EQUITY).values_list("journal_entry_id", flat=True)
    )
    rows = (
        lines.filter(account__code__in=_cash_codes())
        .values("journal_entry_id", "journal_entry__source_type")
        .annotate(debit=Sum("debit"), credit=Sum("credit"))
    )

    labels = dict(JournalEntry.SOURCE_CHOICES)
    sections: dict[str, OrderedDict] = {
        "operating": OrderedDict(),
        "investing": OrderedDict(),
        "financing": OrderedDict(),
    }
    for row in rows:
        amount = _q2(row["debit"]) - _q2(row["credit"])
        section = "financing" if row["journal_entry_id"] in equity_entries else "operating"
        source = row["journal_entry__source_type"]
        sections[section][source] = sections[section].get(source, ZERO) + amount

    def _section(name):
        items = [
            {"source_type": source, "label": labels.get(source, source), **_pair("amount", amount)}
            for source, amount in sorted(sections[name].items())
            if amount != 0
        ]
        return items, _q2(sum(sections[name].values(), ZERO))

    operating, operating_total = _section("operating")
    investing, investing_total = _section("investing")
    financing, financing_total = _section("financing")

    beginning = _cash_balance(end=start - timedelta(days=1)) if start else ZERO
    net_change = _q2(operating_total + investing_total + financing_total)
    ending = _q2(beginning + net_change)

    return {
        "start": start.isoformat() if start else None,
        "end": end.isoformat(),
        "operating": operating,
        "investing": investing,
        "financing": financing,
        **_pair("operating_total", operating_total),
        **_pair("investing_total", investing_total),
        **_pair("financing_total", financing_total),
        **_pair("net_change", net_change),
        **_pair("beginning_cash", beginning),
        **_pair("ending_cash", ending),
        "reconciled": _to_minor_int(ending) == _to_minor_int(_cash_balance(end=end)),
    }


# ------------------------------------------------------------
# Aging (cuentas por pagar / por cobrar)
# ------------------------------------------------------------

AGING_BUCKETS = ("current", "days_31_60", "days_61_90", "over_90")


def _bucket_for(days: int) -> str:
    if days <= 30:
        return "current"
    if days <= 60:
        return "days_31_60"
    if days <= 90:
        return "days_61_90"
    return "over_90"


def _empty_buckets() -> dict:
    return {name: ZERO for name in (*AGING_BUCKETS, "total")}


def _render_buckets(buckets: dict) -> dict:
    return {name: _to_major_number(amount) for name, amount in buckets.items()}


def _aging_report(items, *, as_of, party_key: str) -> dict:
    """
    items: (party_id, party_name, doc_date, outstanding) tuples.
    """
    parties: OrderedDict = OrderedDict()
    totals = _empty_buckets()

    for party_id, name, doc_date, outstanding in items:
        if outstanding <= 0:
            continue
        bucket = _bucket_for(max(0, (as_of - doc_date).days))
        record = parties.setdefault(party_id, {"name": name, "documents": 0, "aging": _empty_buckets()})
        record["documents"] += 1
        record["aging"][bucket] += outstanding
        record["aging"]["total"] += outstanding
        totals[bucket] += outstanding
        totals["total"] += outstanding

    return {
        "as_of": as_of.isoformat(),
        party_key: [
            {"id": party_id, "name": r["name"], "documents": r["documents"], "aging": _render_buckets(r["aging"])}
            for party_id, r in parties.items()
        ],
        "totals": _render_buckets(totals),
        "total_minor": _to_minor_int(totals["total"]),
    }


def get_ap_aging(*, as_of=None) -> dict:
    """
    Unpaid balance (total - amount_paid) of recorded supplier invoices dated
    on or before `as_of`, aged from the issue date.
    """
    from purchases.models import PurchaseInvoice

    as_of = as_of or timezone.localdate()
    invoices = (
        PurchaseInvoice.objects.filter(status=PurchaseInvoice.STATUS_RECORDED, issue_date__lte=as_of)
        .filter(total__gt=F("amount_paid"))
        .select_related("supplier")
        .order_by("supplier__name", "issue_date", "id")
    )
    items = (
        (inv.supplier_id, inv.supplier.name, inv.issue_date, _q2(inv.total - inv.amount_paid))
        for inv in invoices
    )
    return _aging_report(items, as_of=as_of, party_key="suppliers")


def get_ar_aging(*, as_of=None) -> dict:
    """
    Credit (fiao) sales still owed, aged from the sale date.

    Outstanding = sale total minus returns refunded against the customer's
    credit. Customers are keyed by RNC when given, else by name.
    """
    from sales.models import Sale

    as_of = as_of or timezone.localdate()
    sales = (
        Sale.objects.filter(payment_method=Sale.PAYMENT_CREDIT, sale_date__lte=as_of)
        .annotate(
            credited=Sum(
                "returns__total",
                filter=Q(returns__refund_method=Sale.PAYMENT_CREDIT, returns__return_date__lte=as_of),
            )
        )
        .order_by("sale_date", "id")
    )

    items = []
    for sale in sales:
        name = sale.customer_name or "Cliente"
        party_id = sale.customer_rnc or name.strip().lower()
        items.append((party_id, name, sale.sale_date, _q2(sale.total - _q2(sale.credited))))
    return _aging_report(items, as_of=as_of, party_key="customers")
