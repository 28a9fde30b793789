# accounting/services/trial_balance_service.py

"""
PATH: accounting/services/trial_balance_service.py

TRIAL BALANCE

Sums of POSTED journal lines per account, up to a cutoff date (and
optionally from a start date, for a period trial balance).

Amounts are returned twice: as JSON numbers (pesos) and as integer
centavos (`*_minor`), which is what callers compare.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Sum
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine

TWOPLACES = Decimal("0.01")


def _q2(amount: Decimal) -> Decimal:
    return (amount or Decimal("0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_major_number(amount: Decimal) -> float:
    return float(_q2(amount))


def _to_minor_int(amount: Decimal) -> int:
    return int((_q2(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def posted_lines(*, start=None, end=None):
    """
    Journal lines of POSTED entries, optionally bounded by entry_date.
    Voided entries drop out entirely; pending ones never count.
    """
    qs = JournalLine.objects.filter(journal_entry__status=JournalEntry.STATUS_POSTED)
    if start:
        qs = qs.filter(journal_entry__entry_date__gte=start)
    if end:
        qs = qs.filter(journal_entry__entry_date__lte=end)
    return qs


class TrialBalanceService:
    def generate(self, *, as_of=None, start=None) -> dict:
        cutoff = as_of or timezone.localdate()

        sums = {
            row["account_id"]: (_q2(row["debit"]), _q2(row["credit"]))
            for row in posted_lines(start=start, end=cutoff)
            .values("account_id")
            .annotate(debit=Sum("debit"), credit=Sum("credit"))
        }

        rows = []
        total_debit = total_credit = Decimal("0.00")
        for account in Account.objects.filter(id__in=sums).order_by("code"):
            debit, credit = sums[account.id]
            if not debit and not credit:
                continue

            balance = account.signed_balance(debit, credit)
            rows.append(
                {
                    "account_id": account.id,
                    "account_code": account.code,
                    "account_name": account.name,
                    "account_type": account.account_type,
                    "normal_balance": account.normal_balance,
                    "debit": _to_major_number(debit),
                    "credit": _to_major_number(credit),
                    "balance": _to_major_number(balance),
                    "debit_minor": _to_minor_int(debit),
                    "credit_minor": _to_minor_int(credit),
                    "balance_minor": _to_minor_int(balance),
                }
            )
            total_debit += debit
            total_credit += credit

        debit_minor = _to_minor_int(total_debit)
        credit_minor = _to_minor_int(total_credit)
        return {
            "start": start.isoformat() if start else None,
            "as_of": cutoff.isoformat(),
            "accounts": rows,
            "totals": {
                "debit": _to_major_number(total_debit),
                "credit": _to_major_number(total_credit),
                "debit_minor": debit_minor,
                "credit_minor": credit_minor,
                "difference_minor": debit_minor - credit_minor,
                "balanced": debit_minor == credit_minor,
            },
        }
