# accounting/services/period_lock.py

"""
======================================================
PATH: accounting/services/period_lock.py
======================================================
PERIOD LOCK GUARD

Purpose:
- Reject any journal posting/void dated in a closed or filed ITBIS period.

Design:
- Thin, reusable guard called by the journal engine, the void service and
  tax retention recording.
- Takes select_for_update on the period summary row so a posting and a
  concurrent close_period() serialize on the same row.
- The summary row is created on first use, so a posting and a close always
  meet on the same locked row even for a month nobody has touched yet.
"""

from __future__ import annotations

from datetime import date, datetime

from django.utils import timezone

from accounting.services.exceptions import PeriodClosedError
from taxes.services.itbis import get_period_summary


def _to_date(value: datetime | date | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if timezone.is_naive(value):
            value = timezone.make_aware(value, timezone.get_current_timezone())
        return timezone.localtime(value).date()
    return value


def assert_period_open(day: datetime | date | None) -> None:
    """
    Raise PeriodClosedError when `day` falls inside a closed/filed period.

    Must run inside a transaction (the row lock is held until commit).
    """
    post_date = _to_date(day)
    if post_date is None:
        return

    summary = get_period_summary(post_date, for_update=True)
    period = summary.period
    if summary.is_locked:
        raise PeriodClosedError(
            f"Posting blocked: {post_date} falls inside {summary.status} period {period}",
            period=period,
            status=summary.status,
        )
