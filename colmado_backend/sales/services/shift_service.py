# sales/services/shift_service.py

"""
CASH SHIFT SERVICE

Opening a drawer and recording cash movements during the shift.
Closing lives in accounting.services.closing_service (it posts the variance).
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction

from sales.models import CashShift
from sales.services.exceptions import ShiftError

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def get_open_shift(opened_by: str) -> CashShift | None:
    return CashShift.objects.filter(opened_by=opened_by, status=CashShift.STATUS_OPEN).first()


@transaction.atomic
def open_shift(*, opened_by: str, opening_cash=0) -> CashShift:
    opened_by = (opened_by or "").strip()
    if not opened_by:
        raise ShiftError("opened_by is required")

    if get_open_shift(opened_by) is not None:
        raise ShiftError(f"{opened_by} already has an open shift")

    amount = _money(opening_cash)
    if amount < 0:
        raise ShiftError("Opening cash cannot be negative")

    shift = CashShift.objects.create(opened_by=opened_by, opening_cash=amount)
    logger.info(
        "Cash shift opened",
        extra={"shift": shift.shift_number, "opened_by": opened_by, "opening_cash": str(amount)},
    )
    return shift


@transaction.atomic
def record_cash_movement(*, shift: CashShift, amount, direction: str, actor: str = "system") -> CashShift:
    shift = CashShift.objects.select_for_update().get(pk=shift.pk)
    if not shift.is_open:
        raise ShiftError(f"Shift {shift.shift_number} is closed")

    value = _money(amount)
    if value <= 0:
        raise ShiftError("Amount must be > 0")

    if direction == "in":
        shift.cash_in += value
    elif direction == "out":
        shift.cash_out += value
    else:
        raise ShiftError(f"Invalid direction {direction!r}; use 'in' or 'out'")

    shift.save(update_fields=["cash_in", "cash_out"])
    logger.info(
        "Cash movement recorded",
        extra={"shift": shift.shift_number, "direction": direction, "amount": str(value), "actor": actor},
    )
    return shift
