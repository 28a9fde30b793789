# sales/services/refund_orchestrator.py

"""
RETURN ORCHESTRATOR (DEVOLUCIONES)

Purpose:
- Accept a full or partial return of a finalized sale.
- Refund amounts proportional to the returned share of each line; the last
  units of a line take whatever is left so rounding never drifts.
- Restock the ORIGINAL lots through the FIFO reversal (exact cost basis).
- Post the return journal entry.

Hard rules:
- A line can never be returned beyond its sold quantity.
- One transaction: return rows, lot restocks, compensating consumptions
  and the journal entry commit together.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from accounting.services.posting import post_return
from inventory.services.fifo import reverse_for_item
from inventory.services.lot_store import to_quantity
from sales.models import CashShift, Sale, SaleItem, SaleReturn, SaleReturnItem
from sales.services.exceptions import ReturnError

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")


def _money(v) -> Decimal:
    return Decimal(str(v or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _returned_so_far(item: SaleItem) -> dict:
    agg = item.return_items.aggregate(
        subtotal=Sum("subtotal"), itbis=Sum("itbis"), total=Sum("total")
    )
    return {k: _money(v) for k, v in agg.items()}


def prorate_line(item: SaleItem, quantity: Decimal) -> dict:
    """
    Amounts for returning `quantity` units of `item`.
    """
    if quantity == item.returnable_quantity:
        done = _returned_so_far(item)
        subtotal = item.subtotal - done["subtotal"]
        itbis = item.itbis - done["itbis"]
    else:
        share = quantity / item.quantity
        subtotal = _money(item.subtotal * share)
        itbis = _money(item.itbis * share)

    return {"subtotal": subtotal, "itbis": itbis, "total": subtotal + itbis}


def _collect_items(sale: Sale, items) -> "OrderedDict[int, tuple[SaleItem, Decimal]]":
    if not items:
        raise ReturnError("A return needs at least one item")

    requested: "OrderedDict[int, tuple[SaleItem, Decimal]]" = OrderedDict()

    for entry in items:
        raw_item = entry.get("sale_item")
        item_id = raw_item.pk if isinstance(raw_item, SaleItem) else raw_item
        qty = to_quantity(entry.get("quantity"))

        if item_id in requested:
            item, prev = requested[item_id]
            requested[item_id] = (item, prev + qty)
            continue

        item = SaleItem.objects.select_for_update().filter(pk=item_id, sale=sale).first()
        if item is None:
            raise ReturnError(f"Item {item_id} does not belong to sale {sale.receipt_number}")
        requested[item_id] = (item, qty)

    for item, qty in requested.values():
        if qty > item.returnable_quantity:
            raise ReturnError(
                f"Cannot return {qty} of {item.product.sku}; only {item.returnable_quantity} returnable",
                sale_item_id=item.pk,
            )

    return requested


@transaction.atomic
def process_return(
    *,
    sale: Sale,
    items,
    refund_method: str | None = None,
    return_date=None,
    actor: str = "system",
    reason: str = "",
    shift: CashShift | None = None,
) -> SaleReturn:
    sale = Sale.objects.select_for_update().get(pk=sale.pk)
    if sale.status == Sale.STATUS_RETURNED:
        raise ReturnError(f"Sale {sale.receipt_number} is already fully returned")

    refund_method = (refund_method or sale.payment_method).strip().lower()
    if refund_method not in dict(Sale.PAYMENT_CHOICES):
        raise ReturnError(f"Invalid refund method {refund_method!r}")

    return_date = return_date or timezone.localdate()
    if return_date < sale.sale_date:
        raise ReturnError("A return cannot predate its sale")

    if shift is not None and not shift.is_open:
        raise ReturnError(f"Shift {shift.shift_number} is closed")

    requested = _collect_items(sale, items)
    amounts = {item_id: prorate_line(item, qty) for item_id, (item, qty) in requested.items()}

    sale_return = SaleReturn.objects.create(
        sale=sale,
        return_date=return_date,
        shift=shift,
        refund_method=refund_method,
        reason=(reason or "").strip(),
        subtotal=sum((a["subtotal"] for a in amounts.values()), ZERO_MONEY),
        itbis_total=sum((a["itbis"] for a in amounts.values()), ZERO_MONEY),
        total=sum((a["total"] for a in amounts.values()), ZERO_MONEY),
        created_by=actor or "system",
    )

    reversed_consumptions = []
    cost_total = ZERO_MONEY

    for item_id, (item, qty) in requested.items():
        result = reverse_for_item(
            sale_item=item,
            quantity=qty,
            sale_return=sale_return,
            date=return_date,
            actor=actor,
        )
        reversed_consumptions.extend(result.allocations)
        cost_total += result.total_cost

        SaleReturnItem.objects.create(
            sale_return=sale_return,
            sale_item=item,
            quantity=qty,
            cost_total=result.total_cost,
            **amounts[item_id],
        )

        item.returned_quantity = item.returned_quantity + qty
        item.save(update_fields=["returned_quantity"])

    sale_return.cost_total = _money(cost_total)
    sale_return.journal_entry = post_return(sale_return, reversed_consumptions, actor=actor)
    sale_return.save(update_fields=["cost_total", "journal_entry"])

    fully_returned = all(i.returned_quantity >= i.quantity for i in sale.items.all())
    sale.status = Sale.STATUS_RETURNED if fully_returned else Sale.STATUS_PARTIALLY_RETURNED
    sale.save(update_fields=["status"])

    logger.info(
        "Sale return processed",
        extra={
            "receipt_number": sale.receipt_number,
            "return_id": sale_return.pk,
            "total": str(sale_return.total),
            "restored_cost": str(sale_return.cost_total),
        },
    )
    return sale_return
