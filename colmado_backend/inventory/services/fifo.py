# inventory/services/fifo.py

"""
FIFO CONSUMPTION ENGINE

Purpose:
- Translate "consume N units of product P" into per-lot allocations
  (CostConsumption rows) at each lot's own unit cost, oldest lot first.
- Reverse prior consumptions back into the SAME lots (never re-selected by
  FIFO) so a return restores the exact cost basis it took out.

Insufficient stock policy:
- Default: allocate what is available and report is_partial/shortfall.
  The caller decides what to do with the unallocated units (checkout keeps
  them on the sale line as unallocated_quantity).
- strict=True (or settings.INVENTORY["FIFO_STRICT"]): raise
  InsufficientInventoryError before touching any lot.

Concurrency:
- Each attempt runs in its own savepoint and decrements lots with the
  version it read. A conflict rolls the attempt back and the walk restarts
  from a fresh list_available_lots() read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date as date_type
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from audit.models import AuditLogEntry
from audit.services.audit_log import log_action
from inventory.models import CostConsumption, InventoryLot
from inventory.services.concurrency import run_with_retry
from inventory.services.exceptions import (
    InsufficientInventoryError,
    InsufficientLotQuantityError,
    InventoryServiceError,
)
from inventory.services.lot_store import (
    ZERO,
    adjust_remaining,
    line_cost,
    list_available_lots,
    to_quantity,
)

logger = logging.getLogger(__name__)

COSTPLACES = Decimal("0.0001")


@dataclass
class ConsumptionResult:
    requested_quantity: Decimal
    allocations: list[CostConsumption] = field(default_factory=list)

    @property
    def allocated_quantity(self) -> Decimal:
        return sum((a.quantity for a in self.allocations), ZERO)

    @property
    def total_cost(self) -> Decimal:
        return sum((a.total_cost for a in self.allocations), Decimal("0.00"))

    @property
    def shortfall(self) -> Decimal:
        return max(self.requested_quantity - self.allocated_quantity, ZERO)

    @property
    def is_partial(self) -> bool:
        return self.shortfall > ZERO

    @property
    def avg_unit_cost(self) -> Decimal:
        qty = self.allocated_quantity
        if qty <= ZERO:
            return Decimal("0.0000")
        return (self.total_cost / qty).quantize(COSTPLACES, rounding=ROUND_HALF_UP)


def _engine_setting(key: str, default):
    return getattr(settings, "INVENTORY", {}).get(key, default)


def _consume_once(
    *,
    product,
    quantity: Decimal,
    consumption_type: str,
    day: date_type,
    sale,
    sale_item,
    reference: str,
    strict: bool,
    actor: str,
) -> ConsumptionResult:
    lots = list_available_lots(product)
    available = sum((lot.remaining_quantity for lot in lots), ZERO)

    if strict and available < quantity:
        raise InsufficientInventoryError(
            f"Insufficient inventory for {product.sku}: requested={quantity} available={available}",
            product_id=product.pk,
            requested=str(quantity),
            available=str(available),
        )

    result = ConsumptionResult(requested_quantity=quantity)
    still_needed = quantity

    for lot in lots:
        if still_needed <= ZERO:
            break

        take = min(lot.remaining_quantity, still_needed)
        before_remaining = lot.remaining_quantity

        adjust_remaining(lot, -take, expected_version=lot.version)

        consumption = CostConsumption.objects.create(
            lot=lot,
            product=product,
            consumption_type=consumption_type,
            sale=sale,
            sale_item=sale_item,
            reference=reference,
            quantity=take,
            unit_cost=lot.unit_cost,
            total_cost=line_cost(take, lot.unit_cost),
            date=day,
        )
        result.allocations.append(consumption)

        log_action(
            action=AuditLogEntry.Action.FIFO_CONSUMPTION,
            entity_type=AuditLogEntry.EntityType.FIFO_LOT,
            entity_id=lot.uuid,
            actor=actor,
            before={"remaining_quantity": before_remaining},
            after={"remaining_quantity": lot.remaining_quantity, "status": lot.status},
            details={
                "consumption_id": consumption.pk,
                "consumption_type": consumption_type,
                "quantity": take,
                "unit_cost": lot.unit_cost,
                "sale_id": getattr(sale, "pk", None),
                "reference": reference,
            },
        )

        still_needed -= take

    return result


@transaction.atomic
def consume(
    *,
    product,
    quantity,
    consumption_type: str = CostConsumption.TYPE_SALE,
    date: date_type | None = None,
    sale=None,
    sale_item=None,
    reference: str = "",
    strict: bool | None = None,
    actor: str = "system",
) -> ConsumptionResult:
    qty = to_quantity(quantity)

    if consumption_type not in CostConsumption.OUTBOUND_TYPES:
        raise InventoryServiceError(
            f"consume() only records outbound types, got {consumption_type!r}"
        )

    if strict is None:
        strict = bool(_engine_setting("FIFO_STRICT", False))

    day = date or timezone.localdate()

    def attempt():
        with transaction.atomic():
            return _consume_once(
                product=product,
                quantity=qty,
                consumption_type=consumption_type,
                day=day,
                sale=sale,
                sale_item=sale_item,
                reference=reference,
                strict=strict,
                actor=actor,
            )

    result = run_with_retry(attempt, attempts=_engine_setting("MAX_RETRIES", 3))

    if result.is_partial:
        logger.warning(
            "FIFO consumption partially allocated",
            extra={
                "product_id": product.pk,
                "requested": str(qty),
                "allocated": str(result.allocated_quantity),
                "shortfall": str(result.shortfall),
                "sale_id": getattr(sale, "pk", None),
            },
        )
    else:
        logger.info(
            "FIFO consumption allocated",
            extra={
                "product_id": product.pk,
                "quantity": str(qty),
                "total_cost": str(result.total_cost),
                "lots": len(result.allocations),
            },
        )

    return result


def reversible_quantity(consumption: CostConsumption) -> Decimal:
    reversed_qty = consumption.reversals.aggregate(total=Sum("quantity"))["total"]
    return consumption.quantity - (reversed_qty or ZERO)


@transaction.atomic
def reverse(
    consumptions,
    *,
    sale_return=None,
    quantities: dict | None = None,
    date: date_type | None = None,
    reference: str = "",
    actor: str = "system",
) -> ConsumptionResult:
    """
    Restock the original lots of `consumptions`.

    quantities maps consumption pk -> quantity to reverse; missing entries
    reverse whatever is still reversible. Over-reversal raises
    InsufficientLotQuantityError.
    """
    quantities = quantities or {}
    day = date or timezone.localdate()

    pks = [c.pk for c in consumptions]
    originals = {
        c.pk: c
        for c in CostConsumption.objects.select_for_update()
        .select_related("lot", "product")
        .filter(pk__in=pks)
    }

    requested = ZERO
    result = ConsumptionResult(requested_quantity=ZERO)

    for pk in pks:
        original = originals[pk]
        if original.consumption_type not in CostConsumption.OUTBOUND_TYPES:
            raise InventoryServiceError(
                f"Consumption {pk} is a {original.consumption_type} and cannot be reversed"
            )

        reversible = reversible_quantity(original)
        qty = quantities.get(pk)
        qty = reversible if qty is None else to_quantity(qty)

        if qty > reversible:
            raise InsufficientLotQuantityError(
                f"Cannot reverse {qty} from consumption {pk}; only {reversible} remains",
                consumption_id=pk,
            )
        if qty <= ZERO:
            continue

        if qty == reversible:
            already = original.reversals.aggregate(total=Sum("total_cost"))["total"]
            total = original.total_cost - (already or Decimal("0.00"))
        else:
            total = line_cost(qty, original.unit_cost)

        lot: InventoryLot = original.lot
        before_remaining = lot.remaining_quantity
        adjust_remaining(lot, qty)

        compensating = CostConsumption.objects.create(
            lot=lot,
            product=original.product,
            consumption_type=CostConsumption.TYPE_RETURN,
            sale=original.sale,
            sale_item=original.sale_item,
            sale_return=sale_return,
            reference=reference,
            reverses=original,
            quantity=qty,
            unit_cost=original.unit_cost,
            total_cost=total,
            date=day,
        )
        result.allocations.append(compensating)
        requested += qty

        log_action(
            action=AuditLogEntry.Action.FIFO_CONSUMPTION_REVERSED,
            entity_type=AuditLogEntry.EntityType.FIFO_LOT,
            entity_id=lot.uuid,
            actor=actor,
            before={"remaining_quantity": before_remaining},
            after={"remaining_quantity": lot.remaining_quantity, "status": lot.status},
            details={
                "consumption_id": compensating.pk,
                "reverses": original.pk,
                "quantity": qty,
                "unit_cost": original.unit_cost,
                "sale_return_id": getattr(sale_return, "pk", None),
            },
        )

    result.requested_quantity = requested
    return result


@transaction.atomic
def reverse_for_item(
    *,
    sale_item,
    quantity,
    sale_return=None,
    date: date_type | None = None,
    actor: str = "system",
) -> ConsumptionResult:
    """
    Partial return helper: restock `quantity` units of one sale line,
    walking its consumptions oldest first.

    Units the sale never costed (partial allocation) restock nothing.
    """
    still_needed = to_quantity(quantity)

    plan: dict = {}
    ordered = []
    for original in sale_item.cost_consumptions.filter(
        consumption_type=CostConsumption.TYPE_SALE
    ).order_by("created_at", "id"):
        if still_needed <= ZERO:
            break
        take = min(reversible_quantity(original), still_needed)
        if take <= ZERO:
            continue
        plan[original.pk] = take
        ordered.append(original)
        still_needed -= take

    if not ordered:
        return ConsumptionResult(requested_quantity=ZERO)

    return reverse(
        ordered,
        sale_return=sale_return,
        quantities=plan,
        date=date,
        reference=f"sale_item:{sale_item.pk}",
        actor=actor,
    )
