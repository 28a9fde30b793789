# inventory/services/adjustments.py

"""
INVENTORY LOSSES (MERMAS)

Damage, theft, count differences and expirations leave the books at their
FIFO cost:
- units come out of lots through the FIFO engine (loss consumptions)
- the cost is posted Dr loss expense (by reason) / Cr Inventario

Expired lots are no longer in the FIFO queue, so write_off_lot() drains one
specific lot instead of walking the queue.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date as date_type

from django.db import transaction
from django.utils import timezone

from accounting.models import JournalEntry
from accounting.services.posting import LOSS_REASON_ACCOUNTS, post_inventory_adjustment
from audit.models import AuditLogEntry
from audit.services.audit_log import log_action
from inventory.models import CostConsumption, InventoryLot
from inventory.services.exceptions import InventoryServiceError
from inventory.services.fifo import ConsumptionResult, consume
from inventory.services.lot_store import adjust_remaining, line_cost

logger = logging.getLogger(__name__)

LOSS_REASONS = tuple(LOSS_REASON_ACCOUNTS)


@dataclass
class LossResult:
    reference: str
    consumption: ConsumptionResult
    journal_entry: JournalEntry | None


def _check_reason(reason: str) -> str:
    reason = (reason or "").strip().lower()
    if reason not in LOSS_REASONS:
        raise InventoryServiceError(
            f"Unknown loss reason {reason!r}; expected one of {', '.join(LOSS_REASONS)}"
        )
    return reason


@transaction.atomic
def record_inventory_loss(
    *,
    product,
    quantity,
    reason: str,
    date: date_type | None = None,
    actor: str = "system",
    strict: bool = True,
    notes: str = "",
) -> LossResult:
    reason = _check_reason(reason)
    day = date or timezone.localdate()
    reference = f"loss:{uuid.uuid4()}"

    result = consume(
        product=product,
        quantity=quantity,
        consumption_type=CostConsumption.TYPE_LOSS,
        date=day,
        reference=reference,
        strict=strict,
        actor=actor,
    )

    entry = post_inventory_adjustment(
        reason=reason,
        amount=result.total_cost,
        entry_date=day,
        source_id=reference,
        description=f"Merma {product.sku} ({reason})",
        actor=actor,
    )

    log_action(
        action=AuditLogEntry.Action.INVENTORY_LOSS,
        entity_type=AuditLogEntry.EntityType.PRODUCT,
        entity_id=product.uuid,
        actor=actor,
        details={
            "reference": reference,
            "reason": reason,
            "quantity": result.allocated_quantity,
            "total_cost": result.total_cost,
            "journal_entry_id": getattr(entry, "pk", None),
            "notes": notes,
        },
    )

    logger.info(
        "Inventory loss recorded",
        extra={
            "product_id": product.pk,
            "reason": reason,
            "quantity": str(result.allocated_quantity),
            "total_cost": str(result.total_cost),
        },
    )
    return LossResult(reference=reference, consumption=result, journal_entry=entry)


@transaction.atomic
def write_off_lot(
    *,
    lot: InventoryLot,
    reason: str = "expiration",
    date: date_type | None = None,
    actor: str = "system",
) -> LossResult:
    """
    Remove everything left in `lot` (usually an expired one) at its cost.
    """
    reason = _check_reason(reason)
    day = date or timezone.localdate()

    lot = InventoryLot.objects.select_for_update().get(pk=lot.pk)
    if lot.status == InventoryLot.STATUS_RETURNED:
        raise InventoryServiceError(f"Lot {lot.pk} was returned to its supplier")

    qty = lot.remaining_quantity
    if qty <= 0:
        raise InventoryServiceError(f"Lot {lot.pk} has nothing left to write off")

    reference = f"writeoff:{lot.uuid}"
    adjust_remaining(lot, -qty, expected_version=lot.version)

    consumption = CostConsumption.objects.create(
        lot=lot,
        product=lot.product,
        consumption_type=CostConsumption.TYPE_LOSS,
        reference=reference,
        quantity=qty,
        unit_cost=lot.unit_cost,
        total_cost=line_cost(qty, lot.unit_cost),
        date=day,
    )
    result = ConsumptionResult(requested_quantity=qty, allocations=[consumption])

    entry = post_inventory_adjustment(
        reason=reason,
        amount=result.total_cost,
        entry_date=day,
        source_id=reference,
        description=f"Baja de lote {lot.lot_number or lot.pk} ({reason})",
        actor=actor,
    )

    log_action(
        action=AuditLogEntry.Action.INVENTORY_LOSS,
        entity_type=AuditLogEntry.EntityType.FIFO_LOT,
        entity_id=lot.uuid,
        actor=actor,
        before={"remaining_quantity": qty},
        after={"remaining_quantity": lot.remaining_quantity, "status": lot.status},
        details={
            "reference": reference,
            "reason": reason,
            "total_cost": result.total_cost,
            "journal_entry_id": getattr(entry, "pk", None),
        },
    )

    logger.info(
        "Lot written off",
        extra={"lot_id": lot.pk, "quantity": str(qty), "total_cost": str(result.total_cost)},
    )
    return LossResult(reference=reference, consumption=result, journal_entry=entry)
