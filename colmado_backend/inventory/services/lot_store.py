# inventory/services/lot_store.py

"""
======================================================
PATH: inventory/services/lot_store.py
======================================================
LOT STORE

Durable record of available inventory cost layers per product.

This module is the ONLY place allowed to:
- Create InventoryLot rows
- Change InventoryLot.remaining_quantity

Concurrency:
- adjust_remaining() is a single conditional UPDATE. The WHERE clause carries
  the bounds (and optionally the version the caller read), so two devices
  decrementing the same lot can never both succeed past zero.
- Zero rows updated is reported as ConcurrentModificationError when the
  version moved under the caller, else InsufficientLotQuantityError.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.db import models, transaction
from django.db.models import Case, F, Sum, Value, When
from django.utils import timezone

from audit.models import AuditLogEntry
from audit.services.audit_log import log_action, snapshot
from inventory.models import InventoryLot, Product
from inventory.services.exceptions import (
    ConcurrentModificationError,
    InsufficientLotQuantityError,
    InvalidCostError,
    InvalidQuantityError,
    InventoryServiceError,
)

logger = logging.getLogger(__name__)

QTYPLACES = Decimal("0.001")
COSTPLACES = Decimal("0.0001")
TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")


def to_quantity(value, *, allow_negative: bool = False) -> Decimal:
    """
    Quantity normalizer: Decimal with 3 places (weighed goods allowed).
    """
    if isinstance(value, bool):
        raise InvalidQuantityError("quantity must be numeric", value=value)
    try:
        qty = Decimal(str(value)).quantize(QTYPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidQuantityError(f"Invalid quantity: {value!r}", value=value) from exc

    if not allow_negative and qty <= ZERO:
        raise InvalidQuantityError("quantity must be > 0", value=str(qty))
    return qty


def to_unit_cost(value) -> Decimal:
    if isinstance(value, bool):
        raise InvalidCostError("unit cost must be numeric", value=value)
    try:
        cost = Decimal(str(value)).quantize(COSTPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidCostError(f"Invalid unit cost: {value!r}", value=value) from exc

    if cost <= ZERO:
        raise InvalidCostError("unit cost must be > 0", value=str(cost))
    return cost


def line_cost(quantity: Decimal, unit_cost: Decimal) -> Decimal:
    return (quantity * unit_cost).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_rate(value) -> Decimal:
    try:
        rate = Decimal(str(value if value is not None else "0"))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InventoryServiceError(f"Invalid tax rate: {value!r}") from exc
    if rate < ZERO or rate >= Decimal("1"):
        raise InventoryServiceError(f"Tax rate out of range: {rate}")
    return rate.quantize(COSTPLACES)


@transaction.atomic
def create_lot(
    *,
    product: Product,
    quantity,
    unit_cost,
    tax_rate=None,
    purchase_date: date | None = None,
    lot_number: str = "",
    expiration_date: date | None = None,
    purchase_invoice=None,
    actor: str = "system",
) -> InventoryLot:
    """
    Create a FIFO cost layer. Inputs are validated before any write.

    unit_cost is tax-exclusive; the tax-inclusive variant is derived.
    """
    qty = to_quantity(quantity)
    cost = to_unit_cost(unit_cost)
    rate = _to_rate(product.tax_rate if tax_rate is None else tax_rate)

    lot = InventoryLot.objects.create(
        product=product,
        purchase_invoice=purchase_invoice,
        lot_number=(lot_number or "").strip(),
        purchase_date=purchase_date or timezone.localdate(),
        expiration_date=expiration_date,
        original_quantity=qty,
        remaining_quantity=qty,
        unit_cost=cost,
        unit_cost_inc_tax=(cost * (Decimal("1") + rate)).quantize(
            COSTPLACES, rounding=ROUND_HALF_UP
        ),
        tax_rate=rate,
        status=InventoryLot.STATUS_ACTIVE,
    )

    log_action(
        action=AuditLogEntry.Action.FIFO_LOT_CREATED,
        entity_type=AuditLogEntry.EntityType.FIFO_LOT,
        entity_id=lot.uuid,
        actor=actor,
        after=snapshot(lot),
        details={"product_sku": product.sku},
    )

    logger.info(
        "FIFO lot created",
        extra={
            "lot_id": lot.pk,
            "product_id": product.pk,
            "quantity": str(qty),
            "unit_cost": str(cost),
        },
    )
    return lot


def list_available_lots(product) -> list[InventoryLot]:
    """
    FIFO precedence: purchase_date ascending, ties by insertion order.

    Always a fresh read; callers restart from here after a conflict.
    """
    return list(
        InventoryLot.objects.filter(
            product=product,
            status=InventoryLot.STATUS_ACTIVE,
            remaining_quantity__gt=0,
        ).order_by("purchase_date", "id")
    )


def get_available_quantity(product) -> Decimal:
    total = InventoryLot.objects.filter(
        product=product,
        status=InventoryLot.STATUS_ACTIVE,
    ).aggregate(total=Sum("remaining_quantity"))["total"]
    return (total or ZERO).quantize(QTYPLACES)


def adjust_remaining(
    lot: InventoryLot,
    delta,
    *,
    expected_version: int | None = None,
) -> InventoryLot:
    """
    Compare-and-adjust lot.remaining_quantity by `delta`.

    delta < 0 on consumption, delta > 0 on return-restock.
    """
    delta = to_quantity(delta, allow_negative=True)
    if delta == ZERO:
        raise InvalidQuantityError("delta must be non-zero")

    qs = InventoryLot.objects.filter(
        pk=lot.pk,
        remaining_quantity__gte=-delta,
        remaining_quantity__lte=F("original_quantity") - delta,
    )
    if expected_version is not None:
        qs = qs.filter(version=expected_version)

    terminal = When(status__in=InventoryLot.TERMINAL_STATUSES, then=F("status"))

    if delta < ZERO:
        status_expr = Case(
            terminal,
            When(remaining_quantity=-delta, then=Value(InventoryLot.STATUS_DEPLETED)),
            default=F("status"),
            output_field=models.CharField(),
        )
        depleted_expr = Case(
            When(remaining_quantity=-delta, then=Value(timezone.now())),
            default=F("depleted_at"),
            output_field=models.DateTimeField(),
        )
    else:
        status_expr = Case(
            terminal,
            default=Value(InventoryLot.STATUS_ACTIVE),
            output_field=models.CharField(),
        )
        depleted_expr = Case(
            When(status__in=InventoryLot.TERMINAL_STATUSES, then=F("depleted_at")),
            default=Value(None),
            output_field=models.DateTimeField(),
        )

    updated = qs.update(
        remaining_quantity=F("remaining_quantity") + delta,
        status=status_expr,
        depleted_at=depleted_expr,
        version=F("version") + 1,
    )

    if updated == 0:
        current = (
            InventoryLot.objects.filter(pk=lot.pk)
            .values("version", "remaining_quantity", "original_quantity")
            .first()
        )
        if current is None:
            raise InventoryServiceError(f"Lot {lot.pk} does not exist")

        if expected_version is not None and current["version"] != expected_version:
            logger.warning(
                "Lot changed under concurrent writer",
                extra={
                    "lot_id": lot.pk,
                    "expected_version": expected_version,
                    "actual_version": current["version"],
                },
            )
            raise ConcurrentModificationError(
                f"Lot {lot.pk} was modified concurrently",
                lot_id=lot.pk,
            )

        raise InsufficientLotQuantityError(
            f"Lot {lot.pk} cannot be adjusted by {delta}: "
            f"remaining={current['remaining_quantity']} original={current['original_quantity']}",
            lot_id=lot.pk,
            delta=str(delta),
        )

    lot.refresh_from_db(fields=["remaining_quantity", "status", "depleted_at", "version"])
    return lot


@transaction.atomic
def mark_lot_expired(lot: InventoryLot, *, actor: str = "system") -> InventoryLot:
    """
    Pull an active lot out of FIFO. Units stay on the books until written
    off with inventory.services.adjustments.write_off_lot().
    """
    before = snapshot(lot, fields=["id", "status", "remaining_quantity", "version"])

    updated = InventoryLot.objects.filter(
        pk=lot.pk,
        status=InventoryLot.STATUS_ACTIVE,
    ).update(status=InventoryLot.STATUS_EXPIRED, version=F("version") + 1)

    if updated == 0:
        lot.refresh_from_db(fields=["status"])
        raise InventoryServiceError(
            f"Only active lots can be expired (lot {lot.pk} is {lot.status})"
        )

    lot.refresh_from_db(fields=["remaining_quantity", "status", "depleted_at", "version"])

    log_action(
        action=AuditLogEntry.Action.FIFO_LOT_EXPIRED,
        entity_type=AuditLogEntry.EntityType.FIFO_LOT,
        entity_id=lot.uuid,
        actor=actor,
        before=before,
        after=snapshot(lot, fields=["id", "status", "remaining_quantity", "version"]),
    )
    return lot


def _warning_days(days: int | None) -> int:
    if days is not None:
        return int(days)
    return int(getattr(settings, "INVENTORY", {}).get("EXPIRY_WARNING_DAYS", 7))


def list_expiring_lots(*, days: int | None = None, today: date | None = None):
    today = today or timezone.localdate()
    horizon = today + timedelta(days=_warning_days(days))
    return InventoryLot.objects.select_related("product").filter(
        status=InventoryLot.STATUS_ACTIVE,
        remaining_quantity__gt=0,
        expiration_date__isnull=False,
        expiration_date__gte=today,
        expiration_date__lte=horizon,
    ).order_by("expiration_date", "id")


def list_expired_lots(*, today: date | None = None):
    today = today or timezone.localdate()
    return InventoryLot.objects.select_related("product").filter(
        status=InventoryLot.STATUS_ACTIVE,
        remaining_quantity__gt=0,
        expiration_date__isnull=False,
        expiration_date__lt=today,
    ).order_by("expiration_date", "id")


@transaction.atomic
def return_lot_to_supplier(lot: InventoryLot, *, actor: str = "system") -> InventoryLot:
    """
    Send an untouched lot back (purchase invoice voided). Lots that already
    fed a sale cannot be returned this way.
    """
    before = snapshot(lot, fields=["id", "status", "remaining_quantity", "version"])

    updated = InventoryLot.objects.filter(
        pk=lot.pk,
        status=InventoryLot.STATUS_ACTIVE,
        remaining_quantity=F("original_quantity"),
    ).update(status=InventoryLot.STATUS_RETURNED, version=F("version") + 1)

    if updated == 0:
        lot.refresh_from_db(fields=["status", "remaining_quantity"])
        raise InventoryServiceError(
            f"Lot {lot.pk} cannot be returned (status={lot.status}, "
            f"remaining={lot.remaining_quantity} of {lot.original_quantity})"
        )

    lot.refresh_from_db(fields=["remaining_quantity", "status", "depleted_at", "version"])

    log_action(
        action=AuditLogEntry.Action.FIFO_LOT_RETURNED,
        entity_type=AuditLogEntry.EntityType.FIFO_LOT,
        entity_id=lot.uuid,
        actor=actor,
        before=before,
        after=snapshot(lot, fields=["id", "status", "remaining_quantity", "version"]),
    )
    return lot
