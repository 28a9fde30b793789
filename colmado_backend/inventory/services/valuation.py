# inventory/services/valuation.py

"""
INVENTORY VALUATION & COGS (READ-ONLY)

Everything here is derived from InventoryLot and CostConsumption rows:
- on-hand value = sum(remaining * unit_cost) over active/expired lots
- COGS for a date range = outbound sale consumptions minus their returns
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import DecimalField, ExpressionWrapper, F, Q, Sum

from inventory.models import CostConsumption, InventoryLot, Product

TWOPLACES = Decimal("0.01")
COSTPLACES = Decimal("0.0001")
ZERO = Decimal("0")

ON_BOOKS_STATUSES = (InventoryLot.STATUS_ACTIVE, InventoryLot.STATUS_EXPIRED)


def _q2(amount) -> Decimal:
    return (amount or Decimal("0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


_LOT_VALUE = ExpressionWrapper(
    F("remaining_quantity") * F("unit_cost"),
    output_field=DecimalField(max_digits=20, decimal_places=4),
)


def get_fifo_cost(product) -> Decimal:
    """Unit cost of the next unit FIFO would hand out (fallback cost when none)."""
    lot = (
        InventoryLot.objects.filter(
            product=product,
            status=InventoryLot.STATUS_ACTIVE,
            remaining_quantity__gt=0,
        )
        .order_by("purchase_date", "id")
        .first()
    )
    if lot is None:
        return Decimal(product.fallback_unit_cost or 0).quantize(COSTPLACES)
    return lot.unit_cost


def get_weighted_average_cost(product) -> Decimal:
    agg = InventoryLot.objects.filter(
        product=product,
        status=InventoryLot.STATUS_ACTIVE,
        remaining_quantity__gt=0,
    ).aggregate(qty=Sum("remaining_quantity"), value=Sum(_LOT_VALUE))

    qty = agg["qty"] or ZERO
    if qty <= ZERO:
        return Decimal(product.fallback_unit_cost or 0).quantize(COSTPLACES)
    return (Decimal(agg["value"]) / qty).quantize(COSTPLACES, rounding=ROUND_HALF_UP)


def get_product_valuation(product) -> dict:
    lots = list(
        InventoryLot.objects.filter(
            product=product,
            status__in=ON_BOOKS_STATUSES,
            remaining_quantity__gt=0,
        ).order_by("purchase_date", "id")
    )

    total_qty = ZERO
    total_value = Decimal("0.00")
    rows = []
    for lot in lots:
        value = _q2(lot.remaining_quantity * lot.unit_cost)
        total_qty += lot.remaining_quantity
        total_value += value
        rows.append(
            {
                "lot_id": lot.pk,
                "lot_uuid": str(lot.uuid),
                "lot_number": lot.lot_number,
                "purchase_date": lot.purchase_date.isoformat(),
                "expiration_date": lot.expiration_date.isoformat() if lot.expiration_date else None,
                "status": lot.status,
                "remaining_quantity": str(lot.remaining_quantity),
                "unit_cost": str(lot.unit_cost),
                "value": str(value),
            }
        )

    avg = (total_value / total_qty).quantize(COSTPLACES) if total_qty > ZERO else Decimal("0.0000")

    return {
        "product_id": product.pk,
        "sku": product.sku,
        "name": product.name,
        "quantity": str(total_qty),
        "value": str(_q2(total_value)),
        "average_unit_cost": str(avg),
        "lots": rows,
    }


def get_total_valuation() -> dict:
    rows = (
        InventoryLot.objects.filter(
            status__in=ON_BOOKS_STATUSES,
            remaining_quantity__gt=0,
        )
        .values("product_id", "product__sku", "product__name")
        .annotate(quantity=Sum("remaining_quantity"), value=Sum(_LOT_VALUE))
        .order_by("product__sku")
    )

    products = []
    grand_total = Decimal("0.00")
    for r in rows:
        value = _q2(Decimal(r["value"] or 0))
        grand_total += value
        products.append(
            {
                "product_id": r["product_id"],
                "sku": r["product__sku"],
                "name": r["product__name"],
                "quantity": str(r["quantity"]),
                "value": str(value),
            }
        )

    return {
        "products": products,
        "total_value": str(_q2(grand_total)),
        "product_count": Product.objects.filter(is_active=True).count(),
    }


def get_cogs_for_period(*, start: date, end: date) -> Decimal:
    """
    Net COGS from sales in [start, end]: sale consumptions minus the return
    consumptions that reverse them, both by their own date.
    """
    agg = CostConsumption.objects.filter(date__gte=start, date__lte=end).aggregate(
        sold=Sum(
            "total_cost",
            filter=Q(consumption_type=CostConsumption.TYPE_SALE),
        ),
        returned=Sum(
            "total_cost",
            filter=Q(
                consumption_type=CostConsumption.TYPE_RETURN,
                reverses__consumption_type=CostConsumption.TYPE_SALE,
            ),
        ),
    )
    return _q2(agg["sold"]) - _q2(agg["returned"])


def check_conservation(product) -> dict:
    """
    remaining + outbound - returned must equal original, per product.
    """
    lots = InventoryLot.objects.filter(product=product).aggregate(
        original=Sum("original_quantity"),
        remaining=Sum("remaining_quantity"),
    )
    consumed = CostConsumption.objects.filter(product=product).aggregate(
        outbound=Sum(
            "quantity",
            filter=Q(consumption_type__in=CostConsumption.OUTBOUND_TYPES),
        ),
        returned=Sum(
            "quantity",
            filter=Q(consumption_type=CostConsumption.TYPE_RETURN),
        ),
    )

    original = lots["original"] or ZERO
    remaining = lots["remaining"] or ZERO
    outbound = consumed["outbound"] or ZERO
    returned = consumed["returned"] or ZERO

    return {
        "product_id": product.pk,
        "original": original,
        "remaining": remaining,
        "outbound": outbound,
        "returned": returned,
        "balanced": remaining + outbound - returned == original,
    }
