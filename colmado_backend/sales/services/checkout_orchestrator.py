# sales/services/checkout_orchestrator.py

"""
CHECKOUT ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- Finalize a list of priced lines into a completed Sale (atomic, auditable).
- Split each line into subtotal / ITBIS / total.
- Cost each line with the FIFO engine (CostConsumption rows per lot).
- Issue an NCF when the customer needs a fiscal receipt.
- Post the sale journal entry.

Hard rules:
- Money values are computed server-side; the terminal never sends totals.
- The whole checkout is ONE transaction: sale rows, lot decrements,
  consumptions, NCF and journal entry commit together or not at all.
- Units FIFO cannot cover (partial allocation) stay on the line as
  unallocated_quantity and are costed at the product fallback cost
  (tax-exclusive). Strict mode declines the sale.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.utils import timezone

from accounting.services.posting import post_sale
from inventory.models import CostConsumption, Product
from inventory.services.fifo import consume
from inventory.services.lot_store import to_quantity
from sales.models import CashShift, Sale, SaleItem
from sales.services.exceptions import CheckoutError, EmptyCartError
from taxes.services.itbis import compute_line
from taxes.services.ncf import issue_ncf

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

# Crédito fiscal and government receipts identify the buyer
NCF_TYPES_REQUIRING_RNC = ("B01", "B15", "E31")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _resolve_product(value) -> Product:
    if isinstance(value, Product):
        product = value
    else:
        product = Product.objects.filter(pk=value).first()
        if product is None:
            raise CheckoutError(f"Product {value!r} does not exist")

    if not product.is_active:
        raise CheckoutError(f"Product {product.sku} is inactive")
    return product


def _normalize_lines(lines) -> list[dict]:
    if not lines:
        raise EmptyCartError("A sale needs at least one line")

    out = []
    for idx, line in enumerate(lines):
        product = _resolve_product(line.get("product"))
        quantity = to_quantity(line.get("quantity"))

        unit_price = line.get("unit_price")
        unit_price = product.sale_price if unit_price in (None, "") else _money(unit_price)
        if unit_price <= 0:
            raise CheckoutError(f"Line {idx}: unit price must be > 0")

        tax_rate = line.get("tax_rate")
        tax_rate = product.tax_rate if tax_rate in (None, "") else Decimal(str(tax_rate))

        includes = line.get("price_includes_tax")
        includes = product.price_includes_tax if includes is None else bool(includes)

        split = compute_line(
            quantity=quantity,
            unit_price=unit_price,
            rate=tax_rate,
            price_includes_tax=includes,
        )

        out.append(
            {
                "product": product,
                "quantity": quantity,
                "unit_price": unit_price,
                "tax_rate": tax_rate,
                "price_includes_tax": includes,
                **split,
            }
        )
    return out


@transaction.atomic
def finalize_sale(
    *,
    lines,
    payment_method: str,
    sale_date=None,
    actor: str = "system",
    shift: CashShift | None = None,
    ncf_type: str | None = None,
    customer_name: str = "",
    customer_rnc: str = "",
    strict: bool | None = None,
) -> Sale:
    payment_method = (payment_method or "").strip().lower()
    if payment_method not in dict(Sale.PAYMENT_CHOICES):
        raise CheckoutError(f"Invalid payment method {payment_method!r}")

    if shift is not None:
        shift = CashShift.objects.select_for_update().get(pk=shift.pk)
        if not shift.is_open:
            raise CheckoutError(f"Shift {shift.shift_number} is closed")

    customer_rnc = (customer_rnc or "").strip()
    if ncf_type in NCF_TYPES_REQUIRING_RNC and not customer_rnc:
        raise CheckoutError(f"NCF type {ncf_type} requires the customer's RNC")

    normalized = _normalize_lines(lines)
    sale_date = sale_date or timezone.localdate()

    subtotal = sum((ln["subtotal"] for ln in normalized), Decimal("0.00"))
    itbis = sum((ln["itbis"] for ln in normalized), Decimal("0.00"))
    total = sum((ln["total"] for ln in normalized), Decimal("0.00"))

    sale = Sale.objects.create(
        sale_date=sale_date,
        shift=shift,
        payment_method=payment_method,
        customer_name=(customer_name or "").strip(),
        customer_rnc=customer_rnc,
        subtotal=subtotal,
        itbis_total=itbis,
        total=total,
        created_by=actor or "system",
    )

    consumptions: list[CostConsumption] = []
    cost_total = Decimal("0.00")
    unallocated_cost = Decimal("0.00")

    for ln in normalized:
        item = SaleItem.objects.create(
            sale=sale,
            product=ln["product"],
            quantity=ln["quantity"],
            unit_price=ln["unit_price"],
            tax_rate=ln["tax_rate"],
            price_includes_tax=ln["price_includes_tax"],
            subtotal=ln["subtotal"],
            itbis=ln["itbis"],
            total=ln["total"],
        )

        result = consume(
            product=ln["product"],
            quantity=ln["quantity"],
            consumption_type=CostConsumption.TYPE_SALE,
            date=sale_date,
            sale=sale,
            sale_item=item,
            reference=sale.receipt_number,
            strict=strict,
            actor=actor,
        )

        item.cost_total = result.total_cost
        item.unallocated_quantity = result.shortfall
        item.unallocated_cost = _money(result.shortfall * (ln["product"].fallback_unit_cost or 0))
        item.save(update_fields=["cost_total", "unallocated_quantity", "unallocated_cost"])

        if result.shortfall > 0:
            logger.warning(
                "Sale line costed at fallback cost",
                extra={
                    "receipt_number": sale.receipt_number,
                    "sku": ln["product"].sku,
                    "unallocated_quantity": str(result.shortfall),
                    "unallocated_cost": str(item.unallocated_cost),
                },
            )

        consumptions.extend(result.allocations)
        cost_total += result.total_cost
        unallocated_cost += item.unallocated_cost

    sale.cost_total = _money(cost_total + unallocated_cost)

    if ncf_type:
        sale.ncf = issue_ncf(ncf_type=ncf_type, sale=sale, actor=actor).ncf

    sale.journal_entry = post_sale(
        sale, consumptions, unallocated_cost=unallocated_cost, actor=actor
    )
    sale.save(update_fields=["cost_total", "ncf", "journal_entry"])

    logger.info(
        "Sale finalized",
        extra={
            "receipt_number": sale.receipt_number,
            "total": str(sale.total),
            "cost_total": str(sale.cost_total),
            "payment_method": payment_method,
            "ncf": sale.ncf,
        },
    )
    return sale
