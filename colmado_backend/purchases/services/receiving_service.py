# purchases/services/receiving_service.py

"""
======================================================
PATH: purchases/services/receiving_service.py
======================================================
PURCHASE RECEIVING SERVICE

Record a supplier invoice atomically:

1) Resolve (or create) the supplier
2) Validate NCF + lines, split each line into subtotal / ITBIS
3) Create the invoice + items
4) Create one FIFO lot per inventory line (tax-exclusive unit cost)
5) Post the purchase entry (Dr Inventario/expense + ITBIS Pagado, Cr CxP)

Voiding reverses the whole thing: the journal entry is voided and every
lot goes back to the supplier. Both only work while nothing downstream
touched the invoice (no payments, no units sold).
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.services.period_lock import assert_period_open
from accounting.services.posting import post_purchase
from accounting.services.void_service import void_journal_entry
from audit.models import AuditLogEntry
from audit.services.audit_log import log_action, snapshot
from inventory.models import Product
from inventory.services.lot_store import create_lot, return_lot_to_supplier, to_quantity
from purchases.models import PurchaseInvoice, PurchaseInvoiceItem, Supplier
from purchases.services.exceptions import PurchaseError
from taxes.services.itbis import compute_line
from taxes.services.ncf import validate_ncf

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
COSTPLACES = Decimal("0.0001")


def _money(v) -> Decimal:
    return Decimal(str(v or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _resolve_supplier(*, name: str, rnc: str) -> Supplier:
    name = (name or "").strip()
    rnc = (rnc or "").strip()

    if rnc:
        supplier = Supplier.objects.filter(rnc=rnc).first()
        if supplier is not None:
            return supplier

    if not name:
        raise PurchaseError("supplier_name is required")

    supplier = Supplier.objects.filter(name__iexact=name, rnc=rnc).first()
    if supplier is None:
        supplier = Supplier.objects.create(name=name, rnc=rnc)
        logger.info("Supplier created", extra={"supplier_id": supplier.pk, "name": name})
    return supplier


def _resolve_product(value) -> Product:
    if isinstance(value, Product):
        return value
    product = Product.objects.filter(pk=value).first()
    if product is None:
        raise PurchaseError(f"Product {value!r} does not exist")
    return product


def _net_unit_cost(unit_cost: Decimal, rate: Decimal, includes_tax: bool) -> Decimal:
    if not includes_tax:
        return unit_cost.quantize(COSTPLACES, rounding=ROUND_HALF_UP)
    return (unit_cost / (Decimal("1") + rate)).quantize(COSTPLACES, rounding=ROUND_HALF_UP)


def _normalize_items(items, *, category: str) -> list[dict]:
    if not items:
        raise PurchaseError("A purchase invoice needs at least one item")

    out = []
    for idx, raw in enumerate(items):
        product = raw.get("product")
        if category == PurchaseInvoice.CATEGORY_INVENTORY:
            if product in (None, ""):
                raise PurchaseError(f"Item {idx}: inventory purchases need a product")
            product = _resolve_product(product)
        else:
            product = None

        quantity = to_quantity(raw.get("quantity"))

        try:
            unit_cost = Decimal(str(raw.get("unit_cost")))
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise PurchaseError(f"Item {idx}: invalid unit_cost") from exc
        if unit_cost <= 0:
            raise PurchaseError(f"Item {idx}: unit_cost must be > 0")

        rate = raw.get("tax_rate")
        if rate in (None, ""):
            rate = product.tax_rate if product is not None else Decimal("0.18")
        rate = Decimal(str(rate))

        includes = bool(raw.get("cost_includes_tax", False))
        split = compute_line(
            quantity=quantity,
            unit_price=unit_cost,
            rate=rate,
            price_includes_tax=includes,
        )

        out.append(
            {
                "product": product,
                "description": (raw.get("description") or (product.name if product else "")).strip(),
                "quantity": quantity,
                "unit_cost": _net_unit_cost(unit_cost, rate, includes),
                "tax_rate": rate,
                "cost_includes_tax": includes,
                "expiration_date": raw.get("expiration_date"),
                "lot_number": (raw.get("lot_number") or "").strip(),
                **split,
            }
        )
    return out


@transaction.atomic
def record_purchase_invoice(
    *,
    supplier_name: str = "",
    invoice_number: str,
    items,
    issue_date=None,
    category: str = PurchaseInvoice.CATEGORY_INVENTORY,
    supplier_rnc: str = "",
    supplier_ncf: str = "",
    actor: str = "system",
) -> PurchaseInvoice:
    if category not in dict(PurchaseInvoice.CATEGORIES):
        raise PurchaseError(f"Unknown purchase category {category!r}")

    supplier_ncf = (supplier_ncf or "").strip().upper()
    if supplier_ncf and not validate_ncf(supplier_ncf):
        raise PurchaseError(f"Invalid supplier NCF {supplier_ncf!r}")

    issue_date = issue_date or timezone.localdate()
    assert_period_open(issue_date)

    supplier = _resolve_supplier(name=supplier_name, rnc=supplier_rnc)
    lines = _normalize_items(items, category=category)

    try:
        with transaction.atomic():
            invoice = PurchaseInvoice.objects.create(
                supplier=supplier,
                invoice_number=(invoice_number or "").strip(),
                supplier_ncf=supplier_ncf,
                issue_date=issue_date,
                category=category,
                subtotal=sum((ln["subtotal"] for ln in lines), Decimal("0.00")),
                itbis_total=sum((ln["itbis"] for ln in lines), Decimal("0.00")),
                total=sum((ln["total"] for ln in lines), Decimal("0.00")),
                created_by=actor or "system",
            )
    except IntegrityError as exc:
        raise PurchaseError(
            f"Invoice {invoice_number} from {supplier.name} is already recorded",
            supplier_id=supplier.pk,
        ) from exc

    lots = []
    for ln in lines:
        lot = None
        if ln["product"] is not None:
            lot = create_lot(
                product=ln["product"],
                quantity=ln["quantity"],
                unit_cost=ln["unit_cost"],
                tax_rate=ln["tax_rate"],
                purchase_date=issue_date,
                lot_number=ln["lot_number"],
                expiration_date=ln["expiration_date"],
                purchase_invoice=invoice,
                actor=actor,
            )
            lots.append(lot)

        PurchaseInvoiceItem.objects.create(
            invoice=invoice,
            product=ln["product"],
            description=ln["description"],
            quantity=ln["quantity"],
            unit_cost=ln["unit_cost"],
            tax_rate=ln["tax_rate"],
            cost_includes_tax=ln["cost_includes_tax"],
            subtotal=ln["subtotal"],
            itbis=ln["itbis"],
            total=ln["total"],
            expiration_date=ln["expiration_date"],
            lot=lot,
        )

    invoice.journal_entry = post_purchase(invoice, lots, actor=actor)
    invoice.save(update_fields=["journal_entry"])

    logger.info(
        "Purchase invoice recorded",
        extra={
            "invoice_id": invoice.pk,
            "supplier": supplier.name,
            "total": str(invoice.total),
            "itbis": str(invoice.itbis_total),
            "lots": len(lots),
        },
    )
    return invoice


@transaction.atomic
def void_purchase_invoice(*, invoice: PurchaseInvoice, reason: str, actor: str = "system") -> PurchaseInvoice:
    reason = (reason or "").strip()
    if not reason:
        raise PurchaseError("A void reason is required")

    invoice = PurchaseInvoice.objects.select_for_update().get(pk=invoice.pk)
    if invoice.status == PurchaseInvoice.STATUS_VOIDED:
        raise PurchaseError(f"Invoice {invoice.invoice_number} is already voided")

    if invoice.payments.exists():
        raise PurchaseError(
            f"Invoice {invoice.invoice_number} has payments; it cannot be voided",
            invoice_id=invoice.pk,
        )

    before = snapshot(invoice, fields=["id", "status", "total", "amount_paid"])

    if invoice.journal_entry_id:
        void_journal_entry(entry=invoice.journal_entry, reason=reason, actor=actor)

    for item in invoice.items.select_related("lot"):
        if item.lot is not None:
            return_lot_to_supplier(item.lot, actor=actor)

    invoice.status = PurchaseInvoice.STATUS_VOIDED
    invoice.void_reason = reason
    invoice.save(update_fields=["status", "void_reason"])

    log_action(
        action=AuditLogEntry.Action.PURCHASE_VOIDED,
        entity_type=AuditLogEntry.EntityType.PURCHASE_INVOICE,
        entity_id=invoice.uuid,
        actor=actor,
        before=before,
        after=snapshot(invoice, fields=["id", "status", "total", "amount_paid"]),
        details={"reason": reason},
    )

    logger.warning(
        "Purchase invoice voided",
        extra={"invoice_id": invoice.pk, "reason": reason, "actor": actor},
    )
    return invoice
