# purchases/services/payment_service.py

"""
======================================================
PATH: purchases/services/payment_service.py
======================================================
SUPPLIER PAYMENT SERVICE

Pays (part of) a recorded supplier invoice:
  Dr Cuentas por Pagar / Cr Caja or Bancos

The invoice row is locked so two payments can never overpay it.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from accounting.services.posting import post_supplier_payment
from purchases.models import PurchaseInvoice, SupplierPayment
from purchases.services.exceptions import SupplierPaymentError

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    try:
        return Decimal(str(v or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise SupplierPaymentError(f"Invalid amount {v!r}") from exc


@transaction.atomic
def pay_supplier_invoice(
    *,
    invoice: PurchaseInvoice,
    amount,
    payment_method: str,
    payment_date=None,
    reference: str = "",
    actor: str = "system",
) -> SupplierPayment:
    """
    CREATE SUPPLIER PAYMENT (atomic)
    """
    method = (payment_method or "").strip().lower()
    if method not in dict(SupplierPayment.METHODS):
        logger.error("Invalid payment method provided", extra={"payment_method": payment_method})
        raise SupplierPaymentError("Invalid payment_method. Use 'cash' or 'transfer'.")

    invoice = PurchaseInvoice.objects.select_for_update().select_related("supplier").get(pk=invoice.pk)
    if invoice.status != PurchaseInvoice.STATUS_RECORDED:
        raise SupplierPaymentError(f"Invoice {invoice.invoice_number} is {invoice.status}")

    amt = _money(amount)
    if amt <= Decimal("0.00"):
        raise SupplierPaymentError("Amount must be > 0")

    if amt > invoice.balance_due:
        raise SupplierPaymentError(
            f"Amount {amt} exceeds balance due {invoice.balance_due}",
            invoice_id=invoice.pk,
        )

    payment = SupplierPayment.objects.create(
        invoice=invoice,
        amount=amt,
        payment_method=method,
        payment_date=payment_date or timezone.localdate(),
        reference=(reference or "").strip(),
        created_by=actor or "system",
    )

    payment.journal_entry = post_supplier_payment(payment, actor=actor)
    payment.save(update_fields=["journal_entry"])

    invoice.amount_paid = invoice.amount_paid + amt
    invoice.save(update_fields=["amount_paid"])

    logger.info(
        "Supplier payment completed successfully",
        extra={
            "payment_id": payment.pk,
            "invoice_id": invoice.pk,
            "amount": str(amt),
            "journal_entry_id": payment.journal_entry_id,
        },
    )
    return payment
