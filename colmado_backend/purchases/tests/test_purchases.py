# purchases/tests/test_purchases.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounting.models import JournalEntry
from accounting.services.closing_service import close_period
from accounting.services.exceptions import PeriodClosedError
from inventory.models import InventoryLot, Product
from inventory.services.exceptions import InventoryServiceError
from inventory.services.lot_store import get_available_quantity
from purchases.models import PurchaseInvoice, Supplier
from purchases.services.exceptions import PurchaseError, SupplierPaymentError
from purchases.services.payment_service import pay_supplier_invoice
from purchases.services.receiving_service import record_purchase_invoice, void_purchase_invoice
from sales.models import Sale
from sales.services.checkout_orchestrator import finalize_sale

User = get_user_model()


def _lines(entry: JournalEntry) -> dict:
    return {
        line.account.code: (line.debit, line.credit)
        for line in entry.lines.select_related("account")
    }


class PurchaseInvoiceTests(TestCase):
    def setUp(self):
        self.aceite = Product.objects.create(sku="ACEITE-1L", name="Aceite 1 L", sale_price=Decimal("150.00"))
        self.arroz = Product.objects.create(
            sku="ARROZ-1LB", name="Arroz 1 lb", sale_price=Decimal("35.00"), tax_rate=Product.TAX_EXEMPT
        )

    def _record(self, **overrides):
        kwargs = {
            "supplier_name": "Distribuidora Cibao",
            "supplier_rnc": "101010101",
            "supplier_ncf": "B0100000123",
            "invoice_number": "F-1001",
            "issue_date": date(2024, 2, 3),
            "items": [
                {"product": self.aceite, "quantity": 10, "unit_cost": "50.00"},
                {"product": self.arroz, "quantity": 20, "unit_cost": "8.00"},
            ],
            "actor": "encargado",
        }
        kwargs.update(overrides)
        return record_purchase_invoice(**kwargs)

    # --------------------------------------------------
    # Recording
    # --------------------------------------------------

    def test_inventory_purchase_creates_lots_and_payable(self):
        invoice = self._record()

        self.assertEqual(invoice.subtotal, Decimal("660.00"))
        self.assertEqual(invoice.itbis_total, Decimal("90.00"))
        self.assertEqual(invoice.total, Decimal("750.00"))
        self.assertEqual(
            _lines(invoice.journal_entry),
            {
                "1201": (Decimal("660.00"), Decimal("0.00")),
                "1104": (Decimal("90.00"), Decimal("0.00")),
                "2101": (Decimal("0.00"), Decimal("750.00")),
            },
        )

        lots = InventoryLot.objects.filter(purchase_invoice=invoice).order_by("id")
        self.assertEqual(
            [(lot.product_id, lot.original_quantity, lot.unit_cost) for lot in lots],
            [
                (self.aceite.pk, Decimal("10.000"), Decimal("50.0000")),
                (self.arroz.pk, Decimal("20.000"), Decimal("8.0000")),
            ],
        )
        self.assertEqual(lots[0].purchase_date, date(2024, 2, 3))
        self.assertEqual(get_available_quantity(self.aceite), Decimal("10"))

    def test_tax_inclusive_cost_is_stored_net(self):
        invoice = self._record(
            items=[{"product": self.aceite, "quantity": 10, "unit_cost": "59.00", "cost_includes_tax": True}]
        )

        item = invoice.items.get()
        self.assertEqual(item.unit_cost, Decimal("50.0000"))
        self.assertEqual(item.lot.unit_cost, Decimal("50.0000"))
        self.assertEqual(invoice.itbis_total, Decimal("90.00"))
        self.assertEqual(invoice.total, Decimal("590.00"))

    def test_expense_invoice_debits_category_account(self):
        invoice = self._record(
            supplier_name="EDENORTE",
            supplier_rnc="401000001",
            invoice_number="LUZ-2024-02",
            category=PurchaseInvoice.CATEGORY_UTILITIES,
            items=[{"description": "Energía febrero", "quantity": 1, "unit_cost": "3000.00"}],
        )

        self.assertEqual(
            _lines(invoice.journal_entry),
            {
                "6105": (Decimal("3000.00"), Decimal("0.00")),
                "1104": (Decimal("540.00"), Decimal("0.00")),
                "2101": (Decimal("0.00"), Decimal("3540.00")),
            },
        )
        self.assertFalse(InventoryLot.objects.exists())

    def test_supplier_is_reused_by_rnc(self):
        self._record()
        self._record(supplier_name="Dist. Cibao SRL", invoice_number="F-1002")
        self.assertEqual(Supplier.objects.count(), 1)

    def test_recording_validation(self):
        with self.assertRaises(PurchaseError):
            self._record(items=[{"quantity": 1, "unit_cost": "5.00"}])
        with self.assertRaises(PurchaseError):
            self._record(supplier_ncf="X123")
        with self.assertRaises(PurchaseError):
            self._record(category="snacks")
        with self.assertRaises(PurchaseError):
            self._record(items=[])

        self._record()
        with self.assertRaises(PurchaseError):
            self._record()
        self.assertEqual(PurchaseInvoice.objects.count(), 1)

    def test_closed_period_rejects_purchase(self):
        close_period(period="2024-02")
        with self.assertRaises(PeriodClosedError):
            self._record()
        self.assertFalse(InventoryLot.objects.exists())

    # --------------------------------------------------
    # Payments
    # --------------------------------------------------

    def test_partial_then_final_payment(self):
        invoice = self._record()

        payment = pay_supplier_invoice(
            invoice=invoice, amount="300.00", payment_method="cash", payment_date=date(2024, 2, 10)
        )
        self.assertEqual(
            _lines(payment.journal_entry),
            {"2101": (Decimal("300.00"), Decimal("0.00")), "1101": (Decimal("0.00"), Decimal("300.00"))},
        )

        invoice.refresh_from_db()
        self.assertEqual(invoice.balance_due, Decimal("450.00"))

        with self.assertRaises(SupplierPaymentError):
            pay_supplier_invoice(invoice=invoice, amount="450.01", payment_method="cash")
        with self.assertRaises(SupplierPaymentError):
            pay_supplier_invoice(invoice=invoice, amount="10.00", payment_method="card")

        final = pay_supplier_invoice(invoice=invoice, amount="450.00", payment_method="transfer")
        self.assertIn("1102", _lines(final.journal_entry))

        invoice.refresh_from_db()
        self.assertTrue(invoice.is_paid)

    # --------------------------------------------------
    # Voiding
    # --------------------------------------------------

    def test_void_untouched_invoice_returns_lots(self):
        invoice = self._record()
        entry_id = invoice.journal_entry_id

        invoice = void_purchase_invoice(invoice=invoice, reason="factura duplicada")

        self.assertEqual(invoice.status, PurchaseInvoice.STATUS_VOIDED)
        self.assertEqual(JournalEntry.objects.get(pk=entry_id).status, JournalEntry.STATUS_VOIDED)
        self.assertEqual(
            set(InventoryLot.objects.values_list("status", flat=True)),
            {InventoryLot.STATUS_RETURNED},
        )
        self.assertEqual(get_available_quantity(self.aceite), Decimal("0"))

        with self.assertRaises(PurchaseError):
            void_purchase_invoice(invoice=invoice, reason="otra vez")

    def test_void_refused_when_paid_or_stock_sold(self):
        paid = self._record()
        pay_supplier_invoice(invoice=paid, amount="100.00", payment_method="cash")
        with self.assertRaises(PurchaseError):
            void_purchase_invoice(invoice=paid, reason="error")

        sold = self._record(invoice_number="F-2002")
        finalize_sale(
            lines=[{"product": self.aceite, "quantity": 11}],
            payment_method=Sale.PAYMENT_CASH,
            sale_date=date(2024, 2, 20),
        )
        with self.assertRaises(InventoryServiceError):
            void_purchase_invoice(invoice=sold, reason="error")

        sold.refresh_from_db()
        self.assertEqual(sold.status, PurchaseInvoice.STATUS_RECORDED)
        self.assertEqual(sold.journal_entry.status, JournalEntry.STATUS_POSTED)


class PurchasesApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.manager = User.objects.create_superuser(
            username="encargado", email="encargado@example.com", password="pass"
        )
        self.cashier = User.objects.create_user(username="cajero", password="pass")
        self.product = Product.objects.create(sku="LECHE-1L", name="Leche 1 L", sale_price=Decimal("75.00"))

    def _payload(self):
        return {
            "supplier_name": "Lácteos del Norte",
            "supplier_rnc": "130000001",
            "invoice_number": "A-55",
            "issue_date": "2024-04-02",
            "items": [
                {
                    "product": self.product.pk,
                    "quantity": "12",
                    "unit_cost": "45.00",
                    "expiration_date": "2024-04-20",
                }
            ],
        }

    def test_record_pay_and_void_via_api(self):
        self.client.force_authenticate(self.manager)

        res = self.client.post(reverse("purchase-invoices"), self._payload(), format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["total"], "637.20")
        self.assertEqual(res.data["balance_due"], "637.20")
        self.assertEqual(res.data["items"][0]["expiration_date"], "2024-04-20")
        invoice_uuid = res.data["uuid"]

        res = self.client.post(reverse("purchase-invoices"), self._payload(), format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "purchase_error")

        res = self.client.post(
            reverse("purchase-invoice-void", args=[invoice_uuid]), {"reason": "mercancía rechazada"}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"], PurchaseInvoice.STATUS_VOIDED)

        res = self.client.post(
            reverse("supplier-payments"),
            {"invoice": invoice_uuid, "amount": "10.00", "payment_method": "cash"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "supplier_payment_error")

    def test_cashier_cannot_record_purchases(self):
        self.client.force_authenticate(self.cashier)

        res = self.client.post(reverse("purchase-invoices"), self._payload(), format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(PurchaseInvoice.objects.exists())

        res = self.client.get(reverse("purchase-invoices"))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
