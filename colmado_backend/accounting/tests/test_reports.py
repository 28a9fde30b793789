# accounting/tests/test_reports.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounting.models import JournalEntry
from accounting.services.account_resolver import ensure_chart
from accounting.services.financial_statement_service import (
    get_ap_aging,
    get_ar_aging,
    get_cash_flow_statement,
)
from accounting.services.journal_entry_service import create_journal_entry
from accounting.services.void_service import void_journal_entry
from inventory.models import Product
from inventory.services.lot_store import create_lot
from purchases.services.payment_service import pay_supplier_invoice
from purchases.services.receiving_service import record_purchase_invoice, void_purchase_invoice
from sales.models import Sale
from sales.services.checkout_orchestrator import finalize_sale
from sales.services.refund_orchestrator import process_return

User = get_user_model()


def _capital(entry_date, amount):
    return create_journal_entry(
        description="Aporte del dueño",
        lines=[{"account": "CASH", "debit": amount}, {"account": "CAPITAL", "credit": amount}],
        source_type=JournalEntry.SOURCE_MANUAL,
        entry_date=entry_date,
    )


class ReportFixtureMixin:
    def setUp(self):
        ensure_chart()
        self.product = Product.objects.create(
            sku="SARDINA-425G", name="Sardinas 425 g", sale_price=Decimal("118.00")
        )
        create_lot(product=self.product, quantity=50, unit_cost="40.00", purchase_date=date(2024, 1, 1))

    def _sell(self, sale_date, quantity=1, **kwargs):
        kwargs.setdefault("payment_method", Sale.PAYMENT_CASH)
        return finalize_sale(
            lines=[{"product": self.product, "quantity": quantity}], sale_date=sale_date, **kwargs
        )

    def _purchase(self, supplier_name, invoice_number, issue_date):
        return record_purchase_invoice(
            supplier_name=supplier_name,
            invoice_number=invoice_number,
            issue_date=issue_date,
            items=[{"product": self.product, "quantity": 10, "unit_cost": "50.00"}],
        )


class CashFlowStatementTests(ReportFixtureMixin, TestCase):
    def test_cash_movements_split_by_section(self):
        _capital(date(2024, 5, 20), "500.00")
        _capital(date(2024, 6, 1), "1000.00")
        self._sell(date(2024, 6, 2), quantity=2)
        self._sell(date(2024, 6, 3), payment_method=Sale.PAYMENT_CREDIT)
        invoice = self._purchase("Distribuidora Cibao", "F-2001", date(2024, 6, 4))
        pay_supplier_invoice(
            invoice=invoice, amount="100.00", payment_method="cash", payment_date=date(2024, 6, 5)
        )

        report = get_cash_flow_statement(start=date(2024, 6, 1), end=date(2024, 6, 30))

        self.assertEqual(
            [(row["source_type"], row["amount_minor"]) for row in report["operating"]],
            [("sale", 23600), ("supplier_payment", -10000)],
        )
        self.assertEqual(report["investing"], [])
        self.assertEqual(
            [(row["source_type"], row["amount_minor"]) for row in report["financing"]],
            [("manual", 100000)],
        )
        self.assertEqual(report["operating_total_minor"], 13600)
        self.assertEqual(report["financing_total_minor"], 100000)
        self.assertEqual(report["beginning_cash_minor"], 50000)
        self.assertEqual(report["net_change_minor"], 113600)
        self.assertEqual(report["ending_cash_minor"], 163600)
        self.assertTrue(report["reconciled"])

    def test_voided_entries_drop_out(self):
        entry = _capital(date(2024, 6, 1), "1000.00")
        void_journal_entry(entry=entry, reason="duplicado")

        report = get_cash_flow_statement(start=date(2024, 6, 1), end=date(2024, 6, 30))
        self.assertEqual(report["financing"], [])
        self.assertEqual(report["net_change_minor"], 0)


class AgingReportTests(ReportFixtureMixin, TestCase):
    def test_ap_aging_uses_unpaid_balance_and_issue_date(self):
        current = self._purchase("Distribuidora Cibao", "F-3001", date(2024, 6, 5))
        pay_supplier_invoice(
            invoice=current, amount="100.00", payment_method="cash", payment_date=date(2024, 6, 6)
        )
        self._purchase("Distribuidora Cibao", "F-2500", date(2024, 4, 10))

        paid = self._purchase("Mercasid", "M-10", date(2024, 2, 1))
        pay_supplier_invoice(
            invoice=paid, amount=paid.total, payment_method="transfer", payment_date=date(2024, 2, 10)
        )
        self._purchase("Mercasid", "M-11", date(2024, 2, 1))

        voided = self._purchase("Mercasid", "M-12", date(2024, 6, 20))
        void_purchase_invoice(invoice=voided, reason="factura duplicada")

        report = get_ap_aging(as_of=date(2024, 6, 30))

        by_name = {row["name"]: row for row in report["suppliers"]}
        self.assertEqual(set(by_name), {"Distribuidora Cibao", "Mercasid"})

        cibao = by_name["Distribuidora Cibao"]
        self.assertEqual(cibao["documents"], 2)
        self.assertEqual(cibao["aging"]["current"], 490.0)
        self.assertEqual(cibao["aging"]["days_61_90"], 590.0)
        self.assertEqual(cibao["aging"]["total"], 1080.0)

        mercasid = by_name["Mercasid"]
        self.assertEqual(mercasid["documents"], 1)
        self.assertEqual(mercasid["aging"]["over_90"], 590.0)

        self.assertEqual(report["totals"]["total"], 1670.0)
        self.assertEqual(report["total_minor"], 167000)

    def test_ap_aging_ignores_invoices_after_cutoff(self):
        self._purchase("Distribuidora Cibao", "F-4001", date(2024, 7, 2))
        report = get_ap_aging(as_of=date(2024, 6, 30))
        self.assertEqual(report["suppliers"], [])
        self.assertEqual(report["total_minor"], 0)

    def test_ar_aging_covers_open_credit_sales(self):
        self._sell(
            date(2024, 3, 1),
            payment_method=Sale.PAYMENT_CREDIT,
            customer_name="Colmado Vecino",
            customer_rnc="131313131",
        )
        self._sell(date(2024, 5, 1), payment_method=Sale.PAYMENT_CREDIT, customer_name="Doña Rosa")
        fiao = self._sell(
            date(2024, 6, 2), quantity=2, payment_method=Sale.PAYMENT_CREDIT, customer_name="Doña Rosa"
        )
        self._sell(date(2024, 6, 2), quantity=3)

        process_return(
            sale=fiao,
            items=[{"sale_item": fiao.items.get(), "quantity": 1}],
            return_date=date(2024, 6, 10),
        )

        report = get_ar_aging(as_of=date(2024, 6, 30))

        self.assertEqual(
            [(row["id"], row["name"]) for row in report["customers"]],
            [("131313131", "Colmado Vecino"), ("doña rosa", "Doña Rosa")],
        )
        vecino, rosa = report["customers"]
        self.assertEqual(vecino["aging"]["over_90"], 118.0)
        self.assertEqual(rosa["documents"], 2)
        self.assertEqual(rosa["aging"]["days_31_60"], 118.0)
        self.assertEqual(rosa["aging"]["current"], 118.0)
        self.assertEqual(rosa["aging"]["total"], 236.0)
        self.assertEqual(report["total_minor"], 35400)

    def test_fully_returned_credit_sale_is_not_owed(self):
        fiao = self._sell(date(2024, 6, 2), payment_method=Sale.PAYMENT_CREDIT, customer_name="Juan")
        process_return(
            sale=fiao,
            items=[{"sale_item": fiao.items.get(), "quantity": 1}],
            return_date=date(2024, 6, 3),
        )

        self.assertEqual(get_ar_aging(as_of=date(2024, 6, 30))["customers"], [])


class ReportApiTests(ReportFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.admin = User.objects.create_superuser(
            username="contador", email="contador@example.com", password="pass"
        )
        self.cashier = User.objects.create_user(username="cajero", password="pass")

    def test_new_reports_are_served(self):
        _capital(date(2024, 6, 1), "1000.00")
        self._purchase("Distribuidora Cibao", "F-5001", date(2024, 6, 4))
        self._sell(date(2024, 6, 2), payment_method=Sale.PAYMENT_CREDIT, customer_name="Doña Rosa")
        self.client.force_authenticate(self.admin)

        res = self.client.get(reverse("cash-flow"), {"start": "2024-06-01", "end": "2024-06-30"})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["financing_total_minor"], 100000)

        res = self.client.get(reverse("ap-aging"), {"as_of": "2024-06-30"})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["total_minor"], 59000)

        res = self.client.get(reverse("ar-aging"), {"as_of": "2024-06-30"})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["total_minor"], 11800)

        res = self.client.get(reverse("cash-flow"), {"start": "2024-07-01", "end": "2024-06-01"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        res = self.client.get(reverse("ap-aging"), {"as_of": "ayer"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reports_require_permission(self):
        self.client.force_authenticate(self.cashier)
        for name in ("cash-flow", "ap-aging", "ar-aging"):
            self.assertEqual(self.client.get(reverse(name)).status_code, status.HTTP_403_FORBIDDEN)
