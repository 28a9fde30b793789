# sales/tests/test_returns.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase

from inventory.models import CostConsumption, Product
from inventory.services.lot_store import create_lot
from inventory.services.valuation import check_conservation
from sales.models import Sale
from sales.services.checkout_orchestrator import finalize_sale
from sales.services.exceptions import ReturnError
from sales.services.refund_orchestrator import process_return


def _lines(entry) -> dict:
    return {
        line.account.code: (line.debit, line.credit)
        for line in entry.lines.select_related("account")
    }


class ReturnTests(TestCase):
    """
    RETURN GUARANTEES:
    - units go back to the SAME lots at their original cost
    - prorated amounts never drift: the last unit takes the remainder
    - never more than sold
    """

    def setUp(self):
        self.product = Product.objects.create(
            sku="QUESO-FRITO", name="Queso de freír", sale_price=Decimal("118.00")
        )
        self.l1 = create_lot(
            product=self.product, quantity=5, unit_cost="10.00", purchase_date=date(2024, 1, 1)
        )
        self.l2 = create_lot(
            product=self.product, quantity=5, unit_cost="12.00", purchase_date=date(2024, 1, 5)
        )
        self.sale = finalize_sale(
            lines=[{"product": self.product, "quantity": 7}],
            payment_method=Sale.PAYMENT_CASH,
            sale_date=date(2024, 1, 10),
        )
        self.item = self.sale.items.get()

    def _return(self, quantity, **kwargs):
        kwargs.setdefault("return_date", date(2024, 1, 12))
        return process_return(
            sale=self.sale,
            items=[{"sale_item": self.item.pk, "quantity": quantity}],
            **kwargs,
        )

    def test_partial_return_restocks_original_lot_and_posts_reversal(self):
        sale_return = self._return(3, reason="vencido al abrir")

        self.assertEqual(sale_return.subtotal, Decimal("300.00"))
        self.assertEqual(sale_return.itbis_total, Decimal("54.00"))
        self.assertEqual(sale_return.total, Decimal("354.00"))
        self.assertEqual(sale_return.cost_total, Decimal("30.00"))
        self.assertEqual(sale_return.refund_method, Sale.PAYMENT_CASH)

        self.assertEqual(
            _lines(sale_return.journal_entry),
            {
                "4103": (Decimal("300.00"), Decimal("0.00")),
                "2102": (Decimal("54.00"), Decimal("0.00")),
                "1101": (Decimal("0.00"), Decimal("354.00")),
                "1201": (Decimal("30.00"), Decimal("0.00")),
                "5101": (Decimal("0.00"), Decimal("30.00")),
            },
        )

        self.l1.refresh_from_db()
        self.assertEqual(self.l1.remaining_quantity, Decimal("3"))

        self.sale.refresh_from_db()
        self.assertEqual(self.sale.status, Sale.STATUS_PARTIALLY_RETURNED)
        self.assertTrue(check_conservation(self.product)["balanced"])

    def test_full_return_across_two_returns(self):
        self._return(3)
        last = self._return(4, refund_method=Sale.PAYMENT_TRANSFER)

        self.assertEqual(last.subtotal, Decimal("400.00"))
        self.assertEqual(last.itbis_total, Decimal("72.00"))
        self.assertEqual(last.cost_total, Decimal("44.00"))
        self.assertIn("1102", _lines(last.journal_entry))

        self.sale.refresh_from_db()
        self.assertEqual(self.sale.status, Sale.STATUS_RETURNED)

        returns = CostConsumption.objects.filter(consumption_type=CostConsumption.TYPE_RETURN)
        self.assertEqual(sum(c.total_cost for c in returns), Decimal("74.00"))

        with self.assertRaises(ReturnError):
            self._return(1)

    def test_cannot_return_more_than_sold(self):
        with self.assertRaises(ReturnError):
            self._return(8)

        self._return(5)
        with self.assertRaises(ReturnError):
            self._return(3)

    def test_prorated_rounding_never_drifts(self):
        create_lot(product=self.product, quantity=3, unit_cost="40.00")
        sale = finalize_sale(
            lines=[{"product": self.product, "quantity": 3, "unit_price": "100.00"}],
            payment_method=Sale.PAYMENT_CASH,
            sale_date=date(2024, 1, 10),
        )
        item = sale.items.get()
        self.assertEqual(item.subtotal, Decimal("254.24"))

        returns = [
            process_return(sale=sale, items=[{"sale_item": item.pk, "quantity": 1}], return_date=date(2024, 1, 11))
            for _ in range(3)
        ]

        self.assertEqual([r.subtotal for r in returns], [Decimal("84.75"), Decimal("84.75"), Decimal("84.74")])
        self.assertEqual([r.itbis_total for r in returns], [Decimal("15.25"), Decimal("15.25"), Decimal("15.26")])
        self.assertEqual(sum(r.total for r in returns), sale.total)

    def test_return_validation(self):
        with self.assertRaises(ReturnError):
            process_return(sale=self.sale, items=[])
        with self.assertRaises(ReturnError):
            self._return(1, return_date=date(2024, 1, 9))
        with self.assertRaises(ReturnError):
            self._return(1, refund_method="cheque")

        other = finalize_sale(
            lines=[{"product": self.product, "quantity": 1}],
            payment_method=Sale.PAYMENT_CASH,
            sale_date=date(2024, 1, 10),
        )
        with self.assertRaises(ReturnError):
            process_return(
                sale=other,
                items=[{"sale_item": self.item.pk, "quantity": 1}],
                return_date=date(2024, 1, 12),
            )
