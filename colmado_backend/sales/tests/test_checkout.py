# sales/tests/test_checkout.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models import JournalEntry
from accounting.services.closing_service import close_period, close_shift
from accounting.services.exceptions import PeriodClosedError
from inventory.models import CostConsumption, InventoryLot, Product
from inventory.services.exceptions import InsufficientInventoryError
from inventory.services.lot_store import create_lot
from inventory.services.valuation import check_conservation
from sales.models import Sale, SaleItem
from sales.services.checkout_orchestrator import finalize_sale
from sales.services.exceptions import CheckoutError, EmptyCartError
from sales.services.shift_service import open_shift
from taxes.models import NCFUsage
from taxes.services.ncf import add_range


def _lines(entry: JournalEntry) -> dict:
    return {
        line.account.code: (line.debit, line.credit)
        for line in entry.lines.select_related("account")
    }


class CheckoutTests(TestCase):
    """
    CHECKOUT GUARANTEES:
    - totals, ITBIS and FIFO cost are computed server-side
    - sale rows, lot decrements, NCF and journal commit together
    """

    def setUp(self):
        self.product = Product.objects.create(
            sku="SALAMI-1LB",
            name="Salami 1 lb",
            sale_price=Decimal("118.00"),
        )
        self.l1 = create_lot(
            product=self.product, quantity=5, unit_cost="10.00", purchase_date=date(2024, 1, 1)
        )
        self.l2 = create_lot(
            product=self.product, quantity=5, unit_cost="12.00", purchase_date=date(2024, 1, 5)
        )

    def _sell(self, quantity, **kwargs):
        kwargs.setdefault("payment_method", Sale.PAYMENT_CASH)
        kwargs.setdefault("sale_date", date(2024, 1, 10))
        return finalize_sale(lines=[{"product": self.product, "quantity": quantity}], **kwargs)

    def test_cash_sale_posts_revenue_itbis_and_fifo_cogs(self):
        sale = self._sell(7, actor="cajero")

        self.assertEqual(sale.subtotal, Decimal("700.00"))
        self.assertEqual(sale.itbis_total, Decimal("126.00"))
        self.assertEqual(sale.total, Decimal("826.00"))
        self.assertEqual(sale.cost_total, Decimal("74.00"))
        self.assertEqual(sale.gross_profit, Decimal("626.00"))
        self.assertEqual(sale.created_by, "cajero")

        self.assertEqual(
            _lines(sale.journal_entry),
            {
                "1101": (Decimal("826.00"), Decimal("0.00")),
                "4101": (Decimal("0.00"), Decimal("700.00")),
                "2102": (Decimal("0.00"), Decimal("126.00")),
                "5101": (Decimal("74.00"), Decimal("0.00")),
                "1201": (Decimal("0.00"), Decimal("74.00")),
            },
        )
        self.assertEqual(sale.journal_entry.source_id, str(sale.uuid))

        consumptions = CostConsumption.objects.filter(sale=sale).order_by("id")
        self.assertEqual(
            [(c.lot_id, c.quantity) for c in consumptions],
            [(self.l1.pk, Decimal("5.000")), (self.l2.pk, Decimal("2.000"))],
        )

    def test_card_and_credit_sales_debit_their_receivables(self):
        card = self._sell(1, payment_method=Sale.PAYMENT_CARD)
        credit = self._sell(1, payment_method=Sale.PAYMENT_CREDIT)

        self.assertIn("1106", _lines(card.journal_entry))
        self.assertIn("1103", _lines(credit.journal_entry))

    def test_partial_allocation_without_fallback_cost(self):
        sale = self._sell(12, strict=False)

        item = SaleItem.objects.get(sale=sale)
        self.assertEqual(item.unallocated_quantity, Decimal("2"))
        self.assertEqual(item.unallocated_cost, Decimal("0.00"))
        self.assertEqual(item.cost_total, Decimal("110.00"))
        self.assertEqual(sale.cost_total, Decimal("110.00"))
        self.assertEqual(_lines(sale.journal_entry)["5101"], (Decimal("110.00"), Decimal("0.00")))
        self.assertTrue(check_conservation(self.product)["balanced"])

    def test_unallocated_units_are_costed_at_fallback_cost(self):
        soda = Product.objects.create(
            sku="MALTA-12OZ",
            name="Malta 12 oz",
            sale_price=Decimal("59.00"),
            fallback_unit_cost=Decimal("10.0000"),
        )
        create_lot(product=soda, quantity=1, unit_cost="10.00", purchase_date=date(2024, 1, 2))

        sale = finalize_sale(
            lines=[{"product": soda, "quantity": 3}],
            payment_method=Sale.PAYMENT_CASH,
            sale_date=date(2024, 1, 10),
            strict=False,
        )

        item = SaleItem.objects.get(sale=sale)
        self.assertEqual(item.cost_total, Decimal("10.00"))
        self.assertEqual(item.unallocated_quantity, Decimal("2"))
        self.assertEqual(item.unallocated_cost, Decimal("20.00"))
        self.assertEqual(sale.cost_total, Decimal("30.00"))

        lines = _lines(sale.journal_entry)
        self.assertEqual(lines["5101"], (Decimal("30.00"), Decimal("0.00")))
        self.assertEqual(lines["1201"], (Decimal("0.00"), Decimal("30.00")))
        self.assertEqual(
            sum(c.total_cost for c in CostConsumption.objects.filter(sale=sale)), Decimal("10.00")
        )

    def test_strict_shortage_rolls_back_everything(self):
        with self.assertRaises(InsufficientInventoryError):
            self._sell(12, strict=True)

        self.assertFalse(Sale.objects.exists())
        self.assertFalse(JournalEntry.objects.exists())
        self.l1.refresh_from_db()
        self.assertEqual(self.l1.remaining_quantity, Decimal("5"))
        self.assertEqual(self.l1.status, InventoryLot.STATUS_ACTIVE)

    def test_validation(self):
        with self.assertRaises(EmptyCartError):
            finalize_sale(lines=[], payment_method=Sale.PAYMENT_CASH)
        with self.assertRaises(CheckoutError):
            self._sell(1, payment_method="cheque")
        with self.assertRaises(CheckoutError):
            finalize_sale(
                lines=[{"product": self.product, "quantity": 1, "unit_price": "0"}],
                payment_method=Sale.PAYMENT_CASH,
            )

        self.product.is_active = False
        self.product.save()
        with self.assertRaises(CheckoutError):
            self._sell(1)

    def test_exempt_and_exclusive_lines(self):
        exempt = Product.objects.create(
            sku="PLATANO", name="Plátano", sale_price=Decimal("15.00"), tax_rate=Product.TAX_EXEMPT
        )
        create_lot(product=exempt, quantity=50, unit_cost="8.00", tax_rate=Product.TAX_EXEMPT)

        sale = finalize_sale(
            lines=[
                {"product": exempt, "quantity": 4},
                {"product": self.product, "quantity": 1, "unit_price": "100.00", "price_includes_tax": False},
            ],
            payment_method=Sale.PAYMENT_CASH,
            sale_date=date(2024, 1, 10),
        )

        self.assertEqual(sale.subtotal, Decimal("160.00"))
        self.assertEqual(sale.itbis_total, Decimal("18.00"))
        self.assertEqual(sale.total, Decimal("178.00"))

    def test_fiscal_receipt_gets_sequential_ncf(self):
        add_range(ncf_type="B02", end_number=100)

        first = self._sell(1, ncf_type="B02")
        second = self._sell(1, ncf_type="B02")

        self.assertEqual(first.ncf, "B0200000001")
        self.assertEqual(second.ncf, "B0200000002")
        self.assertEqual(NCFUsage.objects.get(ncf=first.ncf).sale, first)

    def test_credito_fiscal_requires_customer_rnc(self):
        add_range(ncf_type="B01", end_number=10)

        with self.assertRaises(CheckoutError):
            self._sell(1, ncf_type="B01")

        sale = self._sell(1, ncf_type="B01", customer_rnc="131234567", customer_name="Colmado Vecino SRL")
        self.assertEqual(sale.ncf, "B0100000001")

    def test_closed_period_rejects_sale(self):
        close_period(period="2024-01")

        with self.assertRaises(PeriodClosedError):
            self._sell(1)
        self.assertFalse(Sale.objects.exists())
        self.assertEqual(CostConsumption.objects.count(), 0)

    def test_closed_shift_rejects_sale(self):
        shift = open_shift(opened_by="cajero")
        close_shift(shift=shift, counted_cash=0)

        with self.assertRaises(CheckoutError):
            self._sell(1, shift=shift)

    def test_sale_is_immutable(self):
        sale = self._sell(1)
        sale.total = Decimal("1.00")
        with self.assertRaises(ValidationError):
            sale.save()
        with self.assertRaises(ValidationError):
            Sale.objects.get(pk=sale.pk).delete()
