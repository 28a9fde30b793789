# taxes/tests/test_itbis.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase, override_settings

from accounting.services.exceptions import PeriodClosedError
from accounting.services.settlement_service import record_card_settlement, reconcile_card_settlement
from inventory.models import Product
from inventory.services.lot_store import create_lot
from sales.services.checkout_orchestrator import finalize_sale
from sales.services.refund_orchestrator import process_return
from taxes.models import ITBISPeriodSummary
from taxes.services.exceptions import InvalidPeriodError, TaxServiceError
from taxes.services.itbis import (
    accumulate_period,
    calculate_by_rate,
    compute_line,
    compute_line_tax,
    period_bounds,
    record_other_retention,
)


class ComputeLineTests(TestCase):
    def test_tax_inclusive_price_is_split(self):
        line = compute_line(quantity=2, unit_price="118.00", rate="0.18", price_includes_tax=True)
        self.assertEqual(line, {"subtotal": Decimal("200.00"), "itbis": Decimal("36.00"), "total": Decimal("236.00")})

    def test_tax_exclusive_price_adds_tax(self):
        line = compute_line(quantity=1, unit_price="100.00", rate="0.16", price_includes_tax=False)
        self.assertEqual(line["itbis"], Decimal("16.00"))
        self.assertEqual(line["total"], Decimal("116.00"))

    def test_exempt_line_has_no_tax(self):
        line = compute_line(quantity="1.5", unit_price="40.00", rate="0", price_includes_tax=True)
        self.assertEqual(line["itbis"], Decimal("0.00"))
        self.assertEqual(line["subtotal"], Decimal("60.00"))

    def test_line_tax_rounds_once(self):
        self.assertEqual(compute_line_tax(Decimal("0.025"), Decimal("0.18")), Decimal("0.00"))
        self.assertEqual(compute_line_tax("100.005", "0.18"), Decimal("18.00"))
        self.assertEqual(compute_line_tax(Decimal("0.03"), Decimal("0.18")), Decimal("0.01"))

    def test_invalid_rate_rejected(self):
        with self.assertRaises(TaxServiceError):
            compute_line(quantity=1, unit_price=10, rate="1.5")

    def test_calculate_by_rate_buckets(self):
        buckets = calculate_by_rate(
            [
                {"tax_rate": Decimal("0.18"), "subtotal": Decimal("100.00"), "itbis": Decimal("18.00")},
                {"tax_rate": Decimal("0.16"), "subtotal": Decimal("50.00"), "itbis": Decimal("8.00")},
                {"tax_rate": Decimal("0.00"), "subtotal": Decimal("30.00"), "itbis": Decimal("0.00")},
            ]
        )
        self.assertEqual(buckets, {"18": Decimal("18.00"), "16": Decimal("8.00"), "exempt": Decimal("30.00")})

    def test_period_bounds(self):
        self.assertEqual(period_bounds("2024-02"), (date(2024, 2, 1), date(2024, 2, 29)))
        with self.assertRaises(InvalidPeriodError):
            period_bounds("2024-13")


@override_settings(ITBIS={"CARD_RETENTION_RATE": "0.02", "COMMISSION_TAX_RATE": "0.18"})
class PeriodAccumulationTests(TestCase):
    """
    Summaries are re-derived from source documents, so running the
    accumulation twice over an unchanged set yields the same numbers.
    """

    def setUp(self):
        self.rice = Product.objects.create(sku="ARROZ", name="Arroz", sale_price=Decimal("118.00"))
        self.beans = Product.objects.create(
            sku="HABICHUELA", name="Habichuelas", sale_price=Decimal("40.00"), tax_rate=Decimal("0.00")
        )
        create_lot(product=self.rice, quantity=50, unit_cost="70.00", purchase_date=date(2024, 1, 2))
        create_lot(product=self.beans, quantity=50, unit_cost="25.00", purchase_date=date(2024, 1, 2))

        self.cash_sale = finalize_sale(
            lines=[{"product": self.rice, "quantity": 2}, {"product": self.beans, "quantity": 1}],
            payment_method="cash",
            sale_date=date(2024, 1, 10),
        )
        self.card_sale = finalize_sale(
            lines=[{"product": self.rice, "quantity": 5}],
            payment_method="card",
            sale_date=date(2024, 1, 11),
        )

    def test_accumulation_is_idempotent(self):
        first = accumulate_period("2024-01")
        snapshot = {f: getattr(first, f) for f in ITBISPeriodSummary.AMOUNT_FIELDS}

        second = accumulate_period("2024-01")
        self.assertEqual(snapshot, {f: getattr(second, f) for f in ITBISPeriodSummary.AMOUNT_FIELDS})
        self.assertEqual(second.sales_count, 2)
        self.assertEqual(ITBISPeriodSummary.objects.filter(period="2024-01").count(), 1)

    def test_collected_paid_retained_and_net(self):
        settlement = record_card_settlement(
            settlement_date=date(2024, 1, 12),
            processor="Azul",
            gross_amount=self.card_sale.total,
            commission="14.75",
            sales=[self.card_sale],
        )
        reconcile_card_settlement(settlement=settlement)
        record_other_retention(date=date(2024, 1, 20), amount="5.00", retained_by="Estado Dominicano")

        summary = accumulate_period("2024-01")

        # 7 x 118 inclusive at 18% -> 126.00 ITBIS; beans exempt 40.00
        self.assertEqual(summary.itbis_18_collected, Decimal("126.00"))
        self.assertEqual(summary.sales_exempt, Decimal("40.00"))
        self.assertEqual(summary.retained_by_cards, Decimal("11.80"))
        self.assertEqual(summary.other_retentions, Decimal("5.00"))
        self.assertEqual(summary.net_due, Decimal("126.00") - Decimal("16.80"))

    def test_returns_reduce_collected_itbis(self):
        item = self.cash_sale.items.get(product=self.rice)
        process_return(sale=self.cash_sale, items=[{"sale_item": item, "quantity": 1}], return_date=date(2024, 1, 15))

        summary = accumulate_period("2024-01")
        self.assertEqual(summary.itbis_18_collected, Decimal("108.00"))
        self.assertEqual(summary.returns_count, 1)

    def test_locked_period_is_frozen(self):
        ITBISPeriodSummary.objects.create(period="2023-12", status=ITBISPeriodSummary.STATUS_CLOSED)
        with self.assertRaises(PeriodClosedError):
            accumulate_period("2023-12")
        with self.assertRaises(PeriodClosedError):
            record_other_retention(date=date(2023, 12, 5), amount="1.00", retained_by="X")
