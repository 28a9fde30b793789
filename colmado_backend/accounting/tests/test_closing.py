# accounting/tests/test_closing.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.test import TestCase, override_settings

from accounting.models import CardSettlement, JournalEntry
from accounting.services.closing_service import (
    close_period,
    close_shift,
    file_period,
    find_open_transactions,
    reopen_period,
)
from accounting.services.exceptions import (
    OpenTransactionsExistError,
    PeriodClosedError,
    PeriodStateError,
    SettlementStateError,
    ShiftClosedError,
)
from accounting.services.journal_entry_service import create_journal_entry
from accounting.services.period_lock import assert_period_open
from accounting.services.settlement_service import (
    dispute_card_settlement,
    reconcile_card_settlement,
    record_card_settlement,
)
from accounting.services.void_service import void_journal_entry
from audit.models import AuditLogEntry
from inventory.models import Product
from inventory.services.lot_store import create_lot
from sales.models import CashShift, Sale
from sales.services.checkout_orchestrator import finalize_sale
from sales.services.shift_service import open_shift, record_cash_movement
from taxes.models import ITBISPeriodSummary


def _capital(entry_date, amount="500.00"):
    return create_journal_entry(
        description="Aporte",
        lines=[{"account": "CASH", "debit": amount}, {"account": "CAPITAL", "credit": amount}],
        source_type=JournalEntry.SOURCE_MANUAL,
        entry_date=entry_date,
    )


def _lines(entry: JournalEntry) -> dict:
    return {
        line.account.code: (line.debit, line.credit)
        for line in entry.lines.select_related("account")
    }


class PeriodCloseTests(TestCase):
    def test_close_blocks_posting_and_voiding_in_period(self):
        entry = _capital(date(2024, 3, 5))

        summary = close_period(period="2024-03", actor="contador")
        self.assertEqual(summary.status, ITBISPeriodSummary.STATUS_CLOSED)
        self.assertEqual(summary.closed_by, "contador")

        with self.assertRaises(PeriodClosedError) as ctx:
            _capital(date(2024, 3, 20))
        self.assertEqual(ctx.exception.code, "period_closed")

        with self.assertRaises(PeriodClosedError):
            void_journal_entry(entry=entry, reason="error")

        # Next month stays open
        self.assertEqual(_capital(date(2024, 4, 1)).status, JournalEntry.STATUS_POSTED)

    def test_close_refuses_with_unposted_work(self):
        Sale.objects.create(
            sale_date=date(2024, 3, 8),
            payment_method=Sale.PAYMENT_CASH,
            subtotal=Decimal("100.00"),
            itbis_total=Decimal("18.00"),
            total=Decimal("118.00"),
        )

        self.assertEqual(find_open_transactions("2024-03"), {"unposted_sales": 1})
        with self.assertRaises(OpenTransactionsExistError) as ctx:
            close_period(period="2024-03")
        self.assertEqual(ctx.exception.code, "open_transactions_exist")
        self.assertFalse(
            ITBISPeriodSummary.objects.filter(status=ITBISPeriodSummary.STATUS_CLOSED).exists()
        )

    def test_pending_settlement_blocks_close_until_reconciled(self):
        settlement = record_card_settlement(
            settlement_date=date(2024, 3, 10),
            processor="CardNET",
            gross_amount="1000.00",
            commission="30.00",
        )
        with self.assertRaises(OpenTransactionsExistError):
            close_period(period="2024-03")

        reconcile_card_settlement(settlement=settlement)
        self.assertEqual(close_period(period="2024-03").status, ITBISPeriodSummary.STATUS_CLOSED)

    def test_file_and_reopen_lifecycle_is_audited(self):
        close_period(period="2024-03")

        with self.assertRaises(PeriodStateError):
            close_period(period="2024-03")
        with self.assertRaises(PeriodStateError):
            file_period(period="2024-03", confirmation="")

        filed = file_period(period="2024-03", confirmation="IT1-778899", actor="contador")
        self.assertEqual(filed.status, ITBISPeriodSummary.STATUS_FILED)
        self.assertEqual(filed.dgii_confirmation, "IT1-778899")

        with self.assertRaises(PeriodStateError):
            reopen_period(period="2024-03", reason="")

        reopened = reopen_period(period="2024-03", reason="rectificativa", actor="dueño")
        self.assertEqual(reopened.status, ITBISPeriodSummary.STATUS_OPEN)

        log = AuditLogEntry.objects.get(action=AuditLogEntry.Action.PERIOD_REOPENED)
        self.assertEqual(log.entity_id, "2024-03")
        self.assertEqual(log.actor, "dueño")
        self.assertEqual(log.before["status"], ITBISPeriodSummary.STATUS_FILED)
        self.assertEqual(log.details["reason"], "rectificativa")

        # Posting works again after reopening
        self.assertEqual(_capital(date(2024, 3, 28)).status, JournalEntry.STATUS_POSTED)

        product = Product.objects.create(sku="AZUCAR-1LB", name="Azucar 1 lb", sale_price=Decimal("59.00"))
        create_lot(product=product, quantity=5, unit_cost="30.00", purchase_date=date(2024, 3, 1))
        sale = finalize_sale(
            lines=[{"product": product, "quantity": 2}],
            payment_method=Sale.PAYMENT_CASH,
            sale_date=date(2024, 3, 29),
        )
        self.assertEqual(sale.journal_entry.status, JournalEntry.STATUS_POSTED)
        self.assertEqual(sale.journal_entry.entry_date, date(2024, 3, 29))

        with self.assertRaises(PeriodStateError):
            reopen_period(period="2024-03", reason="otra vez")

    def test_posting_into_untouched_month_creates_the_locked_row(self):
        self.assertFalse(ITBISPeriodSummary.objects.filter(period="2024-05").exists())

        with transaction.atomic():
            assert_period_open(date(2024, 5, 3))
            summary = ITBISPeriodSummary.objects.get(period="2024-05")
            self.assertEqual(summary.status, ITBISPeriodSummary.STATUS_OPEN)

        _capital(date(2024, 6, 2))
        self.assertTrue(ITBISPeriodSummary.objects.filter(period="2024-06").exists())

        # close_period locks the same row the posting created
        self.assertEqual(close_period(period="2024-06").status, ITBISPeriodSummary.STATUS_CLOSED)
        self.assertEqual(ITBISPeriodSummary.objects.filter(period="2024-06").count(), 1)


class CardSettlementTests(TestCase):
    def test_defaults_and_net_amount(self):
        settlement = record_card_settlement(
            settlement_date=date(2024, 5, 2),
            processor="Azul",
            gross_amount="1000.00",
            commission="30.00",
        )

        self.assertEqual(settlement.tax_on_commission, Decimal("5.40"))
        self.assertEqual(settlement.itbis_retained, Decimal("20.00"))
        self.assertEqual(settlement.net_amount, Decimal("944.60"))
        self.assertEqual(settlement.status, CardSettlement.STATUS_PENDING)
        self.assertIsNone(settlement.journal_entry)

    @override_settings(ITBIS={"CARD_RETENTION_RATE": "0", "COMMISSION_TAX_RATE": "0.18"})
    def test_net_amount_without_retention(self):
        settlement = record_card_settlement(
            settlement_date=date(2024, 5, 2),
            processor="Azul",
            gross_amount="1000.00",
            commission="30.00",
        )

        self.assertEqual(settlement.itbis_retained, Decimal("0.00"))
        self.assertEqual(settlement.net_amount, Decimal("964.60"))

    def test_reconcile_posts_settlement_entry(self):
        settlement = record_card_settlement(
            settlement_date=date(2024, 5, 2),
            processor="Azul",
            gross_amount="1000.00",
            commission="30.00",
        )
        settlement = reconcile_card_settlement(settlement=settlement)

        self.assertEqual(settlement.status, CardSettlement.STATUS_RECONCILED)
        self.assertEqual(
            _lines(settlement.journal_entry),
            {
                "1102": (Decimal("944.60"), Decimal("0.00")),
                "6104": (Decimal("30.00"), Decimal("0.00")),
                "1104": (Decimal("5.40"), Decimal("0.00")),
                "2103": (Decimal("20.00"), Decimal("0.00")),
                "1106": (Decimal("0.00"), Decimal("1000.00")),
            },
        )

        with self.assertRaises(SettlementStateError):
            reconcile_card_settlement(settlement=settlement)
        with self.assertRaises(SettlementStateError):
            dispute_card_settlement(settlement=settlement, reason="monto")

    def test_dispute_requires_reason(self):
        settlement = record_card_settlement(
            settlement_date=date(2024, 5, 2), processor="Azul", gross_amount="200.00"
        )
        with self.assertRaises(SettlementStateError):
            dispute_card_settlement(settlement=settlement, reason="")

        settlement = dispute_card_settlement(settlement=settlement, reason="falta un voucher")
        self.assertEqual(settlement.status, CardSettlement.STATUS_DISPUTED)
        self.assertFalse(JournalEntry.objects.exists())

    def test_only_card_sales_can_be_settled(self):
        product = Product.objects.create(sku="REFRESCO", name="Refresco", sale_price=Decimal("59.00"))
        create_lot(product=product, quantity=10, unit_cost="30.00")
        cash_sale = finalize_sale(
            lines=[{"product": product, "quantity": 1}], payment_method=Sale.PAYMENT_CASH
        )

        with self.assertRaises(SettlementStateError):
            record_card_settlement(
                settlement_date=date(2024, 5, 2),
                processor="Azul",
                gross_amount="59.00",
                sales=[cash_sale],
            )


class ShiftCloseTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(
            sku="HABICHUELA", name="Habichuelas rojas", sale_price=Decimal("118.00")
        )
        create_lot(product=self.product, quantity=10, unit_cost="50.00")
        self.shift = open_shift(opened_by="cajero", opening_cash="500.00")

    def _sell(self, quantity, method=Sale.PAYMENT_CASH):
        return finalize_sale(
            lines=[{"product": self.product, "quantity": quantity}],
            payment_method=method,
            shift=self.shift,
            actor="cajero",
        )

    def test_short_drawer_posts_cash_shortage(self):
        self._sell(2)
        self._sell(1, Sale.PAYMENT_CARD)
        record_cash_movement(shift=self.shift, amount="100.00", direction="out")

        shift = close_shift(shift=self.shift, counted_cash="630.00", actor="encargado")

        self.assertEqual(shift.status, CashShift.STATUS_CLOSED)
        self.assertEqual(shift.sales_count, 2)
        self.assertEqual(shift.cash_sales, Decimal("236.00"))
        self.assertEqual(shift.card_sales, Decimal("118.00"))
        self.assertEqual(shift.cogs_total, Decimal("150.00"))
        self.assertEqual(shift.expected_cash, Decimal("636.00"))
        self.assertEqual(shift.cash_difference, Decimal("-6.00"))
        self.assertEqual(
            _lines(shift.journal_entry),
            {"6108": (Decimal("6.00"), Decimal("0.00")), "1101": (Decimal("0.00"), Decimal("6.00"))},
        )

    def test_over_drawer_posts_cash_over(self):
        self._sell(1)
        shift = close_shift(shift=self.shift, counted_cash="620.00")

        self.assertEqual(shift.cash_difference, Decimal("2.00"))
        self.assertIn("4104", _lines(shift.journal_entry))

    def test_balanced_drawer_posts_nothing_and_closed_is_terminal(self):
        shift = close_shift(shift=self.shift, counted_cash="500.00")
        self.assertIsNone(shift.journal_entry)

        with self.assertRaises(ShiftClosedError):
            close_shift(shift=shift, counted_cash="500.00")

        shift.notes = "editado"
        with self.assertRaises(ValidationError):
            shift.save()
