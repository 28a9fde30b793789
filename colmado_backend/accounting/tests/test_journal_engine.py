# accounting/tests/test_journal_engine.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from accounting.models import Account, EntrySequence, JournalEntry, JournalLine
from accounting.services.account_resolver import ensure_chart, get_account
from accounting.services.exceptions import (
    AlreadyVoidedError,
    CannotVoidPendingError,
    IdempotencyError,
    JournalEntryCreationError,
    UnbalancedEntryError,
)
from accounting.services.journal_entry_service import create_journal_entry
from accounting.services.trial_balance_service import TrialBalanceService
from accounting.services.void_service import void_journal_entry
from audit.models import AuditLogEntry


def _post(amount="100.00", *, source_id=None, entry_date=date(2024, 2, 10)):
    return create_journal_entry(
        description="Aporte de capital",
        lines=[
            {"account": "CASH", "debit": amount},
            {"account": "CAPITAL", "credit": amount},
        ],
        source_type=JournalEntry.SOURCE_MANUAL,
        source_id=source_id,
        entry_date=entry_date,
        created_by="dueño",
    )


class JournalEngineTests(TestCase):
    """
    ENGINE GUARANTEES:
    - debits == credits or nothing is written
    - entry numbers are unique and monotonic per year
    - one live entry per (source_type, source_id)
    """

    def test_balanced_entry_is_posted_with_lines(self):
        entry = _post()

        self.assertEqual(entry.status, JournalEntry.STATUS_POSTED)
        self.assertIsNotNone(entry.posted_at)
        self.assertEqual(entry.total_debit, Decimal("100.00"))
        self.assertEqual(entry.total_credit, Decimal("100.00"))
        self.assertEqual(
            list(entry.lines.values_list("line_no", "account__code", "debit", "credit")),
            [
                (1, "1101", Decimal("100.00"), Decimal("0.00")),
                (2, "3101", Decimal("0.00"), Decimal("100.00")),
            ],
        )
        self.assertTrue(
            AuditLogEntry.objects.filter(
                action=AuditLogEntry.Action.JOURNAL_ENTRY_CREATED,
                entity_id=entry.entry_number,
            ).exists()
        )

    def test_unbalanced_entry_writes_nothing(self):
        with self.assertRaises(UnbalancedEntryError) as ctx:
            create_journal_entry(
                description="Descuadre",
                lines=[
                    {"account": "CASH", "debit": "100.00"},
                    {"account": "CAPITAL", "credit": "99.99"},
                ],
                source_type=JournalEntry.SOURCE_MANUAL,
            )

        self.assertEqual(ctx.exception.code, "unbalanced_entry")
        self.assertFalse(JournalEntry.objects.exists())
        self.assertFalse(JournalLine.objects.exists())

    def test_line_shape_is_validated(self):
        bad_lines = [
            [],
            [{"account": "CASH", "debit": "10", "credit": "10"}],
            [{"account": "CASH"}],
            [{"account": "CASH", "debit": "-5"}, {"account": "CAPITAL", "credit": "-5"}],
        ]
        for lines in bad_lines:
            with self.subTest(lines=lines):
                with self.assertRaises(JournalEntryCreationError):
                    create_journal_entry(
                        description="x",
                        lines=lines,
                        source_type=JournalEntry.SOURCE_MANUAL,
                    )

        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                description="   ",
                lines=[{"account": "CASH", "debit": 1}, {"account": "CAPITAL", "credit": 1}],
                source_type=JournalEntry.SOURCE_MANUAL,
            )

    def test_amounts_round_half_up_to_cents(self):
        entry = _post("10.005")
        self.assertEqual(entry.total_debit, Decimal("10.01"))

    # --------------------------------------------------
    # Numbering
    # --------------------------------------------------

    def test_entry_numbers_are_sequential_per_year(self):
        first = _post(entry_date=date(2024, 3, 1))
        second = _post(entry_date=date(2024, 12, 31))
        next_year = _post(entry_date=date(2025, 1, 2))

        self.assertEqual(first.entry_number, "JE-2024-00001")
        self.assertEqual(second.entry_number, "JE-2024-00002")
        self.assertEqual(next_year.entry_number, "JE-2025-00001")
        self.assertEqual(EntrySequence.objects.get(key="JE-2024").last_number, 2)

    @override_settings(LEDGER={"ENTRY_PREFIX": "AS"})
    def test_entry_prefix_comes_from_settings(self):
        self.assertEqual(_post(entry_date=date(2024, 5, 5)).entry_number, "AS-2024-00001")

    def test_rejected_entry_does_not_consume_a_number(self):
        with self.assertRaises(UnbalancedEntryError):
            create_journal_entry(
                description="Descuadre",
                lines=[{"account": "CASH", "debit": 5}, {"account": "CAPITAL", "credit": 4}],
                source_type=JournalEntry.SOURCE_MANUAL,
                entry_date=date(2024, 2, 1),
            )
        self.assertEqual(_post().entry_number, "JE-2024-00001")

    # --------------------------------------------------
    # Idempotency
    # --------------------------------------------------

    def test_same_source_cannot_post_twice(self):
        _post(source_id="apertura-2024")
        with self.assertRaises(IdempotencyError) as ctx:
            _post(source_id="apertura-2024")
        self.assertEqual(ctx.exception.code, "duplicate_posting")
        self.assertEqual(JournalEntry.objects.count(), 1)

    def test_voided_source_can_be_reposted(self):
        entry = _post(source_id="apertura-2024")
        void_journal_entry(entry=entry, reason="monto errado")

        again = _post("150.00", source_id="apertura-2024")
        self.assertEqual(again.status, JournalEntry.STATUS_POSTED)

    # --------------------------------------------------
    # Immutability & voiding
    # --------------------------------------------------

    def test_posted_amounts_are_immutable(self):
        entry = _post()
        entry.total_debit = Decimal("1.00")
        with self.assertRaises(ValidationError):
            entry.save()
        with self.assertRaises(ValidationError):
            entry.delete()

    def test_void_transitions_and_guards(self):
        entry = _post()

        with self.assertRaises(JournalEntryCreationError):
            void_journal_entry(entry=entry, reason="  ")

        voided = void_journal_entry(entry=entry, reason="registrado dos veces", actor="contador")
        self.assertEqual(voided.status, JournalEntry.STATUS_VOIDED)
        self.assertEqual(voided.voided_by, "contador")
        self.assertEqual(voided.lines.count(), 2)

        log = AuditLogEntry.objects.get(action=AuditLogEntry.Action.JOURNAL_ENTRY_VOIDED)
        self.assertEqual(log.before["status"], JournalEntry.STATUS_POSTED)
        self.assertEqual(log.after["status"], JournalEntry.STATUS_VOIDED)

        with self.assertRaises(AlreadyVoidedError):
            void_journal_entry(entry=entry, reason="otra vez")

    def test_pending_entry_cannot_be_voided(self):
        pending = JournalEntry.objects.create(
            entry_number="JE-2024-99999",
            entry_date=date(2024, 2, 1),
            description="Pendiente",
            source_type=JournalEntry.SOURCE_MANUAL,
        )
        with self.assertRaises(CannotVoidPendingError):
            void_journal_entry(entry=pending, reason="no aplica")


class ChartOfAccountsTests(TestCase):
    def test_seeded_accounts_are_protected(self):
        ensure_chart()
        cash = get_account("CASH")

        self.assertTrue(cash.is_system)
        self.assertEqual(cash.normal_balance, "debit")
        self.assertEqual(get_account("ITBIS_PAYABLE").normal_balance, "credit")

        cash.is_active = False
        with self.assertRaises(ValidationError):
            cash.save()

        cash.refresh_from_db()
        cash.account_type = Account.LIABILITY
        with self.assertRaises(ValidationError):
            cash.save()

        with self.assertRaises(ValidationError):
            get_account("COGS").delete()

    def test_codes_follow_the_account_class(self):
        with self.assertRaises(ValidationError):
            Account.objects.create(code="61A0", name="Gastos varios", account_type=Account.EXPENSE)
        with self.assertRaises(ValidationError):
            Account.objects.create(code="4199", name="Otros gastos", account_type=Account.EXPENSE)

        custom = Account.objects.create(code="6110", name="Fundas y empaques", account_type=Account.EXPENSE)
        self.assertFalse(custom.is_system)
        self.assertEqual(get_account("6110"), custom)

    def test_period_trial_balance_excludes_earlier_entries(self):
        _post("1000.00", entry_date=date(2024, 1, 15))
        _post("250.00", entry_date=date(2024, 2, 10))

        february = TrialBalanceService().generate(start=date(2024, 2, 1), as_of=date(2024, 2, 29))
        self.assertEqual(february["totals"]["debit_minor"], 25000)
        self.assertTrue(february["totals"]["balanced"])

        cash_row = next(r for r in february["accounts"] if r["account_code"] == "1101")
        capital_row = next(r for r in february["accounts"] if r["account_code"] == "3101")
        self.assertEqual(cash_row["balance_minor"], 25000)
        self.assertEqual(capital_row["balance_minor"], 25000)

        year = TrialBalanceService().generate(as_of=date(2024, 12, 31))
        self.assertEqual(year["totals"]["credit_minor"], 125000)
