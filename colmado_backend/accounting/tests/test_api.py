# accounting/tests/test_api.py

from __future__ import annotations

from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounting.models import CardSettlement, JournalEntry
from accounting.services.account_resolver import ensure_chart
from accounting.services.journal_entry_service import create_journal_entry

User = get_user_model()


class AccountingApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_superuser(
            username="contador", email="contador@example.com", password="pass"
        )
        self.cashier = User.objects.create_user(username="cajero", password="pass")
        ensure_chart()

    def _manual(self, **overrides):
        payload = {
            "entry_date": "2024-06-01",
            "description": "Aporte inicial del dueño",
            "lines": [
                {"account": "1101", "debit": "5000.00"},
                {"account": "3101", "credit": "5000.00"},
            ],
        }
        payload.update(overrides)
        return self.client.post(reverse("journal-entry-manual"), payload, format="json")

    def test_manual_entry_then_void(self):
        self.client.force_authenticate(self.admin)

        res = self._manual()
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["entry_number"], "JE-2024-00001")
        self.assertEqual(res.data["created_by"], "contador")
        self.assertEqual(len(res.data["lines"]), 2)

        entry_id = res.data["id"]
        res = self.client.post(
            reverse("journal-entry-void", args=[entry_id]), {"reason": "duplicado"}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"], JournalEntry.STATUS_VOIDED)

        res = self.client.post(
            reverse("journal-entry-void", args=[entry_id]), {"reason": "otra vez"}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "already_voided")

    def test_unbalanced_manual_entry_is_rejected(self):
        self.client.force_authenticate(self.admin)

        res = self._manual(
            lines=[
                {"account": "1101", "debit": "5000.00"},
                {"account": "3101", "credit": "4000.00"},
            ]
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "unbalanced_entry")
        self.assertFalse(JournalEntry.objects.exists())

    def test_duplicate_reference_is_a_conflict(self):
        self.client.force_authenticate(self.admin)

        self.assertEqual(self._manual(reference="apertura").status_code, status.HTTP_201_CREATED)
        res = self._manual(reference="apertura")
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["code"], "duplicate_posting")

    def test_cashier_cannot_read_or_post_ledger(self):
        self.client.force_authenticate(self.cashier)

        self.assertEqual(
            self.client.get(reverse("journal-entry-list")).status_code, status.HTTP_403_FORBIDDEN
        )
        self.assertEqual(self._manual().status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            self.client.get(reverse("trial-balance")).status_code, status.HTTP_403_FORBIDDEN
        )

    def test_reports_follow_posted_entries(self):
        self.client.force_authenticate(self.admin)
        create_journal_entry(
            description="Aporte",
            lines=[{"account": "CASH", "debit": 1000}, {"account": "CAPITAL", "credit": 1000}],
            source_type=JournalEntry.SOURCE_MANUAL,
            entry_date=date(2024, 6, 1),
        )
        create_journal_entry(
            description="Venta contado",
            lines=[
                {"account": "CASH", "debit": 236},
                {"account": "SALES_REVENUE", "credit": 200},
                {"account": "ITBIS_PAYABLE", "credit": 36},
            ],
            source_type=JournalEntry.SOURCE_MANUAL,
            entry_date=date(2024, 6, 2),
        )

        res = self.client.get(reverse("trial-balance"), {"as_of": "2024-06-30"})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertTrue(res.data["totals"]["balanced"])
        self.assertEqual(res.data["totals"]["debit_minor"], 123600)

        res = self.client.get(reverse("income-statement"), {"start": "2024-06-01", "end": "2024-06-30"})
        self.assertEqual(res.data["revenue_minor"], 20000)
        self.assertEqual(res.data["net_income_minor"], 20000)

        res = self.client.get(reverse("balance-sheet"), {"as_of": "2024-06-30"})
        self.assertTrue(res.data["totals"]["balanced"])
        self.assertEqual(res.data["totals"]["assets_minor"], 123600)

    def test_report_rejects_bad_dates(self):
        self.client.force_authenticate(self.admin)

        res = self.client.get(reverse("trial-balance"), {"as_of": "ayer"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "invalid_date")

        res = self.client.get(reverse("income-statement"), {"start": "2024-07-01", "end": "2024-06-01"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_account_list_is_the_seeded_chart(self):
        self.client.force_authenticate(self.admin)

        res = self.client.get(reverse("accounts"))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        codes = [row["code"] for row in res.data]
        self.assertIn("1101", codes)
        self.assertIn("2102", codes)
        self.assertEqual(codes, sorted(codes))

    def test_settlement_record_and_reconcile(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(
            reverse("card-settlements"),
            {
                "settlement_date": "2024-06-03",
                "processor": "CardNET",
                "gross_amount": "500.00",
                "commission": "15.00",
            },
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["net_amount"], "472.30")

        res = self.client.post(reverse("card-settlement-reconcile", args=[res.data["id"]]))
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"], CardSettlement.STATUS_RECONCILED)
        self.assertTrue(res.data["entry_number"].startswith("JE-2024-"))
