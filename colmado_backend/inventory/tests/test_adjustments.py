# inventory/tests/test_adjustments.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounting.models import JournalEntry
from inventory.models import CostConsumption, InventoryLot, Product
from inventory.services.adjustments import record_inventory_loss, write_off_lot
from inventory.services.exceptions import InsufficientInventoryError, InventoryServiceError
from inventory.services.lot_store import create_lot, mark_lot_expired
from inventory.services.valuation import check_conservation

User = get_user_model()


def _lines(entry: JournalEntry) -> dict:
    return {
        line.account.code: (line.debit, line.credit)
        for line in entry.lines.select_related("account")
    }


class InventoryLossTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(sku="LECHE-1L", name="Leche entera 1 L")
        self.lot = create_lot(
            product=self.product,
            quantity=10,
            unit_cost="45.00",
            purchase_date=date(2024, 3, 1),
            expiration_date=date(2024, 3, 20),
        )

    def test_damage_loss_posts_shrinkage_at_fifo_cost(self):
        result = record_inventory_loss(
            product=self.product,
            quantity=2,
            reason="damage",
            date=date(2024, 3, 5),
            actor="encargado",
        )

        self.assertEqual(result.consumption.total_cost, Decimal("90.00"))
        self.assertTrue(result.reference.startswith("loss:"))
        self.assertEqual(
            _lines(result.journal_entry),
            {"6101": (Decimal("90.00"), Decimal("0.00")), "1201": (Decimal("0.00"), Decimal("90.00"))},
        )
        self.assertEqual(result.journal_entry.source_type, JournalEntry.SOURCE_ADJUSTMENT)

        consumption = CostConsumption.objects.get()
        self.assertEqual(consumption.consumption_type, CostConsumption.TYPE_LOSS)
        self.assertTrue(check_conservation(self.product)["balanced"])

    def test_theft_maps_to_theft_account(self):
        result = record_inventory_loss(product=self.product, quantity=1, reason="theft")
        self.assertIn("6103", _lines(result.journal_entry))

    def test_loss_beyond_stock_is_refused_by_default(self):
        with self.assertRaises(InsufficientInventoryError):
            record_inventory_loss(product=self.product, quantity=11, reason="count")
        self.assertFalse(JournalEntry.objects.exists())

    def test_unknown_reason_is_rejected(self):
        with self.assertRaises(InventoryServiceError):
            record_inventory_loss(product=self.product, quantity=1, reason="gift")

    def test_write_off_expired_lot(self):
        mark_lot_expired(self.lot)
        result = write_off_lot(lot=self.lot, date=date(2024, 3, 21))

        self.assertEqual(result.consumption.total_cost, Decimal("450.00"))
        self.assertIn("6102", _lines(result.journal_entry))

        self.lot.refresh_from_db()
        self.assertEqual(self.lot.remaining_quantity, Decimal("0"))
        self.assertEqual(self.lot.status, InventoryLot.STATUS_EXPIRED)
        self.assertTrue(check_conservation(self.product)["balanced"])

        with self.assertRaises(InventoryServiceError):
            write_off_lot(lot=self.lot, date=date(2024, 3, 22))


class InventoryApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_superuser(
            username="admin", email="admin@example.com", password="pass"
        )
        self.cashier = User.objects.create_user(username="cajero", password="pass")
        self.product = Product.objects.create(sku="PAN-SOBAO", name="Pan sobao")

    def test_lot_intake_and_valuation(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(
            reverse("lots"),
            {"product": self.product.pk, "quantity": "20", "unit_cost": "5.50"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["status"], InventoryLot.STATUS_ACTIVE)

        res = self.client.get(reverse("valuation"), {"product": self.product.pk})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["value"], "110.00")

    def test_loss_endpoint_reports_reason_code_on_shortage(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(
            reverse("losses"),
            {"product": self.product.pk, "quantity": "1", "reason": "damage"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "insufficient_inventory")

    def test_lot_intake_requires_permission(self):
        self.client.force_authenticate(self.cashier)

        res = self.client.post(
            reverse("lots"),
            {"product": self.product.pk, "quantity": "1", "unit_cost": "1"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(InventoryLot.objects.exists())

    def test_anonymous_is_rejected(self):
        res = self.client.get(reverse("lots"))
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)
