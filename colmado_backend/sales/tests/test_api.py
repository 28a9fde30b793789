# sales/tests/test_api.py

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from inventory.models import Product
from inventory.services.lot_store import create_lot
from sales.models import CashShift, Sale

User = get_user_model()


class SalesApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.cashier = User.objects.create_user(username="cajero", password="pass")
        self.cashier.user_permissions.add(
            *Permission.objects.filter(
                content_type__app_label="sales", codename__in=["add_sale", "add_salereturn"]
            )
        )
        self.other = User.objects.create_user(username="otro", password="pass")
        self.manager = User.objects.create_superuser(
            username="encargado", email="encargado@example.com", password="pass"
        )

        self.product = Product.objects.create(
            sku="CERVEZA-650", name="Cerveza 650 ml", sale_price=Decimal("177.00")
        )
        create_lot(product=self.product, quantity=24, unit_cost="95.00")

    def _checkout(self, quantity="2", **extra):
        payload = {
            "lines": [{"product": self.product.pk, "quantity": quantity}],
            "payment_method": "cash",
        }
        payload.update(extra)
        return self.client.post(reverse("sales-checkout"), payload, format="json")

    def test_shift_checkout_return_and_close(self):
        self.client.force_authenticate(self.cashier)

        res = self.client.post(reverse("shift-open"), {"opening_cash": "1000.00"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        shift_id = res.data["id"]

        res = self._checkout("2")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["total"], "354.00")
        self.assertEqual(res.data["itbis_total"], "54.00")
        self.assertEqual(res.data["cost_total"], "190.00")
        self.assertEqual(res.data["shift"], shift_id)
        self.assertTrue(res.data["entry_number"].startswith("JE-"))
        sale_id = res.data["id"]
        item_id = res.data["items"][0]["id"]

        res = self.client.post(
            reverse("sale-returns", args=[sale_id]),
            {"items": [{"sale_item": item_id, "quantity": "1"}], "reason": "botella rota"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["total"], "177.00")
        self.assertEqual(res.data["cost_total"], "95.00")

        res = self.client.get(reverse("shift-current"))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["running"]["expected_cash"], "1177.00")

        res = self.client.post(
            reverse("shift-close", args=[shift_id]), {"counted_cash": "1177.00"}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"], CashShift.STATUS_CLOSED)
        self.assertEqual(res.data["cash_difference"], "0.00")
        self.assertIsNone(res.data["entry_number"])

        res = self.client.post(
            reverse("shift-close", args=[shift_id]), {"counted_cash": "1177.00"}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "shift_closed")

    def test_checkout_requires_permission(self):
        self.client.force_authenticate(self.other)
        self.assertEqual(self._checkout().status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Sale.objects.exists())

    def test_checkout_errors_carry_reason_codes(self):
        self.client.force_authenticate(self.cashier)

        res = self._checkout(ncf_type="B02")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "ncf_range_exhausted")
        self.assertFalse(Sale.objects.exists())

        res = self._checkout(lines=[])
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cashier_sees_only_own_sales(self):
        self.client.force_authenticate(self.cashier)
        self.assertEqual(self._checkout().status_code, status.HTTP_201_CREATED)

        self.client.force_authenticate(self.other)
        res = self.client.get(reverse("sale-list"))
        self.assertEqual(res.data["count"], 0)

        self.client.force_authenticate(self.manager)
        res = self.client.get(reverse("sale-list"))
        self.assertEqual(res.data["count"], 1)

    def test_only_owner_or_manager_closes_shift(self):
        self.client.force_authenticate(self.cashier)
        shift_id = self.client.post(reverse("shift-open"), {}, format="json").data["id"]

        res = self.client.post(reverse("shift-open"), {}, format="json")
        self.assertEqual(res.data["code"], "shift_error")

        self.client.force_authenticate(self.other)
        res = self.client.post(reverse("shift-close", args=[shift_id]), {"counted_cash": "0"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.manager)
        res = self.client.post(reverse("shift-close", args=[shift_id]), {"counted_cash": "0"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
