# taxes/tests/test_ncf.py

from __future__ import annotations

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from audit.models import AuditLogEntry
from taxes.models import NCFUsage
from taxes.services.exceptions import InvalidNCFError, NCFRangeExhaustedError, NCFStateError
from taxes.services.ncf import add_range, issue_ncf, validate_ncf, void_ncf

User = get_user_model()


class NCFSequenceTests(TestCase):
    def test_numbers_are_sequential_and_bounded(self):
        add_range(ncf_type="B02", start_number=1, end_number=3)

        issued = [issue_ncf(ncf_type="B02").ncf for _ in range(3)]
        self.assertEqual(issued, ["B0200000001", "B0200000002", "B0200000003"])

        with self.assertRaises(NCFRangeExhaustedError):
            issue_ncf(ncf_type="B02")

    def test_exhausted_range_rolls_over_to_next(self):
        add_range(ncf_type="B01", start_number=1, end_number=1)
        add_range(ncf_type="B01", start_number=100, end_number=200)

        self.assertEqual(issue_ncf(ncf_type="B01").ncf, "B0100000001")
        self.assertEqual(issue_ncf(ncf_type="B01").ncf, "B0100000100")

    def test_expired_range_is_skipped(self):
        add_range(
            ncf_type="B02",
            end_number=10,
            expiration_date=timezone.localdate() - timedelta(days=1),
        )
        with self.assertRaises(NCFRangeExhaustedError):
            issue_ncf(ncf_type="B02")

    def test_electronic_numbers_have_ten_digits(self):
        add_range(ncf_type="E32", end_number=5)
        ncf = issue_ncf(ncf_type="E32").ncf
        self.assertEqual(ncf, "E320000000001")
        self.assertTrue(validate_ncf(ncf))

    def test_void_keeps_the_number(self):
        add_range(ncf_type="B02", end_number=5)
        ncf = issue_ncf(ncf_type="B02").ncf

        usage = void_ncf(ncf=ncf, reason="Error de digitación")
        self.assertEqual(usage.status, NCFUsage.STATUS_VOIDED)
        self.assertTrue(
            AuditLogEntry.objects.filter(action=AuditLogEntry.Action.NCF_VOIDED, entity_id=ncf).exists()
        )

        with self.assertRaises(NCFStateError):
            void_ncf(ncf=ncf, reason="otra vez")
        with self.assertRaises(InvalidNCFError):
            void_ncf(ncf="B0299999999", reason="no existe")

    def test_validate_ncf(self):
        self.assertTrue(validate_ncf("B0100000001"))
        self.assertFalse(validate_ncf("B01-0001"))
        self.assertFalse(validate_ncf(""))


class NCFApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_superuser(username="admin", email="a@example.com", password="pass")
        self.client.force_authenticate(self.admin)

    def test_register_range_and_issue(self):
        res = self.client.post(reverse("ncf-ranges"), {"ncf_type": "B02", "end_number": 2}, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["remaining"], 2)

        res = self.client.post(reverse("ncf-issue"), {"ncf_type": "B02"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["ncf"], "B0200000001")

    def test_exhaustion_returns_reason_code(self):
        res = self.client.post(reverse("ncf-issue"), {"ncf_type": "B01"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "ncf_range_exhausted")
