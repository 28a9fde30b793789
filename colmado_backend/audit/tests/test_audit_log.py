# audit/tests/test_audit_log.py

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from audit.models import AuditLogEntry
from audit.services.audit_log import get_audit_log, log_action

User = get_user_model()


class AuditLogServiceTests(TestCase):
    def _log(self, action, entity_id="2024-01", **kwargs):
        return log_action(
            action=action,
            entity_type=AuditLogEntry.EntityType.ITBIS_PERIOD,
            entity_id=entity_id,
            **kwargs,
        )

    def test_entries_are_append_only(self):
        entry = self._log(AuditLogEntry.Action.PERIOD_CLOSED, actor="  ")
        self.assertEqual(entry.actor, "system")
        self.assertEqual(entry.details, {})

        entry.actor = "otro"
        with self.assertRaises(ValidationError):
            entry.save()
        with self.assertRaises(ValidationError):
            entry.delete()

    def test_filters_by_action_entity_and_date(self):
        closed = self._log(AuditLogEntry.Action.PERIOD_CLOSED)
        reopened = self._log(
            AuditLogEntry.Action.PERIOD_REOPENED,
            before={"status": "filed"},
            after={"status": "open"},
            details={"reason": "nota de crédito tardía"},
        )
        self._log(AuditLogEntry.Action.PERIOD_CLOSED, entity_id="2024-02")

        self.assertEqual(
            list(get_audit_log(entity_id="2024-01")),
            [reopened, closed],
        )
        self.assertEqual(
            list(get_audit_log(actions=[AuditLogEntry.Action.PERIOD_REOPENED])),
            [reopened],
        )

        today = timezone.localdate()
        self.assertEqual(get_audit_log(start=today, end=today).count(), 3)
        self.assertFalse(get_audit_log(end=today - timedelta(days=1)).exists())
        self.assertEqual(len(get_audit_log(limit=2)), 2)


class AuditLogApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.owner = User.objects.create_superuser(username="dueño", email="d@example.com", password="pass")
        self.cashier = User.objects.create_user(username="cajero", password="pass")

        log_action(
            action=AuditLogEntry.Action.SHIFT_CLOSED,
            entity_type=AuditLogEntry.EntityType.CASH_SHIFT,
            entity_id="SH-1",
            actor="cajero",
            details={"difference": "-6.00"},
        )
        log_action(
            action=AuditLogEntry.Action.NCF_ISSUED,
            entity_type=AuditLogEntry.EntityType.NCF,
            entity_id="B0200000001",
        )

    def test_owner_can_filter_log(self):
        self.client.force_authenticate(self.owner)

        res = self.client.get(reverse("audit-log"), {"action": AuditLogEntry.Action.SHIFT_CLOSED})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)
        row = res.data["results"][0]
        self.assertEqual(row["entity_id"], "SH-1")
        self.assertEqual(row["actor"], "cajero")
        self.assertEqual(row["details"], {"difference": "-6.00"})

        res = self.client.get(reverse("audit-log"), {"start": "ayer"})
        self.assertEqual(res.status_code, 400)

    def test_cashier_is_denied(self):
        self.client.force_authenticate(self.cashier)
        res = self.client.get(reverse("audit-log"))
        self.assertEqual(res.status_code, 403)
