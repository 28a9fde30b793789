# audit/services/audit_log.py

"""
======================================================
PATH: audit/services/audit_log.py
======================================================
AUDIT LOG SERVICE

The single writer for AuditLogEntry rows, plus the read query used by the
audit API and reports.

Rules:
- log_action() runs inside the caller's transaction, so an aborted sale
  leaves no audit trail behind
- snapshots are plain dicts (use snapshot() for model instances)
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time

from django.forms.models import model_to_dict
from django.utils import timezone

from audit.models import AuditLogEntry

logger = logging.getLogger(__name__)


def snapshot(instance, fields: list[str] | None = None) -> dict:
    """
    JSON-safe dict of a model instance (FKs become their pk).
    """
    if instance is None:
        return {}
    data = model_to_dict(instance, fields=fields)
    if fields is None or "id" in fields:
        data["id"] = instance.pk
    return data


def log_action(
    *,
    action: str,
    entity_type: str,
    entity_id,
    actor: str | None = None,
    before: dict | None = None,
    after: dict | None = None,
    details: dict | None = None,
) -> AuditLogEntry:
    entry = AuditLogEntry.objects.create(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        actor=(actor or "system").strip() or "system",
        before=before,
        after=after,
        details=details or {},
    )

    logger.info(
        "Audit action recorded",
        extra={
            "action": action,
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "actor": entry.actor,
        },
    )
    return entry


def _as_aware_dt(v, *, end_of_day: bool = False):
    if v is None:
        return None
    if isinstance(v, date) and not isinstance(v, datetime):
        v = datetime.combine(v, time.max if end_of_day else time.min)
    if timezone.is_naive(v):
        return timezone.make_aware(v, timezone.get_current_timezone())
    return v


def get_audit_log(
    *,
    actions: list[str] | None = None,
    entity_type: str | None = None,
    entity_id=None,
    start=None,
    end=None,
    limit: int | None = None,
):
    """
    Newest first. Dates are inclusive; plain dates cover the whole day.
    """
    qs = AuditLogEntry.objects.all()

    if actions:
        qs = qs.filter(action__in=actions)
    if entity_type:
        qs = qs.filter(entity_type=entity_type)
    if entity_id is not None:
        qs = qs.filter(entity_id=str(entity_id))

    start_dt = _as_aware_dt(start)
    end_dt = _as_aware_dt(end, end_of_day=True)
    if start_dt:
        qs = qs.filter(timestamp__gte=start_dt)
    if end_dt:
        qs = qs.filter(timestamp__lte=end_dt)

    qs = qs.order_by("-timestamp", "-id")
    if limit:
        qs = qs[:limit]
    return qs
