# taxes/services/ncf.py

"""
NCF SEQUENCE ALLOCATION

Same atomicity contract as journal entry numbering:
- issue_ncf() increments NCFRange.current_number with one conditional
  UPDATE (current_number < end_number) inside the caller's transaction,
  so two devices can never receive the same number
- a range that runs out or expires is skipped; when nothing is left the
  sale is declined with NCFRangeExhaustedError
"""

from __future__ import annotations

import logging
import re
from datetime import date

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from audit.models import AuditLogEntry
from audit.services.audit_log import log_action
from taxes.models import NCFRange, NCFUsage
from taxes.services.exceptions import (
    InvalidNCFError,
    NCFRangeExhaustedError,
    NCFStateError,
)

logger = logging.getLogger(__name__)

NCF_RE = re.compile(r"^[BE][0-9]{10,12}$")


def validate_ncf(value: str) -> bool:
    return bool(NCF_RE.match((value or "").strip().upper()))


def ncf_type_label(value: str) -> str:
    prefix = (value or "").strip().upper()[:3]
    return dict(NCFRange.TYPE_CHOICES).get(prefix, "Desconocido")


def add_range(
    *,
    ncf_type: str,
    end_number: int,
    start_number: int = 1,
    expiration_date: date | None = None,
    authorization: str = "",
) -> NCFRange:
    if ncf_type not in dict(NCFRange.TYPE_CHOICES):
        raise InvalidNCFError(f"Unknown NCF type {ncf_type!r}")

    return NCFRange.objects.create(
        ncf_type=ncf_type,
        start_number=start_number,
        end_number=end_number,
        current_number=start_number - 1,
        expiration_date=expiration_date,
        authorization=authorization,
    )


def _usable_ranges(ncf_type: str, today: date):
    return (
        NCFRange.objects.filter(
            ncf_type=ncf_type,
            is_active=True,
            current_number__lt=F("end_number"),
        )
        .filter(Q(expiration_date__isnull=True) | Q(expiration_date__gte=today))
        .order_by("start_number", "id")
    )


@transaction.atomic
def issue_ncf(*, ncf_type: str, sale=None, actor: str = "system") -> NCFUsage:
    today = timezone.localdate()

    for ncf_range in _usable_ranges(ncf_type, today):
        updated = NCFRange.objects.filter(
            pk=ncf_range.pk,
            current_number__lt=F("end_number"),
        ).update(current_number=F("current_number") + 1)

        if updated == 0:
            # Exhausted by a concurrent writer; try the next range
            continue

        ncf_range.refresh_from_db(fields=["current_number", "end_number"])
        ncf = ncf_range.format(ncf_range.current_number)

        usage = NCFUsage.objects.create(
            ncf=ncf,
            ncf_range=ncf_range,
            sale=sale,
            issued_by=actor,
        )

        log_action(
            action=AuditLogEntry.Action.NCF_ISSUED,
            entity_type=AuditLogEntry.EntityType.NCF,
            entity_id=ncf,
            actor=actor,
            details={
                "ncf_type": ncf_type,
                "range_id": ncf_range.pk,
                "sale_id": getattr(sale, "pk", None),
                "remaining_in_range": ncf_range.end_number - ncf_range.current_number,
            },
        )
        logger.info("NCF issued", extra={"ncf": ncf, "range_id": ncf_range.pk})
        return usage

    logger.error("No NCF numbers available", extra={"ncf_type": ncf_type})
    raise NCFRangeExhaustedError(f"No available NCF numbers for type {ncf_type}")


@transaction.atomic
def void_ncf(*, ncf: str, reason: str, actor: str = "system") -> NCFUsage:
    value = (ncf or "").strip().upper()
    if not validate_ncf(value):
        raise InvalidNCFError(f"Invalid NCF format: {ncf!r}")

    reason = (reason or "").strip()
    if not reason:
        raise NCFStateError("A void reason is required")

    try:
        usage = NCFUsage.objects.select_for_update().get(ncf=value)
    except NCFUsage.DoesNotExist as exc:
        raise InvalidNCFError(f"NCF {value} was not issued by this store") from exc

    if usage.status == NCFUsage.STATUS_VOIDED:
        raise NCFStateError(f"NCF {value} is already voided")

    usage.status = NCFUsage.STATUS_VOIDED
    usage.voided_at = timezone.now()
    usage.voided_by = actor
    usage.void_reason = reason
    usage.save(update_fields=["status", "voided_at", "voided_by", "void_reason"])

    log_action(
        action=AuditLogEntry.Action.NCF_VOIDED,
        entity_type=AuditLogEntry.EntityType.NCF,
        entity_id=value,
        actor=actor,
        before={"status": NCFUsage.STATUS_ISSUED},
        after={"status": NCFUsage.STATUS_VOIDED, "reason": reason},
    )
    return usage


def get_range_status(ncf_type: str | None = None) -> list[dict]:
    today = timezone.localdate()
    qs = NCFRange.objects.all()
    if ncf_type:
        qs = qs.filter(ncf_type=ncf_type)

    out = []
    for r in qs.order_by("ncf_type", "start_number"):
        out.append(
            {
                "id": r.pk,
                "ncf_type": r.ncf_type,
                "label": ncf_type_label(r.ncf_type),
                "start_number": r.start_number,
                "end_number": r.end_number,
                "current_number": r.current_number,
                "remaining": r.remaining,
                "expiration_date": r.expiration_date.isoformat() if r.expiration_date else None,
                "is_expired": bool(r.expiration_date and r.expiration_date < today),
                "is_active": r.is_active,
            }
        )
    return out
