# accounting/services/void_service.py

"""
JOURNAL ENTRY VOIDING

posted -> voided is the only backward transition. Lines stay in place;
reports ignore voided entries. No reversing entry is generated.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from accounting.models.journal import JournalEntry
from accounting.services.exceptions import (
    AlreadyVoidedError,
    CannotVoidPendingError,
    JournalEntryCreationError,
)
from accounting.services.period_lock import assert_period_open
from audit.models import AuditLogEntry
from audit.services.audit_log import log_action

logger = logging.getLogger(__name__)

STATE_FIELDS = ["status", "voided_at", "voided_by", "void_reason"]


def _state(entry: JournalEntry) -> dict:
    return {name: getattr(entry, name) for name in STATE_FIELDS}


@transaction.atomic
def void_journal_entry(*, entry: JournalEntry, reason: str, actor: str = "system") -> JournalEntry:
    reason = (reason or "").strip()
    if not reason:
        raise JournalEntryCreationError("A void reason is required")

    entry = JournalEntry.objects.select_for_update().get(pk=entry.pk)

    if entry.status == JournalEntry.STATUS_PENDING:
        raise CannotVoidPendingError(
            f"Journal entry {entry.entry_number} is pending and cannot be voided"
        )
    if entry.status == JournalEntry.STATUS_VOIDED:
        raise AlreadyVoidedError(f"Journal entry {entry.entry_number} is already voided")

    assert_period_open(entry.entry_date)

    before = _state(entry)

    entry.status = JournalEntry.STATUS_VOIDED
    entry.voided_at = timezone.now()
    entry.voided_by = actor or "system"
    entry.void_reason = reason
    entry.save(update_fields=STATE_FIELDS)

    log_action(
        action=AuditLogEntry.Action.JOURNAL_ENTRY_VOIDED,
        entity_type=AuditLogEntry.EntityType.JOURNAL_ENTRY,
        entity_id=entry.entry_number,
        actor=actor,
        before=before,
        after=_state(entry),
    )

    logger.info(
        "Journal entry voided",
        extra={"entry_number": entry.entry_number, "reason": reason},
    )
    return entry
