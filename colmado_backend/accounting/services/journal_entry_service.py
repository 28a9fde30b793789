# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create JournalEntry
- Create JournalLine
- Enforce debit == credit
- Guarantee atomicity
- Enforce idempotency via (source_type, source_id)
- Enforce period locks (no posting into closed ITBIS periods)
- Allocate entry numbers

Everything else (checkout, returns, purchases, settlements) must pass
through here.

Lifecycle:
- entry is created `pending` together with its lines, then transitioned
  to `posted` in the same transaction. Nobody outside this transaction
  ever observes a pending entry unless posting itself failed midway.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine
from accounting.models.sequence import EntrySequence
from accounting.services.account_resolver import get_account
from accounting.services.exceptions import (
    IdempotencyError,
    JournalEntryCreationError,
    UnbalancedEntryError,
)
from accounting.services.period_lock import assert_period_open
from audit.models import AuditLogEntry
from audit.services.audit_log import log_action

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
MIN_LINE_AMOUNT = Decimal("0.01")


def _money(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise JournalEntryCreationError(f"Invalid money value: {value!r}") from exc

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def entry_prefix() -> str:
    return str(getattr(settings, "LEDGER", {}).get("ENTRY_PREFIX", "JE") or "JE")


def allocate_entry_number(entry_date: date) -> str:
    """
    Next `JE-YYYY-NNNNN` for the entry's year.

    The UPDATE ... SET last_number = last_number + 1 holds the sequence row
    lock until the posting transaction ends, so numbers are unique and
    monotonic. A rolled-back posting leaves a gap.
    """
    key = f"{entry_prefix()}-{entry_date.year:04d}"

    EntrySequence.objects.get_or_create(key=key)
    EntrySequence.objects.filter(key=key).update(last_number=F("last_number") + 1)
    number = EntrySequence.objects.values_list("last_number", flat=True).get(key=key)

    return f"{key}-{number:05d}"


def _normalize_lines(lines: list) -> list[dict]:
    if not lines:
        raise JournalEntryCreationError("Journal entry must contain at least one line")

    normalized: list[dict] = []

    for line in lines:
        if not isinstance(line, dict):
            raise JournalEntryCreationError("Each line must be an object/dict")

        account = line.get("account")
        if account is None:
            raise JournalEntryCreationError("Line missing account")
        if not isinstance(account, Account):
            account = get_account(account)

        if not account.is_active:
            raise JournalEntryCreationError(f"Account {account.code} is inactive")

        debit = _money(line.get("debit"))
        credit = _money(line.get("credit"))

        if debit < 0 or credit < 0:
            raise JournalEntryCreationError("Debit or credit cannot be negative")

        if debit > 0 and credit > 0:
            raise JournalEntryCreationError("A line cannot have both debit and credit")

        if debit == 0 and credit == 0:
            raise JournalEntryCreationError("A line must have either debit or credit")

        if 0 < debit < MIN_LINE_AMOUNT or 0 < credit < MIN_LINE_AMOUNT:
            raise JournalEntryCreationError("Line amount below 0.01")

        normalized.append(
            {
                "account": account,
                "debit": debit,
                "credit": credit,
                "memo": str(line.get("memo") or "")[:255],
            }
        )

    return normalized


@transaction.atomic
def create_journal_entry(
    *,
    description: str,
    lines: list,
    source_type: str,
    source_id: str | None = None,
    entry_date: date | None = None,
    created_by: str = "system",
) -> JournalEntry:
    description = (description or "").strip()
    if not description:
        raise JournalEntryCreationError("Journal entry description is required")

    if source_type not in dict(JournalEntry.SOURCE_CHOICES):
        raise JournalEntryCreationError(f"Unknown source_type {source_type!r}")

    source_id = str(source_id or "").strip()
    entry_date = entry_date or timezone.localdate()

    normalized = _normalize_lines(lines)

    total_debit = sum((ln["debit"] for ln in normalized), Decimal("0.00"))
    total_credit = sum((ln["credit"] for ln in normalized), Decimal("0.00"))

    if total_debit != total_credit:
        logger.error(
            "Unbalanced journal entry rejected",
            extra={
                "source_type": source_type,
                "source_id": source_id,
                "total_debit": str(total_debit),
                "total_credit": str(total_credit),
            },
        )
        raise UnbalancedEntryError(
            f"Journal entry not balanced: debits={total_debit} credits={total_credit}",
            total_debit=total_debit,
            total_credit=total_credit,
        )

    # Engine choke-point for period locks
    assert_period_open(entry_date)

    live = JournalEntry.objects.filter(source_type=source_type, source_id=source_id).exclude(
        status=JournalEntry.STATUS_VOIDED
    )
    if source_id and live.exists():
        raise IdempotencyError(
            f"Journal entry already exists for {source_type}:{source_id}",
            source_type=source_type,
            source_id=source_id,
        )

    try:
        with transaction.atomic():
            entry = JournalEntry.objects.create(
                entry_number=allocate_entry_number(entry_date),
                entry_date=entry_date,
                description=description,
                source_type=source_type,
                source_id=source_id,
                status=JournalEntry.STATUS_PENDING,
                total_debit=total_debit,
                total_credit=total_credit,
                created_by=created_by or "system",
            )
    except IntegrityError as exc:
        if source_id and live.exists():
            raise IdempotencyError(
                f"Journal entry already exists for {source_type}:{source_id}"
            ) from exc
        raise JournalEntryCreationError(f"Failed to create journal entry: {exc}") from exc

    for line_no, line in enumerate(normalized, start=1):
        JournalLine.objects.create(
            journal_entry=entry,
            line_no=line_no,
            account=line["account"],
            debit=line["debit"],
            credit=line["credit"],
            memo=line["memo"],
        )

    entry.status = JournalEntry.STATUS_POSTED
    entry.posted_at = timezone.now()
    entry.save(update_fields=["status", "posted_at"])

    log_action(
        action=AuditLogEntry.Action.JOURNAL_ENTRY_CREATED,
        entity_type=AuditLogEntry.EntityType.JOURNAL_ENTRY,
        entity_id=entry.entry_number,
        actor=created_by,
        after={
            "entry_number": entry.entry_number,
            "entry_date": entry.entry_date,
            "source_type": source_type,
            "source_id": source_id,
            "total": total_debit,
            "lines": [
                {"account": ln["account"].code, "debit": ln["debit"], "credit": ln["credit"]}
                for ln in normalized
            ],
        },
    )

    logger.info(
        "Journal entry posted",
        extra={
            "entry_number": entry.entry_number,
            "source_type": source_type,
            "source_id": source_id,
            "total": str(total_debit),
        },
    )
    return entry
