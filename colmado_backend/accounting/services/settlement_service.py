# accounting/services/settlement_service.py

"""
CARD SETTLEMENT LIFECYCLE

record    -> pending (no journal entry yet; counts toward ITBIS retained)
reconcile -> posts Dr Bancos/Comisiones/ITBIS / Cr CxC Tarjetas, reconciled
dispute   -> disputed (excluded from ITBIS aggregation until re-recorded)

Defaults when the processor statement omits them:
- tax_on_commission = commission x ITBIS["COMMISSION_TAX_RATE"]
- itbis_retained    = gross x ITBIS["CARD_RETENTION_RATE"]
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.utils import timezone

from accounting.models.settlement import CardSettlement
from accounting.services.exceptions import SettlementStateError
from accounting.services.period_lock import assert_period_open
from accounting.services.posting import post_card_settlement
from audit.models import AuditLogEntry
from audit.services.audit_log import log_action
from taxes.services.itbis import card_retention_rate, commission_tax_rate

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v if v not in (None, "") else "0")).quantize(
        TWOPLACES, rounding=ROUND_HALF_UP
    )


@transaction.atomic
def record_card_settlement(
    *,
    settlement_date,
    processor: str,
    gross_amount,
    commission=0,
    tax_on_commission=None,
    itbis_retained=None,
    reference: str = "",
    sales=None,
    actor: str = "system",
) -> CardSettlement:
    processor = (processor or "").strip()
    if not processor:
        raise SettlementStateError("processor is required")

    gross = _money(gross_amount)
    fee = _money(commission)
    fee_tax = (
        _money(tax_on_commission)
        if tax_on_commission is not None
        else _money(fee * commission_tax_rate())
    )
    retained = (
        _money(itbis_retained)
        if itbis_retained is not None
        else _money(gross * card_retention_rate())
    )

    sales = list(sales or [])
    not_card = [s.receipt_number for s in sales if s.payment_method != "card"]
    if not_card:
        raise SettlementStateError(
            f"Only card sales can be settled: {', '.join(not_card)}"
        )

    assert_period_open(settlement_date)

    settlement = CardSettlement.objects.create(
        settlement_date=settlement_date,
        processor=processor,
        reference=(reference or "").strip(),
        gross_amount=gross,
        commission=fee,
        tax_on_commission=fee_tax,
        itbis_retained=retained,
        net_amount=gross - fee - fee_tax - retained,
        created_by=actor or "system",
    )
    if sales:
        settlement.sales.set(sales)

    logger.info(
        "Card settlement recorded",
        extra={
            "settlement_id": settlement.pk,
            "processor": processor,
            "gross": str(gross),
            "net": str(settlement.net_amount),
        },
    )
    return settlement


@transaction.atomic
def reconcile_card_settlement(*, settlement: CardSettlement, actor: str = "system") -> CardSettlement:
    settlement = CardSettlement.objects.select_for_update().get(pk=settlement.pk)
    if settlement.status != CardSettlement.STATUS_PENDING:
        raise SettlementStateError(
            f"Settlement {settlement.pk} is {settlement.status}; only pending settlements reconcile"
        )

    settlement.journal_entry = post_card_settlement(settlement, actor=actor)
    settlement.status = CardSettlement.STATUS_RECONCILED
    settlement.reconciled_at = timezone.now()
    settlement.save()

    log_action(
        action=AuditLogEntry.Action.SETTLEMENT_RECONCILED,
        entity_type=AuditLogEntry.EntityType.CARD_SETTLEMENT,
        entity_id=settlement.uuid,
        actor=actor,
        after={
            "journal_entry": settlement.journal_entry.entry_number,
            "gross_amount": settlement.gross_amount,
            "net_amount": settlement.net_amount,
            "itbis_retained": settlement.itbis_retained,
        },
    )
    return settlement


@transaction.atomic
def dispute_card_settlement(
    *, settlement: CardSettlement, reason: str, actor: str = "system"
) -> CardSettlement:
    reason = (reason or "").strip()
    if not reason:
        raise SettlementStateError("A dispute reason is required")

    settlement = CardSettlement.objects.select_for_update().get(pk=settlement.pk)
    if settlement.status != CardSettlement.STATUS_PENDING:
        raise SettlementStateError(
            f"Settlement {settlement.pk} is {settlement.status}; only pending settlements can be disputed"
        )

    settlement.status = CardSettlement.STATUS_DISPUTED
    settlement.dispute_reason = reason
    settlement.save()

    log_action(
        action=AuditLogEntry.Action.SETTLEMENT_DISPUTED,
        entity_type=AuditLogEntry.EntityType.CARD_SETTLEMENT,
        entity_id=settlement.uuid,
        actor=actor,
        details={"reason": reason},
    )
    logger.warning(
        "Card settlement disputed",
        extra={"settlement_id": settlement.pk, "reason": reason},
    )
    return settlement
