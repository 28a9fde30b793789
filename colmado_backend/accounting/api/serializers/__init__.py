# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.api.serializers.journal_entries import (
    JournalEntrySerializer,
    JournalLineSerializer,
    ManualJournalEntrySerializer,
    VoidJournalEntrySerializer,
)
from accounting.api.serializers.settlements import (
    CardSettlementSerializer,
    DisputeSettlementSerializer,
    RecordCardSettlementSerializer,
)

__all__ = [
    "AccountListSerializer",
    "JournalEntrySerializer",
    "JournalLineSerializer",
    "ManualJournalEntrySerializer",
    "VoidJournalEntrySerializer",
    "CardSettlementSerializer",
    "RecordCardSettlementSerializer",
    "DisputeSettlementSerializer",
]
