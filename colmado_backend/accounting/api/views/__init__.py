# accounting/api/views/__init__.py

"""
accounting.api.views package

Do NOT import accounting.api.urls from here to avoid circular imports.
"""

from accounting.api.views.accounts import AccountListView
from accounting.api.views.journal_entries import JournalEntryViewSet
from accounting.api.views.reports import (
    APAgingView,
    ARAgingView,
    BalanceSheetView,
    CashFlowView,
    IncomeStatementView,
    TrialBalanceView,
)
from accounting.api.views.settlements import (
    CardSettlementDisputeView,
    CardSettlementListCreateView,
    CardSettlementReconcileView,
)

__all__ = [
    "AccountListView",
    "JournalEntryViewSet",
    "TrialBalanceView",
    "IncomeStatementView",
    "BalanceSheetView",
    "CashFlowView",
    "APAgingView",
    "ARAgingView",
    "CardSettlementListCreateView",
    "CardSettlementReconcileView",
    "CardSettlementDisputeView",
]
