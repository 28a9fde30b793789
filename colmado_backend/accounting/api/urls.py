# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounting.api.views import (
    AccountListView,
    APAgingView,
    ARAgingView,
    BalanceSheetView,
    CardSettlementDisputeView,
    CardSettlementListCreateView,
    CardSettlementReconcileView,
    CashFlowView,
    IncomeStatementView,
    JournalEntryViewSet,
    TrialBalanceView,
)

router = DefaultRouter()
router.register("journal-entries", JournalEntryViewSet, basename="journal-entry")

urlpatterns = [
    # Router endpoints
    path("", include(router.urls)),
    # Reports
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("income-statement/", IncomeStatementView.as_view(), name="income-statement"),
    path("balance-sheet/", BalanceSheetView.as_view(), name="balance-sheet"),
    path("cash-flow/", CashFlowView.as_view(), name="cash-flow"),
    path("ap-aging/", APAgingView.as_view(), name="ap-aging"),
    path("ar-aging/", ARAgingView.as_view(), name="ar-aging"),
    # Master data
    path("accounts/", AccountListView.as_view(), name="accounts"),
    # Card processors
    path("card-settlements/", CardSettlementListCreateView.as_view(), name="card-settlements"),
    path(
        "card-settlements/<int:pk>/reconcile/",
        CardSettlementReconcileView.as_view(),
        name="card-settlement-reconcile",
    ),
    path(
        "card-settlements/<int:pk>/dispute/",
        CardSettlementDisputeView.as_view(),
        name="card-settlement-dispute",
    ),
]
