# taxes/api/urls.py

from django.urls import path

from taxes.api.views import (
    ITBISCloseView,
    ITBISFileView,
    ITBISRecalculateView,
    ITBISReopenView,
    ITBISRetentionListCreateView,
    ITBISSummaryDetailView,
    ITBISSummaryListView,
    ITBISYearToDateView,
    NCFIssueView,
    NCFRangeListCreateView,
    NCFUsageListView,
    NCFVoidView,
)

PERIOD = "<str:period>"

urlpatterns = [
    # ITBIS
    path("itbis/", ITBISSummaryListView.as_view(), name="itbis-summaries"),
    path("itbis/ytd/<int:year>/", ITBISYearToDateView.as_view(), name="itbis-ytd"),
    path("itbis/retentions/", ITBISRetentionListCreateView.as_view(), name="itbis-retentions"),
    path(f"itbis/{PERIOD}/", ITBISSummaryDetailView.as_view(), name="itbis-summary"),
    path(f"itbis/{PERIOD}/recalculate/", ITBISRecalculateView.as_view(), name="itbis-recalculate"),
    path(f"itbis/{PERIOD}/close/", ITBISCloseView.as_view(), name="itbis-close"),
    path(f"itbis/{PERIOD}/file/", ITBISFileView.as_view(), name="itbis-file"),
    path(f"itbis/{PERIOD}/reopen/", ITBISReopenView.as_view(), name="itbis-reopen"),
    # NCF
    path("ncf/", NCFUsageListView.as_view(), name="ncf-usages"),
    path("ncf/ranges/", NCFRangeListCreateView.as_view(), name="ncf-ranges"),
    path("ncf/issue/", NCFIssueView.as_view(), name="ncf-issue"),
    path("ncf/<str:ncf>/void/", NCFVoidView.as_view(), name="ncf-void"),
]
