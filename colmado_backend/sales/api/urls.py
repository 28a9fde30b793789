# sales/api/urls.py

"""
SALES API URLS

Rules:
- Explicit non-PK routes (checkout, returns, shifts) are registered BEFORE
  router URLs so the router never treats them as a <pk>.

Provides:
    POST /api/sales/checkout/
    GET  /api/sales/sales/            (history)
    GET  /api/sales/sales/<id>/
    POST /api/sales/sales/<id>/returns/
    GET  /api/sales/returns/
    GET  /api/sales/shifts/
    POST /api/sales/shifts/open/
    GET  /api/sales/shifts/current/
    POST /api/sales/shifts/<id>/cash-movement/
    POST /api/sales/shifts/<id>/close/
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sales.api.views import (
    CashMovementView,
    CheckoutView,
    CloseShiftView,
    CurrentShiftView,
    OpenShiftView,
    SaleReturnListView,
    SaleViewSet,
    ShiftListView,
)

router = DefaultRouter()
router.register(r"sales", SaleViewSet, basename="sale")

urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="sales-checkout"),
    path("returns/", SaleReturnListView.as_view(), name="returns"),
    path("shifts/", ShiftListView.as_view(), name="shifts"),
    path("shifts/open/", OpenShiftView.as_view(), name="shift-open"),
    path("shifts/current/", CurrentShiftView.as_view(), name="shift-current"),
    path("shifts/<int:pk>/cash-movement/", CashMovementView.as_view(), name="shift-cash-movement"),
    path("shifts/<int:pk>/close/", CloseShiftView.as_view(), name="shift-close"),
    path("", include(router.urls)),
]
