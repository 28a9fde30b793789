# inventory/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from inventory.api.views import (
    ConsumptionListView,
    ExpireLotView,
    ExpiringLotsView,
    InventoryLossView,
    LotListCreateView,
    LotWriteOffView,
    ProductViewSet,
    ValuationView,
)

router = DefaultRouter()
router.register("products", ProductViewSet, basename="product")

urlpatterns = [
    path("", include(router.urls)),
    path("lots/", LotListCreateView.as_view(), name="lots"),
    path("lots/expiring/", ExpiringLotsView.as_view(), name="lots-expiring"),
    path("lots/<int:pk>/expire/", ExpireLotView.as_view(), name="lot-expire"),
    path("lots/<int:pk>/write-off/", LotWriteOffView.as_view(), name="lot-write-off"),
    path("consumptions/", ConsumptionListView.as_view(), name="consumptions"),
    path("valuation/", ValuationView.as_view(), name="valuation"),
    path("losses/", InventoryLossView.as_view(), name="losses"),
]
