# purchases/api/urls.py

from django.urls import path

from purchases.api.views import (
    PurchaseInvoiceDetailView,
    PurchaseInvoiceListCreateView,
    PurchaseInvoiceVoidView,
    SupplierListCreateView,
    SupplierPaymentListCreateView,
)

urlpatterns = [
    path("suppliers/", SupplierListCreateView.as_view(), name="purchase-suppliers"),
    path("invoices/", PurchaseInvoiceListCreateView.as_view(), name="purchase-invoices"),
    path(
        "invoices/<uuid:invoice_id>/",
        PurchaseInvoiceDetailView.as_view(),
        name="purchase-invoice-detail",
    ),
    path(
        "invoices/<uuid:invoice_id>/void/",
        PurchaseInvoiceVoidView.as_view(),
        name="purchase-invoice-void",
    ),
    path("payments/", SupplierPaymentListCreateView.as_view(), name="supplier-payments"),
]
