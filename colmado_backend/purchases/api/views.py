# purchases/api/views.py

"""
PATH: purchases/api/views.py

PURCHASES API

- suppliers: list / create
- invoices: record (lots + journal in one transaction), list, detail, void
- payments: pay an open invoice (Dr CxP / Cr Caja|Bancos)

Security:
- writes require the matching purchases.* model permission
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.api_errors import DOMAIN_ERRORS, domain_error_response, forbidden
from purchases.api.serializers import (
    PurchaseInvoiceCreateSerializer,
    PurchaseInvoiceSerializer,
    SupplierPaymentCreateSerializer,
    SupplierPaymentSerializer,
    SupplierSerializer,
    VoidPurchaseInvoiceSerializer,
)
from purchases.models import PurchaseInvoice, Supplier, SupplierPayment
from purchases.services.payment_service import pay_supplier_invoice
from purchases.services.receiving_service import record_purchase_invoice, void_purchase_invoice


def _actor(request) -> str:
    return request.user.get_username() or "system"


def _invoice_qs():
    return PurchaseInvoice.objects.select_related("supplier", "journal_entry").prefetch_related(
        "items", "items__product"
    )


class SupplierListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["purchases"], responses=SupplierSerializer(many=True))
    def get(self, request):
        qs = Supplier.objects.filter(is_active=True).order_by("name")
        return Response(SupplierSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["purchases"], request=SupplierSerializer, responses={201: SupplierSerializer})
    def post(self, request):
        if not request.user.has_perm("purchases.add_supplier"):
            return forbidden("You do not have permission to register suppliers.")

        s = SupplierSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        supplier = s.save()
        return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=["purchases"])
class PurchaseInvoiceListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PurchaseInvoiceSerializer
    filterset_fields = ["status", "category", "supplier", "issue_date"]

    def get_queryset(self):
        return _invoice_qs().order_by("-issue_date", "-id")

    @extend_schema(request=PurchaseInvoiceCreateSerializer, responses={201: PurchaseInvoiceSerializer})
    def post(self, request):
        if not request.user.has_perm("purchases.add_purchaseinvoice"):
            return forbidden("You do not have permission to record purchases.")

        s = PurchaseInvoiceCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            invoice = record_purchase_invoice(
                supplier_name=data["supplier_name"],
                supplier_rnc=data["supplier_rnc"],
                supplier_ncf=data["supplier_ncf"],
                invoice_number=data["invoice_number"],
                issue_date=data.get("issue_date"),
                category=data["category"],
                items=[dict(item) for item in data["items"]],
                actor=_actor(request),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        invoice = _invoice_qs().get(pk=invoice.pk)
        return Response(PurchaseInvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


class PurchaseInvoiceDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["purchases"], responses={200: PurchaseInvoiceSerializer})
    def get(self, request, invoice_id):
        invoice = get_object_or_404(_invoice_qs(), uuid=invoice_id)
        return Response(PurchaseInvoiceSerializer(invoice).data)


class PurchaseInvoiceVoidView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = VoidPurchaseInvoiceSerializer

    @extend_schema(tags=["purchases"], request=VoidPurchaseInvoiceSerializer, responses={200: PurchaseInvoiceSerializer})
    def post(self, request, invoice_id):
        if not request.user.has_perm("purchases.change_purchaseinvoice"):
            return forbidden("You do not have permission to void purchases.")

        invoice = get_object_or_404(PurchaseInvoice, uuid=invoice_id)
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            invoice = void_purchase_invoice(
                invoice=invoice,
                reason=s.validated_data["reason"],
                actor=_actor(request),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        invoice = _invoice_qs().get(pk=invoice.pk)
        return Response(PurchaseInvoiceSerializer(invoice).data)


@extend_schema(tags=["purchases"])
class SupplierPaymentListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = SupplierPaymentSerializer
    queryset = SupplierPayment.objects.select_related("invoice__supplier", "journal_entry").order_by(
        "-payment_date", "-id"
    )
    filterset_fields = ["invoice", "payment_method", "payment_date"]

    @extend_schema(request=SupplierPaymentCreateSerializer, responses={201: SupplierPaymentSerializer})
    def post(self, request):
        if not request.user.has_perm("purchases.add_supplierpayment"):
            return forbidden("You do not have permission to pay suppliers.")

        s = SupplierPaymentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            payment = pay_supplier_invoice(actor=_actor(request), **s.validated_data)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(SupplierPaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
