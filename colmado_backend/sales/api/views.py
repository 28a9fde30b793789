# sales/api/views.py

"""
PATH: sales/api/views.py

SALES API (POS)

- checkout: priced lines -> immutable Sale (FIFO cost, ITBIS, NCF, journal)
- sales: history + receipt; returns are posted against a sale
- shifts: open own drawer, cash movements, X summary, close (posts variance)

Security:
- checkout requires sales.add_sale; returns require sales.add_salereturn
- cashiers without sales.view_sale only see their own sales
- a shift is closed by its cashier or by someone with sales.change_cashshift
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.services.closing_service import close_shift, summarize_shift
from backend.api_errors import DOMAIN_ERRORS, domain_error_response, forbidden
from sales.api.serializers import (
    CashMovementSerializer,
    CashShiftSerializer,
    CheckoutSerializer,
    CloseShiftSerializer,
    OpenShiftSerializer,
    ReturnSerializer,
    SaleReturnSerializer,
    SaleSerializer,
)
from sales.models import CashShift, Sale, SaleReturn
from sales.services.checkout_orchestrator import finalize_sale
from sales.services.refund_orchestrator import process_return
from sales.services.shift_service import get_open_shift, open_shift, record_cash_movement


def _actor(request) -> str:
    return request.user.get_username() or "system"


# ======================================================
# CHECKOUT
# ======================================================


class CheckoutView(GenericAPIView):
    """
    The cashier's open shift (if any) is attached to the sale.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = CheckoutSerializer

    @extend_schema(tags=["sales"], request=CheckoutSerializer, responses={201: SaleSerializer})
    def post(self, request):
        if not request.user.has_perm("sales.add_sale"):
            return forbidden("You do not have permission to register sales.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        actor = _actor(request)

        try:
            sale = finalize_sale(
                lines=[dict(line) for line in data["lines"]],
                payment_method=data["payment_method"],
                sale_date=data.get("sale_date"),
                shift=get_open_shift(actor),
                ncf_type=data.get("ncf_type"),
                customer_name=data.get("customer_name", ""),
                customer_rnc=data.get("customer_rnc", ""),
                actor=actor,
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(SaleSerializer(sale).data, status=status.HTTP_201_CREATED)


# ======================================================
# SALES HISTORY + RETURNS
# ======================================================


@extend_schema(tags=["sales"])
class SaleViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = SaleSerializer
    queryset = (
        Sale.objects.select_related("journal_entry")
        .prefetch_related("items__product")
        .order_by("-sale_date", "-id")
    )
    filterset_fields = ["payment_method", "status", "sale_date", "shift", "ncf"]

    def get_queryset(self):
        qs = super().get_queryset()
        if not self.request.user.has_perm("sales.view_sale"):
            qs = qs.filter(created_by=_actor(self.request))
        return qs

    @extend_schema(request=ReturnSerializer, responses={201: SaleReturnSerializer})
    @action(detail=True, methods=["post"], url_path="returns")
    def returns(self, request, pk=None):
        if not request.user.has_perm("sales.add_salereturn"):
            return forbidden("You do not have permission to process returns.")

        sale = self.get_object()
        serializer = ReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        actor = _actor(request)

        try:
            sale_return = process_return(
                sale=sale,
                items=[dict(item) for item in data["items"]],
                refund_method=data.get("refund_method"),
                return_date=data.get("return_date"),
                reason=data.get("reason", ""),
                shift=get_open_shift(actor),
                actor=actor,
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(SaleReturnSerializer(sale_return).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=["sales"])
class SaleReturnListView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = SaleReturnSerializer
    queryset = SaleReturn.objects.select_related("sale", "journal_entry").prefetch_related("items")
    filterset_fields = ["sale", "refund_method", "return_date", "shift"]

    def get_queryset(self):
        qs = super().get_queryset().order_by("-return_date", "-id")
        if not self.request.user.has_perm("sales.view_salereturn"):
            qs = qs.filter(created_by=_actor(self.request))
        return qs


# ======================================================
# CASH SHIFTS
# ======================================================


def _can_manage(request, shift: CashShift) -> bool:
    return shift.opened_by == _actor(request) or request.user.has_perm("sales.change_cashshift")


@extend_schema(tags=["sales"])
class ShiftListView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CashShiftSerializer
    queryset = CashShift.objects.select_related("journal_entry").order_by("-opened_at")
    filterset_fields = ["status", "opened_by"]

    def get_queryset(self):
        qs = super().get_queryset()
        if not self.request.user.has_perm("sales.view_cashshift"):
            qs = qs.filter(opened_by=_actor(self.request))
        return qs


class OpenShiftView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OpenShiftSerializer

    @extend_schema(tags=["sales"], request=OpenShiftSerializer, responses={201: CashShiftSerializer})
    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            shift = open_shift(
                opened_by=_actor(request),
                opening_cash=serializer.validated_data["opening_cash"],
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(CashShiftSerializer(shift).data, status=status.HTTP_201_CREATED)


class CurrentShiftView(GenericAPIView):
    """Own open shift plus its running (X) totals; 404 when none is open."""

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["sales"], responses={200: dict})
    def get(self, request):
        shift = get_open_shift(_actor(request))
        if shift is None:
            return Response({"detail": "No open shift."}, status=status.HTTP_404_NOT_FOUND)

        data = CashShiftSerializer(shift).data
        data["running"] = {k: str(v) for k, v in summarize_shift(shift).items()}
        return Response(data)


class CashMovementView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CashMovementSerializer

    @extend_schema(tags=["sales"], request=CashMovementSerializer, responses={200: CashShiftSerializer})
    def post(self, request, pk):
        shift = get_object_or_404(CashShift, pk=pk)
        if not _can_manage(request, shift):
            return forbidden("You can only move cash in your own shift.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            shift = record_cash_movement(shift=shift, actor=_actor(request), **serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(CashShiftSerializer(shift).data)


class CloseShiftView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CloseShiftSerializer

    @extend_schema(tags=["sales"], request=CloseShiftSerializer, responses={200: CashShiftSerializer})
    def post(self, request, pk):
        shift = get_object_or_404(CashShift, pk=pk)
        if not _can_manage(request, shift):
            return forbidden("You can only close your own shift.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            shift = close_shift(
                shift=shift,
                counted_cash=serializer.validated_data["counted_cash"],
                notes=serializer.validated_data.get("notes", ""),
                actor=_actor(request),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(CashShiftSerializer(shift).data)
