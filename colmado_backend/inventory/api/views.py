# inventory/api/views.py

"""
PATH: inventory/api/views.py

INVENTORY API

- products: CRUD without delete (deactivate instead)
- lots: list (filterable) + manual intake
- valuation: on-hand value per product, FIFO cost layers
- losses: mermas at FIFO cost, posted to the ledger
- expiring / expire / write-off for perishable lots

Security:
- Writes require the matching Django model permission.
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ModelViewSet

from backend.api_errors import DOMAIN_ERRORS, domain_error_response, forbidden
from inventory.api.serializers import (
    CostConsumptionSerializer,
    InventoryLossSerializer,
    InventoryLotSerializer,
    LotCreateSerializer,
    LotWriteOffSerializer,
    ProductSerializer,
)
from inventory.models import CostConsumption, InventoryLot, Product
from inventory.services.adjustments import record_inventory_loss, write_off_lot
from inventory.services.lot_store import create_lot, list_expiring_lots, mark_lot_expired
from inventory.services.valuation import get_product_valuation, get_total_valuation


def _actor(request) -> str:
    return request.user.get_username() or "system"


@extend_schema(tags=["inventory"])
class ProductViewSet(ModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = ProductSerializer
    http_method_names = ["get", "post", "patch", "head", "options"]
    queryset = Product.objects.all().order_by("name")
    filterset_fields = ["is_active", "tax_rate"]

    def check_permissions(self, request):
        super().check_permissions(request)
        if request.method in ("POST", "PATCH") and not request.user.has_perm(
            "inventory.change_product"
        ):
            raise PermissionDenied("You do not have permission to edit products.")


@extend_schema(tags=["inventory"])
class LotListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = InventoryLotSerializer
    queryset = InventoryLot.objects.select_related("product").order_by("purchase_date", "id")
    filterset_fields = ["product", "status", "purchase_invoice"]

    @extend_schema(request=LotCreateSerializer, responses={201: InventoryLotSerializer})
    def post(self, request):
        if not request.user.has_perm("inventory.add_inventorylot"):
            return forbidden("You do not have permission to create lots.")

        serializer = LotCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            lot = create_lot(actor=_actor(request), **serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(InventoryLotSerializer(lot).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=["inventory"])
class ConsumptionListView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CostConsumptionSerializer
    queryset = CostConsumption.objects.all().order_by("-date", "-id")
    filterset_fields = ["product", "lot", "consumption_type", "sale"]


@extend_schema(
    tags=["inventory"],
    parameters=[
        OpenApiParameter(name="product", type=int, required=False),
    ],
    responses={200: dict},
)
class ValuationView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        product_id = request.query_params.get("product")
        if product_id:
            product = get_object_or_404(Product, pk=product_id)
            return Response(get_product_valuation(product))
        return Response(get_total_valuation())


class InventoryLossView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = InventoryLossSerializer

    @extend_schema(tags=["inventory"], request=InventoryLossSerializer, responses={201: dict})
    def post(self, request):
        if not request.user.has_perm("inventory.add_costconsumption"):
            return forbidden("You do not have permission to record inventory losses.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = record_inventory_loss(
                product=data["product"],
                quantity=data["quantity"],
                reason=data["reason"],
                date=data.get("date"),
                notes=data.get("notes", ""),
                actor=_actor(request),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        entry = result.journal_entry
        return Response(
            {
                "reference": result.reference,
                "quantity": str(result.consumption.allocated_quantity),
                "total_cost": str(result.consumption.total_cost),
                "journal_entry": entry.entry_number if entry else None,
                "consumptions": CostConsumptionSerializer(result.consumption.allocations, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )


@extend_schema(
    tags=["inventory"],
    parameters=[OpenApiParameter(name="days", type=int, required=False)],
)
class ExpiringLotsView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = InventoryLotSerializer
    filter_backends = []

    def get_queryset(self):
        days = self.request.query_params.get("days")
        try:
            days = int(days) if days else None
        except (TypeError, ValueError):
            days = None
        return list_expiring_lots(days=days)


class ExpireLotView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["inventory"], request=None, responses={200: InventoryLotSerializer})
    def post(self, request, pk):
        if not request.user.has_perm("inventory.change_inventorylot"):
            return forbidden("You do not have permission to expire lots.")

        lot = get_object_or_404(InventoryLot, pk=pk)
        try:
            lot = mark_lot_expired(lot, actor=_actor(request))
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(InventoryLotSerializer(lot).data)


class LotWriteOffView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = LotWriteOffSerializer

    @extend_schema(tags=["inventory"], request=LotWriteOffSerializer, responses={201: dict})
    def post(self, request, pk):
        if not request.user.has_perm("inventory.change_inventorylot"):
            return forbidden("You do not have permission to write off lots.")

        lot = get_object_or_404(InventoryLot, pk=pk)
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = write_off_lot(
                lot=lot,
                reason=serializer.validated_data["reason"],
                date=serializer.validated_data.get("date"),
                actor=_actor(request),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        entry = result.journal_entry
        return Response(
            {
                "reference": result.reference,
                "quantity": str(result.consumption.allocated_quantity),
                "total_cost": str(result.consumption.total_cost),
                "journal_entry": entry.entry_number if entry else None,
            },
            status=status.HTTP_201_CREATED,
        )
