# accounting/api/views/settlements.py

"""
PATH: accounting/api/views/settlements.py

CARD SETTLEMENT API

- GET/POST /card-settlements/               list (?status=pending) / record
- POST     /card-settlements/<id>/reconcile/ posts the deposit entry
- POST     /card-settlements/<id>/dispute/

Reconcile and dispute require accounting.change_cardsettlement.
"""

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView, ListCreateAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers import (
    CardSettlementSerializer,
    DisputeSettlementSerializer,
    RecordCardSettlementSerializer,
)
from accounting.models import CardSettlement
from accounting.services.settlement_service import (
    dispute_card_settlement,
    reconcile_card_settlement,
    record_card_settlement,
)
from backend.api_errors import DOMAIN_ERRORS, domain_error_response, forbidden

SETTLEMENT_PERMISSION = "accounting.change_cardsettlement"


def _actor(request) -> str:
    return request.user.get_username() or "system"


@extend_schema(tags=["accounting"])
class CardSettlementListCreateView(ListCreateAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CardSettlementSerializer
    queryset = CardSettlement.objects.select_related("journal_entry").order_by("-settlement_date", "-id")
    filterset_fields = ["status", "processor", "settlement_date"]

    @extend_schema(request=RecordCardSettlementSerializer, responses={201: CardSettlementSerializer})
    def create(self, request, *args, **kwargs):
        if not request.user.has_perm("accounting.add_cardsettlement"):
            return forbidden("You do not have permission to record card settlements.")

        serializer = RecordCardSettlementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            settlement = record_card_settlement(actor=_actor(request), **serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(CardSettlementSerializer(settlement).data, status=status.HTTP_201_CREATED)


class CardSettlementReconcileView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], request=None, responses={200: CardSettlementSerializer})
    def post(self, request, pk):
        if not request.user.has_perm(SETTLEMENT_PERMISSION):
            return forbidden("You do not have permission to reconcile card settlements.")

        settlement = get_object_or_404(CardSettlement, pk=pk)
        try:
            settlement = reconcile_card_settlement(settlement=settlement, actor=_actor(request))
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(CardSettlementSerializer(settlement).data)


class CardSettlementDisputeView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = DisputeSettlementSerializer

    @extend_schema(tags=["accounting"], request=DisputeSettlementSerializer, responses={200: CardSettlementSerializer})
    def post(self, request, pk):
        if not request.user.has_perm(SETTLEMENT_PERMISSION):
            return forbidden("You do not have permission to dispute card settlements.")

        settlement = get_object_or_404(CardSettlement, pk=pk)
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            settlement = dispute_card_settlement(
                settlement=settlement,
                reason=serializer.validated_data["reason"],
                actor=_actor(request),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(CardSettlementSerializer(settlement).data)
