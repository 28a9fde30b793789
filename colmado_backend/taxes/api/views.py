# taxes/api/views.py

"""
PATH: taxes/api/views.py

ITBIS & NCF API

Periods:
    GET  /api/taxes/itbis/                       list summaries (?status=closed)
    GET  /api/taxes/itbis/<YYYY-MM>/             one summary (created empty if missing)
    POST /api/taxes/itbis/<YYYY-MM>/recalculate/ re-derive from source documents
    POST /api/taxes/itbis/<YYYY-MM>/close/
    POST /api/taxes/itbis/<YYYY-MM>/file/
    POST /api/taxes/itbis/<YYYY-MM>/reopen/
    GET  /api/taxes/itbis/ytd/<YYYY>/

NCF:
    GET/POST /api/taxes/ncf/ranges/
    POST     /api/taxes/ncf/issue/
    POST     /api/taxes/ncf/<ncf>/void/

Security:
- Close / file / reopen require taxes.change_itbisperiodsummary
- Range management and voids require taxes.add_ncfrange / taxes.change_ncfusage
"""

from __future__ import annotations

from django.db import transaction
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView, ListAPIView, ListCreateAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.services.closing_service import (
    close_period,
    file_period,
    find_open_transactions,
    reopen_period,
)
from backend.api_errors import DOMAIN_ERRORS, domain_error_response, forbidden
from taxes.api.serializers import (
    FilePeriodSerializer,
    IssueNCFSerializer,
    ITBISPeriodSummarySerializer,
    ITBISRetentionSerializer,
    NCFRangeSerializer,
    NCFUsageSerializer,
    ReopenPeriodSerializer,
    VoidNCFSerializer,
)
from taxes.models import ITBISPeriodSummary, ITBISRetention, NCFRange, NCFUsage
from taxes.services.itbis import (
    accumulate_period,
    get_period_summary,
    get_ytd_summary,
    record_other_retention,
)
from taxes.services.ncf import add_range, issue_ncf, void_ncf

PERIOD_PERMISSION = "taxes.change_itbisperiodsummary"


def _actor(request) -> str:
    return request.user.get_username() or "system"


# ============================================================
# ITBIS PERIODS
# ============================================================


@extend_schema(tags=["taxes"])
class ITBISSummaryListView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ITBISPeriodSummarySerializer
    queryset = ITBISPeriodSummary.objects.all().order_by("-period")
    filterset_fields = ["status"]


class ITBISSummaryDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["taxes"], responses={200: ITBISPeriodSummarySerializer})
    def get(self, request, period):
        try:
            summary = get_period_summary(period)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        data = ITBISPeriodSummarySerializer(summary).data
        data["open_transactions"] = find_open_transactions(summary.period)
        return Response(data)


class ITBISRecalculateView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["taxes"], request=None, responses={200: ITBISPeriodSummarySerializer})
    def post(self, request, period):
        try:
            summary = accumulate_period(period, actor=_actor(request))
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(ITBISPeriodSummarySerializer(summary).data)


class ITBISCloseView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["taxes"], request=None, responses={200: ITBISPeriodSummarySerializer})
    def post(self, request, period):
        if not request.user.has_perm(PERIOD_PERMISSION):
            return forbidden("You do not have permission to close ITBIS periods.")

        try:
            summary = close_period(period=period, actor=_actor(request))
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(ITBISPeriodSummarySerializer(summary).data)


class ITBISFileView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = FilePeriodSerializer

    @extend_schema(tags=["taxes"], request=FilePeriodSerializer, responses={200: ITBISPeriodSummarySerializer})
    def post(self, request, period):
        if not request.user.has_perm(PERIOD_PERMISSION):
            return forbidden("You do not have permission to file ITBIS periods.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            summary = file_period(
                period=period,
                confirmation=serializer.validated_data["confirmation"],
                actor=_actor(request),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(ITBISPeriodSummarySerializer(summary).data)


class ITBISReopenView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ReopenPeriodSerializer

    @extend_schema(tags=["taxes"], request=ReopenPeriodSerializer, responses={200: ITBISPeriodSummarySerializer})
    def post(self, request, period):
        if not request.user.has_perm(PERIOD_PERMISSION):
            return forbidden("You do not have permission to reopen ITBIS periods.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            summary = reopen_period(
                period=period,
                reason=serializer.validated_data["reason"],
                actor=_actor(request),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(ITBISPeriodSummarySerializer(summary).data)


class ITBISYearToDateView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["taxes"], responses={200: dict})
    def get(self, request, year):
        return Response(get_ytd_summary(year))


@extend_schema(tags=["taxes"])
class ITBISRetentionListCreateView(ListCreateAPIView):
    """Retentions made by third parties other than card processors."""

    permission_classes = [IsAuthenticated]
    serializer_class = ITBISRetentionSerializer
    queryset = ITBISRetention.objects.all().order_by("-date", "-id")
    filterset_fields = ["date"]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            retention = record_other_retention(actor=_actor(request), **serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(self.get_serializer(retention).data, status=status.HTTP_201_CREATED)


# ============================================================
# NCF
# ============================================================


@extend_schema(tags=["taxes"])
class NCFRangeListCreateView(ListCreateAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = NCFRangeSerializer
    queryset = NCFRange.objects.all().order_by("ncf_type", "start_number")
    filterset_fields = ["ncf_type", "is_active"]

    def create(self, request, *args, **kwargs):
        if not request.user.has_perm("taxes.add_ncfrange"):
            return forbidden("You do not have permission to register NCF ranges.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            ncf_range = add_range(**serializer.validated_data)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(self.get_serializer(ncf_range).data, status=status.HTTP_201_CREATED)


class NCFIssueView(GenericAPIView):
    """
    Issue a number outside checkout (e.g. a hand-written B01 invoice).
    """

    permission_classes = [IsAuthenticated]
    serializer_class = IssueNCFSerializer

    @extend_schema(tags=["taxes"], request=IssueNCFSerializer, responses={201: NCFUsageSerializer})
    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            with transaction.atomic():
                usage = issue_ncf(ncf_type=serializer.validated_data["ncf_type"], actor=_actor(request))
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(NCFUsageSerializer(usage).data, status=status.HTTP_201_CREATED)


class NCFVoidView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = VoidNCFSerializer

    @extend_schema(tags=["taxes"], request=VoidNCFSerializer, responses={200: NCFUsageSerializer})
    def post(self, request, ncf):
        if not request.user.has_perm("taxes.change_ncfusage"):
            return forbidden("You do not have permission to void NCF numbers.")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            usage = void_ncf(ncf=ncf, reason=serializer.validated_data["reason"], actor=_actor(request))
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        return Response(NCFUsageSerializer(usage).data)


@extend_schema(tags=["taxes"])
class NCFUsageListView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = NCFUsageSerializer
    queryset = NCFUsage.objects.all().order_by("-issued_at", "-id")
    filterset_fields = ["status", "ncf_range", "sale"]
