# accounting/api/views/reports.py

"""
PATH: accounting/api/views/reports.py

FINANCIAL REPORTS (READ-ONLY)

- GET /trial-balance/?as_of=YYYY-MM-DD
- GET /income-statement/?start=YYYY-MM-DD&end=YYYY-MM-DD
- GET /balance-sheet/?as_of=YYYY-MM-DD
- GET /cash-flow/?start=YYYY-MM-DD&end=YYYY-MM-DD
- GET /ap-aging/?as_of=YYYY-MM-DD
- GET /ar-aging/?as_of=YYYY-MM-DD

Posted entries only; voided entries drop out of every report.
Permission: accounting.view_journalentry
"""

from __future__ import annotations

from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.services.financial_statement_service import (
    generate_balance_sheet,
    get_ap_aging,
    get_ar_aging,
    get_cash_flow_statement,
    get_income_statement,
)
from accounting.services.trial_balance_service import TrialBalanceService
from backend.api_errors import forbidden

REPORT_PERMISSION = "accounting.view_journalentry"


class InvalidDateParam(ValueError):
    pass


def _date_param(request, name):
    raw = (request.query_params.get(name) or "").strip()
    if not raw:
        return None
    value = parse_date(raw)
    if value is None:
        raise InvalidDateParam(f"Invalid {name} (expected YYYY-MM-DD)")
    return value


def _bad_request(exc) -> Response:
    return Response({"detail": str(exc), "code": "invalid_date"}, status=status.HTTP_400_BAD_REQUEST)


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="as_of", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="start", type=str, required=False, description="YYYY-MM-DD (period trial balance)"),
    ],
    responses={200: dict},
)
class TrialBalanceView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return forbidden("You do not have permission to view trial balance.")
        try:
            as_of = _date_param(request, "as_of")
            start = _date_param(request, "start")
        except InvalidDateParam as exc:
            return _bad_request(exc)
        return Response(TrialBalanceService().generate(as_of=as_of, start=start))


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="start", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="end", type=str, required=False, description="YYYY-MM-DD"),
    ],
    responses={200: dict},
)
class IncomeStatementView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return forbidden("You do not have permission to view the income statement.")
        try:
            start = _date_param(request, "start")
            end = _date_param(request, "end")
        except InvalidDateParam as exc:
            return _bad_request(exc)

        if start and end and start > end:
            return Response(
                {"detail": "start must be <= end", "code": "invalid_date"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(get_income_statement(start=start, end=end))


@extend_schema(
    tags=["accounting"],
    parameters=[OpenApiParameter(name="as_of", type=str, required=False, description="YYYY-MM-DD")],
    responses={200: dict},
)
class BalanceSheetView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return forbidden("You do not have permission to view the balance sheet.")
        try:
            as_of = _date_param(request, "as_of")
        except InvalidDateParam as exc:
            return _bad_request(exc)
        return Response(generate_balance_sheet(as_of=as_of))


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="start", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="end", type=str, required=False, description="YYYY-MM-DD"),
    ],
    responses={200: dict},
)
class CashFlowView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return forbidden("You do not have permission to view the cash flow statement.")
        try:
            start = _date_param(request, "start")
            end = _date_param(request, "end")
        except InvalidDateParam as exc:
            return _bad_request(exc)

        if start and end and start > end:
            return Response(
                {"detail": "start must be <= end", "code": "invalid_date"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(get_cash_flow_statement(start=start, end=end))


class _AgingView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    report = None
    label = ""

    def get(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return forbidden(f"You do not have permission to view {self.label}.")
        try:
            as_of = _date_param(request, "as_of")
        except InvalidDateParam as exc:
            return _bad_request(exc)
        return Response(self.report(as_of=as_of))


@extend_schema(
    tags=["accounting"],
    parameters=[OpenApiParameter(name="as_of", type=str, required=False, description="YYYY-MM-DD")],
    responses={200: dict},
)
class APAgingView(_AgingView):
    report = staticmethod(get_ap_aging)
    label = "accounts payable aging"


@extend_schema(
    tags=["accounting"],
    parameters=[OpenApiParameter(name="as_of", type=str, required=False, description="YYYY-MM-DD")],
    responses={200: dict},
)
class ARAgingView(_AgingView):
    report = staticmethod(get_ar_aging)
    label = "accounts receivable aging"
