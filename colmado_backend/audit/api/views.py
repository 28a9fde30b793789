# audit/api/views.py

"""
PATH: audit/api/views.py

AUDIT LOG API (READ-ONLY)

Filters:
    /api/audit/?action=period_reopened&action=journal_entry_voided
    /api/audit/?entity_type=itbis_period&entity_id=2024-01
    /api/audit/?start=2024-01-01&end=2024-01-31

Security:
- Requires audit.view_auditlogentry
"""

from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.generics import ListAPIView
from rest_framework.permissions import IsAuthenticated

from audit.api.serializers import AuditLogEntrySerializer
from audit.services.audit_log import get_audit_log


def _parse_date_param(raw, name):
    if not raw:
        return None
    value = parse_date(raw)
    if value is None:
        raise ValidationError({name: "Use YYYY-MM-DD."})
    return value


@extend_schema(
    tags=["audit"],
    parameters=[
        OpenApiParameter(name="action", type=str, many=True, required=False),
        OpenApiParameter(name="entity_type", type=str, required=False),
        OpenApiParameter(name="entity_id", type=str, required=False),
        OpenApiParameter(name="start", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="end", type=str, required=False, description="YYYY-MM-DD"),
    ],
)
class AuditLogListView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = AuditLogEntrySerializer
    filter_backends = []

    def get_queryset(self):
        if not self.request.user.has_perm("audit.view_auditlogentry"):
            raise PermissionDenied("You do not have permission to view the audit log.")

        qp = self.request.query_params
        return get_audit_log(
            actions=qp.getlist("action") or None,
            entity_type=qp.get("entity_type") or None,
            entity_id=qp.get("entity_id") or None,
            start=_parse_date_param(qp.get("start"), "start"),
            end=_parse_date_param(qp.get("end"), "end"),
        )
