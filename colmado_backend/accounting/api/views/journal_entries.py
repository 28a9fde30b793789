# accounting/api/views/journal_entries.py

"""
PATH: accounting/api/views/journal_entries.py

JOURNAL ENTRY API

- List / retrieve (read-only, audit-safe), filterable:
    ?status=posted&source_type=sale&entry_date=2024-01-15
- POST /journal-entries/<id>/void/   (accounting.change_journalentry)
- POST /journal-entries/manual/      (accounting.add_journalentry)

Entries are never edited or deleted; a mistake is voided and re-posted.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.api.serializers import (
    JournalEntrySerializer,
    ManualJournalEntrySerializer,
    VoidJournalEntrySerializer,
)
from accounting.models import JournalEntry
from accounting.services.journal_entry_service import create_journal_entry
from accounting.services.void_service import void_journal_entry
from backend.api_errors import DOMAIN_ERRORS, domain_error_response, forbidden


def _actor(request) -> str:
    return request.user.get_username() or "system"


@extend_schema(tags=["accounting"])
class JournalEntryViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer
    queryset = JournalEntry.objects.prefetch_related("lines__account").order_by("-entry_date", "-id")
    filterset_fields = ["status", "source_type", "source_id", "entry_date"]

    def get_queryset(self):
        if not self.request.user.has_perm("accounting.view_journalentry"):
            raise PermissionDenied("You do not have permission to view journal entries.")
        return super().get_queryset()

    @extend_schema(request=VoidJournalEntrySerializer, responses={200: JournalEntrySerializer})
    @action(detail=True, methods=["post"])
    def void(self, request, pk=None):
        if not request.user.has_perm("accounting.change_journalentry"):
            return forbidden("You do not have permission to void journal entries.")

        entry = self.get_object()
        serializer = VoidJournalEntrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            entry = void_journal_entry(
                entry=entry,
                reason=serializer.validated_data["reason"],
                actor=_actor(request),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(self.get_serializer(entry).data)

    @extend_schema(request=ManualJournalEntrySerializer, responses={201: JournalEntrySerializer})
    @action(detail=False, methods=["post"])
    def manual(self, request):
        if not request.user.has_perm("accounting.add_journalentry"):
            return forbidden("You do not have permission to post manual entries.")

        serializer = ManualJournalEntrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            entry = create_journal_entry(
                description=data["description"],
                lines=[dict(line) for line in data["lines"]],
                source_type=JournalEntry.SOURCE_MANUAL,
                source_id=data.get("reference") or None,
                entry_date=data.get("entry_date"),
                created_by=_actor(request),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return Response(self.get_serializer(entry).data, status=status.HTTP_201_CREATED)
