# accounting/api/views/accounts.py

"""
PATH: accounting/api/views/accounts.py

CHART OF ACCOUNTS API (READ-ONLY)

GET /api/accounting/accounts/?account_type=EXPENSE

- Requires accounting.view_account
- The DR retail chart is seeded on first request if the table is empty
"""

from drf_spectacular.utils import extend_schema
from rest_framework.exceptions import PermissionDenied
from rest_framework.generics import ListAPIView
from rest_framework.permissions import IsAuthenticated

from accounting.api.serializers import AccountListSerializer
from accounting.models import Account
from accounting.services.account_resolver import ensure_chart


@extend_schema(tags=["accounting"])
class AccountListView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountListSerializer
    queryset = Account.objects.all().order_by("code")
    filterset_fields = ["account_type", "is_active"]
    pagination_class = None

    def get_queryset(self):
        if not self.request.user.has_perm("accounting.view_account"):
            raise PermissionDenied("You do not have permission to view accounts.")

        if not Account.objects.exists():
            ensure_chart()
        return super().get_queryset()
