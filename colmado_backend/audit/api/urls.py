# audit/api/urls.py

from django.urls import path

from audit.api.views import AuditLogListView

urlpatterns = [
    path("", AuditLogListView.as_view(), name="audit-log"),
]
