# backend/urls.py
"""
PROJECT URLS

All API routes live under /api/

- /api/health/ (AllowAny) checks DB connectivity
- Django admin path comes from ADMIN_PATH to keep bots off /admin/
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.db import connections
from django.db.utils import OperationalError
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import extend_schema, inline_serializer
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

MODULES = ("inventory", "sales", "purchases", "accounting", "taxes", "audit")


@extend_schema(
    responses=inline_serializer(
        "ApiRoot",
        {
            "message": serializers.CharField(),
            "auth": serializers.DictField(),
            "docs": serializers.DictField(),
            "modules": serializers.DictField(),
        },
    )
)
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return Response(
        {
            "message": "Colmado Backend API is running",
            "auth": {
                "jwt_create": "/api/auth/jwt/create/",
                "jwt_refresh": "/api/auth/jwt/refresh/",
            },
            "docs": {"swagger": "/api/docs/", "schema": "/api/schema/"},
            "modules": {name: f"/api/{name}/" for name in MODULES},
        }
    )


@extend_schema(
    responses={
        (200, "application/json"): inline_serializer(
            "Health", {"status": serializers.CharField(), "db": serializers.CharField()}
        ),
        (503, "application/json"): inline_serializer(
            "HealthDegraded",
            {
                "status": serializers.CharField(),
                "db": serializers.CharField(),
                "error": serializers.CharField(),
            },
        ),
    }
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    try:
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except OperationalError as e:
        return Response({"status": "degraded", "db": "down", "error": str(e)}, status=503)
    return Response({"status": "ok", "db": "ok"})


# Keep the trailing slash. In production set something non-obvious:
#   ADMIN_PATH=trastienda-7q2m/
ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/")
if not ADMIN_PATH.endswith("/"):
    ADMIN_PATH = f"{ADMIN_PATH}/"


api_urlpatterns = [
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    *[path(f"{name}/", include(f"{name}.api.urls")) for name in MODULES],
]

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
