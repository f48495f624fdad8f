"""
Root URL configuration.

The API lives in ``waste.routers``; the OpenAPI schema is browsable at
``/swagger/`` and ``/redoc/`` and the Django admin at ``/admin/``.
"""
from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

api_info = openapi.Info(
    title="Medical Waste Tracking API",
    default_version="v1",
    description="Collection tagging, weigh-in, nonconformity reports and cost analytics across hospitals.",
)

schema_view = get_schema_view(api_info, public=True, permission_classes=(permissions.AllowAny,))

urlpatterns = [
    path("", include("waste.routers")),
    path("admin/", admin.site.urls),
    path("swagger/", schema_view.with_ui("swagger", cache_timeout=0), name="schema-swagger-ui"),
    path("redoc/", schema_view.with_ui("redoc", cache_timeout=0), name="schema-redoc"),
]
