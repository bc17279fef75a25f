"""
Root URLconf: the booking API, the Django admin and the OpenAPI docs
(``/api/docs`` for Swagger UI, ``/api/redoc`` for ReDoc, ``/api/schema.json``).
"""
from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

api_info = openapi.Info(
    title="Case Booking API",
    default_version="v1",
    description="Surgical case booking: submission, status tracking, amendments, catalog and notifications.",
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/docs", schema_view.with_ui("swagger", cache_timeout=0), name="api-docs"),
    path("api/redoc", schema_view.with_ui("redoc", cache_timeout=0), name="api-redoc"),
    path("api/schema.json", schema_view.without_ui(cache_timeout=0), name="api-schema"),
    path("", include("booking.routers")),
]
