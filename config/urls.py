from django.conf import settings
from django.contrib import admin
from django.contrib.staticfiles.urls import staticfiles_urlpatterns
from django.urls import include
from django.urls import path
from drf_spectacular.views import SpectacularAPIView
from drf_spectacular.views import SpectacularSwaggerView

from .health import health as health_view

urlpatterns = [
    path(settings.ADMIN_URL, admin.site.urls),
    path("health/", health_view, name="health"),
    # REST API (v1). The Socket.IO endpoint is mounted in config.asgi.
    path("api/v1/", include("config.api_router", namespace="api_v1")),
    path(
        "api/v1/auth/",
        include(("chat_backend.users.api.auth_urls", "auth"), namespace="auth"),
    ),
    path("api/v1/schema/", SpectacularAPIView.as_view(), name="api-schema-v1"),
    path(
        "api/v1/docs/",
        SpectacularSwaggerView.as_view(url_name="api-schema-v1"),
        name="api-docs-v1",
    ),
]

if settings.DEBUG:
    urlpatterns += staticfiles_urlpatterns()
