from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.http import JsonResponse


# === Healthcheck ===
def healthcheck(request):
    """
    Endpoint simple para verificar el estado del servidor.
    Útil para monitoreo o comprobaciones automáticas.
    """
    return JsonResponse({"status": "ok"}, status=200)


urlpatterns = [
    # Admin: ruta configurable por .env
    path(settings.ADMIN_URL, admin.site.urls),

    # Healthcheck
    path("healthz/", healthcheck, name="healthcheck"),

    # API
    path("api/", include("common.urls")),
    path("api/", include("accounts.urls")),
    path("api/payments/", include("payments.urls")),
    path("api/reminders/", include("reminders.urls")),
]


# === Root amigable (en lugar del 404) ===
urlpatterns += [
    path(
        "",
        lambda r: JsonResponse(
            {
                "message": "API escolar",
                "endpoints": [
                    "/api/auth/login",
                    "/api/payments/",
                    "/api/reminders/",
                    "/api/admin/settings",
                    "/healthz/",
                    f"/{settings.ADMIN_URL}",
                ],
            },
            status=200,
        ),
        name="api-root",
    ),
]
