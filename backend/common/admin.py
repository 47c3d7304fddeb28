from django.contrib import admin
from .models import AppSettings


@admin.register(AppSettings)
class AppSettingsAdmin(admin.ModelAdmin):
    list_display = (
        "school_name",
        "payment_reference_valid_days",
        "reminder_lookahead_days",
        "reminder_include_overdue",
        "status_poll_interval_seconds",
        "updated_at",
    )

    def has_add_permission(self, request):
        # Limit to single instance
        return not AppSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False
