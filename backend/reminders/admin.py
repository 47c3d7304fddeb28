from django.contrib import admin
from .models import EmailLogEntry, ReminderRun


@admin.register(ReminderRun)
class ReminderRunAdmin(admin.ModelAdmin):
    list_display = ("run_date", "status", "success_count", "error_count", "omitted_count", "trigger", "attempts", "finished_at")
    list_filter = ("status",)
    readonly_fields = [f.name for f in ReminderRun._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(EmailLogEntry)
class EmailLogEntryAdmin(admin.ModelAdmin):
    list_display = ("sent_at", "student_name", "concept_name", "due_date", "outcome", "error_message")
    list_filter = ("outcome", "run_date")
    search_fields = ("student_name", "concept_name", "subject")
    readonly_fields = [f.name for f in EmailLogEntry._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
