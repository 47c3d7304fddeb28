from django.contrib import admin
from .models import Student, GuardianLink


class GuardianLinkInline(admin.TabularInline):
    model = GuardianLink
    extra = 0
    autocomplete_fields = ("guardian",)


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("full_name", "enrollment_code", "grade", "is_active")
    list_filter = ("is_active", "grade")
    search_fields = ("full_name", "enrollment_code")
    inlines = [GuardianLinkInline]
