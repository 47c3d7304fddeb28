from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    ordering = ("email",)
    list_display = ("id", "email", "first_name", "last_name", "role", "is_staff", "is_active")
    list_filter = ("role", "is_staff", "is_active")
    search_fields = ("email", "first_name", "last_name", "phone")

    # Ajustamos fieldsets para que no pida username
    fieldsets = (
        ("Credenciales", {"fields": ("email", "password")}),
        ("Información personal", {"fields": ("first_name", "last_name", "phone", "role")}),
        ("Permisos", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        ("Fechas", {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        ("Alta de usuario", {
            "classes": ("wide",),
            "fields": ("email", "password1", "password2", "role", "is_staff"),
        }),
    )
