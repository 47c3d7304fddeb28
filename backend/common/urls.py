from django.urls import path
from .views import AppSettingsView

urlpatterns = [
    path("admin/settings", AppSettingsView.as_view(), name="app-settings"),
]
