from django.urls import path
from .views import (
    ReminderHistoryExportView,
    ReminderHistoryView,
    ReminderRunView,
    TriggerRemindersView,
    UpcomingRemindersView,
)

urlpatterns = [
    path("trigger", TriggerRemindersView.as_view(), name="trigger-reminders"),
    path("history", ReminderHistoryView.as_view(), name="reminder-history"),
    path("history/export", ReminderHistoryExportView.as_view(), name="reminder-history-export"),
    path("runs/<str:run_date>", ReminderRunView.as_view(), name="reminder-run"),
    path("upcoming", UpcomingRemindersView.as_view(), name="reminders-upcoming"),
]
