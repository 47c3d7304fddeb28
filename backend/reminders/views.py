import csv
import logging

from django.http import Http404, StreamingHttpResponse
from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import generics, permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from common.models import AppSettings

from . import audit
from .models import ReminderRun
from .selector import select_eligible_debts
from .serializers import (
    EmailLogEntrySerializer,
    HistoryFilterSerializer,
    ReminderRunSerializer,
    UpcomingReminderSerializer,
)
from .tasks import trigger_reminders

logger = logging.getLogger(__name__)


class Echo:
    """Buffer mínimo para csv.writer: devuelve la línea en vez de guardarla."""

    def write(self, value):
        return value


def _filtered_entries(request):
    filters = HistoryFilterSerializer(data=request.query_params)
    filters.is_valid(raise_exception=True)
    return audit.list_entries(**filters.validated_data)


class TriggerRemindersView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request):
        triggered = trigger_reminders(trigger="manual")
        return Response({"triggered": triggered})


class ReminderHistoryView(generics.ListAPIView):
    permission_classes = [permissions.IsAdminUser]
    serializer_class = EmailLogEntrySerializer

    def get_queryset(self):
        return _filtered_entries(self.request)


class ReminderHistoryExportView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def get(self, request):
        entries = _filtered_entries(request).iterator()
        writer = csv.writer(Echo())
        filename = f"recordatorios-pagos-{timezone.localdate().isoformat()}.csv"
        response = StreamingHttpResponse(
            (writer.writerow(row) for row in audit.export_rows(entries)),
            content_type="text/csv; charset=utf-8",
        )
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response


class ReminderRunView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def get(self, request, run_date):
        day = parse_date(run_date)
        if day is None:
            raise Http404("Fecha inválida.")
        try:
            run = audit.get_run(day)
        except ReminderRun.DoesNotExist:
            raise Http404("No hubo corrida de recordatorios en esa fecha.")
        return Response(ReminderRunSerializer(run).data)


class UpcomingRemindersView(APIView):
    """Vista previa de lo que enviaría la corrida de hoy (no envía nada)."""
    permission_classes = [permissions.IsAdminUser]

    def get(self, request):
        conf = AppSettings.get_solo()
        candidates = select_eligible_debts(
            timezone.localdate(),
            conf.reminder_lookahead_days,
            include_overdue=conf.reminder_include_overdue,
        )
        return Response(UpcomingReminderSerializer(candidates, many=True).data)
