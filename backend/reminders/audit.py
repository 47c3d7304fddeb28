from __future__ import annotations

from datetime import date
from typing import Iterable, Iterator, Optional

from django.db.models import Q, QuerySet
from django.utils import timezone

from .models import EmailLogEntry, ReminderRun

EXPORT_HEADER = [
    "Fecha de envío",
    "Alumno",
    "Destinatarios",
    "Concepto",
    "Fecha límite",
    "Estado",
    "Mensaje de error",
]


def list_entries(
    *,
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
) -> QuerySet:
    """
    Bitácora filtrada. Devuelve un QuerySet: nada se lee hasta iterarlo.
    """
    qs = EmailLogEntry.objects.all().order_by("-sent_at", "-id")
    if status:
        qs = qs.filter(outcome=status)
    if date_from:
        qs = qs.filter(run_date__gte=date_from)
    if date_to:
        qs = qs.filter(run_date__lte=date_to)
    if search:
        term = search.strip()
        qs = qs.filter(
            Q(student_name__icontains=term)
            | Q(concept_name__icontains=term)
            | Q(recipient_contacts__icontains=term)
            | Q(subject__icontains=term)
        )
    return qs


def get_run(run_date) -> ReminderRun:
    return ReminderRun.objects.get(run_date=run_date)


def _fmt_datetime(value):
    if not value:
        return ""
    return timezone.localtime(value).strftime("%d/%m/%Y %H:%M")


def export_rows(entries: Iterable[EmailLogEntry]) -> Iterator[list]:
    yield EXPORT_HEADER
    for entry in entries:
        yield [
            _fmt_datetime(entry.sent_at),
            entry.student_name,
            entry.recipients_display,
            entry.concept_name,
            entry.due_date.strftime("%d/%m/%Y") if entry.due_date else "",
            entry.get_outcome_display(),
            entry.error_message,
        ]
