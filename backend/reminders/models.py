from django.core.exceptions import ValidationError
from django.db import models

from payments.models import Debt
from students.models import Student


def format_summary(sent, errors, omitted):
    error_word = "error" if errors == 1 else "errores"
    return f"Recordatorios procesados: {sent} enviados, {errors} {error_word}, {omitted} omitidos."


class ReminderRun(models.Model):
    """Una fila por día: es la llave de idempotencia de la corrida diaria."""

    class Status:
        NOT_STARTED = "not_started"
        IN_PROGRESS = "in_progress"
        COMPLETED = "completed"
        FAILED = "failed"

        CHOICES = [
            (NOT_STARTED, "Sin iniciar"),
            (IN_PROGRESS, "En progreso"),
            (COMPLETED, "Completada"),
            (FAILED, "Fallida"),
        ]

    run_date = models.DateField(unique=True)
    status = models.CharField(max_length=12, choices=Status.CHOICES, default=Status.NOT_STARTED)
    success_count = models.PositiveIntegerField(default=0)
    error_count = models.PositiveIntegerField(default=0)
    omitted_count = models.PositiveIntegerField(default=0)
    trigger = models.CharField(max_length=20, blank=True)
    attempts = models.PositiveIntegerField(default=0)
    error_message = models.TextField(blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    heartbeat_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-run_date"]
        verbose_name = "Corrida de recordatorios"
        verbose_name_plural = "Corridas de recordatorios"

    def __str__(self):
        return f"{self.run_date} ({self.status})"

    @property
    def summary_message(self):
        return format_summary(self.success_count, self.error_count, self.omitted_count)


class EmailLogEntry(models.Model):
    """Resultado de un recordatorio (uno por adeudo y corrida). Solo inserción."""

    class Outcome:
        SENT = "enviado"
        ERROR = "error"
        OMITTED = "omitido"

        CHOICES = [
            (SENT, "Enviado"),
            (ERROR, "Error"),
            (OMITTED, "Omitido"),
        ]

    run = models.ForeignKey(ReminderRun, on_delete=models.PROTECT, related_name="entries")
    run_date = models.DateField(db_index=True)
    student = models.ForeignKey(Student, null=True, blank=True, on_delete=models.SET_NULL, related_name="reminder_entries")
    debt = models.ForeignKey(Debt, null=True, blank=True, on_delete=models.SET_NULL, related_name="reminder_entries")
    student_name = models.CharField(max_length=200, blank=True)
    concept_name = models.CharField(max_length=120, blank=True)
    due_date = models.DateField(null=True, blank=True)
    recipient_contacts = models.JSONField(default=list, blank=True)
    subject = models.CharField(max_length=200, blank=True)
    outcome = models.CharField(max_length=10, choices=Outcome.CHOICES, db_index=True)
    error_message = models.TextField(blank=True)
    sent_at = models.DateTimeField(db_index=True)

    class Meta:
        ordering = ["-sent_at", "-id"]
        verbose_name = "Registro de recordatorio"
        verbose_name_plural = "Bitácora de recordatorios"

    def __str__(self):
        return f"{self.run_date} {self.student_name} [{self.outcome}]"

    @property
    def recipients_display(self):
        return ", ".join(self.recipient_contacts or [])

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValidationError("La bitácora de recordatorios no admite modificaciones.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("La bitácora de recordatorios no admite borrados.")
