from django.conf import settings
from django.db import models


def default_school_name():
    return getattr(settings, "SCHOOL_NAME", "Colegio Altum")


class AppSettings(models.Model):
    """
    Parámetros operativos editables desde el panel (una sola fila).
    """

    school_name = models.CharField("Nombre de la escuela", max_length=120, default=default_school_name)
    payment_reference_valid_days = models.PositiveIntegerField(
        "Vigencia de la referencia SPEI (días)",
        default=3,
        help_text="Días hasta que una referencia sin confirmar pasa a caducada.",
    )
    status_poll_interval_seconds = models.PositiveIntegerField(
        "Intervalo de consulta de estado (segundos)",
        default=30,
    )
    reminder_lookahead_days = models.PositiveIntegerField(
        "Anticipación de recordatorios (días)",
        default=3,
        help_text="Se recuerdan adeudos que vencen entre hoy y hoy + N días.",
    )
    reminder_include_overdue = models.BooleanField(
        "Recordar adeudos vencidos",
        default=False,
    )
    reminder_stale_after_minutes = models.PositiveIntegerField(
        "Corrida colgada tras (minutos)",
        default=60,
        help_text="Una corrida en progreso más vieja que esto puede retomarse.",
    )
    singleton = models.BooleanField(default=True, editable=False, unique=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Configuración"
        verbose_name_plural = "Configuración"

    def __str__(self):
        return "Configuración general"

    @classmethod
    def get_solo(cls):
        obj, _ = cls.objects.get_or_create(singleton=True)
        return obj
