import logging
from decimal import Decimal

from django.conf import settings
from django.core.mail import send_mail
from django.utils.html import format_html

from common.models import AppSettings

logger = logging.getLogger(__name__)

RISK_LABELS = {
    "bajo": "Riesgo bajo",
    "medio": "Riesgo medio",
    "alto": "Riesgo alto",
}


def _money(amount) -> str:
    currency = getattr(settings, "PAYMENTS_CURRENCY", "MXN")
    return f"${Decimal(amount):,.2f} {currency}"


def build_subject(candidate) -> str:
    if candidate.is_overdue:
        return f"URGENTE: Pago vencido - {candidate.student_name}"
    return f"Recordatorio de pago próximo a vencer - {candidate.student_name}"


def build_message(candidate, school_name: str):
    """
    Devuelve (texto plano, html) del recordatorio.
    """
    debt = candidate.debt
    due = debt.due_date.strftime("%d/%m/%Y")
    if candidate.is_overdue:
        status_line = f"El pago venció el {due} ({candidate.days_overdue} días de atraso)."
    else:
        status_line = f"El pago vence el {due}."

    text = "\n".join(
        [
            "Estimado tutor:",
            "",
            f"Le recordamos el pago pendiente de {candidate.student_name}.",
            f"Concepto: {candidate.concept_name}",
            f"Monto: {_money(debt.amount)}",
            status_line,
            f"Nivel de riesgo: {RISK_LABELS[candidate.risk_level]}",
            "",
            "Puede generar su referencia SPEI desde el portal de pagos.",
            "Si ya realizó el pago, ignore este mensaje.",
            "",
            school_name,
        ]
    )
    html = format_html(
        "<p>Estimado tutor:</p>"
        "<p>Le recordamos el pago pendiente de <strong>{}</strong>.</p>"
        "<ul><li>Concepto: {}</li><li>Monto: {}</li><li>{}</li><li>Nivel de riesgo: {}</li></ul>"
        "<p>Puede generar su referencia SPEI desde el portal de pagos. "
        "Si ya realizó el pago, ignore este mensaje.</p>"
        "<p>{}</p>",
        candidate.student_name,
        candidate.concept_name,
        _money(debt.amount),
        status_line,
        RISK_LABELS[candidate.risk_level],
        school_name,
    )
    return text, html


def send_reminder_email(candidate, subject=None):
    """
    Envía el recordatorio a todos los tutores del candidato en un solo correo.
    Las excepciones del backend de correo se propagan: el dispatcher las registra.
    """
    school_name = AppSettings.get_solo().school_name
    subject = subject or build_subject(candidate)
    text, html = build_message(candidate, school_name)
    send_mail(
        subject,
        text,
        None,  # usa DEFAULT_FROM_EMAIL
        candidate.contacts,
        fail_silently=False,
        html_message=html,
    )
    logger.info(
        "reminder_email_sent",
        extra={"debt_id": candidate.debt.id, "recipients": len(candidate.contacts)},
    )
