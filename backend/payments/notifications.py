import logging
from decimal import Decimal

from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone
from django.utils.html import format_html

from common.models import AppSettings

logger = logging.getLogger(__name__)


def _money(amount) -> str:
    currency = getattr(settings, "PAYMENTS_CURRENCY", "MXN")
    return f"${Decimal(amount):,.2f} {currency}"


def send_receipt_email(pending) -> bool:
    """
    Avisa a los tutores del alumno que el pago quedó registrado, con el folio
    del comprobante. Un fallo de correo se registra y no afecta la liquidación.
    """
    student = pending.student
    recipients = student.contact_emails()
    if not recipients:
        logger.info("payment_receipt_email_skipped", extra={"reference": pending.reference, "reason": "no_contacts"})
        return False

    payment = pending.payment
    school_name = AppSettings.get_solo().school_name
    paid_on = timezone.localtime(payment.paid_at).strftime("%d/%m/%Y")
    subject = f"Comprobante de pago - {student.full_name}"
    text = "\n".join(
        [
            "Estimado tutor:",
            "",
            f"Registramos el pago de {student.full_name}.",
            f"Concepto: {pending.concept.name}",
            f"Monto: {_money(payment.amount)}",
            f"Fecha de pago: {paid_on}",
            f"Referencia SPEI: {pending.reference}",
            f"Folio del comprobante: {pending.receipt_handle}",
            "",
            school_name,
        ]
    )
    html = format_html(
        "<p>Estimado tutor:</p>"
        "<p>Registramos el pago de <strong>{}</strong>.</p>"
        "<ul><li>Concepto: {}</li><li>Monto: {}</li><li>Fecha de pago: {}</li>"
        "<li>Referencia SPEI: {}</li><li>Folio del comprobante: {}</li></ul>"
        "<p>{}</p>",
        student.full_name,
        pending.concept.name,
        _money(payment.amount),
        paid_on,
        pending.reference,
        pending.receipt_handle,
        school_name,
    )
    try:
        send_mail(subject, text, None, recipients, fail_silently=False, html_message=html)
    except Exception as exc:
        logger.error(
            "payment_receipt_email_failed",
            extra={"reference": pending.reference, "error": str(exc)},
        )
        return False
    logger.info(
        "payment_receipt_email_sent",
        extra={"reference": pending.reference, "recipients": len(recipients)},
    )
    return True
