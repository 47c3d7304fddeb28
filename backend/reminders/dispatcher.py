from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from django.utils import timezone

from .gate import complete_run, heartbeat
from .models import EmailLogEntry, ReminderRun, format_summary
from .notifications import build_subject, send_reminder_email

logger = logging.getLogger(__name__)

Outcome = EmailLogEntry.Outcome


@dataclass
class DispatchSummary:
    success_count: int = 0
    error_count: int = 0
    omitted_count: int = 0
    sent_to: List[str] = field(default_factory=list)
    error_details: List[dict] = field(default_factory=list)
    omitted_details: List[dict] = field(default_factory=list)

    @property
    def message(self) -> str:
        return format_summary(self.success_count, self.error_count, self.omitted_count)

    def as_dict(self) -> dict:
        return {
            "success_count": self.success_count,
            "error_count": self.error_count,
            "omitted_count": self.omitted_count,
            "sent_to": self.sent_to,
            "error_details": self.error_details,
            "omitted_details": self.omitted_details,
            "message": self.message,
        }


def _log_entry(run, candidate, outcome, subject="", error_message=""):
    debt = candidate.debt
    return EmailLogEntry.objects.create(
        run=run,
        run_date=run.run_date,
        student_id=debt.student_id,
        debt=debt,
        student_name=candidate.student_name,
        concept_name=candidate.concept_name,
        due_date=debt.due_date,
        recipient_contacts=list(candidate.contacts),
        subject=subject,
        outcome=outcome,
        error_message=error_message,
        sent_at=timezone.now(),
    )


def dispatch(
    run_date,
    candidates: Iterable,
    *,
    sender: Optional[Callable] = None,
    attempt: Optional[int] = None,
) -> DispatchSummary:
    """
    Envía un recordatorio por candidato y registra cada resultado.

    Un envío fallido se anota como `error` y el lote sigue. Al terminar el
    recorrido la corrida queda `completed` con los totales, aunque todos los
    envíos hayan fallado.

    Antes de cada candidato se renueva el latido de la corrida; si otro proceso
    la retomó, RunOwnershipLost corta el lote sin enviar nada más.
    """
    sender = sender or send_reminder_email
    run = ReminderRun.objects.get(run_date=run_date)
    summary = DispatchSummary()

    for candidate in candidates:
        heartbeat(run_date, attempt)
        subject = build_subject(candidate)
        detail = {
            "debt_id": candidate.debt.id,
            "student": candidate.student_name,
            "concept": candidate.concept_name,
        }

        if candidate.is_omitted:
            reason = candidate.omit_reason or "Sin contactos válidos"
            _log_entry(run, candidate, Outcome.OMITTED, subject, reason)
            summary.omitted_count += 1
            summary.omitted_details.append({**detail, "reason": reason})
            continue

        try:
            sender(candidate, subject)
        except Exception as exc:
            logger.warning(
                "reminder_send_failed",
                extra={"debt_id": candidate.debt.id, "error": str(exc)},
            )
            _log_entry(run, candidate, Outcome.ERROR, subject, str(exc) or exc.__class__.__name__)
            summary.error_count += 1
            summary.error_details.append({**detail, "error": str(exc)})
            continue

        _log_entry(run, candidate, Outcome.SENT, subject)
        summary.success_count += 1
        summary.sent_to.extend(candidate.contacts)

    complete_run(run_date, summary, attempt=attempt)
    logger.info(
        "reminder_run_completed",
        extra={
            "run_date": str(run_date),
            "success_count": summary.success_count,
            "error_count": summary.error_count,
            "omitted_count": summary.omitted_count,
        },
    )
    return summary
