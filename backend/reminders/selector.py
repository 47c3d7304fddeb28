from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List

from django.db.models import Prefetch
from django.utils import timezone

from payments.models import Debt
from students.models import GuardianLink

from .models import EmailLogEntry

logger = logging.getLogger(__name__)

OMIT_NO_GUARDIANS = "No tiene tutores registrados"
OMIT_NO_EMAILS = "Sus tutores no tienen correo registrado"
OMIT_RECENTLY_SENT = "Ya se envió un recordatorio en las últimas 24 horas"

RECENT_WINDOW = timedelta(hours=24)
HIGH_RISK_AFTER_DAYS = 15


@dataclass
class ReminderCandidate:
    debt: Debt
    contacts: List[str] = field(default_factory=list)
    omit_reason: str = ""
    days_overdue: int = 0

    @property
    def is_omitted(self) -> bool:
        return bool(self.omit_reason) or not self.contacts

    @property
    def is_overdue(self) -> bool:
        return self.days_overdue > 0

    @property
    def risk_level(self) -> str:
        if self.days_overdue <= 0:
            return "bajo"
        if self.days_overdue <= HIGH_RISK_AFTER_DAYS:
            return "medio"
        return "alto"

    @property
    def student_name(self) -> str:
        return self.debt.student.full_name

    @property
    def concept_name(self) -> str:
        return self.debt.concept.name


def _debts_in_window(today: date, lookahead_days: int, include_overdue: bool):
    qs = (
        Debt.objects.filter(
            paid=False,
            due_date__lte=today + timedelta(days=lookahead_days),
            student__is_active=True,
        )
        .select_related("student", "concept")
        .prefetch_related(
            Prefetch(
                "student__guardian_links",
                queryset=GuardianLink.objects.select_related("guardian"),
            )
        )
        .order_by("due_date", "id")
    )
    if not include_overdue:
        qs = qs.filter(due_date__gte=today)
    return qs


def _recently_sent_debt_ids(debt_ids, now) -> set:
    return set(
        EmailLogEntry.objects.filter(
            debt_id__in=debt_ids,
            outcome=EmailLogEntry.Outcome.SENT,
            sent_at__gte=now - RECENT_WINDOW,
        ).values_list("debt_id", flat=True)
    )


def select_eligible_debts(
    today: date,
    lookahead_days: int = 3,
    *,
    include_overdue: bool = False,
    now=None,
) -> List[ReminderCandidate]:
    """
    Adeudos impagos que vencen entre `today` y `today + lookahead_days`
    (y los vencidos si `include_overdue`).

    Un adeudo sin correos de tutores, o ya recordado en las últimas 24 horas,
    vuelve como candidato con `omit_reason` para que cuente como omitido en la
    corrida en lugar de desaparecer.
    """
    now = now or timezone.now()
    debts = list(_debts_in_window(today, lookahead_days, include_overdue))
    recent = _recently_sent_debt_ids([d.id for d in debts], now)

    # Un candidato por adeudo
    candidates = {}
    for debt in debts:
        if debt.id in candidates:
            continue
        guardians = debt.student.active_guardians()
        contacts = debt.student.contact_emails()
        omit_reason = ""
        if not guardians:
            omit_reason = OMIT_NO_GUARDIANS
        elif not contacts:
            omit_reason = OMIT_NO_EMAILS
        elif debt.id in recent:
            omit_reason = OMIT_RECENTLY_SENT
        candidates[debt.id] = ReminderCandidate(
            debt=debt,
            contacts=contacts,
            omit_reason=omit_reason,
            days_overdue=max((today - debt.due_date).days, 0),
        )

    result = list(candidates.values())
    logger.info(
        "reminder_candidates_selected",
        extra={
            "run_date": str(today),
            "lookahead_days": lookahead_days,
            "total": len(result),
            "omitted": sum(1 for c in result if c.is_omitted),
        },
    )
    return result
