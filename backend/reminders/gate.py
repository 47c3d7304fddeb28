"""
Gate de la corrida diaria: a lo sumo un pipeline de recordatorios por fecha.

La adquisición es una escritura condicionada sobre `run_date` (único), nunca un
leer-y-después-escribir. Cada adquisición incrementa `attempts`, que funciona
como token del dueño: latido, cierre y fallo solo aplican si el token coincide.

Una corrida `failed` puede retomarse el mismo día; `completed` es definitiva.
Una `in_progress` solo se retoma si su último latido es más viejo que
`reminder_stale_after_minutes` (proceso caído); el pipeline anterior, si
revive, pierde el token y se detiene en su próximo latido.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from common.models import AppSettings

from .models import ReminderRun

logger = logging.getLogger(__name__)

Status = ReminderRun.Status


class RunOwnershipLost(Exception):
    """La corrida fue retomada por otro proceso."""


def _owned(run_date, attempt):
    qs = ReminderRun.objects.filter(run_date=run_date, status=Status.IN_PROGRESS)
    if attempt is not None:
        qs = qs.filter(attempts=attempt)
    return qs


def acquire_run(today, *, trigger: str = "login", now=None) -> Optional[int]:
    """
    Devuelve el número de intento (token) si esta llamada se quedó con la
    corrida de `today`, o None si ya se hizo o está en curso.
    """
    now = now or timezone.now()
    with transaction.atomic():
        run, created = ReminderRun.objects.get_or_create(
            run_date=today,
            defaults={
                "status": Status.IN_PROGRESS,
                "started_at": now,
                "heartbeat_at": now,
                "trigger": trigger,
                "attempts": 1,
            },
        )
    if created:
        logger.info("reminder_run_acquired", extra={"run_date": str(today), "trigger": trigger})
        return run.attempts

    stale_minutes = AppSettings.get_solo().reminder_stale_after_minutes
    stale_before = now - timedelta(minutes=stale_minutes)
    stale = Q(status=Status.IN_PROGRESS) & (
        Q(heartbeat_at__lt=stale_before) | Q(heartbeat_at__isnull=True, started_at__lt=stale_before)
    )
    reacquirable = Q(status__in=[Status.NOT_STARTED, Status.FAILED]) | stale
    updated = ReminderRun.objects.filter(reacquirable, pk=run.pk, attempts=run.attempts).update(
        status=Status.IN_PROGRESS,
        started_at=now,
        heartbeat_at=now,
        finished_at=None,
        trigger=trigger,
        attempts=F("attempts") + 1,
        success_count=0,
        error_count=0,
        omitted_count=0,
        error_message="",
    )
    if updated:
        logger.warning(
            "reminder_run_reacquired",
            extra={"run_date": str(today), "previous_status": run.status, "trigger": trigger},
        )
        return run.attempts + 1

    logger.info("reminder_run_already_handled", extra={"run_date": str(today), "status": run.status})
    return None


def try_acquire_run(today, *, trigger: str = "login", now=None) -> bool:
    return acquire_run(today, trigger=trigger, now=now) is not None


def heartbeat(run_date, attempt=None, *, now=None) -> None:
    """Marca la corrida como viva. Si otro proceso la retomó, levanta RunOwnershipLost."""
    now = now or timezone.now()
    if not _owned(run_date, attempt).update(heartbeat_at=now):
        raise RunOwnershipLost(f"La corrida del {run_date} ya no pertenece al intento {attempt}.")


def complete_run(run_date, summary, *, attempt=None, now=None) -> bool:
    now = now or timezone.now()
    updated = _owned(run_date, attempt).update(
        status=Status.COMPLETED,
        success_count=summary.success_count,
        error_count=summary.error_count,
        omitted_count=summary.omitted_count,
        heartbeat_at=now,
        finished_at=now,
    )
    if not updated:
        logger.warning("reminder_run_complete_skipped", extra={"run_date": str(run_date), "attempt": attempt})
    return bool(updated)


def fail_run(run_date, error: str, *, attempt=None, now=None) -> bool:
    now = now or timezone.now()
    updated = _owned(run_date, attempt).update(
        status=Status.FAILED,
        error_message=(error or "")[:2000],
        finished_at=now,
    )
    return bool(updated)
