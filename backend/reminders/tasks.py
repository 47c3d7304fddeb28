"""
Disparo de la corrida diaria de recordatorios.

`trigger_reminders` decide con el gate si corresponde correr y, si es así, deja
el pipeline en un executor en segundo plano una vez confirmada la transacción
del request que lo disparó. El request vuelve enseguida; el resultado solo se
ve en la bitácora (ReminderRun / EmailLogEntry).
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from django.conf import settings
from django.db import connections, transaction
from django.utils import timezone

from common.models import AppSettings

from .dispatcher import dispatch
from .gate import RunOwnershipLost, acquire_run, fail_run
from .selector import select_eligible_debts

logger = logging.getLogger(__name__)


class BackgroundExecutor:
    """ThreadPoolExecutor que cierra las conexiones del hilo al terminar cada tarea."""

    def __init__(self, max_workers=1):
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="reminders")

    @staticmethod
    def _run(fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        finally:
            connections.close_all()

    def submit(self, fn, *args, **kwargs):
        return self._pool.submit(self._run, fn, *args, **kwargs)


_executor = None
_executor_lock = threading.Lock()


def get_executor():
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = BackgroundExecutor(max_workers=getattr(settings, "REMINDERS_MAX_WORKERS", 1))
    return _executor


def run_reminder_pipeline(run_date, *, sender=None, attempt=None):
    """
    Selector → Dispatcher para `run_date`. Un error fuera del loop de envíos
    (p. ej. la base no responde al seleccionar) deja la corrida en `failed`.
    Si la corrida fue retomada por otro intento, este termina sin tocarla.
    """
    try:
        conf = AppSettings.get_solo()
        candidates = select_eligible_debts(
            run_date,
            conf.reminder_lookahead_days,
            include_overdue=conf.reminder_include_overdue,
        )
        return dispatch(run_date, candidates, sender=sender, attempt=attempt)
    except RunOwnershipLost:
        logger.warning("reminder_run_ownership_lost", extra={"run_date": str(run_date), "attempt": attempt})
        return None
    except Exception as exc:
        logger.exception("reminder_run_failed", extra={"run_date": str(run_date)})
        fail_run(run_date, str(exc) or exc.__class__.__name__, attempt=attempt)
        return None


def trigger_reminders(today=None, *, trigger: str = "login", inline=None, executor=None) -> bool:
    """
    Devuelve True si esta llamada adquirió la corrida del día (y la puso en marcha),
    False si ya se hizo o está en curso.
    """
    today = today or timezone.localdate()
    attempt = acquire_run(today, trigger=trigger)
    if attempt is None:
        return False

    if inline is None:
        inline = getattr(settings, "REMINDERS_RUN_INLINE", False)
    if inline:
        run_reminder_pipeline(today, attempt=attempt)
        return True

    pool = executor or get_executor()
    transaction.on_commit(lambda: pool.submit(run_reminder_pipeline, today, attempt=attempt))
    logger.info("reminder_run_scheduled", extra={"run_date": str(today), "trigger": trigger})
    return True
