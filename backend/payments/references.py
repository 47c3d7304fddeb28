from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from common.models import AppSettings

from .exceptions import (
    AmountMismatch,
    DebtAlreadyPaid,
    DebtMismatch,
    DebtNotFound,
    ReferenceGenerationError,
)
from .models import Debt, PaymentStatusTransition, PendingPayment
from .reconciliation import expire_if_due

logger = logging.getLogger(__name__)

Status = PendingPayment.Status


def build_reference(student_id, concept_id) -> str:
    """PREFIJO-alumno-concepto-XXXXXXXX (8 hex en mayúsculas)."""
    prefix = getattr(settings, "SPEI_REFERENCE_PREFIX", "ALTUM")
    suffix = uuid.uuid4().hex[:8].upper()
    return f"{prefix}-{student_id}-{concept_id}-{suffix}"


def _as_amount(value) -> Decimal:
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError, TypeError):
        raise AmountMismatch("Monto inválido.")


def _mint(debt: Debt, amount: Decimal, now) -> PendingPayment:
    valid_days = AppSettings.get_solo().payment_reference_valid_days
    max_attempts = getattr(settings, "REFERENCE_MAX_ATTEMPTS", 5)

    for attempt in range(1, max_attempts + 1):
        reference = build_reference(debt.student_id, debt.concept_id)
        if PendingPayment.objects.filter(reference=reference).exists():
            logger.warning("payment_reference_collision", extra={"reference": reference, "attempt": attempt})
            continue
        try:
            # La restricción única es la última palabra si dos procesos eligen el mismo código
            with transaction.atomic():
                pending = PendingPayment.objects.create(
                    reference=reference,
                    debt=debt,
                    student_id=debt.student_id,
                    concept_id=debt.concept_id,
                    amount=amount,
                    bank_routing_id=settings.SPEI_CLABE,
                    bank_name=settings.SPEI_BANK_NAME,
                    account_holder=settings.SPEI_ACCOUNT_HOLDER,
                    expires_at=now + timedelta(days=valid_days),
                    status=Status.PENDING_CONFIRMATION,
                )
        except IntegrityError:
            logger.warning("payment_reference_collision", extra={"reference": reference, "attempt": attempt})
            continue
        PaymentStatusTransition.objects.create(
            pending_payment=pending,
            from_status="",
            to_status=Status.PENDING_CONFIRMATION,
            source="generator",
            detail={"amount": str(amount)},
        )
        logger.info(
            "payment_reference_created",
            extra={
                "reference": pending.reference,
                "debt_id": debt.id,
                "student_id": debt.student_id,
                "expires_at": pending.expires_at.isoformat(),
            },
        )
        return pending

    logger.error("payment_reference_exhausted", extra={"debt_id": debt.id, "attempts": max_attempts})
    raise ReferenceGenerationError()


def get_or_create_reference(debt_id, student_id, concept_id, amount, *, now=None) -> Tuple[PendingPayment, bool]:
    """
    Devuelve (referencia, creada).

    Una referencia pendiente y vigente (o ya confirmada) para el mismo adeudo se
    reutiliza tal cual; si la pendiente venció, se marca caducada y se emite otra.
    """
    now = now or timezone.now()
    amount = _as_amount(amount)

    with transaction.atomic():
        # Serializa la emisión por adeudo
        debt = Debt.objects.select_for_update().filter(pk=debt_id).first()
        if debt is None:
            raise DebtNotFound()
        if str(debt.student_id) != str(student_id) or str(debt.concept_id) != str(concept_id):
            raise DebtMismatch()
        if debt.paid:
            raise DebtAlreadyPaid()
        if amount != debt.amount:
            raise AmountMismatch(f"El monto debe ser {debt.amount}.")

        existing = PendingPayment.objects.filter(debt=debt, status__in=Status.OPEN).first()
        if existing is not None:
            if existing.status == Status.CONFIRMED or not existing.is_past_expiry(now):
                logger.info(
                    "payment_reference_reused",
                    extra={"reference": existing.reference, "debt_id": debt.id, "status": existing.status},
                )
                return existing, False
            expire_if_due(existing, now=now, source="generator")

        return _mint(debt, amount, now), True


def generate_reference(debt_id, student_id, concept_id, amount, *, now=None) -> PendingPayment:
    pending, _ = get_or_create_reference(debt_id, student_id, concept_id, amount, now=now)
    return pending
