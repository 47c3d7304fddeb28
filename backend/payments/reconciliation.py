"""
Ciclo de vida de una referencia SPEI.

    pending_confirmation -> confirmed   (confirmación bancaria)
    pending_confirmation -> expired     (venció sin confirmación, se evalúa al leer)
    confirmed            -> paid        (liquidación: se crea el Payment)

`expired` y `paid` son terminales. `confirmed` no caduca: el dinero ya se vio.
Cada cambio es un UPDATE condicionado al estado de origen más una fila en
PaymentStatusTransition, dentro de la misma transacción.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from .exceptions import InvalidStatusTransition, ReconciliationConflict, ReferenceNotFound
from .models import Debt, Payment, PaymentStatusTransition, PendingPayment
from .notifications import send_receipt_email
from .receipts import get_receipt_issuer, ReceiptIssuerError

logger = logging.getLogger(__name__)

Status = PendingPayment.Status


def _get(reference: str, *, lock: bool = False) -> PendingPayment:
    qs = PendingPayment.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(reference=(reference or "").strip())
    except PendingPayment.DoesNotExist:
        raise ReferenceNotFound()


def _to_decimal(value) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise ReconciliationConflict("El monto de la confirmación no es válido.")


def transition(
    pending: PendingPayment,
    to_status: str,
    *,
    source: str,
    now=None,
    detail: dict | None = None,
    **fields,
) -> bool:
    """
    Mueve `pending` a `to_status` si la regla lo permite.

    Devuelve False si otro proceso cambió el estado antes (el UPDATE no tocó filas);
    en ese caso `pending` queda refrescado con el estado real.
    """
    now = now or timezone.now()
    from_status = pending.status
    if not pending.can_transition(to_status):
        raise InvalidStatusTransition(from_status, to_status)

    with transaction.atomic():
        updated = PendingPayment.objects.filter(pk=pending.pk, status=from_status).update(
            status=to_status,
            updated_at=now,
            **fields,
        )
        if not updated:
            pending.refresh_from_db()
            return False
        PaymentStatusTransition.objects.create(
            pending_payment=pending,
            from_status=from_status,
            to_status=to_status,
            source=source,
            detail=detail or {},
        )
    pending.refresh_from_db()
    logger.info(
        "payment_status_transition",
        extra={
            "reference": pending.reference,
            "from_status": from_status,
            "to_status": to_status,
            "source": source,
        },
    )
    return True


def expire_if_due(pending: PendingPayment, *, now=None, source: str = "lazy_expiry") -> PendingPayment:
    now = now or timezone.now()
    if pending.is_past_expiry(now):
        transition(pending, Status.EXPIRED, source=source, now=now, expired_at=now)
    return pending


def find_reference(reference: str) -> PendingPayment:
    """Lectura sin efectos: no aplica la caducidad perezosa."""
    return _get(reference)


def get_status(reference: str, *, now=None) -> PendingPayment:
    """
    Lectura del estado. Si la referencia sigue pendiente y ya venció, primero la
    pasa a `expired`.
    """
    pending = _get(reference)
    return expire_if_due(pending, now=now)


def _replayed(pending: PendingPayment, transaction_id: str) -> PendingPayment:
    if pending.bank_transaction_id == transaction_id:
        return pending
    logger.warning(
        "payment_reconcile_conflict",
        extra={
            "reference": pending.reference,
            "status": pending.status,
            "known_transaction_id": pending.bank_transaction_id,
            "incoming_transaction_id": transaction_id,
        },
    )
    raise ReconciliationConflict("La referencia ya fue confirmada con otra transacción.")


def reconcile(reference: str, proof: dict, *, now=None, source: str = "bank") -> PendingPayment:
    """
    Aplica una confirmación bancaria `{transaction_id, amount?, paid_at?}`.

    Repetir la misma confirmación devuelve el registro sin efectos. Una
    confirmación que contradice el estado (otra transacción, otro monto, o una
    referencia ya caducada) se rechaza con ReconciliationConflict.
    """
    now = now or timezone.now()
    proof = proof or {}
    transaction_id = str(proof.get("transaction_id") or "").strip()
    if not transaction_id:
        raise ReconciliationConflict("La confirmación no trae transaction_id.")
    proof_amount = _to_decimal(proof.get("amount"))
    paid_at = proof.get("paid_at") or now

    # La caducidad se persiste aunque luego se rechace la confirmación
    get_status(reference, now=now)

    with transaction.atomic():
        pending = _get(reference, lock=True)
        if pending.status in (Status.CONFIRMED, Status.PAID):
            return _replayed(pending, transaction_id)
        if pending.status == Status.EXPIRED:
            logger.warning(
                "payment_reconcile_expired_reference",
                extra={"reference": pending.reference, "transaction_id": transaction_id},
            )
            raise ReconciliationConflict(
                "La referencia caducó antes de recibir la confirmación. Requiere revisión manual."
            )
        if proof_amount is not None and proof_amount != pending.amount:
            logger.warning(
                "payment_reconcile_amount_mismatch",
                extra={
                    "reference": pending.reference,
                    "expected": str(pending.amount),
                    "received": str(proof_amount),
                },
            )
            raise ReconciliationConflict("El monto confirmado no coincide con la referencia.")

        moved = transition(
            pending,
            Status.CONFIRMED,
            source=source,
            now=now,
            detail={"transaction_id": transaction_id, "amount": str(proof_amount or pending.amount)},
            bank_transaction_id=transaction_id,
            confirmed_amount=proof_amount or pending.amount,
            confirmed_at=paid_at,
        )
        if not moved:
            return _replayed(pending, transaction_id)
    return pending


def settle(reference: str, *, now=None, source: str = "admin", settled_by=None) -> PendingPayment:
    """
    confirmed -> paid: crea el Payment, marca el adeudo pagado (una sola vez) y
    pide el comprobante. Liquidar una referencia ya pagada no hace nada.
    """
    now = now or timezone.now()
    get_status(reference, now=now)

    with transaction.atomic():
        pending = _get(reference, lock=True)
        if pending.status == Status.PAID:
            return pending
        if pending.status == Status.EXPIRED:
            raise ReconciliationConflict("La referencia caducó; no puede liquidarse sin revisión.")
        if not pending.can_transition(Status.PAID):
            raise InvalidStatusTransition(pending.status, Status.PAID)

        marked = Debt.objects.filter(pk=pending.debt_id, paid=False).update(paid=True, paid_at=now)
        if not marked:
            logger.warning(
                "payment_settle_debt_already_paid",
                extra={"reference": pending.reference, "debt_id": pending.debt_id},
            )
            raise ReconciliationConflict("El adeudo ya figura como pagado por otro medio.")

        payment = Payment.objects.create(
            student_id=pending.student_id,
            concept_id=pending.concept_id,
            debt_id=pending.debt_id,
            amount=pending.confirmed_amount or pending.amount,
            method=Payment.METHOD_SPEI,
            reference=pending.reference,
            paid_at=pending.confirmed_at or now,
        )
        detail = {"payment_id": payment.id}
        if settled_by is not None:
            detail["settled_by"] = getattr(settled_by, "pk", settled_by)
        moved = transition(
            pending,
            Status.PAID,
            source=source,
            now=now,
            detail=detail,
            payment=payment,
            paid_at=now,
        )
        if not moved:
            # Con el lock tomado no debería pasar; deshacemos el Payment y el adeudo.
            raise InvalidStatusTransition(pending.status, Status.PAID)

    request_receipt(pending.reference)
    pending.refresh_from_db()
    return pending


def request_receipt(reference: str) -> str | None:
    """
    Devuelve el comprobante de una referencia pagada, pidiéndolo al emisor solo
    la primera vez. Si el emisor falla se devuelve None y se reintenta en la
    próxima llamada; la liquidación no se revierte.
    Cuando el folio se guarda por primera vez se avisa a los tutores por correo.
    """
    pending = _get(reference)
    if pending.status != Status.PAID:
        raise InvalidStatusTransition(
            detail="El comprobante solo está disponible para referencias pagadas."
        )
    if pending.receipt_handle:
        return pending.receipt_handle

    try:
        handle = get_receipt_issuer().issue(pending.payment)
    except ReceiptIssuerError as exc:
        logger.error(
            "payment_receipt_issue_failed",
            extra={"reference": pending.reference, "payment_id": pending.payment_id, "error": str(exc)},
        )
        return None

    # Si otro request ganó la carrera, nos quedamos con su comprobante
    stored = PendingPayment.objects.filter(pk=pending.pk, receipt_handle="").update(receipt_handle=handle)
    pending.refresh_from_db(fields=["receipt_handle"])
    if stored:
        send_receipt_email(pending)
    logger.info(
        "payment_receipt_cached",
        extra={"reference": pending.reference, "receipt_handle": pending.receipt_handle},
    )
    return pending.receipt_handle
