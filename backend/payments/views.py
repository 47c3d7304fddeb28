import logging

from django.conf import settings
from django.db import transaction
from django.utils.crypto import constant_time_compare
from rest_framework import permissions, status
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from common.models import AppSettings
from students.models import GuardianLink

from .models import BankConfirmation, PendingPayment
from .exceptions import ReferenceNotFound
from .reconciliation import find_reference, get_status, reconcile, request_receipt, settle
from .references import get_or_create_reference
from .serializers import (
    BankConfirmationProofSerializer,
    GenerateReferenceSerializer,
    IssuedReferenceSerializer,
    PaymentStatusSerializer,
    SpeiWebhookSerializer,
)

logger = logging.getLogger(__name__)


def _ensure_student_access(user, student_id):
    if user.is_staff:
        return
    if not GuardianLink.objects.filter(guardian=user, student_id=student_id).exists():
        raise PermissionDenied("No tenés acceso a los pagos de este alumno.")


def _ensure_reference_access(user, reference):
    """
    Busca la referencia sin modificarla y valida que el usuario la pueda ver.
    Para quien no es tutor del alumno responde igual que si no existiera.
    """
    pending = find_reference(reference)
    if not user.is_staff and not GuardianLink.objects.filter(guardian=user, student_id=pending.student_id).exists():
        raise ReferenceNotFound()
    return pending


def _status_payload(pending):
    ctx = {"poll_interval_seconds": AppSettings.get_solo().status_poll_interval_seconds}
    return PaymentStatusSerializer(pending, context=ctx).data


def _authorize_spei_webhook(request):
    """
    Valida el webhook del banco con el secreto compartido SPEI_WEBHOOK_SECRET.
    Acepta:
      - Header `X-Spei-Signature: <token>`
      - Authorization: Bearer <token>
    """
    secret = (getattr(settings, "SPEI_WEBHOOK_SECRET", "") or "").strip()
    if not secret:
        if settings.DEBUG:
            return True, "SPEI_WEBHOOK_SECRET ausente; permitido por DEBUG."
        return False, "SPEI_WEBHOOK_SECRET requerido."

    bearer = (request.headers.get("Authorization") or "").replace("Bearer", "").strip()
    incoming = (request.headers.get("X-Spei-Signature") or bearer or "").strip()

    if not incoming:
        return False, "Falta firma del webhook"
    if not constant_time_compare(incoming, secret):
        return False, "Firma inválida"
    return True, ""


class GenerateReferenceView(APIView):
    """
    POST → emite (o reutiliza) la referencia SPEI de un adeudo.
    GET  → referencias de un alumno (?student_id=).
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        student_id = request.query_params.get("student_id")
        if not student_id or not str(student_id).isdigit():
            return Response({"detail": "student_id requerido."}, status=status.HTTP_400_BAD_REQUEST)
        _ensure_student_access(request.user, student_id)
        qs = PendingPayment.objects.filter(student_id=student_id).order_by("-created_at")
        return Response([_status_payload(p) for p in qs])

    def post(self, request):
        serializer = GenerateReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        _ensure_student_access(request.user, data["student_id"])

        pending, created = get_or_create_reference(
            data["debt_id"],
            data["student_id"],
            data["concept_id"],
            data["amount"],
        )
        return Response(
            IssuedReferenceSerializer(pending).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class PaymentStatusView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    throttle_scope = "payment_status"

    def get(self, request, reference):
        _ensure_reference_access(request.user, reference)
        pending = get_status(reference)
        return Response(_status_payload(pending))


class ReconcileView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request, reference):
        serializer = BankConfirmationProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        pending = reconcile(reference, serializer.validated_data, source="admin")
        return Response(_status_payload(pending))


class SettleView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request, reference):
        pending = settle(reference, source="admin", settled_by=request.user)
        return Response(_status_payload(pending))


class ReceiptView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, reference):
        pending = _ensure_reference_access(request.user, reference)
        handle = request_receipt(reference)
        if handle is None:
            return Response(
                {"reference": pending.reference, "receipt_handle": None, "detail": "Comprobante en proceso. Reintentá en unos minutos."},
                status=status.HTTP_202_ACCEPTED,
            )
        return Response({"reference": pending.reference, "receipt_handle": handle})


class SpeiWebhookView(APIView):
    """
    Confirmación del banco: {reference, transaction_id, amount, paid_at?}.
    Un reenvío con el mismo transaction_id se reconoce sin reprocesar.
    """
    authentication_classes = []
    permission_classes = [permissions.AllowAny]
    throttle_scope = "webhook"

    def post(self, request):
        ok, reason = _authorize_spei_webhook(request)
        if not ok:
            logger.warning("spei_webhook_unauthorized", extra={"reason": reason})
            return Response({"detail": reason}, status=status.HTTP_401_UNAUTHORIZED)

        serializer = SpeiWebhookSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        provider = getattr(settings, "SPEI_PROVIDER_NAME", "spei")
        logger.info(
            "spei_webhook_received",
            extra={"reference": data["reference"], "transaction_id": data["transaction_id"], "amount": str(data.get("amount"))},
        )

        # La caducidad perezosa se persiste aunque la confirmación se rechace
        get_status(data["reference"])

        with transaction.atomic():
            _, created = BankConfirmation.objects.get_or_create(
                provider=provider,
                transaction_id=data["transaction_id"],
                defaults={
                    "reference": data["reference"],
                    "amount": data.get("amount"),
                    "raw_payload": {k: str(v) for k, v in request.data.items()},
                },
            )
            if not created:
                logger.info("spei_webhook_duplicate", extra={"transaction_id": data["transaction_id"]})
                pending = get_status(data["reference"])
                payload = _status_payload(pending)
                payload["duplicate"] = True
                return Response(payload)

            pending = reconcile(data["reference"], data, source="bank_webhook")
            if getattr(settings, "SPEI_AUTO_SETTLE", False):
                pending = settle(data["reference"], source="bank_webhook")

        return Response(_status_payload(pending))

