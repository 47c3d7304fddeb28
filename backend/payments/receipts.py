"""
Emisión de comprobantes. El core solo pide un identificador (handle) y lo guarda;
el armado del comprobante queda del lado del emisor configurado en
PAYMENTS_RECEIPT_ISSUER.
"""
import logging

import requests
from django.conf import settings
from django.utils.module_loading import import_string

from .models import Receipt

logger = logging.getLogger(__name__)


class ReceiptIssuerError(Exception):
    pass


class LocalReceiptIssuer:
    """Registra el comprobante en la base y usa un folio correlativo."""

    def issue(self, payment):
        receipt, created = Receipt.objects.get_or_create(
            payment=payment,
            defaults={"handle": f"REC-{payment.id:06d}"},
        )
        if created:
            logger.info("receipt_issued", extra={"payment_id": payment.id, "handle": receipt.handle})
        return receipt.handle


class HttpReceiptIssuer:
    """
    Pide el comprobante a un servicio externo:
      POST RECEIPT_ISSUER_URL {payment_id, reference, amount, paid_at} -> {"handle": "..."}
    """

    def __init__(self, url=None, token=None, timeout=None):
        self.url = url or getattr(settings, "RECEIPT_ISSUER_URL", "")
        self.token = token or getattr(settings, "RECEIPT_ISSUER_TOKEN", "")
        self.timeout = timeout or getattr(settings, "RECEIPT_ISSUER_TIMEOUT", 10)

    def _headers(self):
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def issue(self, payment):
        if not self.url:
            raise ReceiptIssuerError("RECEIPT_ISSUER_URL no configurado")
        payload = {
            "payment_id": payment.id,
            "reference": payment.reference,
            "amount": str(payment.amount),
            "paid_at": payment.paid_at.isoformat(),
        }
        try:
            resp = requests.post(self.url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise ReceiptIssuerError(f"No se pudo contactar al emisor de comprobantes: {exc}") from exc
        if resp.status_code >= 300:
            raise ReceiptIssuerError(f"El emisor respondió {resp.status_code}: {resp.text}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise ReceiptIssuerError("Respuesta del emisor no es JSON") from exc
        if not isinstance(body, dict):
            raise ReceiptIssuerError("Respuesta del emisor no es un objeto JSON")
        handle = body.get("handle")
        if not handle:
            raise ReceiptIssuerError("El emisor no devolvió handle")
        return str(handle)


def get_receipt_issuer():
    path = getattr(settings, "PAYMENTS_RECEIPT_ISSUER", "payments.receipts.LocalReceiptIssuer")
    return import_string(path)()
