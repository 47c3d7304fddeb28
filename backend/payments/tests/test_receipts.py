from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import requests
from django.test import SimpleTestCase, override_settings

from payments.receipts import HttpReceiptIssuer, LocalReceiptIssuer, ReceiptIssuerError, get_receipt_issuer


def _payment():
    return SimpleNamespace(
        id=7,
        reference="ALTUM-0001-0002-ABCDEF",
        amount=Decimal("500.00"),
        paid_at=datetime(2026, 3, 1, 12, 0, tzinfo=dt_timezone.utc),
    )


def _response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = "error"
    resp.json.return_value = payload
    return resp


class HttpReceiptIssuerTests(SimpleTestCase):
    @patch("payments.receipts.requests.post")
    def test_returns_handle_and_sends_token(self, post):
        post.return_value = _response(201, {"handle": "CFDI-99"})
        issuer = HttpReceiptIssuer(url="https://recibos.test/emitir", token="tok", timeout=3)
        self.assertEqual(issuer.issue(_payment()), "CFDI-99")
        _, kwargs = post.call_args
        self.assertEqual(kwargs["headers"], {"Authorization": "Bearer tok"})
        self.assertEqual(kwargs["json"]["amount"], "500.00")
        self.assertEqual(kwargs["timeout"], 3)

    @override_settings(RECEIPT_ISSUER_URL="")
    def test_missing_url(self):
        with self.assertRaises(ReceiptIssuerError):
            HttpReceiptIssuer().issue(_payment())

    @patch("payments.receipts.requests.post", side_effect=requests.Timeout("lento"))
    def test_network_error(self, post):
        with self.assertRaises(ReceiptIssuerError):
            HttpReceiptIssuer(url="https://recibos.test/emitir").issue(_payment())

    @patch("payments.receipts.requests.post")
    def test_error_status(self, post):
        post.return_value = _response(500)
        with self.assertRaises(ReceiptIssuerError):
            HttpReceiptIssuer(url="https://recibos.test/emitir").issue(_payment())

    @patch("payments.receipts.requests.post")
    def test_missing_handle(self, post):
        post.return_value = _response(200, {})
        with self.assertRaises(ReceiptIssuerError):
            HttpReceiptIssuer(url="https://recibos.test/emitir").issue(_payment())

    @patch("payments.receipts.requests.post")
    def test_non_object_json_body(self, post):
        post.return_value = _response(200, ["CFDI-99"])
        with self.assertRaises(ReceiptIssuerError):
            HttpReceiptIssuer(url="https://recibos.test/emitir").issue(_payment())


class ReceiptIssuerLookupTests(SimpleTestCase):
    def test_default_is_local(self):
        self.assertIsInstance(get_receipt_issuer(), LocalReceiptIssuer)

    @override_settings(PAYMENTS_RECEIPT_ISSUER="payments.receipts.HttpReceiptIssuer")
    def test_configured_issuer(self):
        self.assertIsInstance(get_receipt_issuer(), HttpReceiptIssuer)
