from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone

from payments.exceptions import InvalidStatusTransition, ReconciliationConflict, ReferenceNotFound
from payments.models import Debt, Payment, PaymentConcept, PendingPayment, Receipt
from payments.receipts import ReceiptIssuerError
from payments.reconciliation import get_status, reconcile, request_receipt, settle
from payments.references import generate_reference
from students.models import GuardianLink, Student

User = get_user_model()

Status = PendingPayment.Status

STATUS_ORDER = {
    Status.PENDING_CONFIRMATION: 0,
    Status.CONFIRMED: 1,
    Status.EXPIRED: 1,
    Status.PAID: 2,
}


class FailingIssuer:
    calls = 0

    def issue(self, payment):
        FailingIssuer.calls += 1
        raise ReceiptIssuerError("emisor caído")


class ReconcilerTestCase(TestCase):
    def setUp(self):
        self.student = Student.objects.create(full_name="Ana López", enrollment_code="A-001")
        self.concept = PaymentConcept.objects.create(name="Colegiatura")
        self.debt = Debt.objects.create(
            student=self.student,
            concept=self.concept,
            amount=Decimal("500.00"),
            due_date=timezone.localdate() + timedelta(days=2),
        )
        self.pending = generate_reference(self.debt.id, self.student.id, self.concept.id, "500.00")
        self.ref = self.pending.reference


class GetStatusTests(ReconcilerTestCase):
    def test_fresh_reference_is_pending(self):
        self.assertEqual(get_status(self.ref).status, Status.PENDING_CONFIRMATION)

    def test_lazy_expiry_on_first_read(self):
        PendingPayment.objects.filter(pk=self.pending.pk).update(
            expires_at=timezone.now() - timedelta(seconds=1)
        )
        pending = get_status(self.ref)
        self.assertEqual(pending.status, Status.EXPIRED)
        self.assertIsNotNone(pending.expired_at)
        self.assertTrue(pending.transitions.filter(to_status=Status.EXPIRED, source="lazy_expiry").exists())

    def test_confirmed_reference_does_not_expire(self):
        reconcile(self.ref, {"transaction_id": "TX-1"})
        later = self.pending.expires_at + timedelta(days=30)
        self.assertEqual(get_status(self.ref, now=later).status, Status.CONFIRMED)

    def test_unknown_reference(self):
        with self.assertRaises(ReferenceNotFound):
            get_status("ALTUM-0-0-NOPE")


class ReconcileTests(ReconcilerTestCase):
    def test_confirmation_moves_to_confirmed(self):
        pending = reconcile(self.ref, {"transaction_id": "TX-1", "amount": "500.00"})
        self.assertEqual(pending.status, Status.CONFIRMED)
        self.assertEqual(pending.bank_transaction_id, "TX-1")
        self.assertEqual(pending.confirmed_amount, Decimal("500.00"))
        self.assertIsNotNone(pending.confirmed_at)

    def test_same_confirmation_twice_is_idempotent(self):
        reconcile(self.ref, {"transaction_id": "TX-1"})
        again = reconcile(self.ref, {"transaction_id": "TX-1"})
        self.assertEqual(again.status, Status.CONFIRMED)
        self.assertEqual(again.transitions.filter(to_status=Status.CONFIRMED).count(), 1)

    def test_other_transaction_is_a_conflict(self):
        reconcile(self.ref, {"transaction_id": "TX-1"})
        with self.assertRaises(ReconciliationConflict):
            reconcile(self.ref, {"transaction_id": "TX-2"})

    def test_amount_mismatch_is_a_conflict(self):
        with self.assertRaises(ReconciliationConflict):
            reconcile(self.ref, {"transaction_id": "TX-1", "amount": "499.99"})
        self.assertEqual(get_status(self.ref).status, Status.PENDING_CONFIRMATION)

    def test_missing_transaction_id_is_rejected(self):
        with self.assertRaises(ReconciliationConflict):
            reconcile(self.ref, {"amount": "500.00"})

    def test_confirmation_after_expiry_is_a_conflict(self):
        late = self.pending.expires_at + timedelta(minutes=1)
        with self.assertRaises(ReconciliationConflict):
            reconcile(self.ref, {"transaction_id": "TX-1"}, now=late)
        self.assertEqual(PendingPayment.objects.get(pk=self.pending.pk).status, Status.EXPIRED)

    def test_replay_after_paid_returns_terminal_record(self):
        reconcile(self.ref, {"transaction_id": "TX-1"})
        settle(self.ref)
        again = reconcile(self.ref, {"transaction_id": "TX-1"})
        self.assertEqual(again.status, Status.PAID)
        self.assertEqual(Payment.objects.count(), 1)


class SettleTests(ReconcilerTestCase):
    def test_settlement_creates_payment_and_marks_debt(self):
        reconcile(self.ref, {"transaction_id": "TX-1", "amount": "500.00"})
        pending = settle(self.ref)
        self.assertEqual(pending.status, Status.PAID)
        self.assertIsNotNone(pending.linked_payment_id)
        payment = Payment.objects.get(pk=pending.linked_payment_id)
        self.assertEqual(payment.amount, Decimal("500.00"))
        self.assertEqual(payment.method, Payment.METHOD_SPEI)
        self.assertEqual(payment.reference, self.ref)
        self.debt.refresh_from_db()
        self.assertTrue(self.debt.paid)
        self.assertIsNotNone(self.debt.paid_at)
        self.assertEqual(pending.receipt_handle, f"REC-{payment.id:06d}")

    def test_settle_twice_has_no_duplicate_side_effects(self):
        reconcile(self.ref, {"transaction_id": "TX-1"})
        first = settle(self.ref)
        second = settle(self.ref)
        self.assertEqual(first.linked_payment_id, second.linked_payment_id)
        self.assertEqual(Payment.objects.count(), 1)
        self.assertEqual(Receipt.objects.count(), 1)

    def test_pending_cannot_jump_to_paid(self):
        with self.assertRaises(InvalidStatusTransition):
            settle(self.ref)
        self.debt.refresh_from_db()
        self.assertFalse(self.debt.paid)

    def test_expired_cannot_be_settled(self):
        PendingPayment.objects.filter(pk=self.pending.pk).update(
            expires_at=timezone.now() - timedelta(seconds=1)
        )
        with self.assertRaises(ReconciliationConflict):
            settle(self.ref)

    def test_debt_paid_elsewhere_is_a_conflict(self):
        reconcile(self.ref, {"transaction_id": "TX-1"})
        Debt.objects.filter(pk=self.debt.pk).update(paid=True)
        with self.assertRaises(ReconciliationConflict):
            settle(self.ref)
        self.assertEqual(Payment.objects.count(), 0)
        self.assertEqual(get_status(self.ref).status, Status.CONFIRMED)

    def test_status_never_regresses(self):
        observed = [get_status(self.ref).status]
        reconcile(self.ref, {"transaction_id": "TX-1"})
        observed.append(get_status(self.ref).status)
        settle(self.ref)
        observed.append(get_status(self.ref).status)
        later = timezone.now() + timedelta(days=90)
        observed.append(get_status(self.ref, now=later).status)
        ranks = [STATUS_ORDER[s] for s in observed]
        self.assertEqual(ranks, sorted(ranks))
        self.assertEqual(observed[-1], Status.PAID)
        transitions = list(self.pending.transitions.values_list("to_status", flat=True))
        self.assertEqual(transitions, [Status.PENDING_CONFIRMATION, Status.CONFIRMED, Status.PAID])


class ReceiptTests(ReconcilerTestCase):
    def test_receipt_only_for_paid(self):
        with self.assertRaises(InvalidStatusTransition):
            request_receipt(self.ref)

    def test_handle_is_cached(self):
        reconcile(self.ref, {"transaction_id": "TX-1"})
        pending = settle(self.ref)
        with patch("payments.receipts.LocalReceiptIssuer.issue") as issue:
            handle = request_receipt(self.ref)
        issue.assert_not_called()
        self.assertEqual(handle, pending.receipt_handle)

    @override_settings(PAYMENTS_RECEIPT_ISSUER="payments.tests.test_reconciliation.FailingIssuer")
    def test_issuer_failure_keeps_settlement_and_retries_later(self):
        FailingIssuer.calls = 0
        reconcile(self.ref, {"transaction_id": "TX-1"})
        with self.assertLogs("payments.reconciliation", level="ERROR"):
            pending = settle(self.ref)
        self.assertEqual(pending.status, Status.PAID)
        self.assertEqual(pending.receipt_handle, "")
        self.assertTrue(Debt.objects.get(pk=self.debt.pk).paid)

        with self.assertLogs("payments.reconciliation", level="ERROR"):
            self.assertIsNone(request_receipt(self.ref))
        self.assertEqual(FailingIssuer.calls, 2)

        with override_settings(PAYMENTS_RECEIPT_ISSUER="payments.receipts.LocalReceiptIssuer"):
            handle = request_receipt(self.ref)
        self.assertTrue(handle.startswith("REC-"))


class ReceiptEmailTests(ReconcilerTestCase):
    def setUp(self):
        super().setUp()
        guardian = User.objects.create_user(email="parent@example.com", password="Parent123")
        GuardianLink.objects.create(student=self.student, guardian=guardian, relationship="madre")

    def test_guardians_get_receipt_once(self):
        reconcile(self.ref, {"transaction_id": "TX-1"})
        pending = settle(self.ref)
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ["parent@example.com"])
        self.assertEqual(message.subject, "Comprobante de pago - Ana López")
        self.assertIn(pending.receipt_handle, message.body)
        self.assertIn(self.ref, message.body)

        request_receipt(self.ref)
        settle(self.ref)
        self.assertEqual(len(mail.outbox), 1)

    def test_mail_failure_does_not_undo_receipt(self):
        reconcile(self.ref, {"transaction_id": "TX-1"})
        with patch("payments.notifications.send_mail", side_effect=ConnectionError("SMTP caído")):
            with self.assertLogs("payments.notifications", level="ERROR"):
                pending = settle(self.ref)
        self.assertEqual(pending.status, Status.PAID)
        self.assertTrue(pending.receipt_handle)

    def test_no_email_without_guardians(self):
        GuardianLink.objects.filter(student=self.student).delete()
        reconcile(self.ref, {"transaction_id": "TX-1"})
        settle(self.ref)
        self.assertEqual(mail.outbox, [])
