from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from payments.models import Debt
from reminders.models import EmailLogEntry, ReminderRun
from reminders.selector import (
    OMIT_NO_EMAILS,
    OMIT_NO_GUARDIANS,
    OMIT_RECENTLY_SENT,
    select_eligible_debts,
)
from reminders.tests.factories import make_debt
from students.models import GuardianLink

User = get_user_model()


class ReminderSelectorTests(TestCase):
    def setUp(self):
        self.today = timezone.localdate()

    def test_window_bounds(self):
        inside_today = make_debt(self.today, due_in=0)
        inside_edge = make_debt(self.today, due_in=3)
        make_debt(self.today, due_in=4)
        make_debt(self.today, due_in=-1)
        selected = {c.debt.id for c in select_eligible_debts(self.today, 3)}
        self.assertEqual(selected, {inside_today.id, inside_edge.id})

    def test_paid_debts_are_skipped(self):
        debt = make_debt(self.today)
        Debt.objects.filter(pk=debt.pk).update(paid=True)
        self.assertEqual(select_eligible_debts(self.today, 3), [])

    def test_include_overdue(self):
        overdue = make_debt(self.today, due_in=-20)
        candidates = select_eligible_debts(self.today, 3, include_overdue=True)
        self.assertEqual([c.debt.id for c in candidates], [overdue.id])
        self.assertEqual(candidates[0].days_overdue, 20)
        self.assertEqual(candidates[0].risk_level, "alto")

    def test_risk_levels(self):
        make_debt(self.today, due_in=1, code="R-1")
        make_debt(self.today, due_in=-5, code="R-2")
        levels = sorted(c.risk_level for c in select_eligible_debts(self.today, 3, include_overdue=True))
        self.assertEqual(levels, ["bajo", "medio"])

    def test_one_candidate_per_debt_with_many_guardians(self):
        debt = make_debt(self.today, guardians=("mama@example.com", "papa@example.com"))
        candidates = select_eligible_debts(self.today, 3)
        self.assertEqual(len(candidates), 1)
        self.assertEqual(candidates[0].debt.id, debt.id)
        self.assertEqual(candidates[0].contacts, ["mama@example.com", "papa@example.com"])

    def test_student_without_guardians_is_omitted_not_dropped(self):
        debt = make_debt(self.today, guardians=())
        candidates = select_eligible_debts(self.today, 3)
        self.assertEqual(len(candidates), 1)
        self.assertEqual(candidates[0].debt.id, debt.id)
        self.assertTrue(candidates[0].is_omitted)
        self.assertEqual(candidates[0].omit_reason, OMIT_NO_GUARDIANS)

    def test_guardians_without_valid_email_are_omitted(self):
        debt = make_debt(self.today, guardians=("temp@example.com",))
        User.objects.filter(email="temp@example.com").update(email="sin-correo")
        candidate = select_eligible_debts(self.today, 3)[0]
        self.assertEqual(candidate.debt.id, debt.id)
        self.assertEqual(candidate.omit_reason, OMIT_NO_EMAILS)

    def test_inactive_guardian_is_not_a_contact(self):
        debt = make_debt(self.today, guardians=("baja@example.com",))
        User.objects.filter(email="baja@example.com").update(is_active=False)
        candidate = select_eligible_debts(self.today, 3)[0]
        self.assertEqual(candidate.debt.id, debt.id)
        self.assertEqual(candidate.omit_reason, OMIT_NO_GUARDIANS)

    def test_recently_reminded_debt_is_omitted(self):
        debt = make_debt(self.today)
        run = ReminderRun.objects.create(run_date=self.today - timedelta(days=1), status=ReminderRun.Status.COMPLETED)
        EmailLogEntry.objects.create(
            run=run,
            run_date=run.run_date,
            student=debt.student,
            debt=debt,
            outcome=EmailLogEntry.Outcome.SENT,
            sent_at=timezone.now() - timedelta(hours=3),
        )
        candidate = select_eligible_debts(self.today, 3)[0]
        self.assertEqual(candidate.omit_reason, OMIT_RECENTLY_SENT)

    def test_old_reminder_does_not_block(self):
        debt = make_debt(self.today)
        run = ReminderRun.objects.create(run_date=self.today - timedelta(days=2), status=ReminderRun.Status.COMPLETED)
        EmailLogEntry.objects.create(
            run=run,
            run_date=run.run_date,
            student=debt.student,
            debt=debt,
            outcome=EmailLogEntry.Outcome.SENT,
            sent_at=timezone.now() - timedelta(hours=30),
        )
        candidate = select_eligible_debts(self.today, 3)[0]
        self.assertFalse(candidate.is_omitted)

    def test_inactive_student_is_skipped(self):
        debt = make_debt(self.today)
        debt.student.is_active = False
        debt.student.save()
        self.assertEqual(select_eligible_debts(self.today, 3), [])
