import csv
import io
from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from reminders.models import EmailLogEntry, ReminderRun
from reminders.audit import EXPORT_HEADER
from reminders.tests.factories import make_debt

User = get_user_model()


class ReminderApiTestCase(TestCase):
    def setUp(self):
        self.today = timezone.localdate()
        self.admin = User.objects.create_superuser(email="admin@example.com", password="Admin12345")
        self.tutor = User.objects.create_user(email="tutor@example.com", password="Tutor12345")
        self.client = APIClient()
        self.client.force_authenticate(self.admin)

    def _entry(self, run, debt, outcome, *, hours_ago=1, error=""):
        return EmailLogEntry.objects.create(
            run=run,
            run_date=run.run_date,
            student=debt.student,
            debt=debt,
            student_name=debt.student.full_name,
            concept_name=debt.concept.name,
            due_date=debt.due_date,
            recipient_contacts=["parent@example.com"],
            subject="Recordatorio",
            outcome=outcome,
            error_message=error,
            sent_at=timezone.now() - timedelta(hours=hours_ago),
        )


class TriggerApiTests(ReminderApiTestCase):
    @patch("reminders.views.trigger_reminders", return_value=True)
    def test_admin_can_trigger(self, trigger):
        res = self.client.post("/api/reminders/trigger")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"triggered": True})
        trigger.assert_called_once_with(trigger="manual")

    def test_tutor_cannot_trigger(self):
        client = APIClient()
        client.force_authenticate(self.tutor)
        res = client.post("/api/reminders/trigger")
        self.assertEqual(res.status_code, 403)

    def test_second_trigger_reports_already_done(self):
        ReminderRun.objects.create(run_date=self.today, status=ReminderRun.Status.COMPLETED)
        res = self.client.post("/api/reminders/trigger")
        self.assertEqual(res.data, {"triggered": False})


class HistoryApiTests(ReminderApiTestCase):
    def setUp(self):
        super().setUp()
        self.run = ReminderRun.objects.create(run_date=self.today, status=ReminderRun.Status.COMPLETED)
        self.old_run = ReminderRun.objects.create(
            run_date=self.today - timedelta(days=5), status=ReminderRun.Status.COMPLETED
        )
        ana = make_debt(self.today, name="Ana López")
        luis = make_debt(self.today, name="Luis Pérez")
        self._entry(self.run, ana, EmailLogEntry.Outcome.SENT)
        self._entry(self.run, luis, EmailLogEntry.Outcome.ERROR, error="SMTP caído")
        self._entry(self.old_run, ana, EmailLogEntry.Outcome.SENT, hours_ago=120)

    def _results(self, res):
        data = res.data
        return data["results"] if isinstance(data, dict) and "results" in data else data

    def test_lists_all_entries_newest_first(self):
        res = self.client.get("/api/reminders/history")
        self.assertEqual(res.status_code, 200)
        rows = self._results(res)
        self.assertEqual(len(rows), 3)
        self.assertEqual(rows[-1]["run_date"], str(self.old_run.run_date))

    def test_filter_by_status(self):
        rows = self._results(self.client.get("/api/reminders/history", {"status": "error"}))
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["student_name"], "Luis Pérez")

    def test_filter_by_date_range(self):
        rows = self._results(
            self.client.get("/api/reminders/history", {"date_from": self.today.isoformat()})
        )
        self.assertEqual(len(rows), 2)

    def test_search_matches_student_and_recipient(self):
        rows = self._results(self.client.get("/api/reminders/history", {"search": "ana"}))
        self.assertEqual(len(rows), 2)
        rows = self._results(self.client.get("/api/reminders/history", {"search": "parent@"}))
        self.assertEqual(len(rows), 3)

    def test_invalid_range_is_rejected(self):
        res = self.client.get(
            "/api/reminders/history",
            {"date_from": self.today.isoformat(), "date_to": (self.today - timedelta(days=1)).isoformat()},
        )
        self.assertEqual(res.status_code, 400)

    def test_export_csv(self):
        res = self.client.get("/api/reminders/history/export", {"status": "enviado"})
        self.assertEqual(res.status_code, 200)
        self.assertIn("recordatorios-pagos-", res["Content-Disposition"])
        body = b"".join(res.streaming_content).decode("utf-8")
        rows = list(csv.reader(io.StringIO(body)))
        self.assertEqual(rows[0], EXPORT_HEADER)
        self.assertEqual(len(rows), 3)
        self.assertEqual(rows[1][1], "Ana López")
        self.assertEqual(rows[1][2], "parent@example.com")
        self.assertEqual(rows[1][5], "Enviado")

    def test_history_requires_admin(self):
        client = APIClient()
        client.force_authenticate(self.tutor)
        self.assertEqual(client.get("/api/reminders/history").status_code, 403)


class RunApiTests(ReminderApiTestCase):
    def test_run_detail(self):
        ReminderRun.objects.create(
            run_date=self.today,
            status=ReminderRun.Status.COMPLETED,
            success_count=2,
            error_count=1,
        )
        res = self.client.get(f"/api/reminders/runs/{self.today.isoformat()}")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "completed")
        self.assertEqual(res.data["message"], "Recordatorios procesados: 2 enviados, 1 error, 0 omitidos.")

    def test_missing_run_is_404(self):
        res = self.client.get("/api/reminders/runs/2001-01-01")
        self.assertEqual(res.status_code, 404)

    def test_bad_date_is_404(self):
        res = self.client.get("/api/reminders/runs/ayer")
        self.assertEqual(res.status_code, 404)


class UpcomingApiTests(ReminderApiTestCase):
    def test_preview_lists_candidates_without_sending(self):
        debt = make_debt(self.today, due_in=2, name="Ana López")
        make_debt(self.today, due_in=1, guardians=(), name="Sin Tutor")
        res = self.client.get("/api/reminders/upcoming")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.data), 2)
        by_student = {row["student"]: row for row in res.data}
        self.assertEqual(by_student["Ana López"]["debt_id"], debt.id)
        self.assertEqual(by_student["Ana López"]["contacts"], ["parent@example.com"])
        self.assertEqual(by_student["Ana López"]["risk_level"], "bajo")
        self.assertNotEqual(by_student["Sin Tutor"]["omit_reason"], "")
        self.assertFalse(EmailLogEntry.objects.exists())
        self.assertFalse(ReminderRun.objects.exists())
