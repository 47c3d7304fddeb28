from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_date

from reminders.models import ReminderRun
from reminders.tasks import trigger_reminders


class Command(BaseCommand):
    help = (
        "Ejecuta la corrida diaria de recordatorios de pago (pasa por el mismo gate "
        "que el login de administración). Útil para cron diario."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            dest="run_date",
            help="Fecha de la corrida (YYYY-MM-DD). Por defecto: hoy.",
        )

    def handle(self, *args, **options):
        run_date = timezone.localdate()
        if options.get("run_date"):
            run_date = parse_date(options["run_date"])
            if run_date is None:
                raise CommandError("Fecha inválida, usá YYYY-MM-DD.")

        triggered = trigger_reminders(run_date, trigger="cron", inline=True)
        run = ReminderRun.objects.filter(run_date=run_date).first()
        if not triggered:
            status = run.status if run else "-"
            self.stdout.write(f"La corrida del {run_date} ya se realizó o está en curso (estado: {status}).")
            return

        if run is None or run.status != ReminderRun.Status.COMPLETED:
            raise CommandError(f"La corrida del {run_date} falló: {run.error_message if run else 'sin registro'}")
        self.stdout.write(self.style.SUCCESS(run.summary_message))
