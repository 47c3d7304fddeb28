import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("payments", "0001_initial"),
        ("students", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ReminderRun",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("run_date", models.DateField(unique=True)),
                ("status", models.CharField(choices=[("not_started", "Sin iniciar"), ("in_progress", "En progreso"), ("completed", "Completada"), ("failed", "Fallida")], default="not_started", max_length=12)),
                ("success_count", models.PositiveIntegerField(default=0)),
                ("error_count", models.PositiveIntegerField(default=0)),
                ("omitted_count", models.PositiveIntegerField(default=0)),
                ("trigger", models.CharField(blank=True, max_length=20)),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("error_message", models.TextField(blank=True)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("heartbeat_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Corrida de recordatorios",
                "verbose_name_plural": "Corridas de recordatorios",
                "ordering": ["-run_date"],
            },
        ),
        migrations.CreateModel(
            name="EmailLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("run_date", models.DateField(db_index=True)),
                ("student_name", models.CharField(blank=True, max_length=200)),
                ("concept_name", models.CharField(blank=True, max_length=120)),
                ("due_date", models.DateField(blank=True, null=True)),
                ("recipient_contacts", models.JSONField(blank=True, default=list)),
                ("subject", models.CharField(blank=True, max_length=200)),
                ("outcome", models.CharField(choices=[("enviado", "Enviado"), ("error", "Error"), ("omitido", "Omitido")], db_index=True, max_length=10)),
                ("error_message", models.TextField(blank=True)),
                ("sent_at", models.DateTimeField(db_index=True)),
                ("debt", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reminder_entries", to="payments.debt")),
                ("run", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="entries", to="reminders.reminderrun")),
                ("student", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reminder_entries", to="students.student")),
            ],
            options={
                "verbose_name": "Registro de recordatorio",
                "verbose_name_plural": "Bitácora de recordatorios",
                "ordering": ["-sent_at", "-id"],
            },
        ),
    ]
