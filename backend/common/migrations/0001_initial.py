from django.db import migrations, models

import common.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AppSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("school_name", models.CharField(default=common.models.default_school_name, max_length=120, verbose_name="Nombre de la escuela")),
                ("payment_reference_valid_days", models.PositiveIntegerField(default=3, help_text="Días hasta que una referencia sin confirmar pasa a caducada.", verbose_name="Vigencia de la referencia SPEI (días)")),
                ("status_poll_interval_seconds", models.PositiveIntegerField(default=30, verbose_name="Intervalo de consulta de estado (segundos)")),
                ("reminder_lookahead_days", models.PositiveIntegerField(default=3, help_text="Se recuerdan adeudos que vencen entre hoy y hoy + N días.", verbose_name="Anticipación de recordatorios (días)")),
                ("reminder_include_overdue", models.BooleanField(default=False, verbose_name="Recordar adeudos vencidos")),
                ("reminder_stale_after_minutes", models.PositiveIntegerField(default=60, help_text="Una corrida en progreso más vieja que esto puede retomarse.", verbose_name="Corrida colgada tras (minutos)")),
                ("singleton", models.BooleanField(default=True, editable=False, unique=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Configuración",
                "verbose_name_plural": "Configuración",
            },
        ),
    ]
