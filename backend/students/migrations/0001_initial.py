import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Student",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(max_length=200, verbose_name="Nombre completo")),
                ("enrollment_code", models.CharField(max_length=30, unique=True, verbose_name="Matrícula")),
                ("grade", models.CharField(blank=True, max_length=30, verbose_name="Grado/grupo")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Alumno",
                "verbose_name_plural": "Alumnos",
                "ordering": ["full_name"],
            },
        ),
        migrations.CreateModel(
            name="GuardianLink",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("relationship", models.CharField(choices=[("madre", "Madre"), ("padre", "Padre"), ("tutor", "Tutor legal"), ("otro", "Otro")], default="tutor", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("guardian", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="guardian_links", to=settings.AUTH_USER_MODEL)),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="guardian_links", to="students.student")),
            ],
            options={
                "verbose_name": "Tutor del alumno",
                "verbose_name_plural": "Tutores de alumnos",
            },
        ),
        migrations.AddConstraint(
            model_name="guardianlink",
            constraint=models.UniqueConstraint(fields=("student", "guardian"), name="uniq_guardian_per_student"),
        ),
    ]
