from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import models


def clean_contact_list(emails):
    """
    Normaliza una lista de correos: minúsculas, sin inválidos ni duplicados, ordenada.
    """
    valid = set()
    for email in emails:
        email = (email or "").strip().lower()
        if not email:
            continue
        try:
            validate_email(email)
        except ValidationError:
            continue
        valid.add(email)
    return sorted(valid)


class Student(models.Model):
    full_name = models.CharField("Nombre completo", max_length=200)
    enrollment_code = models.CharField("Matrícula", max_length=30, unique=True)
    grade = models.CharField("Grado/grupo", max_length=30, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["full_name"]
        verbose_name = "Alumno"
        verbose_name_plural = "Alumnos"

    def __str__(self):
        return self.full_name

    def active_guardians(self):
        """Tutores activos. Aprovecha el prefetch de `guardian_links` si lo hay."""
        return [link.guardian for link in self.guardian_links.all() if link.guardian.is_active]

    def contact_emails(self):
        """Correos válidos de los tutores activos."""
        return clean_contact_list(guardian.email for guardian in self.active_guardians())


class GuardianLink(models.Model):
    RELATIONSHIP = (
        ("madre", "Madre"),
        ("padre", "Padre"),
        ("tutor", "Tutor legal"),
        ("otro", "Otro"),
    )

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="guardian_links")
    guardian = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="guardian_links",
    )
    relationship = models.CharField(max_length=10, choices=RELATIONSHIP, default="tutor")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Tutor del alumno"
        verbose_name_plural = "Tutores de alumnos"
        constraints = [
            models.UniqueConstraint(fields=["student", "guardian"], name="uniq_guardian_per_student"),
        ]

    def __str__(self):
        return f"{self.guardian} → {self.student}"
