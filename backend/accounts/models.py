from django.db import models
from django.contrib.auth.models import AbstractUser, BaseUserManager


class UserManager(BaseUserManager):
    use_in_migrations = True

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("El email es obligatorio")
        email = self.normalize_email(email).lower().strip()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role", User.Role.ADMIN)
        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser debe tener is_staff=True")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser debe tener is_superuser=True")
        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    class Role:
        ADMIN = "admin"
        TUTOR = "tutor"

        CHOICES = [
            (ADMIN, "Administración"),
            (TUTOR, "Tutor"),
        ]

    # Sacamos username y usamos el email como identificador
    username = None
    email = models.EmailField(unique=True)

    phone = models.CharField(max_length=30, blank=True)
    role = models.CharField(max_length=10, choices=Role.CHOICES, default=Role.TUTOR)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    def __str__(self):
        return self.email

    @property
    def is_school_admin(self):
        return self.is_staff or self.role == self.Role.ADMIN
