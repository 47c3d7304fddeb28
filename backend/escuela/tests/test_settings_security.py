import importlib
import os
from unittest.mock import patch

from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase

import escuela.settings as project_settings


def _reload_settings():
    return importlib.reload(project_settings)


class SettingsSecurityTests(SimpleTestCase):
    def setUp(self):
        self._env_backup = os.environ.copy()

    def tearDown(self):
        os.environ.clear()
        os.environ.update(self._env_backup)
        _reload_settings()

    def _common_env(self, production=True):
        env = {
            "DJANGO_DEBUG": "False" if production else "True",
            "DJANGO_ALLOWED_HOSTS": "example.com",
            "FRONTEND_ORIGINS": "https://app.example.com",
            "DJANGO_SKIP_DOTENV": "true",
        }
        if production:
            env.update(
                {
                    "DJANGO_SECRET_KEY": "super-secret",
                    "DB_ENGINE": "django.db.backends.postgresql",
                    "DB_NAME": "escuela",
                    "DJANGO_EMAIL_BACKEND": "django.core.mail.backends.smtp.EmailBackend",
                    "SPEI_WEBHOOK_SECRET": "bank-secret",
                }
            )
        return env

    def test_production_requires_db_engine(self):
        env = self._common_env()
        with patch.dict(os.environ, env, clear=False):
            os.environ.pop("DB_ENGINE", None)
            with self.assertRaises(ImproperlyConfigured):
                _reload_settings()

    def test_production_requires_secret_key(self):
        env = self._common_env()
        with patch.dict(os.environ, env, clear=False):
            os.environ.pop("DJANGO_SECRET_KEY", None)
            os.environ.pop("SECRET_KEY", None)
            with self.assertRaises(ImproperlyConfigured):
                _reload_settings()

    def test_production_rejects_console_email(self):
        env = self._common_env()
        env["DJANGO_EMAIL_BACKEND"] = "django.core.mail.backends.console.EmailBackend"
        with patch.dict(os.environ, env, clear=False):
            with self.assertRaises(ImproperlyConfigured):
                _reload_settings()

    def test_production_requires_webhook_secret(self):
        env = self._common_env()
        with patch.dict(os.environ, env, clear=False):
            os.environ.pop("SPEI_WEBHOOK_SECRET", None)
            with self.assertRaises(ImproperlyConfigured):
                _reload_settings()

    def test_invalid_clabe_is_rejected(self):
        env = self._common_env(production=False)
        env["SPEI_CLABE"] = "1234"
        with patch.dict(os.environ, env, clear=False):
            with self.assertRaises(ImproperlyConfigured):
                _reload_settings()

    def test_production_settings_load(self):
        with patch.dict(os.environ, self._common_env(), clear=False):
            settings = _reload_settings()
        self.assertFalse(settings.DEBUG)
        self.assertTrue(settings.SECURE_SSL_REDIRECT)
        self.assertEqual(
            settings.REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"],
            ("rest_framework.renderers.JSONRenderer",),
        )

    def test_debug_allows_sqlite_fallback(self):
        env = self._common_env(production=False)
        with patch.dict(os.environ, env, clear=False):
            os.environ.pop("DB_ENGINE", None)
            settings = _reload_settings()
        self.assertEqual(
            settings.DATABASES["default"]["ENGINE"],
            "django.db.backends.sqlite3",
        )
        self.assertEqual(settings.SPEI_CLABE, "012345678901234567")
