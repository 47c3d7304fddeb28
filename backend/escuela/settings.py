import os
from pathlib import Path
from datetime import timedelta
from dotenv import load_dotenv
from django.core.exceptions import ImproperlyConfigured

# === BASE DIR ===
BASE_DIR = Path(__file__).resolve().parent.parent


# === HELPERS ===
def _bool(value, default=False):
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# Cargar variables desde backend/.env (salvo que el entorno ya venga armado)
if not _bool(os.getenv("DJANGO_SKIP_DOTENV"), False):
    load_dotenv(BASE_DIR / ".env")


# === CORE ===
SECRET_KEY = (
    os.getenv("DJANGO_SECRET_KEY")
    or os.getenv("SECRET_KEY")
    or "dev-secret-key-change-me"
)

# En producción debe estar en False; por defecto se desactiva salvo que se explicite.
DEBUG = _bool(os.getenv("DJANGO_DEBUG") or os.getenv("DEBUG"), False)

if not DEBUG and SECRET_KEY == "dev-secret-key-change-me":
    raise ImproperlyConfigured("DJANGO_SECRET_KEY es obligatorio con DEBUG=False.")

# Hosts permitidos
_hosts_env = os.getenv("DJANGO_ALLOWED_HOSTS") or os.getenv(
    "ALLOWED_HOSTS", "localhost,127.0.0.1"
)
ALLOWED_HOSTS = (
    ["*"]
    if "*" in _hosts_env
    else [h.strip() for h in _hosts_env.split(",") if h.strip()]
)

# === INSTALLED APPS ===
INSTALLED_APPS = [
    # Django apps
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Terceros
    "rest_framework",
    "rest_framework_simplejwt",
    "corsheaders",

    # Apps locales
    "common",
    "accounts",
    "students",
    "payments",
    "reminders",
]

# === MIDDLEWARE ===
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",  # CORS alto y antes de Common
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


# === CORS / CSRF ===
_frontend_env = os.getenv("FRONTEND_ORIGINS") or os.getenv(
    "FRONTEND_ORIGIN", "http://localhost:5173,http://127.0.0.1:5173"
)
CORS_ALLOWED_ORIGINS = [o.strip() for o in _frontend_env.split(",") if o.strip()]
CORS_ALLOW_CREDENTIALS = _bool(os.getenv("CORS_ALLOW_CREDENTIALS"), False)

# En dev liberamos CORS; en prod solo orígenes listados
CORS_ALLOW_ALL_ORIGINS = bool(DEBUG)

CSRF_TRUSTED_ORIGINS = [
    o for o in CORS_ALLOWED_ORIGINS if o.startswith(("http://", "https://"))
]


# === URLS / WSGI ===
ROOT_URLCONF = "escuela.urls"

# URL del panel de administración (configurable por .env)
ADMIN_URL = os.getenv("ADMIN_URL", "admin/")

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "escuela.wsgi.application"


# === DATABASE ===
if os.getenv("DB_ENGINE"):
    DATABASES = {
        "default": {
            "ENGINE": os.getenv("DB_ENGINE"),
            "NAME": os.getenv("DB_NAME"),
            "USER": os.getenv("DB_USER"),
            "PASSWORD": os.getenv("DB_PASSWORD"),
            "HOST": os.getenv("DB_HOST"),
            "PORT": os.getenv("DB_PORT"),
        }
    }
elif DEBUG:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }
else:
    # El gate de recordatorios y las referencias dependen de restricciones únicas
    # y de select_for_update: en producción pedimos un motor real.
    raise ImproperlyConfigured(
        "DB_ENGINE es obligatorio con DEBUG=False (SQLite solo para desarrollo)."
    )


# === AUTH ===
AUTH_USER_MODEL = "accounts.User"


# === DRF / JWT ===
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated"
    ],
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": int(os.getenv("API_PAGE_SIZE", "20")),
    "DEFAULT_THROTTLE_CLASSES": (
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
        "rest_framework.throttling.ScopedRateThrottle",
    ),
    "DEFAULT_THROTTLE_RATES": {
        "anon": os.getenv("API_THROTTLE_ANON", "60/hour"),
        "user": os.getenv("API_THROTTLE_USER", "600/hour"),
        "login": os.getenv("API_THROTTLE_LOGIN", "20/hour"),
        # El alumno consulta el estado cada pocos segundos mientras espera
        "payment_status": os.getenv("API_THROTTLE_PAYMENT_STATUS", "240/hour"),
        "webhook": os.getenv("API_THROTTLE_WEBHOOK", "600/hour"),
    },
}

# En producción, solo JSON (sin UI browsable).
if not DEBUG:
    REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = (
        "rest_framework.renderers.JSONRenderer",
    )

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(hours=int(os.getenv("JWT_ACCESS_HOURS", "8"))),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=int(os.getenv("JWT_REFRESH_DAYS", "7"))),
    "ROTATE_REFRESH_TOKENS": True,
    "AUTH_HEADER_TYPES": ("Bearer",),
    "ALGORITHM": os.getenv("JWT_ALGORITHM", "HS256"),
    "SIGNING_KEY": os.getenv("JWT_SIGNING_KEY", SECRET_KEY),
}


# === INTERNACIONALIZACIÓN ===
LANGUAGE_CODE = "es-mx"
TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "America/Mexico_City")
USE_I18N = True
USE_TZ = True


# === STATIC ===
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"


# === SPEI / PAGOS ===
SPEI_CLABE = os.getenv("SPEI_CLABE", "012345678901234567")
SPEI_BANK_NAME = os.getenv("SPEI_BANK_NAME", "BBVA")
SPEI_ACCOUNT_HOLDER = os.getenv("SPEI_ACCOUNT_HOLDER", "Colegio Altum")
SPEI_REFERENCE_PREFIX = os.getenv("SPEI_REFERENCE_PREFIX", "ALTUM")
SPEI_PROVIDER_NAME = os.getenv("SPEI_PROVIDER_NAME", "spei")
# Secreto compartido con el banco/agregador para el webhook de confirmaciones
SPEI_WEBHOOK_SECRET = os.getenv("SPEI_WEBHOOK_SECRET", "")
# Si está activo, una confirmación bancaria liquida el pago sin intervención manual
SPEI_AUTO_SETTLE = _bool(os.getenv("SPEI_AUTO_SETTLE"), False)
REFERENCE_MAX_ATTEMPTS = _int(os.getenv("REFERENCE_MAX_ATTEMPTS"), 5)
PAYMENTS_CURRENCY = os.getenv("PAYMENTS_CURRENCY", "MXN")

if len(SPEI_CLABE) != 18 or not SPEI_CLABE.isdigit():
    raise ImproperlyConfigured("SPEI_CLABE debe tener 18 dígitos.")
if not DEBUG and not SPEI_WEBHOOK_SECRET and not _bool(os.getenv("SPEI_ALLOW_WEBHOOK_NO_SECRET"), False):
    raise ImproperlyConfigured(
        "SPEI_WEBHOOK_SECRET es obligatorio en producción (o definí SPEI_ALLOW_WEBHOOK_NO_SECRET=true)."
    )

# Emisor de comprobantes (dotted path). Por defecto se emiten localmente.
PAYMENTS_RECEIPT_ISSUER = os.getenv(
    "PAYMENTS_RECEIPT_ISSUER", "payments.receipts.LocalReceiptIssuer"
)
RECEIPT_ISSUER_URL = os.getenv("RECEIPT_ISSUER_URL", "")
RECEIPT_ISSUER_TOKEN = os.getenv("RECEIPT_ISSUER_TOKEN", "")
RECEIPT_ISSUER_TIMEOUT = _int(os.getenv("RECEIPT_ISSUER_TIMEOUT"), 10)


# === RECORDATORIOS ===
# Workers del executor en segundo plano (1 alcanza: hay una corrida por día)
REMINDERS_MAX_WORKERS = _int(os.getenv("REMINDERS_MAX_WORKERS"), 1)
# Ejecuta el pipeline en el mismo hilo que lo dispara (útil en dev y en el comando)
REMINDERS_RUN_INLINE = _bool(os.getenv("REMINDERS_RUN_INLINE"), False)
REMINDERS_TRIGGER_ON_LOGIN = _bool(os.getenv("REMINDERS_TRIGGER_ON_LOGIN"), True)
SCHOOL_NAME = os.getenv("SCHOOL_NAME", "Colegio Altum")


# === EMAIL ===
EMAIL_BACKEND = os.getenv(
    "DJANGO_EMAIL_BACKEND",
    os.getenv("EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend"),
)
EMAIL_HOST = os.getenv("EMAIL_HOST", "smtp.gmail.com")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_HOST_USER = os.getenv("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = os.getenv("EMAIL_HOST_PASSWORD", "")
EMAIL_USE_TLS = _bool(os.getenv("EMAIL_USE_TLS"), True)
EMAIL_USE_SSL = _bool(os.getenv("EMAIL_USE_SSL"), False)
EMAIL_TIMEOUT = _int(os.getenv("EMAIL_TIMEOUT"), 20)
# Remitente por defecto para recordatorios y avisos
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "no-reply@colegioaltum.edu.mx")
# Bloqueamos el backend de consola en producción para garantizar entrega real,
# salvo que se explicite la excepción.
if (
    not DEBUG
    and EMAIL_BACKEND.endswith("console.EmailBackend")
    and not _bool(os.getenv("ALLOW_CONSOLE_EMAIL_IN_PROD"), False)
):
    raise ImproperlyConfigured(
        "EMAIL_BACKEND apunta a consola en producción. Configurá SMTP o define ALLOW_CONSOLE_EMAIL_IN_PROD=true solo para entornos controlados."
    )


# === LOGGING BÁSICO ===
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "payments": {"level": os.getenv("PAYMENTS_LOG_LEVEL", LOG_LEVEL)},
        "reminders": {"level": os.getenv("REMINDERS_LOG_LEVEL", LOG_LEVEL)},
    },
}

# === SECURITY / COOKIES ===
SESSION_COOKIE_SECURE = _bool(os.getenv("SESSION_COOKIE_SECURE"), not DEBUG)
CSRF_COOKIE_SECURE = _bool(os.getenv("CSRF_COOKIE_SECURE"), not DEBUG)
SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "Lax")
CSRF_COOKIE_SAMESITE = os.getenv("CSRF_COOKIE_SAMESITE", "Lax")
SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_SSL_REDIRECT = _bool(os.getenv("SECURE_SSL_REDIRECT"), not DEBUG)
SECURE_HSTS_SECONDS = int(os.getenv("SECURE_HSTS_SECONDS", "0" if DEBUG else "3600"))
SECURE_HSTS_INCLUDE_SUBDOMAINS = _bool(os.getenv("SECURE_HSTS_INCLUDE_SUBDOMAINS"), True)
SECURE_HSTS_PRELOAD = _bool(os.getenv("SECURE_HSTS_PRELOAD"), False)
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_HTTPONLY = False


# === DEFAULTS ===
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
