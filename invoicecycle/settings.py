"""
InvoiceCycle – Django settings for the recurring invoice engine.
"""

from pathlib import Path
import os
import environ
import dj_database_url

# =============================================================================
# BASE SETUP
# =============================================================================
BASE_DIR = Path(__file__).resolve().parent.parent
env = environ.Env(
    DEBUG=(bool, True),
    PRODUCTION=(bool, False),
    RECURRING_TEST_MODE=(bool, False),
    RECURRING_SCHEDULER_AUTOSTART=(bool, False),
    RECURRING_SCHEDULER_INTERVAL_MINUTES=(int, 60),
    RECURRING_EMAIL_TIMEOUT=(int, 30),
)

env_file = BASE_DIR / ".env"
if env_file.exists():
    environ.Env.read_env(str(env_file))

IS_PRODUCTION = env("PRODUCTION")
DEBUG = env("DEBUG") and not IS_PRODUCTION

# =============================================================================
# ENVIRONMENT VALIDATION (FAIL-FAST)
# =============================================================================
from invoicecycle.env_validation import validate_env
validate_env()

# =============================================================================
# SECURITY
# =============================================================================
SECRET_KEY = env("SECRET_KEY", default="django-insecure-dev-only-change-in-production")

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["*"] if not IS_PRODUCTION else [])
SITE_URL = env("SITE_URL", default="http://localhost:8000")

# Structured Logging
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'structured': {
            'format': '[%(asctime)s] %(levelname)s [%(name)s:%(lineno)s] [cycle=%(cycle_id)s] %(message)s',
        },
    },
    'filters': {
        'cycle_id': {
            '()': 'invoicecycle.logging_filters.CycleIDFilter',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'structured',
            'filters': ['cycle_id'],
        },
    },
    'root': {
        'handlers': ['console'],
        'level': env("LOG_LEVEL", default="INFO"),
    },
    'loggers': {
        'weasyprint': {'level': 'ERROR'},
        'fontTools': {'level': 'ERROR'},
    },
}

# =============================================================================
# INSTALLED APPS
# =============================================================================
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "invoices.apps.InvoicesConfig",
]

# =============================================================================
# DATABASE
# =============================================================================
DATABASES = {
    "default": dj_database_url.config(
        default="sqlite:///" + str(BASE_DIR / "db.sqlite3"),
        conn_max_age=600,
        conn_health_checks=True,
        ssl_require=IS_PRODUCTION,
    )
}

# =============================================================================
# MIDDLEWARE / TEMPLATES (admin only)
# =============================================================================
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "invoicecycle.urls"
WSGI_APPLICATION = "invoicecycle.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "UTC"

# =============================================================================
# EMAIL
# =============================================================================
EMAIL_BACKEND = env("EMAIL_BACKEND", default="django.core.mail.backends.smtp.EmailBackend")
RECURRING_EMAIL_TIMEOUT = env("RECURRING_EMAIL_TIMEOUT")

# Platform default sender, used when a user picks "default" delivery or has
# no usable SMTP credentials of their own.
RECURRING_DEFAULT_SENDER = {
    "email": os.getenv("DEFAULT_DELIVERY_EMAIL") or os.getenv("EMAIL_USER"),
    "password": os.getenv("DEFAULT_DELIVERY_PASSWORD") or os.getenv("EMAIL_PASSWORD"),
    "from_address": (
        os.getenv("DEFAULT_DELIVERY_FROM")
        or os.getenv("EMAIL_FROM")
        or os.getenv("DEFAULT_DELIVERY_EMAIL")
        or os.getenv("EMAIL_USER")
    ),
    "host": os.getenv("DEFAULT_DELIVERY_HOST") or os.getenv("EMAIL_HOST"),
    "port": os.getenv("DEFAULT_DELIVERY_PORT") or os.getenv("EMAIL_PORT"),
    "service": os.getenv("DEFAULT_DELIVERY_SERVICE") or os.getenv("EMAIL_SERVICE"),
    "secure": (os.getenv("DEFAULT_DELIVERY_SECURE") or os.getenv("EMAIL_SECURE") or "false").lower() == "true",
}

# =============================================================================
# RECURRING INVOICES
# =============================================================================
INVOICE_NUMBER_PREFIX = env("INVOICE_NUMBER_PREFIX", default="INV")
INVOICE_NUMBER_PADDING = env.int("INVOICE_NUMBER_PADDING", default=4)

RECURRING_TEST_MODE = env("RECURRING_TEST_MODE")
RECURRING_SCHEDULER_AUTOSTART = env("RECURRING_SCHEDULER_AUTOSTART")
RECURRING_SCHEDULER_INTERVAL_MINUTES = env("RECURRING_SCHEDULER_INTERVAL_MINUTES")
RECURRING_TEST_INTERVAL_SECONDS = 10
