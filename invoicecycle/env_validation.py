import os
import logging
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

# Mandatory environment variables for production
REQUIRED_PRODUCTION_ENV_VARS = [
    "SECRET_KEY",
    "DATABASE_URL",
]

# At least one of these must be present for the platform default sender
DEFAULT_SENDER_ENV_VARS = [
    "DEFAULT_DELIVERY_EMAIL",
    "EMAIL_USER",
]


def validate_env():
    """
    Validate critical environment variables for Django settings.
    Runs once per process; subsequent calls are idempotent.
    """
    is_production = os.getenv("PRODUCTION", "false").lower() == "true"

    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        if is_production:
            raise ImproperlyConfigured("CRITICAL: SECRET_KEY is required in production.")
        else:
            logger.warning("SECRET_KEY not set, using insecure default for development.")

    if is_production:
        missing = [var for var in REQUIRED_PRODUCTION_ENV_VARS if not os.getenv(var)]
        if missing:
            error_msg = f"CRITICAL: Missing required environment variables in production: {', '.join(missing)}"
            logger.critical(error_msg)
            raise ImproperlyConfigured(error_msg)

        if secret_key and (secret_key.startswith("django-insecure") or len(secret_key) < 50):
            error_msg = "CRITICAL: SECRET_KEY must be a long, secure string in production"
            logger.critical(error_msg)
            raise ImproperlyConfigured(error_msg)

        if not any(os.getenv(var) for var in DEFAULT_SENDER_ENV_VARS):
            # Users on the "default" delivery method will get failed sends.
            logger.warning("No platform default sender configured; default email delivery is disabled.")

    interval = os.getenv("RECURRING_SCHEDULER_INTERVAL_MINUTES")
    if interval is not None:
        try:
            if int(interval) <= 0:
                raise ValueError(interval)
        except ValueError:
            raise ImproperlyConfigured(
                f"RECURRING_SCHEDULER_INTERVAL_MINUTES must be a positive integer, got {interval!r}"
            )

    logger.info("Environment validation passed successfully")
