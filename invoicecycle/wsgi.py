"""
InvoiceCycle - WSGI application (Django admin only).

The recurring scheduler does not run inside the web process unless
RECURRING_SCHEDULER_AUTOSTART is set; prefer the run_recurring_scheduler
management command for a dedicated worker.
"""

import os
import sys
import logging

logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "invoicecycle.settings")

try:
    from invoicecycle.env_validation import validate_env
    validate_env()
except Exception as e:
    logger.critical(f"Environment validation failed: {e}")
    sys.exit(1)

from django.core.wsgi import get_wsgi_application

application = get_wsgi_application()
