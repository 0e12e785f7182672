import atexit
import logging
import sys

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)

# Commands that must never spin up the background loop
NO_SCHEDULER_COMMANDS = {
    "migrate", "makemigrations", "collectstatic", "shell", "test",
    "process_recurring_invoices", "run_recurring_scheduler",
}


class InvoicesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "invoices"

    def ready(self):
        if not getattr(settings, "RECURRING_SCHEDULER_AUTOSTART", False):
            return
        if len(sys.argv) > 1 and sys.argv[1] in NO_SCHEDULER_COMMANDS:
            return

        from invoices.scheduler import start_scheduler

        scheduler = start_scheduler()
        atexit.register(scheduler.stop, 5)
        logger.info("Recurring invoice scheduler autostarted")
