import logging

from django.core.management.base import BaseCommand

from invoices.scheduler import RecurringInvoiceScheduler

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Run the recurring invoice scheduler in the foreground until interrupted"

    def add_arguments(self, parser):
        parser.add_argument(
            '--interval',
            type=int,
            help='Seconds between cycles. Defaults to RECURRING_SCHEDULER_INTERVAL_MINUTES.',
        )
        parser.add_argument(
            '--fast',
            action='store_true',
            help='Use the short test-mode interval.',
        )

    def handle(self, *args, **options):
        interval = options['interval']
        if interval is not None and interval <= 0:
            self.stderr.write(self.style.ERROR("--interval must be a positive number of seconds"))
            return

        scheduler = RecurringInvoiceScheduler(
            interval_seconds=interval,
            fast=True if options['fast'] else None,
        )
        self.stdout.write(f"Recurring invoice scheduler running every {scheduler.interval_seconds}s")

        try:
            scheduler.run_forever()
        except KeyboardInterrupt:
            scheduler.stop()
            self.stdout.write(self.style.SUCCESS("Recurring invoice scheduler stopped"))
