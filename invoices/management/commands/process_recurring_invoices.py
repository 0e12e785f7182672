import logging
import uuid
from datetime import datetime, timezone as dt_timezone

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from invoicecycle.logging_filters import cycle_context
from invoices.services.recurring_service import RecurringInvoiceGenerator

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Run one recurring invoice cycle: generate, send and advance every due invoice"

    def add_arguments(self, parser):
        parser.add_argument(
            '--now',
            type=str,
            help='Reference time for due detection (ISO 8601). Defaults to the current time.',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List due recurring invoices without generating anything.',
        )

    def _parse_now(self, value):
        if not value:
            return timezone.now()
        try:
            parsed = parse_datetime(value) or datetime.fromisoformat(value)
        except ValueError:
            raise CommandError(f"Invalid --now value: {value}")
        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed, dt_timezone.utc)
        return parsed

    def handle(self, *args, **options):
        now = self._parse_now(options['now'])

        self.stdout.write(f"Processing recurring invoices due at {now.isoformat()}")

        if options['dry_run']:
            invoices = RecurringInvoiceGenerator.get_due_invoices(now)
            self.stdout.write(f"[DRY RUN] Found {len(invoices)} recurring invoices due for processing:")
            for invoice in invoices:
                self.stdout.write(
                    f"  - {invoice.id}: {invoice.client} ({invoice.recurring_frequency}) "
                    f"next {invoice.next_recurring_date.isoformat()} "
                    f"[{invoice.recurring_count}/{invoice.max_recurrences or '-'}]"
                )
            return

        with cycle_context(uuid.uuid4().hex[:8]):
            results = RecurringInvoiceGenerator.process_due_invoices(now)

        self.stdout.write(self.style.SUCCESS(
            f"Processing complete: "
            f"{results['generated']} generated, "
            f"{results['sent']} sent, "
            f"{results['delivery_failed']} delivery failures, "
            f"{results['completed']} completed, "
            f"{results['failed']} failed "
            f"(of {results['total']} due)"
        ))

        if results['failed'] > 0:
            self.stdout.write(self.style.WARNING(
                f"Check logs for details on {results['failed']} failed recurring invoices."
            ))
