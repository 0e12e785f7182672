from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from invoices.services.activity_service import ActivityService
from invoices.services.cloning import InvoiceCloner
from invoices.services.date_cursor import next_occurrence
from invoices.services.delivery import DeliveryOutcome, DeliveryPipeline
from invoices.services.numbering import next_invoice_number

if TYPE_CHECKING:
    from django.contrib.auth.models import User
    from invoices.models import EmailTemplate, Invoice, InvoiceTemplate

logger = logging.getLogger(__name__)

ANCHOR_FIELDS = ('day_of_month', 'day_of_week', 'month_of_year', 'quarter_month', 'recurring_time')


def _advance(template: "Invoice", current: datetime, frequency: Optional[str] = None) -> datetime:
    return next_occurrence(
        current,
        frequency or template.recurring_frequency,
        day_of_month=template.day_of_month,
        day_of_week=template.day_of_week,
        month_of_year=template.month_of_year,
        quarter_month=template.quarter_month,
        time_of_day=template.recurring_time,
    )


class RecurringInvoiceGenerator:
    """Finds due recurring invoices and generates their next occurrence."""

    COMPLETED = 'completed'
    GENERATED = 'generated'

    @staticmethod
    def get_due_invoices(now: Optional[datetime] = None) -> List["Invoice"]:
        from invoices.models import Invoice
        now = now or timezone.now()
        return list(
            Invoice.objects.filter(
                is_recurring=True,
                next_recurring_date__isnull=False,
                next_recurring_date__lte=now,
            )
            .filter(Q(recurring_end_date__isnull=True) | Q(recurring_end_date__gte=now))
            .select_related('user', 'email_template', 'invoice_template')
            .prefetch_related('items')
            .order_by('next_recurring_date')
        )

    @staticmethod
    def complete_series(template: "Invoice") -> None:
        template.is_recurring = False
        template.next_recurring_date = None
        template.save(update_fields=['is_recurring', 'next_recurring_date', 'updated_at'])

        ActivityService.record(
            template.user_id,
            'recurring_stopped',
            f"Recurring invoice completed for {template.client} "
            f"after {template.recurring_count} invoices",
            template.id,
            {
                'client': template.client,
                'frequency': template.recurring_frequency,
                'reason': 'max_recurrences_reached',
                'count': template.recurring_count,
            },
        )
        logger.info(
            f"Recurring invoice {template.id} reached {template.max_recurrences} occurrences, series completed"
        )

    @staticmethod
    def process_invoice(
        template: "Invoice",
        now: Optional[datetime] = None,
    ) -> Tuple[str, Optional["Invoice"], Optional[DeliveryOutcome]]:
        """
        Run one occurrence for a due template.

        Returns ``(status, generated_invoice, delivery_outcome)``. Exceptions
        raised before the clone is written propagate to the caller without
        advancing the template's cursor. Once the clone exists the cursor
        always advances, whatever delivery does.
        """
        now = now or timezone.now()

        if template.has_reached_max_recurrences:
            RecurringInvoiceGenerator.complete_series(template)
            return RecurringInvoiceGenerator.COMPLETED, None, None

        invoice_number = next_invoice_number()
        items = list(template.items.all())
        summary = InvoiceCloner.summarize(template, items)
        generated, cloned_items = InvoiceCloner.clone(
            template, invoice_number, now, items=items, summary=summary
        )

        ActivityService.record(
            template.user_id,
            'recurring_auto_generated',
            f"Recurring invoice auto-generated for {generated.client} "
            f"({generated.currency_symbol}{generated.total_amount:.2f})",
            generated.id,
            {
                'client': generated.client,
                'totalAmount': generated.total_amount,
                'currency': generated.currency,
                'frequency': template.recurring_frequency,
                'count': template.recurring_count + 1,
                'parentInvoiceId': template.id,
            },
        )

        outcome = None
        if template.auto_send_email:
            try:
                outcome = DeliveryPipeline.deliver(template, generated, cloned_items, summary)
            except Exception as e:
                logger.exception(f"Delivery of {invoice_number} aborted")
                outcome = DeliveryOutcome(sent=False, reason='delivery-error', error=str(e))

        template.next_recurring_date = _advance(template, template.next_recurring_date)
        template.recurring_count += 1
        template.save(update_fields=['next_recurring_date', 'recurring_count', 'updated_at'])

        logger.info(
            f"Generated {invoice_number} from recurring invoice {template.id}; "
            f"next occurrence {template.next_recurring_date.isoformat()}"
        )
        return RecurringInvoiceGenerator.GENERATED, generated, outcome

    @staticmethod
    def process_due_invoices(now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or timezone.now()
        due = RecurringInvoiceGenerator.get_due_invoices(now)

        results = {
            'total': len(due),
            'generated': 0,
            'sent': 0,
            'delivery_failed': 0,
            'completed': 0,
            'failed': 0,
        }

        for template in due:
            try:
                status, _, outcome = RecurringInvoiceGenerator.process_invoice(template, now)
            except Exception as e:
                logger.exception(f"Error processing recurring invoice {template.id}")
                results['failed'] += 1
                ActivityService.record(
                    template.user_id,
                    'recurring_failed',
                    f"Failed to generate recurring invoice for {template.client}",
                    template.id,
                    {'client': template.client, 'error': str(e)},
                )
                continue

            if status == RecurringInvoiceGenerator.COMPLETED:
                results['completed'] += 1
                continue

            results['generated'] += 1
            if outcome is not None:
                if outcome.sent:
                    results['sent'] += 1
                else:
                    results['delivery_failed'] += 1

        if due:
            logger.info(
                f"Recurring cycle finished: {results['generated']} generated, "
                f"{results['sent']} sent, {results['delivery_failed']} delivery failures, "
                f"{results['completed']} completed, {results['failed']} failed "
                f"(of {results['total']} due)"
            )
        return results


class RecurringInvoiceService:
    """Lifecycle operations on recurring invoice templates."""

    @staticmethod
    def get_recurring_invoices(user: "User") -> List["Invoice"]:
        from invoices.models import Invoice
        return list(
            Invoice.objects.filter(user=user, is_recurring=True)
            .prefetch_related('items')
            .order_by('next_recurring_date')
        )

    @staticmethod
    def get_recurring_history(template: "Invoice") -> List["Invoice"]:
        return list(
            template.child_invoices.filter(user_id=template.user_id)
            .prefetch_related('items')
            .order_by('-created_at')
        )

    @staticmethod
    @transaction.atomic
    def start_recurring(
        invoice: "Invoice",
        frequency: str = 'monthly',
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        max_recurrences: Optional[int] = None,
        auto_send_email: bool = True,
        email_template: Optional["EmailTemplate"] = None,
        invoice_template: Optional["InvoiceTemplate"] = None,
        day_of_month: Optional[int] = None,
        day_of_week: Optional[int] = None,
        month_of_year: Optional[int] = None,
        quarter_month: Optional[int] = None,
        recurring_time: Optional[str] = None,
    ) -> Tuple[bool, str]:
        from invoices.models import Invoice

        if frequency not in Invoice.Frequency.values:
            return False, f"Unsupported frequency: {frequency}"

        start_date = start_date or invoice.date or timezone.now()
        if end_date and end_date < start_date:
            return False, "End date must be after the start date."

        try:
            invoice.is_recurring = True
            invoice.recurring_frequency = frequency
            invoice.recurring_start_date = start_date
            invoice.recurring_end_date = end_date
            invoice.max_recurrences = max_recurrences
            invoice.auto_send_email = auto_send_email
            invoice.email_template = email_template
            invoice.invoice_template = invoice_template
            invoice.day_of_month = day_of_month
            invoice.day_of_week = day_of_week
            invoice.month_of_year = month_of_year
            invoice.quarter_month = quarter_month
            invoice.recurring_time = recurring_time
            invoice.recurring_count = 0
            invoice.next_recurring_date = _advance(invoice, start_date)
            invoice.full_clean(exclude=['user', 'email_template', 'invoice_template', 'parent_invoice'])
            invoice.save()
        except Exception as e:
            logger.exception(f"Error starting recurring invoice {invoice.id}")
            return False, f"Error starting recurring invoice: {str(e)}"

        ActivityService.record(
            invoice.user_id,
            'recurring_started',
            f"Recurring invoice started for {invoice.client} ({frequency})",
            invoice.id,
            {'client': invoice.client, 'frequency': frequency, 'autoSendEmail': auto_send_email},
        )
        logger.info(f"Started recurring invoice {invoice.id} ({frequency})")
        return True, "Recurring invoice created successfully."

    @staticmethod
    @transaction.atomic
    def update_recurring_settings(invoice: "Invoice", data: Dict[str, Any]) -> Tuple[bool, str]:
        from invoices.models import Invoice

        frequency = data.get('recurring_frequency')
        if frequency is not None and frequency not in Invoice.Frequency.values:
            return False, f"Unsupported frequency: {frequency}"

        updatable_fields = [
            'recurring_frequency', 'recurring_end_date', 'max_recurrences',
            'auto_send_email', 'is_recurring', 'email_template', 'invoice_template',
        ] + list(ANCHOR_FIELDS)

        old_values = {}
        new_values = {}
        for field in updatable_fields:
            if field in data:
                old_val = getattr(invoice, field)
                new_val = data[field]
                if old_val != new_val:
                    old_values[field] = str(old_val) if old_val is not None else None
                    new_values[field] = str(new_val) if new_val is not None else None
                    setattr(invoice, field, new_val)

        try:
            if frequency and invoice.next_recurring_date:
                invoice.next_recurring_date = _advance(invoice, invoice.next_recurring_date, frequency)
            if data.get('is_recurring') is False:
                invoice.next_recurring_date = None
            invoice.full_clean(exclude=['user', 'email_template', 'invoice_template', 'parent_invoice'])
            invoice.save()
        except Exception as e:
            logger.exception(f"Error updating recurring invoice {invoice.id}")
            return False, f"Error updating recurring invoice: {str(e)}"

        if old_values:
            ActivityService.record(
                invoice.user_id,
                'recurring_updated',
                f"Recurring invoice settings updated for {invoice.client}",
                invoice.id,
                {'old_values': old_values, 'new_values': new_values},
            )
        logger.info(f"Updated recurring invoice {invoice.id}")
        return True, "Recurring invoice settings updated successfully."

    @staticmethod
    @transaction.atomic
    def stop_recurring(invoice: "Invoice", reason: str = 'stopped') -> Tuple[bool, str]:
        if not invoice.is_recurring:
            return False, "Invoice is not recurring."

        invoice.is_recurring = False
        invoice.next_recurring_date = None
        invoice.save(update_fields=['is_recurring', 'next_recurring_date', 'updated_at'])

        ActivityService.record(
            invoice.user_id,
            'recurring_stopped',
            f"Recurring invoice stopped for {invoice.client}",
            invoice.id,
            {'client': invoice.client, 'frequency': invoice.recurring_frequency, 'reason': reason},
        )
        logger.info(f"Stopped recurring invoice {invoice.id} ({reason})")
        return True, "Recurring invoice stopped successfully."

    @staticmethod
    @transaction.atomic
    def delete_recurring_invoice(invoice: "Invoice") -> Tuple[bool, str, int]:
        """Stop the series, delete its generated invoices, then the template itself."""
        client = invoice.client
        invoice_id = invoice.id
        user_id = invoice.user_id
        frequency = invoice.recurring_frequency

        children = invoice.child_invoices.filter(user_id=user_id)
        child_count = children.count()
        if invoice.is_recurring:
            invoice.is_recurring = False
            invoice.next_recurring_date = None
            invoice.save(update_fields=['is_recurring', 'next_recurring_date', 'updated_at'])
            ActivityService.record(
                user_id,
                'recurring_stopped',
                f"Recurring invoice stopped for {client} (invoice deleted) - "
                f"{child_count} child invoices also deleted",
                invoice_id,
                {
                    'client': client,
                    'frequency': frequency,
                    'reason': 'invoice_deleted',
                    'childInvoicesDeleted': child_count,
                },
            )
        children.delete()
        invoice.delete()

        ActivityService.record(
            user_id,
            'invoice_deleted',
            f"Invoice deleted for {client}",
            invoice_id,
            {'client': client, 'childInvoicesDeleted': child_count},
        )
        logger.info(f"Deleted recurring invoice {invoice_id} and {child_count} generated invoices")
        return True, "Recurring invoice deleted successfully.", child_count
