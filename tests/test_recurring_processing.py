"""
Recurring invoice cycle: due detection, caps, failure isolation and the
monthly end-to-end flow.
"""
from datetime import datetime, timezone
from decimal import Decimal
from smtplib import SMTPException
from unittest.mock import patch

import pytest

from invoices.errors import InvoiceIntegrityError
from invoices.models import Activity, Invoice
from invoices.services.cloning import InvoiceCloner
from invoices.services.financials import VAT_FIELD_KEY, build_financial_summary
from invoices.services.recurring_service import RecurringInvoiceGenerator
from tests.factories import EmailSettingsFactory, LineItemFactory, RecurringInvoiceFactory


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.mark.django_db
class TestGetDueInvoices:
    def test_selects_only_due_active_series(self, now):
        due = RecurringInvoiceFactory(next_recurring_date=utc(2024, 1, 15, 9))
        RecurringInvoiceFactory(next_recurring_date=utc(2024, 1, 17, 9))
        RecurringInvoiceFactory(is_recurring=False, next_recurring_date=utc(2024, 1, 1))
        RecurringInvoiceFactory(next_recurring_date=None)

        assert [i.id for i in RecurringInvoiceGenerator.get_due_invoices(now)] == [due.id]

    def test_respects_end_date(self, now):
        open_ended = RecurringInvoiceFactory(recurring_end_date=None)
        still_running = RecurringInvoiceFactory(recurring_end_date=utc(2024, 6, 1))
        RecurringInvoiceFactory(recurring_end_date=utc(2024, 1, 10))

        found = {i.id for i in RecurringInvoiceGenerator.get_due_invoices(now)}
        assert found == {open_ended.id, still_running.id}

    def test_due_exactly_now(self):
        template = RecurringInvoiceFactory(next_recurring_date=utc(2024, 1, 15, 9))
        assert RecurringInvoiceGenerator.get_due_invoices(utc(2024, 1, 15, 9)) == [template]


@pytest.mark.django_db
class TestProcessDueInvoices:
    def test_monthly_end_to_end(self, now):
        template = RecurringInvoiceFactory(
            recurring_frequency=Invoice.Frequency.MONTHLY,
            day_of_month=15,
            recurring_start_date=utc(2024, 1, 15),
            next_recurring_date=utc(2024, 1, 15, 9),
        )
        LineItemFactory(invoice=template)

        assert RecurringInvoiceGenerator.get_due_invoices(now) == [template]
        results = RecurringInvoiceGenerator.process_due_invoices(now)

        assert results == {
            "total": 1, "generated": 1, "sent": 0, "delivery_failed": 0, "completed": 0, "failed": 0,
        }
        generated = Invoice.objects.get(parent_invoice=template)
        assert generated.status == Invoice.Status.DRAFT
        assert generated.invoice_number == "INV-0001"
        assert generated.is_first_recurring_invoice is True
        assert generated.items.count() == 1

        template.refresh_from_db()
        assert template.next_recurring_date == utc(2024, 2, 15, 9)
        assert template.recurring_count == 1
        assert template.is_recurring is True

        activity = Activity.objects.get(activity_type="recurring_auto_generated")
        assert activity.invoice_id == generated.id
        assert activity.text == f"Recurring invoice auto-generated for {template.client} ($100.00)"

    def test_sequential_numbers_across_templates(self, now):
        first = RecurringInvoiceFactory(next_recurring_date=utc(2024, 1, 10))
        second = RecurringInvoiceFactory(next_recurring_date=utc(2024, 1, 12))
        LineItemFactory(invoice=first)
        LineItemFactory(invoice=second)

        RecurringInvoiceGenerator.process_due_invoices(now)

        assert Invoice.objects.get(parent_invoice=first).invoice_number == "INV-0001"
        assert Invoice.objects.get(parent_invoice=second).invoice_number == "INV-0002"

    def test_cap_reached_completes_series_without_cloning(self, now):
        template = RecurringInvoiceFactory(max_recurrences=3, recurring_count=3)
        LineItemFactory(invoice=template)

        results = RecurringInvoiceGenerator.process_due_invoices(now)

        assert results["completed"] == 1
        assert results["generated"] == 0
        assert not Invoice.objects.filter(parent_invoice=template).exists()
        template.refresh_from_db()
        assert template.is_recurring is False
        assert template.next_recurring_date is None
        assert template.recurring_count == 3
        stopped = Activity.objects.get(activity_type="recurring_stopped")
        assert stopped.metadata["reason"] == "max_recurrences_reached"

    def test_last_allowed_occurrence_still_generates(self, now):
        template = RecurringInvoiceFactory(max_recurrences=3, recurring_count=2)
        LineItemFactory(invoice=template)

        RecurringInvoiceGenerator.process_due_invoices(now)

        template.refresh_from_db()
        assert template.recurring_count == 3
        assert template.is_recurring is True
        assert Invoice.objects.filter(parent_invoice=template).count() == 1

    def test_delivery_failure_still_advances_cursor(self, user, now):
        EmailSettingsFactory(user=user)
        template = RecurringInvoiceFactory(user=user, auto_send_email=True)
        LineItemFactory(invoice=template)

        with patch("invoices.services.delivery.EmailMessage.send", side_effect=SMTPException("550 rejected")):
            results = RecurringInvoiceGenerator.process_due_invoices(now)

        assert results["generated"] == 1
        assert results["delivery_failed"] == 1
        generated = Invoice.objects.get(parent_invoice=template)
        assert generated.status == Invoice.Status.DRAFT
        template.refresh_from_db()
        assert template.next_recurring_date == utc(2024, 2, 15, 9)
        assert template.recurring_count == 1

    def test_missing_sender_still_advances_cursor(self, now):
        template = RecurringInvoiceFactory(auto_send_email=True)
        LineItemFactory(invoice=template)

        results = RecurringInvoiceGenerator.process_due_invoices(now)

        assert results["delivery_failed"] == 1
        template.refresh_from_db()
        assert template.recurring_count == 1
        assert Activity.objects.filter(activity_type="recurring_failed").count() == 1

    def test_successful_send_counts_as_sent(self, user, now, mailoutbox):
        EmailSettingsFactory(user=user)
        template = RecurringInvoiceFactory(user=user, auto_send_email=True)
        LineItemFactory(invoice=template)

        results = RecurringInvoiceGenerator.process_due_invoices(now)

        assert results["sent"] == 1
        assert len(mailoutbox) == 1
        assert Invoice.objects.get(parent_invoice=template).status == Invoice.Status.SENT

    def test_auto_send_disabled_skips_delivery(self, user, now, mailoutbox):
        EmailSettingsFactory(user=user)
        template = RecurringInvoiceFactory(user=user, auto_send_email=False)
        LineItemFactory(invoice=template)

        results = RecurringInvoiceGenerator.process_due_invoices(now)

        assert results["sent"] == 0
        assert results["delivery_failed"] == 0
        assert mailoutbox == []

    def test_failure_is_isolated_per_template(self, now):
        broken = RecurringInvoiceFactory(next_recurring_date=utc(2024, 1, 10))
        healthy = RecurringInvoiceFactory(next_recurring_date=utc(2024, 1, 11))
        LineItemFactory(invoice=broken)
        LineItemFactory(invoice=healthy)

        original_validate = InvoiceCloner.validate_items

        def validate(items):
            if items and items[0].invoice_id == broken.id:
                raise InvoiceIntegrityError("broken item")
            return original_validate(items)

        with patch("invoices.services.cloning.InvoiceCloner.validate_items", side_effect=validate):
            results = RecurringInvoiceGenerator.process_due_invoices(now)

        assert results["failed"] == 1
        assert results["generated"] == 1
        broken.refresh_from_db()
        healthy.refresh_from_db()
        assert broken.recurring_count == 0
        assert broken.next_recurring_date == utc(2024, 1, 10)
        assert not Invoice.objects.filter(parent_invoice=broken).exists()
        assert healthy.recurring_count == 1
        failure = Activity.objects.get(activity_type="recurring_failed", invoice_id=broken.id)
        assert "broken item" in failure.metadata["error"]

    def test_vat_recomputed_on_generation(self, now):
        template = RecurringInvoiceFactory(
            total_amount=Decimal("100.00"),
            custom_fields={VAT_FIELD_KEY: {"enabled": True, "rate": 10}},
        )
        LineItemFactory(invoice=template, total=Decimal("70.00"))
        LineItemFactory(invoice=template, total=Decimal("30.00"))

        RecurringInvoiceGenerator.process_due_invoices(now)

        generated = Invoice.objects.get(parent_invoice=template)
        assert generated.total_amount == Decimal("110.00")
        assert generated.custom_fields[VAT_FIELD_KEY] == {
            "enabled": True, "rate": 10.0, "number": "", "amount": 10.0, "subtotal": 100.0,
        }

    def test_cursor_advances_from_stored_date_not_now(self):
        template = RecurringInvoiceFactory(
            recurring_frequency=Invoice.Frequency.WEEKLY,
            next_recurring_date=utc(2024, 1, 1, 9),
        )
        LineItemFactory(invoice=template)

        RecurringInvoiceGenerator.process_due_invoices(utc(2024, 1, 20))

        template.refresh_from_db()
        assert template.next_recurring_date == utc(2024, 1, 8, 9)

    def test_no_due_invoices(self, now):
        results = RecurringInvoiceGenerator.process_due_invoices(now)
        assert results["total"] == 0

    def test_delivery_crash_after_clone_still_advances_cursor(self, now):
        template = RecurringInvoiceFactory(auto_send_email=True)
        LineItemFactory(invoice=template)

        with patch(
            "invoices.services.recurring_service.DeliveryPipeline.deliver",
            side_effect=RuntimeError("connection reset"),
        ):
            first = RecurringInvoiceGenerator.process_due_invoices(now)
            second = RecurringInvoiceGenerator.process_due_invoices(now)

        assert first["generated"] == 1
        assert first["delivery_failed"] == 1
        assert first["failed"] == 0
        assert second["total"] == 0
        assert Invoice.objects.filter(parent_invoice=template).count() == 1
        template.refresh_from_db()
        assert template.recurring_count == 1
        assert template.next_recurring_date == utc(2024, 2, 15, 9)

    def test_unusable_default_sender_port_generates_once(self, settings, now):
        settings.RECURRING_DEFAULT_SENDER = {
            "email": "noreply@invoicecycle.test", "password": "pw", "from_address": None,
            "host": "smtp.invoicecycle.test", "port": "25a", "service": None, "secure": False,
        }
        template = RecurringInvoiceFactory(auto_send_email=True)
        LineItemFactory(invoice=template)

        first = RecurringInvoiceGenerator.process_due_invoices(now)
        RecurringInvoiceGenerator.process_due_invoices(now)

        assert first["generated"] == 1
        assert first["delivery_failed"] == 1
        assert Invoice.objects.filter(parent_invoice=template).count() == 1
        template.refresh_from_db()
        assert template.recurring_count == 1
        failure = Activity.objects.get(activity_type="recurring_failed")
        assert failure.metadata["reason"] == "invalid-default-env"

    def test_totals_computed_once_per_occurrence(self, now):
        template = RecurringInvoiceFactory()
        LineItemFactory(invoice=template)

        with patch(
            "invoices.services.cloning.build_financial_summary",
            wraps=build_financial_summary,
        ) as summary:
            RecurringInvoiceGenerator.process_due_invoices(now)

        assert summary.call_count == 1
