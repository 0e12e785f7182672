"""
Delivery pipeline for generated recurring invoices.

Steps: resolve the sender identity, render subject and body, optionally
attach a PDF of the saved layout, send, then record the outcome. Every
failure is converted into a ``DeliveryOutcome``; nothing here raises to the
scheduler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

from django.core.mail import EmailMessage
from django.utils import timezone

from invoices.errors import DeliveryConfigurationError
from invoices.services.activity_service import ActivityService
from invoices.services.email_transport import DeliveryIdentity, build_connection, resolve_delivery_identity
from invoices.services.pdf_service import PDFService
from invoices.services.template_rendering import build_placeholder_context, render_template_string

if TYPE_CHECKING:
    from invoices.models import EmailSettings, Invoice, LineItem
    from invoices.services.financials import FinancialSummary

logger = logging.getLogger(__name__)


@dataclass
class DeliveryOutcome:
    sent: bool
    recipient: Optional[str] = None
    reason: str = ""
    error: str = ""
    pdf_attached: bool = False


class DeliveryPipeline:

    @staticmethod
    def _owned(obj, template: "Invoice"):
        if obj is not None and obj.user_id == template.user_id:
            return obj
        return None

    @staticmethod
    def build_content(
        template: "Invoice",
        invoice: "Invoice",
        email_settings: Optional["EmailSettings"] = None,
    ) -> Tuple[str, str]:
        """Subject and body from the saved email template, or the built-in text."""
        subject = f"Invoice {invoice.display_number} - {invoice.work_type or 'Your Invoice'}"
        body = (
            f"Please find attached your invoice #{invoice.display_number} "
            f"for {invoice.currency} {invoice.total_amount:.2f}."
        )

        email_template = DeliveryPipeline._owned(template.email_template, template)
        if email_template is not None:
            context = build_placeholder_context(invoice, email_settings)
            subject = render_template_string(email_template.subject, context)
            body = render_template_string(email_template.content, context)

        # Header values cannot span lines
        subject = " ".join(subject.split())
        return subject, body

    @staticmethod
    def send(
        identity: DeliveryIdentity,
        recipient: str,
        subject: str,
        body: str,
        attachment: Optional[Tuple[str, bytes]] = None,
    ) -> int:
        message = EmailMessage(
            subject=subject,
            body=body,
            from_email=identity.from_address,
            to=[recipient],
            cc=[identity.cc] if identity.cc else None,
            reply_to=[identity.reply_to] if identity.reply_to else None,
            connection=build_connection(identity),
        )
        if attachment:
            filename, content = attachment
            message.attach(filename, content, "application/pdf")
        return message.send(fail_silently=False)

    @staticmethod
    def _record_failure(template: "Invoice", invoice: "Invoice", error: str, reason: str = "") -> None:
        metadata = {"client": invoice.client, "error": error}
        if reason:
            metadata["reason"] = reason
        ActivityService.record(
            template.user_id,
            "recurring_failed",
            f"Failed to send recurring invoice email for {invoice.client}",
            invoice.id,
            metadata,
        )

    @staticmethod
    def deliver(
        template: "Invoice",
        invoice: "Invoice",
        items: Sequence["LineItem"],
        summary: "FinancialSummary",
    ) -> DeliveryOutcome:
        from invoices.models import EmailSettings, Invoice

        try:
            identity = resolve_delivery_identity(template.user)
        except Exception as e:
            logger.exception(f"Could not resolve sender for invoice {invoice.display_number}")
            DeliveryPipeline._record_failure(template, invoice, str(e), "identity-error")
            return DeliveryOutcome(sent=False, reason="identity-error", error=str(e))

        if not identity.ready:
            error = DeliveryConfigurationError(identity.error_message, reason=identity.reason)
            logger.warning(
                f"Skipping email for invoice {invoice.display_number}: {error.message} ({identity.reason})"
            )
            DeliveryPipeline._record_failure(template, invoice, error.message, identity.reason)
            return DeliveryOutcome(sent=False, reason=identity.reason, error=error.message)

        recipient = template.client_email or identity.from_address
        try:
            email_settings = EmailSettings.objects.filter(user_id=template.user_id).first()
            subject, body = DeliveryPipeline.build_content(template, invoice, email_settings)

            layout = DeliveryPipeline._owned(template.invoice_template, template)
            pdf_bytes, pdf_html = PDFService.generate_attachment(
                layout, invoice, items, summary, email_settings
            )
            attachment = None
            if pdf_bytes:
                attachment = (PDFService.get_invoice_filename(invoice), pdf_bytes)

            DeliveryPipeline.send(identity, recipient, subject, body, attachment)
        except Exception as e:
            logger.exception(f"Failed to send recurring invoice {invoice.display_number} to {recipient}")
            DeliveryPipeline._record_failure(template, invoice, str(e))
            return DeliveryOutcome(sent=False, recipient=recipient, reason="send-failed", error=str(e))

        invoice.status = Invoice.Status.SENT
        invoice.sent_at = timezone.now()
        update_fields = ["status", "sent_at", "updated_at"]
        if pdf_bytes:
            invoice.pdf_template_sent = True
            invoice.sent_template_html = pdf_html
            update_fields += ["pdf_template_sent", "sent_template_html"]
        invoice.save(update_fields=update_fields)

        ActivityService.record(
            template.user_id,
            "recurring_email_sent",
            f"Recurring invoice email sent to {invoice.client} ({recipient})",
            invoice.id,
            {
                "client": invoice.client,
                "recipient": recipient,
                "totalAmount": invoice.total_amount,
                "deliveryMethod": identity.delivery_method,
                "pdfAttached": bool(pdf_bytes),
            },
        )
        logger.info(f"Sent recurring invoice {invoice.display_number} to {recipient}")
        return DeliveryOutcome(sent=True, recipient=recipient, pdf_attached=bool(pdf_bytes))
