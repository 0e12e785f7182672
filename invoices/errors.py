"""Error types raised by the recurring invoice engine."""

from typing import Any, Optional


class RecurringBillingError(Exception):
    """Base error with a stable code and keyword context."""

    error_code = "RECURRING_ERROR"
    message = "Recurring invoice processing failed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.message
        self.context = context
        super().__init__(self.message)


class InvoiceIntegrityError(RecurringBillingError):
    """A source line item is missing its description or total."""
    error_code = "INVOICE_INTEGRITY"
    message = "Invalid line item data"


class DeliveryConfigurationError(RecurringBillingError):
    """No usable sender identity for the invoice owner."""
    error_code = "DELIVERY_NOT_CONFIGURED"
    message = "Email settings not found or incomplete"


class PDFRenderError(RecurringBillingError):
    """The PDF renderer is unavailable or failed."""
    error_code = "PDF_RENDER_FAILED"
    message = "PDF generation failed"
