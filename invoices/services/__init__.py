"""
InvoiceCycle Services Layer

- Models: pure data + constraints
- Services: recurrence, cloning, delivery and audit logic
- Scheduler / management commands: drive the services on a timer

All recurring invoice behaviour flows through these services.
"""

from .activity_service import ActivityService
from .cloning import InvoiceCloner
from .date_cursor import next_occurrence
from .delivery import DeliveryOutcome, DeliveryPipeline
from .numbering import next_invoice_number
from .pdf_service import PDFService
from .recurring_service import RecurringInvoiceGenerator, RecurringInvoiceService

__all__ = [
    "ActivityService",
    "InvoiceCloner",
    "next_occurrence",
    "DeliveryOutcome",
    "DeliveryPipeline",
    "next_invoice_number",
    "PDFService",
    "RecurringInvoiceGenerator",
    "RecurringInvoiceService",
]
