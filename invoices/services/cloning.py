from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from django.db import transaction
from django.utils import timezone

from invoices.errors import InvoiceIntegrityError
from invoices.services.financials import FinancialSummary, build_financial_summary

if TYPE_CHECKING:
    from invoices.models import Invoice, LineItem

logger = logging.getLogger(__name__)


class InvoiceCloner:
    """Creates point-in-time copies of recurring invoice templates."""

    @staticmethod
    def validate_items(items: Sequence["LineItem"]) -> None:
        for item in items:
            if not item.description or item.total is None:
                raise InvoiceIntegrityError(
                    f"Invalid line item data: description={item.description!r}, total={item.total}",
                    line_item_id=item.pk,
                )

    @staticmethod
    def summarize(template: "Invoice", items: Optional[Sequence["LineItem"]] = None) -> FinancialSummary:
        if items is None:
            items = list(template.items.all())
        return build_financial_summary(items, template.custom_fields, template.total_amount)

    @staticmethod
    def clone(
        template: "Invoice",
        invoice_number: str,
        now: Optional[datetime] = None,
        items: Optional[Sequence["LineItem"]] = None,
        summary: Optional[FinancialSummary] = None,
    ) -> Tuple["Invoice", List["LineItem"]]:
        """
        Copy ``template`` into a new draft invoice with its own line items.

        Only structural line item fields that are set on the source are
        copied. Raises ``InvoiceIntegrityError`` before anything is written
        when a source item lacks a description or total. A ``summary`` already
        computed for ``items`` is reused.
        """
        from invoices.models import Invoice, LineItem

        now = now or timezone.now()
        if items is None:
            items = list(template.items.all())
        InvoiceCloner.validate_items(items)
        if summary is None:
            summary = InvoiceCloner.summarize(template, items)

        with transaction.atomic():
            clone = Invoice.objects.create(
                user_id=template.user_id,
                invoice_number=invoice_number,
                client=template.client,
                client_email=template.client_email,
                date=now,
                work_type=template.work_type,
                currency=template.currency,
                total_amount=summary.total,
                status=Invoice.Status.DRAFT,
                parent_invoice=template,
                is_recurring=False,
                is_first_recurring_invoice=template.recurring_count == 0,
                custom_fields=summary.custom_fields,
                item_structure=template.item_structure or Invoice.ItemStructure.HOURLY,
            )

            cloned_items = []
            for item in items:
                data = {"description": item.description, "total": item.total}
                for field_name in LineItem.STRUCTURE_FIELDS:
                    value = getattr(item, field_name)
                    if value is not None:
                        data[field_name] = value
                cloned_items.append(LineItem.objects.create(invoice=clone, **data))

        logger.info(
            f"Cloned recurring invoice {template.id} into {invoice_number} "
            f"({len(cloned_items)} items, total {summary.total})"
        )
        return clone, cloned_items
