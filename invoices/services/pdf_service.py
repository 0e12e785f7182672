"""
PDF Service - renders saved invoice layouts to PDF.

Responsibilities:
- Substituting placeholders into a saved HTML layout
- Rasterising the result with WeasyPrint (screen media, zero page margins)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence

from django.conf import settings

from invoices.errors import PDFRenderError
from invoices.services.template_rendering import build_pdf_context, render_template_string

if TYPE_CHECKING:
    from invoices.models import EmailSettings, Invoice, InvoiceTemplate, LineItem
    from invoices.services.financials import FinancialSummary

logger = logging.getLogger(__name__)

ZERO_MARGIN_CSS = "@page { margin: 0 }"


class PDFService:
    """Handles PDF generation for recurring invoice attachments."""

    @staticmethod
    def render_layout(
        layout: "InvoiceTemplate",
        invoice: "Invoice",
        items: Sequence["LineItem"],
        summary: "FinancialSummary",
        email_settings: Optional["EmailSettings"] = None,
    ) -> str:
        context = build_pdf_context(invoice, items, summary, email_settings)
        return render_template_string(layout.template_html, context, autoescape=True)

    @staticmethod
    def html_to_pdf(html_string: str) -> bytes:
        """
        Rasterise HTML to PDF bytes.

        Raises:
            PDFRenderError: If WeasyPrint is unavailable or rendering fails
        """
        try:
            from weasyprint import CSS, HTML
            from weasyprint.text.fonts import FontConfiguration
        except (ImportError, OSError) as e:
            raise PDFRenderError(
                "PDF generation is currently unavailable due to missing system dependencies.",
                cause=str(e),
            )

        font_config = FontConfiguration()
        html = HTML(
            string=html_string,
            base_url=getattr(settings, "SITE_URL", ""),
            media_type="screen",
        )
        try:
            return html.write_pdf(
                stylesheets=[CSS(string=ZERO_MARGIN_CSS, font_config=font_config)],
                font_config=font_config,
            )
        except Exception as e:
            raise PDFRenderError(cause=str(e))

    @staticmethod
    def generate_attachment(
        layout: Optional["InvoiceTemplate"],
        invoice: "Invoice",
        items: Sequence["LineItem"],
        summary: "FinancialSummary",
        email_settings: Optional["EmailSettings"] = None,
    ) -> tuple:
        """
        Render ``layout`` for ``invoice``.

        Returns ``(pdf_bytes, html)``; ``pdf_bytes`` is None when there is no
        layout or rendering failed for any reason.
        """
        if layout is None or not layout.template_html:
            return None, None

        try:
            html_string = PDFService.render_layout(layout, invoice, items, summary, email_settings)
            pdf_bytes = PDFService.html_to_pdf(html_string)
        except Exception as e:
            logger.warning(f"PDF attachment skipped for invoice {invoice.display_number}: {e}")
            return None, None

        logger.info(f"Generated PDF for invoice {invoice.display_number}")
        return pdf_bytes, html_string

    @staticmethod
    def get_invoice_filename(invoice: "Invoice") -> str:
        return f"invoice-{invoice.display_number}.pdf"
