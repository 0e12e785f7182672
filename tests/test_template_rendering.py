from decimal import Decimal

import pytest
from django.template import TemplateSyntaxError

from invoices.services.cloning import InvoiceCloner
from invoices.services.pdf_service import PDFService
from invoices.services.template_rendering import (
    build_pdf_context, build_placeholder_context, render_template_string
)
from tests.factories import (
    InvoiceFactory, InvoiceTemplateFactory, LineItemFactory, UserProfileFactory
)


@pytest.mark.django_db
class TestPlaceholderContext:
    def test_snake_and_camel_keys(self, user):
        UserProfileFactory(user=user, company_name="Acme Studio", sort_code="12-34-56")
        invoice = InvoiceFactory(user=user, client="Wayne", invoice_number="INV-0009", work_type="Audit")

        context = build_placeholder_context(invoice)

        assert context["client_name"] == context["clientName"] == "Wayne"
        assert context["invoice_number"] == "INV-0009"
        assert context["company_name"] == "Acme Studio"
        assert context["sort_code"] == context["sortCode"] == "12-34-56"
        assert context["total_amount"] == "USD 100.00"
        assert context["currencySymbol"] == "$"
        assert context["work_type"] == "Audit"

    def test_defaults_without_profile(self, user):
        invoice = InvoiceFactory(user=user)
        context = build_placeholder_context(invoice)
        assert context["company_name"] == "Your Company"
        assert context["bank_name"] == ""

    def test_custom_fields_exposed_without_system_keys(self, user):
        invoice = InvoiceFactory(user=user, custom_fields={"PO Number": "77", "_systemVat": {"enabled": True}})
        context = build_placeholder_context(invoice)
        assert context["custom_po_number"] == "77"
        assert not any(key.startswith("custom__") for key in context)

    def test_pdf_context_carries_items_and_summary(self, user):
        invoice = InvoiceFactory(user=user, custom_fields={"_systemVat": {"enabled": True, "rate": 20}})
        LineItemFactory(invoice=invoice, description="Design", total=Decimal("200.00"))
        items = list(invoice.items.all())
        summary = InvoiceCloner.summarize(invoice, items)

        context = build_pdf_context(invoice, items, summary)

        assert context["subtotal"] == "200.00"
        assert context["vatAmount"] == "40.00"
        assert context["totalAmount"] == "240.00"
        assert context["total_amount"] == "$240.00"
        assert context["tasks"][0]["description"] == "Design"
        assert context["tasks"][0]["hours"] == Decimal("5.00")


class TestRenderTemplateString:
    def test_plain_text_is_not_escaped(self):
        assert render_template_string("{{ name }}", {"name": "Ben & Jerry's"}) == "Ben & Jerry's"

    def test_html_escaping_on_request(self):
        assert render_template_string("{{ name }}", {"name": "<b>"}, autoescape=True) == "&lt;b&gt;"

    def test_missing_placeholder_renders_empty(self):
        assert render_template_string("Hi {{ nobody }}!", {}) == "Hi !"


@pytest.mark.django_db
class TestPDFService:
    def test_no_layout_means_no_attachment(self, user):
        invoice = InvoiceFactory(user=user)
        summary = InvoiceCloner.summarize(invoice, [])
        assert PDFService.generate_attachment(None, invoice, [], summary) == (None, None)

    def test_broken_layout_degrades(self, user):
        invoice = InvoiceFactory(user=user)
        layout = InvoiceTemplateFactory(user=user, template_html="{% for x in %}")
        summary = InvoiceCloner.summarize(invoice, [])
        assert PDFService.generate_attachment(layout, invoice, [], summary) == (None, None)

    def test_filename(self, user):
        invoice = InvoiceFactory(user=user, invoice_number="INV-0100")
        assert PDFService.get_invoice_filename(invoice) == "invoice-INV-0100.pdf"

    def test_loops_and_filters_are_available(self):
        rendered = render_template_string(
            "{% for t in tasks %}{{ t.description|upper }};{% endfor %}",
            {"tasks": [{"description": "design"}, {"description": "build"}]},
        )
        assert rendered == "DESIGN;BUILD;"

    @pytest.mark.parametrize("source", [
        "{% debug %}",
        '{% include "admin/base.html" %}',
        '{% extends "admin/base.html" %}',
        "{% load static %}",
    ])
    def test_tags_reaching_outside_the_template_are_rejected(self, source):
        with pytest.raises(TemplateSyntaxError):
            render_template_string(source, {"client_name": "Wayne"})
