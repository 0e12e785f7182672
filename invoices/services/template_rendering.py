"""
Placeholder rendering for saved email templates and PDF layouts.

Saved templates use ``{{ placeholder }}`` syntax and are rendered with the
Django template engine. Both snake_case and camelCase names are provided for
every field so older templates keep working.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from django.template import Context, Engine, Library, Template

if TYPE_CHECKING:
    from invoices.models import EmailSettings, Invoice, LineItem
    from invoices.services.financials import FinancialSummary

logger = logging.getLogger(__name__)

DEFAULT_COMPANY_NAME = "Your Company"

# Tags that reach outside the saved template or expose internals
BLOCKED_TAGS = frozenset({"debug", "include", "extends", "load", "block"})

BANK_FIELDS = (
    ("account_holder_name", "accountHolderName"),
    ("bank_name", "bankName"),
    ("account_name", "accountName"),
    ("account_number", "accountNumber"),
    ("iban", "iban"),
    ("bic", "bic"),
    ("sort_code", "sortCode"),
    ("swift_code", "swiftCode"),
    ("routing_number", "routingNumber"),
    ("bank_address", "bankAddress"),
    ("additional_info", "additionalInfo"),
)


def _format_date(value) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def _money(value) -> str:
    return f"{value:.2f}"


def _profile_for(user):
    from invoices.models import UserProfile
    try:
        return user.profile
    except UserProfile.DoesNotExist:
        return None


def _custom_field_placeholders(custom_fields: Dict[str, Any]) -> Dict[str, Any]:
    context = {}
    for key, value in (custom_fields or {}).items():
        if key.startswith("_"):
            continue
        slug = "".join(ch if ch.isalnum() else "_" for ch in str(key)).strip("_").lower()
        if not slug:
            continue
        context[f"custom_{slug}"] = value
    return context


def build_placeholder_context(
    invoice: "Invoice",
    email_settings: Optional["EmailSettings"] = None,
) -> Dict[str, Any]:
    """Flat placeholder map shared by email subjects, bodies and PDF layouts."""
    user = invoice.user
    profile = _profile_for(user)
    currency = invoice.currency or "USD"
    symbol = invoice.currency_symbol
    invoice_number = invoice.display_number
    invoice_date = _format_date(invoice.date)
    company_name = (profile.company_name if profile else "") or DEFAULT_COMPANY_NAME
    user_name = user.get_full_name() or (email_settings.email if email_settings else "") or user.email

    context = {
        "client_name": invoice.client,
        "clientName": invoice.client,
        "invoice_number": invoice_number,
        "invoiceId": str(invoice.id),
        "total_amount": f"{currency} {_money(invoice.total_amount)}",
        "totalAmount": f"{currency} {_money(invoice.total_amount)}",
        "currency": currency,
        "currencySymbol": symbol,
        "invoice_date": invoice_date,
        "date": invoice_date,
        "work_type": invoice.work_type or "",
        "workType": invoice.work_type or "",
        "company_name": company_name,
        "companyName": company_name,
        "company_address": user.email or (email_settings.email if email_settings else ""),
        "userName": user_name,
        "item_structure": invoice.item_structure,
        "itemStructure": invoice.item_structure,
    }
    for snake, camel in BANK_FIELDS:
        value = getattr(profile, snake, "") if profile else ""
        context[snake] = value or ""
        context[camel] = value or ""

    context.update(_custom_field_placeholders(invoice.custom_fields))
    return context


def line_item_rows(items: Sequence["LineItem"]) -> List[Dict[str, Any]]:
    rows = []
    for item in items:
        row = {"description": item.description, "total": _money(item.total)}
        for field_name in item.STRUCTURE_FIELDS:
            value = getattr(item, field_name)
            if value is not None:
                row[field_name] = value
        if item.unit_price is not None:
            row["unitPrice"] = item.unit_price
        rows.append(row)
    return rows


def build_pdf_context(
    invoice: "Invoice",
    items: Sequence["LineItem"],
    summary: "FinancialSummary",
    email_settings: Optional["EmailSettings"] = None,
) -> Dict[str, Any]:
    """Email placeholders plus line items and the recomputed financial summary."""
    context = build_placeholder_context(invoice, email_settings)
    symbol = invoice.currency_symbol
    context.update({
        "total_amount": f"{symbol}{_money(summary.total)}",
        "totalAmount": _money(summary.total),
        "subtotal": _money(summary.subtotal),
        "vat_enabled": summary.vat.applies,
        "vatEnabled": summary.vat.applies,
        "vat_rate": summary.vat.rate,
        "vatRate": summary.vat.rate,
        "vat_number": summary.vat.number,
        "vatNumber": summary.vat.number,
        "vat_amount": _money(summary.vat_amount),
        "vatAmount": _money(summary.vat_amount),
        "custom_fields": {k: v for k, v in summary.custom_fields.items() if not k.startswith("_")},
        "customFields": {k: v for k, v in summary.custom_fields.items() if not k.startswith("_")},
        "tasks": line_item_rows(items),
        "items": line_item_rows(items),
    })
    return context


def _user_template_engine() -> Engine:
    """Engine with no loaders, no loadable libraries and without ``BLOCKED_TAGS``."""
    engine = Engine(loaders=[], libraries={})
    restricted = []
    for builtin in engine.template_builtins:
        library = Library()
        library.filters = dict(builtin.filters)
        library.tags = {name: tag for name, tag in builtin.tags.items() if name not in BLOCKED_TAGS}
        restricted.append(library)
    engine.template_builtins = restricted
    return engine


USER_TEMPLATE_ENGINE = _user_template_engine()


def render_template_string(source: str, context: Dict[str, Any], autoescape: bool = False) -> str:
    """Render ``source`` with ``context``; template syntax errors propagate."""
    template = Template(source, engine=USER_TEMPLATE_ENGINE)
    return template.render(Context(context, autoescape=autoescape))
