from __future__ import annotations

import logging
import re
import time

from django.conf import settings

logger = logging.getLogger(__name__)


def _prefix() -> str:
    return getattr(settings, "INVOICE_NUMBER_PREFIX", "INV")


def _padding() -> int:
    return getattr(settings, "INVOICE_NUMBER_PADDING", 4)


def fallback_invoice_number() -> str:
    """Timestamp-derived number used when the sequence cannot be read."""
    return f"{_prefix()}-{str(int(time.time() * 1000))[-4:]}"


def next_invoice_number() -> str:
    """
    Return the next sequential invoice number, e.g. ``INV-0042``.

    Reads the most recently created numbered invoice and increments its
    numeric suffix. Never raises: a number that cannot be parsed or a
    datastore error yields a timestamp-derived number instead.
    """
    from invoices.models import Invoice

    prefix = _prefix()
    try:
        last_number = (
            Invoice.objects.exclude(invoice_number__isnull=True)
            .exclude(invoice_number="")
            .order_by("-created_at")
            .values_list("invoice_number", flat=True)
            .first()
        )
    except Exception:
        logger.exception("Invoice number lookup failed, using timestamp fallback")
        return fallback_invoice_number()

    if not last_number:
        return f"{prefix}-{1:0{_padding()}d}"

    match = re.search(rf"{re.escape(prefix)}-(\d+)", last_number)
    if not match:
        logger.warning(f"Unparseable invoice number {last_number!r}, using timestamp fallback")
        return fallback_invoice_number()

    return f"{prefix}-{int(match.group(1)) + 1:0{_padding()}d}"
