"""
Financial summary for recurring invoice clones.

Totals are recomputed from line items on every generation so that VAT
configuration changes between cycles are honoured. VAT settings live in the
invoice's custom fields under ``_systemVat``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

VAT_FIELD_KEY = "_systemVat"

TWO_PLACES = Decimal("0.01")


def to_decimal(value: Any, fallback: Decimal = Decimal("0")) -> Decimal:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return fallback
    return result if result.is_finite() else fallback


def round_currency(value: Any) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass
class VatDetails:
    enabled: bool = False
    rate: Decimal = Decimal("0")
    number: str = ""

    @property
    def applies(self) -> bool:
        return self.enabled and self.rate > 0

    @classmethod
    def from_raw(cls, raw: Any) -> "VatDetails":
        if not isinstance(raw, dict):
            return cls()
        return cls(
            enabled=bool(raw.get("enabled")),
            rate=to_decimal(raw.get("rate")),
            number=raw.get("number") or "",
        )


@dataclass
class FinancialSummary:
    subtotal: Decimal
    vat: VatDetails
    vat_amount: Decimal
    total: Decimal
    custom_fields: Dict[str, Any] = field(default_factory=dict)


def sum_item_totals(items: Iterable[Any]) -> Decimal:
    subtotal = Decimal("0")
    for item in items:
        total = getattr(item, "total", None)
        if total is None:
            continue
        subtotal += to_decimal(total)
    return round_currency(subtotal)


def calculate_vat_amount(subtotal: Decimal, vat: VatDetails) -> Decimal:
    if not vat.applies:
        return Decimal("0.00")
    return round_currency(subtotal * vat.rate / Decimal("100"))


def build_financial_summary(
    items: Iterable[Any],
    custom_fields: Optional[Dict[str, Any]] = None,
    stored_total: Optional[Any] = None,
) -> FinancialSummary:
    """
    Recompute subtotal, VAT and total for a set of line items.

    When VAT is enabled the total is ``subtotal + vat``; otherwise it falls
    back to ``stored_total`` (or the subtotal when there is none). The
    returned custom fields carry refreshed VAT metadata, or none at all when
    VAT no longer applies.
    """
    custom_fields = dict(custom_fields or {})
    subtotal = sum_item_totals(items)
    vat = VatDetails.from_raw(custom_fields.get(VAT_FIELD_KEY))
    vat_amount = calculate_vat_amount(subtotal, vat)

    if vat.applies:
        custom_fields[VAT_FIELD_KEY] = {
            "enabled": True,
            "rate": float(vat.rate),
            "number": vat.number,
            "amount": float(vat_amount),
            "subtotal": float(subtotal),
        }
    else:
        custom_fields.pop(VAT_FIELD_KEY, None)

    if vat.enabled:
        total = round_currency(subtotal + vat_amount)
    elif stored_total is not None:
        total = round_currency(stored_total)
    else:
        total = subtotal

    return FinancialSummary(
        subtotal=subtotal,
        vat=vat,
        vat_amount=vat_amount,
        total=total,
        custom_fields=custom_fields,
    )
