"""Line item and pricing summary arithmetic for quotes.

All amounts are integer cents. Percentages are plain floats in the 0-100 range.
Rounding is half-up to the cent.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from app.core.enums import DiscountType, ServiceFrequency

# Multiplier converting one period's charge into a monthly figure.
MONTHLY_FACTOR: dict[ServiceFrequency, Decimal] = {
    ServiceFrequency.WEEKLY: Decimal(52) / Decimal(12),
    ServiceFrequency.BI_WEEKLY: Decimal(26) / Decimal(12),
    ServiceFrequency.MONTHLY: Decimal(1),
    ServiceFrequency.BI_MONTHLY: Decimal(1) / Decimal(2),
    ServiceFrequency.QUARTERLY: Decimal(1) / Decimal(3),
    ServiceFrequency.SEMI_ANNUAL: Decimal(1) / Decimal(6),
    ServiceFrequency.ANNUAL: Decimal(1) / Decimal(12),
}


def to_cents(value: Decimal | float | int) -> int:
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percent_of(amount: int, percent: float | None) -> int:
    if not percent:
        return 0
    return to_cents(Decimal(amount) * Decimal(str(percent)) / Decimal(100))


@dataclass(frozen=True)
class PricingSummary:
    subtotal: int
    discount_amount: int
    tax_amount: int
    total_amount: int
    monthly_amount: int | None
    annual_amount: int | None


def price_line_item(item: dict[str, Any], line_number: int, default_tax_rate: float = 0.0) -> dict[str, Any]:
    """Return a copy of ``item`` with computed subtotal, discount, tax and total."""
    priced = dict(item)
    priced["id"] = priced.get("id") or str(uuid.uuid4())
    priced["line_number"] = line_number
    priced.setdefault("unit", "each")
    priced.setdefault("is_taxable", True)
    priced.setdefault("is_optional", False)
    priced.setdefault("is_selected", True)

    subtotal = to_cents(Decimal(str(priced["quantity"])) * Decimal(priced["unit_price"]))
    # A percentage wins over a stored amount so repricing is stable.
    if priced.get("discount_percent"):
        discount = percent_of(subtotal, priced["discount_percent"])
    else:
        discount = int(priced.get("discount_amount") or 0)
    discount = min(discount, subtotal)
    net = subtotal - discount

    tax_rate = priced.get("tax_rate")
    if tax_rate is None:
        tax_rate = default_tax_rate
    tax = percent_of(net, tax_rate) if priced["is_taxable"] else 0

    priced["subtotal"] = subtotal
    priced["discount_amount"] = discount
    priced["tax_amount"] = tax
    priced["total_amount"] = net
    return priced


def price_line_items(items: Iterable[dict[str, Any]], default_tax_rate: float = 0.0) -> list[dict[str, Any]]:
    return [price_line_item(item, index, default_tax_rate) for index, item in enumerate(items, start=1)]


def _monthly_recurring(items: list[dict[str, Any]], default_frequency: ServiceFrequency | None) -> int | None:
    monthly = Decimal(0)
    recurring_found = False
    for item in items:
        frequency = item.get("frequency") or default_frequency
        if frequency is None:
            continue
        factor = MONTHLY_FACTOR.get(ServiceFrequency(frequency))
        if factor is None:
            continue
        recurring_found = True
        monthly += Decimal(item["total_amount"]) * factor
    return to_cents(monthly) if recurring_found else None


def summarize(
    items: list[dict[str, Any]],
    discount_type: DiscountType = DiscountType.PERCENTAGE,
    discount_percent: float = 0.0,
    discount_amount: int = 0,
    setup_fee: int = 0,
    service_frequency: ServiceFrequency | None = None,
) -> PricingSummary:
    """Fold priced line items into the quote-level pricing summary.

    Only selected items count. A quote-level discount reduces tax proportionally.
    """
    selected = [item for item in items if item.get("is_selected", True)]
    subtotal = sum(item["total_amount"] for item in selected)

    if DiscountType(discount_type) == DiscountType.FIXED:
        discount = int(discount_amount or 0)
    else:
        discount = percent_of(subtotal, discount_percent)
    discount = min(discount, subtotal)

    line_tax = sum(item.get("tax_amount") or 0 for item in selected)
    if subtotal and discount:
        tax = to_cents(Decimal(line_tax) * Decimal(subtotal - discount) / Decimal(subtotal))
    else:
        tax = line_tax

    monthly = _monthly_recurring(selected, service_frequency)
    return PricingSummary(
        subtotal=subtotal,
        discount_amount=discount,
        tax_amount=tax,
        total_amount=subtotal - discount + tax + int(setup_fee or 0),
        monthly_amount=monthly,
        annual_amount=monthly * 12 if monthly is not None else None,
    )
