from __future__ import annotations

from app.core.enums import DiscountType, ServiceFrequency
from app.services.quote_pricing import price_line_item, price_line_items, summarize


def test_line_item_percent_discount_wins_over_amount():
    priced = price_line_item(
        {"name": "Termite bait stations", "quantity": 3, "unit_price": 2500, "discount_percent": 20, "discount_amount": 100},
        line_number=1,
        default_tax_rate=8.25,
    )

    assert priced["subtotal"] == 7500
    assert priced["discount_amount"] == 1500
    assert priced["total_amount"] == 6000
    assert priced["tax_amount"] == 495
    assert priced.get("tax_rate") is None
    assert priced["id"]


def test_line_item_discount_is_capped_at_subtotal():
    priced = price_line_item({"name": "Wasp nest removal", "quantity": 1, "unit_price": 800, "discount_amount": 5000}, 1)

    assert priced["discount_amount"] == 800
    assert priced["total_amount"] == 0


def test_non_taxable_item_and_item_tax_override():
    items = price_line_items(
        [
            {"name": "Inspection", "quantity": 1, "unit_price": 10000, "is_taxable": False},
            {"name": "Treatment", "quantity": 1, "unit_price": 10000, "tax_rate": 5},
        ],
        default_tax_rate=10,
    )

    assert [item["line_number"] for item in items] == [1, 2]
    assert items[0]["tax_amount"] == 0
    assert items[1]["tax_amount"] == 500


def test_summary_skips_unselected_items_and_scales_tax():
    items = price_line_items(
        [
            {"name": "Monthly service", "quantity": 1, "unit_price": 20000, "frequency": "monthly"},
            {"name": "Optional attic fogging", "quantity": 1, "unit_price": 9000, "is_optional": True, "is_selected": False},
        ],
        default_tax_rate=10,
    )

    summary = summarize(items, DiscountType.FIXED, discount_amount=5000, setup_fee=1500)

    assert summary.subtotal == 20000
    assert summary.discount_amount == 5000
    assert summary.tax_amount == 1500
    assert summary.total_amount == 20000 - 5000 + 1500 + 1500
    assert summary.monthly_amount == 20000
    assert summary.annual_amount == 240000


def test_summary_uses_quote_frequency_for_items_without_one():
    items = price_line_items([{"name": "Rodent monitoring", "quantity": 1, "unit_price": 30000}])

    quarterly = summarize(items, service_frequency=ServiceFrequency.QUARTERLY)
    one_time = summarize(items, service_frequency=ServiceFrequency.ONE_TIME)

    assert quarterly.monthly_amount == 10000
    assert quarterly.annual_amount == 120000
    assert one_time.monthly_amount is None
    assert one_time.annual_amount is None


def test_repricing_is_stable():
    once = price_line_items(
        [{"name": "Bed bug heat treatment", "quantity": 1.5, "unit_price": 33333, "discount_percent": 12.5}],
        default_tax_rate=7,
    )
    twice = price_line_items(once, default_tax_rate=7)

    assert once == twice
