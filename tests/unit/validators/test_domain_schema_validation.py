from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from app.core.enums import DealStage, DealStatus, QuoteStatus
from app.schemas.analytics import AnalyticsFilters
from app.schemas.deals import DealCreateRequest, DealListFilters, DealLostRequest, DealUpdatePatch
from app.schemas.quotes import QuoteCreateRequest, QuoteLineItemInput, QuoteSendRequest, QuoteUpdatePatch


def test_deal_schema_accepts_minimum_payload():
    payload = DealCreateRequest(contact_id="c-1", title="Ant control", deal_value=1000)
    assert payload.stage == DealStage.LEAD
    assert payload.status == DealStatus.OPEN
    assert payload.win_probability is None


def test_deal_schema_rejects_negative_value_and_unknown_fields():
    with pytest.raises(ValidationError):
        DealCreateRequest(contact_id="c-1", title="Ant control", deal_value=-1)
    with pytest.raises(ValidationError):
        DealCreateRequest(contact_id="c-1", title="Ant control", deal_value=1, weighted_value=5)


def test_deal_patch_reports_only_supplied_fields():
    patch = DealUpdatePatch(stage="negotiation", notes=None)
    assert patch.changes() == {"stage": DealStage.NEGOTIATION, "notes": None}


def test_lost_request_requires_reason():
    with pytest.raises(ValidationError):
        DealLostRequest(reason="")


def test_filters_reject_inverted_bounds():
    with pytest.raises(ValidationError):
        DealListFilters(min_value=10, max_value=5)
    with pytest.raises(ValidationError):
        AnalyticsFilters(min_value=10, max_value=5)


def test_quote_schema_parses_line_items_and_window():
    payload = QuoteCreateRequest(
        contact_id="c-1",
        valid_from=date(2026, 3, 1),
        valid_until=date(2026, 3, 31),
        line_items=[{"name": "Inspection", "quantity": 1, "unit_price": 9900, "frequency": "monthly"}],
    )
    assert payload.line_items[0].unit == "each"
    assert payload.status is None


def test_quote_schema_rejects_inverted_window():
    with pytest.raises(ValidationError):
        QuoteCreateRequest(contact_id="c-1", valid_from=date(2026, 3, 31), valid_until=date(2026, 3, 1))


def test_quote_line_item_requires_positive_quantity():
    with pytest.raises(ValidationError):
        QuoteLineItemInput(name="Inspection", quantity=0, unit_price=100)


def test_quote_patch_and_send_request():
    patch = QuoteUpdatePatch(status="approved")
    assert patch.changes() == {"status": QuoteStatus.APPROVED}
    with pytest.raises(ValidationError):
        QuoteSendRequest(recipient_email="not-an-email")
