from __future__ import annotations

import random
import re
from datetime import date

import pytest

from app.core.enums import DiscountType, QuoteStatus
from app.core.exceptions import DispatchFailure, InvalidOperationError, NotFoundError, ValidationFailure
from app.models import Contact, Quote
from app.schemas.common import Pagination
from app.schemas.quotes import (
    QuoteAcceptRequest,
    QuoteCreateRequest,
    QuoteListFilters,
    QuoteSendRequest,
    QuoteUpdatePatch,
)
from app.services.email_sender import DispatchResult
from app.services.quote_service import QuoteService

ORG_ID = "org-alpha"

LINE_ITEMS = [
    {"name": "Quarterly pest service", "quantity": 1, "unit_price": 12000, "frequency": "quarterly"},
    {"name": "Initial cleanout", "quantity": 2, "unit_price": 5000, "discount_percent": 10},
]


def _service(session, clock, dispatcher=None):
    return QuoteService(db=session, clock=clock, dispatcher=dispatcher, rng=random.Random(42))


def _create(service, contact_id, **overrides):
    fields = {
        "contact_id": contact_id,
        "name": "Spring treatment",
        "tax_rate": 10,
        "setup_fee": 2500,
        "line_items": LINE_ITEMS,
    }
    fields.update(overrides)
    return service.create_quote(ORG_ID, QuoteCreateRequest(**fields))


def _signature():
    return QuoteAcceptRequest(signed_by_name="Dana Whitfield", signed_by_email="dana@example.com")


def test_create_quote_prices_line_items_and_defaults(session, clock, contact):
    service = _service(session, clock)

    quote = _create(service, contact.id)

    assert re.fullmatch(r"2026-Q\d{5}", quote.quote_number)
    assert quote.version == 1
    assert quote.status == QuoteStatus.DRAFT
    assert quote.status_changed_at == clock()
    assert quote.valid_from == date(2026, 3, 2)
    assert quote.valid_until == date(2026, 4, 1)
    assert quote.currency == "USD"

    first, second = quote.line_items
    assert first["line_number"] == 1
    assert first["subtotal"] == 12000
    assert first["tax_amount"] == 1200
    assert second["subtotal"] == 10000
    assert second["discount_amount"] == 1000
    assert second["total_amount"] == 9000

    assert quote.subtotal == 21000
    assert quote.discount_amount == 0
    assert quote.tax_amount == 2100
    assert quote.total_amount == 25600
    assert quote.monthly_amount == 4000
    assert quote.annual_amount == 48000


def test_create_quote_requires_contact_in_organization(session, clock, contact):
    service = _service(session, clock)
    outsider = Contact(organization_id="org-beta", first_name="Sam")
    session.add(outsider)
    session.commit()

    with pytest.raises(NotFoundError, match="Contact not found"):
        _create(service, "missing-contact")
    with pytest.raises(NotFoundError, match="Contact not found"):
        _create(service, outsider.id)
    assert session.query(Quote).count() == 0


def test_create_quote_rejects_unknown_deal(session, clock, contact):
    service = _service(session, clock)

    with pytest.raises(NotFoundError, match="Deal not found"):
        _create(service, contact.id, deal_id="no-such-deal")


def test_create_quote_refuses_lifecycle_status(session, clock, contact):
    service = _service(session, clock)

    with pytest.raises(ValidationFailure, match="cannot start as accepted"):
        _create(service, contact.id, status="accepted")
    assert session.query(Quote).count() == 0


def test_quote_level_amount_without_percent_is_fixed_discount(session, clock, contact):
    service = _service(session, clock)

    quote = service.create_quote(
        ORG_ID,
        QuoteCreateRequest(
            contact_id=contact.id,
            discount_amount=500,
            line_items=[{"name": "Perimeter treatment", "quantity": 1, "unit_price": 10000}],
        ),
    )

    assert quote.discount_type == DiscountType.FIXED
    assert quote.discount_amount == 500
    assert quote.total_amount == 9500

    updated = service.update_quote(ORG_ID, quote.id, QuoteUpdatePatch(discount_percent=10))
    assert updated.discount_type == DiscountType.PERCENTAGE
    assert updated.discount_amount == 1000
    assert updated.total_amount == 9000

    updated = service.update_quote(ORG_ID, quote.id, QuoteUpdatePatch(discount_amount=700))
    assert updated.discount_type == DiscountType.FIXED
    assert updated.total_amount == 9300


def test_create_quote_rejects_number_already_in_use(session, clock, contact):
    service = _service(session, clock)
    _create(service, contact.id, quote_number="PF-1001")

    with pytest.raises(ValidationFailure, match="Quote number already in use"):
        _create(service, contact.id, quote_number="PF-1001")
    assert session.query(Quote).count() == 1

    outsider = Contact(organization_id="org-beta", first_name="Sam")
    session.add(outsider)
    session.commit()
    other = service.create_quote(
        "org-beta", QuoteCreateRequest(contact_id=outsider.id, quote_number="PF-1001", line_items=[])
    )
    assert other.quote_number == "PF-1001"


def test_update_draft_reprices_in_place(session, clock, contact):
    service = _service(session, clock)
    quote = _create(service, contact.id)

    updated = service.update_quote(
        ORG_ID, quote.id, QuoteUpdatePatch(discount_percent=10), create_new_version=True
    )

    assert updated.id == quote.id
    assert updated.version == 1
    assert updated.discount_amount == 2100
    assert updated.tax_amount == 1890
    assert updated.total_amount == 23290


def test_update_refuses_lifecycle_statuses(session, clock, contact):
    service = _service(session, clock)
    quote = _create(service, contact.id)

    with pytest.raises(InvalidOperationError):
        service.update_quote(ORG_ID, quote.id, QuoteUpdatePatch(status=QuoteStatus.SENT))

    approved = service.update_quote(ORG_ID, quote.id, QuoteUpdatePatch(status=QuoteStatus.APPROVED))
    assert approved.status == QuoteStatus.APPROVED


def test_update_refuses_in_place_edit_of_accepted_quote(session, clock, contact):
    service = _service(session, clock)
    quote = _create(service, contact.id)
    service.accept_quote(ORG_ID, quote.id, _signature())

    with pytest.raises(InvalidOperationError):
        service.update_quote(ORG_ID, quote.id, QuoteUpdatePatch(customer_notes="Please call first"))


def test_new_version_of_sent_quote(session, clock, contact, dispatcher):
    service = _service(session, clock, dispatcher)
    original = _create(service, contact.id)
    service.send_quote(ORG_ID, original.id, QuoteSendRequest(recipient_email="dana@example.com"))
    service.record_view(ORG_ID, original.id)

    clock.advance(days=2)
    revised_items = [dict(LINE_ITEMS[0], unit_price=11000)]
    new_version = service.update_quote(
        ORG_ID,
        original.id,
        QuoteUpdatePatch(line_items=revised_items, revision_notes="Dropped cleanout"),
        create_new_version=True,
    )

    assert new_version.id != original.id
    assert new_version.version == 2
    assert new_version.status == QuoteStatus.DRAFT
    assert new_version.previous_version_id == original.id
    assert new_version.quote_number == original.quote_number
    assert new_version.sent_at is None
    assert new_version.viewed_count == 0
    assert new_version.revision_notes == "Dropped cleanout"
    assert new_version.subtotal == 11000
    assert new_version.created_at == clock()

    session.expire_all()
    previous = service.get_quote(ORG_ID, original.id)
    assert previous.status == QuoteStatus.REVISED
    assert previous.status_changed_at == clock()

    for quote_id in (original.id, new_version.id):
        history = service.get_version_history(ORG_ID, quote_id)
        assert [quote.version for quote in history] == [2, 1]


def test_revised_version_cannot_be_versioned_or_accepted(session, clock, contact):
    service = _service(session, clock)
    original = _create(service, contact.id)
    service.update_quote(ORG_ID, original.id, QuoteUpdatePatch(status=QuoteStatus.APPROVED))
    service.update_quote(ORG_ID, original.id, QuoteUpdatePatch(name="v2"), create_new_version=True)

    with pytest.raises(InvalidOperationError, match="revised"):
        service.update_quote(ORG_ID, original.id, QuoteUpdatePatch(name="v3"), create_new_version=True)
    with pytest.raises(InvalidOperationError, match="revised"):
        service.accept_quote(ORG_ID, original.id, _signature())


def test_clone_starts_new_lineage(session, clock, contact, dispatcher):
    service = _service(session, clock, dispatcher)
    original = _create(service, contact.id)
    service.send_quote(ORG_ID, original.id, QuoteSendRequest(recipient_email="dana@example.com"))

    cloned = service.clone_quote(ORG_ID, original.id)

    assert cloned.quote_number != original.quote_number
    assert cloned.version == 1
    assert cloned.previous_version_id is None
    assert cloned.status == QuoteStatus.DRAFT
    assert cloned.sent_at is None
    assert cloned.sent_to_email is None
    assert cloned.name == "Spring treatment (Copy)"
    assert cloned.total_amount == original.total_amount


def test_clone_of_unnamed_quote(session, clock, contact):
    service = _service(session, clock)
    original = _create(service, contact.id, name=None)

    assert service.clone_quote(ORG_ID, original.id).name == "Copy"


def test_send_quote_marks_sent_after_dispatch(session, clock, contact, dispatcher):
    service = _service(session, clock, dispatcher)
    quote = _create(service, contact.id)

    sent = service.send_quote(
        ORG_ID,
        quote.id,
        QuoteSendRequest(recipient_email="dana@example.com", cc_emails=["office@example.com"]),
    )

    assert sent.status == QuoteStatus.SENT
    assert sent.sent_at == clock()
    assert sent.sent_to_email == "dana@example.com"
    delivery = dispatcher.sent[0]
    assert delivery["recipient"] == "dana@example.com"
    assert delivery["cc"] == ["office@example.com"]
    assert delivery["document"].subject == f"Your quote {quote.quote_number}"
    assert "Hi Dana Whitfield" in delivery["document"].text_body


@pytest.mark.parametrize(
    "failing_dispatcher_kwargs",
    [
        {"result": DispatchResult(success=False, error="smtp down")},
        {"error": RuntimeError("connection reset")},
    ],
)
def test_send_failure_leaves_quote_untouched(session, clock, contact, dispatcher_factory, failing_dispatcher_kwargs):
    service = _service(session, clock, dispatcher_factory(**failing_dispatcher_kwargs))
    quote = _create(service, contact.id)

    with pytest.raises(DispatchFailure, match="Failed to send email"):
        service.send_quote(ORG_ID, quote.id, QuoteSendRequest(recipient_email="dana@example.com"))

    session.expire_all()
    reloaded = service.get_quote(ORG_ID, quote.id)
    assert reloaded.status == QuoteStatus.DRAFT
    assert reloaded.sent_at is None


def test_record_view_twice(session, clock, contact, dispatcher):
    service = _service(session, clock, dispatcher)
    quote = _create(service, contact.id)
    service.send_quote(ORG_ID, quote.id, QuoteSendRequest(recipient_email="dana@example.com"))

    first_view_at = clock()
    service.record_view(ORG_ID, quote.id)
    clock.advance(hours=5)
    viewed = service.record_view(ORG_ID, quote.id)

    assert viewed.viewed_count == 2
    assert viewed.viewed_at == first_view_at
    assert viewed.status == QuoteStatus.VIEWED


def test_record_view_does_not_reopen_accepted_quote(session, clock, contact):
    service = _service(session, clock)
    quote = _create(service, contact.id)
    service.accept_quote(ORG_ID, quote.id, _signature())

    viewed = service.record_view(ORG_ID, quote.id)

    assert viewed.status == QuoteStatus.ACCEPTED
    assert viewed.viewed_count == 1


def test_accept_records_signature(session, clock, contact):
    service = _service(session, clock)
    quote = _create(service, contact.id)

    accepted = service.accept_quote(ORG_ID, quote.id, _signature(), origin_address="203.0.113.9")

    assert accepted.status == QuoteStatus.ACCEPTED
    assert accepted.signed_at == clock()
    assert accepted.signed_by_name == "Dana Whitfield"
    assert accepted.signature_ip == "203.0.113.9"

    with pytest.raises(InvalidOperationError, match="already been accepted"):
        service.accept_quote(ORG_ID, quote.id, _signature())
    with pytest.raises(InvalidOperationError, match="already been accepted"):
        service.reject_quote(ORG_ID, quote.id, "Changed my mind")


def test_accept_on_last_valid_day(session, clock, contact):
    service = _service(session, clock)
    quote = _create(service, contact.id, valid_from=date(2026, 2, 1), valid_until=date(2026, 3, 2))

    assert service.accept_quote(ORG_ID, quote.id, _signature()).status == QuoteStatus.ACCEPTED


def test_accept_expired_quote_persists_expiry(session, clock, contact):
    service = _service(session, clock)
    quote = _create(service, contact.id, valid_from=date(2026, 2, 1), valid_until=date(2026, 3, 1))

    with pytest.raises(InvalidOperationError, match="Quote has expired"):
        service.accept_quote(ORG_ID, quote.id, _signature())

    session.expire_all()
    reloaded = service.get_quote(ORG_ID, quote.id)
    assert reloaded.status == QuoteStatus.EXPIRED
    assert reloaded.signed_at is None


def test_reject_stores_reason(session, clock, contact):
    service = _service(session, clock)
    quote = _create(service, contact.id)

    rejected = service.reject_quote(ORG_ID, quote.id, "Too expensive")

    assert rejected.status == QuoteStatus.REJECTED
    assert rejected.rejection_reason == "Too expensive"
    with pytest.raises(InvalidOperationError, match="rejected"):
        service.accept_quote(ORG_ID, quote.id, _signature())


def test_expire_overdue_is_idempotent(session, clock, contact, dispatcher):
    service = _service(session, clock, dispatcher)
    window = {"valid_from": date(2026, 3, 1), "valid_until": date(2026, 3, 10)}
    stale_draft = _create(service, contact.id, **window)
    stale_sent = _create(service, contact.id, **window)
    service.send_quote(ORG_ID, stale_sent.id, QuoteSendRequest(recipient_email="dana@example.com"))
    accepted = _create(service, contact.id, **window)
    service.accept_quote(ORG_ID, accepted.id, _signature())
    current = _create(service, contact.id, valid_from=date(2026, 3, 1), valid_until=date(2026, 4, 30))

    clock.advance(days=9)
    assert service.expire_overdue(ORG_ID) == 2
    assert service.expire_overdue(ORG_ID) == 0

    statuses = {quote.id: quote.status for quote in session.query(Quote).all()}
    assert statuses[stale_draft.id] == QuoteStatus.EXPIRED
    assert statuses[stale_sent.id] == QuoteStatus.EXPIRED
    assert statuses[accepted.id] == QuoteStatus.ACCEPTED
    assert statuses[current.id] == QuoteStatus.DRAFT


def test_list_quotes_sorting_and_filters(session, clock, contact):
    service = _service(session, clock)
    cheap = _create(service, contact.id, line_items=[{"name": "Spot treatment", "quantity": 1, "unit_price": 100}])
    pricey = _create(service, contact.id)
    service.reject_quote(ORG_ID, pricey.id)

    items, total = service.list_quotes(
        ORG_ID, QuoteListFilters(sort_by="total_amount", sort_order="asc"), Pagination(limit=10)
    )
    assert total == 2
    assert [quote.id for quote in items] == [cheap.id, pricey.id]

    items, total = service.list_quotes(ORG_ID, QuoteListFilters(status=QuoteStatus.REJECTED))
    assert [quote.id for quote in items] == [pricey.id]

    service.remove_quote(ORG_ID, cheap.id)
    _, total = service.list_quotes(ORG_ID)
    assert total == 1
    with pytest.raises(NotFoundError):
        service.get_quote(ORG_ID, cheap.id)
