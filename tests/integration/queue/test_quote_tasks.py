from __future__ import annotations

from datetime import date

from app.core.enums import QuoteStatus
from app.models import Contact
from app.schemas.quotes import QuoteCreateRequest
from app.services.quote_service import QuoteService
from app.tasks.celery_app import celery_app
from app.tasks.quote_tasks import expire_overdue_quotes, sweep_expired_quotes


def _stale_quote(session, organization_id):
    contact = Contact(organization_id=organization_id, first_name="Robin")
    session.add(contact)
    session.commit()
    return QuoteService(db=session).create_quote(
        organization_id,
        QuoteCreateRequest(contact_id=contact.id, valid_from=date(2020, 1, 1), valid_until=date(2020, 1, 31)),
    )


def test_sweep_covers_every_organization(session):
    first = _stale_quote(session, "org-alpha")
    second = _stale_quote(session, "org-beta")

    result = sweep_expired_quotes(session=session)

    assert result["total"] == 2
    assert result["expired"] == {"org-alpha": 1, "org-beta": 1}
    session.refresh(first)
    session.refresh(second)
    assert first.status == QuoteStatus.EXPIRED
    assert second.status == QuoteStatus.EXPIRED
    assert sweep_expired_quotes(session=session)["total"] == 0


def test_sweep_scoped_to_one_organization(session):
    _stale_quote(session, "org-alpha")
    other = _stale_quote(session, "org-beta")

    result = sweep_expired_quotes("org-alpha", session=session)

    assert result["expired"] == {"org-alpha": 1}
    session.refresh(other)
    assert other.status == QuoteStatus.DRAFT


def test_expiry_task_is_registered():
    assert expire_overdue_quotes.name == "quotes.expire_overdue"
    assert "quotes.expire_overdue" in celery_app.tasks
